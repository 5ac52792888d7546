"""
Solver configuration

Every tunable constant of the solver lives on one immutable SolverConfig.
The defaults are the values tuned against the GeeTest demo widget.
"""

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Dict, Optional

from ..computer_vision.position_estimator import (
    MorphPipeline,
    RegionSelection,
    gap_pipeline,
    piece_pipeline
)

logger = logging.getLogger(__name__)

ENV_PREFIX = 'SLIDER_SOLVER_'


@dataclass(frozen=True)
class SolverConfig:
    # Diff
    diff_threshold: float = 0.2
    include_aa: bool = False

    # Vision pipelines
    kernel_size: int = 5
    morph_iterations: int = 1
    # Tuned with BGR weights applied to RGBA data, so red and blue weights were
    # swapped relative to the RGBA grayscale used now. Saturated piece colours
    # near 127 can binarise differently.
    piece_threshold: int = 127
    gap_threshold: int = 127
    gap_gray_threshold: int = 150
    region_selection: RegionSelection = RegionSelection.LARGEST
    min_region_area: float = 1.0

    # Drag
    coarse_steps: int = 25
    fine_steps: int = 5
    coarse_holdback: float = 10.0
    step_delay: float = 0.01

    # Waits, in seconds
    verification_timeout: float = 5.0
    settle_delay: float = 0.1
    stable_timeout: float = 5.0
    stable_interval: float = 0.2
    page_timeout: float = 10.0

    # Browser
    headless: bool = True
    chromedriver_path: Optional[str] = None
    browser_binary: Optional[str] = None
    canvas_selector: str = '.geetest_canvas_img canvas'
    handle_selector: str = '.geetest_slider_button'
    success_selector: str = '.geetest_success_radar_tip_content'

    # Artefacts
    debug_dir: Optional[Path] = None
    trace_dir: Optional[Path] = None

    def __post_init__(self):
        if not 0.0 <= self.diff_threshold <= 1.0:
            raise ValueError(f"diff_threshold must be within [0, 1], got {self.diff_threshold}")
        if self.kernel_size < 1:
            raise ValueError(f"kernel_size must be positive, got {self.kernel_size}")
        if self.morph_iterations < 0:
            raise ValueError(f"morph_iterations must not be negative, got {self.morph_iterations}")
        if self.coarse_steps < 1 or self.fine_steps < 1:
            raise ValueError("coarse_steps and fine_steps must be at least 1")
        if self.verification_timeout <= 0:
            raise ValueError(f"verification_timeout must be positive, got {self.verification_timeout}")

    def piece_pipeline(self) -> MorphPipeline:
        return piece_pipeline(
            threshold=self.piece_threshold,
            kernel_size=self.kernel_size,
            iterations=self.morph_iterations,
            selection=self.region_selection,
            min_region_area=self.min_region_area,
        )

    def gap_pipeline(self) -> MorphPipeline:
        return gap_pipeline(
            threshold=self.gap_threshold,
            gray_threshold=self.gap_gray_threshold,
            kernel_size=self.kernel_size,
            iterations=self.morph_iterations,
            selection=self.region_selection,
            min_region_area=self.min_region_area,
        )

    def with_overrides(self, **overrides) -> 'SolverConfig':
        overrides = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **overrides)

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None, **overrides) -> 'SolverConfig':
        """
        Build a config from SLIDER_SOLVER_* environment variables

        Variable names are the upper-cased field names, e.g.
        SLIDER_SOLVER_DIFF_THRESHOLD=0.25 or SLIDER_SOLVER_HEADLESS=false.
        Keyword overrides win over the environment.
        """
        environ = os.environ if environ is None else environ
        values = {}
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            try:
                values[f.name] = _parse(f.name, raw, f.default)
            except ValueError as e:
                raise ValueError(f"Invalid value for {ENV_PREFIX + f.name.upper()}: {raw!r}") from e
        values.update({k: v for k, v in overrides.items() if v is not None})
        config = cls(**values)
        if values:
            logger.debug(f"Config overrides: {sorted(values)}")
        return config


def _parse(name: str, raw: str, default):
    if name in ('debug_dir', 'trace_dir'):
        return Path(raw) if raw else None
    if name in ('chromedriver_path', 'browser_binary'):
        return raw or None
    if isinstance(default, RegionSelection):
        return RegionSelection(raw.strip().lower())
    if isinstance(default, bool):
        value = raw.strip().lower()
        if value in ('1', 'true', 'yes', 'on'):
            return True
        if value in ('0', 'false', 'no', 'off'):
            return False
        raise ValueError(f"not a boolean: {raw}")
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    return raw
