"""
Slider CAPTCHA Solver Package

Finds the gap of a slider puzzle by diffing the challenge canvases and drags
the piece into it with a coarse move followed by a measured correction.
"""

from .alignment_planner import DragPlan, Waypoint, plan, correct
from .captcha_solver import SliderCaptchaSolver, SolveDecision, solve
from .common.config import SolverConfig
from .common.errors import (
    SliderSolverError,
    DecodeError,
    DimensionMismatchError,
    VisionError,
    NoRegionFoundError,
    DegenerateRegionError,
    VerificationTimeoutError
)
from .computer_vision import Bitmap, Position, decode, diff, estimate, gap_pipeline, piece_pipeline

__version__ = '0.1.0'

__all__ = [
    'DragPlan',
    'Waypoint',
    'plan',
    'correct',
    'SliderCaptchaSolver',
    'SolveDecision',
    'solve',
    'SolverConfig',
    'SliderSolverError',
    'DecodeError',
    'DimensionMismatchError',
    'VisionError',
    'NoRegionFoundError',
    'DegenerateRegionError',
    'VerificationTimeoutError',
    'Bitmap',
    'Position',
    'decode',
    'diff',
    'estimate',
    'gap_pipeline',
    'piece_pipeline'
]
