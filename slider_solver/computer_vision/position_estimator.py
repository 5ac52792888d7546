"""
Contour based position estimation

Each captured image goes through a fixed sequence of threshold and morphology
steps, then the centroid of one outer contour is taken as its position. Two
pipelines exist: one reads the gap out of the diff image, the other reads the
draggable piece out of its own canvas. The order of erode/dilate steps differs
between them and decides which noise survives.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, NamedTuple, Tuple, Union

import numpy as np

from ..common.errors import NoRegionFoundError
from . import cv_utils
from .image_decoder import Bitmap

logger = logging.getLogger(__name__)


class Position(NamedTuple):
    x: int
    y: int


class RegionSelection(Enum):
    FIRST = "first"
    LARGEST = "largest"


@dataclass(frozen=True)
class Grayscale:
    pass


@dataclass(frozen=True)
class Threshold:
    value: int = 127
    inverse: bool = False


@dataclass(frozen=True)
class Erode:
    kernel_size: int = 5
    iterations: int = 1


@dataclass(frozen=True)
class Dilate:
    kernel_size: int = 5
    iterations: int = 1


Step = Union[Grayscale, Threshold, Erode, Dilate]


@dataclass(frozen=True)
class MorphPipeline:
    name: str
    steps: Tuple[Step, ...]
    selection: RegionSelection = RegionSelection.LARGEST
    min_region_area: float = 1.0

    def describe(self) -> str:
        parts = []
        for step in self.steps:
            if isinstance(step, Threshold):
                parts.append(f"threshold({step.value}{', inv' if step.inverse else ''})")
            elif isinstance(step, (Erode, Dilate)):
                parts.append(f"{type(step).__name__.lower()}({step.kernel_size}x{step.kernel_size}, {step.iterations})")
            else:
                parts.append(type(step).__name__.lower())
        return f"{self.name}: " + " -> ".join(parts)


def piece_pipeline(threshold: int = 127, kernel_size: int = 5, iterations: int = 1,
                   selection: RegionSelection = RegionSelection.LARGEST,
                   min_region_area: float = 1.0) -> MorphPipeline:
    """Piece canvas: dilate then erode closes the noise inside the piece outline"""
    return MorphPipeline(
        name="piece",
        steps=(
            Grayscale(),
            Threshold(threshold),
            Dilate(kernel_size, iterations),
            Erode(kernel_size, iterations),
        ),
        selection=selection,
        min_region_area=min_region_area,
    )


def gap_pipeline(threshold: int = 127, gray_threshold: int = 150, kernel_size: int = 5,
                 iterations: int = 1, selection: RegionSelection = RegionSelection.LARGEST,
                 min_region_area: float = 1.0) -> MorphPipeline:
    """
    Diff image: clean the colour channels, then keep the dark (red) pixels

    The first threshold and the morphology run on every RGBA channel, the
    final inverted threshold turns the red diff pixels into foreground.
    """
    return MorphPipeline(
        name="gap",
        steps=(
            Threshold(threshold),
            Erode(kernel_size, iterations),
            Dilate(kernel_size, iterations),
            Erode(kernel_size, iterations),
            Dilate(kernel_size, iterations),
            Grayscale(),
            Threshold(gray_threshold, inverse=True),
        ),
        selection=selection,
        min_region_area=min_region_area,
    )


def _apply(image: np.ndarray, step: Step) -> np.ndarray:
    if isinstance(step, Grayscale):
        return cv_utils.to_grayscale(image)
    if isinstance(step, Threshold):
        return cv_utils.binarize(image, step.value, step.inverse)
    if isinstance(step, Erode):
        return cv_utils.erode(image, step.kernel_size, step.iterations)
    if isinstance(step, Dilate):
        return cv_utils.dilate(image, step.kernel_size, step.iterations)
    raise TypeError(f"Unknown pipeline step: {step!r}")


def run_pipeline(bitmap: Bitmap, pipeline: MorphPipeline) -> np.ndarray:
    """
    Run every step of the pipeline and return a binary single-channel mask

    Channels left over after the last step are collapsed with a grayscale
    conversion, anything non-zero counts as foreground.
    """
    image = np.array(bitmap.pixels, dtype=np.uint8)
    for step in pipeline.steps:
        image = _apply(image, step)
    if image.ndim == 3:
        image = cv_utils.to_grayscale(image)
    return np.where(image > 0, 255, 0).astype(np.uint8)


def find_regions(mask: np.ndarray) -> List[np.ndarray]:
    return cv_utils.find_external_contours(mask)


def select_region(contours: List[np.ndarray], shape: Tuple[int, int],
                  selection: RegionSelection = RegionSelection.LARGEST,
                  min_region_area: float = 1.0) -> dict:
    """
    Pick one contour and return the moments of the region it encloses

    Raises:
        NoRegionFoundError: If there are no contours, or none reach the area floor
    """
    if not contours:
        raise NoRegionFoundError("No foreground region found")

    if selection is RegionSelection.FIRST:
        return cv_utils.region_moments(contours[0], shape)

    best = None
    for contour in contours:
        moments = cv_utils.region_moments(contour, shape)
        if moments['m00'] < min_region_area:
            continue
        if best is None or moments['m00'] > best['m00']:
            best = moments

    if best is None:
        raise NoRegionFoundError(
            f"None of {len(contours)} regions reach the minimum area of {min_region_area}"
        )
    return best


def estimate(bitmap: Bitmap, pipeline: MorphPipeline) -> Position:
    """
    Locate the dominant foreground region of a bitmap

    Args:
        bitmap: Captured image
        pipeline: Threshold/morphology pipeline to run before contour search

    Returns:
        Floored centroid of the selected region

    Raises:
        NoRegionFoundError: No usable region after processing
        DegenerateRegionError: The selected region has zero area. Regions are
            measured on their filled raster, so any contour found here covers
            at least one pixel and this only comes from centroid() on moments
            built elsewhere.
    """
    mask = run_pipeline(bitmap, pipeline)
    contours = find_regions(mask)
    moments = select_region(contours, mask.shape, pipeline.selection, pipeline.min_region_area)
    x, y = cv_utils.centroid(moments)

    logger.debug(f"{pipeline.name} position ({x}, {y}) from {len(contours)} contour(s), "
                 f"area={moments['m00']:.0f}")
    return Position(x, y)
