"""
Perceptual pixel diff

Compares the reference background with the puzzle image that carries the gap.
Colour distance is measured in YIQ space after blending each pixel over white,
and pixels that only differ because of anti-aliased edges can be ignored.

Output encoding:
    different pixels       -> red (255, 0, 0, 255)
    anti-aliased pixels    -> yellow (255, 255, 0, 255)
    unchanged pixels       -> faded grey copy of the first image (>= 229)
"""

import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from ..common.errors import DimensionMismatchError
from .image_decoder import Bitmap

logger = logging.getLogger(__name__)

# Largest possible squared YIQ distance between two colours
MAX_YIQ_DELTA = 35215

DIFF_COLOR = (255, 0, 0)
AA_COLOR = (255, 255, 0)


@dataclass(frozen=True, eq=False)
class DiffResult:
    image: Bitmap
    diff_count: int
    aa_count: int = 0


def _blend(channel: np.ndarray, alpha: np.ndarray) -> np.ndarray:
    return 255.0 + (channel - 255.0) * alpha


def _rgb2y(r, g, b):
    return r * 0.29889531 + g * 0.58662247 + b * 0.11448223


def _rgb2i(r, g, b):
    return r * 0.59597799 - g * 0.27417610 - b * 0.32180189


def _rgb2q(r, g, b):
    return r * 0.21147017 - g * 0.52261711 + b * 0.31114694


def _over_white(pixels: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    rgba = pixels.astype(np.float64)
    alpha = rgba[..., 3] / 255.0
    return _blend(rgba[..., 0], alpha), _blend(rgba[..., 1], alpha), _blend(rgba[..., 2], alpha)


def color_delta(first: np.ndarray, second: np.ndarray, y_only: bool = False) -> np.ndarray:
    """
    Signed perceptual distance between two RGBA arrays of the same shape

    Args:
        first: RGBA pixels, shape (..., 4)
        second: RGBA pixels, shape (..., 4)
        y_only: Return only the brightness difference

    Returns:
        Squared YIQ distance, negative where the first pixel is brighter.
        Exactly 0 for identical pixels.
    """
    r1, g1, b1 = _over_white(first)
    r2, g2, b2 = _over_white(second)

    y1 = _rgb2y(r1, g1, b1)
    y2 = _rgb2y(r2, g2, b2)
    y = y1 - y2

    identical = np.all(first == second, axis=-1)

    if y_only:
        return np.where(identical, 0.0, y)

    i = _rgb2i(r1, g1, b1) - _rgb2i(r2, g2, b2)
    q = _rgb2q(r1, g1, b1) - _rgb2q(r2, g2, b2)
    delta = 0.5053 * y * y + 0.299 * i * i + 0.1957 * q * q
    delta = np.where(y1 > y2, -delta, delta)
    return np.where(identical, 0.0, delta)


# Neighbour offsets (dx, dy), column by column as the pixels are scanned
NEIGHBOUR_OFFSETS = tuple((dx, dy) for dx in (-1, 0, 1) for dy in (-1, 0, 1) if dx or dy)


def _brightness(pixels: np.ndarray) -> np.ndarray:
    return _rgb2y(*_over_white(pixels))


def _shifted(array: np.ndarray, dx: int, dy: int) -> Tuple[np.ndarray, np.ndarray]:
    """Value of the (x + dx, y + dy) neighbour of every pixel, and where that neighbour exists"""
    height, width = array.shape[:2]
    pad = ((1, 1), (1, 1)) + ((0, 0),) * (array.ndim - 2)
    padded = np.pad(array, pad, mode='edge')
    neighbour = padded[1 + dy:1 + dy + height, 1 + dx:1 + dx + width]

    valid = np.ones((height, width), dtype=bool)
    if dx < 0:
        valid[:, 0] = False
    elif dx > 0:
        valid[:, -1] = False
    if dy < 0:
        valid[0, :] = False
    elif dy > 0:
        valid[-1, :] = False
    return neighbour, valid


def _on_edge(height: int, width: int) -> np.ndarray:
    edge = np.zeros((height, width), dtype=bool)
    edge[0, :] = edge[-1, :] = True
    edge[:, 0] = edge[:, -1] = True
    return edge


def many_siblings(pixels: np.ndarray) -> np.ndarray:
    """Pixels with more than two identical neighbours, image borders counting as one"""
    height, width = pixels.shape[:2]
    count = _on_edge(height, width).astype(np.int32)
    for dx, dy in NEIGHBOUR_OFFSETS:
        neighbour, valid = _shifted(pixels, dx, dy)
        count += valid & np.all(pixels == neighbour, axis=-1)
    return count > 2


def antialiased_mask(pixels: np.ndarray, other: np.ndarray) -> np.ndarray:
    """
    Pixels of `pixels` that look like an anti-aliased edge

    A pixel is anti-aliased when it sits between a darker and a brighter
    neighbour, has at most two neighbours of equal brightness, and either
    extreme neighbour belongs to a flat area in both images. When several
    neighbours share the extreme value the first one in scan order is used.

    Args:
        pixels: RGBA image to inspect, shape (height, width, 4)
        other: RGBA image of the same shape

    Returns:
        Boolean mask of shape (height, width)
    """
    height, width = pixels.shape[:2]
    brightness = _brightness(pixels)

    zeroes = _on_edge(height, width).astype(np.int32)
    min_delta = np.zeros((height, width))
    max_delta = np.zeros((height, width))
    min_at = np.zeros((height, width), dtype=np.intp)
    max_at = np.zeros((height, width), dtype=np.intp)

    for index, (dx, dy) in enumerate(NEIGHBOUR_OFFSETS):
        neighbour, valid = _shifted(pixels, dx, dy)
        neighbour_brightness, _ = _shifted(brightness, dx, dy)
        identical = np.all(pixels == neighbour, axis=-1)
        delta = np.where(identical, 0.0, brightness - neighbour_brightness)

        zeroes += valid & (delta == 0)
        darker = valid & (delta < min_delta)
        brighter = valid & (delta > max_delta)
        min_delta = np.where(darker, delta, min_delta)
        max_delta = np.where(brighter, delta, max_delta)
        min_at[darker] = index
        max_at[brighter] = index

    candidates = (zeroes <= 2) & (min_delta != 0) & (max_delta != 0)

    flat = many_siblings(pixels) & many_siblings(other)
    offsets = np.array(NEIGHBOUR_OFFSETS)
    ys, xs = np.indices((height, width))

    def flat_at(at):
        nx = np.clip(xs + offsets[at, 0], 0, width - 1)
        ny = np.clip(ys + offsets[at, 1], 0, height - 1)
        return flat[ny, nx]

    return candidates & (flat_at(min_at) | flat_at(max_at))


def diff(a: Bitmap, b: Bitmap, threshold: float = 0.1, include_aa: bool = False,
         alpha: float = 0.1) -> DiffResult:
    """
    Build the difference image of two equally sized bitmaps

    Args:
        a: Reference bitmap
        b: Bitmap to compare against the reference
        threshold: Matching threshold in [0, 1], smaller is more sensitive
        include_aa: Count anti-aliased pixels as different
        alpha: Opacity of the faded copy drawn for unchanged pixels

    Returns:
        DiffResult with the diff bitmap and the number of differing pixels
    """
    if a.size != b.size:
        raise DimensionMismatchError(a.size, b.size)
    if not 0.0 <= threshold <= 1.0:
        raise ValueError(f"threshold must be within [0, 1], got {threshold}")

    first = np.asarray(a.pixels)
    second = np.asarray(b.pixels)
    max_delta = MAX_YIQ_DELTA * threshold * threshold

    delta = color_delta(first, second)
    over = np.abs(delta) > max_delta

    if include_aa or not over.any():
        aa = np.zeros(over.shape, dtype=bool)
    else:
        aa = over & (antialiased_mask(first, second) | antialiased_mask(second, first))
    different = over & ~aa

    rgba = first.astype(np.float64)
    grey = _blend(_rgb2y(rgba[..., 0], rgba[..., 1], rgba[..., 2]), alpha * rgba[..., 3] / 255.0)
    grey = np.clip(np.floor(grey), 0, 255).astype(np.uint8)

    output = np.empty_like(first)
    output[..., 0] = grey
    output[..., 1] = grey
    output[..., 2] = grey
    output[..., 3] = 255
    output[aa, :3] = AA_COLOR
    output[different, :3] = DIFF_COLOR

    diff_count = int(np.count_nonzero(different))
    aa_count = int(np.count_nonzero(aa))
    logger.debug(f"Diff {a.width}x{a.height}: {diff_count} different, {aa_count} anti-aliased "
                 f"(threshold={threshold}, include_aa={include_aa})")

    return DiffResult(image=Bitmap.from_array(output), diff_count=diff_count, aa_count=aa_count)
