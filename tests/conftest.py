"""Shared fixtures: synthetic bitmaps and PNG buffers."""

import numpy as np
import pytest

from slider_solver.computer_vision.image_decoder import Bitmap

from helpers import png_bytes, solid


@pytest.fixture
def white_bitmap():
    return Bitmap.from_array(solid(20, 20, (255, 255, 255, 255)))


@pytest.fixture
def textured_background():
    """Smooth gradient background similar to a puzzle photo, 120x60."""
    xs = np.linspace(60, 200, 120, dtype=np.float64)
    ys = np.linspace(40, 120, 60, dtype=np.float64)
    pixels = np.zeros((60, 120, 4), dtype=np.uint8)
    pixels[..., 0] = xs[None, :].astype(np.uint8)
    pixels[..., 1] = ys[:, None].astype(np.uint8)
    pixels[..., 2] = 90
    pixels[..., 3] = 255
    return pixels


@pytest.fixture
def challenge_images(textured_background):
    """
    Reference, puzzle-with-gap and slice images of a synthetic challenge.

    The gap is a 12x12 darkened square covering x 80..91, y 20..31, so its
    centroid is (85, 25). The slice canvas holds a bright 12x12 piece at
    x 4..15, y 20..31 on a transparent background, centroid (9, 25).
    """
    reference = textured_background
    puzzle = reference.copy()
    puzzle[20:32, 80:92, :3] = 20

    piece = np.zeros_like(reference)
    piece[20:32, 4:16] = (230, 230, 230, 255)

    return png_bytes(reference), png_bytes(puzzle), png_bytes(piece)
