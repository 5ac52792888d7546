"""Builders for synthetic bitmaps and PNG buffers, and a pixel by pixel anti-aliasing check."""

import io

import numpy as np
from PIL import Image

from slider_solver.computer_vision.image_decoder import Bitmap
from slider_solver.computer_vision.pixel_diff import color_delta


def solid(width, height, color=(0, 0, 0, 255)):
    pixels = np.zeros((height, width, 4), dtype=np.uint8)
    pixels[...] = color
    return pixels


def square_bitmap(width=10, height=10, x0=3, y0=3, x1=6, y1=6,
                  background=(0, 0, 0, 255), foreground=(255, 255, 255, 255)):
    """Bitmap with a filled rectangle covering x0..x1, y0..y1 inclusive."""
    pixels = solid(width, height, background)
    pixels[y0:y1 + 1, x0:x1 + 1] = foreground
    return Bitmap.from_array(pixels)


def png_bytes(pixels):
    buffer = io.BytesIO()
    Image.fromarray(pixels).save(buffer, format='PNG')
    return buffer.getvalue()


def _neighbourhood(x, y, width, height):
    x0, y0 = max(x - 1, 0), max(y - 1, 0)
    x2, y2 = min(x + 1, width - 1), min(y + 1, height - 1)
    on_edge = x == x0 or x == x2 or y == y0 or y == y2
    neighbours = [(nx, ny) for nx in range(x0, x2 + 1) for ny in range(y0, y2 + 1)
                  if not (nx == x and ny == y)]
    return neighbours, on_edge


def _has_many_siblings(pixels, x, y):
    height, width = pixels.shape[:2]
    neighbours, on_edge = _neighbourhood(x, y, width, height)
    zeroes = 1 if on_edge else 0
    for nx, ny in neighbours:
        if np.array_equal(pixels[y, x], pixels[ny, nx]):
            zeroes += 1
            if zeroes > 2:
                return True
    return False


def antialiased_at(pixels, x, y, other):
    """Pixel by pixel anti-aliasing check, the slow form of antialiased_mask."""
    height, width = pixels.shape[:2]
    neighbours, on_edge = _neighbourhood(x, y, width, height)
    zeroes = 1 if on_edge else 0

    centre = pixels[y, x]
    min_delta = max_delta = 0.0
    min_at = max_at = None

    for nx, ny in neighbours:
        delta = float(color_delta(centre, pixels[ny, nx], y_only=True))
        if delta == 0:
            zeroes += 1
            if zeroes > 2:
                return False
        elif delta < min_delta:
            min_delta = delta
            min_at = (nx, ny)
        elif delta > max_delta:
            max_delta = delta
            max_at = (nx, ny)

    if min_delta == 0 or max_delta == 0:
        return False

    return ((_has_many_siblings(pixels, *min_at) and _has_many_siblings(other, *min_at)) or
            (_has_many_siblings(pixels, *max_at) and _has_many_siblings(other, *max_at)))
