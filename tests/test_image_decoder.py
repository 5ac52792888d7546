"""Tests for image decoding."""

import base64

import numpy as np
import pytest

from slider_solver.common.errors import DecodeError
from slider_solver.computer_vision.image_decoder import (
    Bitmap,
    decode,
    decode_data_url,
    encode_png,
)

from helpers import png_bytes, solid


class TestBitmap:

    def test_from_array_sets_dimensions(self):
        bitmap = Bitmap.from_array(solid(7, 3))
        assert bitmap.size == (7, 3)
        assert len(bitmap.to_bytes()) == 7 * 3 * 4

    def test_pixels_are_read_only(self):
        bitmap = Bitmap.from_array(solid(4, 4))
        with pytest.raises(ValueError):
            bitmap.pixels[0, 0, 0] = 1

    def test_source_array_is_copied(self):
        source = solid(4, 4)
        bitmap = Bitmap.from_array(source)
        source[0, 0] = (9, 9, 9, 9)
        assert tuple(bitmap.pixels[0, 0]) == (0, 0, 0, 255)

    def test_mismatched_shape_rejected(self):
        with pytest.raises(ValueError):
            Bitmap(width=5, height=5, pixels=solid(4, 5))

    def test_non_positive_dimensions_rejected(self):
        with pytest.raises(ValueError):
            Bitmap(width=0, height=5, pixels=np.zeros((5, 0, 4), dtype=np.uint8))


class TestDecode:

    def test_decodes_png_as_rgba(self):
        pixels = solid(6, 4, (10, 20, 30, 255))
        pixels[1, 2] = (200, 100, 50, 128)

        bitmap = decode(png_bytes(pixels))

        assert bitmap.size == (6, 4)
        assert np.array_equal(bitmap.pixels, pixels)

    def test_rgb_png_gets_opaque_alpha(self):
        rgb = np.full((3, 3, 3), 77, dtype=np.uint8)
        bitmap = decode(png_bytes(rgb))
        assert bitmap.pixels.shape == (3, 3, 4)
        assert np.all(bitmap.pixels[..., 3] == 255)

    def test_empty_buffer(self):
        with pytest.raises(DecodeError):
            decode(b'')

    def test_garbage_buffer(self):
        with pytest.raises(DecodeError):
            decode(b'definitely not an image')

    def test_truncated_png(self):
        data = png_bytes(solid(30, 30, (1, 2, 3, 255)))
        with pytest.raises(DecodeError):
            decode(data[:len(data) // 2])


class TestDataUrl:

    def test_canvas_data_url(self):
        pixels = solid(5, 5, (255, 0, 0, 255))
        url = 'data:image/png;base64,' + base64.b64encode(png_bytes(pixels)).decode()
        bitmap = decode_data_url(url)
        assert np.array_equal(bitmap.pixels, pixels)

    def test_bare_base64_payload(self):
        pixels = solid(2, 2)
        bitmap = decode_data_url(base64.b64encode(png_bytes(pixels)).decode())
        assert bitmap.size == (2, 2)

    def test_invalid_base64(self):
        with pytest.raises(DecodeError):
            decode_data_url('data:image/png;base64,@@not-base64@@')


def test_encode_png_is_lossless():
    pixels = solid(8, 8, (12, 34, 56, 255))
    pixels[4, 4] = (255, 255, 0, 255)
    bitmap = Bitmap.from_array(pixels)
    assert np.array_equal(decode(encode_png(bitmap)).pixels, pixels)
