"""Tests for the perceptual pixel diff."""

import numpy as np
import pytest

from slider_solver.common.errors import DimensionMismatchError
from slider_solver.computer_vision.image_decoder import Bitmap
from slider_solver.computer_vision.pixel_diff import antialiased_mask, color_delta, diff, many_siblings
from slider_solver.computer_vision.position_estimator import gap_pipeline, run_pipeline

from helpers import antialiased_at, solid

WHITE = (255, 255, 255, 255)
BLACK = (0, 0, 0, 255)


def _edge_images():
    """Black/white halves; the second image softens the edge with a grey column."""
    first = solid(10, 10, BLACK)
    first[:, 5:] = WHITE
    second = first.copy()
    second[:, 5] = (128, 128, 128, 255)
    return Bitmap.from_array(first), Bitmap.from_array(second)


class TestColorDelta:

    def test_identical_pixels_are_zero(self):
        pixel = np.array([12, 200, 7, 255], dtype=np.uint8)
        assert color_delta(pixel, pixel) == 0
        assert color_delta(pixel, pixel, y_only=True) == 0

    def test_sign_follows_brightness(self):
        white = np.array(WHITE, dtype=np.uint8)
        black = np.array(BLACK, dtype=np.uint8)
        assert color_delta(white, black) < 0
        assert color_delta(black, white) > 0

    def test_black_white_is_brightness_only(self):
        white = np.array(WHITE, dtype=np.uint8)
        black = np.array(BLACK, dtype=np.uint8)
        assert color_delta(black, white) == pytest.approx(0.5053 * 255 ** 2, rel=1e-3)

    def test_transparent_pixel_blends_to_white(self):
        transparent = np.array([0, 0, 0, 0], dtype=np.uint8)
        white = np.array(WHITE, dtype=np.uint8)
        assert color_delta(transparent, white) == pytest.approx(0)


class TestDiff:

    @pytest.mark.parametrize('threshold', [0.0, 0.1, 0.5, 1.0])
    def test_identical_bitmaps_have_no_difference(self, white_bitmap, threshold):
        result = diff(white_bitmap, white_bitmap, threshold=threshold)
        assert result.diff_count == 0
        assert not np.any(np.all(result.image.pixels == (255, 0, 0, 255), axis=-1))

    def test_single_changed_pixel(self):
        """One black pixel on white is the only red pixel and survives the gap mask."""
        a = Bitmap.from_array(solid(10, 10, WHITE))
        changed = solid(10, 10, WHITE)
        changed[5, 5] = BLACK
        b = Bitmap.from_array(changed)

        result = diff(a, b, threshold=0.1, include_aa=False)

        assert result.diff_count == 1
        red = np.all(result.image.pixels == (255, 0, 0, 255), axis=-1)
        assert list(zip(*np.nonzero(red))) == [(5, 5)]

        mask = run_pipeline(result.image, gap_pipeline(iterations=0))
        assert list(zip(*np.nonzero(mask))) == [(5, 5)]

    def test_unchanged_pixels_are_faded(self):
        a = Bitmap.from_array(solid(4, 4, BLACK))
        result = diff(a, a)
        assert result.image.size == (4, 4)
        assert np.all(result.image.pixels[..., :3] >= 229)
        assert np.all(result.image.pixels[..., 3] == 255)

    def test_dimension_mismatch(self):
        a = Bitmap.from_array(solid(10, 10))
        b = Bitmap.from_array(solid(10, 11))
        with pytest.raises(DimensionMismatchError) as exc_info:
            diff(a, b)
        assert exc_info.value.first_size == (10, 10)
        assert exc_info.value.second_size == (10, 11)

    @pytest.mark.parametrize('threshold', [-0.1, 1.5])
    def test_threshold_out_of_range(self, white_bitmap, threshold):
        with pytest.raises(ValueError):
            diff(white_bitmap, white_bitmap, threshold=threshold)

    def test_small_change_below_threshold(self):
        a = Bitmap.from_array(solid(6, 6, (100, 100, 100, 255)))
        b = Bitmap.from_array(solid(6, 6, (103, 100, 100, 255)))
        assert diff(a, b, threshold=0.1).diff_count == 0
        assert diff(a, b, threshold=0.0).diff_count == 36


class TestAntialiasing:

    def test_softened_edge_is_detected(self):
        first, second = _edge_images()
        assert antialiased_mask(second.pixels, first.pixels)[4, 5]
        assert not antialiased_mask(first.pixels, second.pixels)[4, 5]
        assert np.all(antialiased_mask(second.pixels, first.pixels)[:, 5])

    def test_antialiased_pixels_are_ignored_by_default(self):
        first, second = _edge_images()
        result = diff(first, second, threshold=0.1)

        assert result.diff_count == 0
        assert result.aa_count == 10
        yellow = np.all(result.image.pixels == (255, 255, 0, 255), axis=-1)
        assert np.all(yellow[:, 5])

    def test_include_aa_counts_them_as_different(self):
        first, second = _edge_images()
        result = diff(first, second, threshold=0.1, include_aa=True)
        assert result.diff_count == 10
        assert result.aa_count == 0

    @pytest.mark.parametrize('seed', [3, 11, 42])
    def test_mask_matches_pixel_by_pixel_check(self, seed):
        """Whole-image detection agrees with checking every pixel on its own."""
        rng = np.random.default_rng(seed)
        palette = np.array([BLACK, WHITE, (128, 128, 128, 255), (200, 60, 20, 255)], dtype=np.uint8)
        first = palette[rng.integers(0, 2, size=(14, 11))]
        second = palette[rng.integers(0, 4, size=(14, 11))]

        mask = antialiased_mask(second, first)
        expected = np.array([[antialiased_at(second, x, y, first) for x in range(11)] for y in range(14)])

        assert np.array_equal(mask, expected)

    def test_siblings_count_the_border(self):
        pixels = solid(3, 3, WHITE)
        pixels[1, 1] = BLACK
        siblings = many_siblings(pixels)
        assert siblings[0, 0]
        assert not siblings[1, 1]

    def test_every_pixel_different_on_canvas_sized_images(self):
        rng = np.random.default_rng(0)
        a = Bitmap.from_array(rng.integers(0, 256, size=(160, 260, 4), dtype=np.uint8))
        b = Bitmap.from_array(rng.integers(0, 256, size=(160, 260, 4), dtype=np.uint8))

        result = diff(a, b, threshold=0.2)

        assert result.image.size == (260, 160)
        assert result.diff_count + result.aa_count == np.count_nonzero(
            np.abs(color_delta(a.pixels, b.pixels)) > 35215 * 0.2 ** 2)
