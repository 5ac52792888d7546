"""
Computer Vision Package

Image decoding, perceptual diff and contour based position estimation for
slider puzzle CAPTCHAs.
"""

from .image_decoder import Bitmap, decode, decode_data_url, encode_png
from .pixel_diff import DiffResult, diff
from .position_estimator import (
    Position,
    MorphPipeline,
    RegionSelection,
    Grayscale,
    Threshold,
    Erode,
    Dilate,
    piece_pipeline,
    gap_pipeline,
    run_pipeline,
    estimate
)

__all__ = [
    'Bitmap',
    'decode',
    'decode_data_url',
    'encode_png',
    'DiffResult',
    'diff',
    'Position',
    'MorphPipeline',
    'RegionSelection',
    'Grayscale',
    'Threshold',
    'Erode',
    'Dilate',
    'piece_pipeline',
    'gap_pipeline',
    'run_pipeline',
    'estimate'
]
