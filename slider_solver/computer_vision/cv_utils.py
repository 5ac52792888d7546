"""
Computer Vision Utility Functions

OpenCV building blocks for the position estimator: grayscale conversion,
thresholding, morphology, contour extraction and region moments.
"""

import math
from typing import Dict, List, Tuple

import cv2
import numpy as np

from ..common.errors import DegenerateRegionError


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """
    Collapse colour channels into a single intensity channel

    Args:
        image: RGBA, RGB or already single-channel image

    Returns:
        Single-channel uint8 image
    """
    if image.ndim == 2:
        return image
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_RGBA2GRAY)
    return cv2.cvtColor(image, cv2.COLOR_RGB2GRAY)


def binarize(image: np.ndarray, threshold: int = 127, inverse: bool = False) -> np.ndarray:
    """
    Fixed-level threshold, applied to every channel independently

    Args:
        image: uint8 image, any channel count
        threshold: Pixels strictly above this become 255 (0 when inverse)
        inverse: Swap foreground and background

    Returns:
        Image with every value in {0, 255}
    """
    mode = cv2.THRESH_BINARY_INV if inverse else cv2.THRESH_BINARY
    _, binary = cv2.threshold(image, threshold, 255, mode)
    return binary


def square_kernel(size: int) -> np.ndarray:
    if size < 1:
        raise ValueError(f"Kernel size must be positive, got {size}")
    return np.ones((size, size), dtype=np.uint8)


def erode(image: np.ndarray, kernel_size: int = 5, iterations: int = 1) -> np.ndarray:
    if iterations <= 0:
        return image
    return cv2.erode(image, square_kernel(kernel_size), anchor=(-1, -1), iterations=iterations)


def dilate(image: np.ndarray, kernel_size: int = 5, iterations: int = 1) -> np.ndarray:
    if iterations <= 0:
        return image
    return cv2.dilate(image, square_kernel(kernel_size), anchor=(-1, -1), iterations=iterations)


def find_external_contours(mask: np.ndarray) -> List[np.ndarray]:
    """
    Outer boundaries of every connected foreground region

    Nested holes are ignored and colinear boundary points are dropped.

    Args:
        mask: Single-channel uint8 image, non-zero pixels are foreground

    Returns:
        Contours in the order OpenCV returns them
    """
    contours, _ = cv2.findContours(mask, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
    return list(contours)


def region_mask(contour: np.ndarray, shape: Tuple[int, int]) -> np.ndarray:
    mask = np.zeros(shape, dtype=np.uint8)
    cv2.drawContours(mask, [contour], -1, 255, thickness=cv2.FILLED)
    return mask


def region_moments(contour: np.ndarray, shape: Tuple[int, int]) -> Dict[str, float]:
    """
    Spatial moments of the area enclosed by a contour

    The contour is rasterised before measuring, so m00 is the pixel count of
    the region rather than the area of the boundary polygon.
    """
    return cv2.moments(region_mask(contour, shape), binaryImage=True)


def centroid(moments: Dict[str, float]) -> Tuple[int, int]:
    m00 = moments['m00']
    if m00 == 0:
        raise DegenerateRegionError("Selected region has zero area, centroid is undefined")
    return math.floor(moments['m10'] / m00), math.floor(moments['m01'] / m00)
