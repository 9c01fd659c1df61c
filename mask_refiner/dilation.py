"""Morphological dilation of the alpha channel to close small mask gaps."""

from __future__ import annotations

import logging

import cv2
import numpy as np

from .config import MAX_DILATE_RADIUS
from .raster import ensure_rgba

logger = logging.getLogger(__name__)


def disk_kernel(radius: int) -> np.ndarray:
    """Every lattice point within Euclidean distance `radius` of the center."""
    yy, xx = np.mgrid[-radius : radius + 1, -radius : radius + 1]
    return (xx * xx + yy * yy <= radius * radius).astype(np.uint8)


def dilate_alpha(alpha: np.ndarray, radius: int) -> np.ndarray:
    """
    Grey-level dilation with a circular structuring element.

    Each output pixel is the max alpha within `radius` of it, so the result
    is never below the input. Cost grows with radius squared; the radius is
    bounded to 0..20.
    """
    if alpha.ndim != 2:
        raise ValueError(f"Expected 2D alpha, got shape={alpha.shape}")
    if not 0 <= radius <= MAX_DILATE_RADIUS:
        raise ValueError(f"radius must be within 0..{MAX_DILATE_RADIUS}")
    if radius == 0:
        return alpha.copy()
    return cv2.dilate(alpha.astype(np.uint8, copy=False), disk_kernel(radius), iterations=1)


def dilate_image(image: np.ndarray, radius: int) -> int:
    """Dilate the mask's alpha in place and return the number of pixels that grew."""
    ensure_rgba(image, "mask")
    dilated = dilate_alpha(image[..., 3], radius)
    changed = int(np.count_nonzero(dilated != image[..., 3]))
    image[..., 3] = dilated
    logger.info("dilate: radius=%d changed=%d", radius, changed)
    return changed
