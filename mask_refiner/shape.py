"""
Bottle/cylinder shape correction.

The remover's mask follows label print and reflections, leaving the sides of
a cylindrical product wavy. This stage forces straight parallel sides through
the body, blends the cap into the body, and tapers the base smoothly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Dict, Optional, Tuple

import numpy as np

from .config import (
    DEFAULT_ACTIVATION_THRESHOLD,
    DEFAULT_BASE_TAPER,
    DEFAULT_BODY_END,
    DEFAULT_BODY_START,
    DEFAULT_CAP_END,
)
from .edges import NO_EDGE, EdgeProfile, extract_edge_profile
from .raster import ensure_rgba, ensure_same_dimensions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShapeRegions:
    cap_end: float = DEFAULT_CAP_END
    body_start: float = DEFAULT_BODY_START
    body_end: float = DEFAULT_BODY_END

    def __post_init__(self) -> None:
        if not (0.0 <= self.cap_end <= self.body_start < self.body_end <= 1.0):
            raise ValueError("regions must satisfy 0 <= cap_end <= body_start < body_end <= 1")

    def rows(self, top_y: int, bottom_y: int) -> Dict[str, Tuple[int, int]]:
        """Inclusive row ranges for each region of the content span."""
        h = bottom_y - top_y
        cap_end = top_y + _round(h * self.cap_end)
        body_start = top_y + _round(h * self.body_start)
        body_end = top_y + _round(h * self.body_end)
        return {
            "cap": (top_y, cap_end - 1),
            "transition": (cap_end, body_start - 1),
            "body": (body_start, body_end),
            "base": (body_end + 1, bottom_y),
        }


@dataclass
class ShapeResult:
    pixels_changed: int = 0
    median_left: int = NO_EDGE
    median_right: int = NO_EDGE
    regions: Dict[str, Tuple[int, int]] = field(default_factory=dict)


def _round(value: float) -> int:
    return int(np.floor(value + 0.5))


def _median(values: np.ndarray) -> int:
    # Upper median keeps the result on an observed pixel column.
    ordered = np.sort(values)
    return int(ordered[len(ordered) // 2])


def correct_profile(
    profile: EdgeProfile,
    regions: ShapeRegions,
    base_taper: float = DEFAULT_BASE_TAPER,
) -> Tuple[np.ndarray, np.ndarray, ShapeResult]:
    """Compute corrected left/right edges without touching pixels."""
    left = profile.left.copy()
    right = profile.right.copy()
    result = ShapeResult()
    if profile.is_empty:
        return left, right, result

    top_y, bottom_y = profile.top_y, profile.bottom_y
    spans = regions.rows(top_y, bottom_y)
    result.regions = spans
    cap_end, body_start = spans["transition"][0], spans["body"][0]
    body_end = spans["body"][1]

    body = slice(body_start, body_end + 1)
    body_left = profile.left[body][profile.left[body] != NO_EDGE]
    body_right = profile.right[body][profile.right[body] != NO_EDGE]
    if body_left.size == 0 or body_right.size == 0:
        return left, right, result

    median_left = _median(body_left)
    median_right = _median(body_right)
    result.median_left, result.median_right = median_left, median_right

    # Straight sides through the body.
    body_rows = np.arange(body_start, body_end + 1)
    left[body_rows[left[body] != NO_EDGE]] = median_left
    right[body_rows[right[body] != NO_EDGE]] = median_right

    # Cap boundary blends linearly into the body.
    span = body_start - cap_end
    cap_left, cap_right = left[cap_end], right[cap_end]
    for y in range(cap_end, body_start):
        t = (y - cap_end) / span
        if left[y] != NO_EDGE and cap_left != NO_EDGE:
            left[y] = _round(cap_left + t * (median_left - cap_left))
        if right[y] != NO_EDGE and cap_right != NO_EDGE:
            right[y] = _round(cap_right + t * (median_right - cap_right))

    # Base curves inward toward the body's center.
    center = (median_left + median_right) / 2.0
    base_span = bottom_y - body_end
    for y in range(body_end + 1, bottom_y + 1):
        t = (y - body_end) / base_span
        if left[y] != NO_EDGE:
            left[y] = _round(median_left + t * (center - median_left) * base_taper)
        if right[y] != NO_EDGE:
            right[y] = _round(median_right + t * (center - median_right) * base_taper)

    return left, right, result


def rebuild_mask(
    image: np.ndarray,
    left: np.ndarray,
    right: np.ndarray,
    original: Optional[np.ndarray] = None,
) -> int:
    """Fill each row between its edges, clear everything else. Returns changed pixel count."""
    height, width = image.shape[:2]
    before = image.copy()
    xs = np.arange(width)[None, :]
    present = ((left != NO_EDGE) & (right != NO_EDGE))[:, None]
    inside = present & (xs >= left[:, None]) & (xs <= right[:, None])

    image[..., 3] = np.where(inside, 255, 0).astype(np.uint8)
    if original is not None:
        image[..., :3] = np.where(inside[..., None], original[..., :3], image[..., :3])
    return int(np.count_nonzero(np.any(image != before, axis=-1)))


def correct_shape(
    image: np.ndarray,
    original: Optional[np.ndarray] = None,
    regions: Optional[ShapeRegions] = None,
    base_taper: float = DEFAULT_BASE_TAPER,
    activation_threshold: int = DEFAULT_ACTIVATION_THRESHOLD,
) -> ShapeResult:
    """
    Enforce bottle geometry on the mask in place.

    A mask with no content, or no content in the body region, is returned
    unchanged.
    """
    ensure_rgba(image, "mask")
    ensure_same_dimensions(image, original)
    if not 0.0 <= base_taper <= 1.0:
        raise ValueError("base_taper must be within 0..1")
    regions = regions or ShapeRegions()

    profile = extract_edge_profile(image[..., 3], activation_threshold)
    left, right, result = correct_profile(profile, regions, base_taper=base_taper)
    if result.median_left == NO_EDGE:
        logger.info("shape: no body content, mask left unchanged")
        return result

    result.pixels_changed = rebuild_mask(image, left, right, original)
    logger.info(
        "shape: rows %d-%d median_left=%d median_right=%d changed=%d",
        profile.top_y,
        profile.bottom_y,
        result.median_left,
        result.median_right,
        result.pixels_changed,
    )
    return result
