"""
Reflect a clean mask edge onto a damaged one about a vertical center line.

Symmetric products often come back from the remover with one crisp side and
one ragged side. Mirroring is authoritative for the target side: anything
opaque beyond the mirrored edge is cleared.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Optional

import numpy as np

from .config import DEFAULT_ACTIVATION_THRESHOLD
from .raster import ensure_rgba, ensure_same_dimensions

logger = logging.getLogger(__name__)

SIDES = ("left", "right")


@dataclass
class MirrorResult:
    pixels_changed: int
    rows_mirrored: int
    rows_skipped: int
    source_side: str
    target_side: str
    center: int


def _source_edge(alpha_row: np.ndarray, center: int, side: str, threshold: int) -> int:
    """Scan from the source side toward the center; -1 when nothing is found."""
    if side == "right":
        hits = np.flatnonzero(alpha_row[center:] > threshold)
        return int(center + hits[-1]) if hits.size else -1
    hits = np.flatnonzero(alpha_row[: center + 1] > threshold)
    return int(hits[0]) if hits.size else -1


def mirror_edge(
    image: np.ndarray,
    original: np.ndarray,
    center: int,
    source_side: str,
    target_side: Optional[str] = None,
    row_from: int = 0,
    row_to: Optional[int] = None,
    activation_threshold: int = DEFAULT_ACTIVATION_THRESHOLD,
) -> MirrorResult:
    """Mirror `source_side` onto the opposite side for rows [row_from, row_to)."""
    ensure_rgba(image, "mask")
    ensure_same_dimensions(image, original)
    height, width = image.shape[:2]

    if source_side not in SIDES:
        raise ValueError("source_side must be left or right")
    target_side = target_side or ("left" if source_side == "right" else "right")
    if target_side not in SIDES or target_side == source_side:
        raise ValueError("target_side must be the side opposite source_side")
    if not 0 <= center < width:
        raise ValueError(f"center {center} outside image width {width}")
    row_to = height if row_to is None else min(row_to, height)
    row_from = max(row_from, 0)
    if row_from > row_to:
        raise ValueError("row_from must not exceed row_to")

    changed = 0
    mirrored = 0
    skipped = 0
    for y in range(row_from, row_to):
        row = image[y]
        source = _source_edge(row[:, 3], center, source_side, activation_threshold)
        if source < 0:
            skipped += 1
            continue

        before = row.copy()
        distance = abs(source - center)
        if target_side == "left":
            target = center - distance
            lo, hi = max(target, 0), center
            row[:max(target, 0), 3] = 0
        else:
            target = center + distance
            lo, hi = center, min(target, width - 1)
            row[hi + 1 :, 3] = 0
        row[lo : hi + 1, :3] = original[y, lo : hi + 1, :3]
        row[lo : hi + 1, 3] = 255

        changed += int(np.count_nonzero(np.any(row != before, axis=-1)))
        mirrored += 1

    logger.info(
        "mirror: %s -> %s about x=%d rows %d-%d mirrored=%d skipped=%d changed=%d",
        source_side,
        target_side,
        center,
        row_from,
        row_to,
        mirrored,
        skipped,
        changed,
    )
    return MirrorResult(
        pixels_changed=changed,
        rows_mirrored=mirrored,
        rows_skipped=skipped,
        source_side=source_side,
        target_side=target_side,
        center=center,
    )
