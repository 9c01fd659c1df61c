"""Per-row leftmost/rightmost foreground coordinates of an alpha mask."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

NO_EDGE = -1


@dataclass(frozen=True)
class EdgeProfile:
    left: np.ndarray  # (height,) int, NO_EDGE for empty rows
    right: np.ndarray
    top_y: int
    bottom_y: int

    @property
    def height(self) -> int:
        return int(self.left.shape[0])

    @property
    def is_empty(self) -> bool:
        return self.top_y == NO_EDGE

    def content_rows(self) -> np.ndarray:
        return np.flatnonzero(self.left != NO_EDGE)


def extract_edge_profile(alpha: np.ndarray, threshold: int) -> EdgeProfile:
    """
    Scan every row for the first and last pixel with alpha strictly above
    `threshold`. The profile is a snapshot: recompute it after any stage that
    mutates the mask.
    """
    if alpha.ndim == 3:
        alpha = alpha[..., 3]
    if alpha.ndim != 2:
        raise ValueError(f"Expected 2D alpha, got shape={alpha.shape}")

    width = alpha.shape[1]
    active = alpha > threshold
    has_content = active.any(axis=1)

    left = np.where(has_content, active.argmax(axis=1), NO_EDGE).astype(np.int64)
    right = np.where(has_content, width - 1 - active[:, ::-1].argmax(axis=1), NO_EDGE).astype(np.int64)

    rows = np.flatnonzero(has_content)
    top_y = int(rows[0]) if rows.size else NO_EDGE
    bottom_y = int(rows[-1]) if rows.size else NO_EDGE
    return EdgeProfile(left=left, right=right, top_y=top_y, bottom_y=bottom_y)
