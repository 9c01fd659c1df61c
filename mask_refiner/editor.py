"""
Targeted, explicitly parameterized mask edits.

This is the manual escape hatch for when automatic stages get an edge wrong:
an operator (or agent) reviews the on-black view and names exact columns,
rows and rectangles. Fills take their colors from the original photo and
skip pixels the original shows as backdrop, so a generous rectangle cannot
paint background as product.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import List, Optional

import numpy as np

from .background import BackgroundColorModel
from .config import DEFAULT_BG_DISTANCE_THRESHOLD, DEFAULT_BLEND_ZONE
from .raster import ensure_rgba, ensure_same_dimensions

logger = logging.getLogger(__name__)

WHITE = np.array([255, 255, 255], dtype=np.uint8)


@dataclass
class EditResult:
    operation: str
    pixels_changed: int = 0
    pixels_skipped_background: int = 0


class MaskEditor:
    """
    Applies edits in place to `image`.

    Row ranges are inclusive and clipped to the image, matching the ranges
    reported by `analysis.check_issues`.
    """

    def __init__(
        self,
        image: np.ndarray,
        original: Optional[np.ndarray] = None,
        background: Optional[BackgroundColorModel] = None,
        blend_zone: int = DEFAULT_BLEND_ZONE,
        bg_threshold: float = DEFAULT_BG_DISTANCE_THRESHOLD,
        activation_threshold: int = 0,
    ) -> None:
        ensure_rgba(image, "mask")
        ensure_same_dimensions(image, original)
        if blend_zone < 0:
            raise ValueError("blend_zone must be >= 0")
        self.image = image
        self.original = original
        self.background = background if original is not None else None
        self.blend_zone = int(blend_zone)
        self.bg_threshold = float(bg_threshold)
        self.activation_threshold = activation_threshold
        self.height, self.width = image.shape[:2]
        self.results: List[EditResult] = []

        if original is not None and self.background is not None:
            self._background_map = self.background.is_background(original, self.bg_threshold)
        else:
            self._background_map = None

    @property
    def pixels_changed(self) -> int:
        return sum(r.pixels_changed for r in self.results)

    @property
    def pixels_skipped_background(self) -> int:
        return sum(r.pixels_skipped_background for r in self.results)

    def _rows(self, row_from: int, row_to: int) -> range:
        if row_from > row_to:
            raise ValueError("row_from must not exceed row_to")
        return range(max(row_from, 0), min(row_to, self.height - 1) + 1)

    def _fill(self, y0: int, y1: int, x0: int, x1: int, result: EditResult) -> None:
        """Fill the inclusive block, skipping backdrop pixels of the original."""
        x0, x1 = max(x0, 0), min(x1, self.width - 1)
        y0, y1 = max(y0, 0), min(y1, self.height - 1)
        if x0 > x1 or y0 > y1:
            return
        block = self.image[y0 : y1 + 1, x0 : x1 + 1]
        before = block.copy()
        if self._background_map is not None:
            paint = ~self._background_map[y0 : y1 + 1, x0 : x1 + 1]
        else:
            paint = np.ones(block.shape[:2], dtype=bool)

        if self.original is not None:
            block[paint, :3] = self.original[y0 : y1 + 1, x0 : x1 + 1][paint, :3]
        else:
            block[paint, :3] = WHITE
        block[paint, 3] = 255

        result.pixels_skipped_background += int(np.count_nonzero(~paint))
        result.pixels_changed += int(np.count_nonzero(np.any(block != before, axis=-1)))

    def _clear(self, y0: int, y1: int, x0: int, x1: int, result: EditResult) -> None:
        x0, x1 = max(x0, 0), min(x1, self.width - 1)
        y0, y1 = max(y0, 0), min(y1, self.height - 1)
        if x0 > x1 or y0 > y1:
            return
        alpha = self.image[y0 : y1 + 1, x0 : x1 + 1, 3]
        result.pixels_changed += int(np.count_nonzero(alpha))
        alpha[...] = 0

    def _edges(self, y: int):
        hits = np.flatnonzero(self.image[y, :, 3] > self.activation_threshold)
        if not hits.size:
            return -1, -1
        return int(hits[0]), int(hits[-1])

    def _finish(self, result: EditResult) -> EditResult:
        self.results.append(result)
        logger.info(
            "edit %s: changed=%d skipped_background=%d",
            result.operation,
            result.pixels_changed,
            result.pixels_skipped_background,
        )
        return result

    def set_left_edge(self, x: int, row_from: int, row_to: int) -> EditResult:
        """
        Move the left edge of each row to `x`.

        Extending fills from `x` through `blend_zone` pixels past the old edge
        to overwrite its soft transition; retracting clears the vacated span.
        Empty rows are left alone.
        """
        result = EditResult(operation="left_edge")
        for y in self._rows(row_from, row_to):
            current, _ = self._edges(y)
            if current < 0:
                continue
            if current > x:
                self._fill(y, y, x, current + self.blend_zone, result)
            elif current < x:
                self._clear(y, y, current, x - 1, result)
        return self._finish(result)

    def set_right_edge(self, x: int, row_from: int, row_to: int) -> EditResult:
        """Mirror image of `set_left_edge` for the right side of each row."""
        result = EditResult(operation="right_edge")
        for y in self._rows(row_from, row_to):
            _, current = self._edges(y)
            if current < 0:
                continue
            if current < x:
                self._fill(y, y, current - self.blend_zone, x, result)
            elif current > x:
                self._clear(y, y, x + 1, current, result)
        return self._finish(result)

    def fill_rect(self, x1: int, y1: int, x2: int, y2: int) -> EditResult:
        result = EditResult(operation="fill_rect")
        self._fill(min(y1, y2), max(y1, y2), min(x1, x2), max(x1, x2), result)
        return self._finish(result)

    def clear_rect(self, x1: int, y1: int, x2: int, y2: int) -> EditResult:
        result = EditResult(operation="clear_rect")
        self._clear(min(y1, y2), max(y1, y2), min(x1, x2), max(x1, x2), result)
        return self._finish(result)
