"""Background color model sampled from the corners of the original photo."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Dict, List, Tuple

import numpy as np

from .config import BG_CORNER_CHOICES, DEFAULT_BG_CORNERS, DEFAULT_BG_SAMPLE_SIZE
from .raster import ensure_rgba

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BackgroundColorModel:
    color: Tuple[int, int, int]  # mean RGB, rounded
    luminosity: float  # mean (R+G+B)/3

    def as_dict(self) -> Dict[str, int]:
        r, g, b = self.color
        return {"r": r, "g": g, "b": b}

    def distance(self, rgb: np.ndarray) -> np.ndarray:
        """Euclidean RGB distance from the background color, per pixel."""
        return color_distance(rgb, self.color)

    def is_background(self, rgb: np.ndarray, threshold: float) -> np.ndarray:
        return self.distance(rgb) < float(threshold)


def color_distance(rgb: np.ndarray, color: Tuple[int, int, int]) -> np.ndarray:
    diff = rgb[..., :3].astype(np.float32) - np.asarray(color, dtype=np.float32)
    return np.sqrt(np.sum(diff * diff, axis=-1))


def _corner_blocks(original: np.ndarray, size: int, corners: str) -> List[np.ndarray]:
    h, w = original.shape[:2]
    sh, sw = min(size, h), min(size, w)
    top_left = original[:sh, :sw]
    top_right = original[:sh, w - sw :]
    if corners == "top_left":
        return [top_left]
    if corners == "top":
        return [top_left, top_right]
    return [top_left, top_right, original[h - sh :, :sw], original[h - sh :, w - sw :]]


def sample_background(
    original: np.ndarray,
    sample_size: int = DEFAULT_BG_SAMPLE_SIZE,
    corners: str = DEFAULT_BG_CORNERS,
) -> BackgroundColorModel:
    """
    Estimate background color and luminosity from fixed corner blocks.

    Product photos are shot with the subject centered, so the top corners are
    reliably plain backdrop. Blocks are clamped to the image size.
    """
    ensure_rgba(original, "original")
    if sample_size < 1:
        raise ValueError("sample_size must be >= 1")
    if corners not in BG_CORNER_CHOICES:
        raise ValueError(f"corners must be one of {'|'.join(BG_CORNER_CHOICES)}")

    blocks = _corner_blocks(original, sample_size, corners)
    pixels = np.concatenate([b[..., :3].reshape(-1, 3) for b in blocks]).astype(np.float64)
    mean_rgb = pixels.mean(axis=0)
    mean_lum = float((pixels.sum(axis=1) / 3.0).mean())
    color = tuple(int(np.floor(c + 0.5)) for c in mean_rgb)

    model = BackgroundColorModel(color=color, luminosity=mean_lum)
    logger.debug(
        "background: rgb=%s lum=%.1f from %d px (%s corners)",
        model.color,
        model.luminosity,
        len(pixels),
        corners,
    )
    return model
