"""
Turn the remover's probabilistic alpha into a decisive foreground mask.

Aggressiveness maps linearly onto a confidence cutoff:
 - 1   keeps pixels with >5% confidence (very permissive)
 - 50  keeps pixels with >50% confidence (balanced)
 - 100 keeps only pixels with >95% confidence (strict)
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Optional

import numpy as np

from .config import ALPHA_MODES, DEFAULT_ALPHA_MODE
from .raster import ensure_rgba, ensure_same_dimensions

logger = logging.getLogger(__name__)


@dataclass
class ThresholdResult:
    threshold_value: int
    mode: str
    pixels_cleared: int
    foreground_pixels: int


def threshold_value(aggressiveness: int) -> int:
    if not 1 <= aggressiveness <= 100:
        raise ValueError("aggressiveness must be within 1..100")
    threshold = float(np.clip(aggressiveness / 100.0 * 0.9 + 0.05, 0.05, 0.95))
    # Round half up so 127.5 lands on 128.
    return int(np.floor(threshold * 255.0 + 0.5))


def apply_threshold(
    cutout: np.ndarray,
    aggressiveness: int,
    mode: str = DEFAULT_ALPHA_MODE,
    original: Optional[np.ndarray] = None,
) -> ThresholdResult:
    """
    Threshold the cutout's alpha in place.

    soft:   alpha below the cutoff becomes 0, the rest keeps its value and the
            cutout's own colors.
    binary: alpha below the cutoff becomes 0, the rest becomes 255, and RGB
            everywhere is taken from the original photo.
    """
    ensure_rgba(cutout, "cutout")
    if mode not in ALPHA_MODES:
        raise ValueError("mode must be one of soft|binary")
    if mode == "binary":
        if original is None:
            raise ValueError("binary mode requires the original image")
        ensure_same_dimensions(cutout, original)
    tv = threshold_value(aggressiveness)

    alpha = cutout[..., 3]
    below = alpha < tv
    pixels_cleared = int(np.count_nonzero(below & (alpha > 0)))
    alpha[below] = 0
    if mode == "binary":
        alpha[~below] = 255
        cutout[..., :3] = original[..., :3]

    foreground = int(np.count_nonzero(alpha))
    logger.info(
        "threshold: aggressiveness=%d value=%d mode=%s cleared=%d foreground=%d",
        aggressiveness,
        tv,
        mode,
        pixels_cleared,
        foreground,
    )
    return ThresholdResult(
        threshold_value=tv,
        mode=mode,
        pixels_cleared=pixels_cleared,
        foreground_pixels=foreground,
    )
