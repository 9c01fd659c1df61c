"""
Edge hardening: remove the semi-transparent glow left at product boundaries.

Each soft pixel (0 < alpha < 255) becomes fully opaque or fully transparent,
decided by where the product starts in the original photo. Product pixels
are either clearly darker than the backdrop (dark bottle bodies) or slightly
brighter (white labels against a grey sweep), so both bands are checked.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging

import numpy as np

from .background import BackgroundColorModel
from .config import DEFAULT_HARDEN_DARK_OFFSET, DEFAULT_HARDEN_MODE, DEFAULT_HARDEN_THRESHOLD, HARDEN_MODES
from .raster import ensure_rgba, ensure_same_dimensions, luminosity

logger = logging.getLogger(__name__)


@dataclass
class HardenResult:
    pixels_hardened: int
    pixels_cleared: int
    rows_without_product: int
    bg_luminosity: float
    threshold: int
    mode: str


def product_pixels(
    original: np.ndarray,
    background: BackgroundColorModel,
    threshold: int = DEFAULT_HARDEN_THRESHOLD,
    dark_offset: int = DEFAULT_HARDEN_DARK_OFFSET,
) -> np.ndarray:
    """Boolean map of pixels whose luminosity departs from the backdrop."""
    lum = luminosity(original)
    return (lum < background.luminosity - dark_offset) | (lum > background.luminosity + threshold)


def harden_edges(
    image: np.ndarray,
    original: np.ndarray,
    background: BackgroundColorModel,
    threshold: int = DEFAULT_HARDEN_THRESHOLD,
    dark_offset: int = DEFAULT_HARDEN_DARK_OFFSET,
    mode: str = DEFAULT_HARDEN_MODE,
) -> HardenResult:
    """
    Harden soft mask pixels in place.

    left:      soft pixels at or right of the first product pixel become
               opaque, soft pixels left of it become transparent.
    symmetric: the product span runs from the first to the last product
               pixel; soft pixels inside it become opaque, outside transparent.

    Rows where the original shows no product are left as they are. Hard
    pixels are never touched, which makes the stage idempotent.
    """
    ensure_rgba(image, "mask")
    ensure_same_dimensions(image, original)
    if mode not in HARDEN_MODES:
        raise ValueError("mode must be one of left|symmetric")

    width = image.shape[1]
    product = product_pixels(original, background, threshold=threshold, dark_offset=dark_offset)
    has_product = product.any(axis=1)
    start = product.argmax(axis=1)
    if mode == "symmetric":
        end = width - 1 - product[:, ::-1].argmax(axis=1)
    else:
        end = np.full_like(start, width - 1)

    xs = np.arange(width)[None, :]
    inside = (xs >= start[:, None]) & (xs <= end[:, None])
    alpha = image[..., 3]
    soft = (alpha > 0) & (alpha < 255) & has_product[:, None]

    harden = soft & inside
    clear = soft & ~inside
    image[harden, :3] = original[harden, :3]
    alpha[harden] = 255
    alpha[clear] = 0

    result = HardenResult(
        pixels_hardened=int(np.count_nonzero(harden)),
        pixels_cleared=int(np.count_nonzero(clear)),
        rows_without_product=int(np.count_nonzero(~has_product)),
        bg_luminosity=round(background.luminosity, 2),
        threshold=threshold,
        mode=mode,
    )
    logger.info(
        "harden: bg_lum=%.1f threshold=%d mode=%s hardened=%d cleared=%d",
        background.luminosity,
        threshold,
        mode,
        result.pixels_hardened,
        result.pixels_cleared,
    )
    return result
