"""
Final output composition: trim to content, scale onto a padded square
transparent canvas, and the on-black review render.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Optional, Tuple, Union

import numpy as np
from PIL import Image

from .config import DEFAULT_PADDING, DEFAULT_TARGET_SIZE
from .raster import rgba_to_image

logger = logging.getLogger(__name__)

ImageLike = Union[np.ndarray, Image.Image]


@dataclass(frozen=True)
class CropMeta:
    x0: int
    y0: int
    x1: int
    y1: int


def _as_image(image: ImageLike) -> Image.Image:
    if isinstance(image, np.ndarray):
        return rgba_to_image(image)
    return image.convert("RGBA")


def content_bbox(image: Image.Image) -> Optional[CropMeta]:
    """Bounding box (exclusive x1/y1) of pixels with alpha > 0."""
    bbox = image.getchannel("A").getbbox()
    if bbox is None:
        return None
    return CropMeta(*bbox)


def _scaled_size(width: int, height: int, target_size: int, padding: float) -> Tuple[int, int]:
    max_dim = target_size * (1.0 - 2.0 * padding)
    scale = min(max_dim / width, max_dim / height)
    new_w = max(1, int(np.floor(width * scale + 0.5)))
    new_h = max(1, int(np.floor(height * scale + 0.5)))
    return new_w, new_h


def composite_to_canvas(
    image: ImageLike,
    target_size: int = DEFAULT_TARGET_SIZE,
    padding: float = DEFAULT_PADDING,
) -> Image.Image:
    """
    Trim to content, scale to fit inside the padded square, and center on a
    transparent `target_size` x `target_size` canvas.
    """
    if target_size <= 0:
        raise ValueError("target_size must be > 0")
    if not 0.0 <= padding < 0.5:
        raise ValueError("padding must be within [0, 0.5)")

    img = _as_image(image)
    canvas = Image.new("RGBA", (target_size, target_size), (0, 0, 0, 0))
    crop = content_bbox(img)
    if crop is None:
        logger.warning("composite: image has no visible content, returning empty canvas")
        return canvas

    trimmed = img.crop((crop.x0, crop.y0, crop.x1, crop.y1))
    new_w, new_h = _scaled_size(trimmed.width, trimmed.height, target_size, padding)
    resized = trimmed.resize((new_w, new_h), Image.LANCZOS)

    offset = ((target_size - new_w) // 2, (target_size - new_h) // 2)
    canvas.paste(resized, offset)
    logger.info(
        "composite: trimmed %dx%d -> %dx%d on %dpx canvas",
        trimmed.width,
        trimmed.height,
        new_w,
        new_h,
        target_size,
    )
    return canvas


def composite_on_black(image: ImageLike) -> Image.Image:
    """
    Flatten over pure black for inspection.

    Soft fringe pixels show up as a faint glow and ragged edges stand out,
    both of which a white or checkerboard view hides.
    """
    img = _as_image(image)
    black = Image.new("RGBA", img.size, (0, 0, 0, 255))
    return Image.alpha_composite(black, img)


def on_black_path(path: Union[str, Path]) -> Path:
    path = Path(path)
    return path.with_name(f"{path.stem}-on-black.png")
