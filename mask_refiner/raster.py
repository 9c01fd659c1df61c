"""
Raster loading, validation and checkpoint writes.

A raster is an RGBA `uint8` array of shape (height, width, 4). Every tool
loads its inputs here so that missing files and dimension mismatches are
rejected before any pixel work begins.
"""

from __future__ import annotations

from io import BytesIO
import logging
import os
from pathlib import Path
import tempfile
from typing import Optional, Tuple, Union

import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class DimensionMismatchError(ValueError):
    """Mask and original do not share the same width and height."""


def image_to_rgba(image: Image.Image) -> np.ndarray:
    """Convert a PIL image to a writable RGBA uint8 array."""
    return np.array(image.convert("RGBA"), dtype=np.uint8)


def rgba_to_image(rgba: np.ndarray) -> Image.Image:
    return Image.fromarray(np.ascontiguousarray(rgba, dtype=np.uint8), mode="RGBA")


def decode_rgba(image_bytes: bytes) -> np.ndarray:
    try:
        image = Image.open(BytesIO(image_bytes))
        image.load()
    except Exception as exc:  # noqa: BLE001
        raise ValueError("Invalid image data") from exc
    return image_to_rgba(image)


def load_rgba(path: PathLike) -> np.ndarray:
    """Read an image file as RGBA, failing fast on missing or unreadable files."""
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Image file not found: {path}")
    try:
        with Image.open(path) as image:
            rgba = image_to_rgba(image)
    except (OSError, Image.DecompressionBombError) as exc:
        raise ValueError(f"Invalid image data: {path}") from exc
    logger.debug("loaded %s (%dx%d)", path, rgba.shape[1], rgba.shape[0])
    return rgba


def dimensions(rgba: np.ndarray) -> Tuple[int, int]:
    """Return (width, height)."""
    return int(rgba.shape[1]), int(rgba.shape[0])


def ensure_rgba(rgba: np.ndarray, name: str = "image") -> None:
    if rgba.ndim != 3 or rgba.shape[2] != 4 or rgba.dtype != np.uint8:
        raise ValueError(f"Expected {name} as uint8 RGBA (H,W,4), got {rgba.dtype} {rgba.shape}")


def ensure_same_dimensions(mask: np.ndarray, original: Optional[np.ndarray]) -> None:
    """Precondition check run before any stage mutates the mask."""
    if original is None:
        return
    if mask.shape[:2] != original.shape[:2]:
        mw, mh = dimensions(mask)
        ow, oh = dimensions(original)
        raise DimensionMismatchError(
            f"Original dimensions ({ow}x{oh}) don't match mask ({mw}x{mh})"
        )


def load_pair(mask_path: PathLike, original_path: Optional[PathLike] = None) -> Tuple[np.ndarray, Optional[np.ndarray]]:
    """Load a mask and its optional original, checking both before returning."""
    mask = load_rgba(mask_path)
    original = load_rgba(original_path) if original_path is not None else None
    ensure_same_dimensions(mask, original)
    return mask, original


def save_rgba_atomic(rgba: np.ndarray, path: PathLike) -> Path:
    """
    Write an RGBA PNG in one shot.

    The image is encoded to a temporary file next to the target and moved
    into place, so an interrupted write leaves the previous checkpoint intact.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.stem}-", suffix=".png", dir=str(path.parent))
    try:
        with os.fdopen(fd, "wb") as fh:
            rgba_to_image(rgba).save(fh, format="PNG", optimize=False)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
    logger.debug("wrote checkpoint %s", path)
    return path


def luminosity(rgb: np.ndarray) -> np.ndarray:
    """Per-pixel (R+G+B)/3 as float32."""
    return rgb[..., :3].astype(np.float32).sum(axis=-1) / 3.0
