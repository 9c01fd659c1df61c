from __future__ import annotations

import numpy as np

BACKDROP = (230, 230, 230)
PRODUCT = (40, 40, 40)


def solid(height: int, width: int, rgb=BACKDROP, alpha: int = 255) -> np.ndarray:
    img = np.zeros((height, width, 4), dtype=np.uint8)
    img[..., :3] = rgb
    img[..., 3] = alpha
    return img


def bottle_original(height: int = 120, width: int = 200, x0: int = 60, x1: int = 140, y0: int = 25, y1: int = 110):
    """Light grey backdrop with a dark product block in [x0,x1) x [y0,y1)."""
    img = solid(height, width)
    img[y0:y1, x0:x1, :3] = PRODUCT
    return img


def mask_from_original(original: np.ndarray, x0: int, x1: int, y0: int, y1: int, alpha: int = 255) -> np.ndarray:
    mask = original.copy()
    mask[..., 3] = 0
    mask[y0:y1, x0:x1, 3] = alpha
    return mask
