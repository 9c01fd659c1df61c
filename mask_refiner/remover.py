"""
Boundary to the AI background-removal model.

The pipeline treats the model as an opaque function: image in, RGBA cutout
with probabilistic alpha and the same dimensions out. `rembg_remover` adapts
the rembg library to that contract; any other callable works as well.

The rembg session:
 - is created on first use for a given model name,
 - is kept for the lifetime of the process,
 - is shared by every call in that process.
"""

from __future__ import annotations

import logging
from threading import Lock
from typing import Any, Callable, Dict

from PIL import Image

logger = logging.getLogger(__name__)

BackgroundRemover = Callable[[Image.Image], Image.Image]

_SESSIONS: Dict[str, Any] = {}
_LOCK = Lock()


def validate_cutout(original: Image.Image, cutout: Image.Image) -> Image.Image:
    """Enforce the collaborator contract and return the cutout as RGBA."""
    if cutout.size != original.size:
        raise ValueError(
            f"Remover returned {cutout.size[0]}x{cutout.size[1]}, "
            f"expected {original.size[0]}x{original.size[1]}"
        )
    return cutout.convert("RGBA")


def _get_session(model_name: str):
    session = _SESSIONS.get(model_name)
    if session is not None:
        return session

    with _LOCK:
        if model_name not in _SESSIONS:
            from rembg import new_session

            logger.info("Creating rembg session for model %s", model_name)
            _SESSIONS[model_name] = new_session(model_name)
    return _SESSIONS[model_name]


def rembg_remover(model_name: str) -> BackgroundRemover:
    """Return a remover backed by a cached rembg session (requires the `ai` extra)."""

    def remove_background(image: Image.Image) -> Image.Image:
        from rembg import remove

        session = _get_session(model_name)
        result = remove(image.convert("RGB"), session=session)
        if not isinstance(result, Image.Image):
            raise RuntimeError("rembg returned an unexpected result type")
        return result

    return remove_background
