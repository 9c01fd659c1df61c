"""
Batch processing of many product photos.

Each image is independent: it gets its own buffers, its own background model
and its own pipeline, so items can run in separate worker processes without
coordination. Storage and queuing stay with the caller.
"""

from __future__ import annotations

from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

import requests

from . import config
from .pipeline import prepare_image
from .remover import BackgroundRemover

logger = logging.getLogger(__name__)

RemoverFactory = Callable[[], BackgroundRemover]


@dataclass
class BatchItem:
    source: str
    sku: str
    angle: str = "front"


def _process_item(
    item: BatchItem,
    remover_factory: RemoverFactory,
    settings: config.Settings,
    shape_correction: bool,
) -> Dict[str, Any]:
    logger.info("Processing batch item source=%s sku=%s angle=%s", item.source, item.sku, item.angle)
    try:
        return prepare_image(
            item.source,
            sku=item.sku,
            angle=item.angle,
            remover=remover_factory(),
            settings=settings,
            shape_correction=shape_correction,
        )
    except (FileNotFoundError, ValueError, RuntimeError, requests.RequestException) as exc:
        logger.error("Batch item %s-%s failed: %s", item.sku, item.angle, exc)
        return {"success": False, "sku": item.sku, "angle": item.angle, "error": str(exc)}


def process_batch(
    items: Iterable[BatchItem],
    remover_factory: RemoverFactory,
    settings: Optional[config.Settings] = None,
    max_workers: int = 1,
    shape_correction: bool = True,
) -> List[Dict[str, Any]]:
    """
    Process a batch of images and return one result dict per item, in input
    order. With `max_workers > 1` items run in a process pool; the factory
    and settings must then be picklable (module-level functions are).
    """
    settings = settings or config.get_settings()
    items = list(items)
    if max_workers <= 1:
        return [_process_item(item, remover_factory, settings, shape_correction) for item in items]

    with ProcessPoolExecutor(max_workers=max_workers) as pool:
        futures = [
            pool.submit(_process_item, item, remover_factory, settings, shape_correction)
            for item in items
        ]
        return [future.result() for future in futures]
