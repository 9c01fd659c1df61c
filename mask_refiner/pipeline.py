"""
High-level mask refinement pipeline.

`RefinementPipeline` owns one working buffer for one image. The background
model is sampled once from the original at construction and handed to every
stage that needs it. Stages run strictly in sequence on the owned buffer;
`release()` or `composite()` hands the buffer off and ends the pipeline.

`prepare_image` is the end-to-end flow used by the `prepare` tool and batch
workers: source -> remover -> threshold -> shape -> dilate -> composite -> PNG.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, is_dataclass
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import numpy as np
from PIL import Image
from pydantic import BaseModel
import requests

from . import config
from .background import BackgroundColorModel, sample_background
from .compositor import composite_to_canvas
from .dilation import dilate_image
from .editor import MaskEditor
from .hardening import HardenResult, harden_edges
from .mirror import MirrorResult, mirror_edge
from .raster import (
    PathLike,
    decode_rgba,
    ensure_rgba,
    ensure_same_dimensions,
    load_pair,
    rgba_to_image,
    save_rgba_atomic,
)
from .remover import BackgroundRemover, validate_cutout
from .shape import ShapeRegions, ShapeResult, correct_shape
from .thresholding import ThresholdResult, apply_threshold

logger = logging.getLogger(__name__)


@dataclass
class StageReport:
    stage: str
    stats: Dict[str, Any] = field(default_factory=dict)


class ImportRequest(BaseModel):
    """What the upload/import collaborator receives for one finished image."""

    path: str
    sku: str
    angle: str
    thumbnail: bool


Uploader = Callable[[ImportRequest], Dict[str, Any]]


class RefinementPipeline:
    def __init__(
        self,
        image: np.ndarray,
        original: Optional[np.ndarray] = None,
        settings: Optional[config.Settings] = None,
    ) -> None:
        ensure_rgba(image, "mask")
        if original is not None:
            ensure_rgba(original, "original")
        ensure_same_dimensions(image, original)

        self.settings = settings or config.get_settings()
        self.original = original
        self.background: Optional[BackgroundColorModel] = None
        if original is not None:
            self.background = sample_background(
                original,
                sample_size=self.settings.bg_sample_size,
                corners=self.settings.bg_corners,
            )
        self.history: List[StageReport] = []
        self._image: Optional[np.ndarray] = image

    @classmethod
    def from_files(
        cls,
        mask_path: PathLike,
        original_path: Optional[PathLike] = None,
        settings: Optional[config.Settings] = None,
    ) -> "RefinementPipeline":
        mask, original = load_pair(mask_path, original_path)
        return cls(mask, original, settings=settings)

    @property
    def image(self) -> np.ndarray:
        if self._image is None:
            raise RuntimeError("pipeline buffer has already been released")
        return self._image

    def _require_original(self, stage: str) -> np.ndarray:
        if self.original is None:
            raise ValueError(f"{stage} requires the original image")
        return self.original

    def _record(self, stage: str, result: Any) -> Any:
        stats = asdict(result) if is_dataclass(result) else {"result": result}
        self.history.append(StageReport(stage=stage, stats=stats))
        return result

    def threshold(self, aggressiveness: Optional[int] = None, mode: Optional[str] = None) -> ThresholdResult:
        result = apply_threshold(
            self.image,
            aggressiveness=config.resolve(aggressiveness, self.settings.aggressiveness),
            mode=config.resolve(mode, self.settings.alpha_mode),
            original=self.original,
        )
        return self._record("threshold", result)

    def correct_shape(
        self,
        regions: Optional[ShapeRegions] = None,
        base_taper: Optional[float] = None,
    ) -> ShapeResult:
        s = self.settings
        regions = regions or ShapeRegions(
            cap_end=s.shape_cap_end,
            body_start=s.shape_body_start,
            body_end=s.shape_body_end,
        )
        result = correct_shape(
            self.image,
            original=self.original,
            regions=regions,
            base_taper=config.resolve(base_taper, s.shape_base_taper),
            activation_threshold=s.activation_threshold,
        )
        return self._record("shape", result)

    def mirror(
        self,
        center: int,
        source_side: str,
        target_side: Optional[str] = None,
        row_from: int = 0,
        row_to: Optional[int] = None,
    ) -> MirrorResult:
        result = mirror_edge(
            self.image,
            self._require_original("mirror"),
            center=center,
            source_side=source_side,
            target_side=target_side,
            row_from=row_from,
            row_to=row_to,
            activation_threshold=self.settings.activation_threshold,
        )
        return self._record("mirror", result)

    def harden(self, threshold: Optional[int] = None, mode: Optional[str] = None) -> HardenResult:
        original = self._require_original("harden")
        result = harden_edges(
            self.image,
            original,
            self.background,
            threshold=config.resolve(threshold, self.settings.harden_threshold),
            dark_offset=self.settings.harden_dark_offset,
            mode=config.resolve(mode, self.settings.harden_mode),
        )
        return self._record("harden", result)

    def editor(self, blend_zone: Optional[int] = None, bg_threshold: Optional[float] = None) -> MaskEditor:
        """Editor bound to the owned buffer; its results are recorded as they run."""
        editor = MaskEditor(
            self.image,
            original=self.original,
            background=self.background,
            blend_zone=config.resolve(blend_zone, self.settings.blend_zone),
            bg_threshold=config.resolve(bg_threshold, self.settings.bg_distance_threshold),
        )
        self.history.append(StageReport(stage="edit", stats={"results": editor.results}))
        return editor

    def dilate(self, radius: Optional[int] = None) -> int:
        changed = dilate_image(self.image, config.resolve(radius, self.settings.dilate_radius))
        self.history.append(StageReport(stage="dilate", stats={"pixels_changed": changed}))
        return changed

    def checkpoint(self, path: PathLike) -> Path:
        return save_rgba_atomic(self.image, path)

    def release(self) -> np.ndarray:
        """Hand the buffer to the caller; the pipeline cannot be used afterwards."""
        image = self.image
        self._image = None
        return image

    def composite(self, target_size: Optional[int] = None, padding: Optional[float] = None) -> Image.Image:
        canvas = composite_to_canvas(
            self.release(),
            target_size=config.resolve(target_size, self.settings.target_size),
            padding=config.resolve(padding, self.settings.padding),
        )
        self.history.append(StageReport(stage="composite", stats={"size": canvas.size[0]}))
        return canvas


def _download_image(url: str, timeout: int) -> bytes:
    resp = requests.get(url, timeout=(5, timeout))
    resp.raise_for_status()
    return resp.content


def load_source(source: Union[str, Path], settings: Optional[config.Settings] = None) -> np.ndarray:
    """Load the original photo from a local path or an http(s) URL."""
    settings = settings or config.get_settings()
    text = str(source)
    if text.startswith(("http://", "https://")):
        logger.info("Downloading source image %s", text)
        return decode_rgba(_download_image(text, settings.request_timeout_seconds))
    path = Path(source)
    if not path.is_file():
        raise FileNotFoundError(f"Input file not found: {path}")
    return decode_rgba(path.read_bytes())


def prepare_image(
    source: Union[str, Path],
    sku: str,
    angle: str,
    remover: BackgroundRemover,
    settings: Optional[config.Settings] = None,
    uploader: Optional[Uploader] = None,
    thumbnail: Optional[bool] = None,
    shape_correction: bool = True,
) -> Dict[str, Any]:
    """
    Produce one finished product PNG.

    The remover's alpha is thresholded in binary mode so the final pixels
    carry the original photo's colors rather than the model's degraded ones.
    """
    settings = settings or config.get_settings()
    if not sku:
        raise ValueError("sku is required")

    original = load_source(source, settings)
    original_image = rgba_to_image(original)
    logger.info("Removing background for %s-%s", sku, angle)
    cutout = validate_cutout(original_image, remover(original_image))

    pipeline = RefinementPipeline(np.array(cutout, dtype=np.uint8), original, settings=settings)
    pipeline.threshold(mode="binary")
    if shape_correction:
        pipeline.correct_shape()
    if settings.dilate_radius:
        pipeline.dilate()
    canvas = pipeline.composite()

    output_path = settings.output_dir / config.output_filename(settings.naming, sku, angle)
    save_rgba_atomic(np.array(canvas, dtype=np.uint8), output_path)

    result: Dict[str, Any] = {
        "success": True,
        "sku": sku,
        "angle": angle,
        "original": str(source),
        "output": str(output_path),
        "width": settings.target_size,
        "height": settings.target_size,
        "format": "png",
        "settings": {
            "target_size": settings.target_size,
            "padding": settings.padding,
            "aggressiveness": settings.aggressiveness,
            "naming": settings.naming,
        },
        "stages": [report.stage for report in pipeline.history],
    }

    is_thumbnail = angle == "front" if thumbnail is None else thumbnail
    request = ImportRequest(path=str(output_path), sku=sku, angle=angle, thumbnail=is_thumbnail)
    result["import_request"] = request.model_dump()
    if uploader is not None:
        result["upload"] = uploader(request)
    return result
