from pathlib import Path

import numpy as np
from PIL import Image
import pytest

from mask_refiner import config
from mask_refiner.pipeline import RefinementPipeline, prepare_image
from mask_refiner.raster import DimensionMismatchError, load_rgba, save_rgba_atomic

from .helpers import bottle_original, mask_from_original, solid


def _fake_remover(image: Image.Image) -> Image.Image:
    """Probabilistic alpha: confident over the product, faint halo around it."""
    rgba = np.array(image.convert("RGBA"))
    alpha = np.zeros(rgba.shape[:2], dtype=np.uint8)
    alpha[22:113, 57:143] = 40
    alpha[25:110, 60:140] = 230
    rgba[..., 3] = alpha
    return Image.fromarray(rgba, mode="RGBA")


def test_background_is_sampled_once_and_shared():
    original = bottle_original()
    mask = mask_from_original(original, 60, 140, 25, 110, alpha=128)
    pipeline = RefinementPipeline(mask, original, settings=config.Settings())
    background = pipeline.background
    pipeline.harden()
    pipeline.editor().fill_rect(0, 0, 5, 5)
    assert pipeline.background is background
    assert background.color == (230, 230, 230)
    assert [r.stage for r in pipeline.history] == ["harden", "edit"]


def test_stages_run_in_sequence_on_owned_buffer():
    original = bottle_original()
    cutout = mask_from_original(original, 57, 143, 22, 113, alpha=40)
    cutout[25:110, 60:140, 3] = 230
    pipeline = RefinementPipeline(cutout, original, settings=config.Settings())

    threshold = pipeline.threshold(aggressiveness=50, mode="binary")
    shape = pipeline.correct_shape()
    pipeline.mirror(center=99, source_side="right")
    harden = pipeline.harden()

    assert threshold.threshold_value == 128
    assert shape.median_left == 60 and shape.median_right == 139
    assert harden.pixels_hardened == 0
    assert set(np.unique(pipeline.image[..., 3])) <= {0, 255}


def test_release_ends_the_pipeline():
    pipeline = RefinementPipeline(solid(10, 10), settings=config.Settings())
    buffer = pipeline.release()
    assert buffer.shape == (10, 10, 4)
    with pytest.raises(RuntimeError):
        pipeline.dilate(1)


def test_stages_needing_original_fail_cleanly():
    pipeline = RefinementPipeline(solid(10, 10), settings=config.Settings())
    with pytest.raises(ValueError):
        pipeline.harden()
    with pytest.raises(ValueError):
        pipeline.mirror(center=5, source_side="left")


def test_dimension_mismatch_is_detected_up_front():
    with pytest.raises(DimensionMismatchError):
        RefinementPipeline(solid(10, 10), solid(12, 10), settings=config.Settings())


def test_from_files_and_checkpoint(tmp_path):
    original = bottle_original()
    mask = mask_from_original(original, 60, 140, 25, 110, alpha=128)
    save_rgba_atomic(mask, tmp_path / "mask.png")
    save_rgba_atomic(original, tmp_path / "orig.png")

    pipeline = RefinementPipeline.from_files(tmp_path / "mask.png", tmp_path / "orig.png", settings=config.Settings())
    pipeline.harden()
    pipeline.checkpoint(tmp_path / "mask.png")

    saved = load_rgba(tmp_path / "mask.png")
    assert np.all(saved[60, 60:140, 3] == 255)
    assert list(tmp_path.glob(".mask-*")) == []


def test_prepare_image_end_to_end(tmp_path):
    save_rgba_atomic(bottle_original(), tmp_path / "DH515.png")
    settings = config.Settings(output_dir=tmp_path / "out", target_size=200, padding=0.05)
    uploaded = []

    def uploader(request):
        uploaded.append(request)
        return {"attachment_id": 7}

    result = prepare_image(
        tmp_path / "DH515.png",
        sku="DH515",
        angle="front",
        remover=_fake_remover,
        settings=settings,
        uploader=uploader,
    )

    output = Path(result["output"])
    assert output.name == "DH515-front.png"
    with Image.open(output) as img:
        assert img.size == (200, 200)
        assert img.mode == "RGBA"
    assert result["stages"] == ["threshold", "shape", "composite"]
    assert result["import_request"]["thumbnail"] is True
    assert uploaded[0].sku == "DH515"
    assert result["upload"] == {"attachment_id": 7}


def test_prepare_rejects_mismatched_cutout(tmp_path):
    save_rgba_atomic(bottle_original(), tmp_path / "src.png")

    def shrinking_remover(image):
        return image.resize((10, 10))

    with pytest.raises(ValueError):
        prepare_image(tmp_path / "src.png", "SKU", "side", shrinking_remover, settings=config.Settings(output_dir=tmp_path))


def test_prepare_missing_source(tmp_path):
    with pytest.raises(FileNotFoundError):
        prepare_image(tmp_path / "nope.png", "SKU", "front", _fake_remover, settings=config.Settings(output_dir=tmp_path))
