import numpy as np
import pytest

from mask_refiner.raster import (
    DimensionMismatchError,
    decode_rgba,
    ensure_same_dimensions,
    load_pair,
    load_rgba,
    save_rgba_atomic,
)

from .helpers import solid


def test_round_trip_preserves_pixels(tmp_path):
    img = solid(6, 9, rgb=(1, 2, 3), alpha=77)
    path = save_rgba_atomic(img, tmp_path / "nested" / "img.png")
    assert np.array_equal(load_rgba(path), img)


def test_missing_and_invalid_files(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_rgba(tmp_path / "missing.png")
    bad = tmp_path / "bad.png"
    bad.write_bytes(b"not an image")
    with pytest.raises(ValueError):
        load_rgba(bad)
    with pytest.raises(ValueError):
        decode_rgba(b"garbage")


def test_dimension_checks(tmp_path):
    ensure_same_dimensions(solid(4, 4), None)
    with pytest.raises(DimensionMismatchError):
        ensure_same_dimensions(solid(4, 4), solid(4, 5))

    save_rgba_atomic(solid(4, 4), tmp_path / "a.png")
    save_rgba_atomic(solid(5, 4), tmp_path / "b.png")
    with pytest.raises(DimensionMismatchError):
        load_pair(tmp_path / "a.png", tmp_path / "b.png")
