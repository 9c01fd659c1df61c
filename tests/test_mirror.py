import numpy as np
import pytest

from mask_refiner.edges import extract_edge_profile
from mask_refiner.mirror import mirror_edge

from .helpers import solid


def test_right_edge_mirrors_onto_left():
    original = solid(10, 500, rgb=(10, 20, 30))
    mask = solid(10, 500, rgb=(0, 0, 0), alpha=0)
    mask[:, 300:451, 3] = 255
    mask[:, 100:121, 3] = 255  # stray blob left of the mirrored edge

    result = mirror_edge(mask, original, center=390, source_side="right")

    assert result.target_side == "left"
    assert result.rows_mirrored == 10
    row = mask[5]
    assert row[329, 3] == 0
    assert np.all(row[330:451, 3] == 255)
    assert np.all(row[:330, 3] == 0)
    assert np.all(row[330:391, :3] == (10, 20, 30))
    assert extract_edge_profile(mask[..., 3], 128).left[5] == 330


def test_full_height_mirror_is_symmetric():
    rng = np.random.default_rng(7)
    height, width, center = 60, 500, 250
    original = solid(height, width)
    mask = solid(height, width, alpha=0)
    for y in range(5, 55):
        left = int(rng.integers(30, 120))
        right = int(rng.integers(380, 480))
        mask[y, left : right + 1, 3] = 255

    mirror_edge(mask, original, center=center, source_side="right")
    profile = extract_edge_profile(mask[..., 3], 128)
    for y in profile.content_rows():
        assert abs(profile.left[y] - (2 * center - profile.right[y])) <= 1


def test_left_source_and_row_range():
    original = solid(20, 100)
    mask = solid(20, 100, alpha=0)
    mask[:, 20:71, 3] = 255
    mask[:, 85:95, 3] = 255  # ragged right side

    result = mirror_edge(mask, original, center=50, source_side="left", row_from=5, row_to=10)

    assert result.rows_mirrored == 5
    profile = extract_edge_profile(mask[..., 3], 128)
    assert profile.right[5:10].tolist() == [80] * 5
    assert profile.right[0] == 94
    assert profile.right[10] == 94


def test_rows_without_source_edge_are_skipped():
    original = solid(4, 50)
    mask = solid(4, 50, alpha=0)
    mask[1, 30:40, 3] = 255
    before = mask.copy()
    result = mirror_edge(mask, original, center=25, source_side="right", row_from=2)
    assert result.rows_skipped == 2
    assert result.pixels_changed == 0
    assert np.array_equal(mask, before)


def test_rejects_invalid_arguments():
    original = solid(4, 50)
    mask = solid(4, 50, alpha=0)
    with pytest.raises(ValueError):
        mirror_edge(mask, original, center=25, source_side="right", target_side="right")
    with pytest.raises(ValueError):
        mirror_edge(mask, original, center=50, source_side="right")
    with pytest.raises(ValueError):
        mirror_edge(mask, original, center=10, source_side="up")
    with pytest.raises(ValueError):
        mirror_edge(mask, solid(5, 50), center=10, source_side="left")
