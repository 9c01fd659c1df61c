import numpy as np
import pytest

from mask_refiner.background import sample_background
from mask_refiner.editor import MaskEditor

from .helpers import PRODUCT, solid


def _scene():
    """Backdrop for x<20 and x>=80, product in between; mask covers 35..64."""
    original = solid(10, 100)
    original[:, 20:80, :3] = PRODUCT
    mask = original.copy()
    mask[..., 3] = 0
    mask[:, 35:65, 3] = 255
    return mask, original


def _editor(mask, original, **kwargs):
    return MaskEditor(mask, original=original, background=sample_background(original), **kwargs)


def _left(mask, y):
    return int(np.flatnonzero(mask[y, :, 3])[0])


def _right(mask, y):
    return int(np.flatnonzero(mask[y, :, 3])[-1])


def test_extend_left_edge_fills_gap():
    mask, original = _scene()
    result = _editor(mask, original).set_left_edge(25, 0, 9)
    assert result.pixels_changed == 10 * 10
    assert result.pixels_skipped_background == 0
    assert _left(mask, 4) == 25
    assert np.all(mask[4, 25:35, :3] == PRODUCT)


def test_blend_zone_overwrites_soft_pixels_past_old_edge():
    mask, original = _scene()
    mask[:, 35:38, 3] = 90  # soft transition just inside the old edge
    _editor(mask, original, blend_zone=5).set_left_edge(30, 0, 9)
    assert np.all(mask[:, 30:41, 3] == 255)


def test_background_pixels_are_skipped():
    mask, original = _scene()
    editor = _editor(mask, original)
    result = editor.set_left_edge(10, 0, 9)
    assert result.pixels_skipped_background == 10 * 10
    assert result.pixels_changed == 15 * 10
    assert _left(mask, 0) == 20

    again = editor.set_left_edge(10, 0, 9)
    assert again.pixels_changed == 0
    assert again.pixels_skipped_background == 10 * 10
    assert editor.pixels_changed == 150


def test_retract_left_edge_clears_vacated_pixels():
    mask, original = _scene()
    result = _editor(mask, original).set_left_edge(45, 2, 3)
    assert result.pixels_changed == 2 * 10
    assert _left(mask, 2) == 45
    assert _left(mask, 0) == 35


def test_right_edge_extend_and_retract():
    mask, original = _scene()
    editor = _editor(mask, original)
    extended = editor.set_right_edge(70, 0, 9)
    assert extended.pixels_changed == 6 * 10
    assert _right(mask, 0) == 70

    retracted = editor.set_right_edge(60, 0, 9)
    assert retracted.pixels_changed == 10 * 10
    assert _right(mask, 0) == 60


def test_empty_rows_are_left_alone():
    mask, original = _scene()
    mask[5, :, 3] = 0
    _editor(mask, original).set_left_edge(25, 0, 9)
    assert not mask[5, :, 3].any()


def test_rect_fill_without_original_uses_white():
    mask = solid(10, 10, rgb=(0, 0, 0), alpha=0)
    editor = MaskEditor(mask)
    result = editor.fill_rect(6, 6, 2, 2)
    assert result.pixels_changed == 25
    assert np.all(mask[2:7, 2:7, 3] == 255)
    assert np.all(mask[2:7, 2:7, :3] == 255)

    cleared = editor.clear_rect(0, 0, 3, 3)
    assert cleared.pixels_changed == 4
    assert not mask[0:4, 0:4, 3].any()


def test_rect_is_clipped_to_image():
    mask = solid(10, 10, alpha=0)
    result = MaskEditor(mask).fill_rect(-5, -5, 1, 1)
    assert result.pixels_changed == 4


def test_invalid_row_range_and_blend_zone():
    mask, original = _scene()
    with pytest.raises(ValueError):
        _editor(mask, original).set_left_edge(10, 5, 2)
    with pytest.raises(ValueError):
        MaskEditor(mask, blend_zone=-1)
