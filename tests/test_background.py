import numpy as np
import pytest

from mask_refiner.background import color_distance, sample_background

from .helpers import bottle_original, solid


def test_uniform_backdrop():
    model = sample_background(solid(50, 60, rgb=(200, 210, 220)))
    assert model.color == (200, 210, 220)
    assert model.luminosity == pytest.approx(210.0)
    assert model.as_dict() == {"r": 200, "g": 210, "b": 220}


def test_top_corners_ignore_product_in_the_middle():
    model = sample_background(bottle_original())
    assert model.color == (230, 230, 230)
    assert model.luminosity == pytest.approx(230.0)


def test_corner_choice_changes_samples():
    img = solid(40, 40, rgb=(100, 100, 100))
    img[30:, :, :3] = 0  # dark floor
    assert sample_background(img, sample_size=10, corners="top").luminosity == pytest.approx(100.0)
    assert sample_background(img, sample_size=10, corners="all").luminosity == pytest.approx(50.0)


def test_sample_block_is_clamped_to_small_images():
    model = sample_background(solid(5, 7, rgb=(10, 20, 30)), sample_size=20)
    assert model.color == (10, 20, 30)


def test_rejects_bad_parameters():
    with pytest.raises(ValueError):
        sample_background(solid(10, 10), sample_size=0)
    with pytest.raises(ValueError):
        sample_background(solid(10, 10), corners="bottom")


def test_background_distance_map():
    img = bottle_original()
    model = sample_background(img)
    bg = model.is_background(img, 50)
    assert bg[0, 0]
    assert not bg[60, 100]
    assert color_distance(np.array([[0, 0, 0]]), (3, 4, 0))[0] == pytest.approx(5.0)
