from __future__ import annotations

import pytest

from mask_refiner import config


@pytest.fixture
def settings(tmp_path):
    return config.Settings(output_dir=tmp_path / "out")


@pytest.fixture(autouse=True)
def _fresh_settings_cache():
    config.get_settings.cache_clear()
    yield
    config.get_settings.cache_clear()
