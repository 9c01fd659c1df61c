from pathlib import Path

from pydantic import ValidationError
import pytest

from mask_refiner import config


def test_defaults():
    settings = config.Settings()
    assert settings.aggressiveness == 50
    assert settings.harden_threshold == 15
    assert settings.harden_dark_offset == 80
    assert settings.blend_zone == 5
    assert settings.bg_distance_threshold == 50.0
    assert (settings.shape_cap_end, settings.shape_body_start, settings.shape_body_end) == (0.15, 0.20, 0.85)
    assert settings.shape_base_taper == 0.30
    assert settings.target_size == 1100


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("MASK_REFINER_AGGRESSIVENESS", "80")
    monkeypatch.setenv("MASK_REFINER_HARDEN_MODE", "symmetric")
    monkeypatch.setenv("MASK_REFINER_OUTPUT_DIR", "/tmp/refined")
    settings = config.get_settings()
    assert settings.aggressiveness == 80
    assert settings.harden_mode == "symmetric"
    assert settings.output_dir == Path("/tmp/refined")


@pytest.mark.parametrize(
    "overrides",
    [
        {"aggressiveness": 0},
        {"padding": 0.5},
        {"dilate_radius": 25},
        {"alpha_mode": "fuzzy"},
        {"harden_mode": "right"},
        {"bg_corners": "bottom"},
        {"shape_body_start": 0.9, "shape_body_end": 0.85},
    ],
)
def test_invalid_values_rejected(overrides):
    with pytest.raises(ValidationError):
        config.Settings(**overrides)


def test_output_filename():
    assert config.output_filename("{sku}-{angle}", "DH515", "front") == "DH515-front.png"
    assert config.output_filename("{sku}_{timestamp}", "X", "front").startswith("X_")
