"""
Configuration loader for the mask refinement pipeline.

Every tunable threshold lives here with its documented default and valid
range. Stages take these values as explicit arguments; the pipeline and the
CLI inject them from `Settings`.
"""

from functools import lru_cache
from pathlib import Path
import time

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Background sampling
DEFAULT_BG_SAMPLE_SIZE = 20
DEFAULT_BG_CORNERS = "top"
BG_CORNER_CHOICES = ("top", "top_left", "all")

# Alpha thresholding
DEFAULT_AGGRESSIVENESS = 50
DEFAULT_ALPHA_MODE = "binary"
ALPHA_MODES = ("soft", "binary")

# Edge scanning (alpha strictly above this counts as foreground)
DEFAULT_ACTIVATION_THRESHOLD = 128

# Shape regions, as fractions of content height
DEFAULT_CAP_END = 0.15
DEFAULT_BODY_START = 0.20
DEFAULT_BODY_END = 0.85
# Base rows always taper, so even an already straight mask changes there;
# pass 0 to leave a straight mask untouched.
DEFAULT_BASE_TAPER = 0.30

# Hardening
DEFAULT_HARDEN_THRESHOLD = 15
DEFAULT_HARDEN_DARK_OFFSET = 80
DEFAULT_HARDEN_MODE = "left"
HARDEN_MODES = ("left", "symmetric")

# Manual edits
DEFAULT_BLEND_ZONE = 5
DEFAULT_BG_DISTANCE_THRESHOLD = 50.0

# Dilation
DEFAULT_DILATE_RADIUS = 0
MAX_DILATE_RADIUS = 20

# Final canvas
DEFAULT_TARGET_SIZE = 1100
DEFAULT_PADDING = 0.05


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="MASK_REFINER_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Background model
    bg_sample_size: int = Field(DEFAULT_BG_SAMPLE_SIZE, ge=1, le=200)
    bg_corners: str = DEFAULT_BG_CORNERS

    # Thresholding
    aggressiveness: int = Field(DEFAULT_AGGRESSIVENESS, ge=1, le=100)
    alpha_mode: str = DEFAULT_ALPHA_MODE
    activation_threshold: int = Field(DEFAULT_ACTIVATION_THRESHOLD, ge=0, le=254)

    # Shape correction
    shape_cap_end: float = Field(DEFAULT_CAP_END, ge=0.0, le=1.0)
    shape_body_start: float = Field(DEFAULT_BODY_START, ge=0.0, le=1.0)
    shape_body_end: float = Field(DEFAULT_BODY_END, ge=0.0, le=1.0)
    shape_base_taper: float = Field(DEFAULT_BASE_TAPER, ge=0.0, le=1.0)

    # Hardening
    harden_threshold: int = Field(DEFAULT_HARDEN_THRESHOLD, ge=0, le=255)
    harden_dark_offset: int = Field(DEFAULT_HARDEN_DARK_OFFSET, ge=0, le=255)
    harden_mode: str = DEFAULT_HARDEN_MODE

    # Manual edits
    blend_zone: int = Field(DEFAULT_BLEND_ZONE, ge=0, le=100)
    bg_distance_threshold: float = Field(DEFAULT_BG_DISTANCE_THRESHOLD, ge=0.0, le=442.0)

    # Dilation
    dilate_radius: int = Field(DEFAULT_DILATE_RADIUS, ge=0, le=MAX_DILATE_RADIUS)

    # Compositing + output
    target_size: int = Field(DEFAULT_TARGET_SIZE, gt=0)
    padding: float = Field(DEFAULT_PADDING, ge=0.0, lt=0.5)
    naming: str = "{sku}-{angle}"
    output_dir: Path = Path("temp")

    # Collaborators
    request_timeout_seconds: int = Field(30, gt=0)
    rembg_model: str = "isnet-general-use"

    log_level: str = "INFO"

    @field_validator("bg_corners")
    @classmethod
    def validate_corners(cls, v: str) -> str:
        if v not in BG_CORNER_CHOICES:
            raise ValueError("bg_corners must be one of top|top_left|all")
        return v

    @field_validator("alpha_mode")
    @classmethod
    def validate_alpha_mode(cls, v: str) -> str:
        if v not in ALPHA_MODES:
            raise ValueError("alpha_mode must be one of soft|binary")
        return v

    @field_validator("harden_mode")
    @classmethod
    def validate_harden_mode(cls, v: str) -> str:
        if v not in HARDEN_MODES:
            raise ValueError("harden_mode must be one of left|symmetric")
        return v

    @model_validator(mode="after")
    def validate_regions(self) -> "Settings":
        if not (self.shape_cap_end <= self.shape_body_start < self.shape_body_end):
            raise ValueError("shape regions must satisfy cap_end <= body_start < body_end")
        return self


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings to avoid reparsing env on every call."""
    return Settings()


def resolve(value, default):
    """Use an explicit argument when given, else the configured default."""
    return default if value is None else value


def output_filename(pattern: str, sku: str, angle: str) -> str:
    """Expand the naming pattern (`{sku}`, `{angle}`, `{timestamp}`) into a PNG filename."""
    name = pattern.replace("{sku}", sku).replace("{angle}", angle)
    name = name.replace("{timestamp}", str(int(time.time() * 1000)))
    return f"{name}.png"
