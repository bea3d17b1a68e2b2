"""
Configuration Module

Provides centralized compression settings. Defaults match the upload flow of
the certificate application (200KB budget, 10MB upload cap, 1200x848 page)
and every field can be overridden with a ``CERTPRESS_*`` environment variable.

Example usage:
    from certpress.config import get_settings

    settings = get_settings()
    print(settings.budget_kb)
"""

import os
from typing import Optional, Tuple

from pydantic import BaseModel, Field, model_validator

from certpress.quality import (
    DOCUMENT_START_QUALITY,
    IMAGE_START_QUALITY,
    QUALITY_FLOOR,
    QUALITY_STEP,
    quality_ladder,
)

ENV_PREFIX = "CERTPRESS_"

# Canonical certificate page in PDF units, landscape
PAGE_SIZE_DEFAULT = (1200, 848)

ALLOWED_UPLOAD_TYPES = (
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/pdf",
    "application/pdf",
)


class CompressionSettings(BaseModel):
    """Tunable parameters for compression and the surfaces that call it."""
    budget_kb: float = Field(200.0, gt=0, allow_inf_nan=False, description="Default target size in kilobytes")
    image_start_quality: float = Field(IMAGE_START_QUALITY, gt=0, le=1)
    document_start_quality: float = Field(DOCUMENT_START_QUALITY, gt=0, le=1)
    quality_floor: float = Field(QUALITY_FLOOR, gt=0, le=1)
    quality_step: float = Field(QUALITY_STEP, ge=0.01, le=1)
    page_width: int = Field(PAGE_SIZE_DEFAULT[0], gt=0)
    page_height: int = Field(PAGE_SIZE_DEFAULT[1], gt=0)
    attempt_timeout_s: Optional[float] = Field(
        None, gt=0, description="Per decode/encode deadline; None disables it"
    )
    max_upload_mb: float = Field(10.0, gt=0)
    log_level: str = Field("INFO")
    log_format: str = Field("json", pattern=r"^(json|text)$")

    @model_validator(mode='after')
    def validate_floor(self):
        if self.quality_floor > min(self.image_start_quality, self.document_start_quality):
            raise ValueError("quality_floor must not exceed either start quality")
        return self

    @property
    def page_size(self) -> Tuple[int, int]:
        return (self.page_width, self.page_height)

    @property
    def max_upload_bytes(self) -> int:
        return int(self.max_upload_mb * 1024 * 1024)

    @property
    def image_ladder(self) -> Tuple[float, ...]:
        return quality_ladder(self.image_start_quality, self.quality_floor, self.quality_step)

    @property
    def document_ladder(self) -> Tuple[float, ...]:
        return quality_ladder(self.document_start_quality, self.quality_floor, self.quality_step)


def get_settings() -> CompressionSettings:
    """
    Build settings from ``CERTPRESS_*`` environment variables.

    Unset variables keep their defaults; malformed values raise a pydantic
    ValidationError.

    Example:
        >>> os.environ["CERTPRESS_BUDGET_KB"] = "150"
        >>> get_settings().budget_kb
        150.0
    """
    overrides = {}
    for name in CompressionSettings.model_fields:
        raw = os.environ.get(f"{ENV_PREFIX}{name.upper()}")
        if raw is not None and raw.strip() != "":
            overrides[name] = raw.strip()
    return CompressionSettings(**overrides)
