"""
certpress Core Models

Data contracts for the compression pipeline. Assets and attempts are frozen
dataclasses since they are created and discarded within a single call; the
budget is a pydantic v2 model so invalid sizes are rejected at the boundary.

Example usage:
    from certpress.models import Asset, CompressionBudget

    asset = Asset(data=png_bytes, media_type="image/png", filename="award.png")
    budget = CompressionBudget(target_kb=200)
    print(asset.family, asset.byte_length > budget.target_bytes)
"""

import mimetypes
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePath
from typing import Optional, Tuple, Union

from pydantic import BaseModel, Field


class MediaFamily(str, Enum):
    """Coarse media category deciding which encode strategy applies."""
    IMAGE = "image"
    DOCUMENT = "document"
    UNSUPPORTED = "unsupported"


class CompressionOutcome(str, Enum):
    """How a compression run ended."""
    UNDER_BUDGET = "under_budget"
    COMPRESSED = "compressed"
    BEST_EFFORT = "best_effort"
    UNSUPPORTED = "unsupported"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


def family_for(media_type: Optional[str]) -> MediaFamily:
    """Map a declared media type onto a family by substring match."""
    lowered = (media_type or "").lower()
    if "image" in lowered:
        return MediaFamily.IMAGE
    if "pdf" in lowered:
        return MediaFamily.DOCUMENT
    return MediaFamily.UNSUPPORTED


@dataclass(frozen=True)
class Asset:
    """In-memory binary payload with a declared media type."""

    data: bytes
    media_type: str = ""
    filename: Optional[str] = None

    @property
    def byte_length(self) -> int:
        return len(self.data)

    @property
    def family(self) -> MediaFamily:
        return family_for(self.media_type)

    def replace_data(self, data: bytes, media_type: str) -> "Asset":
        """
        Return a new asset with new content.

        The filename is kept, with its extension swapped when the media type
        changes (``award.png`` re-encoded as JPEG becomes ``award.jpg``).
        """
        filename = self.filename
        if filename and media_type != self.media_type:
            extension = mimetypes.guess_extension(media_type)
            current, _ = mimetypes.guess_type(filename)
            if extension and current != media_type:
                filename = str(PurePath(filename).with_suffix(extension))
        return Asset(data=data, media_type=media_type, filename=filename)

    @classmethod
    def from_path(cls, path: Union[str, Path], media_type: Optional[str] = None) -> "Asset":
        """
        Read an asset from disk.

        Args:
            path: File to read
            media_type: Declared type; detected from content/name when omitted

        Returns:
            Asset holding the file bytes
        """
        from certpress.media import detect_media_type

        path = Path(path)
        data = path.read_bytes()
        if not media_type:
            media_type = detect_media_type(data, path.name)
        return cls(data=data, media_type=media_type, filename=path.name)


class CompressionBudget(BaseModel):
    """Target maximum size for a compressed asset."""
    target_kb: float = Field(200.0, gt=0, allow_inf_nan=False, description="Target size in kilobytes")

    @property
    def target_bytes(self) -> int:
        return int(self.target_kb * 1024)

    def fits(self, asset: Asset) -> bool:
        return asset.byte_length <= self.target_bytes


@dataclass(frozen=True)
class EncodeAttempt:
    """One rung of the quality ladder and the size it produced."""
    quality: float
    byte_length: int


@dataclass(frozen=True)
class CompressionReport:
    """
    Everything a caller needs to describe one compression run.

    The compressor itself never logs; callers turn reports into events.
    """
    original: Asset
    result: Asset
    outcome: CompressionOutcome
    budget_bytes: int
    attempts: Tuple[EncodeAttempt, ...] = field(default_factory=tuple)
    error: Optional[str] = None

    @property
    def saved_bytes(self) -> int:
        return self.original.byte_length - self.result.byte_length

    @property
    def ratio(self) -> float:
        if self.original.byte_length == 0:
            return 1.0
        return self.result.byte_length / self.original.byte_length

    @property
    def final_quality(self) -> Optional[float]:
        return self.attempts[-1].quality if self.attempts else None

    @property
    def within_budget(self) -> bool:
        return self.result.byte_length <= self.budget_bytes
