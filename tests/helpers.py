"""
certpress Test Helper Utilities

Provides synthetic certificate assets and fake codecs so the compressor can
be exercised both against real Pillow/reportlab backends and against
deterministic stand-ins with known output sizes.

Example usage:
    jpeg = encode_image(make_noise_image(640, 480), "JPEG", quality=95)
    compressor = AdaptiveCompressor(image_rasterizer=RecordingRasterizer(),
                                    image_encoder=ScaledEncoder(600_000))
"""

from io import BytesIO
from typing import List

import numpy as np
from PIL import Image

from certpress.errors import DecodeFailure, EncodeFailure


def make_noise_image(width: int, height: int, seed: int = 0) -> Image.Image:
    """Random RGB noise; compresses poorly, which keeps JPEG sizes large."""
    rng = np.random.default_rng(seed)
    pixels = rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)
    return Image.fromarray(pixels)


def make_flat_image(width: int, height: int, color=(20, 60, 140)) -> Image.Image:
    """Single-colour image; compresses to almost nothing."""
    return Image.new("RGB", (width, height), color)


def encode_image(img: Image.Image, fmt: str = "JPEG", **save_kwargs) -> bytes:
    buf = BytesIO()
    img.save(buf, format=fmt, **save_kwargs)
    return buf.getvalue()


def make_image_pdf(img: Image.Image, quality: int = 95, pages: int = 1) -> bytes:
    """Image-only PDF written by Pillow (one JPEG per page)."""
    buf = BytesIO()
    frames = [img] + [img.copy() for _ in range(pages - 1)]
    frames[0].save(buf, format="PDF", save_all=True, append_images=frames[1:],
                   quality=quality, resolution=72.0)
    return buf.getvalue()


class RecordingRasterizer:
    """Returns a sentinel surface and counts calls."""

    def __init__(self, surface="surface"):
        self.surface = surface
        self.calls = 0

    def rasterize(self, data: bytes):
        self.calls += 1
        return self.surface


class ScaledEncoder:
    """
    Produces ``base_bytes * quality`` bytes, never less than ``min_bytes``.

    The qualities requested are recorded in ``qualities``.
    """

    def __init__(self, base_bytes: int, min_bytes: int = 0, media_type: str = "image/jpeg"):
        self.base_bytes = base_bytes
        self.min_bytes = min_bytes
        self.media_type = media_type
        self.qualities: List[float] = []

    def encode(self, surface, quality: float) -> bytes:
        self.qualities.append(quality)
        return b"x" * max(self.min_bytes, int(self.base_bytes * quality))


class FixedEncoder:
    """Always produces the same number of bytes regardless of quality."""

    def __init__(self, size: int, media_type: str = "image/jpeg"):
        self.size = size
        self.media_type = media_type
        self.qualities: List[float] = []

    def encode(self, surface, quality: float) -> bytes:
        self.qualities.append(quality)
        return b"y" * self.size


class ExplodingRasterizer:
    def __init__(self, exc: Exception = None):
        self.exc = exc or DecodeFailure("cannot decode")
        self.calls = 0

    def rasterize(self, data: bytes):
        self.calls += 1
        raise self.exc


class ExplodingEncoder:
    media_type = "image/jpeg"

    def __init__(self, fail_after: int = 0, exc: Exception = None):
        self.fail_after = fail_after
        self.exc = exc or EncodeFailure("encoder rejected surface")
        self.qualities: List[float] = []

    def encode(self, surface, quality: float) -> bytes:
        self.qualities.append(quality)
        if len(self.qualities) > self.fail_after:
            raise self.exc
        return b"z" * 500_000


class SelectiveRasterizer:
    """Fails for payloads starting with ``poison`` and succeeds otherwise."""

    def __init__(self, poison: bytes = b"BAD"):
        self.poison = poison

    def rasterize(self, data: bytes):
        if data.startswith(self.poison):
            raise DecodeFailure("poisoned payload")
        return "surface"
