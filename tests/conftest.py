"""
certpress Test Configuration and Shared Fixtures

Provides pytest fixtures for temporary directories, synthetic certificate
assets and compressors wired to fake codecs.

Example usage:
    def test_fast_path(small_png_asset, fake_compressor):
        # Use a tiny PNG and a compressor with recorded encode calls
        pass
"""

import shutil
import tempfile
from pathlib import Path

import pytest

from certpress.compress import AdaptiveCompressor, reset_compressor
from certpress.models import Asset
from tests.helpers import (
    RecordingRasterizer,
    ScaledEncoder,
    encode_image,
    make_flat_image,
    make_image_pdf,
    make_noise_image,
)


@pytest.fixture
def temp_dir():
    """
    Provide a temporary directory that is cleaned up after test.

    Returns:
        Path: Temporary directory path
    """
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture(autouse=True)
def fresh_default_compressor(monkeypatch):
    """Make sure module-level helpers re-read settings in every test."""
    for name in ("CERTPRESS_BUDGET_KB", "CERTPRESS_ATTEMPT_TIMEOUT_S"):
        monkeypatch.delenv(name, raising=False)
    reset_compressor()
    yield
    reset_compressor()


@pytest.fixture(scope="session")
def noisy_jpeg_bytes():
    """Noise JPEG at quality 95, several hundred kilobytes."""
    return encode_image(make_noise_image(640, 480, seed=1), "JPEG", quality=95)


@pytest.fixture
def noisy_jpeg_asset(noisy_jpeg_bytes):
    return Asset(data=noisy_jpeg_bytes, media_type="image/jpeg", filename="award.jpg")


@pytest.fixture(scope="session")
def noisy_png_bytes():
    """Lossless noise PNG, well over any test budget."""
    return encode_image(make_noise_image(400, 300, seed=2), "PNG")


@pytest.fixture
def small_png_asset():
    data = encode_image(make_flat_image(120, 80), "PNG")
    return Asset(data=data, media_type="image/png", filename="badge.png")


@pytest.fixture(scope="session")
def image_pdf_bytes():
    """Single-page, image-only certificate PDF."""
    return make_image_pdf(make_noise_image(600, 424, seed=3), quality=95)


@pytest.fixture
def recording_rasterizer():
    return RecordingRasterizer()


@pytest.fixture
def scaled_encoder():
    # 600KB at quality 1.0, 180KB at 0.30
    return ScaledEncoder(base_bytes=600 * 1024)


@pytest.fixture
def fake_compressor(recording_rasterizer, scaled_encoder):
    """Compressor whose image and document paths share fake codecs."""
    return AdaptiveCompressor(
        image_rasterizer=recording_rasterizer,
        image_encoder=scaled_encoder,
        document_rasterizer=recording_rasterizer,
        document_encoder=scaled_encoder,
    )
