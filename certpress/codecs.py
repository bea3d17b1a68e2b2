"""
certpress Codecs

Capability interfaces used by the adaptive compressor and their concrete
backends. The compressor only ever sees ``Rasterizer.rasterize`` and
``Encoder.encode``, so tests and alternative deployments can swap in any
decoder or encoder without touching the retry loop.

Backends:
    - PillowRasterizer / JpegEncoder for image uploads
    - PdfPageRasterizer (PyPDF2) / PdfPageEncoder (reportlab) for single-page
      certificate PDFs

Example usage:
    from certpress.codecs import PillowRasterizer, JpegEncoder

    surface = PillowRasterizer().rasterize(png_bytes)
    jpeg_bytes = JpegEncoder().encode(surface, 0.8)
"""

import threading
from io import BytesIO
from typing import Any, Optional, Protocol, Tuple

from PIL import Image, ImageOps, UnidentifiedImageError
import PyPDF2
from reportlab import rl_config
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from certpress.config import PAGE_SIZE_DEFAULT
from certpress.errors import DecodeFailure, EncodeFailure

# rl_config is process-wide; PDF assembly toggles it under this lock
_REPORTLAB_LOCK = threading.Lock()


class Rasterizer(Protocol):
    """Turns raw asset bytes into a drawable surface."""

    def rasterize(self, data: bytes) -> Any:
        ...


class Encoder(Protocol):
    """Turns a surface plus a quality in [0, 1] into encoded bytes."""

    media_type: str

    def encode(self, surface: Any, quality: float) -> bytes:
        ...


def _flatten_to_rgb(img: Image.Image) -> Image.Image:
    """Composite transparent images on white and normalize the mode to RGB."""
    if img.mode in ("RGBA", "LA", "P"):
        if img.mode == "P":
            img = img.convert("RGBA")
        bg = Image.new("RGB", img.size, (255, 255, 255))
        bg.paste(img, mask=img.split()[-1])
        return bg
    if img.mode != "RGB":
        return img.convert("RGB")
    return img


class PillowRasterizer:
    """Decode any Pillow-readable image into an RGB surface."""

    def rasterize(self, data: bytes) -> Image.Image:
        try:
            with Image.open(BytesIO(data)) as loaded:
                loaded.load()
                oriented = ImageOps.exif_transpose(loaded)
                return _flatten_to_rgb(oriented).copy()
        except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
            raise DecodeFailure(f"Could not decode image: {e}") from e


class JpegEncoder:
    """Encode a surface as baseline JPEG at the given quality."""

    media_type = "image/jpeg"

    def encode(self, surface: Image.Image, quality: float) -> bytes:
        if not 0 < quality <= 1:
            raise EncodeFailure(f"Quality must be in (0, 1], got {quality}")
        buf = BytesIO()
        try:
            surface.save(buf, format="JPEG", quality=int(round(quality * 100)), optimize=True)
        except (OSError, ValueError, AttributeError) as e:
            raise EncodeFailure(f"JPEG encoding failed: {e}") from e
        return buf.getvalue()


class PdfPageRasterizer:
    """
    Recover the raster content of a single-page, image-based PDF.

    Certificates exported by the template editor are one page holding one
    full-bleed image. The largest embedded image of that page is decoded;
    multi-page, encrypted, or purely vector documents raise DecodeFailure
    so the caller keeps the original.
    """

    def __init__(self, image_rasterizer: Optional[Rasterizer] = None):
        self.image_rasterizer = image_rasterizer or PillowRasterizer()

    def rasterize(self, data: bytes) -> Image.Image:
        try:
            reader = PyPDF2.PdfReader(BytesIO(data))
            if reader.is_encrypted:
                raise DecodeFailure("Encrypted PDFs cannot be rasterized")
            if len(reader.pages) != 1:
                raise DecodeFailure(f"Expected a single-page PDF, found {len(reader.pages)} pages")
            embedded = list(reader.pages[0].images)
        except DecodeFailure:
            raise
        except Exception as e:
            raise DecodeFailure(f"Could not read PDF: {e}") from e

        if not embedded:
            raise DecodeFailure("PDF page holds no raster image")

        surfaces = [self.image_rasterizer.rasterize(image.data) for image in embedded]
        return max(surfaces, key=lambda s: s.size[0] * s.size[1])


class PdfPageEncoder:
    """
    Wrap a JPEG-encoded surface into a one-page PDF of a fixed size.

    The image is stretched to the full page, matching the canonical
    certificate layout.
    """

    media_type = "application/pdf"

    def __init__(self, page_size: Tuple[int, int] = PAGE_SIZE_DEFAULT,
                 image_encoder: Optional[Encoder] = None):
        self.page_size = page_size
        self.image_encoder = image_encoder or JpegEncoder()

    def encode(self, surface: Image.Image, quality: float) -> bytes:
        jpeg_bytes = self.image_encoder.encode(surface, quality)
        width, height = self.page_size
        buf = BytesIO()
        with _REPORTLAB_LOCK:
            # JPEG streams are embedded as-is; ASCII85 would add a quarter to their size
            previous_a85 = rl_config.useA85
            rl_config.useA85 = 0
            try:
                c = canvas.Canvas(buf, pagesize=(width, height), pageCompression=1, invariant=1)
                c.drawImage(ImageReader(BytesIO(jpeg_bytes)), 0, 0, width=width, height=height)
                c.showPage()
                c.save()
            except (OSError, ValueError) as e:
                raise EncodeFailure(f"PDF assembly failed: {e}") from e
            finally:
                rl_config.useA85 = previous_a85
        return buf.getvalue()
