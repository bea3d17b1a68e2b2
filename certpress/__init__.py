"""
certpress Core Module

This module contains the upload-side compression logic for certificate assets:
- Asset and report data contracts
- Quality ladders for the bounded re-encode loop
- Pillow / PyPDF2 / reportlab codecs behind small capability interfaces
- The adaptive compressor and its batch variant

The core module is framework-agnostic and can be used independently of the
web interface or CLI.

Example usage:
    from certpress.models import Asset
    from certpress.compress import compress

    smaller = await compress(Asset(data=raw, media_type="image/jpeg"), 200)
"""

__version__ = "0.1.0"
__all__ = [
    "Asset",
    "AdaptiveCompressor",
    "compress",
    "compress_all",
]

from certpress.models import Asset
from certpress.compress import AdaptiveCompressor, compress, compress_all
