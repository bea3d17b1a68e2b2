"""
Media type detection for uploaded assets.

Content sniffing uses python-magic; when libmagic fails or cannot decide,
the filename extension is consulted instead.
"""

import logging
import mimetypes
from typing import Optional

import magic

logger = logging.getLogger(__name__)

GENERIC_TYPES = ("", "application/octet-stream", "binary/octet-stream")


def sniff_media_type(data: bytes) -> Optional[str]:
    """Detect a media type from the leading bytes, or None if undecidable."""
    try:
        detected = magic.from_buffer(data[:2048], mime=True)
    except Exception as e:
        logger.warning(f"MIME type detection failed: {e}, falling back to extension")
        return None
    if not detected or detected in GENERIC_TYPES:
        return None
    return detected


def detect_media_type(data: bytes, filename: Optional[str] = None,
                      declared: Optional[str] = None) -> str:
    """
    Resolve the media type used to pick a compression family.

    A specific declared type wins. Otherwise the content is sniffed, then
    the filename extension is guessed, and finally the generic binary type
    is returned.

    Args:
        data: Asset bytes
        filename: Original filename, if known
        declared: Media type supplied by the client, if any

    Returns:
        Media type string, never empty
    """
    if declared and declared.lower() not in GENERIC_TYPES:
        return declared.lower()

    sniffed = sniff_media_type(data)
    if sniffed:
        return sniffed

    if filename:
        guessed, _ = mimetypes.guess_type(filename)
        if guessed:
            return guessed

    return "application/octet-stream"
