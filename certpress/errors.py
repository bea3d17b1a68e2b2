"""Centralized error taxonomy and response helpers."""

from typing import List, Optional, Dict, Any
from fastapi.responses import JSONResponse


class CompressionError(Exception):
    """Base class for failures inside a single compression run."""
    pass


class DecodeFailure(CompressionError):
    """Raised when source bytes cannot be turned into a raster surface."""
    pass


class EncodeFailure(CompressionError):
    """Raised when an encoder rejects the requested surface or quality."""
    pass


class UnsupportedMediaType(CompressionError):
    """
    Raised when an asset's media type belongs to no known family.

    This is informational only: the compressor passes the asset through
    unchanged instead of surfacing it to the caller.
    """

    def __init__(self, media_type: str):
        self.media_type = media_type
        super().__init__(f"Unsupported media type: {media_type or '<none>'}")


class UploadRejected(Exception):
    """
    Raised by the HTTP layer when an upload fails size or type checks.

    Args:
        message: Human readable reason
        status_code: HTTP status to answer with (400 or 413)
        allowed_types: Media types the endpoint accepts, for the hint list
    """

    def __init__(self, message: str, status_code: int = 400,
                 allowed_types: Optional[List[str]] = None):
        self.message = message
        self.status_code = status_code
        self.allowed_types = allowed_types or []
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for JSON serialization."""
        return {
            'error': 'Upload Rejected',
            'code': self.status_code,
            'message': self.message,
            'allowed_types': self.allowed_types,
        }


def upload_error_response(error: UploadRejected) -> JSONResponse:
    """Create standardized upload rejection response."""
    hints = []
    if error.status_code == 413:
        hints.append("Reduce the file size or split the upload into several requests")
    if error.allowed_types:
        hints.append(f"Accepted types: {', '.join(error.allowed_types)}")

    content = error.to_dict()
    content["hints"] = hints
    return JSONResponse(status_code=error.status_code, content=content)
