"""
certpress FastAPI Application

HTTP entry point for shrinking certificate artwork before it is pinned to
storage. Uploads are validated (size and type), compressed to the requested
budget, and returned to the caller.

Example usage:
    # Start the server
    uvicorn app:app --host 0.0.0.0 --port 8000 --reload

    # Health check
    curl http://localhost:8000/health

    # Compress one certificate to 150KB
    curl -F file=@award.png -F budget_kb=150 http://localhost:8000/api/compress -o out.jpg
"""

import io
import math
import os
import zipfile
from typing import Any, Dict, List, Optional, Set
from urllib.parse import quote

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
import uvicorn

from certpress import __version__
from certpress.compress import AdaptiveCompressor
from certpress.config import ALLOWED_UPLOAD_TYPES, CompressionSettings, get_settings
from certpress.errors import UploadRejected, upload_error_response
from certpress.logging import (
    RequestLoggingMiddleware,
    get_logger,
    log_batch_summary,
    log_compression_report,
    setup_logging,
)
from certpress.media import detect_media_type
from certpress.models import Asset, CompressionReport

settings = get_settings()
setup_logging(level=settings.log_level, format_type=settings.log_format)
logger = get_logger(__name__)


def validate_file_upload(content: bytes, filename: Optional[str], declared_type: Optional[str],
                         max_upload_bytes: int) -> Asset:
    """
    Validate uploaded bytes for size and media type.

    Args:
        content: Raw upload body
        filename: Client supplied filename
        declared_type: Client supplied content type
        max_upload_bytes: Largest accepted upload

    Returns:
        Asset ready for compression

    Raises:
        UploadRejected: If the upload is empty, too large, or of a disallowed type
    """
    if not content:
        raise UploadRejected("No file provided", status_code=400)

    if len(content) > max_upload_bytes:
        raise UploadRejected(
            f"File size ({len(content) / 1024 / 1024:.1f}MB) exceeds "
            f"{max_upload_bytes / 1024 / 1024:.0f}MB limit",
            status_code=413
        )

    safe_name = os.path.basename(filename) if filename else None
    media_type = detect_media_type(content, safe_name, declared_type)
    if media_type not in ALLOWED_UPLOAD_TYPES:
        raise UploadRejected(
            f"Invalid file type: {media_type}. Only JPEG, PNG, and PDF are allowed",
            status_code=400,
            allowed_types=list(ALLOWED_UPLOAD_TYPES)
        )

    return Asset(data=content, media_type=media_type, filename=safe_name)


def _size_headers(reports: List[CompressionReport]) -> Dict[str, str]:
    return {
        "X-Original-Size": str(sum(r.original.byte_length for r in reports)),
        "X-Compressed-Size": str(sum(r.result.byte_length for r in reports)),
    }


def content_disposition(filename: str) -> str:
    """
    Build an attachment header that survives non-ASCII filenames.

    Header values are latin-1 on the wire, so the real name travels in the
    RFC 5987 ``filename*`` parameter and ``filename`` carries an ASCII stand-in.
    """
    base, dot, ext = filename.rpartition(".")
    if not dot:
        base, ext = filename, ""

    def ascii_only(text: str) -> str:
        return text.encode("ascii", "ignore").decode("ascii").replace('"', "").replace("\\", "")

    fallback_base = ascii_only(base).strip() or "download"
    fallback = f"{fallback_base}.{ascii_only(ext)}" if ascii_only(ext) else fallback_base
    if fallback == filename:
        return f'attachment; filename="{filename}"'
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


def _unique_member_name(name: str, used_names: Set[str], counter: int) -> str:
    # numbered prefixes may themselves collide with uploaded names
    candidate = name
    while candidate in used_names:
        candidate = f"{counter}_{name}"
        counter += 1
    return candidate


def create_app(app_settings: Optional[CompressionSettings] = None,
               compressor: Optional[AdaptiveCompressor] = None) -> FastAPI:
    """
    Create and configure the FastAPI application instance.

    Args:
        app_settings: Settings to use instead of the environment
        compressor: Compressor to use instead of one built from settings

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    app_settings = app_settings or settings
    compressor = compressor or AdaptiveCompressor.from_settings(app_settings)

    tags_metadata = [
        {"name": "compress", "description": "Certificate asset compression"},
        {"name": "health", "description": "System health and status endpoints"},
    ]

    application = FastAPI(
        title="certpress",
        description="Adaptive size-budget compression for certificate uploads",
        version=__version__,
        openapi_tags=tags_metadata,
    )
    application.state.settings = app_settings
    application.state.compressor = compressor

    application.add_middleware(RequestLoggingMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        expose_headers=["X-Original-Size", "X-Compressed-Size", "X-Compression-Outcome", "X-Request-ID"],
    )

    @application.exception_handler(UploadRejected)
    async def upload_rejected_handler(request: Request, exc: UploadRejected) -> JSONResponse:
        logger.warning(f"Upload rejected: {exc.message}", extra={"status": exc.status_code})
        return upload_error_response(exc)

    def _budget(budget_kb: Optional[float]) -> float:
        if budget_kb is None:
            return app_settings.budget_kb
        if not math.isfinite(budget_kb) or budget_kb <= 0:
            raise UploadRejected("budget_kb must be a positive number", status_code=400)
        return budget_kb

    @application.get("/health", tags=["health"])
    async def health_check() -> JSONResponse:
        """
        Health check endpoint for monitoring and load balancer checks.

        Example:
            >>> # GET /health
            >>> {"status": "healthy", "service": "certpress", "version": "0.1.0"}
        """
        health_data: Dict[str, Any] = {
            "status": "healthy",
            "service": "certpress",
            "version": __version__,
            "budget_kb": app_settings.budget_kb,
        }
        return JSONResponse(content=health_data)

    @application.post("/api/compress", tags=["compress"])
    async def compress_upload(
        file: UploadFile = File(...),
        budget_kb: Optional[float] = Form(None),
    ) -> Response:
        """
        Compress a single uploaded certificate asset.

        The body of the response is the compressed asset (or the original
        when compression was not needed or not possible).
        """
        content = await file.read()
        asset = validate_file_upload(content, file.filename, file.content_type,
                                     app_settings.max_upload_bytes)
        report = await compressor.run(asset, _budget(budget_kb))
        log_compression_report(logger, report)

        headers = _size_headers([report])
        headers["X-Compression-Outcome"] = report.outcome.value
        if report.result.filename:
            headers["Content-Disposition"] = content_disposition(report.result.filename)
        return Response(content=report.result.data, media_type=report.result.media_type, headers=headers)

    @application.post("/api/compress/batch", tags=["compress"])
    async def compress_batch(
        files: List[UploadFile] = File(...),
        budget_kb: Optional[float] = Form(None),
    ) -> Response:
        """
        Compress several uploads concurrently and return them as a ZIP archive.

        Archive members keep upload order; a failing file is stored as uploaded.
        """
        assets = []
        for index, upload in enumerate(files):
            content = await upload.read()
            asset = validate_file_upload(content, upload.filename, upload.content_type,
                                         app_settings.max_upload_bytes)
            if not asset.filename:
                asset = Asset(data=asset.data, media_type=asset.media_type, filename=f"file_{index + 1}")
            assets.append(asset)

        reports = await compressor.run_all(assets, _budget(budget_kb))
        for report in reports:
            log_compression_report(logger, report)
        log_batch_summary(logger, reports)

        buf = io.BytesIO()
        used_names = set()
        with zipfile.ZipFile(buf, "w", zipfile.ZIP_STORED) as archive:
            for index, report in enumerate(reports):
                name = report.result.filename
                name = _unique_member_name(name, used_names, index + 1)
                used_names.add(name)
                archive.writestr(name, report.result.data)

        headers = _size_headers(reports)
        headers["Content-Disposition"] = 'attachment; filename="compressed.zip"'
        return Response(content=buf.getvalue(), media_type="application/zip", headers=headers)

    return application


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "app:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "8000")),
        reload=False,
    )
