"""
Structured JSON logging infrastructure for certpress.

This module provides standardized JSON logging with request tracking and
turns compression reports into structured events, so the compressor itself
stays free of logging calls.

Example usage:
    >>> from certpress.logging import get_logger, setup_logging
    >>> setup_logging()
    >>> logger = get_logger(__name__)
    >>> logger.info("Upload received", extra={"request_id": "abc123"})
"""

import json
import logging
import sys
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Sequence

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from certpress.models import CompressionOutcome, CompressionReport

# Attributes every LogRecord carries; anything else came in through ``extra``
_RESERVED_ATTRS = frozenset([
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
    'module', 'lineno', 'funcName', 'created', 'msecs', 'relativeCreated',
    'thread', 'threadName', 'processName', 'process', 'exc_info', 'exc_text',
    'stack_info', 'taskName', 'message',
])


class JSONFormatter(logging.Formatter):
    """
    Custom JSON formatter for structured logging.

    Formats log records as JSON with consistent fields for log aggregation:
    timestamp, level, logger and message, followed by any ``extra`` fields.

    Example:
        >>> formatter = JSONFormatter()
        >>> handler = logging.StreamHandler()
        >>> handler.setFormatter(formatter)
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith('_'):
                log_entry[key] = value

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    FastAPI middleware for automatic request/response logging.

    Logs every request with status and timing and tags the response with an
    ``X-Request-ID`` header for correlation.

    Example:
        >>> from fastapi import FastAPI
        >>> app = FastAPI()
        >>> app.add_middleware(RequestLoggingMiddleware)
    """

    def __init__(self, app, logger_name: str = "certpress.requests"):
        super().__init__(app)
        self.logger = logging.getLogger(logger_name)

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = str(uuid.uuid4())[:8]
        request.state.request_id = request_id
        client_ip = self._get_client_ip(request)
        start_time = time.time()

        self.logger.info(
            f"Request started: {request.method} {request.url.path}",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "client_ip": client_ip,
            }
        )

        try:
            response = await call_next(request)
        except Exception as e:
            self.logger.error(
                f"Request failed: {request.method} {request.url.path}",
                extra={
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status": 500,
                    "duration_ms": int((time.time() - start_time) * 1000),
                    "client_ip": client_ip,
                    "error": str(e)
                },
                exc_info=True
            )
            raise

        self.logger.info(
            f"Request completed: {request.method} {request.url.path}",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "duration_ms": int((time.time() - start_time) * 1000),
                "client_ip": client_ip
            }
        )
        response.headers["X-Request-ID"] = request_id
        return response

    def _get_client_ip(self, request: Request) -> str:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip.strip()

        if request.client:
            return request.client.host

        return "unknown"


def setup_logging(
    level: str = "INFO",
    format_type: str = "json",
    logger_name: str = None,
    stream=None
) -> None:
    """
    Configure application-wide logging.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: Log format type ("json" or "text")
        logger_name: Specific logger to configure (None for root)
        stream: Output stream (defaults to stdout)

    Example:
        >>> setup_logging(level="DEBUG", format_type="text")
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    if format_type.lower() == "json":
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(formatter)
    handler.setLevel(numeric_level)

    logger = logging.getLogger(logger_name) if logger_name else logging.getLogger()
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(numeric_level)
    if logger_name:
        logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for a specific module."""
    return logging.getLogger(name)


def _kb(num_bytes: int) -> float:
    return round(num_bytes / 1024, 2)


def log_compression_report(logger: logging.Logger, report: CompressionReport) -> None:
    """
    Emit one structured event describing a compression run.

    Unsupported media is informational, failures and timeouts are warnings,
    everything else is logged at INFO.
    """
    extra = {
        "event": "compression",
        "outcome": report.outcome.value,
        "asset": report.original.filename,
        "media_type": report.original.media_type,
        "original_bytes": report.original.byte_length,
        "result_bytes": report.result.byte_length,
        "budget_bytes": report.budget_bytes,
        "attempts": len(report.attempts),
        "final_quality": report.final_quality,
    }

    outcome = report.outcome
    if outcome == CompressionOutcome.UNDER_BUDGET:
        logger.info(f"Size {_kb(report.original.byte_length)}KB - no compression needed", extra=extra)
    elif outcome == CompressionOutcome.UNSUPPORTED:
        logger.info(f"Unsupported file type: {report.original.media_type or '<none>'}", extra=extra)
    elif outcome in (CompressionOutcome.FAILED, CompressionOutcome.TIMED_OUT):
        extra["error"] = report.error
        logger.warning(f"Compression {outcome.value}, keeping original: {report.error}", extra=extra)
    else:
        logger.info(
            f"Compressed {_kb(report.original.byte_length)}KB to {_kb(report.result.byte_length)}KB "
            f"(quality: {report.final_quality:.2f})",
            extra=extra
        )


def log_batch_summary(logger: logging.Logger, reports: Sequence[CompressionReport]) -> None:
    """Emit aggregate original vs. compressed totals for a batch."""
    total_original = sum(r.original.byte_length for r in reports)
    total_compressed = sum(r.result.byte_length for r in reports)
    logger.info(
        f"Compression complete: {len(reports)} files, "
        f"{_kb(total_original)}KB -> {_kb(total_compressed)}KB",
        extra={
            "event": "compression_batch",
            "files": len(reports),
            "original_bytes": total_original,
            "compressed_bytes": total_compressed,
            "saved_bytes": total_original - total_compressed,
            "failed": sum(1 for r in reports if r.outcome == CompressionOutcome.FAILED),
        }
    )
