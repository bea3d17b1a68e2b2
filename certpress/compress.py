"""
certpress Adaptive Compressor

Shrinks certificate uploads to a size budget before they are stored. Each
asset above budget is decoded once and re-encoded along a fixed quality
ladder until an attempt fits or the ladder's floor is reached:

    image/*          JPEG at 0.90, 0.85, ... 0.30  (13 attempts at most)
    application/pdf  JPEG page in a 1200x848 PDF at 0.70 ... 0.30  (9 at most)

Compression is a best-effort optimization. Decode and encode failures,
timeouts and unknown media types all degrade to returning the original
asset; ``compress`` never raises for bad input.

``AdaptiveCompressor.run`` is the algorithm and emits no log records. The
``compress`` / ``compress_all`` callers turn its reports into structured
log events.

Example usage:
    import asyncio
    from certpress.compress import compress
    from certpress.models import Asset

    asset = Asset(data=open("award.jpg", "rb").read(), media_type="image/jpeg")
    smaller = asyncio.run(compress(asset, budget_kb=200))
"""

import asyncio
from typing import Callable, List, Optional, Sequence, Tuple

from certpress.codecs import (
    Encoder,
    JpegEncoder,
    PdfPageEncoder,
    PdfPageRasterizer,
    PillowRasterizer,
    Rasterizer,
)
from certpress.config import CompressionSettings, get_settings
from certpress.errors import UnsupportedMediaType
from certpress.logging import get_logger, log_batch_summary, log_compression_report
from certpress.models import (
    Asset,
    CompressionBudget,
    CompressionOutcome,
    CompressionReport,
    EncodeAttempt,
    MediaFamily,
)
from certpress.quality import DOCUMENT_LADDER, IMAGE_LADDER

logger = get_logger(__name__)

DEFAULT_BUDGET_KB = 200.0


class AdaptiveCompressor:
    """
    Bounded re-encode loop over injectable rasterizers and encoders.

    Args:
        image_rasterizer: Decoder for the image family
        image_encoder: Lossy encoder for the image family
        document_rasterizer: Decoder for the document family
        document_encoder: Encoder producing a document container
        image_ladder: Qualities tried for images, highest first
        document_ladder: Qualities tried for documents, highest first
        budget_kb: Budget used when a call does not pass one
        attempt_timeout_s: Deadline for each decode/encode step; None disables
    """

    def __init__(
        self,
        image_rasterizer: Optional[Rasterizer] = None,
        image_encoder: Optional[Encoder] = None,
        document_rasterizer: Optional[Rasterizer] = None,
        document_encoder: Optional[Encoder] = None,
        image_ladder: Sequence[float] = IMAGE_LADDER,
        document_ladder: Sequence[float] = DOCUMENT_LADDER,
        budget_kb: float = DEFAULT_BUDGET_KB,
        attempt_timeout_s: Optional[float] = None,
    ):
        if not image_ladder or not document_ladder:
            raise ValueError("Quality ladders must not be empty")
        self.image_rasterizer = image_rasterizer or PillowRasterizer()
        self.image_encoder = image_encoder or JpegEncoder()
        self.document_rasterizer = document_rasterizer or PdfPageRasterizer()
        self.document_encoder = document_encoder or PdfPageEncoder()
        self.image_ladder = tuple(image_ladder)
        self.document_ladder = tuple(document_ladder)
        self.budget_kb = CompressionBudget(target_kb=budget_kb).target_kb
        self.attempt_timeout_s = attempt_timeout_s

    @classmethod
    def from_settings(cls, settings: Optional[CompressionSettings] = None) -> "AdaptiveCompressor":
        """Build a compressor with real codecs from configuration."""
        settings = settings or get_settings()
        return cls(
            document_encoder=PdfPageEncoder(page_size=settings.page_size),
            image_ladder=settings.image_ladder,
            document_ladder=settings.document_ladder,
            budget_kb=settings.budget_kb,
            attempt_timeout_s=settings.attempt_timeout_s,
        )

    def _strategy(self, family: MediaFamily,
                  media_type: str = "") -> Tuple[Rasterizer, Encoder, Tuple[float, ...]]:
        if family == MediaFamily.IMAGE:
            return self.image_rasterizer, self.image_encoder, self.image_ladder
        if family == MediaFamily.DOCUMENT:
            return self.document_rasterizer, self.document_encoder, self.document_ladder
        raise UnsupportedMediaType(media_type)

    def _budget(self, budget_kb: Optional[float]) -> CompressionBudget:
        return CompressionBudget(target_kb=self.budget_kb if budget_kb is None else budget_kb)

    async def _step(self, func: Callable, *args):
        # Decode/encode run off the event loop; these are the only suspension points.
        call = asyncio.to_thread(func, *args)
        if self.attempt_timeout_s is None:
            return await call
        return await asyncio.wait_for(call, timeout=self.attempt_timeout_s)

    async def run(
        self,
        asset: Asset,
        budget_kb: Optional[float] = None,
        family: Optional[MediaFamily] = None,
    ) -> CompressionReport:
        """
        Compress one asset and describe what happened.

        Args:
            asset: Asset to shrink
            budget_kb: Target size in kilobytes; the compressor default if None
            family: Force an encode family instead of deriving it from the
                declared media type

        Returns:
            CompressionReport whose ``result`` is never larger than the input

        Raises:
            ValueError: If ``budget_kb`` is not positive
        """
        budget = self._budget(budget_kb)

        def report(outcome: CompressionOutcome, result: Asset = asset,
                   attempts: Tuple[EncodeAttempt, ...] = (), error: Optional[str] = None):
            return CompressionReport(
                original=asset, result=result, outcome=outcome,
                budget_bytes=budget.target_bytes, attempts=attempts, error=error,
            )

        if budget.fits(asset):
            return report(CompressionOutcome.UNDER_BUDGET)

        try:
            rasterizer, encoder, ladder = self._strategy(family or asset.family, asset.media_type)
        except UnsupportedMediaType as e:
            return report(CompressionOutcome.UNSUPPORTED, error=str(e))

        attempts: List[EncodeAttempt] = []
        encoded = None

        try:
            surface = await self._step(rasterizer.rasterize, asset.data)
            for quality in ladder:
                encoded = await self._step(encoder.encode, surface, quality)
                attempts.append(EncodeAttempt(quality=quality, byte_length=len(encoded)))
                if len(encoded) <= budget.target_bytes:
                    break
        except asyncio.TimeoutError:
            return report(CompressionOutcome.TIMED_OUT, attempts=tuple(attempts),
                          error=f"Step exceeded {self.attempt_timeout_s}s deadline")
        except Exception as e:
            return report(CompressionOutcome.FAILED, attempts=tuple(attempts),
                          error=f"{type(e).__name__}: {e}")

        if len(encoded) <= budget.target_bytes:
            return report(CompressionOutcome.COMPRESSED,
                          result=asset.replace_data(encoded, encoder.media_type),
                          attempts=tuple(attempts))

        # Floor reached without meeting the budget: keep whichever is smaller.
        if len(encoded) < asset.byte_length:
            result = asset.replace_data(encoded, encoder.media_type)
        else:
            result = asset
        return report(CompressionOutcome.BEST_EFFORT, result=result, attempts=tuple(attempts))

    async def run_all(self, assets: Sequence[Asset],
                      budget_kb: Optional[float] = None) -> List[CompressionReport]:
        """
        Compress assets concurrently, one report per input in input order.

        A failure escaping one element becomes a FAILED report for that
        element only; siblings are neither cancelled nor affected.
        """
        budget = self._budget(budget_kb)
        if not assets:
            return []

        results = await asyncio.gather(
            *(self.run(asset, budget.target_kb) for asset in assets),
            return_exceptions=True,
        )

        reports = []
        for asset, result in zip(assets, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                result = CompressionReport(
                    original=asset, result=asset, outcome=CompressionOutcome.FAILED,
                    budget_bytes=budget.target_bytes, error=f"{type(result).__name__}: {result}",
                )
            reports.append(result)
        return reports

    async def compress(self, asset: Optional[Asset], budget_kb: Optional[float] = None,
                       family: Optional[MediaFamily] = None) -> Optional[Asset]:
        """Return the compressed asset, or the original on any failure."""
        if asset is None:
            return None
        report = await self.run(asset, budget_kb, family=family)
        log_compression_report(logger, report)
        return report.result

    async def compress_all(self, assets: Optional[Sequence[Asset]],
                           budget_kb: Optional[float] = None) -> List[Asset]:
        """Compress every asset concurrently; output order matches input order."""
        if not assets:
            return []
        reports = await self.run_all(assets, budget_kb)
        for report in reports:
            log_compression_report(logger, report)
        log_batch_summary(logger, reports)
        return [report.result for report in reports]


_default_compressor: Optional[AdaptiveCompressor] = None


def get_compressor() -> AdaptiveCompressor:
    """Return the process-wide compressor built from environment settings."""
    global _default_compressor
    if _default_compressor is None:
        _default_compressor = AdaptiveCompressor.from_settings()
    return _default_compressor


def reset_compressor() -> None:
    """Drop the cached compressor so the next call re-reads settings."""
    global _default_compressor
    _default_compressor = None


async def compress(asset: Optional[Asset], budget_kb: Optional[float] = None) -> Optional[Asset]:
    """Compress a single asset, picking the family from its media type."""
    return await get_compressor().compress(asset, budget_kb)


async def compress_image(asset: Optional[Asset], budget_kb: Optional[float] = None) -> Optional[Asset]:
    """Compress an asset as an image regardless of its declared type."""
    return await get_compressor().compress(asset, budget_kb, family=MediaFamily.IMAGE)


async def compress_pdf(asset: Optional[Asset], budget_kb: Optional[float] = None) -> Optional[Asset]:
    """Compress an asset as a single-page PDF regardless of its declared type."""
    return await get_compressor().compress(asset, budget_kb, family=MediaFamily.DOCUMENT)


async def compress_all(assets: Optional[Sequence[Asset]],
                       budget_kb: Optional[float] = None) -> List[Asset]:
    """Compress many assets concurrently with the default compressor."""
    return await get_compressor().compress_all(assets, budget_kb)


def compress_file(path, budget_kb: Optional[float] = None,
                  media_type: Optional[str] = None) -> Asset:
    """
    Read a file and compress it synchronously.

    Intended for scripts outside an event loop; async callers should use
    ``compress`` directly.
    """
    return asyncio.run(compress(Asset.from_path(path, media_type), budget_kb))
