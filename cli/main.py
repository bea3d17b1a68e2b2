"""
certpress CLI Main Module

Command-line interface for certpress using Typer.
Compresses certificate files on disk with the same compressor the web
upload path uses.
"""

import asyncio
import json
import math
import sys
from pathlib import Path
from typing import List, Optional, Set

import typer

from certpress.compress import AdaptiveCompressor
from certpress.config import get_settings
from certpress.logging import get_logger, log_batch_summary, log_compression_report, setup_logging
from certpress.models import Asset, CompressionOutcome, MediaFamily

logger = get_logger(__name__)

app = typer.Typer(
    name="certpress",
    help="certpress - Adaptive size-budget compression for certificate uploads",
    add_completion=False
)


def _output_path(source: Path, result: Asset, output_dir: Optional[Path], suffix: str,
                 taken: Set[Path]) -> Path:
    """
    Pick where a compressed copy goes, never reusing an input or an earlier output.

    Clashing names are numbered: ``a_compressed.jpg``, ``a_compressed_2.jpg``, ...
    """
    name = Path(result.filename or source.name)
    target_dir = output_dir or source.parent
    target = target_dir / f"{name.stem}{suffix}{name.suffix}"
    counter = 2
    while target.resolve() in taken:
        target = target_dir / f"{name.stem}{suffix}_{counter}{name.suffix}"
        counter += 1
    taken.add(target.resolve())
    return target


@app.command()
def compress(
    files: List[Path] = typer.Argument(..., help="Image or PDF files to compress"),
    budget_kb: Optional[float] = typer.Option(None, "--budget-kb", "-b", help="Target size in KB (default from settings)"),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", "-o", help="Directory for compressed copies (defaults to each file's directory)"),
    suffix: str = typer.Option("_compressed", "--suffix", help="Appended to each output file stem"),
    as_json: bool = typer.Option(False, "--json", help="Print a JSON report instead of text"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every compression event")
) -> None:
    """
    Compress files to a size budget, writing compressed copies next to them.

    Originals are never modified. Files that cannot be compressed are copied
    through unchanged.
    """
    settings = get_settings()
    setup_logging(level="INFO" if verbose else "WARNING", format_type=settings.log_format,
                  stream=sys.stderr)

    if budget_kb is not None and (not math.isfinite(budget_kb) or budget_kb <= 0):
        typer.echo("--budget-kb must be a positive number", err=True)
        raise typer.Exit(2)

    missing = [str(f) for f in files if not f.is_file()]
    if missing:
        typer.echo("Missing input files:", err=True)
        for name in missing:
            typer.echo(f"  - {name}", err=True)
        raise typer.Exit(1)

    if output_dir:
        output_dir.mkdir(parents=True, exist_ok=True)

    assets = [Asset.from_path(f) for f in files]
    compressor = AdaptiveCompressor.from_settings(settings)
    reports = asyncio.run(compressor.run_all(assets, budget_kb))
    for report in reports:
        log_compression_report(logger, report)
    log_batch_summary(logger, reports)

    taken = {f.resolve() for f in files}
    rows = []
    for source, report in zip(files, reports):
        target = _output_path(source, report.result, output_dir, suffix, taken)
        target.write_bytes(report.result.data)
        rows.append({
            "source": str(source),
            "output": str(target),
            "outcome": report.outcome.value,
            "original_bytes": report.original.byte_length,
            "result_bytes": report.result.byte_length,
            "attempts": len(report.attempts),
            "final_quality": report.final_quality,
        })

    if as_json:
        typer.echo(json.dumps(rows, indent=2))
        return

    for row in rows:
        mark = "✓" if row["outcome"] in (CompressionOutcome.COMPRESSED.value,
                                         CompressionOutcome.UNDER_BUDGET.value) else "•"
        typer.echo(
            f"{mark} {row['source']}: {row['original_bytes'] / 1024:.2f}KB -> "
            f"{row['result_bytes'] / 1024:.2f}KB ({row['outcome']})"
        )

    total_original = sum(r["original_bytes"] for r in rows)
    total_result = sum(r["result_bytes"] for r in rows)
    typer.echo(f"Original: {total_original / 1024:.2f}KB")
    typer.echo(f"Compressed: {total_result / 1024:.2f}KB")
    typer.echo(f"Saved: {(total_original - total_result) / 1024:.2f}KB")


@app.command()
def ladder(
    family: MediaFamily = typer.Option(MediaFamily.IMAGE, "--family", "-f", help="Media family (image or document)")
) -> None:
    """Show the quality values the compressor tries, highest first."""
    settings = get_settings()
    if family == MediaFamily.UNSUPPORTED:
        typer.echo("Unsupported media is passed through without re-encoding", err=True)
        raise typer.Exit(1)

    values = settings.image_ladder if family == MediaFamily.IMAGE else settings.document_ladder
    typer.echo(f"{family.value}: {len(values)} attempts")
    typer.echo(", ".join(f"{q:.2f}" for q in values))


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
