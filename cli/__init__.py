"""
certpress CLI Module

Command-line interface for certpress using Typer.

Available commands:
- compress: Shrink one or more certificate files to a size budget
- ladder: Show the quality values tried for each media family

Example usage:
    from cli.main import app as cli_app

    # Or use directly from command line:
    # certpress compress award.png --budget-kb 150 --output-dir out/
"""

__version__ = "0.1.0"
__all__ = ["app"]
