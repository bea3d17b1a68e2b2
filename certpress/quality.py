"""
Quality ladders for the bounded re-encode loop.

Ladders are computed in integer hundredths so the final rung is exactly
the floor and the number of attempts is fixed ahead of time.

Example usage:
    >>> quality_ladder(0.7)
    (0.7, 0.65, 0.6, 0.55, 0.5, 0.45, 0.4, 0.35, 0.3)
"""

from typing import Tuple

QUALITY_FLOOR = 0.30
QUALITY_STEP = 0.05
IMAGE_START_QUALITY = 0.90
DOCUMENT_START_QUALITY = 0.70


def _hundredths(value: float) -> int:
    return int(round(value * 100))


def quality_ladder(start: float,
                   floor: float = QUALITY_FLOOR,
                   step: float = QUALITY_STEP) -> Tuple[float, ...]:
    """
    Build the descending sequence of qualities tried by the compressor.

    Args:
        start: First quality attempted, in (0, 1]
        floor: Last quality attempted; included when reachable by whole steps
        step: Decrement between rungs

    Returns:
        Strictly decreasing tuple beginning at ``start``. A start below the
        floor yields a single rung at ``start``.

    Raises:
        ValueError: If any argument is outside (0, 1]
    """
    for name, value in (("start", start), ("floor", floor), ("step", step)):
        if not 0 < value <= 1:
            raise ValueError(f"{name} must be in (0, 1], got {value}")

    top, bottom, delta = _hundredths(start), _hundredths(floor), _hundredths(step)
    if delta <= 0:
        raise ValueError(f"step must be at least 0.01, got {step}")
    if top <= bottom:
        return (top / 100,)

    return tuple(q / 100 for q in range(top, bottom - 1, -delta))


IMAGE_LADDER = quality_ladder(IMAGE_START_QUALITY)
DOCUMENT_LADDER = quality_ladder(DOCUMENT_START_QUALITY)
