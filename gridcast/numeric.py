"""
gridcast/numeric.py

Small numeric helpers shared by the engine components.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal


def round_half_up(value: float, places: int = 1) -> float:
    """Round `value` to `places` decimals, halves away from zero.

    Built-in `round` uses banker's rounding on the binary value, so
    `round(0.25, 1)` gives 0.2; dashboard figures are expected to read 0.3.
    The float's shortest repr is rounded, so 2.675 rounds to 2.68.
    """
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def pct(part: float, whole: float) -> float | None:
    """Return `part / whole * 100`, or None when `whole` is not positive."""
    if whole <= 0:
        return None
    return part / whole * 100
