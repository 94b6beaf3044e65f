"""Fixed-point encoding of coverage targets.

Targets are persisted as non-negative integers on a ``SCALE`` of 100,000, so a
stored ``80000`` is the fraction ``0.8`` (80.00%). The display form is a
fraction normalised to two decimal percent-points.

Rounding is half-up everywhere so that ``84.5`` percent-points become ``85``
regardless of the float's parity.
"""

from __future__ import annotations

import math

SCALE = 100_000
NEAR_ZERO = 0.001

# hundredths of a percent-point per unit fraction
_HUNDREDTHS = 10_000
# stored units per percent-point
_PER_PERCENT = SCALE // 100


def round_half_up(value: float) -> int:
    # absorb float noise such as 84.49999999999999 before rounding
    return math.floor(round(value, 9) + 0.5)


def round_to_two_decimal_percent(value: float) -> float:
    """Round *value* to a whole unit and rescale by 1/100.

    Fed a count of hundredths of a percent-point this yields percent-points with
    two decimals; fed a percent-point value it yields the matching fraction.
    """
    return round_half_up(value) / 100


def decode(stored: int) -> float:
    """Return the display fraction for a *stored* target.

    Values at or below 0.1% are re-derived on the stored scale; this keeps
    very small configured targets from collapsing under the default rule.
    """
    if stored < 0:
        msg = f"stored target must be non-negative: {stored}"
        raise ValueError(msg)
    display = stored / SCALE
    if display <= NEAR_ZERO:
        return float(round_half_up(display * SCALE))
    return display


def encode(display: float) -> int:
    """Return the stored form of the *display* fraction."""
    if not math.isfinite(display) or display < 0:
        msg = f"coverage target must be a non-negative fraction: {display!r}"
        raise ValueError(msg)
    hundredths = round_half_up(display * _HUNDREDTHS)
    percent = round_to_two_decimal_percent(hundredths)
    return round_half_up(percent * _PER_PERCENT)


def to_percent(stored: int) -> float:
    """Return *stored* as percent-points with two decimals (``85250`` -> ``85.25``)."""
    if stored < 0:
        msg = f"stored target must be non-negative: {stored}"
        raise ValueError(msg)
    return round_to_two_decimal_percent(stored / (_PER_PERCENT / 100))


def from_percent(percent: float) -> int:
    """Return the stored form of *percent* percent-points (``80`` -> ``80000``)."""
    return encode(percent / 100)


def percent_points(fraction: float) -> int:
    """Return *fraction* as whole percent-points (``0.8451`` -> ``85``)."""
    return round_half_up(fraction * 100)


def from_percent_points(points: int) -> int:
    """Return the stored form of whole *points* (``85`` -> ``85000``)."""
    return points * _PER_PERCENT


__all__ = [
    "NEAR_ZERO",
    "SCALE",
    "decode",
    "encode",
    "from_percent",
    "from_percent_points",
    "percent_points",
    "round_half_up",
    "round_to_two_decimal_percent",
    "to_percent",
]
