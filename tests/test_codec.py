from __future__ import annotations

import math

import pytest

from ratchetcov.model import codec


@pytest.mark.parametrize(
    ("stored", "expected"),
    [
        (80_000, 0.8),
        (100_000, 1.0),
        (85_250, 0.8525),
        (101, 0.00101),
    ],
)
def test_decode_scales_stored_value(stored: int, expected: float) -> None:
    assert math.isclose(codec.decode(stored), expected)


@pytest.mark.parametrize("stored", [0, 1, 50, 100])
def test_decode_near_zero_rederives_on_stored_scale(stored: int) -> None:
    assert codec.decode(stored) == float(stored)


def test_decode_branches_are_exclusive() -> None:
    for stored in range(200):
        plain = stored / codec.SCALE
        near_zero = plain <= codec.NEAR_ZERO
        decoded = codec.decode(stored)
        if near_zero:
            assert decoded == float(stored)
        else:
            assert decoded == plain


def test_decode_rejects_negative() -> None:
    with pytest.raises(ValueError, match="non-negative"):
        codec.decode(-1)


@pytest.mark.parametrize(
    ("display", "stored"),
    [
        (0.8, 80_000),
        (0.85, 85_000),
        (0.8525, 85_250),
        (0.85254, 85_250),
        (0.85255, 85_260),
        (1.0, 100_000),
        (0.0, 0),
    ],
)
def test_encode_keeps_two_decimal_percent(display: float, stored: int) -> None:
    assert codec.encode(display) == stored


@pytest.mark.parametrize("bad", [-0.1, math.nan, math.inf])
def test_encode_rejects_invalid(bad: float) -> None:
    with pytest.raises(ValueError, match="non-negative fraction"):
        codec.encode(bad)


def test_round_trip_is_exact_on_two_decimal_grid() -> None:
    for stored in range(110, 100_001, 10):
        assert codec.encode(codec.decode(stored)) == stored
        assert codec.decode(codec.encode(codec.decode(stored))) == codec.decode(stored)


def test_round_trip_drift_stays_within_two_decimal_percent() -> None:
    for stored in range(101, 2_000, 7):
        assert abs(codec.encode(codec.decode(stored)) - stored) <= 5


def test_round_half_up_ignores_float_noise() -> None:
    assert codec.round_half_up(84.5) == 85
    assert codec.round_half_up(0.845 * 100) == 85
    assert codec.round_half_up(85.49) == 85


def test_round_to_two_decimal_percent() -> None:
    assert codec.round_to_two_decimal_percent(8525.0) == 85.25
    assert codec.round_to_two_decimal_percent(80) == 0.8


def test_percent_conversions() -> None:
    assert codec.to_percent(85_250) == 85.25
    assert codec.from_percent(70) == 70_000
    assert codec.from_percent(70.5) == 70_500
    assert codec.percent_points(0.8451) == 85
    assert codec.percent_points(0.845) == 85
    assert codec.from_percent_points(85) == 85_000
