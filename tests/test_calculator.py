# tests/test_calculator.py
from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone
import math

from hypothesis import given, settings, strategies as st
import pytest

from custom_components.luna import calculator as calc
from custom_components.luna.const import SYNODIC_MONTH

from .conftest import FULL_MOON_2000, NEW_MOON_2000

PHASE_LENGTH = SYNODIC_MONTH / 8

instants = st.datetimes(
    min_value=datetime(1700, 1, 1),
    max_value=datetime(2300, 12, 31),
    timezones=st.just(UTC),
)


def test_julian_date_known_values():
    # Meeus example 7.a: 1957 Oct 4.81
    assert calc.to_julian_date(datetime(1957, 10, 4, 19, 26, 24, tzinfo=UTC)) == pytest.approx(2436116.31)
    # J2000.0
    assert calc.to_julian_date(datetime(2000, 1, 1, 12, tzinfo=UTC)) == pytest.approx(2451545.0)


def test_julian_date_respects_timezone_and_naive_is_utc():
    aware = datetime(2024, 3, 1, 12, tzinfo=timezone(timedelta(hours=2)))
    utc = datetime(2024, 3, 1, 10, tzinfo=UTC)
    naive = datetime(2024, 3, 1, 10)
    assert calc.to_julian_date(aware) == pytest.approx(calc.to_julian_date(utc))
    assert calc.to_julian_date(naive) == calc.to_julian_date(utc)


def test_reference_new_moon():
    age = calc.lunar_age(NEW_MOON_2000)
    assert age == pytest.approx(0.0, abs=0.2)
    assert calc.phase_index(age) == 0
    assert calc.calculate(NEW_MOON_2000).phase_name == "New Moon"
    assert calc.illumination(age) == pytest.approx(0.0, abs=0.5)


def test_reference_full_moon():
    snap = calc.calculate(FULL_MOON_2000)
    assert snap.phase_index == 4
    assert snap.phase_name == "Full Moon"
    assert snap.illumination_percent == pytest.approx(100.0, abs=3.0)


def test_age_before_epoch_is_non_negative():
    age = calc.lunar_age(datetime(1999, 12, 31, tzinfo=UTC))
    assert 0.0 <= age < SYNODIC_MONTH
    # 6.6 days before the epoch new moon
    assert age == pytest.approx(SYNODIC_MONTH - 6.6, abs=0.01)


def test_age_from_julian_date_wraps_whole_cycles():
    assert calc.age_from_julian_date(2451550.1) == 0.0
    age = calc.age_from_julian_date(2451550.1 - 10 * SYNODIC_MONTH)
    assert 0.0 <= age < SYNODIC_MONTH
    # ten whole cycles back lands on (or a rounding error away from) new moon
    assert min(age, SYNODIC_MONTH - age) < 1e-6


@settings(max_examples=300)
@given(instants)
def test_age_always_within_cycle(instant):
    age = calc.lunar_age(instant)
    assert 0.0 <= age < SYNODIC_MONTH


@settings(max_examples=300)
@given(st.floats(min_value=-1e6, max_value=1e6, allow_nan=False))
def test_phase_index_range(age):
    assert 0 <= calc.phase_index(age) <= 7


def test_phase_index_bins_are_equal_and_monotonic():
    steps = 8000
    seen = []
    previous = calc.phase_index(0.0)
    for i in range(steps):
        age = i * SYNODIC_MONTH / steps
        idx = calc.phase_index(age)
        # non-decreasing modulo 8: either same bin or the next one
        assert idx in (previous, (previous + 1) % 8)
        previous = idx
        seen.append(idx)
    counts = [seen.count(i) for i in range(8)]
    assert max(counts) - min(counts) <= 2


def test_phase_index_boundaries_are_half_open():
    # the Waxing Crescent bin starts exactly half a bin after new moon
    lower = PHASE_LENGTH / 2
    assert calc.phase_index(lower - 1e-9) == 0
    assert calc.phase_index(lower) == 1
    # the last half bin belongs to New Moon again
    assert calc.phase_index(SYNODIC_MONTH - lower + 1e-9) == 0
    assert calc.phase_index(SYNODIC_MONTH - lower - 1e-9) == 7


def test_illumination_extremes():
    assert calc.illumination(0.0) == 0.0
    assert calc.illumination(SYNODIC_MONTH / 2) == pytest.approx(100.0)
    assert calc.illumination(SYNODIC_MONTH / 4) == pytest.approx(50.0)


@given(st.floats(min_value=0.0, max_value=SYNODIC_MONTH, allow_nan=False))
def test_illumination_symmetric(age):
    assert calc.illumination(age) == pytest.approx(calc.illumination(SYNODIC_MONTH - age), abs=1e-9)
    assert 0.0 <= calc.illumination(age) <= 100.0


@given(st.floats(min_value=-1e4, max_value=1e4, allow_nan=False))
def test_distance_range(age):
    assert 363400.0 - 1e-6 <= calc.distance(age) <= 405400.0 + 1e-6


def test_distance_perigee_at_anomalistic_origin():
    assert calc.distance(0.0) == pytest.approx(363400.0)
    assert calc.distance(27.55455 / 2) == pytest.approx(405400.0)


def test_is_waxing():
    assert calc.is_waxing(1.0)
    assert calc.is_waxing(14.0)
    assert not calc.is_waxing(15.0)
    assert not calc.is_waxing(29.0)


@pytest.mark.parametrize("bad", [math.nan, math.inf, -math.inf, "x", None])
def test_non_finite_age_is_calculation_error(bad):
    with pytest.raises(calc.CalculationError):
        calc.phase_index(bad)


def test_non_datetime_instant_is_calculation_error():
    with pytest.raises(calc.CalculationError):
        calc.lunar_age("2000-01-06")


def test_calculate_snapshot_fields():
    snap = calc.calculate(NEW_MOON_2000 + timedelta(days=7.4))
    assert snap.phase_name == "First Quarter"
    assert snap.source == "local"
    assert snap.computed_at == NEW_MOON_2000 + timedelta(days=7.4)
    assert snap.illumination_percent == pytest.approx(50.0, abs=5.0)
