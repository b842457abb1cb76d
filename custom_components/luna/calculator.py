"""Lunar phase arithmetic.

Pure functions turning an instant into Julian Date, lunar age, phase index,
illumination and an approximate Earth-Moon distance. Nothing here performs
I/O or keeps state, so every function is safe to call from the event loop.

The model is a mean-motion one: age advances uniformly through the synodic
month from a reference new moon, and distance follows a single cosine over
the anomalistic month. It is good to a few percent on illumination and
roughly +/-20000 km on distance; it is not an ephemeris.
"""

from __future__ import annotations

from datetime import UTC, datetime
import math

from .const import (
    ANOMALISTIC_MONTH,
    AVERAGE_LUNAR_DISTANCE,
    LUNAR_DISTANCE_AMPLITUDE,
    LUNAR_EPOCH_JD,
    SYNODIC_MONTH,
)
from .models import MoonSnapshot
from .phases import PHASE_COUNT, name_for

_PHASE_LENGTH = SYNODIC_MONTH / PHASE_COUNT


class CalculationError(ValueError):
    """Raised for inputs the calculator cannot represent (programming error)."""


def _require_finite(value: float, what: str) -> float:
    """Return ``value`` as float or raise CalculationError if it is not finite."""
    try:
        x = float(value)
    except (TypeError, ValueError) as err:
        raise CalculationError(f"{what} is not a number: {value!r}") from err
    if not math.isfinite(x):
        raise CalculationError(f"{what} is not finite: {value!r}")
    return x


def _as_utc(instant: datetime) -> datetime:
    """Return ``instant`` in UTC; naive datetimes are taken as UTC."""
    if not isinstance(instant, datetime):
        raise CalculationError(f"instant must be a datetime, got {type(instant).__name__}")
    if instant.tzinfo is None:
        return instant.replace(tzinfo=UTC)
    return instant.astimezone(UTC)


def to_julian_date(instant: datetime) -> float:
    """Convert an instant to a Julian Date (Meeus, Astronomical Algorithms ch. 7).

    Args:
        instant: Aware datetime, or naive datetime interpreted as UTC.

    Returns:
        Julian Date as a float.
    """
    utc = _as_utc(instant)
    year = utc.year
    month = utc.month
    day_fraction = (
        utc.hour
        + utc.minute / 60.0
        + (utc.second + utc.microsecond / 1e6) / 3600.0
    ) / 24.0

    # January and February count as months 13 and 14 of the previous year
    if month <= 2:
        year -= 1
        month += 12

    # Gregorian calendar correction
    a = math.floor(year / 100)
    b = 2 - a + math.floor(a / 4)

    return (
        math.floor(365.25 * (year + 4716))
        + math.floor(30.6001 * (month + 1))
        + utc.day
        + day_fraction
        + b
        - 1524.5
    )


def age_from_julian_date(jd: float) -> float:
    """Return the lunar age in days, in [0, SYNODIC_MONTH), for a Julian Date."""
    jd = _require_finite(jd, "julian date")
    age = (jd - LUNAR_EPOCH_JD) % SYNODIC_MONTH
    if age < 0:
        age += SYNODIC_MONTH
    # float modulo of a tiny negative value can round up to the divisor
    if age >= SYNODIC_MONTH:
        age = 0.0
    return age


def lunar_age(instant: datetime) -> float:
    """Return days elapsed since the last new moon at ``instant``."""
    return age_from_julian_date(to_julian_date(instant))


def phase_index(age: float) -> int:
    """Map a lunar age onto one of eight equal-width phase bins.

    Bins are shifted by half a bin so New Moon (index 0) is centered on age 0.
    Each bin is half-open, ``[lower, upper)``.

    Args:
        age: Lunar age in days; values outside one cycle are wrapped.

    Returns:
        Phase index in [0, 7].
    """
    age = _require_finite(age, "age")
    adjusted = (age + _PHASE_LENGTH / 2) % SYNODIC_MONTH
    return min(int(adjusted // _PHASE_LENGTH), PHASE_COUNT - 1)


def illumination(age: float) -> float:
    """Return the illuminated fraction of the disk in percent (0..100)."""
    age = _require_finite(age, "age")
    return (1 - math.cos(2 * math.pi * age / SYNODIC_MONTH)) / 2 * 100


def distance(age: float) -> float:
    """Return an approximate Earth-Moon distance in km.

    Models the elliptical variation over the anomalistic month as a single
    cosine around the mean distance. Perigee and apogee drift against the
    synodic cycle, so this ignores the real orbit's eccentricity changes and
    solar perturbations. Range is 363400..405400 km.
    """
    age = _require_finite(age, "age")
    cycle = (age / ANOMALISTIC_MONTH) % 1.0
    return AVERAGE_LUNAR_DISTANCE - LUNAR_DISTANCE_AMPLITUDE * math.cos(2 * math.pi * cycle)


def is_waxing(age: float) -> bool:
    """Return True while the lit fraction grows (first half of the cycle)."""
    age = _require_finite(age, "age") % SYNODIC_MONTH
    return age < SYNODIC_MONTH / 2


def snapshot_from_age(age: float, *, source: str = "local", computed_at: datetime | None = None) -> MoonSnapshot:
    """Build a MoonSnapshot from a lunar age alone."""
    idx = phase_index(age)
    return MoonSnapshot(
        phase_index=idx,
        phase_name=name_for(idx),
        illumination_percent=illumination(age),
        age_days=age,
        distance_km=distance(age),
        source=source,
        computed_at=computed_at,
    )


def calculate(instant: datetime) -> MoonSnapshot:
    """Compute the full lunar snapshot for ``instant``."""
    return snapshot_from_age(lunar_age(instant), source="local", computed_at=_as_utc(instant))
