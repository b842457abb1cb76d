"""Moon data sources.

Every source answers the same question, "what does the Moon look like at
this instant?", and returns a MoonSnapshot. Shape-specific parsing stays
inside each source; callers only ever see MoonSnapshot or DataUnavailable.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import asyncio
from collections.abc import Awaitable, Callable, Mapping
from datetime import UTC, datetime, tzinfo
import logging
import math
from typing import Any

import aiohttp
from skyfield import almanac

from .calculator import CalculationError, calculate, phase_index
from .const import (
    FARMSENSE_URL,
    REQUEST_TIMEOUT,
    SOURCE_EPHEMERIS,
    SOURCE_FARMSENSE,
    SOURCE_LOCAL,
    SOURCE_TIMEANDDATE,
    SYNODIC_MONTH,
    TIMEANDDATE_URL,
    USER_AGENT,
)
from .models import MoonSnapshot
from .phases import PHASE_COUNT, index_of, name_for, normalize_phase_name

# Type aliases to improve readability where the 3rd-party library does not expose stable typing.
type Ephemeris = Any
type Timescale = Any
type EphemerisLoader = Callable[[], tuple[Ephemeris, Timescale]]
type BlockingRunner = Callable[..., Awaitable[Any]]

# Failures that mean "no data this tick" rather than a bug in this module.
_RECOVERABLE_HTTP_ERRORS: tuple[type[Exception], ...] = (
    aiohttp.ClientError,
    asyncio.TimeoutError,
    ValueError,
)
_RECOVERABLE_EPHEMERIS_ERRORS: tuple[type[Exception], ...] = (
    OSError,
    ValueError,
    RuntimeError,
    KeyError,
    ArithmeticError,
)

_LOGGER = logging.getLogger(__name__)


class DataUnavailable(Exception):
    """No usable lunar data could be obtained for this refresh."""


class MoonDataSource(ABC):
    """Common contract of all data sources."""

    kind: str = ""

    @abstractmethod
    async def async_fetch(self, instant: datetime) -> MoonSnapshot:
        """Return the snapshot for ``instant``.

        Raises:
            DataUnavailable: When the source cannot produce data this time.
        """

    async def async_close(self) -> None:
        """Release resources held by the source."""


class LocalMoonDataSource(MoonDataSource):
    """Mean-motion calculation; always available."""

    kind = SOURCE_LOCAL

    async def async_fetch(self, instant: datetime) -> MoonSnapshot:
        return calculate(instant)


# ---------- Remote payload helpers ----------


def _unwrap(payload: Any) -> Mapping[str, Any]:
    """Return the record from an array-wrapped or bare JSON object."""
    if isinstance(payload, list):
        if not payload:
            raise DataUnavailable("empty response")
        payload = payload[0]
    if not isinstance(payload, Mapping):
        raise DataUnavailable(f"unexpected payload type {type(payload).__name__}")
    return payload


def _number(record: Mapping[str, Any], key: str) -> float:
    """Return ``record[key]`` as a finite float."""
    raw = record.get(key)
    if raw is None or isinstance(raw, bool):
        raise DataUnavailable(f"missing field {key!r}")
    try:
        value = float(raw)
    except (TypeError, ValueError) as err:
        raise DataUnavailable(f"field {key!r} is not numeric: {raw!r}") from err
    if not math.isfinite(value):
        raise DataUnavailable(f"field {key!r} is not finite: {raw!r}")
    return value


def _wrap_age(age: float) -> float:
    age = age % SYNODIC_MONTH
    return 0.0 if age >= SYNODIC_MONTH else age


def _clamp_percent(pct: float) -> float:
    return max(0.0, min(100.0, pct))


class RemoteMoonDataSource(MoonDataSource):
    """One GET per refresh against a phase-data API.

    No retries are attempted; the next scheduled refresh is the retry.
    """

    default_url: str = ""

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        *,
        base_url: str | None = None,
        close_session: bool | None = None,
        timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        """Initialize the source.

        Args:
            session: Session to use. When omitted one is created on first use.
            base_url: Endpoint override.
            close_session: Whether async_close() closes the session. Defaults to
                True when the session is created here.
            timeout: Total request timeout in seconds.
        """
        self._session = session
        self._close_session = session is None if close_session is None else close_session
        self._base_url = base_url or self.default_url
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout, headers={"User-Agent": USER_AGENT}
            )
            self._close_session = True
        return self._session

    @abstractmethod
    def _params(self, instant: datetime) -> dict[str, str]:
        """Query parameters identifying ``instant`` for this API."""

    @abstractmethod
    def _parse(self, payload: Any, instant: datetime) -> MoonSnapshot:
        """Convert a decoded JSON payload into a snapshot."""

    async def async_fetch(self, instant: datetime) -> MoonSnapshot:
        session = self._ensure_session()
        params = self._params(instant)
        try:
            async with session.get(
                self._base_url, params=params, timeout=self._timeout
            ) as resp:
                if resp.status != 200:
                    raise DataUnavailable(f"HTTP {resp.status}")
                payload = await resp.json(content_type=None)
        except _RECOVERABLE_HTTP_ERRORS as err:
            raise DataUnavailable(repr(err)) from err
        _LOGGER.debug("%s payload for %s: %r", self.kind, params, payload)
        return self._parse(payload, instant)

    async def async_close(self) -> None:
        if self._session is not None and self._close_session and not self._session.closed:
            await self._session.close()
        self._session = None


class FarmsenseDataSource(RemoteMoonDataSource):
    """Farmsense-style API: ``?d=<unix seconds>``, capitalized fields."""

    kind = SOURCE_FARMSENSE
    default_url = FARMSENSE_URL

    def _params(self, instant: datetime) -> dict[str, str]:
        return {"d": str(int(instant.timestamp()))}

    def _parse(self, payload: Any, instant: datetime) -> MoonSnapshot:
        record = _unwrap(payload)

        error = record.get("Error", 0)
        if error not in (0, "0", None):
            raise DataUnavailable(
                f"API error {error}: {record.get('ErrorMsg', 'unknown')}"
            )

        age = _wrap_age(_number(record, "Age"))
        # Illumination is a 0..1 fraction here
        illum = _clamp_percent(_number(record, "Illumination") * 100.0)
        dist = _number(record, "Distance")

        name = normalize_phase_name(record.get("Phase"))
        if name is None:
            _LOGGER.debug("Unrecognized phase %r, deriving from age", record.get("Phase"))
            idx = phase_index(age)
            name = name_for(idx)
        else:
            idx = index_of(name) or 0

        return MoonSnapshot(
            phase_index=idx,
            phase_name=name,
            illumination_percent=illum,
            age_days=age,
            distance_km=dist,
            source=self.kind,
            computed_at=instant,
        )


class TimeAndDateDataSource(RemoteMoonDataSource):
    """TimeAndDate-style API: ``?iso=<YYYY-MM-DD>``, abbreviated fields."""

    kind = SOURCE_TIMEANDDATE
    default_url = TIMEANDDATE_URL

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        *,
        tz: tzinfo | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(session, **kwargs)
        self._tz = tz or UTC

    def _params(self, instant: datetime) -> dict[str, str]:
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=UTC)
        return {"iso": instant.astimezone(self._tz).date().isoformat()}

    def _parse(self, payload: Any, instant: datetime) -> MoonSnapshot:
        record = _unwrap(payload)

        raw_phase = _number(record, "phase")
        if not raw_phase.is_integer() or not 0 <= raw_phase < PHASE_COUNT:
            raise DataUnavailable(f"phase out of range: {record.get('phase')!r}")
        idx = int(raw_phase)

        return MoonSnapshot(
            phase_index=idx,
            phase_name=name_for(idx),
            illumination_percent=_clamp_percent(_number(record, "illum")),
            age_days=_wrap_age(_number(record, "age")),
            distance_km=_number(record, "dist"),
            source=self.kind,
            computed_at=instant,
        )


# ---------- Skyfield ephemeris ----------


def _moon_illumination_percentage(eph: Ephemeris, t: Any) -> float:
    """Compute Moon illumination in percent at given time.

    Args:
        eph: Loaded ephemeris.
        t: Skyfield Time.

    Returns:
        Moon illuminated fraction in percent (0..100).
    """
    earth = eph["earth"]
    moon_app = earth.at(t).observe(eph["moon"]).apparent()
    frac = moon_app.fraction_illuminated(eph["sun"])
    return float(frac * 100.0)


def _geocentric_distance_km(eph: Ephemeris, t: Any) -> float:
    """Return geocentric Earth-Moon distance at time t in kilometers."""
    return float(eph["earth"].at(t).observe(eph["moon"]).distance().km)


def ephemeris_snapshot(eph: Ephemeris, ts: Timescale, instant: datetime) -> MoonSnapshot:
    """Compute a snapshot from a JPL ephemeris.

    Age is derived from the Sun-Moon ecliptic elongation, so phase names line
    up with the local calculator's bins while illumination and distance come
    from the actual geometry.
    """
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=UTC)
    t = ts.from_datetime(instant)
    elongation = float(almanac.moon_phase(eph, t).degrees) % 360.0
    age = _wrap_age(elongation / 360.0 * SYNODIC_MONTH)
    idx = phase_index(age)
    return MoonSnapshot(
        phase_index=idx,
        phase_name=name_for(idx),
        illumination_percent=_clamp_percent(_moon_illumination_percentage(eph, t)),
        age_days=age,
        distance_km=_geocentric_distance_km(eph, t),
        source=SOURCE_EPHEMERIS,
        computed_at=instant,
    )


async def _run_in_default_executor(func: Callable[..., Any], *args: Any) -> Any:
    return await asyncio.get_running_loop().run_in_executor(None, func, *args)


class EphemerisMoonDataSource(MoonDataSource):
    """High-accuracy source backed by Skyfield and a JPL kernel.

    Loading and computation are blocking and run through ``run_blocking``.
    """

    kind = SOURCE_EPHEMERIS

    def __init__(
        self,
        loader: EphemerisLoader,
        run_blocking: BlockingRunner | None = None,
    ) -> None:
        self._loader = loader
        self._run_blocking = run_blocking or _run_in_default_executor
        self._eph: Ephemeris | None = None
        self._ts: Timescale | None = None

    async def async_fetch(self, instant: datetime) -> MoonSnapshot:
        try:
            if self._eph is None or self._ts is None:
                self._eph, self._ts = await self._run_blocking(self._loader)
            return await self._run_blocking(ephemeris_snapshot, self._eph, self._ts, instant)
        except CalculationError:
            raise
        except _RECOVERABLE_EPHEMERIS_ERRORS as err:
            raise DataUnavailable(repr(err)) from err


def build_data_source(
    kind: str,
    *,
    session: aiohttp.ClientSession | None = None,
    close_session: bool | None = None,
    tz: tzinfo | None = None,
    ephemeris_loader: EphemerisLoader | None = None,
    run_blocking: BlockingRunner | None = None,
) -> MoonDataSource:
    """Return the data source for ``kind``; unknown kinds get the local one."""
    if kind == SOURCE_FARMSENSE:
        return FarmsenseDataSource(session, close_session=close_session)
    if kind == SOURCE_TIMEANDDATE:
        return TimeAndDateDataSource(session, tz=tz, close_session=close_session)
    if kind == SOURCE_EPHEMERIS:
        if ephemeris_loader is None:
            _LOGGER.warning("No ephemeris loader available, using local calculation")
            return LocalMoonDataSource()
        return EphemerisMoonDataSource(ephemeris_loader, run_blocking)
    if kind != SOURCE_LOCAL:
        _LOGGER.debug("Unknown data source %r, using local calculation", kind)
    return LocalMoonDataSource()
