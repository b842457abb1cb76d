"""Data coordinator for Luna.

The coordinator is the indicator instance: it owns one data source, one
RefreshScheduler and the HTTP session behind a remote source, keeps the last
good LunaState and hands it to the entities. Home Assistant's own polling is
disabled (``update_interval=None``); the scheduler decides when to refresh.
"""

from __future__ import annotations

from datetime import UTC, tzinfo
import logging
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from timezonefinder import TimezoneFinder

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.aiohttp_client import async_create_clientsession
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator
from homeassistant.util import dt as dt_util

from .config import LunaConfig
from .const import NAME, SOURCE_FARMSENSE, SOURCE_TIMEANDDATE, USER_AGENT
from .models import LunaState
from .scheduler import RefreshScheduler
from .sources import EphemerisLoader, MoonDataSource, build_data_source
from .updater import LunaUpdater

# Centralize recoverable exception sets to avoid broad-except patterns.
_RECOVERABLE_TZ_ERRORS: tuple[type[Exception], ...] = (ZoneInfoNotFoundError, ValueError)

_LOGGER = logging.getLogger(__name__)


def _detect_timezone(lat: float, lon: float) -> ZoneInfo:
    """Return a best-effort ZoneInfo for given coordinates.

    If timezone cannot be found, UTC is returned.

    Args:
        lat: Latitude in decimal degrees.
        lon: Longitude in decimal degrees.

    Returns:
        A ZoneInfo instance representing the local timezone or UTC as fallback.
    """
    tzname = TimezoneFinder().timezone_at(lat=lat, lng=lon)
    try:
        return ZoneInfo(tzname) if tzname else ZoneInfo("UTC")
    except _RECOVERABLE_TZ_ERRORS:
        return ZoneInfo("UTC")


def _tz_for_hass(hass: HomeAssistant) -> ZoneInfo:
    """Return ZoneInfo from Home Assistant configuration with UTC fallback."""
    tzname = hass.config.time_zone
    try:
        return ZoneInfo(tzname) if tzname else ZoneInfo("UTC")
    except _RECOVERABLE_TZ_ERRORS:
        return ZoneInfo("UTC")


class LunaCoordinator(DataUpdateCoordinator[LunaState]):
    """Coordinator refreshing lunar data on its own schedule."""

    def __init__(
        self,
        hass: HomeAssistant,
        config: LunaConfig,
        source: MoonDataSource,
    ) -> None:
        """Initialize the coordinator.

        Args:
            hass: Home Assistant instance.
            config: Options snapshot taken at setup.
            source: Data source used for every refresh.
        """
        super().__init__(
            hass,
            logger=_LOGGER,
            name=NAME,
            update_interval=None,
        )
        self.config = config
        self._updater = LunaUpdater(source, config.hemisphere)
        self._scheduler = RefreshScheduler(
            self.async_refresh,
            config.update_interval,
            loop=hass.loop,
            name=NAME,
            task_factory=lambda coro, name: hass.async_create_background_task(coro, name),
        )

    @classmethod
    async def async_from_config_entry(
        cls,
        hass: HomeAssistant,
        entry: ConfigEntry,
        ephemeris_loader: EphemerisLoader | None = None,
    ) -> LunaCoordinator:
        """Build the coordinator and its data source from a ConfigEntry."""
        config = LunaConfig.from_options(entry.data, entry.options)

        tz: tzinfo = UTC
        if config.data_source == SOURCE_TIMEANDDATE:
            if config.use_ha_timezone:
                tz = _tz_for_hass(hass)
            else:
                tz = await hass.async_add_executor_job(
                    _detect_timezone, hass.config.latitude, hass.config.longitude
                )

        session = None
        if config.data_source in (SOURCE_FARMSENSE, SOURCE_TIMEANDDATE):
            session = async_create_clientsession(
                hass, auto_cleanup=False, headers={"User-Agent": USER_AGENT}
            )

        source = build_data_source(
            config.data_source,
            session=session,
            close_session=True,
            tz=tz,
            ephemeris_loader=ephemeris_loader,
            run_blocking=hass.async_add_executor_job,
        )
        return cls(hass, config, source)

    @property
    def scheduler(self) -> RefreshScheduler:
        return self._scheduler

    @property
    def source_kind(self) -> str:
        return self._updater.kind

    @property
    def last_error(self) -> str | None:
        """Message of the last failed refresh, None once data flows again."""
        return self._updater.last_error

    @property
    def consecutive_failures(self) -> int:
        return self._updater.consecutive_failures

    async def async_start(self) -> None:
        """Start the refresh cycle (first refresh runs immediately)."""
        self._scheduler.start()

    async def async_refresh_now(self) -> bool:
        """Refresh once without moving the next scheduled tick."""
        return self._scheduler.refresh_now()

    async def async_request_refresh(self) -> None:
        """Route entity update requests through the scheduler.

        A request arriving while a fetch is outstanding is dropped.
        """
        self._scheduler.refresh_now()

    def async_set_update_interval(self, seconds: int) -> int:
        """Re-arm the timer with a new interval; returns the effective value."""
        return self._scheduler.set_interval(seconds)

    async def async_shutdown(self) -> None:
        """Stop refreshing and release the data source."""
        self._scheduler.stop()
        await self._updater.async_close()
        await super().async_shutdown()

    async def _async_update_data(self) -> LunaState:
        """Fetch a snapshot and format it; keeps the previous state on failure."""
        return await self._updater.async_update(self.data, dt_util.utcnow())
