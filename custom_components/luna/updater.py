"""Refresh bookkeeping behind the coordinator.

LunaUpdater fetches from one data source and decides which LunaState to
publish. It tracks the failure streak behind the soft warning and a liveness
flag; once closed, results and failures that arrive late are discarded.
"""

from __future__ import annotations

from datetime import datetime
import logging

from .calculator import calculate
from .models import LunaState, MoonSnapshot
from .presentation import present
from .sources import DataUnavailable, MoonDataSource

_LOGGER = logging.getLogger(__name__)


def resolve_state(
    previous: LunaState | None,
    snapshot: MoonSnapshot | None,
    hemisphere: str,
    now: datetime,
) -> LunaState:
    """Return the state to publish after a refresh.

    Args:
        previous: State currently shown, if any.
        snapshot: Fresh snapshot, or None when the source had no data.
        hemisphere: Observer hemisphere for the icon choice.
        now: Refresh instant, used for the local fallback.

    Returns:
        The fresh state; else the previous one unchanged; else, when nothing
        has been shown yet, a locally calculated state so the UI never blanks.
    """
    if snapshot is None:
        if previous is not None:
            return previous
        snapshot = calculate(now)
    return LunaState(snapshot=snapshot, display=present(snapshot, hemisphere))


class LunaUpdater:
    """Fetch snapshots from one source and keep the soft-warning state."""

    def __init__(self, source: MoonDataSource, hemisphere: str) -> None:
        self._source = source
        self._hemisphere = hemisphere
        self._alive = True
        self.last_error: str | None = None
        self.consecutive_failures = 0

    @property
    def kind(self) -> str:
        return self._source.kind

    @property
    def alive(self) -> bool:
        return self._alive

    async def async_update(self, previous: LunaState | None, now: datetime) -> LunaState:
        """Fetch once and return the state to publish.

        Returns:
            The new state, or ``previous`` when the source had no data or the
            updater was closed while the fetch was outstanding.
        """
        try:
            snapshot = await self._source.async_fetch(now)
        except DataUnavailable as err:
            if not self._alive:
                _LOGGER.debug("Ignoring %s failure after shutdown: %s", self.kind, err)
                return resolve_state(previous, None, self._hemisphere, now)
            if self.consecutive_failures == 0:
                _LOGGER.warning("Moon data unavailable from %s: %s", self.kind, err)
            else:
                _LOGGER.debug("Moon data still unavailable from %s: %s", self.kind, err)
            self.consecutive_failures += 1
            self.last_error = str(err)
            return resolve_state(previous, None, self._hemisphere, now)

        if not self._alive:
            _LOGGER.debug("Discarding %s result fetched after shutdown", self.kind)
            return resolve_state(previous, None if previous else snapshot, self._hemisphere, now)

        if self.consecutive_failures:
            _LOGGER.info(
                "Moon data from %s available again after %d failed refresh(es)",
                self.kind,
                self.consecutive_failures,
            )
        self.consecutive_failures = 0
        self.last_error = None
        return resolve_state(previous, snapshot, self._hemisphere, now)

    async def async_close(self) -> None:
        """Mark the updater dead, then release the source."""
        self._alive = False
        await self._source.async_close()
