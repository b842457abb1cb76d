# tests/test_coordinator.py
from __future__ import annotations

import asyncio

from custom_components.luna import async_update_options
from custom_components.luna.config import LunaConfig
from custom_components.luna.const import (
    CONF_DATA_SOURCE,
    CONF_HEMISPHERE,
    CONF_UPDATE_INTERVAL,
    DOMAIN,
)
from custom_components.luna.coordinator import LunaCoordinator
from custom_components.luna.scheduler import RefreshScheduler

ENTRY_ID = "entry-1"


def _bare_coordinator(scheduler: RefreshScheduler) -> LunaCoordinator:
    # Skips DataUpdateCoordinator.__init__, which needs a running hass
    coordinator = LunaCoordinator.__new__(LunaCoordinator)
    coordinator._scheduler = scheduler
    return coordinator


def test_request_refresh_respects_outstanding_fetch():
    async def main():
        gate = asyncio.Event()
        active = {"now": 0, "max": 0, "calls": 0}

        async def slow_refresh():
            active["calls"] += 1
            active["now"] += 1
            active["max"] = max(active["max"], active["now"])
            await gate.wait()
            active["now"] -= 1

        scheduler = RefreshScheduler(slow_refresh, 900)
        coordinator = _bare_coordinator(scheduler)
        scheduler.start()
        await asyncio.sleep(0)
        assert scheduler.in_flight

        # entity update request while the scheduled fetch is outstanding
        await coordinator.async_request_refresh()
        await asyncio.sleep(0)
        assert active == {"now": 1, "max": 1, "calls": 1}

        gate.set()
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert not scheduler.in_flight

        await coordinator.async_request_refresh()
        await asyncio.sleep(0)
        assert active["calls"] == 2
        assert active["max"] == 1
        scheduler.stop()

    asyncio.run(main())


# ---------- Options listener ----------


class FakeConfigEntries:
    def __init__(self) -> None:
        self.reloaded: list[str] = []

    async def async_reload(self, entry_id: str) -> None:
        self.reloaded.append(entry_id)


class FakeHass:
    def __init__(self, coordinator=None) -> None:
        self.data = {DOMAIN: {ENTRY_ID: coordinator}} if coordinator is not None else {}
        self.config_entries = FakeConfigEntries()


class FakeEntry:
    def __init__(self, data: dict, options: dict) -> None:
        self.entry_id = ENTRY_ID
        self.data = data
        self.options = options


class FakeCoordinator:
    def __init__(self, config: LunaConfig) -> None:
        self.config = config
        self.intervals: list[int] = []

    def async_set_update_interval(self, seconds: int) -> int:
        self.intervals.append(seconds)
        return seconds


ENTRY_DATA = {CONF_DATA_SOURCE: "farmsense", CONF_HEMISPHERE: "northern"}


def _setup(options: dict) -> tuple[FakeHass, FakeCoordinator]:
    coordinator = FakeCoordinator(LunaConfig.from_options(ENTRY_DATA, {CONF_UPDATE_INTERVAL: 3600}))
    hass = FakeHass(coordinator)
    asyncio.run(async_update_options(hass, FakeEntry(ENTRY_DATA, options)))
    return hass, coordinator


def test_interval_only_change_rearms_without_reload():
    hass, coordinator = _setup({CONF_UPDATE_INTERVAL: 1800})
    assert coordinator.intervals == [1800]
    assert coordinator.config.update_interval == 1800
    assert hass.config_entries.reloaded == []


def test_unchanged_options_keep_timer():
    hass, coordinator = _setup({CONF_UPDATE_INTERVAL: 3600})
    assert coordinator.intervals == []
    assert hass.config_entries.reloaded == []


def test_source_change_reloads_entry():
    hass, coordinator = _setup({CONF_UPDATE_INTERVAL: 1800, CONF_DATA_SOURCE: "local"})
    assert coordinator.intervals == []
    assert hass.config_entries.reloaded == [ENTRY_ID]


def test_missing_coordinator_reloads_entry():
    hass = FakeHass()
    asyncio.run(async_update_options(hass, FakeEntry(ENTRY_DATA, {CONF_UPDATE_INTERVAL: 1800})))
    assert hass.config_entries.reloaded == [ENTRY_ID]
