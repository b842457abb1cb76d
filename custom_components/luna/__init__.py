"""Luna integration setup."""

from __future__ import annotations

import importlib
import logging

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant

from .config import LunaConfig
from .const import DOMAIN, SOURCE_EPHEMERIS
from .coordinator import LunaCoordinator
from .utils import async_cleanup_cache_dir, async_ensure_valid_ephemeris, ephemeris_loader

PLATFORMS: list[str] = ["binary_sensor", "button", "sensor"]

_LOGGER = logging.getLogger(__name__)


async def _import_platform(hass: HomeAssistant, platform: str) -> None:
    """Import a platform module in the executor to avoid blocking the event loop."""
    module_path = f"{__package__}.{platform}"
    await hass.async_add_executor_job(importlib.import_module, module_path)


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up Luna from a config entry."""
    config = LunaConfig.from_options(entry.data, entry.options)

    loader = None
    if config.data_source == SOURCE_EPHEMERIS:
        if await async_ensure_valid_ephemeris(hass):
            loader = ephemeris_loader(hass)
        else:
            _LOGGER.warning("Ephemeris unavailable, falling back to local calculation")

    coordinator = await LunaCoordinator.async_from_config_entry(hass, entry, loader)

    hass.data.setdefault(DOMAIN, {})
    hass.data[DOMAIN][entry.entry_id] = coordinator

    # Pre-import platforms to avoid blocking forward_entry_setups
    for platform in PLATFORMS:
        await _import_platform(hass, platform)

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    entry.async_on_unload(entry.add_update_listener(async_update_options))

    await coordinator.async_start()
    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if unload_ok:
        coordinator: LunaCoordinator | None = hass.data.get(DOMAIN, {}).pop(entry.entry_id, None)
        if coordinator is not None:
            await coordinator.async_shutdown()
    return unload_ok


async def async_remove_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Drop the cached ephemeris when the integration is removed."""
    await async_cleanup_cache_dir(hass, remove_ephemeris=True, remove_empty_dir=True)


async def async_update_options(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Handle options update.

    An interval-only change re-arms the running timer; anything else reloads
    the entry so the data source is rebuilt.
    """
    coordinator: LunaCoordinator | None = hass.data.get(DOMAIN, {}).get(entry.entry_id)
    new_config = LunaConfig.from_options(entry.data, entry.options)
    if coordinator is not None and _only_interval_changed(coordinator.config, new_config):
        old_interval = coordinator.config.update_interval
        coordinator.config = new_config
        # Unchanged options keep the current tick phase
        if new_config.update_interval != old_interval:
            coordinator.async_set_update_interval(new_config.update_interval)
        return
    await hass.config_entries.async_reload(entry.entry_id)


def _only_interval_changed(old: LunaConfig, new: LunaConfig) -> bool:
    return (
        old.data_source == new.data_source
        and old.hemisphere == new.hemisphere
        and old.use_ha_timezone == new.use_ha_timezone
    )
