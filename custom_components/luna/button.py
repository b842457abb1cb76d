"""Refresh button for Luna."""

from __future__ import annotations

from homeassistant.components.button import ButtonEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity import DeviceInfo
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import DOMAIN, NAME
from .coordinator import LunaCoordinator


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry, async_add_entities: AddEntitiesCallback):
    """Set up the refresh button."""
    coordinator: LunaCoordinator = hass.data[DOMAIN][entry.entry_id]
    device_info = DeviceInfo(identifiers={(DOMAIN, entry.entry_id)}, name=NAME)
    async_add_entities([LunaRefreshButton(coordinator, entry.entry_id, device_info)])


class LunaRefreshButton(CoordinatorEntity[LunaCoordinator], ButtonEntity):
    """Triggers one out-of-band refresh; the periodic schedule is unaffected."""

    _attr_icon = "mdi:refresh"

    def __init__(self, coordinator: LunaCoordinator, entry_id: str, device_info: DeviceInfo) -> None:
        super().__init__(coordinator)
        self._attr_unique_id = f"luna_{entry_id}_refresh"
        self._attr_has_entity_name = True
        self._attr_translation_key = "button_refresh"
        self._attr_device_info = device_info
        self._attr_suggested_object_id = "refresh"

    async def async_press(self) -> None:
        await self.coordinator.async_refresh_now()
