"""Binary sensors for Luna"""

from __future__ import annotations

from homeassistant.components.binary_sensor import BinarySensorEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity import DeviceInfo
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .calculator import is_waxing
from .const import DOMAIN, KEY_WAXING, NAME
from .coordinator import LunaCoordinator


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry, async_add_entities: AddEntitiesCallback):
    """Set up binary sensor entities."""
    coordinator: LunaCoordinator = hass.data[DOMAIN][entry.entry_id]
    device_info = DeviceInfo(identifiers={(DOMAIN, entry.entry_id)}, name=NAME)
    async_add_entities([LunaWaxingBinary(coordinator, entry.entry_id, device_info)])


class LunaWaxingBinary(CoordinatorEntity[LunaCoordinator], BinarySensorEntity):
    """On while the Moon is waxing (first half of the synodic month)."""

    def __init__(self, coordinator: LunaCoordinator, entry_id: str, device_info: DeviceInfo) -> None:
        super().__init__(coordinator)
        self._attr_unique_id = f"luna_{entry_id}_{KEY_WAXING}"
        self._attr_has_entity_name = True
        self._attr_translation_key = "binary_waxing"
        self._attr_device_info = device_info
        self._attr_suggested_object_id = KEY_WAXING

    @property
    def is_on(self) -> bool | None:
        state = self.coordinator.data
        if state is None:
            return None
        return is_waxing(state.snapshot.age_days)

    @property
    def icon(self) -> str:
        return "mdi:arrow-expand-right" if self.is_on else "mdi:arrow-collapse-right"
