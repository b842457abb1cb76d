"""Sensor entities for Luna."""

from __future__ import annotations

from typing import Any

from homeassistant.components.sensor import SensorDeviceClass, SensorEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity import DeviceInfo
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import (
    DOMAIN,
    FALLBACK_ICON,
    KEY_AGE,
    KEY_DISTANCE,
    KEY_ILLUM,
    KEY_NEXT_PHASE,
    KEY_PHASE,
    NAME,
    PRECISION_AGE,
    PRECISION_DISTANCE,
    PRECISION_ILLUM,
)
from .coordinator import LunaCoordinator
from .phases import PHASE_NAMES, icon_for, slug_for
from .presentation import present

SENSORS = [
    # key, translation key, unit, device_class, suggested_display_precision
    (KEY_PHASE, "sensor_phase", None, SensorDeviceClass.ENUM, None),
    (KEY_ILLUM, "sensor_illumination", "%", None, PRECISION_ILLUM),
    (KEY_AGE, "sensor_age", "d", SensorDeviceClass.DURATION, PRECISION_AGE),
    (KEY_DISTANCE, "sensor_distance", "km", SensorDeviceClass.DISTANCE, PRECISION_DISTANCE),
    (KEY_NEXT_PHASE, "sensor_next_phase", None, SensorDeviceClass.ENUM, None),
]

PHASE_OPTIONS = [slug_for(name) for name in PHASE_NAMES]

# Phase icon keys -> Material Design icons
PHASE_ICONS = {
    "luna_nueva": "mdi:moon-new",
    "luna_creciente": "mdi:moon-waxing-crescent",
    "luna_cuarto_creciente": "mdi:moon-first-quarter",
    "luna_gibosa_creciente": "mdi:moon-waxing-gibbous",
    "luna_llena": "mdi:moon-full",
    "luna_gibosa_menguante": "mdi:moon-waning-gibbous",
    "luna_cuarto_menguante": "mdi:moon-last-quarter",
    "luna_menguante": "mdi:moon-waning-crescent",
}

STATIC_ICONS = {
    KEY_ILLUM: "mdi:brightness-6",
    KEY_AGE: "mdi:timer-sand",
    KEY_DISTANCE: "mdi:ruler",
}


def icon_for_key(icon_key: str | None) -> str:
    """Resolve a phase icon key, falling back to a generic night icon."""
    return PHASE_ICONS.get(icon_key or "", FALLBACK_ICON)


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry, async_add_entities: AddEntitiesCallback):
    """Set up sensor entities from a config entry."""
    coordinator: LunaCoordinator = hass.data[DOMAIN][entry.entry_id]
    device_info = DeviceInfo(
        identifiers={(DOMAIN, entry.entry_id)},
        manufacturer=NAME,
        model=f"Moon phase ({coordinator.source_kind})",
        name=NAME,
    )

    async_add_entities(
        LunaSensor(coordinator, entry.entry_id, key, name_key, unit, device_class, precision, device_info)
        for key, name_key, unit, device_class, precision in SENSORS
    )


class LunaSensor(CoordinatorEntity[LunaCoordinator], SensorEntity):
    """Generic sensor bound to a coordinator value."""

    def __init__(
        self,
        coordinator: LunaCoordinator,
        entry_id: str,
        key: str,
        name_key: str,
        unit: str | None,
        device_class: SensorDeviceClass | None,
        suggested_display_precision: int | None,
        device_info: DeviceInfo,
    ) -> None:
        super().__init__(coordinator)
        self._key = key
        self._attr_unique_id = f"luna_{entry_id}_{key}"
        self._attr_has_entity_name = True
        self._attr_translation_key = name_key
        self._attr_native_unit_of_measurement = unit
        self._attr_device_class = device_class
        self._attr_device_info = device_info
        self._attr_suggested_display_precision = suggested_display_precision
        self._attr_suggested_object_id = key
        if device_class == SensorDeviceClass.ENUM:
            self._attr_options = PHASE_OPTIONS

    @property
    def native_value(self) -> Any:
        state = self.coordinator.data
        if state is None:
            return None
        snap = state.snapshot
        if self._key == KEY_PHASE:
            return slug_for(snap.phase_name)
        if self._key == KEY_NEXT_PHASE:
            return slug_for(state.display.next_phase_label)
        if self._key == KEY_ILLUM:
            return round(snap.illumination_percent, 1)
        if self._key == KEY_AGE:
            return round(snap.age_days, 2)
        if self._key == KEY_DISTANCE:
            return round(snap.distance_km)
        return None

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        state = self.coordinator.data
        display = state.display if state is not None else present(None, self.coordinator.config.hemisphere)
        attrs: dict[str, Any] = {
            "label": {
                KEY_PHASE: display.phase_label,
                KEY_ILLUM: display.illumination_label,
                KEY_AGE: display.age_label,
                KEY_DISTANCE: display.distance_label,
                KEY_NEXT_PHASE: display.next_phase_label,
            }[self._key],
        }
        if self._key == KEY_PHASE:
            attrs["icon_key"] = display.icon_key
            attrs["source"] = state.snapshot.source if state is not None else None
            # Soft warning: last refresh failed, values shown are the previous ones
            attrs["last_error"] = self.coordinator.last_error
        return attrs

    @property
    def icon(self) -> str | None:
        if self._key in (KEY_PHASE, KEY_NEXT_PHASE):
            state = self.coordinator.data
            display = state.display if state is not None else present(None, self.coordinator.config.hemisphere)
            if self._key == KEY_NEXT_PHASE:
                return icon_for_key(icon_for(display.next_phase_label, self.coordinator.config.hemisphere))
            return icon_for_key(display.icon_key)
        return STATIC_ICONS.get(self._key)
