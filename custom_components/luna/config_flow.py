"""Config and Options flow for Luna."""

from __future__ import annotations

import voluptuous as vol

from homeassistant import config_entries
from homeassistant.core import callback
from homeassistant.data_entry_flow import FlowResult

from .const import (
    CONF_DATA_SOURCE,
    CONF_HEMISPHERE,
    CONF_UPDATE_INTERVAL,
    CONF_USE_HA_TZ,
    DATA_SOURCES,
    DEFAULT_DATA_SOURCE,
    DEFAULT_HEMISPHERE,
    DEFAULT_UPDATE_INTERVAL,
    DOMAIN,
    HEMISPHERES,
    MAX_UPDATE_INTERVAL,
    MIN_UPDATE_INTERVAL,
    NAME,
)


class LunaConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    """Handle a config flow for Luna."""

    VERSION = 1

    async def async_step_user(self, user_input: dict | None = None) -> FlowResult:
        """Handle the initial step: data source and hemisphere."""
        if user_input is not None:
            await self.async_set_unique_id(DOMAIN)
            self._abort_if_unique_id_configured()
            return self.async_create_entry(title=NAME, data=user_input)

        default_hemisphere = (
            "southern" if (self.hass.config.latitude or 0.0) < 0 else DEFAULT_HEMISPHERE
        )
        schema = vol.Schema(
            {
                vol.Required(CONF_DATA_SOURCE, default=DEFAULT_DATA_SOURCE): vol.In(DATA_SOURCES),
                vol.Required(CONF_HEMISPHERE, default=default_hemisphere): vol.In(HEMISPHERES),
            }
        )
        return self.async_show_form(step_id="user", data_schema=schema)

    @staticmethod
    @callback
    def async_get_options_flow(config_entry: config_entries.ConfigEntry):
        """Return the options flow handler."""
        return LunaOptionsFlow(config_entry)


class LunaOptionsFlow(config_entries.OptionsFlow):
    """Handle options for Luna."""

    def __init__(self, entry: config_entries.ConfigEntry) -> None:
        self._entry = entry

    async def async_step_init(self, user_input: dict | None = None) -> FlowResult:
        """First step of options flow."""
        if user_input is not None:
            return self.async_create_entry(title="", data=user_input)

        current = {**self._entry.data, **self._entry.options}
        schema = vol.Schema(
            {
                vol.Optional(
                    CONF_UPDATE_INTERVAL,
                    default=current.get(CONF_UPDATE_INTERVAL, DEFAULT_UPDATE_INTERVAL),
                ): vol.All(
                    vol.Coerce(int),
                    vol.Range(min=MIN_UPDATE_INTERVAL, max=MAX_UPDATE_INTERVAL),
                ),
                vol.Optional(
                    CONF_DATA_SOURCE,
                    default=current.get(CONF_DATA_SOURCE, DEFAULT_DATA_SOURCE),
                ): vol.In(DATA_SOURCES),
                vol.Optional(
                    CONF_HEMISPHERE,
                    default=current.get(CONF_HEMISPHERE, DEFAULT_HEMISPHERE),
                ): vol.In(HEMISPHERES),
                vol.Optional(
                    CONF_USE_HA_TZ,
                    default=current.get(CONF_USE_HA_TZ, True),
                ): bool,
            }
        )
        return self.async_show_form(step_id="init", data_schema=schema)
