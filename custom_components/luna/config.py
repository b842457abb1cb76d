"""Typed view over the Luna config entry options."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import logging
from typing import Any

from .const import (
    CONF_DATA_SOURCE,
    CONF_HEMISPHERE,
    CONF_UPDATE_INTERVAL,
    CONF_USE_HA_TZ,
    DATA_SOURCES,
    DEFAULT_DATA_SOURCE,
    DEFAULT_HEMISPHERE,
    DEFAULT_UPDATE_INTERVAL,
    HEMISPHERES,
    MAX_UPDATE_INTERVAL,
    MIN_UPDATE_INTERVAL,
)

_LOGGER = logging.getLogger(__name__)


class ConfigInvalid(ValueError):
    """A configured value cannot be used as-is."""


def _coerce_interval(value: Any) -> int:
    """Return ``value`` as a positive integer number of seconds.

    Raises:
        ConfigInvalid: For booleans, fractional numbers, unparsable text and
            values that are zero or negative.
    """
    if isinstance(value, bool):
        raise ConfigInvalid(f"interval must be an integer, got {value!r}")
    if isinstance(value, int):
        seconds = value
    elif isinstance(value, float):
        if not value.is_integer():
            raise ConfigInvalid(f"interval must be an integer, got {value!r}")
        seconds = int(value)
    elif isinstance(value, str):
        try:
            seconds = int(value.strip())
        except ValueError as err:
            raise ConfigInvalid(f"interval must be an integer, got {value!r}") from err
    else:
        raise ConfigInvalid(f"interval must be an integer, got {value!r}")
    if seconds <= 0:
        raise ConfigInvalid(f"interval must be positive, got {seconds}")
    return seconds


def resolve_update_interval(value: Any) -> int:
    """Return the effective refresh interval in seconds.

    Unusable values fall back to the default first; the result is then
    clamped to [MIN_UPDATE_INTERVAL, MAX_UPDATE_INTERVAL].
    """
    try:
        seconds = _coerce_interval(value)
    except ConfigInvalid as err:
        _LOGGER.debug("Using default update interval: %s", err)
        seconds = DEFAULT_UPDATE_INTERVAL
    return max(MIN_UPDATE_INTERVAL, min(MAX_UPDATE_INTERVAL, seconds))


@dataclass(frozen=True)
class LunaConfig:
    """Options read from the config entry; rebuilt on every change."""

    update_interval: int = DEFAULT_UPDATE_INTERVAL
    data_source: str = DEFAULT_DATA_SOURCE
    hemisphere: str = DEFAULT_HEMISPHERE
    use_ha_timezone: bool = True

    @classmethod
    def from_options(cls, *sources: Mapping[str, Any]) -> LunaConfig:
        """Merge mappings (later ones win) and normalize every value.

        Args:
            sources: Typically ``entry.data`` then ``entry.options``.

        Returns:
            A LunaConfig with unknown choices replaced by defaults.
        """
        merged: dict[str, Any] = {}
        for src in sources:
            merged.update(src or {})

        data_source = merged.get(CONF_DATA_SOURCE, DEFAULT_DATA_SOURCE)
        if data_source not in DATA_SOURCES:
            _LOGGER.debug("Unknown data source %r, using %s", data_source, DEFAULT_DATA_SOURCE)
            data_source = DEFAULT_DATA_SOURCE

        hemisphere = merged.get(CONF_HEMISPHERE, DEFAULT_HEMISPHERE)
        if hemisphere not in HEMISPHERES:
            hemisphere = DEFAULT_HEMISPHERE

        return cls(
            update_interval=resolve_update_interval(
                merged.get(CONF_UPDATE_INTERVAL, DEFAULT_UPDATE_INTERVAL)
            ),
            data_source=data_source,
            hemisphere=hemisphere,
            use_ha_timezone=bool(merged.get(CONF_USE_HA_TZ, True)),
        )
