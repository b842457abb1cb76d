"""Ephemeris file lifecycle for the Skyfield-backed data source.

All filesystem and Skyfield operations run in the executor.
"""

from __future__ import annotations

from contextlib import suppress
import logging
from pathlib import Path

from skyfield.api import Loader
from skyfield.jpllib import SpiceKernel

from homeassistant.core import HomeAssistant

from .const import CACHE_DIR_NAME, DE440_FILE
from .sources import Ephemeris, EphemerisLoader, Timescale

# de440.bsp is ~114 MB; anything much smaller is a truncated download.
_MIN_EPHEMERIS_BYTES = 100 * 1024 * 1024

# NAIF ids of the bodies the ephemeris source observes
_REQUIRED_BODIES = (3, 10, 301)  # earth barycenter, sun, moon

_LOGGER = logging.getLogger(__name__)


def _cache_dir(hass: HomeAssistant) -> Path:
    return Path(hass.config.path(CACHE_DIR_NAME))


async def async_cleanup_cache_dir(
    hass: HomeAssistant,
    *,
    remove_ephemeris: bool = False,
    remove_empty_dir: bool = False,
) -> None:
    """Remove partial downloads, and optionally the kernel and the directory."""

    def _blocking_cleanup() -> None:
        cache_dir = _cache_dir(hass)
        if not cache_dir.exists():
            return
        for partial in cache_dir.glob("*.download*"):
            with suppress(OSError):
                partial.unlink()
        if remove_ephemeris:
            with suppress(OSError):
                (cache_dir / DE440_FILE).unlink()
        if remove_empty_dir:
            with suppress(OSError):
                if not any(cache_dir.iterdir()):
                    cache_dir.rmdir()

    await hass.async_add_executor_job(_blocking_cleanup)


def _validate_ephemeris_file(cache_dir: Path) -> bool:
    """Return True if the cached kernel is complete; delete it otherwise."""
    path = cache_dir / DE440_FILE
    if not path.exists():
        return False
    try:
        if path.stat().st_size < _MIN_EPHEMERIS_BYTES:
            raise OSError(f"{path} is truncated")
        eph = Loader(str(cache_dir))(DE440_FILE)
        if not isinstance(eph, SpiceKernel) or any(b not in eph for b in _REQUIRED_BODIES):
            raise ValueError(f"{path} lacks required bodies")
    except (OSError, ValueError, RuntimeError) as err:
        _LOGGER.warning("Discarding invalid ephemeris file: %s", err)
        with suppress(OSError):
            path.unlink()
        return False
    return True


async def async_ensure_valid_ephemeris(hass: HomeAssistant) -> bool:
    """Make sure a usable kernel is cached, downloading it when missing.

    Returns:
        True if a valid ephemeris is available afterwards.
    """
    await async_cleanup_cache_dir(hass)

    def _blocking_ensure() -> bool:
        cache_dir = _cache_dir(hass)
        if _validate_ephemeris_file(cache_dir):
            return True
        cache_dir.mkdir(parents=True, exist_ok=True)
        _LOGGER.info("Downloading %s into %s", DE440_FILE, cache_dir)
        try:
            Loader(str(cache_dir))(DE440_FILE)
        except (OSError, RuntimeError, ValueError) as err:
            _LOGGER.warning("Ephemeris download failed: %s", err)
            return False
        return _validate_ephemeris_file(cache_dir)

    return await hass.async_add_executor_job(_blocking_ensure)


def ephemeris_loader(hass: HomeAssistant) -> EphemerisLoader:
    """Return a blocking callable loading the cached kernel and a timescale."""

    def _load() -> tuple[Ephemeris, Timescale]:
        cache_dir = _cache_dir(hass)
        cache_dir.mkdir(parents=True, exist_ok=True)
        load = Loader(str(cache_dir))
        return load(DE440_FILE), load.timescale()

    return _load
