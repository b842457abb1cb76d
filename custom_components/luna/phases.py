"""Static catalog of the eight named lunar phases.

The catalog is built once at import time and never mutated. Lookups by name
are forgiving: unknown names resolve to New Moon instead of raising, so the
entity layer always has something to show.
"""

from __future__ import annotations

from typing import NamedTuple

from .const import HEMISPHERE_SOUTHERN


class MoonPhase(NamedTuple):
    """One catalog entry."""

    name: str
    icon_key: str


NEW_MOON = "New Moon"
WAXING_CRESCENT = "Waxing Crescent"
FIRST_QUARTER = "First Quarter"
WAXING_GIBBOUS = "Waxing Gibbous"
FULL_MOON = "Full Moon"
WANING_GIBBOUS = "Waning Gibbous"
LAST_QUARTER = "Last Quarter"
WANING_CRESCENT = "Waning Crescent"

# Ordered by phase index (0..7)
PHASES: tuple[MoonPhase, ...] = (
    MoonPhase(NEW_MOON, "luna_nueva"),
    MoonPhase(WAXING_CRESCENT, "luna_creciente"),
    MoonPhase(FIRST_QUARTER, "luna_cuarto_creciente"),
    MoonPhase(WAXING_GIBBOUS, "luna_gibosa_creciente"),
    MoonPhase(FULL_MOON, "luna_llena"),
    MoonPhase(WANING_GIBBOUS, "luna_gibosa_menguante"),
    MoonPhase(LAST_QUARTER, "luna_cuarto_menguante"),
    MoonPhase(WANING_CRESCENT, "luna_menguante"),
)

PHASE_NAMES: tuple[str, ...] = tuple(p.name for p in PHASES)
PHASE_COUNT = len(PHASES)

_INDEX_BY_NAME: dict[str, int] = {p.name: i for i, p in enumerate(PHASES)}

# Names used by remote APIs that differ from the canonical ones
_API_ALIASES: dict[str, str] = {
    "1st quarter": FIRST_QUARTER,
    "first quarter": FIRST_QUARTER,
    "3rd quarter": LAST_QUARTER,
    "third quarter": LAST_QUARTER,
    "last quarter": LAST_QUARTER,
    "dark moon": NEW_MOON,
}


def name_for(index: int) -> str:
    """Return the phase name at ``index``.

    Raises:
        IndexError: If ``index`` is outside [0, 7]. Callers reduce modulo 8.
    """
    if not 0 <= index < PHASE_COUNT:
        raise IndexError(f"phase index out of range: {index}")
    return PHASES[index].name


def index_of(name: str | None) -> int | None:
    """Return the catalog index of ``name``, or None when unknown."""
    if name is None:
        return None
    return _INDEX_BY_NAME.get(name)


def icon_for(name: str | None, hemisphere: str | None = None) -> str:
    """Return the icon key for ``name``; unknown names get the New Moon icon.

    In the southern hemisphere the lit side appears mirrored, so waxing and
    waning shapes swap (index ``i`` maps to ``(8 - i) % 8``).
    """
    idx = index_of(name)
    if idx is None:
        return PHASES[0].icon_key
    if hemisphere == HEMISPHERE_SOUTHERN:
        idx = (PHASE_COUNT - idx) % PHASE_COUNT
    return PHASES[idx].icon_key


def next_of(name: str | None) -> str:
    """Return the phase following ``name`` in the cycle."""
    idx = index_of(name)
    if idx is None:
        idx = 0
    return PHASES[(idx + 1) % PHASE_COUNT].name


def normalize_phase_name(raw: object) -> str | None:
    """Map an upstream phase label onto a canonical phase name.

    Returns None when the label is not recognized.
    """
    if not isinstance(raw, str):
        return None
    text = " ".join(raw.split())
    if text in _INDEX_BY_NAME:
        return text
    folded = text.lower()
    for name in PHASE_NAMES:
        if name.lower() == folded:
            return name
    return _API_ALIASES.get(folded)


def slug_for(name: str | None) -> str:
    """Return the snake_case slug used as an entity state (e.g. ``full_moon``)."""
    idx = index_of(name)
    if idx is None:
        idx = 0
    return PHASES[idx].name.lower().replace(" ", "_")
