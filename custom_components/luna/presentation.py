"""Turn a MoonSnapshot into the strings shown by the entities."""

from __future__ import annotations

import math

from .const import DEFAULT_HEMISPHERE
from .models import DisplayFields, MoonSnapshot
from .phases import NEW_MOON, icon_for, next_of

# Shown until the first refresh completes
PLACEHOLDER_SNAPSHOT = MoonSnapshot(
    phase_index=0,
    phase_name=NEW_MOON,
    illumination_percent=0.0,
    age_days=0.0,
    distance_km=0.0,
    source="placeholder",
)


def _round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    if value < 0:
        return -math.floor(-value + 0.5)
    return math.floor(value + 0.5)


def _finite_or_zero(value: float | None) -> float:
    if value is None:
        return 0.0
    try:
        x = float(value)
    except (TypeError, ValueError):
        return 0.0
    return x if math.isfinite(x) else 0.0


def present(snapshot: MoonSnapshot | None, hemisphere: str = DEFAULT_HEMISPHERE) -> DisplayFields:
    """Format ``snapshot`` for display.

    Args:
        snapshot: Snapshot to format; None yields the startup placeholder.
        hemisphere: Observer hemisphere, used only for the icon choice.

    Returns:
        DisplayFields with the phase, illumination, next phase, distance and
        age labels plus the icon key.
    """
    snap = snapshot or PLACEHOLDER_SNAPSHOT
    illum = _finite_or_zero(snap.illumination_percent)
    dist = _finite_or_zero(snap.distance_km)
    age = _finite_or_zero(snap.age_days)
    return DisplayFields(
        phase_label=snap.phase_name or NEW_MOON,
        illumination_label=f"{_round_half_up(illum)}%",
        next_phase_label=next_of(snap.phase_name),
        distance_label=f"{_round_half_up(dist):,} km",
        age_label=f"{age:.2f} Days",
        icon_key=icon_for(snap.phase_name, hemisphere),
    )
