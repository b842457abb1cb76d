"""Value objects shared by the Luna data sources, presenter and entities."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class MoonSnapshot:
    """Normalized lunar state for one instant.

    Every data source produces this shape, whatever the upstream format.
    """

    phase_index: int
    phase_name: str
    illumination_percent: float  # 0..100
    age_days: float  # days since last new moon
    distance_km: float  # Earth-Moon distance
    source: str = "local"
    computed_at: datetime | None = None


@dataclass(frozen=True)
class DisplayFields:
    """Formatted strings handed to the entity layer."""

    phase_label: str
    illumination_label: str
    next_phase_label: str
    distance_label: str
    age_label: str
    icon_key: str


@dataclass(frozen=True)
class LunaState:
    """Coordinator payload: the last good snapshot and its presentation."""

    snapshot: MoonSnapshot
    display: DisplayFields
