# tests/test_sensor_icons.py
from __future__ import annotations

import pytest

from custom_components.luna.phases import PHASES
from custom_components.luna.sensor import PHASE_ICONS, PHASE_OPTIONS, icon_for_key


@pytest.mark.parametrize("phase", PHASES)
def test_every_phase_icon_key_resolves(phase):
    assert icon_for_key(phase.icon_key) == PHASE_ICONS[phase.icon_key]


def test_missing_icon_key_falls_back_to_generic():
    assert icon_for_key("luna_azul") == "mdi:weather-night"
    assert icon_for_key(None) == "mdi:weather-night"


def test_enum_options_cover_all_phases():
    assert PHASE_OPTIONS[0] == "new_moon"
    assert len(PHASE_OPTIONS) == len(set(PHASE_OPTIONS)) == 8
