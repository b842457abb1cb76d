# tests/test_config.py
from __future__ import annotations

import pytest

from custom_components.luna.config import LunaConfig, resolve_update_interval


@pytest.mark.parametrize(
    ("configured", "effective"),
    [
        (0, 3600),
        (-5, 3600),
        (100000, 86400),
        (60, 900),
        (1800, 1800),
        (7200.0, 7200),
        (1800.5, 3600),
        ("1800", 1800),
        ("soon", 3600),
        (None, 3600),
        (True, 3600),
    ],
)
def test_resolve_update_interval(configured, effective):
    assert resolve_update_interval(configured) == effective


def test_from_options_merges_and_normalizes():
    cfg = LunaConfig.from_options(
        {"data_source": "farmsense", "hemisphere": "southern"},
        {"update_interval": 5, "hemisphere": "eastern"},
    )
    assert cfg.data_source == "farmsense"
    assert cfg.hemisphere == "northern"
    assert cfg.update_interval == 900
    assert cfg.use_ha_timezone is True


def test_from_options_unknown_source_is_local():
    assert LunaConfig.from_options({"data_source": "oracle"}).data_source == "local"


def test_defaults():
    cfg = LunaConfig.from_options({})
    assert cfg == LunaConfig()
