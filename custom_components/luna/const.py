"""Constants for Luna."""

from __future__ import annotations

# Domain and basic config
DOMAIN = "luna"
NAME = "Luna"
CONF_UPDATE_INTERVAL = "update_interval"
CONF_DATA_SOURCE = "data_source"
CONF_HEMISPHERE = "hemisphere"
CONF_USE_HA_TZ = "use_ha_timezone"

# Update interval policy (seconds)
DEFAULT_UPDATE_INTERVAL = 3600
MIN_UPDATE_INTERVAL = 900
MAX_UPDATE_INTERVAL = 86400

# Data sources
SOURCE_LOCAL = "local"
SOURCE_FARMSENSE = "farmsense"
SOURCE_TIMEANDDATE = "timeanddate"
SOURCE_EPHEMERIS = "ephemeris"
DATA_SOURCES = [SOURCE_LOCAL, SOURCE_FARMSENSE, SOURCE_TIMEANDDATE, SOURCE_EPHEMERIS]
DEFAULT_DATA_SOURCE = SOURCE_LOCAL

HEMISPHERE_NORTHERN = "northern"
HEMISPHERE_SOUTHERN = "southern"
HEMISPHERES = [HEMISPHERE_NORTHERN, HEMISPHERE_SOUTHERN]
DEFAULT_HEMISPHERE = HEMISPHERE_NORTHERN

# Remote APIs
FARMSENSE_URL = "https://api.farmsense.net/v1/moonphases/"
TIMEANDDATE_URL = "https://api.timeanddate.com/v1/moonphases/"
USER_AGENT = "Luna - Moon Phase Indicator"
REQUEST_TIMEOUT = 10  # seconds

# Files and external resources
CACHE_DIR_NAME = ".skyfield"
DE440_FILE = "de440.bsp"

# Lunar model
SYNODIC_MONTH = 29.53058867  # days between new moons
ANOMALISTIC_MONTH = 27.55455  # days between perigees
LUNAR_EPOCH_JD = 2451550.1  # new moon of 2000-01-06 18:14 UTC
AVERAGE_LUNAR_DISTANCE = 384400  # km
LUNAR_DISTANCE_AMPLITUDE = 21000  # km

# Data keys exposed by the coordinator
KEY_PHASE = "phase"
KEY_ILLUM = "illumination"
KEY_AGE = "age"
KEY_DISTANCE = "distance"
KEY_NEXT_PHASE = "next_phase"
KEY_WAXING = "waxing"

# Suggested display precision defaults (used in sensor.py)
PRECISION_ILLUM = 0
PRECISION_AGE = 2
PRECISION_DISTANCE = 0

# Generic icon used when a phase icon key cannot be resolved
FALLBACK_ICON = "mdi:weather-night"
