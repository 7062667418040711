"""Closed sets of identifiers that may appear in rendered query text.

Table and column names are substituted into SQL rather than bound as
parameters, so they must only ever come from these enumerations.
"""

from enum import Enum


class Table(str, Enum):
    VANTAGEPRO2PLUS = "vantagepro2plus"
    AIRGRADIENT = "airgradient"
    BIRDNET = "birdnet"


class Column(str, Enum):
    # vantagepro2plus
    TEMPERATURE = "temperature"
    HUMIDITY = "humidity"
    BAROMETER_SEA_LEVEL = "barometer_sea_level"
    SOLAR_RADIATION = "solar_radiation"
    WIND_SPEED_LAST = "wind_speed_last"
    WIND_SPEED_HIGH_LAST_10_MIN = "wind_speed_high_last_10_min"
    RAIN_RATE_LAST = "rain_rate_last"
    RAIN_LAST_24_HOUR = "rain_last_24_hour"
    UV_INDEX = "uv_index"

    # airgradient
    AQI = "aqi"
    CO2 = "co2"
    NOX_INDEX = "nox_index"
    TVOC_INDEX = "tvoc_index"
