"""Static dispatch table from (metric, window) to a query descriptor.

Every route served under ``/api/v1/{metric}/{window}`` resolves through
``descriptor_for``; the table is the only place metric names meet column and
table identifiers.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Union

from lfpweather.queries.descriptors import BirdCountQuery, LatestQuery, WindowedQuery
from lfpweather.queries.identifiers import Column, Table


class Window(str, Enum):
    LAST = "last"
    HOURS_12 = "12h"
    HOURS_24 = "24h"
    DAYS_7 = "7d"
    DAYS_30 = "30d"


# lookback window -> bucket width
WINDOW_BUCKETS: Dict[Window, str] = {
    Window.HOURS_12: "30m",
    Window.HOURS_24: "1h",
    Window.DAYS_7: "6h",
    Window.DAYS_30: "1d",
}


@dataclass(frozen=True)
class Metric:
    name: str
    table: Table
    latest_column: Optional[Column] = None
    series_column: Optional[Column] = None


METRICS: Dict[str, Metric] = {
    m.name: m
    for m in (
        Metric("temperature", Table.VANTAGEPRO2PLUS, Column.TEMPERATURE, Column.TEMPERATURE),
        Metric("humidity", Table.VANTAGEPRO2PLUS, Column.HUMIDITY, Column.HUMIDITY),
        Metric(
            "pressure",
            Table.VANTAGEPRO2PLUS,
            Column.BAROMETER_SEA_LEVEL,
            Column.BAROMETER_SEA_LEVEL,
        ),
        Metric(
            "solar_radiation",
            Table.VANTAGEPRO2PLUS,
            Column.SOLAR_RADIATION,
            Column.SOLAR_RADIATION,
        ),
        Metric(
            "wind_speed",
            Table.VANTAGEPRO2PLUS,
            Column.WIND_SPEED_HIGH_LAST_10_MIN,
            Column.WIND_SPEED_LAST,
        ),
        Metric("24h_rain", Table.VANTAGEPRO2PLUS, latest_column=Column.RAIN_LAST_24_HOUR),
        Metric("rain_rate", Table.VANTAGEPRO2PLUS, series_column=Column.RAIN_RATE_LAST),
        Metric("uv_index", Table.VANTAGEPRO2PLUS, Column.UV_INDEX, Column.UV_INDEX),
        Metric("aqi", Table.AIRGRADIENT, Column.AQI, Column.AQI),
        Metric("co2", Table.AIRGRADIENT, Column.CO2, Column.CO2),
        Metric("nox_index", Table.AIRGRADIENT, Column.NOX_INDEX, Column.NOX_INDEX),
        Metric("tvoc_index", Table.AIRGRADIENT, Column.TVOC_INDEX, Column.TVOC_INDEX),
    )
}

BIRDNET_WINDOWS: Dict[Window, BirdCountQuery] = {
    Window.HOURS_24: BirdCountQuery(lookback="24h"),
}


class UnknownMetricError(LookupError):
    def __init__(self, metric: str, window: str):
        self.metric = metric
        self.window = window
        super().__init__(f"{metric}/{window} is not a known metric and window")


def descriptor_for(metric: str, window: str) -> Union[WindowedQuery, LatestQuery]:
    """Resolve a route's metric and window into its query descriptor."""
    entry = METRICS.get(metric)
    try:
        win = Window(window)
    except ValueError:
        raise UnknownMetricError(metric, window) from None
    if entry is None:
        raise UnknownMetricError(metric, window)

    if win is Window.LAST:
        if entry.latest_column is None:
            raise UnknownMetricError(metric, window)
        return LatestQuery(column=entry.latest_column, table=entry.table)

    if entry.series_column is None:
        raise UnknownMetricError(metric, window)
    return WindowedQuery(
        column=entry.series_column,
        table=entry.table,
        time_bucket=WINDOW_BUCKETS[win],
        lookback=win.value,
    )


def bird_count_descriptor(window: str) -> BirdCountQuery:
    try:
        return BIRDNET_WINDOWS[Window(window)]
    except (ValueError, KeyError):
        raise UnknownMetricError("birdnet", window) from None
