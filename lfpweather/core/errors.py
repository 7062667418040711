"""Exception hierarchy shared by the query, store and upstream layers.

Cache failures have no exception type here: the cache gateway never raises.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from lfpweather.queries.descriptors import QueryDescriptor


class WeatherAPIError(Exception):
    """Base class for errors surfaced to HTTP callers."""


class QueryRenderError(WeatherAPIError):
    """A query template could not be executed (a build-time defect)."""


class StoreError(WeatherAPIError):
    """The aggregation store failed to execute a query."""


class StoreUnavailableError(StoreError):
    """The aggregation store did not answer the startup ping."""


class NoRowsError(StoreError):
    """A single-row query returned nothing."""


class RowScanError(WeatherAPIError):
    """A result row could not be mapped to a typed record."""


class QueryExecutionError(WeatherAPIError):
    def __init__(self, descriptor: "QueryDescriptor", cause: Exception):
        self.descriptor = descriptor
        self.cause = cause
        super().__init__(f"failed to get {descriptor.describe()}: {cause}")


class UpstreamError(WeatherAPIError):
    """The Electricity Maps API returned an error or an unreadable body."""
