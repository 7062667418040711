"""Prometheus metrics for the query and cache layers."""

from prometheus_client import Counter, Histogram

CACHE_LOOKUPS = Counter(
    "lfpweather_cache_lookups_total",
    "Cache lookups by result (hit|miss|error|disabled|corrupt)",
    ["result"],
)
CACHE_WRITES = Counter(
    "lfpweather_cache_writes_total",
    "Cache population attempts by result (ok|error)",
    ["result"],
)
STORE_QUERIES = Counter(
    "lfpweather_store_queries_total",
    "Queries executed against ClickHouse by query kind and outcome",
    ["kind", "outcome"],
)
STORE_LATENCY = Histogram(
    "lfpweather_store_query_latency_seconds",
    "Time spent executing a rendered query against ClickHouse",
)
SKIPPED_ROWS = Counter(
    "lfpweather_skipped_rows_total",
    "Result rows dropped because they could not be mapped to a record",
)
UPSTREAM_REQUESTS = Counter(
    "lfpweather_upstream_requests_total",
    "Electricity Maps API requests by endpoint and outcome",
    ["endpoint", "outcome"],
)
