from lfpweather.queries.descriptors import QueryKind

WINDOWED_TEMPLATE = """
SELECT
    toStartOfInterval(time, $time_bucket) AS bucket,
    min($column) AS min_value,
    max($column) AS max_value,
    avg($column) AS avg_value
FROM $table
WHERE time > now() - $lookback
GROUP BY bucket
ORDER BY bucket ASC
"""

LATEST_TEMPLATE = """
SELECT
    time,
    $column AS last
FROM $table
ORDER BY time DESC
LIMIT 1
"""

BIRD_COUNT_TEMPLATE = """
SELECT
    common_name,
    count() AS detections
FROM $table
WHERE time > now() - $lookback
GROUP BY common_name
ORDER BY detections DESC, common_name ASC
"""

ALL_TEMPLATES = {
    QueryKind.WINDOWED: WINDOWED_TEMPLATE,
    QueryKind.LATEST: LATEST_TEMPLATE,
    QueryKind.BIRD_COUNT: BIRD_COUNT_TEMPLATE,
}
