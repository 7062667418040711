"""Immutable descriptions of one query shape.

A descriptor maps deterministically to exactly one cache key and exactly one
rendered query. Canonical forms strip all whitespace from every field so that
descriptors differing only in incidental whitespace share a key.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Dict

import xxhash

from lfpweather.queries.durations import Duration
from lfpweather.queries.identifiers import Column, Table


class QueryKind(str, Enum):
    WINDOWED = "windowed"
    LATEST = "latest"
    BIRD_COUNT = "bird_count"


def _compact(value: str) -> str:
    return "".join(str(value).split())


def _require(name: str, value: str) -> None:
    if not _compact(value):
        raise ValueError(f"{name} must not be empty")


class QueryDescriptor:
    kind: ClassVar[QueryKind]

    def canonical_form(self) -> str:
        raise NotImplementedError

    def template_params(self) -> Dict[str, str]:
        """Values substituted into this descriptor's query template.

        Raises ValueError when a duration cannot be expressed as an interval.
        """
        raise NotImplementedError

    def describe(self) -> str:
        raise NotImplementedError

    def digest(self) -> str:
        """16 hex char xxhash64 of the canonical form."""
        return xxhash.xxh64(self.canonical_form().encode("utf-8")).hexdigest()

    def cache_key(self, namespace_prefix: str) -> str:
        return f"{namespace_prefix}-{self.digest()}"


@dataclass(frozen=True)
class WindowedQuery(QueryDescriptor):
    """min/max/avg of ``column`` per ``time_bucket`` over the last ``lookback``."""

    kind: ClassVar[QueryKind] = QueryKind.WINDOWED

    column: Column
    table: Table
    time_bucket: str
    lookback: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "column", Column(self.column))
        object.__setattr__(self, "table", Table(self.table))
        _require("time_bucket", self.time_bucket)
        _require("lookback", self.lookback)

    def canonical_form(self) -> str:
        return "-".join(
            _compact(part)
            for part in (
                self.column.value,
                self.time_bucket,
                self.lookback,
                self.table.value,
            )
        )

    def template_params(self) -> Dict[str, str]:
        return {
            "column": self.column.value,
            "table": self.table.value,
            "time_bucket": Duration.parse(self.time_bucket).interval,
            "lookback": Duration.parse(self.lookback).interval,
        }

    def describe(self) -> str:
        return f"{self.column.value} for the last {_compact(self.lookback)}"


@dataclass(frozen=True)
class LatestQuery(QueryDescriptor):
    """Most recent value of ``column`` in ``table``."""

    kind: ClassVar[QueryKind] = QueryKind.LATEST

    column: Column
    table: Table

    def __post_init__(self) -> None:
        object.__setattr__(self, "column", Column(self.column))
        object.__setattr__(self, "table", Table(self.table))

    def canonical_form(self) -> str:
        return f"{_compact(self.column.value)}-{_compact(self.table.value)}"

    def template_params(self) -> Dict[str, str]:
        return {"column": self.column.value, "table": self.table.value}

    def describe(self) -> str:
        return self.column.value


@dataclass(frozen=True)
class BirdCountQuery(QueryDescriptor):
    """Detections per species over the last ``lookback``."""

    kind: ClassVar[QueryKind] = QueryKind.BIRD_COUNT

    lookback: str

    def __post_init__(self) -> None:
        _require("lookback", self.lookback)

    def canonical_form(self) -> str:
        return f"{Table.BIRDNET.value}-{_compact(self.lookback)}"

    def template_params(self) -> Dict[str, str]:
        return {
            "table": Table.BIRDNET.value,
            "lookback": Duration.parse(self.lookback).interval,
        }

    def describe(self) -> str:
        return f"birds for the last {_compact(self.lookback)}"
