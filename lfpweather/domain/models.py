from datetime import datetime
from typing import List, Sequence

from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from lfpweather.core.errors import RowScanError


def _unpack(row: Sequence, width: int) -> Sequence:
    if row is None or len(row) != width:
        raise RowScanError(f"expected {width} columns, got {row!r}")
    return row


class WindowedRecord(BaseModel):
    """Aggregate of one time bucket."""

    # NaN and inf have no JSON form and would not survive a cache round trip
    model_config = ConfigDict(allow_inf_nan=False)

    time: datetime
    min: float
    max: float
    avg: float

    @classmethod
    def from_row(cls, row: Sequence) -> "WindowedRecord":
        bucket, lo, hi, mean = _unpack(row, 4)
        try:
            return cls(time=bucket, min=lo, max=hi, avg=mean)
        except ValidationError as e:
            raise RowScanError(str(e)) from e


class LatestRecord(BaseModel):
    """Most recent reading of a single column."""

    model_config = ConfigDict(allow_inf_nan=False)

    time: datetime
    last: float

    @classmethod
    def from_row(cls, row: Sequence) -> "LatestRecord":
        ts, value = _unpack(row, 2)
        try:
            return cls(time=ts, last=value)
        except ValidationError as e:
            raise RowScanError(str(e)) from e


class BirdCount(BaseModel):
    common_name: str
    count: int

    @classmethod
    def from_row(cls, row: Sequence) -> "BirdCount":
        name, detections = _unpack(row, 2)
        try:
            return cls(common_name=name, count=detections)
        except ValidationError as e:
            raise RowScanError(str(e)) from e


# JSON codecs shared by the cache and the HTTP responses so both paths emit
# identical bytes for the same result.
WINDOWED_SERIES = TypeAdapter(List[WindowedRecord])
LATEST_VALUE = TypeAdapter(LatestRecord)
BIRD_COUNTS = TypeAdapter(List[BirdCount])
