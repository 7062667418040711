import re
from dataclasses import dataclass

_DURATION_RE = re.compile(r"^(\d+)([smhdw])$")

_UNITS = {
    "s": "SECOND",
    "m": "MINUTE",
    "h": "HOUR",
    "d": "DAY",
    "w": "WEEK",
}


@dataclass(frozen=True)
class Duration:
    """A bucket width or lookback window such as ``30m`` or ``7d``."""

    amount: int
    unit: str

    @classmethod
    def parse(cls, raw: str) -> "Duration":
        compact = "".join(str(raw).split()).lower()
        match = _DURATION_RE.match(compact)
        if not match:
            raise ValueError(f"invalid duration {raw!r}")
        amount = int(match.group(1))
        if amount <= 0:
            raise ValueError(f"duration must be positive: {raw!r}")
        return cls(amount=amount, unit=match.group(2))

    @property
    def interval(self) -> str:
        """ClickHouse interval literal, e.g. ``INTERVAL 30 MINUTE``."""
        return f"INTERVAL {self.amount} {_UNITS[self.unit]}"
