"""
Bar Series Data Model

Standardized OHLCV bars shared by every detector, plus the error types
raised when a series is malformed or too short for a detector's window.

Bars are immutable once built. A BarSeries is an ordered, read-only
sequence with strictly increasing timestamps.
"""

import collections.abc
import logging
import math
import numbers
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Union

import numpy as np
import pandas as pd
import pytz

logger = logging.getLogger(__name__)

# Unix timestamps above this are treated as milliseconds
MILLISECOND_THRESHOLD = 1e11

FIELD_ALIASES = {
    'timestamp': ('timestamp', 'time', 't', 'date'),
    'open': ('open', 'o'),
    'high': ('high', 'h'),
    'low': ('low', 'l'),
    'close': ('close', 'c'),
    'volume': ('volume', 'v'),
}


# ═══════════════════════════════════════════════════════════════════════════
# ERRORS
# ═══════════════════════════════════════════════════════════════════════════

class BarDataError(ValueError):
    """Base class for bar data problems."""


class InsufficientData(BarDataError):
    """A detector's minimum bar count is not met."""

    def __init__(self, detector: str, required: int, available: int):
        self.detector = detector
        self.required = required
        self.available = available
        super().__init__(
            f"{detector} needs at least {required} bars, got {available}"
        )


class InvalidInput(BarDataError):
    """Malformed bar or badly ordered series."""


# ═══════════════════════════════════════════════════════════════════════════
# TIMESTAMPS
# ═══════════════════════════════════════════════════════════════════════════

def to_utc(value: Any) -> datetime:
    """
    Normalize a timestamp to a timezone-aware UTC datetime.

    Accepts datetime (naive is treated as UTC), pandas Timestamp,
    ISO-8601 strings and unix seconds or milliseconds.

    Raises:
        InvalidInput if the value can't be parsed
    """
    if value is None:
        raise InvalidInput("Bar is missing a timestamp")

    if isinstance(value, pd.Timestamp):
        value = value.to_pydatetime()

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, bool):
        raise InvalidInput(f"Invalid timestamp: {value!r}")
    elif isinstance(value, numbers.Real):
        seconds = float(value)
        if not math.isfinite(seconds):
            raise InvalidInput(f"Invalid timestamp: {value!r}")
        if abs(seconds) > MILLISECOND_THRESHOLD:
            seconds /= 1000.0
        return datetime.fromtimestamp(seconds, tz=pytz.UTC)
    elif isinstance(value, str):
        try:
            dt = pd.Timestamp(value).to_pydatetime()
        except (ValueError, TypeError) as e:
            raise InvalidInput(f"Invalid timestamp: {value!r}") from e
    else:
        raise InvalidInput(f"Invalid timestamp type: {type(value).__name__}")

    if pd.isna(dt):
        raise InvalidInput(f"Invalid timestamp: {value!r}")

    if dt.tzinfo is None:
        return pytz.UTC.localize(dt)
    return dt.astimezone(pytz.UTC)


# ═══════════════════════════════════════════════════════════════════════════
# BAR
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Bar:
    """One OHLCV sample for a fixed period."""
    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    def __post_init__(self):
        for name in ('open', 'high', 'low', 'close'):
            value = getattr(self, name)
            if value is None or not isinstance(value, numbers.Real) or isinstance(value, bool):
                raise InvalidInput(f"Bar field '{name}' must be a number, got {value!r}")
            if not math.isfinite(value) or value <= 0:
                raise InvalidInput(f"Bar field '{name}' must be positive, got {value}")

        if self.volume is None or not math.isfinite(self.volume) or self.volume < 0:
            raise InvalidInput(f"Bar volume must be non-negative, got {self.volume}")

        if self.low > self.high:
            raise InvalidInput(f"Bar low {self.low} above high {self.high}")

        for name in ('open', 'close'):
            value = getattr(self, name)
            if not (self.low <= value <= self.high):
                raise InvalidInput(
                    f"Bar {name} {value} outside range [{self.low}, {self.high}]"
                )

    @property
    def range(self) -> float:
        return self.high - self.low

    @property
    def body(self) -> float:
        return abs(self.close - self.open)

    @property
    def is_bullish(self) -> bool:
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        return self.close < self.open

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'Bar':
        """
        Build a bar from a dict using any of the accepted field aliases.

        Args:
            record: e.g. {'t': '2024-01-02', 'o': 10, 'h': 12, 'l': 9, 'c': 11}

        Returns:
            Bar

        Raises:
            InvalidInput if a required field is missing
        """
        if not isinstance(record, dict):
            raise InvalidInput(f"Bar record must be a mapping, got {type(record).__name__}")

        values = {}
        for name, aliases in FIELD_ALIASES.items():
            for alias in aliases:
                if record.get(alias) is not None:
                    values[name] = record[alias]
                    break

        missing = [
            name for name in ('timestamp', 'open', 'high', 'low', 'close')
            if name not in values
        ]
        if missing:
            raise InvalidInput(f"Bar missing required fields: {missing}")

        try:
            return cls(
                timestamp=to_utc(values['timestamp']),
                open=float(values['open']),
                high=float(values['high']),
                low=float(values['low']),
                close=float(values['close']),
                volume=float(values.get('volume', 0.0)),
            )
        except (TypeError, ValueError) as e:
            if isinstance(e, BarDataError):
                raise
            raise InvalidInput(f"Bar has non-numeric price data: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timestamp': self.timestamp.isoformat(),
            'open': self.open,
            'high': self.high,
            'low': self.low,
            'close': self.close,
            'volume': self.volume,
        }


# ═══════════════════════════════════════════════════════════════════════════
# BAR SERIES
# ═══════════════════════════════════════════════════════════════════════════

class BarSeries(collections.abc.Sequence):
    """
    Ordered, read-only sequence of bars.

    Timestamps must be strictly increasing. Slicing returns a BarSeries.
    """

    def __init__(self, bars: Iterable[Bar]):
        self._bars = tuple(bars)

        for bar in self._bars:
            if not isinstance(bar, Bar):
                raise InvalidInput(f"Expected Bar, got {type(bar).__name__}")

        for prev, bar in zip(self._bars, self._bars[1:]):
            if bar.timestamp <= prev.timestamp:
                raise InvalidInput(
                    f"Timestamps must be strictly increasing: "
                    f"{bar.timestamp.isoformat()} follows {prev.timestamp.isoformat()}"
                )

    @classmethod
    def from_records(cls, records: Iterable[Dict[str, Any]]) -> 'BarSeries':
        """Build a series from raw dict records (see Bar.from_record)."""
        if records is None:
            raise InvalidInput("Bar records are required")
        return cls(Bar.from_record(r) for r in records)

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame) -> 'BarSeries':
        """
        Build a series from a DataFrame with OHLCV columns.

        Args:
            df: DataFrame with columns: time, open, high, low, close[, volume]

        Returns:
            BarSeries
        """
        required = ['time', 'open', 'high', 'low', 'close']
        missing = [col for col in required if col not in df.columns]

        if missing:
            raise InvalidInput(f"DataFrame missing required columns: {missing}")

        return cls.from_records(df.to_dict('records'))

    @classmethod
    def coerce(cls, data: Union['BarSeries', pd.DataFrame, List[Any], None]) -> 'BarSeries':
        """Accept a BarSeries, DataFrame, list of Bars or list of dicts."""
        if isinstance(data, BarSeries):
            return data
        if isinstance(data, pd.DataFrame):
            return cls.from_dataframe(data)
        if data is None:
            raise InvalidInput("Bar data is required")

        items = list(data)
        if items and all(isinstance(item, Bar) for item in items):
            return cls(items)
        return cls.from_records(items)

    def to_dataframe(self) -> pd.DataFrame:
        """Convert to a DataFrame with columns time, open, high, low, close, volume."""
        return pd.DataFrame({
            'time': [b.timestamp for b in self._bars],
            'open': [b.open for b in self._bars],
            'high': [b.high for b in self._bars],
            'low': [b.low for b in self._bars],
            'close': [b.close for b in self._bars],
            'volume': [b.volume for b in self._bars],
        })

    def require(self, count: int, detector: str) -> None:
        """Raise InsufficientData unless the series holds at least `count` bars."""
        if len(self._bars) < count:
            raise InsufficientData(detector, count, len(self._bars))

    def tail(self, count: int) -> 'BarSeries':
        return self[-count:] if count > 0 else BarSeries(())

    @property
    def last(self) -> Optional[Bar]:
        return self._bars[-1] if self._bars else None

    def __getitem__(self, index):
        if isinstance(index, slice):
            return BarSeries(self._bars[index])
        return self._bars[index]

    def __len__(self) -> int:
        return len(self._bars)

    def __iter__(self) -> Iterator[Bar]:
        return iter(self._bars)

    def __eq__(self, other) -> bool:
        if not isinstance(other, BarSeries):
            return NotImplemented
        return self._bars == other._bars

    def __hash__(self) -> int:
        return hash(self._bars)

    def __repr__(self) -> str:
        if not self._bars:
            return "BarSeries([])"
        return (
            f"BarSeries({len(self._bars)} bars, "
            f"{self._bars[0].timestamp.isoformat()} .. {self._bars[-1].timestamp.isoformat()})"
        )


def mean_range(bars: Sequence[Bar]) -> float:
    """Mean high-low range of the given bars, 0.0 for an empty window."""
    if not len(bars):
        return 0.0
    return float(np.mean([b.high - b.low for b in bars]))
