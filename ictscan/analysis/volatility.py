"""
Volatility Regime Flag

Flags a large range day: the most recent completed period's range against
the average range of the last 9 completed periods.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..bars import BarSeries, mean_range

MIN_BARS = 10
LARGE_RANGE_MULTIPLIER = 1.5

LARGE_RANGE_WARNING = (
    "Large range day detected - early session is high risk; "
    "wait for the afternoon session before acting"
)


@dataclass(frozen=True)
class VolatilityFlag:
    is_large_range_day: bool
    yesterday_range: float
    avg_range: float

    @property
    def ratio(self) -> Optional[float]:
        if self.avg_range <= 0:
            return None
        return self.yesterday_range / self.avg_range

    @property
    def warning(self) -> Optional[str]:
        return LARGE_RANGE_WARNING if self.is_large_range_day else None

    def to_dict(self) -> Dict[str, Any]:
        ratio = self.ratio
        return {
            'isLargeRangeDay': self.is_large_range_day,
            'yesterdayRange': self.yesterday_range,
            'avgRange': self.avg_range,
            'ratio': round(ratio, 2) if ratio is not None else None,
            'warning': self.warning,
        }


class VolatilityRegimeDetector:
    """
    Large range day detection (needs 10 daily bars).

    The last bar is the current, still forming period; the one before it
    is the most recent completed period.
    """

    name = "VolatilityRegimeDetector"

    def __init__(self, multiplier: float = LARGE_RANGE_MULTIPLIER):
        self.multiplier = multiplier

    def analyze(self, series: BarSeries) -> VolatilityFlag:
        series.require(MIN_BARS, self.name)

        yesterday = series[-2]
        avg_range = mean_range(series[-10:-1])
        yesterday_range = yesterday.range

        return VolatilityFlag(
            is_large_range_day=yesterday_range > avg_range * self.multiplier,
            yesterday_range=yesterday_range,
            avg_range=avg_range,
        )
