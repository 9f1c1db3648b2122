"""
3-Period Liquidity Matrix

Ranks the highs and lows of the three most recent periods into buy-side
and sell-side liquidity pools.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Dict, Any

from ..bars import BarSeries
from .base import Detector

PERIODS = 3


@dataclass(frozen=True)
class LiquidityLevel:
    level: float
    label: str
    side: str  # "buy_side" or "sell_side"

    def to_dict(self) -> Dict[str, Any]:
        return {'level': self.level, 'label': self.label, 'side': self.side}


@dataclass(frozen=True)
class PeriodRange:
    high: float
    low: float
    timestamp: datetime


@dataclass(frozen=True)
class LiquidityMatrix:
    """Buy-side/sell-side pools from the last three periods"""
    periods: List[PeriodRange]  # most recent first
    range_high: float
    range_low: float
    buy_side: List[LiquidityLevel] = field(default_factory=list)
    sell_side: List[LiquidityLevel] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            f"period{n}": {
                'high': p.high,
                'low': p.low,
                'date': p.timestamp.isoformat(),
            }
            for n, p in enumerate(self.periods, start=1)
        }
        result.update({
            'rangeHigh': self.range_high,
            'rangeLow': self.range_low,
            'buySide': [lvl.to_dict() for lvl in self.buy_side],
            'sellSide': [lvl.to_dict() for lvl in self.sell_side],
        })
        return result


class LiquidityMatrixDetector(Detector):
    """
    Liquidity matrix over the three most recent bars.

    Raises InsufficientData below 3 bars.
    """

    min_bars = PERIODS

    def detect(self, series: BarSeries) -> LiquidityMatrix:
        series.require(PERIODS, self.name)

        recent = list(reversed(series.tail(PERIODS)))
        highs = [b.high for b in recent]
        lows = [b.low for b in recent]

        return LiquidityMatrix(
            periods=[PeriodRange(b.high, b.low, b.timestamp) for b in recent],
            range_high=max(highs),
            range_low=min(lows),
            buy_side=[
                LiquidityLevel(max(highs), "Buy Side 1 (3-period high)", "buy_side"),
                LiquidityLevel(min(highs), "Buy Side 2 (lowest of the three highs)", "buy_side"),
            ],
            sell_side=[
                LiquidityLevel(min(lows), "Sell Side 1 (3-period low)", "sell_side"),
                LiquidityLevel(max(lows), "Sell Side 2 (highest of the three lows)", "sell_side"),
            ],
        )
