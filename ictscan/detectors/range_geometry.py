"""
Range Geometry

High/low/equilibrium/quadrant levels over a trailing window of bars,
plus premium/discount classification of a price inside that range.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Any

from ..bars import BarSeries
from .base import Detector, validate_window


@dataclass(frozen=True)
class RangePosition:
    zone: str      # "Discount", "Lower Mid", "Upper Mid", "Premium"
    pct: float     # position as % of range above the low

    def to_dict(self) -> Dict[str, Any]:
        return {'zone': self.zone, 'pct': round(self.pct, 2)}


@dataclass(frozen=True)
class RangeGeometry:
    """Quadrant levels of a dealing range"""
    high: float
    low: float
    window: int
    start: datetime
    end: datetime

    @property
    def range(self) -> float:
        return self.high - self.low

    @property
    def lower_quadrant(self) -> float:
        return self.low + self.range * 0.25

    @property
    def equilibrium(self) -> float:
        return self.low + self.range * 0.5

    @property
    def upper_quadrant(self) -> float:
        return self.low + self.range * 0.75

    def position_pct(self, price: float) -> float:
        """Price as a % of the range above the low (50 for a flat range)"""
        if self.range <= 0:
            return 50.0
        return (price - self.low) / self.range * 100

    def classify(self, price: float) -> RangePosition:
        """
        Classify a price into one of four contiguous zones.

        Discount [low, 25%), Lower Mid [25%, 50%), Upper Mid [50%, 75%),
        Premium [75%, high]. Prices outside the range fall into the
        nearest outer zone.
        """
        pct = self.position_pct(price)

        # Compare against the levels themselves so boundaries match them exactly
        if self.range > 0 and price >= self.upper_quadrant:
            zone = "Premium"
        elif price >= self.equilibrium:
            zone = "Upper Mid"
        elif self.range > 0 and price >= self.lower_quadrant:
            zone = "Lower Mid"
        else:
            zone = "Discount"

        return RangePosition(zone=zone, pct=pct)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'high': self.high,
            'low': self.low,
            'range': self.range,
            'upperQuadrant': self.upper_quadrant,
            'equilibrium': self.equilibrium,
            'lowerQuadrant': self.lower_quadrant,
            'window': self.window,
            'start': self.start.isoformat(),
            'end': self.end.isoformat(),
        }


class RangeGeometryDetector(Detector):
    """
    Trailing-window range geometry.

    Raises InsufficientData when fewer than `window` bars are available.
    """

    def __init__(self, window: int = 20):
        """
        Args:
            window: Number of trailing bars (default: 20)
        """
        super().__init__({'window': validate_window(window)})
        self.min_bars = window

    def detect(self, series: BarSeries) -> RangeGeometry:
        window = self.params['window']
        series.require(window, self.name)

        recent = series.tail(window)
        return RangeGeometry(
            high=max(b.high for b in recent),
            low=min(b.low for b in recent),
            window=window,
            start=recent[0].timestamp,
            end=recent[-1].timestamp,
        )

