"""
Market-Maker Phase Model
========================

Locates the dominant swing low/high of the recent window, looks for a
displacement move away from it, and places the current price within the
resulting dealing range.

MMBM (buy model): bullish displacement after the low, price above the low
MMSM (sell model): bearish displacement after the high, price below the high
Consolidation: neither, a valid outcome rather than an error
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from ..bars import Bar, BarSeries
from ..detectors.base import validate_multiplier, validate_window

logger = logging.getLogger(__name__)

MIN_BARS = 10
WINDOW = 20
UNCONFIRMED_BARS = 3          # final bars excluded when locating extremes
DISPLACEMENT_MULTIPLIER = 1.5


class ModelType(Enum):
    MMBM = "MMBM"
    MMSM = "MMSM"
    CONSOLIDATION = "Consolidation"


@dataclass(frozen=True)
class DealingRange:
    high: float
    low: float

    @property
    def size(self) -> float:
        return self.high - self.low

    def position_pct(self, price: float) -> float:
        return (price - self.low) / self.size * 100

    def to_dict(self) -> Dict[str, Any]:
        return {'high': self.high, 'low': self.low}


@dataclass(frozen=True)
class MarketMakerState:
    """Market-maker model classification"""
    model: ModelType
    phase: str
    dealing_range: Optional[DealingRange] = None
    position: Optional[float] = None         # % of dealing range above the low
    entry_zone: Optional[DealingRange] = None

    @property
    def is_consolidation(self) -> bool:
        return self.model is ModelType.CONSOLIDATION

    def to_dict(self) -> Dict[str, Any]:
        result = {'model': self.model.value, 'phase': self.phase}
        if self.dealing_range is not None:
            result['dealingRange'] = self.dealing_range.to_dict()
        if self.position is not None:
            result['position'] = round(self.position, 2)
        if self.entry_zone is not None:
            result['entryZone'] = self.entry_zone.to_dict()
        return result


CONSOLIDATION_PHASE = "Waiting for displacement"


def buy_model_phase(position: float) -> str:
    if position < 25:
        return "Low-Risk Entry Zone"
    if position < 50:
        return "First Stage"
    if position < 75:
        return "Second Stage (Unicorn potential)"
    return "Expansion / Distribution"


def sell_model_phase(position: float) -> str:
    if position > 75:
        return "Low-Risk Entry Zone (Short)"
    if position > 50:
        return "First Stage"
    if position > 25:
        return "Second Stage"
    return "Expansion / Distribution"


def has_displacement(bars: List[Bar], bullish: bool,
                     multiplier: float = DISPLACEMENT_MULTIPLIER) -> bool:
    """
    Any bar (after the first) whose directional body exceeds `multiplier`
    x the previous bar's range.
    """
    for prev, bar in zip(bars, bars[1:]):
        if bullish:
            if bar.close > bar.open and (bar.close - bar.open) > prev.range * multiplier:
                return True
        else:
            if bar.close < bar.open and (bar.open - bar.close) > prev.range * multiplier:
                return True
    return False


class MarketMakerModel:
    """
    Market-maker buy/sell model detector.

    Needs at least 10 bars and works on the most recent 20.
    """

    name = "MarketMakerModel"

    def __init__(self, window: int = WINDOW, multiplier: float = DISPLACEMENT_MULTIPLIER):
        self.window = validate_window(window, UNCONFIRMED_BARS + 1)
        self.multiplier = validate_multiplier(multiplier)

    def analyze(self, series: BarSeries, current_price: Optional[float] = None) -> MarketMakerState:
        """
        Args:
            series: Daily bars
            current_price: Price to place in the dealing range (default: last close)

        Returns:
            MarketMakerState
        """
        series.require(MIN_BARS, self.name)

        recent = list(series.tail(self.window))
        price = current_price if current_price is not None else recent[-1].close

        # Extremes exclude the final, still unconfirmed bars; first occurrence wins
        candidates = recent[:len(recent) - UNCONFIRMED_BARS]
        lowest_idx = min(range(len(candidates)), key=lambda i: (candidates[i].low, i))
        highest_idx = min(range(len(candidates)), key=lambda i: (-candidates[i].high, i))
        lowest_low = candidates[lowest_idx].low
        highest_high = candidates[highest_idx].high

        dealing_range = DealingRange(high=highest_high, low=lowest_low)
        if dealing_range.size <= 0:
            return MarketMakerState(ModelType.CONSOLIDATION, CONSOLIDATION_PHASE)

        bullish = has_displacement(recent[lowest_idx + 1:], bullish=True, multiplier=self.multiplier)
        bearish = has_displacement(recent[highest_idx + 1:], bullish=False, multiplier=self.multiplier)

        quarter = dealing_range.size * 0.25

        if bullish and price > lowest_low:
            position = dealing_range.position_pct(price)
            return MarketMakerState(
                model=ModelType.MMBM,
                phase=buy_model_phase(position),
                dealing_range=dealing_range,
                position=position,
                entry_zone=DealingRange(high=lowest_low + quarter, low=lowest_low),
            )

        if bearish and price < highest_high:
            position = dealing_range.position_pct(price)
            return MarketMakerState(
                model=ModelType.MMSM,
                phase=sell_model_phase(position),
                dealing_range=dealing_range,
                position=position,
                entry_zone=DealingRange(high=highest_high, low=highest_high - quarter),
            )

        logger.debug(
            f"No confirmed displacement (bullish={bullish}, bearish={bearish}) "
            f"in {len(recent)} bars"
        )
        return MarketMakerState(ModelType.CONSOLIDATION, CONSOLIDATION_PHASE)
