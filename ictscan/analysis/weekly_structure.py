"""
Weekly Structure Classifier
===========================

Classifies where the most recent week closed inside its own range and
checks the last two weeks for engulfing patterns.

Close position:
├── >= 75% ──► BULLISH  (can look for longs)
├── <= 25% ──► BEARISH  (sellers in control, weekly close at lows is
│                        distribution, not a stop hunt)
└── else   ──► NEUTRAL  (wait for confirmation)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from ..bars import Bar, BarSeries

MIN_WEEKS = 2

BULLISH_THRESHOLD = 75.0
BEARISH_THRESHOLD = 25.0

DISTRIBUTION_WARNING = "Weekly close at lows = distribution, not a stop hunt"


class WeeklyCharacter(Enum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"


ACTIONS = {
    WeeklyCharacter.BULLISH: "Can look for longs",
    WeeklyCharacter.BEARISH: "Do not call bullish - sellers in control",
    WeeklyCharacter.NEUTRAL: "Wait for confirmation",
}


@dataclass(frozen=True)
class WeeklyStructure:
    """Classification of the most recent weekly bar"""
    week: Bar
    close_position: float   # 0-100
    character: WeeklyCharacter
    is_bearish_engulfing: bool
    is_bullish_engulfing: bool

    @property
    def action(self) -> str:
        return ACTIONS[self.character]

    @property
    def close_zone(self) -> str:
        if self.close_position >= BULLISH_THRESHOLD:
            return "Upper 25%"
        if self.close_position <= BEARISH_THRESHOLD:
            return "Lower 25%"
        return "Middle 50%"

    @property
    def warning(self) -> Optional[str]:
        if self.close_position <= BEARISH_THRESHOLD:
            return DISTRIBUTION_WARNING
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'open': self.week.open,
            'high': self.week.high,
            'low': self.week.low,
            'close': self.week.close,
            'date': self.week.timestamp.isoformat(),
            'closePosition': round(self.close_position, 2),
            'closeZone': self.close_zone,
            'character': self.character.value,
            'action': self.action,
            'isBearishEngulfing': self.is_bearish_engulfing,
            'isBullishEngulfing': self.is_bullish_engulfing,
            'warning': self.warning,
        }


def close_position(bar: Bar) -> float:
    """Close as % of the bar's range above its low (50 for a zero-range bar)"""
    if bar.range <= 0:
        return 50.0
    return (bar.close - bar.low) / bar.range * 100


def classify_close(position: float) -> WeeklyCharacter:
    """Both thresholds are inclusive"""
    if position >= BULLISH_THRESHOLD:
        return WeeklyCharacter.BULLISH
    if position <= BEARISH_THRESHOLD:
        return WeeklyCharacter.BEARISH
    return WeeklyCharacter.NEUTRAL


class WeeklyStructureAnalyzer:
    """Weekly close-position and engulfing analysis (needs 2 weeks)"""

    name = "WeeklyStructureAnalyzer"

    def analyze(self, weekly: BarSeries) -> WeeklyStructure:
        weekly.require(MIN_WEEKS, self.name)

        current = weekly[-1]
        previous = weekly[-2]
        position = close_position(current)

        is_bearish_engulfing = (
            current.is_bearish
            and current.open > previous.close
            and current.close < previous.open
        )
        is_bullish_engulfing = (
            current.is_bullish
            and current.open < previous.close
            and current.close > previous.open
        )

        return WeeklyStructure(
            week=current,
            close_position=position,
            character=classify_close(position),
            is_bearish_engulfing=is_bearish_engulfing,
            is_bullish_engulfing=is_bullish_engulfing,
        )
