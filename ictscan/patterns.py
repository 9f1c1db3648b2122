"""
Pattern value objects shared by every detector.

The set of pattern kinds is closed: every kind maps to exactly one
detector in ictscan.detectors.manager.PATTERN_DETECTORS.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List


class PatternKind(Enum):
    """Closed set of pattern kinds"""
    FAIR_VALUE_GAP = "FVG"
    SUSPENSION_BLOCK = "Suspension Block"
    ORDER_BLOCK = "Order Block"
    BREAKER_BLOCK = "Breaker Block"
    LIQUIDITY_SWEEP = "Liquidity Sweep"


class Direction(Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"

    @property
    def opposite(self) -> 'Direction':
        return Direction.BEARISH if self is Direction.BULLISH else Direction.BULLISH


@dataclass(frozen=True)
class Pattern:
    """A single detected pattern."""
    kind: PatternKind
    direction: Direction
    low: float
    high: float
    center: float
    timestamp: datetime      # origin bar
    bar_index: int           # index of the origin bar in the analysed series
    score: float             # 0-100
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_bullish(self) -> bool:
        return self.direction is Direction.BULLISH

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.kind.value,
            'direction': self.direction.value,
            'low': float(self.low),
            'high': float(self.high),
            'center': float(self.center),
            'timestamp': self.timestamp.isoformat(),
            'barIndex': self.bar_index,
            'score': round(float(self.score), 2),
            'metadata': _jsonable(self.metadata),
        }


def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


def patterns_to_dicts(patterns: List[Pattern]) -> List[Dict[str, Any]]:
    return [p.to_dict() for p in patterns]
