"""
Composite Market Analysis
=========================

Combines every detector into a single verdict for one symbol:
- Weekly Structure (bias)
- Range Geometry (premium/discount)
- Suspension Blocks, Fair Value Gaps, Order Blocks, Breaker Blocks
- Liquidity Matrix
- Market-Maker Model
- Volatility Regime

Each sub-analysis that lacks history is left out of the verdict; only a
missing daily series fails the whole call.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, TypeVar

from ..bars import BarSeries, InsufficientData
from ..detectors import DetectorManager, LiquidityMatrix, LiquidityMatrixDetector, RangeGeometry, RangeGeometryDetector
from ..patterns import Pattern, PatternKind, patterns_to_dicts
from .market_maker import MarketMakerModel, MarketMakerState
from .volatility import VolatilityFlag, VolatilityRegimeDetector
from .weekly_structure import WeeklyCharacter, WeeklyStructure, WeeklyStructureAnalyzer

logger = logging.getLogger(__name__)

T = TypeVar('T')

BEARISH_ENGULFING_WARNING = "Bearish engulfing on weekly - strong sell signal"

VERDICT_KINDS = [
    PatternKind.SUSPENSION_BLOCK,
    PatternKind.FAIR_VALUE_GAP,
    PatternKind.ORDER_BLOCK,
    PatternKind.BREAKER_BLOCK,
]

# Output keys and config limit keys per pattern list
PATTERN_OUTPUT = {
    PatternKind.FAIR_VALUE_GAP: ('gaps', 'gaps'),
    PatternKind.SUSPENSION_BLOCK: ('imbalanceBlocks', 'suspension_blocks'),
    PatternKind.ORDER_BLOCK: ('orderBlocks', 'order_blocks'),
    PatternKind.BREAKER_BLOCK: ('breakerBlocks', 'breaker_blocks'),
}


class Bias(Enum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"


class Confidence(Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


@dataclass
class CompositeVerdict:
    """Verdict for one daily series (plus optional weekly series)"""
    bias: Bias
    confidence: Confidence
    current_price: float
    timestamp: Any
    weekly_structure: Optional[WeeklyStructure] = None
    range_geometry: Optional[RangeGeometry] = None
    patterns: Dict[PatternKind, List[Pattern]] = field(default_factory=dict)
    liquidity_matrix: Optional[LiquidityMatrix] = None
    market_maker: Optional[MarketMakerState] = None
    volatility: Optional[VolatilityFlag] = None
    warnings: List[str] = field(default_factory=list)
    symbol: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'ticker': self.symbol,
            'timestamp': self.timestamp.isoformat(),
            'currentPrice': self.current_price,
            'bias': self.bias.value,
            'confidence': self.confidence.value,
            'weeklyStructure': self.weekly_structure.to_dict() if self.weekly_structure else None,
            'rangeGeometry': self._format_range_geometry(),
            'patterns': self._format_patterns(),
            'liquidityMatrix': self.liquidity_matrix.to_dict() if self.liquidity_matrix else None,
            'marketMakerModel': self.market_maker.to_dict() if self.market_maker else None,
            'volatilityFlag': self.volatility.to_dict() if self.volatility else None,
            'warnings': list(self.warnings),
        }

    def _format_range_geometry(self) -> Optional[Dict[str, Any]]:
        if self.range_geometry is None:
            return None
        result = self.range_geometry.to_dict()
        result['pricePosition'] = self.range_geometry.classify(self.current_price).to_dict()
        return result

    def _format_patterns(self) -> Dict[str, List[Dict[str, Any]]]:
        return {
            key: patterns_to_dicts(self.patterns.get(kind, []))
            for kind, (key, _) in PATTERN_OUTPUT.items()
        }


class CompositeAnalyzer:
    """
    Unified analysis that combines all detectors.

    Detection itself is shared with the scanner through DetectorManager;
    truncation to the most recent N patterns happens only here.
    """

    name = "CompositeAnalyzer"

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Args:
            config: Full application config (uses its 'analysis' section)
        """
        analysis_config = (config or {}).get('analysis', {})
        self.limits: Dict[str, int] = {
            'suspension_blocks': 5,
            'gaps': 10,
            'order_blocks': 5,
            'breaker_blocks': 3,
        }
        self.limits.update(analysis_config.get('limits', {}))

        self.range_detector = RangeGeometryDetector(window=analysis_config.get('range_window', 20))
        self.liquidity_detector = LiquidityMatrixDetector()
        self.pattern_manager = DetectorManager(kinds=VERDICT_KINDS)
        self.weekly_analyzer = WeeklyStructureAnalyzer()
        self.market_maker = MarketMakerModel()
        self.volatility_detector = VolatilityRegimeDetector()

        logger.info("CompositeAnalyzer initialized with all detectors")

    def analyze(self,
                daily: Any,
                weekly: Any = None,
                current_price: Optional[float] = None,
                symbol: Optional[str] = None) -> CompositeVerdict:
        """
        Run every detector and derive bias, confidence and warnings.

        Args:
            daily: Daily bars (BarSeries, DataFrame or list of bar dicts)
            weekly: Optional weekly bars
            current_price: Price to classify (default: last daily close)
            symbol: Optional ticker echoed in the verdict

        Returns:
            CompositeVerdict

        Raises:
            InsufficientData: daily series missing or empty
            InvalidInput: malformed bars
        """
        if daily is None:
            raise InsufficientData(self.name, 1, 0)
        daily = BarSeries.coerce(daily)
        if len(daily) == 0:
            raise InsufficientData(self.name, 1, 0)
        weekly = BarSeries.coerce(weekly) if weekly is not None else None

        price = current_price if current_price is not None else daily.last.close

        weekly_structure = None
        if weekly is not None:
            weekly_structure = self._optional(self.weekly_analyzer.name,
                                              lambda: self.weekly_analyzer.analyze(weekly))
        range_geometry = self.range_detector.detect_safe(daily)
        liquidity_matrix = self.liquidity_detector.detect_safe(daily)
        market_maker = self._optional(self.market_maker.name,
                                      lambda: self.market_maker.analyze(daily, price))
        volatility = self._optional(self.volatility_detector.name,
                                    lambda: self.volatility_detector.analyze(daily))

        detected = self.pattern_manager.detect_all(daily)

        bias, warnings = self._determine_bias(weekly_structure)
        if volatility is not None and volatility.warning:
            warnings.append(volatility.warning)

        confidence = self._determine_confidence(
            range_geometry, market_maker, detected[PatternKind.SUSPENSION_BLOCK]
        )

        verdict = CompositeVerdict(
            bias=bias,
            confidence=confidence,
            current_price=price,
            timestamp=daily.last.timestamp,
            weekly_structure=weekly_structure,
            range_geometry=range_geometry,
            patterns=self._truncate(detected),
            liquidity_matrix=liquidity_matrix,
            market_maker=market_maker,
            volatility=volatility,
            warnings=warnings,
            symbol=symbol,
        )

        logger.debug(
            f"{symbol or 'series'}: bias={bias.value} confidence={confidence.value} "
            f"warnings={len(warnings)}"
        )
        return verdict

    def _optional(self, name: str, analyze: Callable[[], T]) -> Optional[T]:
        """Run one sub-analysis, None when it lacks history"""
        try:
            return analyze()
        except InsufficientData as e:
            logger.debug(f"{name} skipped: {e}")
            return None

    def _determine_bias(self, weekly: Optional[WeeklyStructure]):
        warnings: List[str] = []

        if weekly is None:
            return Bias.NEUTRAL, warnings

        if weekly.character is WeeklyCharacter.BEARISH:
            bias = Bias.BEARISH
            warnings.append(weekly.warning)
        elif weekly.character is WeeklyCharacter.BULLISH:
            bias = Bias.BULLISH
        else:
            bias = Bias.NEUTRAL

        if weekly.is_bearish_engulfing:
            warnings.append(BEARISH_ENGULFING_WARNING)

        return bias, warnings

    def _determine_confidence(self,
                              range_geometry: Optional[RangeGeometry],
                              market_maker: Optional[MarketMakerState],
                              suspension_blocks: List[Pattern]) -> Confidence:
        if range_geometry is None or market_maker is None or market_maker.is_consolidation:
            return Confidence.LOW
        if suspension_blocks:
            return Confidence.HIGH
        return Confidence.MEDIUM

    def _truncate(self, detected: Dict[PatternKind, List[Pattern]]) -> Dict[PatternKind, List[Pattern]]:
        """Keep the most recent N of each pattern list"""
        truncated = {}
        for kind, (_, limit_key) in PATTERN_OUTPUT.items():
            limit = self.limits[limit_key]
            patterns = detected.get(kind, [])
            truncated[kind] = patterns[-limit:] if limit > 0 else []
        return truncated
