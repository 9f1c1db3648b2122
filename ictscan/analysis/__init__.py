"""
Market Structure Analysis Package
=================================

Weekly structure, market-maker model, volatility regime and the composite
verdict built on top of the detectors.
"""

from .weekly_structure import WeeklyStructureAnalyzer, WeeklyStructure, WeeklyCharacter
from .market_maker import MarketMakerModel, MarketMakerState, ModelType, DealingRange
from .volatility import VolatilityRegimeDetector, VolatilityFlag
from .composite import CompositeAnalyzer, CompositeVerdict, Bias, Confidence

__all__ = [
    'WeeklyStructureAnalyzer',
    'WeeklyStructure',
    'WeeklyCharacter',
    'MarketMakerModel',
    'MarketMakerState',
    'ModelType',
    'DealingRange',
    'VolatilityRegimeDetector',
    'VolatilityFlag',
    'CompositeAnalyzer',
    'CompositeVerdict',
    'Bias',
    'Confidence',
]
