"""
ICT price-action pattern engine

Detectors for fair value gaps, suspension blocks, order and breaker blocks
and liquidity sweeps, a composite per-symbol verdict and a cross-symbol
scanner.
"""

from .bars import Bar, BarSeries, BarDataError, InsufficientData, InvalidInput
from .patterns import Pattern, PatternKind, Direction
from .analysis import CompositeAnalyzer, CompositeVerdict
from .scanner import PatternScanner, ScanQuery, ScanReport, parse_query

__version__ = "0.1.0"

__all__ = [
    'Bar',
    'BarSeries',
    'BarDataError',
    'InsufficientData',
    'InvalidInput',
    'Pattern',
    'PatternKind',
    'Direction',
    'CompositeAnalyzer',
    'CompositeVerdict',
    'PatternScanner',
    'ScanQuery',
    'ScanReport',
    'parse_query',
]
