"""
Detector system for bar-pattern recognition
"""
from .base import Detector, PatternDetector
from .range_geometry import RangeGeometry, RangeGeometryDetector, RangePosition
from .gaps import FairValueGapDetector, SuspensionBlockDetector
from .order_flow import OrderBlockDetector, BreakerBlockDetector, LiquiditySweepDetector
from .liquidity import LiquidityLevel, LiquidityMatrix, LiquidityMatrixDetector
from .manager import (
    DetectorManager,
    DETECTOR_REGISTRY,
    PATTERN_DETECTORS,
    list_available_detectors,
    create_detector
)

__all__ = [
    # Base classes
    'Detector',
    'PatternDetector',

    # Range geometry
    'RangeGeometry',
    'RangeGeometryDetector',
    'RangePosition',

    # Gaps
    'FairValueGapDetector',
    'SuspensionBlockDetector',

    # Order flow
    'OrderBlockDetector',
    'BreakerBlockDetector',
    'LiquiditySweepDetector',

    # Liquidity levels
    'LiquidityLevel',
    'LiquidityMatrix',
    'LiquidityMatrixDetector',

    # Manager
    'DetectorManager',
    'DETECTOR_REGISTRY',
    'PATTERN_DETECTORS',
    'list_available_detectors',
    'create_detector',
]
