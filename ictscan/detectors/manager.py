"""
Detector Manager

Registry and shared entry point for bar-pattern detectors. Both the
composite analyzer and the cross-symbol scanner run detection through
this module.
"""

import logging
from typing import Dict, Type, List, Optional, Any, Iterable

from ..bars import BarSeries
from ..patterns import Pattern, PatternKind
from .base import Detector, PatternDetector
from .gaps import FairValueGapDetector, SuspensionBlockDetector
from .liquidity import LiquidityMatrixDetector
from .order_flow import BreakerBlockDetector, LiquiditySweepDetector, OrderBlockDetector
from .range_geometry import RangeGeometryDetector

logger = logging.getLogger(__name__)


# Global detector registry
DETECTOR_REGISTRY: Dict[str, Type[Detector]] = {
    # Gaps
    'fvg': FairValueGapDetector,
    'fair_value_gap': FairValueGapDetector,
    'suspension_block': SuspensionBlockDetector,

    # Order flow
    'order_block': OrderBlockDetector,
    'ob': OrderBlockDetector,
    'breaker_block': BreakerBlockDetector,
    'liquidity_sweep': LiquiditySweepDetector,
    'sweep': LiquiditySweepDetector,

    # Levels
    'range_geometry': RangeGeometryDetector,
    'liquidity_matrix': LiquidityMatrixDetector,
}

# One detector per pattern kind
PATTERN_DETECTORS: Dict[PatternKind, Type[PatternDetector]] = {
    PatternKind.FAIR_VALUE_GAP: FairValueGapDetector,
    PatternKind.SUSPENSION_BLOCK: SuspensionBlockDetector,
    PatternKind.ORDER_BLOCK: OrderBlockDetector,
    PatternKind.BREAKER_BLOCK: BreakerBlockDetector,
    PatternKind.LIQUIDITY_SWEEP: LiquiditySweepDetector,
}

_missing_kinds = [kind for kind in PatternKind if kind not in PATTERN_DETECTORS]
if _missing_kinds:
    raise KeyError(f"No detector registered for pattern kinds: {_missing_kinds}")


def list_available_detectors() -> List[Dict[str, Any]]:
    """
    List all available detectors with metadata.

    Returns:
        List of detector metadata dictionaries
    """
    detectors = []

    for key, detector_class in DETECTOR_REGISTRY.items():
        instance = detector_class()
        detectors.append({
            'key': key,
            **instance.to_dict(),
        })

    return detectors


class DetectorManager:
    """
    Runs a set of pattern detectors over one bar series.

    Breaker blocks are derived from the same run's order blocks, so an
    order-block detector is always run when breakers are requested.
    """

    def __init__(self, kinds: Optional[Iterable[PatternKind]] = None,
                 params: Optional[Dict[PatternKind, Dict[str, Any]]] = None):
        """
        Args:
            kinds: Pattern kinds to detect (default: all)
            params: Optional constructor params per kind
        """
        self.kinds: List[PatternKind] = list(kinds) if kinds is not None else list(PatternKind)
        params = params or {}

        self.detectors: Dict[PatternKind, PatternDetector] = {}
        for kind in self.kinds:
            self.detectors[kind] = PATTERN_DETECTORS[kind](**params.get(kind, {}))

        breaker = self.detectors.get(PatternKind.BREAKER_BLOCK)
        if breaker is not None:
            order_blocks = self.detectors.get(PatternKind.ORDER_BLOCK)
            if order_blocks is not None:
                breaker.order_block_detector = order_blocks

    def detect_all(self, series: BarSeries) -> Dict[PatternKind, List[Pattern]]:
        """
        Run every configured detector.

        Args:
            series: Bar series (never mutated)

        Returns:
            Dictionary mapping pattern kind to patterns, oldest first
        """
        results: Dict[PatternKind, List[Pattern]] = {}

        for kind, detector in self.detectors.items():
            if kind is PatternKind.BREAKER_BLOCK:
                continue
            results[kind] = detector.detect(series)

            logger.debug(f"{detector.get_display_name()}: {len(results[kind])} patterns")

        if PatternKind.BREAKER_BLOCK in self.detectors:
            order_blocks = results.get(PatternKind.ORDER_BLOCK)
            results[PatternKind.BREAKER_BLOCK] = (
                self.detectors[PatternKind.BREAKER_BLOCK].detect(series, order_blocks)
            )

        return results

    def list_detectors(self) -> List[Dict[str, Any]]:
        return [detector.to_dict() for detector in self.detectors.values()]


# Convenience function for quick detector creation
def create_detector(detector_type: str, **params) -> Optional[Detector]:
    """
    Create a detector instance.

    Args:
        detector_type: Registry key (e.g. 'fvg', 'order_block')
        **params: Detector parameters

    Returns:
        Detector instance or None

    Example:
        >>> fvg = create_detector('fvg', lookback=20)
        >>> ob = create_detector('order_block', multiplier=2.0)
    """
    detector_class = DETECTOR_REGISTRY.get(detector_type.lower())

    if not detector_class:
        logger.error(f"Unknown detector type: {detector_type}")
        return None

    try:
        return detector_class(**params)
    except (TypeError, ValueError) as e:
        logger.error(f"Error creating detector: {e}")
        return None
