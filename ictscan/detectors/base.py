"""
Base Detector Class

Provides abstract base class for all bar-pattern detectors.
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, Optional, List
import logging

from ..bars import BarSeries, BarDataError
from ..patterns import Pattern, PatternKind

logger = logging.getLogger(__name__)


class Detector(ABC):
    """
    Base class for all detectors.

    Subclasses must implement:
    - detect(): Compute results from a bar series

    Detectors are pure: they never mutate the series and hold no state
    beyond their parameters.
    """

    # Minimum bars before detect() does anything other than raise
    min_bars: int = 0

    def __init__(self, params: Optional[Dict[str, Any]] = None):
        """
        Initialize detector with parameters.

        Args:
            params: Dictionary of detector parameters
        """
        self.params = params or {}
        self.name = self.__class__.__name__
        self.id = f"{self.name}_{self._get_param_string()}".rstrip('_')

    def _get_param_string(self) -> str:
        """Generate parameter string for unique ID"""
        if not self.params:
            return ""

        key_params = []
        for key in ['window', 'lookback', 'multiplier']:
            if key in self.params:
                key_params.append(str(self.params[key]))

        return "_".join(key_params) if key_params else ""

    @abstractmethod
    def detect(self, series: BarSeries) -> Any:
        """
        Run detection.

        Args:
            series: Bar series to analyse (never mutated)

        Returns:
            Detector-specific result
        """
        pass

    def validate_series(self, series: BarSeries) -> bool:
        """
        Validate that the series is usable by this detector.

        Raises:
            InsufficientData if shorter than min_bars
        """
        series.require(self.min_bars, self.name)
        return True

    def get_display_name(self) -> str:
        """Get human-readable display name"""
        if not self.params:
            return self.name

        parts = [self.name]

        if 'window' in self.params:
            parts.append(f"({self.params['window']})")
        elif 'lookback' in self.params:
            parts.append(f"({self.params['lookback']})")

        return "".join(parts)

    def detect_safe(self, series: BarSeries) -> Optional[Any]:
        """
        Run detection with error handling.

        Args:
            series: Input bar series

        Returns:
            Result or None if the series is unusable
        """
        try:
            self.validate_series(series)
            return self.detect(series)

        except BarDataError as e:
            logger.debug(f"{self.name} skipped: {e}")
            return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert detector to dictionary representation"""
        return {
            'name': self.name,
            'id': self.id,
            'display_name': self.get_display_name(),
            'params': self.params,
            'min_bars': self.min_bars,
        }


class PatternDetector(Detector):
    """Base class for detectors that emit a list of Patterns, oldest first"""

    kind: PatternKind

    @abstractmethod
    def detect(self, series: BarSeries) -> List[Pattern]:
        pass

    def to_dict(self) -> Dict[str, Any]:
        info = super().to_dict()
        info['kind'] = self.kind.value
        return info


def validate_window(window: int, min_window: int = 1) -> int:
    """Validate window parameter"""
    if not isinstance(window, int) or isinstance(window, bool):
        raise ValueError(f"Window must be integer, got {type(window)}")

    if window < min_window:
        raise ValueError(f"Window must be >= {min_window}, got {window}")

    return window


def validate_multiplier(multiplier: float) -> float:
    """Validate a threshold multiplier parameter"""
    if not isinstance(multiplier, (int, float)) or isinstance(multiplier, bool):
        raise ValueError(f"Multiplier must be a number, got {type(multiplier)}")

    if multiplier <= 0:
        raise ValueError(f"Multiplier must be > 0, got {multiplier}")

    return float(multiplier)
