"""
Gap Detectors
=============

Fair Value Gaps (3-bar price gaps) and Suspension Blocks (single bars
with one-sided volume imbalances on both sides).

A Fair Value Gap occurs when:
- Bar[i-2] high < Bar[i] low (bullish FVG)
- Bar[i-2] low > Bar[i] high (bearish FVG)

A Suspension Block occurs when a bar's low is above the previous bar's
high AND its high is below the next bar's low.
"""

from typing import List

from ..bars import BarSeries, mean_range
from ..patterns import Direction, Pattern, PatternKind
from .base import PatternDetector, validate_window

# Suspension blocks are scored flat: prior wicks never weaken them
SUSPENSION_BLOCK_SCORE = 90.0
SUSPENSION_BLOCK_NOTE = "Extremely strong - prior wicks do not invalidate suspension blocks"


class FairValueGapDetector(PatternDetector):
    """
    Fair Value Gap detector.

    Each gap is scored by its size relative to the average range of up to
    `lookback` preceding bars, plus a bonus while it stays unfilled. A gap
    counts as filled once a later bar trades through its center.
    """

    kind = PatternKind.FAIR_VALUE_GAP

    def __init__(self, lookback: int = 20, size_weight: float = 50.0,
                 unfilled_bonus: float = 30.0):
        """
        Args:
            lookback: Bars averaged for the range normalizer (default: 20)
            size_weight: Score points per average-range of gap size
            unfilled_bonus: Score points added while unfilled
        """
        super().__init__({
            'lookback': validate_window(lookback),
            'size_weight': size_weight,
            'unfilled_bonus': unfilled_bonus,
        })

    def detect(self, series: BarSeries) -> List[Pattern]:
        gaps: List[Pattern] = []

        for i in range(2, len(series)):
            first = series[i - 2]
            third = series[i]

            if first.high < third.low:
                gaps.append(self._make_gap(
                    series, i, Direction.BULLISH,
                    low=first.high, high=third.low, middle_index=i - 1,
                ))

            if first.low > third.high:
                gaps.append(self._make_gap(
                    series, i, Direction.BEARISH,
                    low=third.high, high=first.low, middle_index=i - 1,
                ))

        return gaps

    def _make_gap(self, series: BarSeries, i: int, direction: Direction,
                  low: float, high: float, middle_index: int) -> Pattern:
        center = (low + high) / 2
        filled = self.is_filled(series, i, direction, center)

        lookback = self.params['lookback']
        avg_range = mean_range(series[max(0, i - lookback):i])
        gap_size = high - low

        return Pattern(
            kind=self.kind,
            direction=direction,
            low=low,
            high=high,
            center=center,
            timestamp=series[middle_index].timestamp,
            bar_index=middle_index,
            score=self._score(gap_size, avg_range, filled),
            metadata={
                'filled': filled,
                'gap_size': gap_size,
                'avg_range': avg_range,
                'fill_rule': 'center',
            },
        )

    @staticmethod
    def is_filled(series: BarSeries, i: int, direction: Direction, center: float) -> bool:
        """Has any bar after index i traded through the gap's center?"""
        for bar in series[i + 1:]:
            if direction is Direction.BULLISH and bar.low <= center:
                return True
            if direction is Direction.BEARISH and bar.high >= center:
                return True
        return False

    def _score(self, gap_size: float, avg_range: float, filled: bool) -> float:
        if avg_range <= 0:
            return 100.0

        score = gap_size / avg_range * self.params['size_weight']
        if not filled:
            score += self.params['unfilled_bonus']
        return min(100.0, score)


class SuspensionBlockDetector(PatternDetector):
    """
    Suspension Block detector.

    Direction follows the block candle's own colour. Blocks carry a fixed
    note that prior opposing wicks do not invalidate them; downstream
    consumers must not discount them for later wick activity.
    """

    kind = PatternKind.SUSPENSION_BLOCK

    def detect(self, series: BarSeries) -> List[Pattern]:
        blocks: List[Pattern] = []

        for i in range(1, len(series) - 1):
            prev_bar = series[i - 1]
            bar = series[i]
            next_bar = series[i + 1]

            has_bottom_imbalance = bar.low > prev_bar.high
            has_top_imbalance = bar.high < next_bar.low

            if not (has_bottom_imbalance and has_top_imbalance):
                continue

            direction = Direction.BULLISH if bar.close > bar.open else Direction.BEARISH
            blocks.append(Pattern(
                kind=self.kind,
                direction=direction,
                low=bar.low,
                high=bar.high,
                center=(bar.high + bar.low) / 2,
                timestamp=bar.timestamp,
                bar_index=i,
                score=SUSPENSION_BLOCK_SCORE,
                metadata={
                    'upper_quadrant': bar.low + bar.range * 0.75,
                    'lower_quadrant': bar.low + bar.range * 0.25,
                    'bottom_imbalance': bar.low - prev_bar.high,
                    'top_imbalance': next_bar.low - bar.high,
                    'note': SUSPENSION_BLOCK_NOTE,
                },
            ))

        return blocks
