"""
Order-Flow Structure Detectors
==============================

- Order Blocks: the last opposing candle before a displacement move
- Breaker Blocks: order blocks later invalidated by a close through them
- Liquidity Sweeps: a run beyond a recent swing extreme that reverses
"""

from typing import List, Optional

from ..bars import BarSeries, mean_range
from ..patterns import Direction, Pattern, PatternKind
from .base import PatternDetector, validate_multiplier, validate_window

# Score points per 1% the displacement close clears the block
ORDER_BLOCK_SCORE_PER_PCT = 20.0
LIQUIDITY_SWEEP_SCORE = 80.0


class OrderBlockDetector(PatternDetector):
    """
    Order Block detector.

    Bullish OB: bearish candle followed by a bullish candle whose body
    exceeds `multiplier` x the average range of up to `lookback` bars
    preceding the block. Bearish OB mirrors it.

    Near the start of a series the lookback shrinks to whatever history
    exists; the first bar (no history at all) is never a block.
    """

    kind = PatternKind.ORDER_BLOCK

    def __init__(self, lookback: int = 5, multiplier: float = 1.5):
        """
        Args:
            lookback: Bars averaged for the displacement threshold (default: 5)
            multiplier: Displacement must exceed this x average range (default: 1.5)
        """
        super().__init__({
            'lookback': validate_window(lookback),
            'multiplier': validate_multiplier(multiplier),
        })

    def detect(self, series: BarSeries) -> List[Pattern]:
        blocks: List[Pattern] = []
        lookback = self.params['lookback']
        multiplier = self.params['multiplier']

        for i in range(1, len(series) - 1):
            candle = series[i]
            next_candle = series[i + 1]
            avg_range = mean_range(series[max(0, i - lookback):i])

            # Bullish OB: last bearish candle before bullish expansion
            if candle.is_bearish and next_candle.is_bullish:
                displacement = next_candle.close - next_candle.open
                if displacement > avg_range * multiplier:
                    clearance = (next_candle.close - candle.high) / candle.high * 100
                    blocks.append(self._make_block(
                        series, i, Direction.BULLISH, displacement, avg_range, clearance
                    ))

            # Bearish OB: last bullish candle before bearish expansion
            if candle.is_bullish and next_candle.is_bearish:
                displacement = next_candle.open - next_candle.close
                if displacement > avg_range * multiplier:
                    clearance = (candle.low - next_candle.close) / candle.low * 100
                    blocks.append(self._make_block(
                        series, i, Direction.BEARISH, displacement, avg_range, clearance
                    ))

        return blocks

    def _make_block(self, series: BarSeries, i: int, direction: Direction,
                    displacement: float, avg_range: float, clearance_pct: float) -> Pattern:
        candle = series[i]
        mean_threshold = (candle.high + candle.low) / 2
        score = max(0.0, min(100.0, clearance_pct * ORDER_BLOCK_SCORE_PER_PCT))

        return Pattern(
            kind=self.kind,
            direction=direction,
            low=candle.low,
            high=candle.high,
            center=mean_threshold,
            timestamp=candle.timestamp,
            bar_index=i,
            score=score,
            metadata={
                'opening_price': candle.open,
                'mean_threshold': mean_threshold,
                'displacement': displacement,
                'avg_range': avg_range,
                'clearance_pct': clearance_pct,
            },
        )


class BreakerBlockDetector(PatternDetector):
    """
    Breaker Block detector.

    A bullish order block becomes a bearish breaker at the first close
    below its low (scanning from two bars after the block); a bearish
    block becomes a bullish breaker at the first close above its high.
    At most one breaker per order block.
    """

    kind = PatternKind.BREAKER_BLOCK

    def __init__(self, order_block_detector: Optional[OrderBlockDetector] = None):
        self.order_block_detector = order_block_detector or OrderBlockDetector()
        super().__init__(dict(self.order_block_detector.params))

    def detect(self, series: BarSeries,
               order_blocks: Optional[List[Pattern]] = None) -> List[Pattern]:
        """
        Args:
            series: Bar series the order blocks were detected on
            order_blocks: Previously detected order blocks (detected here if omitted)

        Returns:
            Breakers in order-block order
        """
        if order_blocks is None:
            order_blocks = self.order_block_detector.detect(series)

        breakers: List[Pattern] = []

        for ob in order_blocks:
            if ob.kind is not PatternKind.ORDER_BLOCK:
                raise ValueError(f"Expected an order block, got {ob.kind.value}")

            breaker = self._find_violation(series, ob)
            if breaker is not None:
                breakers.append(breaker)

        return breakers

    def _find_violation(self, series: BarSeries, ob: Pattern) -> Optional[Pattern]:
        for i in range(ob.bar_index + 2, len(series)):
            candle = series[i]

            if ob.direction is Direction.BULLISH and candle.close < ob.low:
                return self._make_breaker(ob, i, candle, Direction.BEARISH)

            if ob.direction is Direction.BEARISH and candle.close > ob.high:
                return self._make_breaker(ob, i, candle, Direction.BULLISH)

        return None

    def _make_breaker(self, ob: Pattern, i: int, candle, direction: Direction) -> Pattern:
        return Pattern(
            kind=self.kind,
            direction=direction,
            low=ob.low,
            high=ob.high,
            center=ob.center,
            timestamp=candle.timestamp,
            bar_index=i,
            score=ob.score,
            metadata={
                'origin': f"failed {ob.direction.value} order block",
                'order_block_timestamp': ob.timestamp,
                'order_block_index': ob.bar_index,
                'violation_close': candle.close,
            },
        )


class LiquiditySweepDetector(PatternDetector):
    """
    Liquidity Sweep detector.

    Bullish sweep: a bar trades below the lowest low of the previous
    `lookback` bars and the next bar closes back above both that bar's
    close and the swept low. Bearish sweep mirrors it on the swing high.
    """

    kind = PatternKind.LIQUIDITY_SWEEP

    def __init__(self, lookback: int = 10):
        """
        Args:
            lookback: Bars defining the swing high/low (default: 10)
        """
        super().__init__({'lookback': validate_window(lookback)})

    def detect(self, series: BarSeries) -> List[Pattern]:
        sweeps: List[Pattern] = []
        lookback = self.params['lookback']

        for i in range(lookback, len(series) - 1):
            window = series[i - lookback:i]
            candle = series[i]
            next_candle = series[i + 1]

            swing_high = max(b.high for b in window)
            swing_low = min(b.low for b in window)

            if (candle.low < swing_low and next_candle.close > candle.close
                    and next_candle.close > swing_low):
                sweeps.append(Pattern(
                    kind=self.kind,
                    direction=Direction.BULLISH,
                    low=candle.low,
                    high=swing_low,
                    center=swing_low,
                    timestamp=candle.timestamp,
                    bar_index=i,
                    score=LIQUIDITY_SWEEP_SCORE,
                    metadata={'level': swing_low, 'sweep_extreme': candle.low},
                ))

            if (candle.high > swing_high and next_candle.close < candle.close
                    and next_candle.close < swing_high):
                sweeps.append(Pattern(
                    kind=self.kind,
                    direction=Direction.BEARISH,
                    low=swing_high,
                    high=candle.high,
                    center=swing_high,
                    timestamp=candle.timestamp,
                    bar_index=i,
                    score=LIQUIDITY_SWEEP_SCORE,
                    metadata={'level': swing_high, 'sweep_extreme': candle.high},
                ))

        return sweeps
