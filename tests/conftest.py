"""
Shared fixtures: explicit OHLC fixtures instead of random market data.
"""

from datetime import datetime, timedelta

import pytest
import pytz

from ictscan.bars import Bar, BarSeries


def build_series(rows, start=None, step=timedelta(days=1)):
    """Build a BarSeries from (open, high, low, close) tuples"""
    start = start or datetime(2024, 1, 1, tzinfo=pytz.UTC)
    return BarSeries(
        Bar(timestamp=start + step * i, open=o, high=h, low=l, close=c, volume=1000)
        for i, (o, h, l, c) in enumerate(rows)
    )


@pytest.fixture
def make_series():
    """Factory fixture: make_series(rows, step=timedelta(days=1))"""
    return build_series


@pytest.fixture
def make_weekly():
    """Factory fixture for weekly bars"""
    def _make(rows):
        return build_series(rows, step=timedelta(weeks=1))
    return _make


# ═══════════════════════════════════════════════════════════════
# DAILY FIXTURES
# ═══════════════════════════════════════════════════════════════

@pytest.fixture
def boundary_rows():
    """5-bar series where bar(0).high == 12 is not below bar(2).low == 11"""
    return [(10, 12, 9, 11), (11, 13, 10, 12), (12, 16, 11, 15), (9, 10, 8, 9), (9, 11, 8, 10)]


@pytest.fixture
def bullish_gap_rows():
    """One bullish gap spanning [12, 13]"""
    return [(10, 12, 9, 11), (12, 15, 11, 14), (14, 17, 13, 16)]


@pytest.fixture
def bearish_gap_rows():
    """One bearish gap spanning [17, 18]"""
    return [(20, 21, 18, 19), (18, 19, 15, 16), (15, 17, 14, 15)]


@pytest.fixture
def flat_gap_rows():
    """Zero-range bars: a bullish gap with no average range to normalize by"""
    return [(10, 10, 10, 10), (11, 11, 11, 11), (12, 12, 12, 12)]


@pytest.fixture
def order_block_rows():
    """Bullish order block at bar 2, never revisited afterwards"""
    return [
        (100, 101, 99, 100.5),
        (100.5, 101.5, 99.5, 101),
        (101, 101.5, 99.5, 100),      # last bearish candle
        (100, 106, 100, 105.5),       # displacement
        (105.5, 107, 105, 106.5),
        (106.5, 108, 106, 107.5),
    ]


@pytest.fixture
def breaker_rows():
    """Bullish order block at bar 2, first closed through at bar 6"""
    return [
        (100, 101, 99, 100.5),
        (100.5, 101.5, 99.5, 101),
        (101, 101.5, 99.5, 100),
        (100, 106, 100, 105.5),
        (105.5, 106, 103, 104),
        (104, 104.5, 101, 101.5),
        (101.5, 102, 98.5, 99),       # close 99 < block low 99.5
    ]


@pytest.fixture
def sweep_rows():
    """Ten ranging bars, a run below 98, then a close back above it"""
    rows = [(100, 102, 98, 100)] * 10
    rows.append((99, 100, 96, 97))
    rows.append((97, 100, 96.5, 99.5))
    return rows


@pytest.fixture
def buy_model_rows():
    """Low of 100 at bar 2, bullish displacement at bar 4, drift near 108"""
    rows = [
        (105, 106, 104, 105),
        (105, 106, 104, 105),
        (105, 105.5, 100, 101),
        (101, 102, 100.5, 101.5),
        (101.5, 108, 101.5, 107.5),
    ]
    rows.extend([(107.5, 109, 107, 108)] * 15)
    return rows


@pytest.fixture
def sell_model_rows():
    """High of 110 at bar 2, bearish displacement at bar 4, drift near 102"""
    rows = [
        (105, 106, 104, 105),
        (105, 106, 104, 105),
        (105, 110, 104.5, 109),
        (109, 109.5, 108, 108.5),
        (108.5, 108.5, 102, 102.5),
    ]
    rows.extend([(102.5, 103, 101, 102)] * 15)
    return rows


@pytest.fixture
def trend_rows():
    """
    Buy model with a suspension block at bar 4, a bearish fair value
    gap on bar 2 and bullish ones on bars 4 and 5.
    """
    rows = [
        (105, 106, 104, 105),
        (105, 106, 104, 105),
        (105, 105.5, 100, 101),
        (101, 102, 100.5, 101.5),
        (102.5, 108, 102.5, 107.5),   # suspension block + displacement
        (108.5, 110, 108.5, 109.5),
    ]
    rows.extend([(109.5, 111, 109, 110.5)] * 14)
    return rows


@pytest.fixture
def large_range_rows():
    """Yesterday's range of 12 against ranges of 2"""
    rows = [(100, 101, 99, 100)] * 8
    rows.append((100, 106, 94, 105))
    rows.append((105, 106, 104, 105))
    return rows
