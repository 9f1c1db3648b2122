"""
Tests for the Cross-Symbol Scanner

Tests query parsing, ranking, per-symbol de-duplication and the bounded
async loader path.
"""

import asyncio

import pytest

from ictscan.patterns import Direction, PatternKind
from ictscan.scanner import PatternScanner, ScanQuery, parse_query, describe


ALL_KINDS = (PatternKind.FAIR_VALUE_GAP, PatternKind.ORDER_BLOCK, PatternKind.LIQUIDITY_SWEEP)


@pytest.fixture
def universe(make_series, bullish_gap_rows, bearish_gap_rows, flat_gap_rows, trend_rows):
    """Four symbols with fair value gaps plus one malformed symbol"""
    return {
        'AAA': make_series(bullish_gap_rows),
        'BBB': make_series(flat_gap_rows),
        'CCC': make_series(bearish_gap_rows),
        'DDD': make_series(trend_rows),
        'BAD': [{'time': '2024-01-02', 'open': 10, 'high': 9, 'low': 11, 'close': 10}],
    }


class TestParseQuery:
    """Test free-text query parsing"""

    def test_defaults(self):
        """Test unrecognized text falls back to defaults"""
        query = parse_query("show me something")

        assert query.limit == 10
        assert query.kinds == ALL_KINDS
        assert query.directions == (Direction.BULLISH, Direction.BEARISH)

    def test_empty(self):
        assert parse_query(None) == parse_query("")

    def test_limit_kind_direction(self):
        query = parse_query("Top 5 Bullish FVG")

        assert query.limit == 5
        assert query.kinds == (PatternKind.FAIR_VALUE_GAP,)
        assert query.directions == (Direction.BULLISH,)

    def test_zero_limit_uses_default(self):
        assert parse_query("0 gaps").limit == 10

    def test_limit_clamped(self):
        assert parse_query("500 sweeps", max_limit=100).limit == 100

    @pytest.mark.parametrize('text,kinds', [
        ("fair value gaps", (PatternKind.FAIR_VALUE_GAP,)),
        ("bearish order blocks", (PatternKind.ORDER_BLOCK,)),
        ("ob setups", (PatternKind.ORDER_BLOCK,)),
        ("liquidity grabs", (PatternKind.LIQUIDITY_SWEEP,)),
        ("gaps and sweeps", (PatternKind.FAIR_VALUE_GAP, PatternKind.LIQUIDITY_SWEEP)),
    ])
    def test_kind_keywords(self, text, kinds):
        assert parse_query(text).kinds == kinds

    @pytest.mark.parametrize('text,kinds', [
        ("top 5 bullish fvgs", (PatternKind.FAIR_VALUE_GAP,)),
        ("find 10 bearish obs", (PatternKind.ORDER_BLOCK,)),
        ("FVGs and OBs", (PatternKind.FAIR_VALUE_GAP, PatternKind.ORDER_BLOCK)),
    ])
    def test_plural_abbreviations(self, text, kinds):
        assert parse_query(text).kinds == kinds

    def test_abbreviation_inside_word_ignored(self):
        """Test 'ob' inside another word does not select order blocks"""
        assert parse_query("obvious fvg").kinds == (PatternKind.FAIR_VALUE_GAP,)
        assert parse_query("obvious").kinds == ALL_KINDS

    def test_both_directions(self):
        query = parse_query("bullish and bearish fvg")

        assert query.directions == (Direction.BULLISH, Direction.BEARISH)


class TestPatternScanner:
    """Test scanning and ranking across symbols"""

    def test_best_per_symbol_sorted(self, universe):
        """Test one result per symbol, highest score first"""
        report = PatternScanner().scan(universe, "fvg")

        symbols = [r.symbol for r in report.results]
        scores = [r.score for r in report.results]

        assert len(symbols) == len(set(symbols))
        assert scores == sorted(scores, reverse=True)
        assert symbols[0] == 'BBB'
        assert set(symbols) == {'AAA', 'BBB', 'CCC', 'DDD'}

    def test_failed_symbols_dropped(self, universe):
        """Test malformed data is counted, not raised"""
        report = PatternScanner().scan(universe, "fvg")

        assert report.symbols_scanned == 4
        assert report.symbols_failed == 1
        assert 'BAD' not in [r.symbol for r in report.results]

    def test_limit_beyond_matches(self, universe):
        """Test a large limit never fabricates results"""
        report = PatternScanner().scan(universe, "50 fvg")

        assert len(report.results) == 4

    def test_limit(self, universe):
        report = PatternScanner().scan(universe, "2 fvg")

        assert len(report.results) == 2
        assert report.total_patterns_found == 6

    def test_direction_filter(self, universe):
        report = PatternScanner().scan(universe, "bearish fvg")

        assert {r.symbol for r in report.results} == {'CCC', 'DDD'}
        assert all(r.pattern.direction is Direction.BEARISH for r in report.results)

    def test_tie_keeps_symbol_order(self, make_series, bullish_gap_rows):
        """Test equal scores keep the input order"""
        series = make_series(bullish_gap_rows)
        report = PatternScanner().scan({'ZZZ': series, 'AAA': series}, "fvg")

        assert [r.symbol for r in report.results] == ['ZZZ', 'AAA']

    def test_empty_series_fails(self, universe):
        universe['EMPTY'] = []
        report = PatternScanner().scan(universe, "fvg")

        assert report.symbols_failed == 2

    def test_blank_timestamps_fail(self, universe):
        """Test a symbol with missing timestamps is counted as failed"""
        universe['BLANK'] = [
            {'t': '', 'o': 10, 'h': 12, 'l': 9, 'c': 11},
            {'t': '', 'o': 11, 'h': 14, 'l': 10, 'c': 13},
            {'t': '', 'o': 13, 'h': 16, 'l': 12.5, 'c': 15},
        ]
        report = PatternScanner().scan(universe, "fvg")

        assert report.symbols_failed == 2
        assert 'BLANK' not in [r.symbol for r in report.results]

    def test_latest_price(self, universe):
        report = PatternScanner().scan(universe, "fvg")
        result = next(r for r in report.results if r.symbol == 'AAA')

        assert result.latest_price == 16
        assert result.to_dict()['latestPrice'] == 16

    def test_accepts_parsed_query(self, universe):
        query = ScanQuery(text='custom', limit=1, kinds=(PatternKind.FAIR_VALUE_GAP,),
                          directions=(Direction.BULLISH,))
        report = PatternScanner().scan(universe, query)

        assert len(report.results) == 1
        assert report.results[0].symbol == 'BBB'

    def test_config_limits(self, universe):
        scanner = PatternScanner({'scanner': {'default_limit': 1, 'max_limit': 2}})

        assert len(scanner.scan(universe, "fvg").results) == 1
        assert len(scanner.scan(universe, "10 fvg").results) == 2

    def test_report_dict(self, universe):
        result = PatternScanner().scan(universe, "fvg").to_dict()

        assert result['symbolsScanned'] == 4
        assert result['symbolsFailed'] == 1
        assert result['summary'].startswith("Scanned 4 symbols. Found 6 patterns")
        assert result['results'][0]['symbol'] == 'BBB'
        assert result['results'][0]['type'] == 'FVG'

    def test_search_single_series(self, make_series, trend_rows):
        """Test single-series search returns every match, best first"""
        search = PatternScanner().search(make_series(trend_rows), "fvg", symbol='DDD')

        scores = [p.score for p in search.patterns]
        assert len(search.patterns) == 3
        assert scores == sorted(scores, reverse=True)
        assert search.to_dict()['summary'].startswith('Found 3 patterns for "fvg"')

    def test_describe(self, make_series, sweep_rows):
        sweep = PatternScanner().search(make_series(sweep_rows), "sweep").patterns[0]

        assert describe(sweep) == "BULLISH sweep at 98.00"


class TestScanAsync:
    """Test the concurrent loader path"""

    def test_loader_failures_dropped(self, universe):
        async def loader(symbol):
            if symbol == 'MISSING':
                raise KeyError(symbol)
            return universe[symbol]

        report = asyncio.run(
            PatternScanner().scan_async(['AAA', 'BBB', 'MISSING'], loader, "fvg")
        )

        assert report.symbols_scanned == 2
        assert report.symbols_failed == 1
        assert [r.symbol for r in report.results] == ['BBB', 'AAA']

    def test_concurrency_bounded(self, universe):
        """Test no more than max_concurrency loads run at once"""
        active = 0
        peak = 0

        async def loader(symbol):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return universe['AAA']

        scanner = PatternScanner({'scanner': {'max_concurrency': 2}})
        symbols = [f'SYM{i}' for i in range(6)]
        report = asyncio.run(scanner.scan_async(symbols, loader, "fvg"))

        assert peak <= 2
        assert report.symbols_scanned == 6

    def test_duplicate_symbols_loaded_once(self, universe):
        calls = []

        async def loader(symbol):
            calls.append(symbol)
            return universe[symbol]

        asyncio.run(PatternScanner().scan_async(['AAA', 'AAA'], loader, "fvg"))

        assert calls == ['AAA']
