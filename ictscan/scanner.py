"""
Cross-Symbol Pattern Scanner

Answers free-text queries such as "top 5 bullish fvg" over many bar
series: runs the matching detectors per symbol, ranks every match by
score and keeps the best pattern per symbol.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple, Union

from .bars import BarDataError, BarSeries
from .detectors import DetectorManager
from .patterns import Direction, Pattern, PatternKind

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
MAX_LIMIT = 100
MAX_CONCURRENCY = 8

SCANNABLE_KINDS: Tuple[PatternKind, ...] = (
    PatternKind.FAIR_VALUE_GAP,
    PatternKind.ORDER_BLOCK,
    PatternKind.LIQUIDITY_SWEEP,
)

KIND_KEYWORDS: Dict[PatternKind, List[str]] = {
    PatternKind.FAIR_VALUE_GAP: [r'\bfvgs?\b', r'fair value', r'gap'],
    PatternKind.ORDER_BLOCK: [r'order block', r'\bobs?\b'],
    PatternKind.LIQUIDITY_SWEEP: [r'liquidity', r'sweep'],
}

LIMIT_PATTERN = re.compile(r'(\d+)')

BarLoader = Callable[[str], Awaitable[Any]]


@dataclass(frozen=True)
class ScanQuery:
    """Parsed scanner query"""
    text: str
    limit: int
    kinds: Tuple[PatternKind, ...]
    directions: Tuple[Direction, ...]

    def matches(self, pattern: Pattern) -> bool:
        return pattern.kind in self.kinds and pattern.direction in self.directions

    def to_dict(self) -> Dict[str, Any]:
        return {
            'text': self.text,
            'limit': self.limit,
            'kinds': [k.value for k in self.kinds],
            'directions': [d.value for d in self.directions],
        }


def parse_query(text: Optional[str],
                default_limit: int = DEFAULT_LIMIT,
                max_limit: int = MAX_LIMIT) -> ScanQuery:
    """
    Parse a free-text scanner query.

    Unrecognized words are ignored. No pattern keyword means all scannable
    kinds, no (or both) direction keywords means both directions.

    Args:
        text: Query text, e.g. "top 5 bearish order blocks"
        default_limit: Limit when the text has no number (or the number is 0)
        max_limit: Upper bound on the limit

    Returns:
        ScanQuery
    """
    normalized = (text or '').strip().lower()

    match = LIMIT_PATTERN.search(normalized)
    limit = int(match.group(1)) if match else 0
    if limit <= 0:
        limit = default_limit
    limit = min(limit, max_limit)

    kinds = tuple(
        kind for kind in SCANNABLE_KINDS
        if any(re.search(keyword, normalized) for keyword in KIND_KEYWORDS[kind])
    )
    if not kinds:
        kinds = SCANNABLE_KINDS

    bullish = 'bullish' in normalized
    bearish = 'bearish' in normalized
    if bullish and not bearish:
        directions = (Direction.BULLISH,)
    elif bearish and not bullish:
        directions = (Direction.BEARISH,)
    else:
        directions = (Direction.BULLISH, Direction.BEARISH)

    return ScanQuery(text=normalized, limit=limit, kinds=kinds, directions=directions)


def describe(pattern: Pattern) -> str:
    """One-line description, e.g. 'BULLISH FVG at 101.50 - 103.00'"""
    label = pattern.direction.value.upper()
    if pattern.kind is PatternKind.LIQUIDITY_SWEEP:
        return f"{label} sweep at {pattern.center:.2f}"
    return f"{label} {pattern.kind.value} at {pattern.low:.2f} - {pattern.high:.2f}"


def rank(patterns: Iterable[Pattern]) -> List[Pattern]:
    """Sort by score descending; ties keep their detection order"""
    return sorted(patterns, key=lambda p: -p.score)


def direction_counts(patterns: Iterable[Pattern]) -> Tuple[int, int]:
    bullish = bearish = 0
    for pattern in patterns:
        if pattern.direction is Direction.BULLISH:
            bullish += 1
        else:
            bearish += 1
    return bullish, bearish


@dataclass(frozen=True)
class ScanResult:
    """Best matching pattern of one symbol"""
    symbol: str
    pattern: Pattern
    latest_price: float

    @property
    def score(self) -> float:
        return self.pattern.score

    def to_dict(self) -> Dict[str, Any]:
        return {
            'symbol': self.symbol,
            **self.pattern.to_dict(),
            'latestPrice': self.latest_price,
            'description': describe(self.pattern),
        }


@dataclass(frozen=True)
class ScanReport:
    query: ScanQuery
    symbols_scanned: int
    symbols_failed: int
    total_patterns_found: int
    results: List[ScanResult] = field(default_factory=list)

    @property
    def summary(self) -> str:
        bullish, bearish = direction_counts(r.pattern for r in self.results)
        return (
            f"Scanned {self.symbols_scanned} symbols. "
            f"Found {self.total_patterns_found} patterns matching \"{self.query.text}\". "
            f"Showing top {len(self.results)} results ({bullish} bullish, {bearish} bearish)."
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'query': self.query.text,
            'symbolsScanned': self.symbols_scanned,
            'symbolsFailed': self.symbols_failed,
            'totalPatternsFound': self.total_patterns_found,
            'results': [r.to_dict() for r in self.results],
            'summary': self.summary,
        }


@dataclass(frozen=True)
class PatternSearch:
    """Matching patterns of a single series, best first"""
    query: ScanQuery
    patterns: List[Pattern]
    symbol: Optional[str] = None

    @property
    def summary(self) -> str:
        bullish, bearish = direction_counts(self.patterns)
        return (
            f"Found {len(self.patterns)} patterns for \"{self.query.text}\". "
            f"{bullish} bullish, {bearish} bearish setups identified."
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'symbol': self.symbol,
            'query': self.query.text,
            'patterns': [
                {**p.to_dict(), 'description': describe(p)} for p in self.patterns
            ],
            'summary': self.summary,
        }


class PatternScanner:
    """
    Ranks pattern matches across symbols.

    Detection runs through the same DetectorManager as the composite
    analyzer; the scanner only filters, ranks and de-duplicates.
    """

    name = "PatternScanner"

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Args:
            config: Full application config (uses its 'scanner' section)
        """
        scanner_config = (config or {}).get('scanner', {})
        self.default_limit = scanner_config.get('default_limit', DEFAULT_LIMIT)
        self.max_limit = scanner_config.get('max_limit', MAX_LIMIT)
        self.max_concurrency = scanner_config.get('max_concurrency', MAX_CONCURRENCY)

    def parse(self, query: Union[str, ScanQuery, None]) -> ScanQuery:
        if isinstance(query, ScanQuery):
            return query
        return parse_query(query, self.default_limit, self.max_limit)

    def find_patterns(self, series: BarSeries, query: ScanQuery) -> List[Pattern]:
        """All patterns of one series matching the query, in detection order"""
        manager = DetectorManager(kinds=query.kinds)
        detected = manager.detect_all(series)

        patterns: List[Pattern] = []
        for kind in query.kinds:
            patterns.extend(p for p in detected[kind] if query.matches(p))
        return patterns

    def search(self, bars: Any, query: Union[str, ScanQuery, None] = None,
               symbol: Optional[str] = None) -> PatternSearch:
        """
        Single-series search: every matching pattern, best first, limited.

        Raises:
            InvalidInput: malformed bars
        """
        query = self.parse(query)
        series = BarSeries.coerce(bars)
        patterns = rank(self.find_patterns(series, query))
        return PatternSearch(query=query, patterns=patterns[:query.limit], symbol=symbol)

    def scan(self, series_by_symbol: Dict[str, Any],
             query: Union[str, ScanQuery, None] = None) -> ScanReport:
        """
        Scan many series and keep the best match per symbol.

        Symbols whose data is malformed or empty are dropped and counted
        in `symbols_failed`.

        Args:
            series_by_symbol: Mapping of symbol to bars (BarSeries, DataFrame or records)
            query: Query text or a parsed ScanQuery

        Returns:
            ScanReport with at most `query.limit` results
        """
        query = self.parse(query)

        matches: List[ScanResult] = []
        scanned = 0
        failed = 0

        for symbol, bars in series_by_symbol.items():
            try:
                series = BarSeries.coerce(bars)
                series.require(1, self.name)
                patterns = self.find_patterns(series, query)
            except BarDataError as e:
                logger.warning(f"Dropping {symbol} from scan: {e}")
                failed += 1
                continue

            scanned += 1
            latest_price = series.last.close
            matches.extend(ScanResult(symbol, p, latest_price) for p in patterns)

        ranked = sorted(matches, key=lambda r: -r.score)

        seen = set()
        best_per_symbol: List[ScanResult] = []
        for result in ranked:
            if result.symbol not in seen:
                seen.add(result.symbol)
                best_per_symbol.append(result)

        report = ScanReport(
            query=query,
            symbols_scanned=scanned,
            symbols_failed=failed,
            total_patterns_found=len(matches),
            results=best_per_symbol[:query.limit],
        )

        logger.info(
            f"Scan \"{query.text}\": {scanned} symbols, {len(matches)} matches, "
            f"{len(report.results)} results"
        )
        return report

    async def scan_async(self, symbols: Iterable[str], loader: BarLoader,
                         query: Union[str, ScanQuery, None] = None) -> ScanReport:
        """
        Load bars concurrently (bounded by max_concurrency), then scan.

        Args:
            symbols: Symbols to scan
            loader: Coroutine function returning the bars of one symbol
            query: Query text or a parsed ScanQuery

        Returns:
            ScanReport; symbols whose loader raised count as failed
        """
        symbols = list(dict.fromkeys(symbols))
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def load(symbol: str):
            async with semaphore:
                try:
                    return symbol, await loader(symbol)
                except Exception as e:
                    logger.warning(f"Failed to load bars for {symbol}: {e}")
                    return symbol, None

        loaded = await asyncio.gather(*(load(symbol) for symbol in symbols))

        series_by_symbol = {symbol: bars for symbol, bars in loaded if bars is not None}
        load_failures = len(symbols) - len(series_by_symbol)

        report = self.scan(series_by_symbol, query)
        return replace(report, symbols_failed=report.symbols_failed + load_failures)
