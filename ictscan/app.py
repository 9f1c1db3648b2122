"""
FastAPI backend for bar-pattern analysis

Serves the composite verdict, the cross-symbol scanner and single-series
pattern search over JSON bar data supplied by the caller.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .analysis import CompositeAnalyzer
from .bars import InsufficientData, InvalidInput
from .config import load_config
from .detectors import list_available_detectors
from .scanner import PatternScanner
from .security import (
    RateLimiter,
    SecurityHeadersMiddleware,
    RateLimitMiddleware,
    validate_symbol,
    validate_query,
    validate_bar_count,
    validate_symbol_count
)

# Load configuration
config = load_config()

# Configure logging
logging.basicConfig(
    level=getattr(logging, str(config['server']['log_level']).upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

DEFAULT_QUERY = "bullish fvg"

# Global instances
analyzer: Optional[CompositeAnalyzer] = None
scanner: Optional[PatternScanner] = None


# ═══════════════════════════════════════════════════════════════
# REQUEST MODELS
# ═══════════════════════════════════════════════════════════════

class AnalysisRequest(BaseModel):
    symbol: Optional[str] = None
    daily: List[Dict[str, Any]]
    weekly: Optional[List[Dict[str, Any]]] = None
    current_price: Optional[float] = Field(None, alias='currentPrice', gt=0)


class ScanRequest(BaseModel):
    query: Optional[str] = None
    series: Dict[str, List[Dict[str, Any]]]


class PatternSearchRequest(BaseModel):
    symbol: Optional[str] = None
    query: Optional[str] = None
    bars: List[Dict[str, Any]]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown"""
    global analyzer, scanner

    logger.info("Starting application...")

    analyzer = CompositeAnalyzer(config)
    scanner = PatternScanner(config)

    logger.info(f"Application started with {len(list_available_detectors())} registered detectors")

    yield

    logger.info("Application shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="ICT Pattern Scanner API",
    description="Price-action pattern detection and cross-symbol scanning",
    version="0.1.0",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add security middleware
app.add_middleware(SecurityHeadersMiddleware)

# Add rate limiting middleware
rate_limiter = RateLimiter(
    requests_per_minute=config['security']['requests_per_minute'],
    requests_per_hour=config['security']['requests_per_hour']
)
app.add_middleware(RateLimitMiddleware, rate_limiter=rate_limiter)


@app.exception_handler(InvalidInput)
async def invalid_input_handler(request: Request, exc: InvalidInput):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(InsufficientData)
async def insufficient_data_handler(request: Request, exc: InsufficientData):
    return JSONResponse(
        status_code=422,
        content={
            "detail": str(exc),
            "detector": exc.detector,
            "required": exc.required,
            "available": exc.available,
        }
    )


def _require_ready():
    if not analyzer or not scanner:
        raise HTTPException(status_code=503, detail="Analyzer not initialized")


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    ready = analyzer is not None and scanner is not None

    return JSONResponse(
        status_code=200 if ready else 503,
        content={
            "status": "healthy" if ready else "unhealthy",
            "detectors": len(list_available_detectors()),
        }
    )


@app.get("/api/detectors")
async def get_available_detectors():
    """Get list of available detectors"""
    return {
        "detectors": list_available_detectors()
    }


@app.post("/api/analysis")
async def analyze(request: AnalysisRequest):
    """
    Composite verdict for one symbol.

    Example:
        POST /api/analysis
        Body: {"symbol": "AAPL", "daily": [{"time": ..., "open": ...}, ...],
               "weekly": [...], "currentPrice": 187.5}
    """
    _require_ready()

    symbol = validate_symbol(request.symbol) if request.symbol else None
    validate_bar_count(len(request.daily), "daily bars")
    if request.weekly is not None:
        validate_bar_count(len(request.weekly), "weekly bars")

    verdict = analyzer.analyze(
        request.daily,
        weekly=request.weekly,
        current_price=request.current_price,
        symbol=symbol,
    )

    return verdict.to_dict()


@app.post("/api/scan")
async def scan(request: ScanRequest):
    """
    Rank the best pattern per symbol.

    Example:
        POST /api/scan
        Body: {"query": "top 5 bearish order blocks", "series": {"AAPL": [...], "MSFT": [...]}}
    """
    _require_ready()

    query = validate_query(request.query) or DEFAULT_QUERY
    validate_symbol_count(len(request.series))

    series_by_symbol = {}
    for symbol, bars in request.series.items():
        validate_bar_count(len(bars))
        series_by_symbol[validate_symbol(symbol)] = bars

    report = scanner.scan(series_by_symbol, query)

    return report.to_dict()


@app.post("/api/patterns")
async def search_patterns(request: PatternSearchRequest):
    """Matching patterns of a single series, best first"""
    _require_ready()

    query = validate_query(request.query) or DEFAULT_QUERY
    symbol = validate_symbol(request.symbol) if request.symbol else None
    validate_bar_count(len(request.bars))

    result = scanner.search(request.bars, query, symbol=symbol)

    return result.to_dict()


@app.get("/api/rate-limit-info")
async def rate_limit_info():
    """Get rate limiting configuration"""
    return {
        "limits": {
            "per_minute": rate_limiter.requests_per_minute,
            "per_hour": rate_limiter.requests_per_hour
        },
        "note": "Rate limits are per IP address"
    }
