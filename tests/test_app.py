"""
Tests for the HTTP API

Exercises the FastAPI endpoints, error mapping and middleware through
TestClient.
"""

import pytest
from fastapi.testclient import TestClient

from ictscan import app as app_module
from ictscan.app import app
from ictscan.detectors import DETECTOR_REGISTRY


def records(series):
    return [bar.to_dict() for bar in series]


@pytest.fixture
def client():
    """Client with the application lifespan running and fresh rate limits"""
    app_module.rate_limiter.minute_requests.clear()
    app_module.rate_limiter.hour_requests.clear()

    with TestClient(app) as test_client:
        yield test_client


class TestHealth:
    """Test service endpoints"""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "detectors": len(DETECTOR_REGISTRY)}

    def test_detectors(self, client):
        response = client.get("/api/detectors")

        assert response.status_code == 200
        keys = {d['key'] for d in response.json()['detectors']}
        assert keys == set(DETECTOR_REGISTRY)

    def test_security_headers(self, client):
        response = client.get("/api/detectors")

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert "X-RateLimit-Remaining-Minute" in response.headers


class TestAnalysisEndpoint:
    """Test POST /api/analysis"""

    def test_verdict(self, client, make_series, make_weekly, trend_rows):
        weekly = make_weekly([(100, 110, 95, 105), (120, 200, 100, 175)])

        response = client.post("/api/analysis", json={
            "symbol": "aapl",
            "daily": records(make_series(trend_rows)),
            "weekly": records(weekly),
            "currentPrice": 101,
        })

        assert response.status_code == 200
        body = response.json()
        assert body['ticker'] == 'AAPL'
        assert body['bias'] == 'BULLISH'
        assert body['confidence'] == 'HIGH'
        assert body['currentPrice'] == 101
        assert body['marketMakerModel']['model'] == 'MMBM'

    def test_invalid_bar(self, client):
        """Test malformed bars map to 400"""
        response = client.post("/api/analysis", json={
            "daily": [{"time": "2024-01-02", "open": 10, "high": 9, "low": 11, "close": 10}],
        })

        assert response.status_code == 400

    def test_empty_daily(self, client):
        """Test a missing daily series maps to 422 with detector context"""
        response = client.post("/api/analysis", json={"daily": []})

        assert response.status_code == 422
        assert response.json()['detector'] == 'CompositeAnalyzer'

    def test_invalid_symbol(self, client, make_series, boundary_rows):
        response = client.post("/api/analysis", json={
            "symbol": "not a symbol!",
            "daily": records(make_series(boundary_rows)),
        })

        assert response.status_code == 400


class TestScanEndpoint:
    """Test POST /api/scan and /api/patterns"""

    def test_default_query(self, client, make_series, bullish_gap_rows, bearish_gap_rows):
        response = client.post("/api/scan", json={
            "series": {
                "AAA": records(make_series(bullish_gap_rows)),
                "CCC": records(make_series(bearish_gap_rows)),
            },
        })

        assert response.status_code == 200
        body = response.json()
        assert body['query'] == 'bullish fvg'
        assert [r['symbol'] for r in body['results']] == ['AAA']
        assert body['symbolsScanned'] == 2

    def test_failed_symbol_counted(self, client, make_series, bullish_gap_rows):
        response = client.post("/api/scan", json={
            "query": "fvg",
            "series": {
                "AAA": records(make_series(bullish_gap_rows)),
                "BAD": [{"time": "2024-01-02", "open": 10}],
            },
        })

        assert response.status_code == 200
        assert response.json()['symbolsFailed'] == 1

    def test_no_symbols(self, client):
        response = client.post("/api/scan", json={"series": {}})

        assert response.status_code == 400

    def test_query_too_long(self, client, make_series, bullish_gap_rows):
        response = client.post("/api/scan", json={
            "query": "fvg " * 100,
            "series": {"AAA": records(make_series(bullish_gap_rows))},
        })

        assert response.status_code == 400

    def test_patterns(self, client, make_series, trend_rows):
        response = client.post("/api/patterns", json={
            "symbol": "DDD",
            "query": "fvg",
            "bars": records(make_series(trend_rows)),
        })

        assert response.status_code == 200
        body = response.json()
        assert body['symbol'] == 'DDD'
        assert len(body['patterns']) == 3
        assert body['summary'].startswith('Found 3 patterns')


class TestRateLimit:
    """Test rate limiting middleware"""

    def test_limit_exceeded(self, client, monkeypatch):
        monkeypatch.setattr(app_module.rate_limiter, 'requests_per_minute', 2)

        assert client.get("/api/detectors").status_code == 200
        assert client.get("/api/detectors").status_code == 200

        response = client.get("/api/detectors")
        assert response.status_code == 429
        assert 'Rate limit exceeded' in response.json()['detail']

    def test_health_exempt(self, client, monkeypatch):
        monkeypatch.setattr(app_module.rate_limiter, 'requests_per_minute', 1)

        for _ in range(3):
            assert client.get("/health").status_code == 200
