"""Tests for Bitcoin price fetching and the fallback snapshot."""

import re
from datetime import UTC, date, datetime, timedelta

import httpx
import pytest
import pytest_httpx

from fiaterosion import market
from fiaterosion.models import REGION_PROFILES, Region

UK = REGION_PROFILES[Region.UK]
US = REGION_PROFILES[Region.US]

PRICE_URL = re.compile(r".*/simple/price\?.*")
HISTORY_URL = re.compile(r".*/coins/bitcoin/history\?.*")
CHART_URL = re.compile(r".*/coins/bitcoin/market_chart\?.*")


@pytest.fixture(autouse=True)
def default_endpoint(monkeypatch):
    """Make sure tests never depend on the caller's environment."""
    monkeypatch.delenv("COINGECKO_BASE_URL", raising=False)
    monkeypatch.delenv("COINGECKO_API_KEY", raising=False)


def _add_live_responses(httpx_mock: pytest_httpx.HTTPXMock) -> None:
    httpx_mock.add_response(
        url=PRICE_URL,
        json={"bitcoin": {"gbp": 52000.0, "last_updated_at": 1767225600}},
    )
    httpx_mock.add_response(
        url=HISTORY_URL,
        json={"market_data": {"current_price": {"gbp": 26000.0}}},
    )
    httpx_mock.add_response(
        url=CHART_URL,
        json={"prices": [[1704067200000, 26000.0], [1767225600000, 52000.0]]},
    )


class TestConfiguration:
    def test_base_url_default(self):
        assert market.base_url() == "https://api.coingecko.com/api/v3"

    def test_base_url_override(self, monkeypatch):
        monkeypatch.setenv("COINGECKO_BASE_URL", "http://localhost:8080/api/")
        assert market.base_url() == "http://localhost:8080/api"

    def test_headers_without_key(self):
        assert "x-cg-demo-api-key" not in market.client_headers()

    def test_headers_with_key(self, monkeypatch):
        monkeypatch.setenv("COINGECKO_API_KEY", "demo-key")
        assert market.client_headers()["x-cg-demo-api-key"] == "demo-key"


@pytest.mark.asyncio
async def test_fetch_current_price(httpx_mock: pytest_httpx.HTTPXMock):
    httpx_mock.add_response(
        url=(
            "https://api.coingecko.com/api/v3/simple/price"
            "?ids=bitcoin&vs_currencies=usd&include_last_updated_at=true"
        ),
        json={"bitcoin": {"usd": 68000.5, "last_updated_at": 1767225600}},
    )

    async with httpx.AsyncClient() as client:
        price, updated = await market.fetch_current_price(client, "bitcoin", "USD")

    assert price == pytest.approx(68000.5)
    assert updated == datetime(2026, 1, 1, tzinfo=UTC)


@pytest.mark.asyncio
async def test_fetch_historical_price(httpx_mock: pytest_httpx.HTTPXMock):
    httpx_mock.add_response(
        url=(
            "https://api.coingecko.com/api/v3/coins/bitcoin/history"
            "?date=05-03-2016&localization=false"
        ),
        json={"market_data": {"current_price": {"eur": 370.2, "usd": 400.0}}},
    )

    async with httpx.AsyncClient() as client:
        price = await market.fetch_historical_price(
            client, "bitcoin", "EUR", date(2016, 3, 5)
        )

    assert price == pytest.approx(370.2)


@pytest.mark.asyncio
async def test_fetch_price_series(httpx_mock: pytest_httpx.HTTPXMock):
    httpx_mock.add_response(
        url=CHART_URL,
        json={"prices": [[1704067200000, 40000.0], [1704153600000, 41000.0]]},
    )

    async with httpx.AsyncClient() as client:
        series = await market.fetch_price_series(client, "bitcoin", "GBP", 730)

    assert series == [
        (datetime(2024, 1, 1, tzinfo=UTC), 40000.0),
        (datetime(2024, 1, 2, tzinfo=UTC), 41000.0),
    ]
    request = httpx_mock.get_request()
    assert request is not None
    assert request.url.params["days"] == "730"
    assert request.url.params["vs_currency"] == "gbp"


@pytest.mark.asyncio
async def test_fetch_price_series_empty(httpx_mock: pytest_httpx.HTTPXMock):
    httpx_mock.add_response(url=CHART_URL, json={"prices": []})

    async with httpx.AsyncClient() as client:
        with pytest.raises(ValueError, match="No price series"):
            await market.fetch_price_series(client, "bitcoin", "GBP", 365)


@pytest.mark.asyncio
async def test_live_snapshot(httpx_mock: pytest_httpx.HTTPXMock):
    _add_live_responses(httpx_mock)

    async with httpx.AsyncClient() as client:
        snapshot = await market.live_snapshot(client, UK, 2, 1000.0)

    assert not snapshot.is_fallback
    assert snapshot.current_price == 52000.0
    assert snapshot.start_price == 26000.0
    assert snapshot.last_updated == "00:00:00 UTC"
    assert [p.value for p in snapshot.points] == pytest.approx([1000.0, 2000.0])


@pytest.mark.asyncio
async def test_fetch_snapshot_live(httpx_mock: pytest_httpx.HTTPXMock):
    _add_live_responses(httpx_mock)

    async with httpx.AsyncClient() as client:
        snapshot, warnings = await market.fetch_snapshot(client, UK, 2, 1000.0)

    assert warnings == []
    assert not snapshot.is_fallback


@pytest.mark.asyncio
async def test_fallback_on_api_failure(httpx_mock: pytest_httpx.HTTPXMock):
    """A single failed request switches to the fallback without retrying."""
    httpx_mock.add_response(url=PRICE_URL, status_code=429)

    async with httpx.AsyncClient() as client:
        snapshot, warnings = await market.fetch_snapshot(client, UK, 3, 1000.0)

    assert snapshot.is_fallback
    assert snapshot.last_updated == "Estimate"
    assert len(httpx_mock.get_requests()) == 1
    assert any("fallback" in w.lower() for w in warnings)


@pytest.mark.asyncio
async def test_fallback_on_malformed_payload(httpx_mock: pytest_httpx.HTTPXMock):
    httpx_mock.add_response(url=PRICE_URL, json={"bitcoin": {}})

    async with httpx.AsyncClient() as client:
        snapshot, warnings = await market.fetch_snapshot(client, US, 2, 500.0)

    assert snapshot.is_fallback
    assert snapshot.current_price == 68000.0
    assert "malformed" in warnings[0]


@pytest.mark.asyncio
async def test_fallback_on_non_object_chart_payload(
    httpx_mock: pytest_httpx.HTTPXMock,
):
    httpx_mock.add_response(
        url=PRICE_URL,
        json={"bitcoin": {"gbp": 50000.0, "last_updated_at": 1767225600}},
    )
    httpx_mock.add_response(
        url=HISTORY_URL,
        json={"market_data": {"current_price": {"gbp": 25000.0}}},
    )
    httpx_mock.add_response(url=CHART_URL, json=[])

    async with httpx.AsyncClient() as client:
        snapshot, warnings = await market.fetch_snapshot(client, UK, 2, 1000.0)

    assert snapshot.is_fallback
    assert "malformed" in warnings[0]


@pytest.mark.asyncio
async def test_fallback_on_invalid_base_url(monkeypatch):
    monkeypatch.setenv("COINGECKO_BASE_URL", "http://example.com:badport")

    async with httpx.AsyncClient() as client:
        snapshot, warnings = await market.fetch_snapshot(client, UK, 2, 1000.0)

    assert snapshot.is_fallback
    assert "API error" in warnings[0]


class TestFallbackSnapshot:
    NOW = datetime(2026, 1, 1, tzinfo=UTC)

    def test_prices_by_currency(self):
        eur = REGION_PROFILES[Region.EUROZONE]
        assert market.fallback_snapshot(UK, 2, 1.0, self.NOW).current_price == 52000.0
        assert market.fallback_snapshot(US, 2, 1.0, self.NOW).current_price == 68000.0
        assert market.fallback_snapshot(eur, 2, 1.0, self.NOW).current_price == 62000.0

    def test_start_price_back_computed(self):
        snapshot = market.fallback_snapshot(US, 10, 1.0, self.NOW)
        assert snapshot.start_price == pytest.approx(68000.0 / 1.5**10)

    def test_one_year_lookback(self):
        assert market.fallback_snapshot(UK, 1, 1.0, self.NOW).start_price == 75000.0
        assert market.fallback_snapshot(US, 1, 1.0, self.NOW).start_price == 98000.0

    def test_points(self):
        snapshot = market.fallback_snapshot(UK, 10, 1000.0, self.NOW)
        # every 30 days from 3650 days ago down to 20 days ago
        assert len(snapshot.points) == 122
        first, last = snapshot.points[0], snapshot.points[-1]
        assert first.timestamp == self.NOW - timedelta(days=3650)
        assert last.timestamp == self.NOW - timedelta(days=20)
        assert first.price == pytest.approx(snapshot.start_price)
        assert first.value == pytest.approx(1000.0)
        prices = [p.price for p in snapshot.points]
        assert prices == sorted(prices)

    def test_deterministic(self):
        a = market.fallback_snapshot(UK, 4, 250.0, self.NOW)
        b = market.fallback_snapshot(UK, 4, 250.0, self.NOW)
        assert a == b
