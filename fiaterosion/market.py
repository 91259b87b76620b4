"""Async Bitcoin price client using the CoinGecko API, with a fixed fallback.

Data flow per refresh:
    1. Fetch current price, start price and daily series from CoinGecko
    2. On any failure, substitute the deterministic fallback snapshot
    3. Report the substitution as a warning, never as an error

No API key required. An optional demo key is read from COINGECKO_API_KEY.
"""

from __future__ import annotations

import os
from datetime import UTC, date, datetime, timedelta

import httpx

from fiaterosion.models import BtcPoint, MarketSnapshot, Region, RegionProfile

COINGECKO_BASE_URL = "https://api.coingecko.com/api/v3"
DEFAULT_ASSET_ID = "bitcoin"
REQUEST_TIMEOUT = 30.0

# --- Fallback constants ---

FALLBACK_PRICES = {"GBP": 52000.0, "USD": 68000.0, "EUR": 62000.0}
FALLBACK_DEFAULT_PRICE = 68000.0
FALLBACK_GROWTH = 1.5
FALLBACK_STEP_DAYS = 30
FALLBACK_LABEL = "Estimate"


def base_url() -> str:
    return os.environ.get("COINGECKO_BASE_URL", COINGECKO_BASE_URL).rstrip("/")


def client_headers() -> dict[str, str]:
    """Request headers, including the demo API key when one is configured."""
    headers = {"accept": "application/json"}
    api_key = os.environ.get("COINGECKO_API_KEY")
    if api_key:
        headers["x-cg-demo-api-key"] = api_key
    return headers


def _from_millis(ms: float) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz=UTC)


def _years_before(d: date, years: int) -> date:
    try:
        return d.replace(year=d.year - years)
    except ValueError:
        # 29 February in a non-leap target year
        return d.replace(year=d.year - years, day=28)


# --- Live source ---


async def fetch_current_price(
    client: httpx.AsyncClient,
    asset_id: str,
    currency: str,
) -> tuple[float, datetime]:
    """Latest price and the time CoinGecko last updated it."""
    vs = currency.lower()
    resp = await client.get(
        f"{base_url()}/simple/price",
        params={
            "ids": asset_id,
            "vs_currencies": vs,
            "include_last_updated_at": "true",
        },
    )
    resp.raise_for_status()
    data = resp.json()[asset_id]
    return float(data[vs]), datetime.fromtimestamp(data["last_updated_at"], tz=UTC)


async def fetch_historical_price(
    client: httpx.AsyncClient,
    asset_id: str,
    currency: str,
    on_date: date,
) -> float:
    """Price on a given day (CoinGecko wants DD-MM-YYYY)."""
    resp = await client.get(
        f"{base_url()}/coins/{asset_id}/history",
        params={"date": on_date.strftime("%d-%m-%Y"), "localization": "false"},
    )
    resp.raise_for_status()
    data = resp.json()
    return float(data["market_data"]["current_price"][currency.lower()])


async def fetch_price_series(
    client: httpx.AsyncClient,
    asset_id: str,
    currency: str,
    days: int,
) -> list[tuple[datetime, float]]:
    """Daily (timestamp, price) pairs, oldest first.

    Raises ValueError if the API returns no prices.
    """
    resp = await client.get(
        f"{base_url()}/coins/{asset_id}/market_chart",
        params={
            "vs_currency": currency.lower(),
            "days": str(days),
            "interval": "daily",
        },
    )
    resp.raise_for_status()
    payload = resp.json()
    if not isinstance(payload, dict):
        raise ValueError(f"Unexpected price series payload for {asset_id}")
    prices = payload.get("prices") or []
    if not prices:
        raise ValueError(f"No price series returned for {asset_id}")
    return [(_from_millis(ts), float(price)) for ts, price in prices]


async def live_snapshot(
    client: httpx.AsyncClient,
    profile: RegionProfile,
    lookback_years: int,
    savings: float,
    asset_id: str = DEFAULT_ASSET_ID,
) -> MarketSnapshot:
    """Snapshot built from three sequential CoinGecko requests."""
    currency = profile.currency
    start_date = _years_before(date.today(), lookback_years)

    current, updated_at = await fetch_current_price(client, asset_id, currency)
    start_price = await fetch_historical_price(client, asset_id, currency, start_date)
    if start_price <= 0:
        raise ValueError(f"Invalid start price {start_price} for {asset_id}")
    series = await fetch_price_series(client, asset_id, currency, lookback_years * 365)

    points = [
        BtcPoint(timestamp=ts, price=price, value=savings / start_price * price)
        for ts, price in series
    ]
    return MarketSnapshot(
        currency=currency,
        current_price=current,
        start_price=start_price,
        last_updated=updated_at.strftime("%H:%M:%S UTC"),
        points=points,
    )


# --- Fallback source ---


def fallback_snapshot(
    profile: RegionProfile,
    lookback_years: int,
    savings: float,
    now: datetime | None = None,
) -> MarketSnapshot:
    """Deterministic stand-in for the live snapshot.

    The start price is back-computed at 50% a year, except for a one-year
    lookback where fixed approximations are used. Points every 30 days move
    linearly from the start price to the current one.
    """
    now = now or datetime.now(UTC)
    current = FALLBACK_PRICES.get(profile.currency, FALLBACK_DEFAULT_PRICE)
    if lookback_years == 1:
        start = 75000.0 if profile.region is Region.UK else 98000.0
    else:
        start = current / FALLBACK_GROWTH**lookback_years

    days = lookback_years * 365
    points: list[BtcPoint] = []
    for i in range(days, -1, -FALLBACK_STEP_DAYS):
        price = start + (current - start) * (1 - i / days)
        points.append(
            BtcPoint(
                timestamp=now - timedelta(days=i),
                price=price,
                value=savings / start * price,
            )
        )

    return MarketSnapshot(
        currency=profile.currency,
        current_price=current,
        start_price=start,
        last_updated=FALLBACK_LABEL,
        points=points,
        is_fallback=True,
    )


# --- Single-attempt orchestrator ---


async def fetch_snapshot(
    client: httpx.AsyncClient,
    profile: RegionProfile,
    lookback_years: int,
    savings: float,
    asset_id: str = DEFAULT_ASSET_ID,
) -> tuple[MarketSnapshot, list[str]]:
    """Try the live source once, otherwise use the fallback.

    Returns (snapshot, warnings_list).
    """
    warnings: list[str] = []
    try:
        snapshot = await live_snapshot(
            client, profile, lookback_years, savings, asset_id
        )
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        warnings.append(f"Market data fallback active: API error ({exc}).")
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        warnings.append(f"Market data fallback active: malformed response ({exc}).")
    else:
        return snapshot, warnings

    return fallback_snapshot(profile, lookback_years, savings), warnings
