"""Data models for erosion series, accumulation series and market snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Region(str, Enum):
    US = "US"
    UK = "UK"
    EUROZONE = "EUROZONE"


class ProjectionBasis(str, Enum):
    CONSTANT = "CONSTANT"
    TREND = "TREND"


class ViewMode(str, Enum):
    INDEXED = "indexed"
    ABSOLUTE = "absolute"


@dataclass(frozen=True, slots=True)
class RegionProfile:
    region: Region
    currency: str
    official_rate: float
    alternative_rate: float
    symbol: str
    last_updated: str
    is_fallback: bool = False


@dataclass(frozen=True, slots=True)
class ProjectedRates:
    official: float
    alternative: float


@dataclass(slots=True)
class SeriesPoint:
    year: int
    nominal: float
    real_official: float | None = None
    real_alternative: float | None = None
    real_official_projected: float | None = None
    real_alternative_projected: float | None = None
    is_future: bool = False


@dataclass(frozen=True, slots=True)
class IndexedValue:
    abs: float
    pct: float


@dataclass(slots=True)
class AccumulationSeries:
    years: list[int]
    view_mode: ViewMode
    nominal: list[IndexedValue] = field(default_factory=list)
    additions: list[IndexedValue] = field(default_factory=list)
    official: list[IndexedValue] = field(default_factory=list)
    shadow: list[IndexedValue] = field(default_factory=list)

    def plotted(self, name: str) -> list[float]:
        """Values of one series as drawn in the current view mode."""
        values: list[IndexedValue] = getattr(self, name)
        if self.view_mode is ViewMode.INDEXED:
            return [v.pct for v in values]
        return [v.abs for v in values]


@dataclass(slots=True)
class AssetSeriesPoint:
    year: int
    stagnant_cash: float
    official_asset_value: float
    shadow_asset_value: float


@dataclass(slots=True)
class BtcPoint:
    timestamp: datetime
    price: float
    value: float


@dataclass(slots=True)
class MarketSnapshot:
    currency: str
    current_price: float
    start_price: float
    last_updated: str
    points: list[BtcPoint] = field(default_factory=list)
    is_fallback: bool = False


@dataclass(slots=True)
class BtcSummary:
    current_value: float
    multiplier: float
    percent: float
    is_loss: bool
    start_price: float
    end_price: float
    last_updated: str


@dataclass(slots=True)
class ErosionReport:
    profile: RegionProfile
    basis: ProjectionBasis
    principal: float
    lookback_years: int
    forecast_years: int
    rates: ProjectedRates
    points: list[SeriesPoint] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


# --- Region registry ---

def _build_region_map() -> dict[Region, RegionProfile]:
    entries = [
        RegionProfile(Region.US, "USD", 0.031, 0.089, "$", "Dec 2024"),
        RegionProfile(
            Region.UK, "GBP", 0.034, 0.095, "£", "December 2025 (API Retired)",
            is_fallback=True,
        ),
        RegionProfile(Region.EUROZONE, "EUR", 0.024, 0.075, "€", "Dec 2024"),
    ]
    return {e.region: e for e in entries}


REGION_PROFILES = _build_region_map()
CURRENCY_REGION_MAP = {p.currency: p.region for p in REGION_PROFILES.values()}
SUPPORTED_CURRENCIES = list(CURRENCY_REGION_MAP.keys())
