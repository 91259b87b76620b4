"""Pure projection functions for purchasing-power erosion and asset growth."""

from __future__ import annotations

import dataclasses
import math
import re
from datetime import date

from fiaterosion.models import (
    AccumulationSeries,
    AssetSeriesPoint,
    BtcSummary,
    IndexedValue,
    MarketSnapshot,
    ProjectedRates,
    ProjectionBasis,
    RegionProfile,
    SeriesPoint,
    ViewMode,
)

# Fixed heuristic standing in for a multi-year average; never fitted.
TREND_OFFICIAL_MULTIPLIER = 1.35
TREND_ALTERNATIVE_MULTIPLIER = 1.20

SECONDS_IN_YEAR = 31_536_000

_NON_NUMERIC = re.compile(r"[^0-9.]")


def _this_year(current_year: int | None) -> int:
    return current_year if current_year is not None else date.today().year


def coerce_amount(value: object) -> float:
    """Coerce user input to a non-negative amount, 0.0 when unusable."""
    if isinstance(value, str):
        value = _NON_NUMERIC.sub("", value)
        if not value:
            return 0.0
    try:
        amount = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(amount) or amount < 0:
        return 0.0
    return amount


def resolve_rates(profile: RegionProfile, basis: ProjectionBasis) -> ProjectedRates:
    """Annual rates to hold into the future for the given basis."""
    if basis is ProjectionBasis.CONSTANT:
        return ProjectedRates(profile.official_rate, profile.alternative_rate)
    return ProjectedRates(
        official=profile.official_rate * TREND_OFFICIAL_MULTIPLIER,
        alternative=profile.alternative_rate * TREND_ALTERNATIVE_MULTIPLIER,
    )


def derive_alternative(profile: RegionProfile, multiplier: float) -> RegionProfile:
    """Copy of the profile with the alternative rate scaled from the official one."""
    return dataclasses.replace(
        profile, alternative_rate=profile.official_rate * multiplier
    )


def generate_history(
    principal: float,
    lookback_years: int,
    profile: RegionProfile,
    current_year: int | None = None,
) -> list[SeriesPoint]:
    """Past equivalents of today's principal, oldest first, ending at the pivot.

    Prices were lower by the compounding factor in the past, so the same
    purchasing power needed ``principal * (1 + rate) ** years_back`` today.
    """
    year_now = _this_year(current_year)
    points: list[SeriesPoint] = []
    for i in range(lookback_years, -1, -1):
        official = principal * (1 + profile.official_rate) ** i
        alternative = principal * (1 + profile.alternative_rate) ** i
        pivot = i == 0
        points.append(
            SeriesPoint(
                year=year_now - i,
                nominal=principal,
                real_official=official,
                real_alternative=alternative,
                real_official_projected=official if pivot else None,
                real_alternative_projected=alternative if pivot else None,
                is_future=False,
            )
        )
    return points


def generate_future(
    principal: float,
    forecast_years: int,
    rates: ProjectedRates,
    current_year: int | None = None,
) -> list[SeriesPoint]:
    """Future real value of the principal, soonest first, excluding the pivot."""
    year_now = _this_year(current_year)
    points: list[SeriesPoint] = []
    for i in range(1, forecast_years + 1):
        points.append(
            SeriesPoint(
                year=year_now + i,
                nominal=principal,
                real_official_projected=principal / (1 + rates.official) ** i,
                real_alternative_projected=principal / (1 + rates.alternative) ** i,
                is_future=True,
            )
        )
    return points


def generate_full_series(
    principal: float,
    lookback_years: int,
    forecast_years: int,
    profile: RegionProfile,
    basis: ProjectionBasis,
    current_year: int | None = None,
) -> list[SeriesPoint]:
    """History followed by the projection; the pivot year appears once."""
    year_now = _this_year(current_year)
    rates = resolve_rates(profile, basis)
    return generate_history(
        principal, lookback_years, profile, year_now
    ) + generate_future(principal, forecast_years, rates, year_now)


def _indexed(value: float, baseline: float) -> IndexedValue:
    return IndexedValue(abs=value, pct=value / baseline * 100)


def generate_accumulation(
    initial_savings: float,
    monthly_addition: float,
    initial_asset: float,
    rates: ProjectedRates,
    years: int,
    view_mode: ViewMode = ViewMode.INDEXED,
    current_year: int | None = None,
) -> AccumulationSeries:
    """Flat cash, cash plus monthly additions, and an asset under both rates.

    Every value is kept both absolute and as a percentage of its year-0
    baseline, so switching the view mode needs no recomputation. A zero
    baseline is indexed against 1.
    """
    year_now = _this_year(current_year)
    base_savings = initial_savings or 1
    base_asset = initial_asset or 1

    series = AccumulationSeries(
        years=[year_now + y for y in range(years + 1)],
        view_mode=view_mode,
    )
    for y in range(years + 1):
        with_additions = initial_savings + monthly_addition * (y * 12)
        series.nominal.append(IndexedValue(abs=initial_savings, pct=100.0))
        series.additions.append(_indexed(with_additions, base_savings))
        series.official.append(
            _indexed(initial_asset * (1 + rates.official) ** y, base_asset)
        )
        series.shadow.append(
            _indexed(initial_asset * (1 + rates.alternative) ** y, base_asset)
        )
    return series


def generate_asset_gap(
    savings: float,
    asset_value: float,
    lookback_years: int,
    forecast_years: int,
    profile: RegionProfile,
    current_year: int | None = None,
) -> list[AssetSeriesPoint]:
    """Stagnant cash against an asset tracking each inflation rate."""
    year_now = _this_year(current_year)
    points: list[AssetSeriesPoint] = []
    for offset in range(-lookback_years, forecast_years + 1):
        points.append(
            AssetSeriesPoint(
                year=year_now + offset,
                stagnant_cash=savings,
                official_asset_value=asset_value
                * (1 + profile.official_rate) ** offset,
                shadow_asset_value=asset_value
                * (1 + profile.alternative_rate) ** offset,
            )
        )
    return points


def erosion_losses(amount: float, rate: float) -> dict[str, float]:
    """Purchasing power lost per timeframe at a given annual rate."""
    annual = amount * rate
    return {
        "second": annual / SECONDS_IN_YEAR,
        "hour": annual / (365.25 * 24),
        "day": annual / 365.25,
        "week": annual / 52.1786,
        "month": annual / 12,
        "year": annual,
    }


def summarize_btc(savings: float, snapshot: MarketSnapshot) -> BtcSummary:
    """What the savings would be worth had they bought at the start price."""
    multiplier = snapshot.current_price / snapshot.start_price
    percent = (multiplier - 1) * 100
    return BtcSummary(
        current_value=savings * multiplier,
        multiplier=multiplier,
        percent=percent,
        is_loss=percent < 0,
        start_price=snapshot.start_price,
        end_price=snapshot.current_price,
        last_updated=snapshot.last_updated,
    )
