"""CLI entry point for the fiat erosion tracker."""

from __future__ import annotations

import asyncio
import sys

import click
import httpx

from fiaterosion import formatters, market, projection
from fiaterosion.models import (
    CURRENCY_REGION_MAP,
    REGION_PROFILES,
    ErosionReport,
    MarketSnapshot,
    ProjectionBasis,
    Region,
    RegionProfile,
    ViewMode,
)

OUTPUT_CHOICE = click.Choice(["table", "json", "csv"])


def _resolve_profile(value: str) -> RegionProfile:
    """Look up a region by name or by currency code."""
    key = value.strip().upper()
    if key in CURRENCY_REGION_MAP:
        return REGION_PROFILES[CURRENCY_REGION_MAP[key]]
    try:
        return REGION_PROFILES[Region(key)]
    except ValueError as exc:
        names = ", ".join(r.value for r in Region)
        currencies = ", ".join(CURRENCY_REGION_MAP)
        raise click.BadParameter(
            f"Region {value!r} not supported. Use one of {names} or {currencies}."
        ) from exc


def _region_callback(
    ctx: click.Context, param: click.Parameter, value: str
) -> RegionProfile:
    return _resolve_profile(value)


def _amount_callback(ctx: click.Context, param: click.Parameter, value: str) -> float:
    return projection.coerce_amount(value)


def _region_option(default: str = "UK"):  # type: ignore[no-untyped-def]
    return click.option(
        "--region",
        "profile",
        default=default,
        callback=_region_callback,
        help="Region (US, UK, EUROZONE) or currency code (USD, GBP, EUR)",
    )


def _amount_option(name: str, default: str, help_text: str):  # type: ignore[no-untyped-def]
    return click.option(name, default=default, callback=_amount_callback, help=help_text)


def _output_option():  # type: ignore[no-untyped-def]
    return click.option(
        "--output",
        "output_format",
        default="table",
        type=OUTPUT_CHOICE,
        help="Output format",
    )


def build_report(
    principal: float,
    lookback: int,
    forecast: int,
    profile: RegionProfile,
    basis: ProjectionBasis,
) -> ErosionReport:
    rates = projection.resolve_rates(profile, basis)
    points = projection.generate_full_series(
        principal, lookback, forecast, profile, basis
    )
    warnings: list[str] = []
    if profile.is_fallback:
        warnings.append(
            f"Live rates unavailable for {profile.region.value}. "
            f"Using latest published rates ({profile.last_updated})."
        )
    return ErosionReport(
        profile=profile,
        basis=basis,
        principal=principal,
        lookback_years=lookback,
        forecast_years=forecast,
        rates=rates,
        points=points,
        warnings=warnings,
    )


async def _fetch_snapshot(
    profile: RegionProfile, lookback: int, savings: float
) -> tuple[MarketSnapshot, list[str]]:
    async with httpx.AsyncClient(
        timeout=market.REQUEST_TIMEOUT, headers=market.client_headers()
    ) as client:
        return await market.fetch_snapshot(client, profile, lookback, savings)


@click.group()
def main() -> None:
    """Fiat Erosion Tracker.

    Shows how inflation erodes the purchasing power of savings under official
    and alternative rates, and compares holding cash against assets and Bitcoin.
    """


@main.command()
@_amount_option("--amount", "100000", "Savings amount")
@_region_option()
@click.option(
    "--lookback", default=10, type=click.IntRange(1, 15), help="Years of history"
)
@click.option(
    "--forecast", default=15, type=click.IntRange(1, 40), help="Years to project"
)
@click.option(
    "--basis",
    default="constant",
    type=click.Choice(["constant", "trend"], case_sensitive=False),
    help="Hold current rates constant or use the trend-adjusted rates",
)
@click.option(
    "--alt-multiplier",
    type=float,
    default=None,
    help="Derive the alternative rate as official rate times this factor",
)
@click.option("--losses", is_flag=True, help="Show purchasing power lost per timeframe")
@click.option("--share", is_flag=True, help="Print a one-line shareable summary")
@_output_option()
def erosion(
    amount: float,
    profile: RegionProfile,
    lookback: int,
    forecast: int,
    basis: str,
    alt_multiplier: float | None,
    losses: bool,
    share: bool,
    output_format: str,
) -> None:
    """Purchasing power of savings, past and projected."""
    if alt_multiplier is not None:
        if alt_multiplier <= 0:
            click.echo("Error: --alt-multiplier must be positive.", err=True)
            sys.exit(1)
        profile = projection.derive_alternative(profile, alt_multiplier)

    report = build_report(
        amount, lookback, forecast, profile, ProjectionBasis(basis.upper())
    )

    if output_format == "json":
        click.echo(formatters.format_erosion_json(report))
    elif output_format == "csv":
        click.echo(formatters.format_erosion_csv(report), nl=False)
    else:
        click.echo(formatters.format_erosion_table(report), nl=False)

    if losses and output_format == "table":
        click.echo(
            formatters.format_losses_table(
                profile,
                amount,
                projection.erosion_losses(amount, profile.official_rate),
                projection.erosion_losses(amount, profile.alternative_rate),
            ),
            nl=False,
        )
    if share:
        click.echo(formatters.format_share_text(report))


@main.command()
@_amount_option("--savings", "100000", "Initial savings")
@_amount_option("--monthly", "500", "Monthly addition to savings")
@_amount_option("--asset", "1000000", "Initial asset value")
@_region_option()
@click.option(
    "--years", default=10, type=click.IntRange(1, 40), help="Years to project"
)
@click.option(
    "--view",
    default=ViewMode.INDEXED.value,
    type=click.Choice([m.value for m in ViewMode]),
    help="Plot as a percentage of the start value or as absolute amounts",
)
@_output_option()
def accumulate(
    savings: float,
    monthly: float,
    asset: float,
    profile: RegionProfile,
    years: int,
    view: str,
    output_format: str,
) -> None:
    """Savings with monthly additions against an inflation-tracking asset."""
    rates = projection.resolve_rates(profile, ProjectionBasis.CONSTANT)
    series = projection.generate_accumulation(
        savings, monthly, asset, rates, years, ViewMode(view)
    )

    if output_format == "json":
        click.echo(formatters.format_accumulation_json(series, profile.symbol))
    elif output_format == "csv":
        click.echo(formatters.format_accumulation_csv(series, profile.symbol), nl=False)
    else:
        click.echo(
            formatters.format_accumulation_table(series, profile.symbol), nl=False
        )


@main.command("asset-gap")
@_amount_option("--savings", "100000", "Cash savings")
@_amount_option("--asset", "1000000", "Asset value today")
@_region_option()
@click.option(
    "--lookback", default=10, type=click.IntRange(1, 15), help="Years of history"
)
@click.option(
    "--forecast", default=10, type=click.IntRange(1, 40), help="Years to project"
)
@_output_option()
def asset_gap(
    savings: float,
    asset: float,
    profile: RegionProfile,
    lookback: int,
    forecast: int,
    output_format: str,
) -> None:
    """Stagnant cash against an asset growing with inflation."""
    points = projection.generate_asset_gap(savings, asset, lookback, forecast, profile)

    if output_format == "json":
        click.echo(formatters.format_asset_gap_json(points))
    elif output_format == "csv":
        click.echo(formatters.format_asset_gap_csv(points), nl=False)
    else:
        click.echo(formatters.format_asset_gap_table(points, profile), nl=False)


@main.command()
@_amount_option("--amount", "100000", "Amount invested at the start")
@_region_option()
@click.option(
    "--lookback", default=10, type=click.IntRange(1, 15), help="Years ago invested"
)
@click.option("--offline", is_flag=True, help="Skip the price API and use estimates")
@click.option("--share", is_flag=True, help="Print a one-line shareable summary")
@_output_option()
def bitcoin(
    amount: float,
    profile: RegionProfile,
    lookback: int,
    offline: bool,
    share: bool,
    output_format: str,
) -> None:
    """What the savings would be worth had they bought Bitcoin."""
    if offline:
        snapshot = market.fallback_snapshot(profile, lookback, amount)
        warnings = ["Offline mode. Using estimated market data."]
    else:
        try:
            snapshot, warnings = asyncio.run(_fetch_snapshot(profile, lookback, amount))
        except Exception as exc:
            click.echo(f"Error: {exc}", err=True)
            sys.exit(1)

    summary = projection.summarize_btc(amount, snapshot)

    if output_format == "json":
        click.echo(formatters.format_bitcoin_json(snapshot, summary, warnings))
    elif output_format == "csv":
        click.echo(formatters.format_bitcoin_csv(snapshot), nl=False)
    else:
        click.echo(
            formatters.format_bitcoin_table(
                snapshot, summary, profile.symbol, amount, warnings
            ),
            nl=False,
        )
    if share:
        click.echo(
            formatters.format_btc_share_text(summary, profile.symbol, amount, lookback)
        )


@main.command()
def regions() -> None:
    """List supported regions and their reference rates."""
    for p in REGION_PROFILES.values():
        flag = "  (fallback)" if p.is_fallback else ""
        click.echo(
            f"{p.region.value:10s} {p.currency}  {p.symbol}  "
            f"official {p.official_rate * 100:.1f}%  "
            f"alternative {p.alternative_rate * 100:.1f}%  "
            f"as of {p.last_updated}{flag}"
        )


if __name__ == "__main__":
    main()
