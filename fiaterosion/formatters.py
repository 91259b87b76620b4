"""Output formatters for table, JSON, and CSV."""

from __future__ import annotations

import csv
import io
import json
from typing import Any

from rich import box
from rich.console import Console
from rich.table import Table

from fiaterosion.models import (
    AccumulationSeries,
    AssetSeriesPoint,
    BtcSummary,
    ErosionReport,
    MarketSnapshot,
    RegionProfile,
    ViewMode,
)

MISSING = "—"

ACCUMULATION_LABELS = {
    "nominal": "Nominal Savings",
    "additions": "Savings + Monthly Additions",
    "official": "Asset Official (CPI Floor)",
    "shadow": "Asset Shadow/Alternative",
}


def _fmt_pct(val: float, plus_sign: bool = True) -> str:
    """Format a decimal as a percentage with 1 decimal place."""
    pct = val * 100
    if plus_sign and pct > 0:
        return f"+{pct:.1f}%"
    return f"{pct:.1f}%"


def _fmt_number(value: float) -> str:
    """Format a number with K/M/B suffix, keeping max 3 digits left of the decimal."""
    abs_val = abs(value)
    if abs_val >= 1_000_000_000:
        return f"{value / 1_000_000_000:.2f}B"
    if abs_val >= 1_000_000:
        return f"{value / 1_000_000:.2f}M"
    if abs_val >= 1_000:
        return f"{value / 1_000:.2f}K"
    return f"{value:.2f}"


def _fmt_money(value: float | None, symbol: str) -> str:
    if value is None:
        return MISSING
    return f"{symbol}{value:,.2f}"


def _round(value: float | None, ndigits: int = 2) -> float | None:
    return None if value is None else round(value, ndigits)


def _csv_value(value: float | None) -> str:
    return "" if value is None else f"{value:.2f}"


def _render(header: str, table: Table, warnings: list[str], footer: str = "") -> str:
    buf = io.StringIO()
    rich_console = Console(file=buf, width=120, no_color=True)
    rich_console.print(header, end="")
    rich_console.print(table)
    if warnings:
        footer += "\n\nWarnings:"
        for w in warnings:
            footer += f"\n  ⚠ {w}"
    if footer:
        rich_console.print(footer)
    return buf.getvalue()


# --- Purchasing-power erosion ---


def format_erosion_table(report: ErosionReport) -> str:
    """Format an erosion series as a Rich table rendered to string."""
    p = report.profile
    header = (
        f"Purchasing Power Erosion\n"
        f"========================\n"
        f"Savings: {_fmt_money(report.principal, p.symbol)} ({p.currency}, "
        f"{p.region.value})\n"
        f"Basis: {report.basis.value.lower()}  "
        f"Official: {_fmt_pct(report.rates.official, plus_sign=False)}  "
        f"Alternative: {_fmt_pct(report.rates.alternative, plus_sign=False)}\n"
        f"Rates as of: {p.last_updated}\n"
    )

    table = Table(box=box.SIMPLE_HEAD, pad_edge=False)
    table.add_column("Year", style="bold")
    table.add_column("Nominal", justify="right")
    table.add_column("Real (Official)", justify="right")
    table.add_column("Real (Alt.)", justify="right")
    table.add_column("Proj. (Official)", justify="right")
    table.add_column("Proj. (Alt.)", justify="right")

    for pt in report.points:
        table.add_row(
            f"{pt.year}{'*' if pt.is_future else ''}",
            _fmt_money(pt.nominal, p.symbol),
            _fmt_money(pt.real_official, p.symbol),
            _fmt_money(pt.real_alternative, p.symbol),
            _fmt_money(pt.real_official_projected, p.symbol),
            _fmt_money(pt.real_alternative_projected, p.symbol),
        )

    footer = "\n* projected"
    if p.is_fallback:
        footer += f"\nUsing latest published rates for {p.region.value}."
    return _render(header, table, report.warnings, footer)


def format_erosion_json(report: ErosionReport) -> str:
    """Format an erosion series as JSON."""
    p = report.profile
    data: dict[str, Any] = {
        "region": p.region.value,
        "currency": p.currency,
        "principal": round(report.principal, 2),
        "basis": report.basis.value,
        "lookback_years": report.lookback_years,
        "forecast_years": report.forecast_years,
        "rates": {
            "official_pct": round(report.rates.official * 100, 2),
            "alternative_pct": round(report.rates.alternative * 100, 2),
        },
        "last_updated": p.last_updated,
        "is_fallback": p.is_fallback,
        "points": [
            {
                "year": pt.year,
                "nominal": round(pt.nominal, 2),
                "real_official": _round(pt.real_official),
                "real_alternative": _round(pt.real_alternative),
                "real_official_projected": _round(pt.real_official_projected),
                "real_alternative_projected": _round(pt.real_alternative_projected),
                "is_future": pt.is_future,
            }
            for pt in report.points
        ],
    }
    if report.warnings:
        data["warnings"] = report.warnings
    return json.dumps(data, indent=2)


def format_erosion_csv(report: ErosionReport) -> str:
    """Format an erosion series as CSV."""
    buf = io.StringIO()
    fields = [
        "year",
        "nominal",
        "real_official",
        "real_alternative",
        "real_official_projected",
        "real_alternative_projected",
        "is_future",
    ]
    writer = csv.DictWriter(buf, fieldnames=fields)
    writer.writeheader()
    for pt in report.points:
        writer.writerow(
            {
                "year": str(pt.year),
                "nominal": _csv_value(pt.nominal),
                "real_official": _csv_value(pt.real_official),
                "real_alternative": _csv_value(pt.real_alternative),
                "real_official_projected": _csv_value(pt.real_official_projected),
                "real_alternative_projected": _csv_value(
                    pt.real_alternative_projected
                ),
                "is_future": "true" if pt.is_future else "false",
            }
        )
    return buf.getvalue()


def format_losses_table(
    profile: RegionProfile,
    amount: float,
    official: dict[str, float],
    alternative: dict[str, float],
) -> str:
    """Purchasing power lost per timeframe under each rate."""
    header = (
        f"Live Depreciation Monitor\n"
        f"Savings: {_fmt_money(amount, profile.symbol)}\n"
    )
    table = Table(box=box.SIMPLE_HEAD, pad_edge=False)
    table.add_column("Per", style="bold")
    table.add_column("Official", justify="right")
    table.add_column("Alternative", justify="right")
    for timeframe, loss in official.items():
        digits = 4 if timeframe == "second" else 2
        table.add_row(
            timeframe,
            f"-{profile.symbol}{loss:,.{digits}f}",
            f"-{profile.symbol}{alternative[timeframe]:,.{digits}f}",
        )
    return _render(header, table, [])


# --- Accumulation ---


def format_accumulation_table(series: AccumulationSeries, symbol: str) -> str:
    """Plotted view with the other representation alongside."""
    indexed = series.view_mode is ViewMode.INDEXED
    header = (
        f"Savings vs Asset Growth ({series.view_mode.value} view)\n"
        f"==========================================\n"
    )
    table = Table(box=box.SIMPLE_HEAD, pad_edge=False)
    table.add_column("Year", style="bold")
    for label in ACCUMULATION_LABELS.values():
        table.add_column(label, justify="right")

    for i, year in enumerate(series.years):
        row = [str(year)]
        for name in ACCUMULATION_LABELS:
            v = getattr(series, name)[i]
            if indexed:
                row.append(f"{v.pct:.1f}% ({symbol}{_fmt_number(v.abs)})")
            else:
                row.append(f"{symbol}{_fmt_number(v.abs)} ({v.pct:.1f}%)")
        table.add_row(*row)
    return _render(header, table, [])


def format_accumulation_json(series: AccumulationSeries, symbol: str) -> str:
    data: dict[str, Any] = {
        "view_mode": series.view_mode.value,
        "symbol": symbol,
        "labels": series.years,
        "datasets": [
            {
                "key": name,
                "label": label,
                "data": [round(v, 2) for v in series.plotted(name)],
                "metadata": {
                    "abs": [round(v.abs, 2) for v in getattr(series, name)],
                    "pct": [round(v.pct, 2) for v in getattr(series, name)],
                },
            }
            for name, label in ACCUMULATION_LABELS.items()
        ],
    }
    return json.dumps(data, indent=2)


def format_accumulation_csv(series: AccumulationSeries, symbol: str) -> str:
    buf = io.StringIO()
    fields = ["year"]
    for name in ACCUMULATION_LABELS:
        fields += [f"{name}_abs", f"{name}_pct"]
    writer = csv.DictWriter(buf, fieldnames=fields)
    writer.writeheader()
    for i, year in enumerate(series.years):
        row = {"year": str(year)}
        for name in ACCUMULATION_LABELS:
            v = getattr(series, name)[i]
            row[f"{name}_abs"] = f"{v.abs:.2f}"
            row[f"{name}_pct"] = f"{v.pct:.2f}"
        writer.writerow(row)
    return buf.getvalue()


# --- Asset gap ---


def format_asset_gap_table(
    points: list[AssetSeriesPoint], profile: RegionProfile
) -> str:
    header = (
        f"Asset Gap: Stagnant Cash vs Inflation-Tracking Asset\n"
        f"====================================================\n"
        f"Official: {_fmt_pct(profile.official_rate, plus_sign=False)}  "
        f"Alternative: {_fmt_pct(profile.alternative_rate, plus_sign=False)}\n"
    )
    table = Table(box=box.SIMPLE_HEAD, pad_edge=False)
    table.add_column("Year", style="bold")
    table.add_column("Stagnant Cash", justify="right")
    table.add_column("Asset (Official)", justify="right")
    table.add_column("Asset (Shadow)", justify="right")
    for pt in points:
        table.add_row(
            str(pt.year),
            _fmt_money(round(pt.stagnant_cash), profile.symbol),
            _fmt_money(round(pt.official_asset_value), profile.symbol),
            _fmt_money(round(pt.shadow_asset_value), profile.symbol),
        )
    return _render(header, table, [])


def format_asset_gap_json(points: list[AssetSeriesPoint]) -> str:
    data = [
        {
            "year": pt.year,
            "stagnant_cash": round(pt.stagnant_cash),
            "official_asset": round(pt.official_asset_value),
            "shadow_asset": round(pt.shadow_asset_value),
        }
        for pt in points
    ]
    return json.dumps(data, indent=2)


def format_asset_gap_csv(points: list[AssetSeriesPoint]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(["year", "stagnant_cash", "official_asset", "shadow_asset"])
    for pt in points:
        writer.writerow(
            [
                pt.year,
                round(pt.stagnant_cash),
                round(pt.official_asset_value),
                round(pt.shadow_asset_value),
            ]
        )
    return buf.getvalue()


# --- Bitcoin ---


def format_bitcoin_table(
    snapshot: MarketSnapshot,
    summary: BtcSummary,
    symbol: str,
    savings: float,
    warnings: list[str] | None = None,
) -> str:
    header = (
        f"Investment Value Today\n"
        f"======================\n"
        f"Invested: {_fmt_money(savings, symbol)}  "
        f"Now worth: {_fmt_money(summary.current_value, symbol)} "
        f"({'' if summary.is_loss else '+'}{summary.percent:,.1f}%, "
        f"{summary.multiplier:.2f}x)\n"
        f"BTC price: {_fmt_money(summary.start_price, symbol)} → "
        f"{_fmt_money(summary.end_price, symbol)} "
        f"(updated {summary.last_updated})\n"
    )
    table = Table(box=box.SIMPLE_HEAD, pad_edge=False)
    table.add_column("Date", style="bold")
    table.add_column("BTC Price", justify="right")
    table.add_column("Value", justify="right")
    for pt in snapshot.points:
        table.add_row(
            pt.timestamp.strftime("%b %Y"),
            f"{symbol}{_fmt_number(pt.price)}",
            f"{symbol}{_fmt_number(pt.value)}",
        )

    footer = "\nData source: CoinGecko"
    if snapshot.is_fallback:
        footer += " (unavailable, showing estimated data)"
    return _render(header, table, warnings or [], footer)


def format_bitcoin_json(
    snapshot: MarketSnapshot,
    summary: BtcSummary,
    warnings: list[str] | None = None,
) -> str:
    data: dict[str, Any] = {
        "currency": snapshot.currency,
        "is_fallback": snapshot.is_fallback,
        "summary": {
            "current_value": round(summary.current_value, 2),
            "multiplier": round(summary.multiplier, 2),
            "percent": round(summary.percent, 1),
            "is_loss": summary.is_loss,
            "start_price": round(summary.start_price, 2),
            "end_price": round(summary.end_price, 2),
            "last_updated": summary.last_updated,
        },
        "points": [
            {
                "timestamp": pt.timestamp.isoformat(),
                "price": round(pt.price, 2),
                "value": round(pt.value, 2),
            }
            for pt in snapshot.points
        ],
    }
    if warnings:
        data["warnings"] = warnings
    return json.dumps(data, indent=2)


def format_bitcoin_csv(snapshot: MarketSnapshot) -> str:
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=["timestamp", "price", "value"])
    writer.writeheader()
    for pt in snapshot.points:
        writer.writerow(
            {
                "timestamp": pt.timestamp.isoformat(),
                "price": f"{pt.price:.2f}",
                "value": f"{pt.value:.2f}",
            }
        )
    return buf.getvalue()


# --- Share text ---


def format_share_text(report: ErosionReport) -> str:
    """One-paragraph inflation summary for sharing."""
    p = report.profile
    last = report.points[-1]
    end_value = last.real_official_projected
    if end_value is None:
        end_value = last.real_official or 0.0
    return (
        f"Inflation Report: In {report.forecast_years} years, my "
        f"{p.symbol}{report.principal:,.0f} will only buy "
        f"{p.symbol}{end_value:,.0f} worth of goods."
    )


def format_btc_share_text(
    summary: BtcSummary, symbol: str, savings: float, lookback_years: int
) -> str:
    """One-paragraph Bitcoin summary for sharing."""
    sign = "" if summary.is_loss else "+"
    return (
        f"Bitcoin Report: My {symbol}{savings:,.0f} invested in BTC "
        f"{lookback_years} years ago is now worth "
        f"{symbol}{summary.current_value:,.0f} ({sign}{summary.percent:,.1f}%)."
    )
