"""Rich console tables for live prices and stored history."""

from __future__ import annotations

from decimal import Decimal

from rich.console import Console
from rich.table import Table

from ..processors import AggregationResult
from ..storage import LatestPrice
from ..units import DeviationStatus, deviation_status

STATUS_STYLES = {
    DeviationStatus.STABLE: "green",
    DeviationStatus.WARNING: "yellow",
    DeviationStatus.DEPEGGED: "red",
    DeviationStatus.UNKNOWN: "dim",
}


def format_bps(bps: Decimal | float | None) -> str:
    """Signed bps with two decimals, or N/A for unpriced cells."""
    if bps is None:
        return "N/A"
    value = float(bps)
    sign = "+" if value >= 0 else ""
    return f"{sign}{value:.2f} bps"


def format_price(price: Decimal | float | None) -> str:
    if price is None:
        return "N/A"
    return f"{float(price):.6f}"


def _styled_bps(bps: Decimal | float | None) -> str:
    style = STATUS_STYLES[deviation_status(bps)]
    return f"[{style}]{format_bps(bps)}[/]"


def build_prices_table(result: AggregationResult) -> Table:
    """Build a table with one row per tracked asset.

    Columns: symbol, price and deviation at the primary size, status, the
    per-size deviation breakdown and the winning source.
    """
    size_labels: list[str] = []
    for record in result.price_records:
        for label in record.prices_by_size:
            if label not in size_labels:
                size_labels.append(label)

    table = Table(
        title=f"Peg deviation vs {result.base_asset} ({result.trade_size})",
        caption=f"source: {result.primary_source}",
        expand=False,
    )
    table.add_column("Asset", style="cyan", no_wrap=True)
    table.add_column("Price", justify="right")
    table.add_column("Deviation", justify="right")
    table.add_column("Status", justify="center")
    for label in size_labels:
        table.add_column(label, justify="right", style="dim")
    table.add_column("Source", style="dim")

    for record in result.price_records:
        status = deviation_status(record.deviation_bps)
        per_size = [
            _styled_bps(record.prices_by_size[label].deviation_bps)
            if label in record.prices_by_size
            else "-"
            for label in size_labels
        ]
        table.add_row(
            record.symbol,
            format_price(record.price),
            _styled_bps(record.deviation_bps),
            f"[{STATUS_STYLES[status]}]{status.value}[/]",
            *per_size,
            record.source or "",
        )
    return table


def build_latest_table(latest: list[LatestPrice]) -> Table:
    table = Table(title="Latest stored snapshots")
    table.add_column("Asset", style="cyan", no_wrap=True)
    table.add_column("Price", justify="right")
    table.add_column("Deviation", justify="right")
    table.add_column("Timestamp", justify="right", style="dim")
    for row in latest:
        table.add_row(
            row.symbol,
            format_price(row.price),
            _styled_bps(row.deviation_bps),
            str(row.timestamp) if row.timestamp is not None else "-",
        )
    return table


def print_prices(result: AggregationResult, console: Console | None = None) -> None:
    (console or Console()).print(build_prices_table(result))


def print_latest(latest: list[LatestPrice], console: Console | None = None) -> None:
    (console or Console()).print(build_latest_table(latest))
