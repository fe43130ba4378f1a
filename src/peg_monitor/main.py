"""CLI entrypoint for the peg monitor."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import time
from pathlib import Path
from typing import Annotated, Any

import typer
from pydantic import ValidationError

from .constants import DATABASE_SOURCE
from .domain import TRACKED_ASSETS, ConfigurationError, find_assets_by_symbols
from .logger import setup_logging
from .settings import PegMonitorSettings, SelectionPolicy
from .state import AppState
from .storage import LatestPrice

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    add_help_option=True,
    pretty_exceptions_enable=True,
    pretty_exceptions_short=True,
    pretty_exceptions_show_locals=False,
    rich_markup_mode="rich",
    help="Stablecoin peg deviation monitor backed by DEX aggregator quotes.",
)

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Path to a TOML config file (can include [peg_monitor] table).",
    ),
]
LogLevelOption = Annotated[
    str | None,
    typer.Option(
        "--log-level",
        help="Override logging verbosity (TRACE, DEBUG, INFO, WARNING, ERROR, CRITICAL).",
    ),
]
JsonOption = Annotated[
    bool, typer.Option("--json", help="Print JSON instead of a table.")
]


def _build_logger() -> logging.Logger:
    """Build a logger instance."""
    return logging.getLogger("peg_monitor")


def _load_state(config_path: Path | None, **overrides: Any) -> AppState:
    """Load settings (CLI > ENV > FILE), configure logging and wrap in AppState."""
    if config_path:
        os.environ["PEG_MONITOR_CONFIG"] = str(config_path)

    init_kwargs = {key: value for key, value in overrides.items() if value is not None}
    if "log_level" in init_kwargs:
        init_kwargs["log_level"] = init_kwargs["log_level"].upper()

    try:
        settings = PegMonitorSettings(**init_kwargs)
    except ValidationError as e:
        raise typer.BadParameter(str(e)) from e

    setup_logging(settings.log_level)
    return AppState(settings=settings, logger=_build_logger())


def _echo_json(payload: object) -> None:
    typer.echo(json.dumps(payload, indent=2))


def _stored_payload(
    settings: PegMonitorSettings, stored: list[LatestPrice]
) -> dict[str, object]:
    timestamps = [row.timestamp for row in stored if row.timestamp is not None]
    return {
        "success": True,
        "base": settings.base_asset,
        "size": settings.trade_size,
        "timestamp": max(timestamps) if timestamps else int(time.time()),
        "source": DATABASE_SOURCE,
        "prices": [row.to_dict() for row in stored],
    }


@app.command()
def prices(
    base: Annotated[
        str | None,
        typer.Option("--base", "-b", help="Base asset (USDT or USDC)."),
    ] = None,
    size: Annotated[
        str | None,
        typer.Option("--size", "-s", help="Primary trade size (1M, 5M or 10M)."),
    ] = None,
    policy: Annotated[
        SelectionPolicy | None,
        typer.Option("--policy", help="Quote selection policy."),
    ] = None,
    providers: Annotated[
        str | None,
        typer.Option(
            "--providers",
            help="Comma separated quote providers in priority order (e.g. 0x,kyberswap,odos).",
        ),
    ] = None,
    config_path: ConfigOption = None,
    log_level: LogLevelOption = None,
    json_output: JsonOption = False,
    live: Annotated[
        bool,
        typer.Option(
            "--live/--stored",
            help="Quote providers now, or serve the latest stored snapshots "
            "(falls back to live quotes when nothing is stored).",
        ),
    ] = False,
    show_config: Annotated[
        bool,
        typer.Option(
            "--show-config",
            help="Print effective config (with secrets redacted) and exit.",
        ),
    ] = False,
):
    """Print each stablecoin's deviation from the base asset.

    By default the latest stored snapshots are shown; ``--live`` (or an empty
    history) quotes the providers instead.
    """
    state = _load_state(
        config_path,
        base_asset=base,
        trade_size=size,
        selection_policy=policy,
        providers=providers,
        log_level=log_level,
    )

    if show_config:
        _echo_json(state.settings.as_safe_dict())
        raise typer.Exit(code=0)

    from .processors import build_engine
    from .report import print_latest, print_prices

    s = state.settings
    if not live:
        store = state.history_store()
        store.initialize()
        store.seed_stablecoins(TRACKED_ASSETS)
        stored = store.latest_prices()
        if any(row.is_priced for row in stored):
            if json_output:
                _echo_json(_stored_payload(s, stored))
            else:
                print_latest(stored)
            return
        state.logger.info("No stored prices yet, quoting providers live")

    try:
        engine = build_engine(s)
    except ConfigurationError as e:
        raise typer.BadParameter(str(e)) from e

    result = asyncio.run(engine.aggregate(s.base_asset, s.trade_size))

    if json_output:
        _echo_json({"success": True, **result.to_dict()})
    else:
        print_prices(result)


@app.command()
def collect(
    secret: Annotated[
        str | None,
        typer.Option(
            "--secret",
            envvar="PEG_MONITOR_COLLECT_TOKEN",
            help="Shared secret for the collection trigger.",
        ),
    ] = None,
    config_path: ConfigOption = None,
    log_level: LogLevelOption = None,
    json_output: JsonOption = False,
):
    """Aggregate prices at the configured base/size and append them to history."""
    state = _load_state(config_path, log_level=log_level)

    from .pipeline import UnauthorizedError, run_collection

    try:
        summary = asyncio.run(run_collection(state, secret))
    except UnauthorizedError as e:
        state.logger.error("%s", e)
        if json_output:
            _echo_json({"success": False, "error": "Unauthorized"})
        raise typer.Exit(code=1)
    except ConfigurationError as e:
        raise typer.BadParameter(str(e)) from e

    if json_output:
        _echo_json(summary.to_dict())
    else:
        typer.echo(
            f"Fetched and stored {summary.inserted} price snapshots via {summary.source}"
        )


@app.command()
def history(
    symbols: Annotated[
        str,
        typer.Option(
            "--symbols", help="Comma separated symbols, or 'all' for every tracked coin."
        ),
    ] = "all",
    timeframe: Annotated[
        str,
        typer.Option("--timeframe", "-t", help="24h, 7d, 30d, 90d or All."),
    ] = "24h",
    config_path: ConfigOption = None,
    log_level: LogLevelOption = None,
    json_output: JsonOption = False,
):
    """Show stored snapshots from the history database."""
    state = _load_state(config_path, log_level=log_level)

    from .report import print_latest
    from .storage import group_history, timeframe_start

    if symbols.strip().lower() == "all":
        selected = list(TRACKED_ASSETS)
    else:
        selected = find_assets_by_symbols(symbols.split(","))
    if not selected:
        raise typer.BadParameter("No valid stablecoins specified", param_hint="--symbols")

    store = state.history_store()
    store.initialize()
    store.seed_stablecoins(TRACKED_ASSETS)
    snapshots = store.history(
        [asset.id for asset in selected], timeframe_start(timeframe)
    )
    grouped = group_history(snapshots)

    if json_output:
        _echo_json({"success": True, "timeframe": timeframe, **grouped})
        return

    selected_ids = {asset.id for asset in selected}
    print_latest([row for row in store.latest_prices() if row.id in selected_ids])
    typer.echo(f"{grouped['dataPoints']} data points in {timeframe}")


def run() -> None:
    """Entrypoint used by the console script."""
    app()


if __name__ == "__main__":
    run()
