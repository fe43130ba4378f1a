"""Scheduled collection: aggregate prices and append snapshots to history."""

from __future__ import annotations

import hmac
from dataclasses import dataclass
from typing import Any

import backoff

from ..domain import TRACKED_ASSETS, ConfigurationError, PriceRecord
from ..processors import AggregationEngine, AggregationResult, build_engine
from ..state import AppState
from ..storage import HistoryStore


class UnauthorizedError(Exception):
    """Raised when the collection trigger is called without the shared secret."""


@dataclass
class CollectionSummary:
    inserted: int
    source: str
    timestamp: int
    records: list[PriceRecord]

    def to_dict(self) -> dict[str, object]:
        return {
            "success": True,
            "message": f"Fetched and stored {self.inserted} price snapshots via {self.source}",
            "timestamp": self.timestamp,
            "source": self.source,
            "prices": [
                {
                    "symbol": record.symbol,
                    "price": float(record.price) if record.price is not None else None,
                    "deviationBps": (
                        float(record.deviation_bps)
                        if record.deviation_bps is not None
                        else None
                    ),
                }
                for record in self.records
            ],
        }


def authorize_collection(expected_secret: str | None, provided: str | None) -> None:
    """Check the static shared secret guarding the collection trigger.

    An unset or empty secret leaves the trigger open.

    Raises:
        UnauthorizedError: If a secret is configured and ``provided`` does not match.
    """
    if not expected_secret:
        return
    if provided is None or not hmac.compare_digest(
        provided.encode(), expected_secret.encode()
    ):
        raise UnauthorizedError("Unauthorized: collection secret mismatch")


async def run_collection(
    state: AppState,
    secret: str | None = None,
    *,
    engine: AggregationEngine | None = None,
    store: HistoryStore | None = None,
) -> CollectionSummary:
    """Aggregate prices at the configured base/size and store non-null snapshots.

    Args:
        state: Application state containing settings and logger
        secret: Shared secret presented by the caller
        engine: Optional pre-built engine (built from settings otherwise)
        store: Optional history store (``database_path`` otherwise)

    Raises:
        UnauthorizedError: If the shared secret does not match.
        ConfigurationError: If the engine cannot be built or the run is misconfigured.
    """
    s = state.settings
    log = state.logger

    expected = s.collect_secret.get_secret_value() if s.collect_secret else None
    authorize_collection(expected, secret)

    engine = engine or build_engine(s)
    store = store or state.history_store()
    store.initialize()
    store.seed_stablecoins(TRACKED_ASSETS)

    def _on_backoff(details: Any) -> None:
        log.warning(
            "Aggregation failed (attempt %d of %d): %s",
            details["tries"],
            s.collect_retries + 1,
            details.get("exception", details.get("value")),
        )

    def _on_giveup(details: Any) -> None:
        log.error(
            "Aggregation failed after %d attempts: %s",
            details["tries"],
            details.get("exception", details.get("value")),
        )

    @backoff.on_exception(
        backoff.constant,
        Exception,
        max_tries=s.collect_retries + 1,
        interval=s.collect_retry_interval,
        jitter=None,
        giveup=lambda e: isinstance(e, ConfigurationError),
        on_backoff=_on_backoff,
        on_giveup=_on_giveup,
    )
    async def _aggregate_with_retry() -> AggregationResult:
        return await engine.aggregate(s.base_asset, s.trade_size)

    result = await _aggregate_with_retry()

    inserted = 0
    for record in result.price_records:
        if record.price is None or record.deviation_bps is None:
            log.debug("Skipping unpriced %s", record.symbol)
            continue
        store.insert_snapshot(
            record.id, float(record.price), float(record.deviation_bps), result.timestamp
        )
        inserted += 1

    log.info(
        "Stored %d price snapshots via %s", inserted, result.primary_source
    )
    return CollectionSummary(
        inserted=inserted,
        source=result.primary_source,
        timestamp=result.timestamp,
        records=result.price_records,
    )
