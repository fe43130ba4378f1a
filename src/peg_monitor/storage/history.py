"""SQLite history of price snapshots (one row per asset per collection run)."""

from __future__ import annotations

import sqlite3
import time
from contextlib import closing
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from ..constants import DEFAULT_TIMEFRAME, TIMEFRAMES
from ..domain import TrackedAsset

SCHEMA = """
CREATE TABLE IF NOT EXISTS stablecoins (
    id TEXT PRIMARY KEY,
    symbol TEXT NOT NULL,
    name TEXT NOT NULL,
    created_at INTEGER DEFAULT (strftime('%s', 'now'))
);
CREATE TABLE IF NOT EXISTS price_snapshots (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    stablecoin_id TEXT NOT NULL,
    price REAL NOT NULL,
    deviation_bps REAL NOT NULL,
    timestamp INTEGER NOT NULL,
    FOREIGN KEY (stablecoin_id) REFERENCES stablecoins(id)
);
CREATE INDEX IF NOT EXISTS idx_snapshots_time
    ON price_snapshots(stablecoin_id, timestamp DESC);
"""


@dataclass(frozen=True)
class LatestPrice:
    id: str
    symbol: str
    name: str
    price: float | None
    deviation_bps: float | None
    timestamp: int | None

    @property
    def is_priced(self) -> bool:
        return self.price is not None and self.deviation_bps is not None

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "name": self.name,
            "price": self.price,
            "deviationBps": self.deviation_bps,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class Snapshot:
    stablecoin_id: str
    symbol: str
    price: float
    deviation_bps: float
    timestamp: int


class HistoryStore:
    """Append-only snapshot store backed by a SQLite file."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def _connect(self) -> sqlite3.Connection:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.path, isolation_level=None, timeout=5.0)
        conn.execute("PRAGMA busy_timeout=5000;")
        return conn

    def initialize(self) -> None:
        with closing(self._connect()) as conn:
            conn.executescript(SCHEMA)

    def seed_stablecoins(self, assets: Iterable[TrackedAsset]) -> None:
        with closing(self._connect()) as conn:
            conn.executemany(
                "INSERT OR IGNORE INTO stablecoins (id, symbol, name) VALUES (?, ?, ?)",
                [(asset.id, asset.symbol, asset.name) for asset in assets],
            )

    def insert_snapshot(
        self, stablecoin_id: str, price: float, deviation_bps: float, timestamp: int
    ) -> None:
        with closing(self._connect()) as conn:
            conn.execute(
                "INSERT INTO price_snapshots (stablecoin_id, price, deviation_bps, timestamp) "
                "VALUES (?, ?, ?, ?)",
                (stablecoin_id, float(price), float(deviation_bps), int(timestamp)),
            )

    def latest_prices(self) -> list[LatestPrice]:
        """Newest snapshot per stablecoin; coins without snapshots have null fields."""
        with closing(self._connect()) as conn:
            rows = conn.execute(
                """
                SELECT s.id, s.symbol, s.name, p.price, p.deviation_bps, p.timestamp
                FROM stablecoins s
                LEFT JOIN (
                    SELECT stablecoin_id, price, deviation_bps, timestamp,
                           ROW_NUMBER() OVER (
                               PARTITION BY stablecoin_id ORDER BY timestamp DESC, id DESC
                           ) AS rn
                    FROM price_snapshots
                ) p ON s.id = p.stablecoin_id AND p.rn = 1
                ORDER BY s.symbol
                """
            ).fetchall()
        return [LatestPrice(*row) for row in rows]

    def history(
        self, stablecoin_ids: list[str], from_timestamp: int | None = None
    ) -> list[Snapshot]:
        """Snapshots for the given coins in ascending time order.

        Args:
            stablecoin_ids: Stablecoin ids to include.
            from_timestamp: Lower bound (inclusive); None returns everything.
        """
        if not stablecoin_ids:
            return []
        placeholders = ",".join("?" for _ in stablecoin_ids)
        sql = (
            "SELECT p.stablecoin_id, s.symbol, p.price, p.deviation_bps, p.timestamp "
            "FROM price_snapshots p JOIN stablecoins s ON p.stablecoin_id = s.id "
            f"WHERE p.stablecoin_id IN ({placeholders})"
        )
        args: list[object] = list(stablecoin_ids)
        if from_timestamp is not None:
            sql += " AND p.timestamp >= ?"
            args.append(int(from_timestamp))
        sql += " ORDER BY p.timestamp ASC, p.id ASC"
        with closing(self._connect()) as conn:
            rows = conn.execute(sql, args).fetchall()
        return [Snapshot(*row) for row in rows]


def timeframe_start(timeframe: str, now: int | None = None) -> int | None:
    """Lower timestamp bound for a timeframe label; None means all history.

    Unknown labels fall back to the default 24h window.
    """
    hours = TIMEFRAMES.get(timeframe, TIMEFRAMES[DEFAULT_TIMEFRAME])
    if hours < 0:
        return None
    current = int(time.time()) if now is None else now
    return current - hours * 3600


def group_history(snapshots: list[Snapshot]) -> dict[str, object]:
    """Group snapshots per symbol and merge them into one time series.

    Returns:
        ``bySymbol`` (symbol -> points), ``timeSeries`` (one row per
        timestamp holding each symbol's deviation) and ``dataPoints``.
    """
    by_symbol: dict[str, list[dict[str, float | int]]] = {}
    series: dict[int, dict[str, float | int]] = {}
    for snap in snapshots:
        by_symbol.setdefault(snap.symbol, []).append(
            {
                "timestamp": snap.timestamp,
                "price": snap.price,
                "deviationBps": snap.deviation_bps,
            }
        )
        row = series.setdefault(snap.timestamp, {"timestamp": snap.timestamp})
        row[snap.symbol] = snap.deviation_bps

    return {
        "symbols": list(by_symbol),
        "bySymbol": by_symbol,
        "timeSeries": [series[ts] for ts in sorted(series)],
        "dataPoints": len(snapshots),
    }
