from __future__ import annotations

from .history import (
    HistoryStore,
    LatestPrice,
    Snapshot,
    group_history,
    timeframe_start,
)

__all__ = [
    "HistoryStore",
    "LatestPrice",
    "Snapshot",
    "group_history",
    "timeframe_start",
]
