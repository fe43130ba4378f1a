"""Application state container."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .settings import PegMonitorSettings
from .storage import HistoryStore


@dataclass
class AppState:
    """Settings and logger for one CLI invocation, passed to the collector."""

    settings: PegMonitorSettings
    logger: logging.Logger

    def history_store(self) -> HistoryStore:
        """Open the snapshot store at the configured ``database_path``."""
        return HistoryStore(self.settings.database_path)
