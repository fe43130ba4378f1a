from __future__ import annotations

from .aggregation import (
    AggregationEngine,
    AggregationResult,
    CellOutcome,
    build_engine,
    resolve_primary_source,
)
from .quote_selector import (
    BaseQuoteSelector,
    BestOfSelector,
    FallbackChainSelector,
    build_selector,
)

__all__ = [
    "AggregationEngine",
    "AggregationResult",
    "BaseQuoteSelector",
    "BestOfSelector",
    "CellOutcome",
    "FallbackChainSelector",
    "build_engine",
    "build_selector",
    "resolve_primary_source",
]
