from __future__ import annotations

from .collect import (
    CollectionSummary,
    UnauthorizedError,
    authorize_collection,
    run_collection,
)

__all__ = [
    "CollectionSummary",
    "UnauthorizedError",
    "authorize_collection",
    "run_collection",
]
