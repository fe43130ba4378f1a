from __future__ import annotations

from .formatter import (
    build_latest_table,
    build_prices_table,
    format_bps,
    format_price,
    print_latest,
    print_prices,
)

__all__ = [
    "build_latest_table",
    "build_prices_table",
    "format_bps",
    "format_price",
    "print_latest",
    "print_prices",
]
