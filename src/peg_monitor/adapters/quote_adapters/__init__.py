from __future__ import annotations

from .base import BaseQuoteAdapter, Quote
from .kyberswap import KyberSwapAdapter
from .odos import OdosAdapter
from .zerox import ZeroXAdapter

QUOTE_ADAPTERS: dict[str, type[BaseQuoteAdapter]] = {
    "0x": ZeroXAdapter,
    "kyberswap": KyberSwapAdapter,
    "odos": OdosAdapter,
}

__all__ = [
    "QUOTE_ADAPTERS",
    "BaseQuoteAdapter",
    "KyberSwapAdapter",
    "OdosAdapter",
    "Quote",
    "ZeroXAdapter",
]
