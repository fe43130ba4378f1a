from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod

from ..adapters.quote_adapters.base import BaseQuoteAdapter, Quote
from ..domain import ConfigurationError
from ..settings import SelectionPolicy

logger = logging.getLogger(__name__)


class BaseQuoteSelector(ABC):
    """Picks one winning quote for a (sell token, buy token, amount) request."""

    def __init__(self, adapters: list[BaseQuoteAdapter]):
        if not adapters:
            raise ConfigurationError("Quote selector requires at least one adapter")
        self.adapters = list(adapters)

    @property
    @abstractmethod
    def policy(self) -> SelectionPolicy:
        ...

    @property
    def priority(self) -> list[str]:
        """Adapter source labels in priority order."""
        return [adapter.adapter_name for adapter in self.adapters]

    @abstractmethod
    async def select(
        self, sell_token: str, buy_token: str, sell_amount: int
    ) -> Quote | None:
        """Return the winning quote, or None if no adapter could price the swap."""
        ...


class FallbackChainSelector(BaseQuoteSelector):
    """Tries adapters one at a time in priority order; the first quote wins."""

    @property
    def policy(self) -> SelectionPolicy:
        return SelectionPolicy.FALLBACK

    async def select(
        self, sell_token: str, buy_token: str, sell_amount: int
    ) -> Quote | None:
        for adapter in self.adapters:
            quote = await adapter.quote(sell_token, buy_token, sell_amount)
            if quote is not None:
                return quote
            logger.debug(
                "%s returned no quote for %s -> %s, trying next provider",
                adapter.adapter_name,
                sell_token,
                buy_token,
            )
        return None


class BestOfSelector(BaseQuoteSelector):
    """Queries every adapter concurrently and keeps the largest buy amount.

    Ties go to the adapter earliest in priority order.
    """

    @property
    def policy(self) -> SelectionPolicy:
        return SelectionPolicy.BEST_OF

    async def select(
        self, sell_token: str, buy_token: str, sell_amount: int
    ) -> Quote | None:
        results = await asyncio.gather(
            *(
                adapter.quote(sell_token, buy_token, sell_amount)
                for adapter in self.adapters
            ),
            return_exceptions=True,
        )

        best: Quote | None = None
        for adapter, result in zip(self.adapters, results):
            if isinstance(result, BaseException):
                logger.error(
                    "Adapter '%s' raised while quoting %s -> %s: %s",
                    adapter.adapter_name,
                    sell_token,
                    buy_token,
                    result,
                )
                continue
            if result is None:
                continue
            # strict comparison keeps the higher-priority quote on ties
            if best is None or result.buy_amount > best.buy_amount:
                best = result
        return best


SELECTORS: dict[SelectionPolicy, type[BaseQuoteSelector]] = {
    SelectionPolicy.FALLBACK: FallbackChainSelector,
    SelectionPolicy.BEST_OF: BestOfSelector,
}


def build_selector(
    policy: SelectionPolicy | str, adapters: list[BaseQuoteAdapter]
) -> BaseQuoteSelector:
    try:
        selector_cls = SELECTORS[SelectionPolicy(policy)]
    except ValueError as e:
        valid = ", ".join(p.value for p in SelectionPolicy)
        raise ConfigurationError(
            f"Unknown selection policy '{policy}'. Must be one of: {valid}"
        ) from e
    return selector_cls(adapters)
