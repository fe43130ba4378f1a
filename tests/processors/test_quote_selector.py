import pytest

from peg_monitor.adapters.quote_adapters.base import Quote
from peg_monitor.domain import ConfigurationError
from peg_monitor.processors.quote_selector import (
    BestOfSelector,
    FallbackChainSelector,
    build_selector,
)
from peg_monitor.settings import SelectionPolicy


class FakeAdapter:
    def __init__(self, name, buy_amount=None, raises=None):
        self.adapter_name = name
        self.buy_amount = buy_amount
        self.raises = raises
        self.calls = 0

    async def quote(self, sell_token, buy_token, sell_amount):
        self.calls += 1
        if self.raises is not None:
            raise self.raises
        if self.buy_amount is None:
            return None
        return Quote(
            buy_amount=self.buy_amount, sell_amount=sell_amount, source=self.adapter_name
        )


@pytest.mark.asyncio
async def test_best_of_picks_largest_buy_amount():
    selector = BestOfSelector(
        [FakeAdapter("a", 1000), FakeAdapter("b", 1050), FakeAdapter("c", 900)]
    )

    quote = await selector.select("0xsell", "0xbuy", 1000)

    assert quote.source == "b"
    assert quote.buy_amount == 1050


@pytest.mark.asyncio
async def test_best_of_tie_goes_to_higher_priority():
    selector = BestOfSelector(
        [FakeAdapter("a", 900), FakeAdapter("b", 1000), FakeAdapter("c", 1000)]
    )

    quote = await selector.select("0xsell", "0xbuy", 1000)

    assert quote.source == "b"


@pytest.mark.asyncio
async def test_best_of_ranks_raw_amounts_exactly():
    # indistinguishable as floats at 10M with 18 decimals
    base = 10_000_000 * 10**18
    assert float(base) == float(base + 1) == float(base - 1)
    selector = BestOfSelector(
        [FakeAdapter("a", base), FakeAdapter("b", base + 1), FakeAdapter("c", base - 1)]
    )

    quote = await selector.select("0xsell", "0xbuy", 10_000_000 * 10**6)

    assert quote.source == "b"
    assert quote.buy_amount == base + 1


@pytest.mark.asyncio
async def test_best_of_all_failed_is_none():
    adapters = [FakeAdapter("a"), FakeAdapter("b"), FakeAdapter("c")]
    selector = BestOfSelector(adapters)

    assert await selector.select("0xsell", "0xbuy", 1000) is None
    assert all(adapter.calls == 1 for adapter in adapters)


@pytest.mark.asyncio
async def test_best_of_ignores_misbehaving_adapter():
    selector = BestOfSelector(
        [FakeAdapter("a", raises=RuntimeError("boom")), FakeAdapter("b", 10)]
    )

    quote = await selector.select("0xsell", "0xbuy", 1000)

    assert quote.source == "b"


@pytest.mark.asyncio
async def test_fallback_stops_at_first_success():
    a, b, c = FakeAdapter("a"), FakeAdapter("b", 999), FakeAdapter("c", 2000)
    selector = FallbackChainSelector([a, b, c])

    quote = await selector.select("0xsell", "0xbuy", 1000)

    assert quote.source == "b"
    assert (a.calls, b.calls, c.calls) == (1, 1, 0)


@pytest.mark.asyncio
async def test_fallback_all_failed_is_none():
    selector = FallbackChainSelector([FakeAdapter("a"), FakeAdapter("b")])

    assert await selector.select("0xsell", "0xbuy", 1000) is None


def test_priority_lists_adapter_names():
    selector = FallbackChainSelector([FakeAdapter("odos"), FakeAdapter("0x")])

    assert selector.priority == ["odos", "0x"]
    assert selector.policy is SelectionPolicy.FALLBACK


def test_build_selector():
    adapters = [FakeAdapter("a")]

    assert isinstance(build_selector("best_of", adapters), BestOfSelector)
    assert isinstance(
        build_selector(SelectionPolicy.FALLBACK, adapters), FallbackChainSelector
    )


def test_build_selector_rejects_unknown_policy():
    with pytest.raises(ConfigurationError, match="Unknown selection policy"):
        build_selector("cheapest", [FakeAdapter("a")])


def test_selector_requires_adapters():
    with pytest.raises(ConfigurationError):
        BestOfSelector([])
