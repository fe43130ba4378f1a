import asyncio
from decimal import Decimal

import pytest

from peg_monitor.adapters.quote_adapters.base import Quote
from peg_monitor.domain import TRACKED_ASSETS, ConfigurationError
from peg_monitor.processors.aggregation import (
    AggregationEngine,
    CellOutcome,
    build_engine,
    resolve_primary_source,
)
from peg_monitor.settings import PegMonitorSettings, SelectionPolicy

ASSETS = {asset.symbol: asset for asset in TRACKED_ASSETS}


class FakeSelector:
    """Returns canned quotes keyed by (buy token address, sell amount)."""

    def __init__(self, quotes, policy=SelectionPolicy.BEST_OF, priority=None):
        self.quotes = quotes
        self.policy = policy
        self.priority = priority or ["0x", "kyberswap", "odos"]
        self.requests = []

    async def select(self, sell_token, buy_token, sell_amount):
        self.requests.append((sell_token, buy_token, sell_amount))
        entry = self.quotes.get((buy_token, sell_amount))
        if entry is None:
            return None
        buy_amount, source = entry
        return Quote(buy_amount=buy_amount, sell_amount=sell_amount, source=source)


def _engine(selector, *symbols, max_concurrency=5):
    return AggregationEngine(
        selector,
        tracked_assets=tuple(ASSETS[symbol] for symbol in symbols),
        max_concurrency=max_concurrency,
    )


@pytest.mark.asyncio
async def test_end_to_end_mixed_decimals():
    dai = ASSETS["DAI"]
    selector = FakeSelector(
        {
            (dai.address, 1_000_000 * 10**6): (999_500 * 10**18, "0x"),
            (dai.address, 5_000_000 * 10**6): (4_998_250 * 10**18, "kyberswap"),
            (dai.address, 10_000_000 * 10**6): (9_990_000 * 10**18, "odos"),
        }
    )

    result = await _engine(selector, "USDT", "DAI").aggregate("USDT", "1M")

    record = result.price_records[1]
    assert record.symbol == "DAI"
    assert record.price == Decimal("0.9995")
    assert record.deviation_bps == Decimal("-5.00")
    assert record.source == "0x"
    assert record.prices_by_size["5M"].deviation_bps == Decimal("-3.50")
    assert record.prices_by_size["10M"].deviation_bps == Decimal("-10.00")
    assert list(record.prices_by_size) == ["1M", "5M", "10M"]


@pytest.mark.asyncio
async def test_base_asset_is_identity_without_quotes():
    selector = FakeSelector({})

    result = await _engine(selector, "USDT", "USDC").aggregate("USDT", "5M")

    usdt = result.price_records[0]
    assert usdt.price == Decimal(1)
    assert usdt.deviation_bps == Decimal(0)
    assert all(cell.price == Decimal(1) for cell in usdt.prices_by_size.values())
    assert all(req[1] != ASSETS["USDT"].address for req in selector.requests)


@pytest.mark.asyncio
async def test_unpriced_cells_are_null_not_zero():
    selector = FakeSelector({})

    result = await _engine(selector, "USDC", "FRAX", "LUSD").aggregate("USDC", "1M")

    for record in result.price_records[1:]:
        assert record.price is None
        assert record.deviation_bps is None
        assert all(not cell.is_priced for cell in record.prices_by_size.values())
    assert result.primary_source == "none"
    assert result.to_dict()["prices"][1]["deviationBps"] is None


@pytest.mark.asyncio
async def test_failure_of_one_asset_does_not_affect_others():
    gho = ASSETS["GHO"]
    selector = FakeSelector({(gho.address, 10**12): (1_001 * 10**21, "odos")})

    result = await _engine(selector, "USDT", "GHO", "TUSD").aggregate(
        "USDT", "1M", sizes=["1M"]
    )

    by_symbol = {record.symbol: record for record in result.price_records}
    assert by_symbol["GHO"].deviation_bps == Decimal("10.00")
    assert by_symbol["TUSD"].price is None
    assert result.primary_source == "odos"


@pytest.mark.asyncio
async def test_primary_size_is_always_quoted():
    selector = FakeSelector({})

    result = await _engine(selector, "USDT", "DAI").aggregate(
        "USDT", "10M", sizes=["1M"]
    )

    assert list(result.price_records[1].prices_by_size) == ["1M", "10M"]
    assert result.trade_size == "10M"


@pytest.mark.asyncio
async def test_record_order_follows_tracked_assets():
    selector = FakeSelector({})

    result = await _engine(
        selector, "LUSD", "USDT", "DAI", "FRAX", max_concurrency=1
    ).aggregate("USDT", "1M")

    assert [r.symbol for r in result.price_records] == ["LUSD", "USDT", "DAI", "FRAX"]


@pytest.mark.asyncio
@pytest.mark.parametrize("base, size", [("DAI", "1M"), ("USDT", "2M")])
async def test_unknown_base_or_size_is_configuration_error(base, size):
    engine = _engine(FakeSelector({}), "USDT", "DAI")

    with pytest.raises(ConfigurationError):
        await engine.aggregate(base, size)


@pytest.mark.asyncio
async def test_to_dict_shape():
    dai = ASSETS["DAI"]
    selector = FakeSelector({(dai.address, 10**12): (999_500 * 10**18, "0x")})

    result = await _engine(selector, "USDT", "DAI").aggregate(
        "USDT", "1M", sizes=["1M"]
    )
    payload = result.to_dict()

    assert payload["base"] == "USDT"
    assert payload["size"] == "1M"
    assert payload["source"] == "0x"
    assert payload["prices"][1]["price"] == pytest.approx(0.9995)
    assert payload["prices"][1]["pricesBySize"]["1M"]["source"] == "0x"


def _outcomes(*sources):
    return [CellOutcome(f"asset-{i}", "1M", source) for i, source in enumerate(sources)]


def test_primary_source_fallback_is_first_winner():
    outcomes = _outcomes(None, "kyberswap", "0x", "0x")

    assert (
        resolve_primary_source(outcomes, SelectionPolicy.FALLBACK, ["0x", "kyberswap"])
        == "kyberswap"
    )


def test_primary_source_best_of_is_most_frequent():
    outcomes = _outcomes("odos", "kyberswap", "odos", None)

    assert (
        resolve_primary_source(
            outcomes, SelectionPolicy.BEST_OF, ["0x", "kyberswap", "odos"]
        )
        == "odos"
    )


def test_primary_source_best_of_tie_uses_priority():
    outcomes = _outcomes("odos", "kyberswap")

    assert (
        resolve_primary_source(
            outcomes, SelectionPolicy.BEST_OF, ["0x", "kyberswap", "odos"]
        )
        == "kyberswap"
    )


def test_primary_source_none_when_nothing_priced():
    assert resolve_primary_source(_outcomes(None), SelectionPolicy.BEST_OF, []) == "none"


def test_build_engine_from_settings():
    engine = build_engine(
        PegMonitorSettings(
            providers=["kyberswap", "odos"],
            selection_policy="fallback",
            max_concurrent_assets=3,
        )
    )

    assert engine.selector.policy is SelectionPolicy.FALLBACK
    assert engine.selector.priority == ["kyberswap", "odos"]
    assert engine.max_concurrency == 3


def test_build_engine_missing_key_is_configuration_error():
    with pytest.raises(ConfigurationError):
        build_engine(PegMonitorSettings())


class SlowSelector:
    """Sleeps per buy token and records how many selects overlap."""

    def __init__(self, delays, sources, policy=SelectionPolicy.BEST_OF):
        self.delays = delays
        self.sources = sources
        self.policy = policy
        self.priority = ["0x", "kyberswap", "odos"]
        self.in_flight = 0
        self.peak = 0
        self.completed = []

    async def select(self, sell_token, buy_token, sell_amount):
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(buy_token, 0.01))
        finally:
            self.in_flight -= 1
        self.completed.append(buy_token)
        source = self.sources.get(buy_token, "0x")
        return Quote(buy_amount=sell_amount * 10**12, sell_amount=sell_amount, source=source)


@pytest.mark.asyncio
async def test_assets_are_priced_concurrently_within_bound():
    selector = SlowSelector(delays={}, sources={})
    engine = AggregationEngine(selector, max_concurrency=5)

    result = await engine.aggregate("USDT", "1M", sizes=["1M"])

    assert 1 < selector.peak <= 5
    assert len(selector.completed) == len(TRACKED_ASSETS) - 1
    assert all(record.price is not None for record in result.price_records)


@pytest.mark.asyncio
@pytest.mark.parametrize("policy", [SelectionPolicy.FALLBACK, SelectionPolicy.BEST_OF])
async def test_result_does_not_depend_on_completion_order(policy):
    symbols = ("USDT", "DAI", "FRAX", "GHO")
    addresses = [ASSETS[symbol].address for symbol in symbols[1:]]
    sources = {addresses[0]: "kyberswap", addresses[1]: "odos", addresses[2]: "odos"}

    forward = SlowSelector(
        {address: 0.01 * (i + 1) for i, address in enumerate(addresses)}, sources, policy
    )
    backward = SlowSelector(
        {address: 0.01 * (len(addresses) - i) for i, address in enumerate(addresses)},
        sources,
        policy,
    )

    first = await _engine(forward, *symbols).aggregate("USDT", "1M", sizes=["1M"])
    second = await _engine(backward, *symbols).aggregate("USDT", "1M", sizes=["1M"])

    assert forward.completed == addresses
    assert backward.completed == addresses[::-1]
    assert first.primary_source == second.primary_source
    assert first.primary_source == (
        "kyberswap" if policy == SelectionPolicy.FALLBACK else "odos"
    )
    assert [r.symbol for r in first.price_records] == list(symbols)
    assert [r.source for r in first.price_records] == [
        r.source for r in second.price_records
    ]
