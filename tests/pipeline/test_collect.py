import logging
from decimal import Decimal

import pytest
from pydantic import SecretStr

from peg_monitor.domain import UNPRICED, ConfigurationError, PriceRecord, SizePrice
from peg_monitor.pipeline import (
    UnauthorizedError,
    authorize_collection,
    run_collection,
)
from peg_monitor.processors import AggregationResult
from peg_monitor.settings import PegMonitorSettings
from peg_monitor.state import AppState
from peg_monitor.storage import HistoryStore


def _record(asset_id, symbol, price, bps):
    cell = SizePrice(price, bps, "0x") if price is not None else UNPRICED
    return PriceRecord(
        id=asset_id,
        symbol=symbol,
        name=symbol,
        price=price,
        deviation_bps=bps,
        prices_by_size={"1M": cell},
        source=cell.source,
    )


class FakeEngine:
    def __init__(self, failures=0, exc=RuntimeError("upstream down")):
        self.failures = failures
        self.exc = exc
        self.calls = []

    async def aggregate(self, base_asset, primary_size, sizes=None):
        self.calls.append((base_asset, primary_size))
        if len(self.calls) <= self.failures:
            raise self.exc
        return AggregationResult(
            base_asset=base_asset,
            trade_size=primary_size,
            price_records=[
                _record("dai", "DAI", Decimal("0.9995"), Decimal("-5.00")),
                _record("frax", "FRAX", None, None),
                _record("gho", "GHO", Decimal("1.001"), Decimal("10.00")),
            ],
            primary_source="0x",
            timestamp=1_700_000_000,
        )


@pytest.fixture
def state(tmp_path):
    settings = PegMonitorSettings(
        base_asset="USDC",
        trade_size="5M",
        database_path=tmp_path / "history.sqlite",
        collect_retries=2,
        collect_retry_interval=0,
    )
    return AppState(settings=settings, logger=logging.getLogger("test"))


def test_authorize_open_when_secret_unset():
    authorize_collection(None, None)
    authorize_collection("", "anything")


def test_authorize_rejects_wrong_secret():
    with pytest.raises(UnauthorizedError):
        authorize_collection("s3cret", "guess")
    with pytest.raises(UnauthorizedError):
        authorize_collection("s3cret", None)

    authorize_collection("s3cret", "s3cret")


@pytest.mark.asyncio
async def test_collect_stores_only_priced_records(state):
    engine = FakeEngine()
    store = HistoryStore(state.settings.database_path)

    summary = await run_collection(state, engine=engine, store=store)

    assert engine.calls == [("USDC", "5M")]
    assert summary.inserted == 2
    assert summary.source == "0x"
    rows = store.history(["dai", "frax", "gho"])
    assert [(row.symbol, row.deviation_bps) for row in rows] == [
        ("DAI", -5.0),
        ("GHO", 10.0),
    ]
    assert all(row.timestamp == 1_700_000_000 for row in rows)

    payload = summary.to_dict()
    assert payload["success"] is True
    assert payload["message"] == "Fetched and stored 2 price snapshots via 0x"
    assert payload["prices"][1] == {"symbol": "FRAX", "price": None, "deviationBps": None}


@pytest.mark.asyncio
async def test_collect_requires_secret(state, tmp_path):
    state.settings.collect_secret = SecretStr("s3cret")
    engine = FakeEngine()

    with pytest.raises(UnauthorizedError):
        await run_collection(state, "wrong", engine=engine)
    assert engine.calls == []

    summary = await run_collection(state, "s3cret", engine=engine)
    assert summary.inserted == 2


@pytest.mark.asyncio
async def test_collect_retries_transient_failures(state):
    engine = FakeEngine(failures=2)

    summary = await run_collection(state, engine=engine)

    assert len(engine.calls) == 3
    assert summary.inserted == 2


@pytest.mark.asyncio
async def test_collect_gives_up_after_retries(state):
    engine = FakeEngine(failures=5)

    with pytest.raises(RuntimeError, match="upstream down"):
        await run_collection(state, engine=engine)
    assert len(engine.calls) == 3


@pytest.mark.asyncio
async def test_collect_does_not_retry_configuration_errors(state):
    engine = FakeEngine(failures=5, exc=ConfigurationError("bad base"))

    with pytest.raises(ConfigurationError):
        await run_collection(state, engine=engine)
    assert len(engine.calls) == 1
