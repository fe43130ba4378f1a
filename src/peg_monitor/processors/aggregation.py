from __future__ import annotations

import asyncio
import logging
import time
from collections import Counter
from dataclasses import dataclass
from decimal import Decimal

from ..adapters import build_quote_adapters
from ..constants import NO_SOURCE
from ..domain import (
    TRACKED_ASSETS,
    TRADE_SIZE_OPTIONS,
    UNPRICED,
    PriceRecord,
    SizePrice,
    TrackedAsset,
    TradeSize,
    get_base_asset,
    get_trade_size,
)
from ..settings import PegMonitorSettings, SelectionPolicy
from ..units import deviation_bps, price_ratio, raw_sell_amount
from .quote_selector import BaseQuoteSelector, build_selector

logger = logging.getLogger(__name__)

IDENTITY_PRICE = SizePrice(price=Decimal(1), deviation_bps=Decimal(0))


@dataclass(frozen=True)
class CellOutcome:
    """Winning source (if any) of one (asset, trade size) cell."""

    asset_id: str
    size_label: str
    source: str | None


@dataclass
class AggregationResult:
    """Result of one aggregation run."""

    base_asset: str
    trade_size: str
    price_records: list[PriceRecord]
    primary_source: str
    timestamp: int

    def to_dict(self) -> dict[str, object]:
        return {
            "base": self.base_asset,
            "size": self.trade_size,
            "timestamp": self.timestamp,
            "source": self.primary_source,
            "prices": [record.to_dict() for record in self.price_records],
        }


def resolve_primary_source(
    outcomes: list[CellOutcome],
    policy: SelectionPolicy,
    priority: list[str],
) -> str:
    """Pick the single source label reported for a run.

    Args:
        outcomes: Cell outcomes in canonical order (tracked-asset order,
            then trade-size order), independent of completion order.
        policy: Selection policy used for the run.
        priority: Adapter source labels in priority order, used for ties.

    Returns:
        The first winning source for the fallback chain, the most frequent
        winning source for best-of, or ``"none"`` if nothing was priced.
    """
    winners = [outcome.source for outcome in outcomes if outcome.source]
    if not winners:
        return NO_SOURCE
    if policy == SelectionPolicy.FALLBACK:
        return winners[0]

    counts = Counter(winners)
    rank = {name: index for index, name in enumerate(priority)}
    return max(counts, key=lambda source: (counts[source], -rank.get(source, len(rank))))


class AggregationEngine:
    """Prices every tracked stablecoin against a base asset at each trade size."""

    def __init__(
        self,
        selector: BaseQuoteSelector,
        tracked_assets: tuple[TrackedAsset, ...] = TRACKED_ASSETS,
        trade_sizes: tuple[TradeSize, ...] = TRADE_SIZE_OPTIONS,
        max_concurrency: int = 5,
    ):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.selector = selector
        self.tracked_assets = tracked_assets
        self.trade_sizes = trade_sizes
        self.max_concurrency = max_concurrency

    def _resolve_sizes(
        self, primary: TradeSize, sizes: list[str] | None
    ) -> list[TradeSize]:
        if sizes is None:
            requested = list(self.trade_sizes)
        else:
            requested = [get_trade_size(label) for label in sizes]
        if primary not in requested:
            requested.append(primary)
        # keep canonical order regardless of how sizes were requested
        order = {size.label: index for index, size in enumerate(TRADE_SIZE_OPTIONS)}
        return sorted(set(requested), key=lambda size: order.get(size.label, len(order)))

    async def aggregate(
        self,
        base_asset: str,
        primary_size: str,
        sizes: list[str] | None = None,
    ) -> AggregationResult:
        """Run one aggregation round.

        Args:
            base_asset: Symbol of the eligible base asset (USDT or USDC).
            primary_size: Trade size label whose price/deviation is reported
                at the top level of each record.
            sizes: Trade size labels to quote; None means all sizes.

        Returns:
            One PriceRecord per tracked asset plus the primary source label.
            Unpriceable cells are null, never zero.

        Raises:
            ConfigurationError: If the base asset or a trade size is unknown.
        """
        base = get_base_asset(base_asset)
        primary = get_trade_size(primary_size)
        requested_sizes = self._resolve_sizes(primary, sizes)

        logger.info(
            "Aggregating %d assets against %s at sizes %s (%s)",
            len(self.tracked_assets),
            base.symbol,
            ", ".join(size.label for size in requested_sizes),
            self.selector.policy.value,
        )

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _bounded(asset: TrackedAsset):
            async with semaphore:
                return await self._price_asset(base, asset, requested_sizes)

        # each task accumulates its own outcomes; merged after the join
        results = await asyncio.gather(
            *(_bounded(asset) for asset in self.tracked_assets)
        )

        records: list[PriceRecord] = []
        outcomes: list[CellOutcome] = []
        for asset, (cells, asset_outcomes) in zip(self.tracked_assets, results):
            outcomes.extend(asset_outcomes)
            primary_cell = cells.get(primary.label, UNPRICED)
            records.append(
                PriceRecord(
                    id=asset.id,
                    symbol=asset.symbol,
                    name=asset.name,
                    price=primary_cell.price,
                    deviation_bps=primary_cell.deviation_bps,
                    prices_by_size=cells,
                    source=primary_cell.source,
                )
            )

        primary_source = resolve_primary_source(
            outcomes, self.selector.policy, self.selector.priority
        )
        priced = sum(1 for record in records if record.price is not None)
        logger.info(
            "Priced %d/%d assets at %s via %s",
            priced,
            len(records),
            primary.label,
            primary_source,
        )

        return AggregationResult(
            base_asset=base.symbol,
            trade_size=primary.label,
            price_records=records,
            primary_source=primary_source,
            timestamp=int(time.time()),
        )

    async def _price_asset(
        self,
        base: TrackedAsset,
        asset: TrackedAsset,
        sizes: list[TradeSize],
    ) -> tuple[dict[str, SizePrice], list[CellOutcome]]:
        if asset.id == base.id:
            return {size.label: IDENTITY_PRICE for size in sizes}, []

        cells: dict[str, SizePrice] = {}
        outcomes: list[CellOutcome] = []
        for size in sizes:
            cell = await self._price_cell(base, asset, size)
            cells[size.label] = cell
            outcomes.append(CellOutcome(asset.id, size.label, cell.source))
        return cells, outcomes

    async def _price_cell(
        self, base: TrackedAsset, asset: TrackedAsset, size: TradeSize
    ) -> SizePrice:
        sell_amount = raw_sell_amount(size.value, base.decimals)
        quote = await self.selector.select(base.address, asset.address, sell_amount)
        if quote is None:
            logger.warning(
                "No quote for %s at %s against %s", asset.symbol, size.label, base.symbol
            )
            return UNPRICED

        try:
            price = price_ratio(
                quote.sell_amount, quote.buy_amount, base.decimals, asset.decimals
            )
            deviation = deviation_bps(price)
        except ValueError as e:
            logger.warning(
                "Unusable quote from %s for %s at %s: %s",
                quote.source,
                asset.symbol,
                size.label,
                e,
            )
            return UNPRICED

        logger.debug(
            "%s @ %s: price %s, deviation %s bps via %s",
            asset.symbol,
            size.label,
            price,
            deviation,
            quote.source,
        )
        return SizePrice(
            price=price,
            deviation_bps=deviation,
            source=quote.source,
            price_impact=quote.price_impact,
        )


def build_engine(config: PegMonitorSettings) -> AggregationEngine:
    """Wire adapters, selector and engine from settings.

    Raises:
        ConfigurationError: If a provider is unknown or missing credentials.
    """
    adapters = build_quote_adapters(config)
    selector = build_selector(config.selection_policy, adapters)
    return AggregationEngine(selector, max_concurrency=config.max_concurrent_assets)
