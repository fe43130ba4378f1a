"""Domain models for the peg monitor."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from web3 import Web3

from ..constants import BASE_ASSET_SYMBOLS, STABLECOINS, TRADE_SIZES


class ConfigurationError(ValueError):
    """Raised when a requested operation references unknown or incomplete configuration."""


@dataclass(frozen=True)
class TrackedAsset:
    """A stablecoin whose peg is monitored."""

    id: str
    symbol: str
    name: str
    address: str
    decimals: int


@dataclass(frozen=True)
class TradeSize:
    """Notional size of the probe swap, in whole base-asset units."""

    label: str
    value: int


@dataclass(frozen=True)
class SizePrice:
    """Price and deviation for one asset at one trade size.

    ``price`` and ``deviation_bps`` are either both set or both None.
    """

    price: Decimal | None
    deviation_bps: Decimal | None
    source: str | None = None
    price_impact: float | None = None

    @property
    def is_priced(self) -> bool:
        return self.price is not None and self.deviation_bps is not None

    def to_dict(self) -> dict[str, object]:
        return {
            "price": _as_float(self.price),
            "deviationBps": _as_float(self.deviation_bps),
            "source": self.source,
            "priceImpact": self.price_impact,
        }


UNPRICED = SizePrice(price=None, deviation_bps=None)


@dataclass(frozen=True)
class PriceRecord:
    """Per-asset result of one aggregation run."""

    id: str
    symbol: str
    name: str
    price: Decimal | None
    deviation_bps: Decimal | None
    prices_by_size: dict[str, SizePrice] = field(default_factory=dict)
    source: str | None = None

    def to_dict(self) -> dict[str, object]:
        """Convert the record to a JSON-friendly dictionary."""
        return {
            "id": self.id,
            "symbol": self.symbol,
            "name": self.name,
            "price": _as_float(self.price),
            "deviationBps": _as_float(self.deviation_bps),
            "source": self.source,
            "pricesBySize": {
                label: cell.to_dict() for label, cell in self.prices_by_size.items()
            },
        }


def _as_float(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


def _load_tracked_assets() -> tuple[TrackedAsset, ...]:
    return tuple(
        TrackedAsset(
            id=coin["id"],
            symbol=coin["symbol"],
            name=coin["name"],
            address=Web3.to_checksum_address(coin["address"]),
            decimals=coin["decimals"],
        )
        for coin in STABLECOINS
    )


TRACKED_ASSETS: tuple[TrackedAsset, ...] = _load_tracked_assets()
TRADE_SIZE_OPTIONS: tuple[TradeSize, ...] = tuple(
    TradeSize(label=size["label"], value=size["value"]) for size in TRADE_SIZES
)


def get_base_asset(symbol: str) -> TrackedAsset:
    """Resolve an eligible base asset by symbol.

    Raises:
        ConfigurationError: If the symbol is not one of the eligible base assets.
    """
    if symbol not in BASE_ASSET_SYMBOLS:
        raise ConfigurationError(
            f"Unknown base asset '{symbol}'. Must be one of: {', '.join(BASE_ASSET_SYMBOLS)}"
        )
    for asset in TRACKED_ASSETS:
        if asset.symbol == symbol:
            return asset
    raise ConfigurationError(f"Base asset {symbol} not found in tracked assets")


def get_trade_size(label: str) -> TradeSize:
    """Resolve a trade size by label.

    Raises:
        ConfigurationError: If the label is not a known trade size.
    """
    for size in TRADE_SIZE_OPTIONS:
        if size.label == label:
            return size
    valid = ", ".join(size.label for size in TRADE_SIZE_OPTIONS)
    raise ConfigurationError(f"Invalid trade size '{label}'. Must be one of: {valid}")


def find_assets_by_symbols(symbols: list[str]) -> list[TrackedAsset]:
    """Return tracked assets matching the given symbols (case-insensitive)."""
    wanted = {symbol.strip().upper() for symbol in symbols if symbol.strip()}
    return [asset for asset in TRACKED_ASSETS if asset.symbol.upper() in wanted]


__all__ = [
    "ConfigurationError",
    "PriceRecord",
    "SizePrice",
    "TRACKED_ASSETS",
    "TRADE_SIZE_OPTIONS",
    "TrackedAsset",
    "TradeSize",
    "UNPRICED",
    "find_assets_by_symbols",
    "get_base_asset",
    "get_trade_size",
]
