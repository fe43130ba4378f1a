"""Tracked stablecoins, trade sizes and provider endpoints."""

from typing import TypedDict


class StablecoinConfig(TypedDict):
    id: str
    symbol: str
    name: str
    address: str
    decimals: int


class TradeSizeConfig(TypedDict):
    label: str
    value: int


# Ethereum mainnet deployments
STABLECOINS: list[StablecoinConfig] = [
    {
        "id": "tether",
        "symbol": "USDT",
        "name": "Tether",
        "address": "0xdAC17F958D2ee523a2206206994597C13D831ec7",
        "decimals": 6,
    },
    {
        "id": "usd-coin",
        "symbol": "USDC",
        "name": "USD Coin",
        "address": "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
        "decimals": 6,
    },
    {
        "id": "ripple-usd",
        "symbol": "RLUSD",
        "name": "Ripple USD",
        "address": "0x8292Bb45bf1Ee4d140127049757C2E0fF06317eD",
        "decimals": 18,
    },
    {
        "id": "paypal-usd",
        "symbol": "PYUSD",
        "name": "PayPal USD",
        "address": "0x6c3ea9036406852006290770BEdFcAbA0e23A0e8",
        "decimals": 6,
    },
    {
        "id": "ethena-usde",
        "symbol": "USDe",
        "name": "Ethena USDe",
        "address": "0x4c9EDD5852cd905f086C759E8383e09bff1E68B3",
        "decimals": 18,
    },
    {
        "id": "agora-dollar",
        "symbol": "AUSD",
        "name": "Agora Dollar",
        "address": "0x00000000eFE302BEAA2b3e6e1b18d08D69a9012a",
        "decimals": 6,
    },
    {
        "id": "dai",
        "symbol": "DAI",
        "name": "Dai",
        "address": "0x6B175474E89094C44Da98b954EedeAC495271d0F",
        "decimals": 18,
    },
    {
        "id": "usds",
        "symbol": "USDS",
        "name": "Sky Dollar",
        "address": "0xdC035D45d973E3EC169d2276DDab16f1e407384F",
        "decimals": 18,
    },
    {
        "id": "frax",
        "symbol": "FRAX",
        "name": "Frax",
        "address": "0x853d955aCEf822Db058eb8505911ED77F175b99e",
        "decimals": 18,
    },
    {
        "id": "gho",
        "symbol": "GHO",
        "name": "Aave GHO",
        "address": "0x40D16FC0246aD3160Ccc09B8D0D3A2cD28aE6C2f",
        "decimals": 18,
    },
    {
        "id": "first-digital-usd",
        "symbol": "FDUSD",
        "name": "First Digital USD",
        "address": "0xc5f0f7b66764F6ec8C8Dff7BA683102295E16409",
        "decimals": 18,
    },
    {
        "id": "true-usd",
        "symbol": "TUSD",
        "name": "TrueUSD",
        "address": "0x0000000000085d4780B73119b644AE5ecd22b376",
        "decimals": 18,
    },
    {
        "id": "crvusd",
        "symbol": "crvUSD",
        "name": "Curve USD",
        "address": "0xf939E0A03FB07F59A73314E73794Be0E57ac1b4E",
        "decimals": 18,
    },
    {
        "id": "liquity-usd",
        "symbol": "LUSD",
        "name": "Liquity USD",
        "address": "0x5f98805A4E8be255a32880FDeC7F6728C6568bA0",
        "decimals": 18,
    },
    {
        "id": "usual-usd",
        "symbol": "USD0",
        "name": "Usual USD",
        "address": "0x73A15FeD60Bf67631dC6cd7Bc5B6e8da8190aCF5",
        "decimals": 18,
    },
]

BASE_ASSET_SYMBOLS: tuple[str, ...] = ("USDT", "USDC")

TRADE_SIZES: list[TradeSizeConfig] = [
    {"label": "1M", "value": 1_000_000},
    {"label": "5M", "value": 5_000_000},
    {"label": "10M", "value": 10_000_000},
]

# Hours of history per timeframe label; -1 means everything
TIMEFRAMES: dict[str, int] = {
    "24h": 24,
    "7d": 168,
    "30d": 720,
    "90d": 2160,
    "All": -1,
}
DEFAULT_TIMEFRAME = "24h"

# Absolute deviation bands in bps
DEVIATION_STABLE_BPS = 5
DEVIATION_WARNING_BPS = 25

PEG_VALUE = 1

# Dummy taker for indicative quotes; it never needs to hold tokens
TAKER_PLACEHOLDER = "0x0000000000000000000000000000000000000001"

MAINNET_CHAIN_ID = 1

ZEROX_API_URL = "https://api.0x.org"
KYBERSWAP_API_URL = "https://aggregator-api.kyberswap.com"
ODOS_API_URL = "https://api.odos.xyz"

# KyberSwap addresses chains by name rather than id
KYBERSWAP_CHAIN_NAMES: dict[int, str] = {
    1: "ethereum",
    10: "optimism",
    56: "bsc",
    137: "polygon",
    8453: "base",
    42161: "arbitrum",
}

DEFAULT_PROVIDER_PRIORITY: list[str] = ["0x", "kyberswap", "odos"]

NO_SOURCE = "none"

# source label for prices served from the snapshot history
DATABASE_SOURCE = "database"
