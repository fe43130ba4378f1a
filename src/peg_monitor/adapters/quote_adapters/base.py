from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar

import requests

from ...settings import PegMonitorSettings
from .throttle import RequestThrottle

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT = 3.05


@dataclass(frozen=True)
class Quote:
    """Normalized indicative quote from one provider.

    Amounts are raw integers in each token's smallest unit.
    """

    buy_amount: int
    sell_amount: int
    source: str
    price_impact: float | None = None


class QuoteError(Exception):
    """Raised when a provider response does not contain a usable quote."""


class NoLiquidityError(QuoteError):
    """Raised when a provider explicitly reports no liquidity for the pair."""


def parse_raw_amount(value: Any, field_name: str = "amount") -> int:
    """Parse a provider raw amount exactly, without going through float.

    Raises:
        QuoteError: If the value is not a non-negative integer (or integer string).
    """
    if isinstance(value, bool):
        raise QuoteError(f"Invalid {field_name}: {value!r}")
    if isinstance(value, int):
        amount = value
    elif isinstance(value, str) and value.strip().isdigit():
        amount = int(value.strip())
    else:
        raise QuoteError(f"Invalid {field_name}: {value!r}")
    if amount < 0:
        raise QuoteError(f"Negative {field_name}: {value!r}")
    return amount


class BaseQuoteAdapter(ABC):
    """Abstract base class for DEX aggregator quote adapters.

    Subclasses implement ``fetch_quote`` and may raise freely; ``quote`` is
    the public entry point and collapses every failure to ``None``.
    """

    requires_api_key: ClassVar[bool] = False

    def __init__(self, config: PegMonitorSettings):
        """Initialize the adapter with configuration."""
        self.config = config
        self.chain_id = config.chain_id
        self.timeout = config.quote_timeout
        # asyncio.timeout cannot stop the worker thread; the socket timeouts bound it
        self.request_timeout = (min(CONNECT_TIMEOUT, self.timeout), self.timeout)
        self.throttle = RequestThrottle(
            config.provider_request_interval, config.provider_request_jitter
        )

    @property
    @abstractmethod
    def adapter_name(self) -> str:
        """Return the source label of this adapter."""
        ...

    @property
    def api_key(self) -> str | None:
        return None

    @property
    def has_credentials(self) -> bool:
        return not self.requires_api_key or bool(self.api_key)

    @abstractmethod
    async def fetch_quote(
        self, sell_token: str, buy_token: str, sell_amount: int
    ) -> Quote:
        """Request a quote from the provider.

        Raises:
            QuoteError: If the response carries no usable quote.
            requests.exceptions.RequestException: If the request fails.
        """
        ...

    async def quote(
        self, sell_token: str, buy_token: str, sell_amount_raw: int | str
    ) -> Quote | None:
        """Fetch an indicative quote, returning None on any failure.

        Args:
            sell_token: Address of the token being sold.
            buy_token: Address of the token being bought.
            sell_amount_raw: Sell amount in the sell token's smallest unit.

        Returns:
            The normalized quote, or None when the provider could not price
            the swap (network error, timeout, bad payload, missing credential
            or no liquidity).
        """
        if not self.has_credentials:
            logger.warning("%s: API key not configured, no quote", self.adapter_name)
            return None

        try:
            sell_amount = parse_raw_amount(sell_amount_raw, "sell amount")
            await self.throttle.wait()
            async with asyncio.timeout(self.timeout):
                result = await self.fetch_quote(sell_token, buy_token, sell_amount)
        except TimeoutError:
            logger.warning(
                "%s: quote %s -> %s timed out after %.1fs",
                self.adapter_name,
                sell_token,
                buy_token,
                self.timeout,
            )
            return None
        except NoLiquidityError as e:
            logger.info(
                "%s: no liquidity for %s -> %s: %s",
                self.adapter_name,
                sell_token,
                buy_token,
                e,
            )
            return None
        except requests.exceptions.RequestException as e:
            logger.warning(
                "%s: request failed for %s -> %s: %s",
                self.adapter_name,
                sell_token,
                buy_token,
                e,
            )
            return None
        except (QuoteError, KeyError, TypeError, ValueError) as e:
            logger.warning(
                "%s: invalid quote data for %s -> %s: %s",
                self.adapter_name,
                sell_token,
                buy_token,
                e,
            )
            return None
        except Exception as e:  # pragma: no cover
            logger.error(
                "%s: unexpected error quoting %s -> %s: %s",
                self.adapter_name,
                sell_token,
                buy_token,
                e,
            )
            return None

        if result.buy_amount <= 0:
            logger.warning(
                "%s: non-positive buy amount for %s -> %s, ignoring",
                self.adapter_name,
                sell_token,
                buy_token,
            )
            return None

        logger.debug(
            "%s: %s %s -> %s %s",
            self.adapter_name,
            result.sell_amount,
            sell_token,
            result.buy_amount,
            buy_token,
        )
        return result

    async def _http_get(
        self,
        url: str,
        *,
        params: dict | None = None,
        headers: dict | None = None,
    ) -> requests.Response:
        return await asyncio.to_thread(
            lambda: requests.get(
                url, params=params, headers=headers, timeout=self.request_timeout
            )
        )

    async def _http_post(
        self,
        url: str,
        *,
        body: dict | None = None,
        headers: dict | None = None,
    ) -> requests.Response:
        return await asyncio.to_thread(
            lambda: requests.post(
                url, json=body, headers=headers, timeout=self.request_timeout
            )
        )

    def _json(self, response: requests.Response) -> dict[str, Any]:
        """Decode a JSON object body, raising QuoteError on anything else."""
        try:
            data = response.json()
        except json.JSONDecodeError as e:
            raise QuoteError(f"Invalid JSON from {self.adapter_name}") from e
        if not isinstance(data, dict):
            raise QuoteError(f"Invalid response structure: {data}")
        return data
