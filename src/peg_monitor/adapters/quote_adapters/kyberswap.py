from __future__ import annotations

import logging

from ...constants import KYBERSWAP_API_URL, KYBERSWAP_CHAIN_NAMES
from ...domain import ConfigurationError
from ...settings import PegMonitorSettings
from .base import (
    BaseQuoteAdapter,
    NoLiquidityError,
    Quote,
    QuoteError,
    parse_raw_amount,
)

logger = logging.getLogger(__name__)


class KyberSwapAdapter(BaseQuoteAdapter):
    """Adapter for the KyberSwap aggregator route endpoint (no API key)."""

    CLIENT_ID = "peg-monitor"

    def __init__(self, config: PegMonitorSettings):
        super().__init__(config)
        chain_name = KYBERSWAP_CHAIN_NAMES.get(config.chain_id)
        if chain_name is None:
            raise ConfigurationError(
                f"KyberSwap adapter does not support chain id {config.chain_id}"
            )
        self.api_base_url = f"{KYBERSWAP_API_URL}/{chain_name}/api/v1"

    @property
    def adapter_name(self) -> str:
        return "kyberswap"

    async def fetch_quote(
        self, sell_token: str, buy_token: str, sell_amount: int
    ) -> Quote:
        url = f"{self.api_base_url}/routes"
        params = {
            "tokenIn": sell_token,
            "tokenOut": buy_token,
            "amountIn": str(sell_amount),
        }
        logger.debug("Calling %s for %s -> %s", url, sell_token, buy_token)
        response = await self._http_get(
            url, params=params, headers={"x-client-id": self.CLIENT_ID}
        )
        response.raise_for_status()
        data = self._json(response)

        code = data.get("code")
        if code not in (0, None):
            raise QuoteError(f"KyberSwap error code {code}: {data.get('message')}")

        route_summary = (data.get("data") or {}).get("routeSummary")
        if not route_summary:
            raise NoLiquidityError("no route found")

        amount_in = route_summary.get("amountIn")
        return Quote(
            buy_amount=parse_raw_amount(route_summary["amountOut"], "amountOut"),
            sell_amount=(
                parse_raw_amount(amount_in, "amountIn")
                if amount_in not in (None, "")
                else sell_amount
            ),
            source=self.adapter_name,
        )
