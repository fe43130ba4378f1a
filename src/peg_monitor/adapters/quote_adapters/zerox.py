from __future__ import annotations

import logging

from ...constants import ZEROX_API_URL
from ...settings import PegMonitorSettings
from .base import BaseQuoteAdapter, NoLiquidityError, Quote, parse_raw_amount

logger = logging.getLogger(__name__)


class ZeroXAdapter(BaseQuoteAdapter):
    """Adapter for 0x Swap API v2 indicative prices (allowance-holder route).

    Requires an API key. The taker is a placeholder; nothing is executed.
    """

    requires_api_key = True

    PRICE_PATH = "/swap/allowance-holder/price"
    API_VERSION = "v2"

    def __init__(self, config: PegMonitorSettings):
        super().__init__(config)
        self.api_base_url = ZEROX_API_URL
        self.taker_address = config.taker_address

    @property
    def adapter_name(self) -> str:
        return "0x"

    @property
    def api_key(self) -> str | None:
        return self.config.zerox_api_key_value

    async def fetch_quote(
        self, sell_token: str, buy_token: str, sell_amount: int
    ) -> Quote:
        url = f"{self.api_base_url}{self.PRICE_PATH}"
        params = {
            "chainId": str(self.chain_id),
            "sellToken": sell_token,
            "buyToken": buy_token,
            "sellAmount": str(sell_amount),
            "taker": self.taker_address,
        }
        headers = {
            "0x-api-key": self.api_key or "",
            "0x-version": self.API_VERSION,
        }
        logger.debug("Calling %s for %s -> %s", url, sell_token, buy_token)
        response = await self._http_get(url, params=params, headers=headers)
        response.raise_for_status()
        data = self._json(response)

        if data.get("liquidityAvailable") is False:
            raise NoLiquidityError("liquidityAvailable is false")

        buy_amount = parse_raw_amount(data["buyAmount"], "buyAmount")
        # 0x may normalize the sell amount; prefer its echo
        echoed_sell = data.get("sellAmount")
        sell_amount_used = (
            parse_raw_amount(echoed_sell, "sellAmount")
            if echoed_sell not in (None, "")
            else sell_amount
        )

        price_impact = data.get("estimatedPriceImpact")
        return Quote(
            buy_amount=buy_amount,
            sell_amount=sell_amount_used,
            source=self.adapter_name,
            price_impact=float(price_impact) if price_impact is not None else None,
        )
