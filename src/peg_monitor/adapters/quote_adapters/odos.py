from __future__ import annotations

import logging

from ...constants import ODOS_API_URL
from ...settings import PegMonitorSettings
from .base import BaseQuoteAdapter, NoLiquidityError, Quote, parse_raw_amount

logger = logging.getLogger(__name__)


class OdosAdapter(BaseQuoteAdapter):
    """Adapter for the Odos smart order router quote endpoint.

    Odos takes the request as a JSON body and reports amounts as lists,
    one entry per input/output token.
    """

    QUOTE_PATH = "/sor/quote/v2"

    def __init__(self, config: PegMonitorSettings):
        super().__init__(config)
        self.api_base_url = ODOS_API_URL
        self.user_address = config.taker_address
        self.slippage_percent = config.slippage_percent

    @property
    def adapter_name(self) -> str:
        return "odos"

    def _build_body(self, sell_token: str, buy_token: str, sell_amount: int) -> dict:
        return {
            "chainId": self.chain_id,
            "inputTokens": [{"tokenAddress": sell_token, "amount": str(sell_amount)}],
            "outputTokens": [{"tokenAddress": buy_token, "proportion": 1}],
            "userAddr": self.user_address,
            "slippageLimitPercent": self.slippage_percent,
            "disableRFQs": True,
            "compact": True,
        }

    async def fetch_quote(
        self, sell_token: str, buy_token: str, sell_amount: int
    ) -> Quote:
        url = f"{self.api_base_url}{self.QUOTE_PATH}"
        logger.debug("Calling %s for %s -> %s", url, sell_token, buy_token)
        response = await self._http_post(
            url, body=self._build_body(sell_token, buy_token, sell_amount)
        )
        response.raise_for_status()
        data = self._json(response)

        out_amounts = data.get("outAmounts") or []
        if not out_amounts:
            raise NoLiquidityError("empty outAmounts")
        in_amounts = data.get("inAmounts") or []

        price_impact = data.get("priceImpact")
        return Quote(
            buy_amount=parse_raw_amount(out_amounts[0], "outAmounts"),
            sell_amount=(
                parse_raw_amount(in_amounts[0], "inAmounts")
                if in_amounts
                else sell_amount
            ),
            source=self.adapter_name,
            price_impact=float(price_impact) if price_impact is not None else None,
        )
