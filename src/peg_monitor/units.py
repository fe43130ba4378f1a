from __future__ import annotations

from decimal import ROUND_HALF_UP, Context, Decimal, InvalidOperation
from enum import Enum

from .constants import DEVIATION_STABLE_BPS, DEVIATION_WARNING_BPS, PEG_VALUE

# 18-decimal tokens at tens of millions of units need ~26 significant digits
_CTX = Context(prec=60)
_BPS_QUANTUM = Decimal("0.01")


class DeviationStatus(str, Enum):
    STABLE = "stable"
    WARNING = "warning"
    DEPEGGED = "depegged"
    UNKNOWN = "unknown"


def _to_int(raw_amount: int | str) -> int:
    if isinstance(raw_amount, bool):
        raise ValueError(f"Raw amount must be an integer, got {raw_amount!r}")
    if isinstance(raw_amount, int):
        return raw_amount
    text = str(raw_amount).strip()
    if not text.lstrip("-").isdigit():
        raise ValueError(f"Raw amount must be an integer string, got {raw_amount!r}")
    return int(text)


def _to_decimal_value(value: Decimal | float | int | str) -> Decimal:
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        # str() keeps the shortest repr so 0.005 boundaries stay exact
        result = Decimal(str(value))
    else:
        try:
            result = Decimal(value)
        except InvalidOperation as e:
            raise ValueError(f"Invalid numeric value: {value!r}") from e
    if not result.is_finite():
        raise ValueError(f"Value must be finite, got {value!r}")
    return result


def to_decimal(raw_amount: int | str, decimals: int) -> Decimal:
    """Convert a raw integer token amount to a human-scale Decimal.

    Args:
        raw_amount: Amount in the token's smallest unit, as int or integer string.
        decimals: Decimal precision of the token.

    Returns:
        ``raw_amount / 10**decimals`` computed without float rounding.
    """
    if decimals < 0:
        raise ValueError(f"Decimals must be non-negative, got {decimals}")
    return _CTX.divide(Decimal(_to_int(raw_amount)), Decimal(10) ** decimals)


def price_ratio(
    sell_raw_amount: int | str,
    buy_raw_amount: int | str,
    sell_decimals: int,
    buy_decimals: int,
) -> Decimal:
    """Units of the buy asset received per one unit of the sell asset."""
    sell = to_decimal(sell_raw_amount, sell_decimals)
    if sell == 0:
        raise ValueError("Sell amount must be non-zero to compute a price ratio")
    buy = to_decimal(buy_raw_amount, buy_decimals)
    return _CTX.divide(buy, sell)


def raw_sell_amount(trade_size_value: int, decimals: int) -> int:
    """Scale a whole-unit trade size to the token's raw integer amount."""
    return trade_size_value * (10**decimals)


def deviation_bps(
    price: Decimal | float | int | str, peg: Decimal | float | int | str = PEG_VALUE
) -> Decimal:
    """Signed deviation of ``price`` from ``peg`` in basis points.

    Rounded to 2 decimal places, half away from zero.

    Raises:
        ValueError: If ``peg`` is zero or either value is not finite.
    """
    price_d = _to_decimal_value(price)
    peg_d = _to_decimal_value(peg)
    if peg_d == 0:
        raise ValueError("Peg value must be non-zero")
    deviation = _CTX.multiply(_CTX.divide(price_d - peg_d, peg_d), Decimal(10_000))
    return deviation.quantize(_BPS_QUANTUM, rounding=ROUND_HALF_UP)


def deviation_status(deviation: Decimal | float | None) -> DeviationStatus:
    if deviation is None:
        return DeviationStatus.UNKNOWN
    magnitude = abs(deviation)
    if magnitude <= DEVIATION_STABLE_BPS:
        return DeviationStatus.STABLE
    if magnitude <= DEVIATION_WARNING_BPS:
        return DeviationStatus.WARNING
    return DeviationStatus.DEPEGGED
