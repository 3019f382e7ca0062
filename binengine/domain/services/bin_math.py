from __future__ import annotations

from decimal import ROUND_FLOOR, Context, Decimal, localcontext

from binengine.domain.exceptions import InvalidParameterError


# Bin prices are computed at 50 significant digits whatever thread runs them.
DECIMAL_CONTEXT = Context(prec=50)

# Bin id at which price == 1.
REFERENCE_BIN_ID = 2**23
BASIS_POINT_MAX = Decimal(10000)


def bin_base(bin_step: int) -> Decimal:
    if isinstance(bin_step, bool) or not isinstance(bin_step, int) or bin_step <= 0:
        raise InvalidParameterError(f"bin_step must be a positive integer (got {bin_step!r}).")
    with localcontext(DECIMAL_CONTEXT):
        return Decimal(1) + Decimal(bin_step) / BASIS_POINT_MAX


def price_for_bin(bin_id: int, bin_step: int) -> Decimal:
    base = bin_base(bin_step)
    with localcontext(DECIMAL_CONTEXT):
        return base ** (int(bin_id) - REFERENCE_BIN_ID)


def bin_for_price(price: Decimal | float | int | str, bin_step: int, round_up: bool = False) -> int:
    """Largest bin whose price is <= ``price``; smallest with price >= ``price`` when ``round_up``."""
    base = bin_base(bin_step)
    value = _to_decimal(price)
    if not value.is_finite() or value <= 0:
        raise InvalidParameterError(f"price must be positive (got {price!r}).")

    with localcontext(DECIMAL_CONTEXT):
        ratio = value.ln() / base.ln()
    bin_id = REFERENCE_BIN_ID + int(ratio.to_integral_value(rounding=ROUND_FLOOR))

    # ln() is not exact; settle on the neighbour that brackets the price.
    while price_for_bin(bin_id + 1, bin_step) <= value:
        bin_id += 1
    while price_for_bin(bin_id, bin_step) > value:
        bin_id -= 1

    if round_up and price_for_bin(bin_id, bin_step) < value:
        bin_id += 1
    return bin_id


def price_per_token(price: Decimal, base_decimals: int, quote_decimals: int) -> Decimal:
    with localcontext(DECIMAL_CONTEXT):
        return price * (Decimal(10) ** (base_decimals - quote_decimals))


def price_from_per_token(price: Decimal | float | int | str, base_decimals: int, quote_decimals: int) -> Decimal:
    value = _to_decimal(price)
    with localcontext(DECIMAL_CONTEXT):
        return value / (Decimal(10) ** (base_decimals - quote_decimals))


def normalize_amount(raw_amount: int, decimals: int) -> Decimal:
    if decimals < 0:
        raise InvalidParameterError(f"decimals must be non-negative (got {decimals}).")
    return Decimal(int(raw_amount)).scaleb(-decimals, context=DECIMAL_CONTEXT)


def _to_decimal(value: Decimal | float | int | str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except ArithmeticError as exc:
        raise InvalidParameterError(f"price is not a number: {value!r}.") from exc
