from __future__ import annotations

from decimal import Decimal

from binengine.domain.entities.position import Position
from binengine.domain.exceptions import InvalidParameterError
from binengine.domain.services.bin_math import normalize_amount


def resolve_position_bounds(position: Position) -> tuple[int, int]:
    if position.bins:
        bin_ids = [item.bin_id for item in position.bins]
        return min(bin_ids), max(bin_ids)

    lower = position.lower_bin_id
    upper = position.upper_bin_id
    if lower is None or upper is None:
        raise InvalidParameterError(
            f"Position {position.position_id} has no bin data and an incomplete range "
            f"(lower={lower}, upper={upper})."
        )
    if lower > upper:
        raise InvalidParameterError(
            f"Position {position.position_id} has an inverted range (lower={lower}, upper={upper})."
        )
    return lower, upper


def aggregate_position_totals(
    position: Position,
    *,
    base_decimals: int,
    quote_decimals: int,
) -> tuple[Decimal, Decimal, Decimal, Decimal]:
    """Returns (base, quote, fees_base, fees_quote) in token units."""
    if not position.bins:
        if not position.totals_are_raw:
            return position.total_base, position.total_quote, position.fees_base, position.fees_quote
        return (
            normalize_amount(int(position.total_base), base_decimals),
            normalize_amount(int(position.total_quote), quote_decimals),
            normalize_amount(int(position.fees_base), base_decimals),
            normalize_amount(int(position.fees_quote), quote_decimals),
        )

    raw_base = sum(item.amount_base for item in position.bins)
    raw_quote = sum(item.amount_quote for item in position.bins)
    raw_fee_base = sum(item.fee_base for item in position.bins)
    raw_fee_quote = sum(item.fee_quote for item in position.bins)
    return (
        normalize_amount(raw_base, base_decimals),
        normalize_amount(raw_quote, quote_decimals),
        normalize_amount(raw_fee_base, base_decimals),
        normalize_amount(raw_fee_quote, quote_decimals),
    )
