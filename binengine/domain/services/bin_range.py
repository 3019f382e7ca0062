from __future__ import annotations

import math
from decimal import Decimal
from typing import Literal

from binengine.domain.exceptions import InvalidParameterError
from binengine.domain.services.bin_math import bin_base, bin_for_price


STRATEGY_RANGE_BINS = {
    "narrow": 20,
    "moderate": 50,
    "wide": 100,
}


def optimal_bin_range(
    *,
    current_price: Decimal | float,
    bin_step: int,
    strategy: Literal["narrow", "moderate", "wide"],
    volatility: float | None = None,
) -> tuple[int, int, Decimal, Decimal]:
    range_bins = STRATEGY_RANGE_BINS.get(strategy)
    if range_bins is None:
        raise InvalidParameterError("strategy must be one of: narrow, moderate, wide.")

    price = Decimal(str(current_price))
    if price <= 0:
        raise InvalidParameterError("current_price must be positive.")

    if volatility is not None:
        if volatility < 0:
            raise InvalidParameterError("volatility must be non-negative.")
        range_bins = math.floor(range_bins * (1 + volatility))

    base = bin_base(bin_step)
    min_price = price * (base ** -range_bins)
    max_price = price * (base ** range_bins)

    min_bin_id = bin_for_price(min_price, bin_step, round_up=False)
    max_bin_id = bin_for_price(max_price, bin_step, round_up=True)
    return min_bin_id, max_bin_id, min_price, max_price


def align_bin_window(center_bin_id: int, radius: int) -> tuple[int, int]:
    if radius < 0:
        raise InvalidParameterError("radius must be >= 0.")
    return center_bin_id - radius, center_bin_id + radius
