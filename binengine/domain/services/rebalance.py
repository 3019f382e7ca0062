from __future__ import annotations

import math
from decimal import Decimal

from binengine.domain.entities.position import RebalanceResult
from binengine.domain.exceptions import InvalidParameterError


DEFAULT_REBALANCE_THRESHOLD = 0.1


def evaluate_rebalance(
    *,
    active_bin_id: int,
    current_price: Decimal,
    lower_bin_id: int,
    upper_bin_id: int,
    lower_price: Decimal,
    upper_price: Decimal,
    threshold_fraction: float = DEFAULT_REBALANCE_THRESHOLD,
) -> RebalanceResult:
    if not 0 <= threshold_fraction <= 1:
        raise InvalidParameterError("threshold_fraction must be between 0 and 1.")
    if lower_bin_id > upper_bin_id:
        raise InvalidParameterError(
            f"lower_bin_id {lower_bin_id} must not exceed upper_bin_id {upper_bin_id}."
        )

    bin_span = upper_bin_id - lower_bin_id
    threshold_bins = math.floor(bin_span * threshold_fraction)

    def _result(should_rebalance: bool, reason: str | None = None) -> RebalanceResult:
        return RebalanceResult(
            should_rebalance=should_rebalance,
            reason=reason,
            current_price=current_price,
            active_bin_id=active_bin_id,
            lower_bin_id=lower_bin_id,
            upper_bin_id=upper_bin_id,
        )

    if active_bin_id < lower_bin_id or active_bin_id > upper_bin_id:
        return _result(
            True,
            f"Price {current_price} is outside position range [{lower_price}, {upper_price}] "
            f"(active bin {active_bin_id}, range {lower_bin_id}-{upper_bin_id})",
        )

    if active_bin_id - lower_bin_id < threshold_bins:
        return _result(
            True,
            f"Price {current_price} is near lower bound {lower_price} "
            f"(active bin {active_bin_id} within {threshold_bins} bins of {lower_bin_id})",
        )

    if upper_bin_id - active_bin_id < threshold_bins:
        return _result(
            True,
            f"Price {current_price} is near upper bound {upper_price} "
            f"(active bin {active_bin_id} within {threshold_bins} bins of {upper_bin_id})",
        )

    return _result(False)
