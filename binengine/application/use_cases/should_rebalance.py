from __future__ import annotations

import logging

from binengine.application.use_cases.active_bin_tracker import ActiveBinTracker
from binengine.application.use_cases.analyze_position import PositionRangeAnalyzer
from binengine.domain.entities.position import Position, RebalanceResult
from binengine.domain.exceptions import InvalidParameterError
from binengine.domain.services.rebalance import DEFAULT_REBALANCE_THRESHOLD, evaluate_rebalance


logger = logging.getLogger(__name__)


class RebalanceAdvisor:
    def __init__(self, *, active_bin_tracker: ActiveBinTracker, position_analyzer: PositionRangeAnalyzer):
        self._active_bin_tracker = active_bin_tracker
        self._position_analyzer = position_analyzer

    async def should_rebalance(
        self,
        position: Position,
        threshold_fraction: float = DEFAULT_REBALANCE_THRESHOLD,
    ) -> RebalanceResult:
        if not 0 <= threshold_fraction <= 1:
            raise InvalidParameterError(
                f"threshold_fraction must be between 0 and 1 (got {threshold_fraction})."
            )

        active = await self._active_bin_tracker.get_active_bin(position.pool_id)
        position_range = await self._position_analyzer.analyze(position)

        result = evaluate_rebalance(
            active_bin_id=active.bin_id,
            current_price=active.price,
            lower_bin_id=position_range.lower_bin_id,
            upper_bin_id=position_range.upper_bin_id,
            lower_price=position_range.lower_price,
            upper_price=position_range.upper_price,
            threshold_fraction=threshold_fraction,
        )
        logger.info(
            "rebalance_advisor: position=%s active=%s range=%s-%s should_rebalance=%s",
            position.position_id,
            active.bin_id,
            position_range.lower_bin_id,
            position_range.upper_bin_id,
            result.should_rebalance,
        )
        return result
