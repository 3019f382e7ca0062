from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime, timezone

from binengine.application.use_cases.should_rebalance import RebalanceAdvisor
from binengine.domain.entities.position import Position, PositionHealth
from binengine.domain.exceptions import DomainError, InvalidParameterError
from binengine.domain.services.rebalance import DEFAULT_REBALANCE_THRESHOLD


logger = logging.getLogger(__name__)

RebalanceCallback = Callable[[Position, PositionHealth], Awaitable[None]]


class PositionMonitor:
    """Runs the rebalance check over many positions; one failure does not stop the rest."""

    def __init__(
        self,
        *,
        advisor: RebalanceAdvisor,
        on_rebalance_needed: RebalanceCallback | None = None,
        now: Callable[[], datetime] | None = None,
    ):
        self._advisor = advisor
        self._on_rebalance_needed = on_rebalance_needed
        self._now = now or (lambda: datetime.now(timezone.utc))

    async def check(
        self,
        positions: Iterable[Position],
        threshold_fraction: float = DEFAULT_REBALANCE_THRESHOLD,
    ) -> list[PositionHealth]:
        if not 0 <= threshold_fraction <= 1:
            raise InvalidParameterError(
                f"threshold_fraction must be between 0 and 1 (got {threshold_fraction})."
            )

        results: list[PositionHealth] = []
        for position in positions:
            try:
                decision = await self._advisor.should_rebalance(position, threshold_fraction)
            except DomainError as exc:
                logger.warning(
                    "position_monitor: check_failed position=%s error=%s",
                    position.position_id,
                    exc,
                )
                results.append(
                    PositionHealth(
                        position_id=position.position_id,
                        needs_rebalance=False,
                        last_check=self._now(),
                        error=str(exc),
                    )
                )
                continue

            health = PositionHealth(
                position_id=position.position_id,
                needs_rebalance=decision.should_rebalance,
                last_check=self._now(),
                current_price=decision.current_price,
                reason=decision.reason,
            )
            results.append(health)
            if health.needs_rebalance and self._on_rebalance_needed is not None:
                await self._on_rebalance_needed(position, health)

        logger.info(
            "position_monitor: checked positions=%s needs_rebalance=%s errors=%s",
            len(results),
            sum(1 for item in results if item.needs_rebalance),
            sum(1 for item in results if item.error is not None),
        )
        return results
