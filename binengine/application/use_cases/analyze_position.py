from __future__ import annotations

import logging

from binengine.application.use_cases.bin_range_fetcher import BinRangeFetcher
from binengine.application.use_cases.pool_resolver import PoolResolver
from binengine.domain.entities.position import Position, PositionRange
from binengine.domain.services.bin_math import price_for_bin
from binengine.domain.services.position_range import aggregate_position_totals, resolve_position_bounds


logger = logging.getLogger(__name__)


class PositionRangeAnalyzer:
    def __init__(self, *, pool_resolver: PoolResolver, bin_range_fetcher: BinRangeFetcher):
        self._pool_resolver = pool_resolver
        self._bin_range_fetcher = bin_range_fetcher

    async def analyze(self, position: Position) -> PositionRange:
        lower_bin_id, upper_bin_id = resolve_position_bounds(position)
        pool = await self._pool_resolver.get_pool(position.pool_id)

        if not position.bins:
            logger.info(
                "position_analyzer: no bin records position=%s; using position totals",
                position.position_id,
            )
        total_base, total_quote, fees_base, fees_quote = aggregate_position_totals(
            position,
            base_decimals=pool.base_decimals,
            quote_decimals=pool.quote_decimals,
        )

        bins = await self._bin_range_fetcher.get_bins_between_ids(
            position.pool_id,
            lower_bin_id,
            upper_bin_id,
        )
        return PositionRange(
            position_id=position.position_id,
            lower_bin_id=lower_bin_id,
            upper_bin_id=upper_bin_id,
            lower_price=price_for_bin(lower_bin_id, pool.bin_step),
            upper_price=price_for_bin(upper_bin_id, pool.bin_step),
            total_liquidity_base=total_base,
            total_liquidity_quote=total_quote,
            unclaimed_fees_base=fees_base,
            unclaimed_fees_quote=fees_quote,
            bins=bins,
        )
