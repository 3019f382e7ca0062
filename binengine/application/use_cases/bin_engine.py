from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from decimal import Decimal

from binengine.application.ports.asset_metadata_port import AssetMetadataPort
from binengine.application.ports.ledger_port import LedgerPort
from binengine.application.ports.position_port import PositionPort
from binengine.application.use_cases.active_bin_tracker import DEFAULT_ACTIVE_BIN_TTL_SECONDS, ActiveBinTracker
from binengine.application.use_cases.analyze_position import PositionRangeAnalyzer
from binengine.application.use_cases.bin_range_fetcher import DEFAULT_MAX_BIN_WINDOW, BinRangeFetcher
from binengine.application.use_cases.pool_resolver import PoolResolver
from binengine.application.use_cases.position_monitor import PositionMonitor, RebalanceCallback
from binengine.application.use_cases.should_rebalance import RebalanceAdvisor
from binengine.domain.entities.bin import ActiveBin, Bin, BinCandle
from binengine.domain.entities.position import Position, PositionHealth, PositionRange, RebalanceResult
from binengine.domain.exceptions import InvalidParameterError
from binengine.domain.services.bin_range import optimal_bin_range
from binengine.domain.services.bin_sampling import DEFAULT_SAMPLE_TARGET, bins_to_candles, sample_bins
from binengine.domain.services.rebalance import DEFAULT_REBALANCE_THRESHOLD
from binengine.infrastructure.cache.decimals_cache import DEFAULT_DECIMALS_TTL_SECONDS, DecimalsCache
from binengine.infrastructure.retry import RetryPolicy, Sleep


class BinEngine:
    """In-process entry point wiring the caches and use cases over the three ports."""

    def __init__(
        self,
        *,
        ledger_port: LedgerPort,
        metadata_port: AssetMetadataPort,
        position_port: PositionPort | None = None,
        decimals_ttl_seconds: float = DEFAULT_DECIMALS_TTL_SECONDS,
        active_bin_ttl_seconds: float = DEFAULT_ACTIVE_BIN_TTL_SECONDS,
        retry_policy: RetryPolicy | None = None,
        max_bin_window: int = DEFAULT_MAX_BIN_WINDOW,
        sample_target: int = DEFAULT_SAMPLE_TARGET,
        rebalance_threshold: float = DEFAULT_REBALANCE_THRESHOLD,
        clock: Callable[[], float] = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ):
        self._position_port = position_port
        self._sample_target = sample_target
        self._rebalance_threshold = rebalance_threshold

        self.decimals_cache = DecimalsCache(
            metadata_port=metadata_port,
            ttl_seconds=decimals_ttl_seconds,
            retry_policy=retry_policy,
            clock=clock,
            sleep=sleep,
        )
        self.pool_resolver = PoolResolver(ledger_port=ledger_port, decimals_cache=self.decimals_cache)
        self.active_bin_tracker = ActiveBinTracker(
            ledger_port=ledger_port,
            pool_resolver=self.pool_resolver,
            ttl_seconds=active_bin_ttl_seconds,
            clock=clock,
        )
        self.bin_range_fetcher = BinRangeFetcher(
            ledger_port=ledger_port,
            pool_resolver=self.pool_resolver,
            active_bin_tracker=self.active_bin_tracker,
            max_bin_window=max_bin_window,
        )
        self.position_analyzer = PositionRangeAnalyzer(
            pool_resolver=self.pool_resolver,
            bin_range_fetcher=self.bin_range_fetcher,
        )
        self.rebalance_advisor = RebalanceAdvisor(
            active_bin_tracker=self.active_bin_tracker,
            position_analyzer=self.position_analyzer,
        )

    async def get_active_bin(self, pool_id: str) -> ActiveBin:
        return await self.active_bin_tracker.get_active_bin(pool_id)

    async def get_bins_around_active(self, pool_id: str, radius: int) -> list[Bin]:
        return await self.bin_range_fetcher.get_bins_around_active(pool_id, radius)

    async def get_bins_between_prices(
        self,
        pool_id: str,
        min_price: Decimal | float | str,
        max_price: Decimal | float | str,
        *,
        per_token: bool = False,
    ) -> list[Bin]:
        return await self.bin_range_fetcher.get_bins_between_prices(
            pool_id,
            min_price,
            max_price,
            per_token=per_token,
        )

    async def get_bins_between_ids(self, pool_id: str, min_bin_id: int, max_bin_id: int) -> list[Bin]:
        return await self.bin_range_fetcher.get_bins_between_ids(pool_id, min_bin_id, max_bin_id)

    def sample(self, bins: list[Bin], target_count: int | None = None) -> list[Bin]:
        return sample_bins(bins, self._sample_target if target_count is None else target_count)

    def candles(self, bins: list[Bin]) -> list[BinCandle]:
        return bins_to_candles(bins)

    async def get_optimal_range(
        self,
        pool_id: str,
        strategy: str,
        volatility: float | None = None,
    ) -> tuple[ActiveBin, tuple[int, int, Decimal, Decimal]]:
        """Suggested range for a new position centred on the current active bin price."""
        active = await self.active_bin_tracker.get_active_bin(pool_id)
        pool = await self.pool_resolver.get_pool(pool_id)
        suggested = optimal_bin_range(
            current_price=active.price,
            bin_step=pool.bin_step,
            strategy=strategy,
            volatility=volatility,
        )
        return active, suggested

    async def load_position(self, position_id: str) -> Position:
        if self._position_port is None:
            raise InvalidParameterError("No position source configured; pass a Position instead of an id.")
        return await self._position_port.get_position(position_id=position_id)

    async def analyze_position(self, position: Position | str) -> PositionRange:
        resolved = await self._resolve_position(position)
        return await self.position_analyzer.analyze(resolved)

    async def should_rebalance(
        self,
        position: Position | str,
        threshold_fraction: float | None = None,
    ) -> RebalanceResult:
        resolved = await self._resolve_position(position)
        return await self.rebalance_advisor.should_rebalance(resolved, self._threshold(threshold_fraction))

    async def monitor_positions(
        self,
        positions: list[Position],
        threshold_fraction: float | None = None,
        *,
        on_rebalance_needed: RebalanceCallback | None = None,
    ) -> list[PositionHealth]:
        monitor = PositionMonitor(advisor=self.rebalance_advisor, on_rebalance_needed=on_rebalance_needed)
        return await monitor.check(positions, self._threshold(threshold_fraction))

    async def _resolve_position(self, position: Position | str) -> Position:
        if isinstance(position, Position):
            return position
        return await self.load_position(position)

    def _threshold(self, threshold_fraction: float | None) -> float:
        return self._rebalance_threshold if threshold_fraction is None else threshold_fraction
