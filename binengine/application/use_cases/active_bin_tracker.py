from __future__ import annotations

import logging
import time
from collections.abc import Callable

from binengine.application.ports.ledger_port import LedgerPort
from binengine.application.use_cases.pool_resolver import PoolResolver, normalize_pool_id
from binengine.domain.entities.bin import ActiveBin, RawBin
from binengine.domain.services.bin_math import normalize_amount, price_for_bin, price_per_token
from binengine.infrastructure.cache.single_flight import SingleFlight


logger = logging.getLogger(__name__)

DEFAULT_ACTIVE_BIN_TTL_SECONDS = 2.0


class ActiveBinTracker:
    def __init__(
        self,
        *,
        ledger_port: LedgerPort,
        pool_resolver: PoolResolver,
        ttl_seconds: float = DEFAULT_ACTIVE_BIN_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._ledger_port = ledger_port
        self._pool_resolver = pool_resolver
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._cache: dict[str, tuple[float, ActiveBin]] = {}
        self._inflight: SingleFlight[str, ActiveBin] = SingleFlight("active_bin_tracker")

    def invalidate(self, pool_id: str) -> None:
        self._cache.pop(normalize_pool_id(pool_id), None)

    async def get_active_bin(self, pool_id: str) -> ActiveBin:
        key = normalize_pool_id(pool_id)
        cached = self._cache.get(key)
        if cached is not None:
            fetched_at, active_bin = cached
            if self._clock() - fetched_at < self._ttl_seconds:
                logger.debug("active_bin_tracker: hit pool=%s bin_id=%s", key, active_bin.bin_id)
                return active_bin
        return await self._inflight.run(key, lambda: self._refresh(key))

    async def _refresh(self, pool_id: str) -> ActiveBin:
        state = await self._ledger_port.get_pool_state(pool_id=pool_id)
        pool = await self._pool_resolver.get_pool(pool_id, state=state)

        active_id = state.active_bin_id
        raw_bins = await self._ledger_port.get_bins(
            pool_id=pool_id,
            min_bin_id=active_id,
            max_bin_id=active_id,
        )
        raw = next(
            (item for item in raw_bins if item.bin_id == active_id),
            RawBin(bin_id=active_id, amount_base=0, amount_quote=0),
        )

        price = price_for_bin(active_id, pool.bin_step)
        active_bin = ActiveBin(
            bin_id=active_id,
            price=price,
            price_per_token=price_per_token(price, pool.base_decimals, pool.quote_decimals),
            supply=raw.supply,
            amount_base=normalize_amount(raw.amount_base, pool.base_decimals),
            amount_quote=normalize_amount(raw.amount_quote, pool.quote_decimals),
            raw_amount_base=raw.amount_base,
            raw_amount_quote=raw.amount_quote,
        )
        self._cache[pool_id] = (self._clock(), active_bin)
        logger.info("active_bin_tracker: refreshed pool=%s bin_id=%s price=%s", pool_id, active_id, price)
        return active_bin
