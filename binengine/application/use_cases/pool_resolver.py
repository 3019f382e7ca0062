from __future__ import annotations

import asyncio
import logging

from binengine.application.ports.ledger_port import LedgerPort
from binengine.domain.entities.pool import Pool, PoolState
from binengine.domain.exceptions import InvalidParameterError
from binengine.infrastructure.cache.decimals_cache import DecimalsCache
from binengine.infrastructure.cache.single_flight import SingleFlight


logger = logging.getLogger(__name__)


def normalize_pool_id(pool_id: str) -> str:
    if not isinstance(pool_id, str) or not pool_id.strip():
        raise InvalidParameterError("pool_id must be a non-empty string.")
    return pool_id.strip()


class PoolResolver:
    """Session cache of the immutable pool facts (bin step, assets, decimals)."""

    def __init__(self, *, ledger_port: LedgerPort, decimals_cache: DecimalsCache):
        self._ledger_port = ledger_port
        self._decimals_cache = decimals_cache
        self._pools: dict[str, Pool] = {}
        self._inflight: SingleFlight[str, Pool] = SingleFlight("pool_resolver")

    def forget(self, pool_id: str) -> None:
        self._pools.pop(normalize_pool_id(pool_id), None)

    async def get_pool(self, pool_id: str, *, state: PoolState | None = None) -> Pool:
        key = normalize_pool_id(pool_id)
        pool = self._pools.get(key)
        if pool is not None:
            return pool
        return await self._inflight.run(key, lambda: self._load(key, state))

    async def _load(self, pool_id: str, state: PoolState | None) -> Pool:
        if state is None:
            state = await self._ledger_port.get_pool_state(pool_id=pool_id)

        asset_ids = list(dict.fromkeys([state.base_asset_id, state.quote_asset_id]))
        resolved = await asyncio.gather(
            *(self._decimals_cache.get_decimals(asset_id) for asset_id in asset_ids)
        )
        decimals_by_asset = dict(zip(asset_ids, resolved))

        pool = Pool(
            pool_id=pool_id,
            bin_step=state.bin_step,
            base_asset_id=state.base_asset_id,
            quote_asset_id=state.quote_asset_id,
            base_decimals=decimals_by_asset[state.base_asset_id],
            quote_decimals=decimals_by_asset[state.quote_asset_id],
        )
        self._pools[pool_id] = pool
        logger.info(
            "pool_resolver: resolved pool=%s bin_step=%s base_decimals=%s quote_decimals=%s",
            pool_id,
            pool.bin_step,
            pool.base_decimals,
            pool.quote_decimals,
        )
        return pool
