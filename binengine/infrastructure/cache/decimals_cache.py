from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from binengine.application.ports.asset_metadata_port import AssetMetadataPort
from binengine.domain.exceptions import InvalidParameterError, LookupFailedError
from binengine.infrastructure.cache.single_flight import SingleFlight
from binengine.infrastructure.retry import RetryPolicy, Sleep


logger = logging.getLogger(__name__)

DEFAULT_DECIMALS_TTL_SECONDS = 60 * 60


@dataclass(frozen=True)
class DecimalsCacheEntry:
    asset_id: str
    decimals: int
    cached_at: float


class DecimalsCache:
    """Per-asset decimals with TTL, request dedup and retry on rate limiting.

    Decimals never change once an asset is minted; the TTL only bounds memory.
    Failures are never cached.
    """

    def __init__(
        self,
        *,
        metadata_port: AssetMetadataPort,
        ttl_seconds: float = DEFAULT_DECIMALS_TTL_SECONDS,
        retry_policy: RetryPolicy | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ):
        self._metadata_port = metadata_port
        self._ttl_seconds = ttl_seconds
        self._retry_policy = retry_policy or RetryPolicy()
        self._clock = clock
        self._sleep = sleep
        self._entries: dict[str, DecimalsCacheEntry] = {}
        self._inflight: SingleFlight[str, int] = SingleFlight("decimals_cache")

    @property
    def size(self) -> int:
        return len(self._entries)

    def peek(self, asset_id: str) -> DecimalsCacheEntry | None:
        return self._entries.get(_normalize_asset_id(asset_id))

    def invalidate(self, asset_id: str) -> None:
        self._entries.pop(_normalize_asset_id(asset_id), None)

    def clear(self) -> None:
        self._entries.clear()

    async def get_decimals(self, asset_id: str) -> int:
        key = _normalize_asset_id(asset_id)
        cached = self._cache_get(key)
        if cached is not None:
            return cached
        return await self._inflight.run(key, lambda: self._fetch(key))

    def _cache_get(self, key: str) -> int | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.cached_at >= self._ttl_seconds:
            self._entries.pop(key, None)
            return None
        logger.debug("decimals_cache: hit asset=%s decimals=%s", key, entry.decimals)
        return entry.decimals

    async def _fetch(self, key: str) -> int:
        logger.info("decimals_cache: fetch asset=%s", key)
        decimals = await self._retry_policy.run(
            lambda: self._metadata_port.get_decimals(asset_id=key),
            description=f"decimals lookup asset={key}",
            sleep=self._sleep,
        )
        if isinstance(decimals, bool) or not isinstance(decimals, int) or decimals < 0:
            raise LookupFailedError(f"Invalid decimals {decimals!r} returned for asset {key}.")
        self._entries[key] = DecimalsCacheEntry(asset_id=key, decimals=decimals, cached_at=self._clock())
        return decimals


def _normalize_asset_id(asset_id: str) -> str:
    if not isinstance(asset_id, str) or not asset_id.strip():
        raise InvalidParameterError("asset_id must be a non-empty string.")
    return asset_id.strip()
