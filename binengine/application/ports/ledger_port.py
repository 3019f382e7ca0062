from __future__ import annotations

from typing import Protocol

from binengine.domain.entities.bin import RawBin
from binengine.domain.entities.pool import PoolState


class LedgerPort(Protocol):
    async def get_pool_state(self, *, pool_id: str) -> PoolState:
        ...

    async def get_bins(self, *, pool_id: str, min_bin_id: int, max_bin_id: int) -> list[RawBin]:
        ...
