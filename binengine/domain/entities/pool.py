from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PoolState:
    pool_id: str
    bin_step: int
    active_bin_id: int
    base_asset_id: str
    quote_asset_id: str


@dataclass(frozen=True)
class Pool:
    pool_id: str
    bin_step: int
    base_asset_id: str
    quote_asset_id: str
    base_decimals: int
    quote_decimals: int
