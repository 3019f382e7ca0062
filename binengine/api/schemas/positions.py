from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from binengine.api.schemas.bins import BinResponse


class PositionRangeResponse(BaseModel):
    position_id: str
    lower_bin_id: int
    upper_bin_id: int
    lower_price: str
    upper_price: str
    total_liquidity_base: str
    total_liquidity_quote: str
    unclaimed_fees_base: str
    unclaimed_fees_quote: str
    bins: list[BinResponse]


class RebalanceResponse(BaseModel):
    position_id: str
    should_rebalance: bool
    reason: str | None = None
    current_price: str
    active_bin_id: int
    lower_bin_id: int
    upper_bin_id: int


class RebalanceCheckRequest(BaseModel):
    positions: list[dict[str, Any]] = Field(
        default_factory=list,
        description="Posicoes no formato de origem (camelCase ou snake_case).",
    )
    position_ids: list[str] = Field(default_factory=list)
    threshold_fraction: float | None = Field(None, ge=0, le=1)


class PositionHealthResponse(BaseModel):
    position_id: str
    needs_rebalance: bool
    last_check: str
    current_price: str | None = None
    reason: str | None = None
    error: str | None = None
