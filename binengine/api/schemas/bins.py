from __future__ import annotations

from pydantic import BaseModel, Field


class BinResponse(BaseModel):
    bin_id: int
    price: str = Field(..., description="Preco bruto do bin (quote por base em unidades atomicas).")
    price_per_token: str = Field(..., description="Preco ajustado pelos decimals dos tokens.")
    liquidity_base: str
    liquidity_quote: str
    total_liquidity: str = Field(..., description="Soma simples base + quote, nao e valoracao.")
    is_active: bool


class BinWindowResponse(BaseModel):
    pool_id: str
    active_bin_id: int
    min_bin_id: int
    max_bin_id: int
    sampled: bool
    bins: list[BinResponse]


class ActiveBinResponse(BaseModel):
    pool_id: str
    bin_id: int
    price: str
    price_per_token: str
    supply: str
    amount_base: str
    amount_quote: str
    raw_amount_base: str
    raw_amount_quote: str


class BinCandleResponse(BaseModel):
    bin_id: int
    open: str
    high: str
    low: str
    close: str
    volume: str


class OptimalRangeResponse(BaseModel):
    pool_id: str
    strategy: str
    current_price: str
    min_bin_id: int
    max_bin_id: int
    min_price: str
    max_price: str
