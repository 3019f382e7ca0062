from __future__ import annotations

from decimal import Decimal
from typing import Literal

from fastapi import APIRouter, Depends, Query

from binengine.api.deps import get_bin_engine
from binengine.api.errors import to_http_exception
from binengine.api.schemas.bins import (
    ActiveBinResponse,
    BinCandleResponse,
    BinResponse,
    BinWindowResponse,
    OptimalRangeResponse,
)
from binengine.application.use_cases.bin_engine import BinEngine
from binengine.domain.entities.bin import Bin
from binengine.domain.exceptions import DomainError

router = APIRouter()


def to_bin_response(item: Bin) -> BinResponse:
    return BinResponse(
        bin_id=item.bin_id,
        price=str(item.price),
        price_per_token=str(item.price_per_token),
        liquidity_base=str(item.liquidity_base),
        liquidity_quote=str(item.liquidity_quote),
        total_liquidity=str(item.total_liquidity),
        is_active=item.is_active,
    )


def _window_response(
    *,
    pool_id: str,
    bins: list[Bin],
    engine: BinEngine,
    sample: bool,
    target: int | None,
) -> BinWindowResponse:
    active = next((item for item in bins if item.is_active), None)
    shown = engine.sample(bins, target) if sample else bins
    return BinWindowResponse(
        pool_id=pool_id,
        active_bin_id=active.bin_id if active is not None else 0,
        min_bin_id=bins[0].bin_id,
        max_bin_id=bins[-1].bin_id,
        sampled=sample,
        bins=[to_bin_response(item) for item in shown],
    )


@router.get("/v1/pools/{pool_id}/active-bin", response_model=ActiveBinResponse)
async def get_active_bin(pool_id: str, engine: BinEngine = Depends(get_bin_engine)):
    try:
        active = await engine.get_active_bin(pool_id)
    except DomainError as exc:
        raise to_http_exception(exc) from exc

    return ActiveBinResponse(
        pool_id=pool_id,
        bin_id=active.bin_id,
        price=str(active.price),
        price_per_token=str(active.price_per_token),
        supply=str(active.supply),
        amount_base=str(active.amount_base),
        amount_quote=str(active.amount_quote),
        raw_amount_base=str(active.raw_amount_base),
        raw_amount_quote=str(active.raw_amount_quote),
    )


@router.get("/v1/pools/{pool_id}/bins", response_model=BinWindowResponse)
async def get_bins_around_active(
    pool_id: str,
    radius: int = Query(50, ge=0),
    sample: bool = False,
    target: int | None = Query(None, ge=1),
    engine: BinEngine = Depends(get_bin_engine),
):
    try:
        bins = await engine.get_bins_around_active(pool_id, radius)
        return _window_response(pool_id=pool_id, bins=bins, engine=engine, sample=sample, target=target)
    except DomainError as exc:
        raise to_http_exception(exc) from exc


@router.get("/v1/pools/{pool_id}/bins/by-price", response_model=BinWindowResponse)
async def get_bins_between_prices(
    pool_id: str,
    min_price: Decimal,
    max_price: Decimal,
    per_token: bool = False,
    sample: bool = False,
    target: int | None = Query(None, ge=1),
    engine: BinEngine = Depends(get_bin_engine),
):
    try:
        bins = await engine.get_bins_between_prices(pool_id, min_price, max_price, per_token=per_token)
        return _window_response(pool_id=pool_id, bins=bins, engine=engine, sample=sample, target=target)
    except DomainError as exc:
        raise to_http_exception(exc) from exc


@router.get("/v1/pools/{pool_id}/candles", response_model=list[BinCandleResponse])
async def get_bin_candles(
    pool_id: str,
    radius: int = Query(50, ge=0),
    engine: BinEngine = Depends(get_bin_engine),
):
    try:
        bins = await engine.get_bins_around_active(pool_id, radius)
    except DomainError as exc:
        raise to_http_exception(exc) from exc

    return [
        BinCandleResponse(
            bin_id=candle.bin_id,
            open=str(candle.open),
            high=str(candle.high),
            low=str(candle.low),
            close=str(candle.close),
            volume=str(candle.volume),
        )
        for candle in engine.candles(bins)
    ]


@router.get("/v1/pools/{pool_id}/optimal-range", response_model=OptimalRangeResponse)
async def get_optimal_range(
    pool_id: str,
    strategy: Literal["narrow", "moderate", "wide"] = "moderate",
    volatility: float | None = Query(None, ge=0),
    engine: BinEngine = Depends(get_bin_engine),
):
    try:
        active, (min_bin_id, max_bin_id, min_price, max_price) = await engine.get_optimal_range(
            pool_id,
            strategy,
            volatility,
        )
    except DomainError as exc:
        raise to_http_exception(exc) from exc

    return OptimalRangeResponse(
        pool_id=pool_id,
        strategy=strategy,
        current_price=str(active.price),
        min_bin_id=min_bin_id,
        max_bin_id=max_bin_id,
        min_price=str(min_price),
        max_price=str(max_price),
    )
