from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from binengine.api.deps import get_bin_engine
from binengine.api.errors import to_http_exception
from binengine.api.routers.pools import to_bin_response
from binengine.api.schemas.positions import (
    PositionHealthResponse,
    PositionRangeResponse,
    RebalanceCheckRequest,
    RebalanceResponse,
)
from binengine.application.use_cases.bin_engine import BinEngine
from binengine.domain.exceptions import DomainError
from binengine.domain.services.position_parsing import parse_position

router = APIRouter()


@router.get("/v1/positions/{position_id}/range", response_model=PositionRangeResponse)
async def get_position_range(position_id: str, engine: BinEngine = Depends(get_bin_engine)):
    try:
        result = await engine.analyze_position(position_id)
    except DomainError as exc:
        raise to_http_exception(exc) from exc

    return PositionRangeResponse(
        position_id=result.position_id,
        lower_bin_id=result.lower_bin_id,
        upper_bin_id=result.upper_bin_id,
        lower_price=str(result.lower_price),
        upper_price=str(result.upper_price),
        total_liquidity_base=str(result.total_liquidity_base),
        total_liquidity_quote=str(result.total_liquidity_quote),
        unclaimed_fees_base=str(result.unclaimed_fees_base),
        unclaimed_fees_quote=str(result.unclaimed_fees_quote),
        bins=[to_bin_response(item) for item in result.bins],
    )


@router.get("/v1/positions/{position_id}/rebalance", response_model=RebalanceResponse)
async def get_position_rebalance(
    position_id: str,
    threshold: float | None = Query(None, ge=0, le=1),
    engine: BinEngine = Depends(get_bin_engine),
):
    try:
        result = await engine.should_rebalance(position_id, threshold)
    except DomainError as exc:
        raise to_http_exception(exc) from exc

    return RebalanceResponse(
        position_id=position_id,
        should_rebalance=result.should_rebalance,
        reason=result.reason,
        current_price=str(result.current_price),
        active_bin_id=result.active_bin_id,
        lower_bin_id=result.lower_bin_id,
        upper_bin_id=result.upper_bin_id,
    )


@router.post("/v1/positions/rebalance-check", response_model=list[PositionHealthResponse])
async def check_positions(req: RebalanceCheckRequest, engine: BinEngine = Depends(get_bin_engine)):
    try:
        positions = [parse_position(payload) for payload in req.positions]
        for position_id in req.position_ids:
            positions.append(await engine.load_position(position_id))
        results = await engine.monitor_positions(positions, req.threshold_fraction)
    except DomainError as exc:
        raise to_http_exception(exc) from exc

    return [
        PositionHealthResponse(
            position_id=item.position_id,
            needs_rebalance=item.needs_rebalance,
            last_check=item.last_check.isoformat(),
            current_price=str(item.current_price) if item.current_price is not None else None,
            reason=item.reason,
            error=item.error,
        )
        for item in results
    ]
