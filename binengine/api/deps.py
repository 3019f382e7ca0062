from __future__ import annotations

from functools import lru_cache

from binengine.application.use_cases.bin_engine import BinEngine
from binengine.infrastructure.clients.solana_rpc_client import SolanaRpcClient, SolanaRpcClientSettings
from binengine.infrastructure.positions.json_position_repository import JsonPositionRepository
from binengine.infrastructure.retry import RetryPolicy
from binengine.shared.config import get_settings


@lru_cache(maxsize=1)
def _get_solana_rpc_client() -> SolanaRpcClient:
    settings = get_settings()
    return SolanaRpcClient(
        SolanaRpcClientSettings(
            rpc_url=settings.solana_rpc_url,
            timeout_seconds=settings.solana_rpc_timeout_seconds,
            program_id=settings.dlmm_program_id,
        )
    )


def _get_position_repository() -> JsonPositionRepository | None:
    settings = get_settings()
    if not settings.positions_json_path:
        return None
    return JsonPositionRepository(settings.positions_json_path)


# One engine per process: its caches must outlive a single request.
@lru_cache(maxsize=1)
def get_bin_engine() -> BinEngine:
    settings = get_settings()
    rpc_client = _get_solana_rpc_client()
    return BinEngine(
        ledger_port=rpc_client,
        metadata_port=rpc_client,
        position_port=_get_position_repository(),
        decimals_ttl_seconds=settings.decimals_cache_ttl_seconds,
        active_bin_ttl_seconds=settings.active_bin_cache_ttl_seconds,
        retry_policy=RetryPolicy(
            max_attempts=settings.lookup_max_attempts,
            base_delay_seconds=settings.lookup_backoff_base_seconds,
            max_delay_seconds=settings.lookup_backoff_max_seconds,
        ),
        max_bin_window=settings.max_bin_window,
        sample_target=settings.bin_sample_target,
        rebalance_threshold=settings.rebalance_threshold,
    )


async def close_clients() -> None:
    if _get_solana_rpc_client.cache_info().currsize:
        await _get_solana_rpc_client().aclose()
