from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


load_dotenv()


def _env(name: str, default: str | None = None) -> str | None:
    return os.getenv(name, default)


@dataclass(frozen=True)
class Settings:
    solana_rpc_url: str
    solana_rpc_timeout_seconds: float
    dlmm_program_id: str
    decimals_cache_ttl_seconds: float
    active_bin_cache_ttl_seconds: float
    lookup_max_attempts: int
    lookup_backoff_base_seconds: float
    lookup_backoff_max_seconds: float
    bin_sample_target: int
    max_bin_window: int
    rebalance_threshold: float
    positions_json_path: str


def get_settings() -> Settings:
    return Settings(
        solana_rpc_url=_env("SOLANA_RPC_URL", "https://api.mainnet-beta.solana.com"),
        solana_rpc_timeout_seconds=float(_env("SOLANA_RPC_TIMEOUT_SECONDS", "10")),
        dlmm_program_id=_env("DLMM_PROGRAM_ID", "LBUZKhRxPF3XUpBCjp4YzTKgLccjZhTSDM9YuVaPwxo"),
        decimals_cache_ttl_seconds=float(_env("DECIMALS_CACHE_TTL_SECONDS", "3600")),
        active_bin_cache_ttl_seconds=float(_env("ACTIVE_BIN_CACHE_TTL_SECONDS", "2")),
        lookup_max_attempts=int(_env("LOOKUP_MAX_ATTEMPTS", "3")),
        lookup_backoff_base_seconds=float(_env("LOOKUP_BACKOFF_BASE_SECONDS", "1")),
        lookup_backoff_max_seconds=float(_env("LOOKUP_BACKOFF_MAX_SECONDS", "5")),
        bin_sample_target=int(_env("BIN_SAMPLE_TARGET", "70")),
        max_bin_window=int(_env("MAX_BIN_WINDOW", "1400")),
        rebalance_threshold=float(_env("REBALANCE_THRESHOLD", "0.1")),
        positions_json_path=_env("POSITIONS_JSON_PATH", ""),
    )
