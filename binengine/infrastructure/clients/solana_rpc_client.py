from __future__ import annotations

import base64
import hashlib
import itertools
import logging
import struct
from dataclasses import dataclass

import base58
import httpx
from solders.pubkey import Pubkey

from binengine.domain.entities.bin import RawBin
from binengine.domain.entities.pool import PoolState
from binengine.domain.services.bin_math import REFERENCE_BIN_ID
from binengine.domain.exceptions import (
    InvalidParameterError,
    InvalidPoolAccountError,
    InvalidPoolError,
    LookupFailedError,
    RateLimitedError,
)


logger = logging.getLogger(__name__)


DLMM_PROGRAM_ID = "LBUZKhRxPF3XUpBCjp4YzTKgLccjZhTSDM9YuVaPwxo"

# Anchor account discriminator: sha256("account:<Name>")[:8].
LB_PAIR_DISCRIMINATOR = hashlib.sha256(b"account:LbPair").digest()[:8]
BIN_ARRAY_DISCRIMINATOR = hashlib.sha256(b"account:BinArray").digest()[:8]

LB_PAIR_MIN_SIZE = 216
LB_PAIR_ACTIVE_ID_OFFSET = 76
LB_PAIR_BIN_STEP_OFFSET = 80
LB_PAIR_MINT_X_OFFSET = 88
LB_PAIR_MINT_Y_OFFSET = 120

BINS_PER_ARRAY = 70
BIN_ARRAY_INDEX_OFFSET = 8
BIN_ARRAY_BINS_OFFSET = 56
BIN_SIZE = 144
BIN_ARRAY_SIZE = BIN_ARRAY_BINS_OFFSET + BINS_PER_ARRAY * BIN_SIZE
BIN_ARRAY_SEED = b"bin_array"

MAX_ACCOUNTS_PER_REQUEST = 100

RATE_LIMIT_RPC_CODES = {429, -32005}


@dataclass(frozen=True)
class SolanaRpcClientSettings:
    rpc_url: str
    timeout_seconds: float
    program_id: str = DLMM_PROGRAM_ID


def bin_array_index(bin_id: int) -> int:
    """Index of the bin array holding an on-chain bin id."""
    return bin_id // BINS_PER_ARRAY


def bin_array_address(pool_id: str, index: int, *, program_id: str = DLMM_PROGRAM_ID) -> str:
    try:
        lb_pair = Pubkey.from_string(pool_id)
    except ValueError as exc:
        raise InvalidParameterError(f"Pool id {pool_id} is not a valid account address.") from exc
    address, _ = Pubkey.find_program_address(
        [BIN_ARRAY_SEED, bytes(lb_pair), struct.pack("<q", index)],
        Pubkey.from_string(program_id),
    )
    return str(address)


class SolanaRpcClient:
    """Read-only JSON-RPC adapter for DLMM pools, bin arrays and token mints.

    Implements both the ledger port and the asset metadata port.
    """

    def __init__(self, settings: SolanaRpcClientSettings, *, http_client: httpx.AsyncClient | None = None):
        self._settings = settings
        self._http_client = http_client
        self._owns_client = http_client is None
        self._request_ids = itertools.count(1)

    async def aclose(self) -> None:
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    async def get_decimals(self, *, asset_id: str) -> int:
        result = await self._post_rpc(
            "getAccountInfo",
            [asset_id, {"encoding": "jsonParsed"}],
        )
        value = (result or {}).get("value")
        if value is None:
            raise LookupFailedError(f"Mint account {asset_id} not found.")

        data = value.get("data")
        parsed = data.get("parsed") if isinstance(data, dict) else None
        info = (parsed or {}).get("info") or {}
        decimals = info.get("decimals")
        if decimals is None:
            raise LookupFailedError(f"Account {asset_id} is not a token mint.")
        return int(decimals)

    async def get_pool_state(self, *, pool_id: str) -> PoolState:
        result = await self._post_rpc(
            "getAccountInfo",
            [pool_id, {"encoding": "base64"}],
        )
        value = (result or {}).get("value")
        if value is None:
            raise InvalidPoolError(f"Pool {pool_id} not found.")

        owner = value.get("owner")
        if owner != self._settings.program_id:
            raise InvalidPoolAccountError(
                f"Pool {pool_id} is owned by {owner}, expected {self._settings.program_id}."
            )
        state = decode_lb_pair(pool_id, _decode_account_data(pool_id, value.get("data")))
        logger.info(
            "solana_rpc_client: pool_state pool=%s active_bin_id=%s bin_step=%s",
            pool_id,
            state.active_bin_id,
            state.bin_step,
        )
        return state

    async def get_bins(self, *, pool_id: str, min_bin_id: int, max_bin_id: int) -> list[RawBin]:
        if min_bin_id > max_bin_id:
            return []

        first_index = bin_array_index(min_bin_id - REFERENCE_BIN_ID)
        last_index = bin_array_index(max_bin_id - REFERENCE_BIN_ID)
        addresses = [
            bin_array_address(pool_id, index, program_id=self._settings.program_id)
            for index in range(first_index, last_index + 1)
        ]

        bins: list[RawBin] = []
        arrays_read = 0
        for start in range(0, len(addresses), MAX_ACCOUNTS_PER_REQUEST):
            chunk = addresses[start:start + MAX_ACCOUNTS_PER_REQUEST]
            result = await self._post_rpc("getMultipleAccounts", [chunk, {"encoding": "base64"}])
            for address, account in zip(chunk, (result or {}).get("value") or []):
                # Uninitialized bin array: every bin in it is empty.
                if account is None:
                    continue
                arrays_read += 1
                for raw_bin in decode_bin_array(address, _decode_account_data(address, account.get("data"))):
                    if min_bin_id <= raw_bin.bin_id <= max_bin_id and (raw_bin.amount_base or raw_bin.amount_quote):
                        bins.append(raw_bin)

        bins.sort(key=lambda item: item.bin_id)
        logger.info(
            "solana_rpc_client: bins pool=%s window=%s-%s arrays=%s/%s bins=%s",
            pool_id,
            min_bin_id,
            max_bin_id,
            arrays_read,
            len(addresses),
            len(bins),
        )
        return bins

    async def _post_rpc(self, method: str, params: list):
        body = {"jsonrpc": "2.0", "id": next(self._request_ids), "method": method, "params": params}
        try:
            response = await self._client().post(self._settings.rpc_url, json=body)
        except httpx.HTTPError as exc:
            raise LookupFailedError(f"RPC {method} failed: {exc}") from exc

        if response.status_code == 429:
            raise RateLimitedError(f"RPC {method} rate limited: 429 Too Many Requests")
        try:
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise LookupFailedError(f"RPC {method} failed: {exc}") from exc

        error = payload.get("error")
        if error:
            message = str(error.get("message", error)) if isinstance(error, dict) else str(error)
            code = error.get("code") if isinstance(error, dict) else None
            if code in RATE_LIMIT_RPC_CODES or "too many requests" in message.lower():
                raise RateLimitedError(f"RPC {method} rate limited: {message}")
            if code == -32602:
                raise InvalidParameterError(f"RPC {method} rejected params: {message}")
            raise LookupFailedError(f"RPC {method} error: {message}")
        return payload.get("result")

    def _client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._settings.timeout_seconds)
            self._owns_client = True
        return self._http_client


def decode_lb_pair(pool_id: str, data: bytes) -> PoolState:
    if len(data) < LB_PAIR_MIN_SIZE:
        raise InvalidPoolAccountError(f"Pool {pool_id} account is {len(data)} bytes, too small for an LbPair.")
    if data[:8] != LB_PAIR_DISCRIMINATOR:
        raise InvalidPoolAccountError(f"Pool {pool_id} account has an unexpected discriminator.")

    # On-chain bin ids are centred on 0, engine ids on REFERENCE_BIN_ID.
    active_id = REFERENCE_BIN_ID + struct.unpack_from("<i", data, LB_PAIR_ACTIVE_ID_OFFSET)[0]
    bin_step = struct.unpack_from("<H", data, LB_PAIR_BIN_STEP_OFFSET)[0]
    if bin_step <= 0:
        raise InvalidPoolAccountError(f"Pool {pool_id} has bin_step {bin_step}.")

    mint_x = data[LB_PAIR_MINT_X_OFFSET:LB_PAIR_MINT_X_OFFSET + 32]
    mint_y = data[LB_PAIR_MINT_Y_OFFSET:LB_PAIR_MINT_Y_OFFSET + 32]
    return PoolState(
        pool_id=pool_id,
        bin_step=bin_step,
        active_bin_id=active_id,
        base_asset_id=base58.b58encode(mint_x).decode("ascii"),
        quote_asset_id=base58.b58encode(mint_y).decode("ascii"),
    )


def decode_bin_array(account_id: str, data: bytes) -> list[RawBin]:
    if len(data) < BIN_ARRAY_SIZE or data[:8] != BIN_ARRAY_DISCRIMINATOR:
        raise InvalidPoolAccountError(f"Account {account_id} is not a DLMM bin array.")

    index = struct.unpack_from("<q", data, BIN_ARRAY_INDEX_OFFSET)[0]
    first_bin_id = REFERENCE_BIN_ID + index * BINS_PER_ARRAY
    bins: list[RawBin] = []
    for position in range(BINS_PER_ARRAY):
        offset = BIN_ARRAY_BINS_OFFSET + position * BIN_SIZE
        amount_x, amount_y = struct.unpack_from("<QQ", data, offset)
        supply_lo, supply_hi = struct.unpack_from("<QQ", data, offset + 32)
        bins.append(
            RawBin(
                bin_id=first_bin_id + position,
                amount_base=amount_x,
                amount_quote=amount_y,
                supply=supply_lo | (supply_hi << 64),
            )
        )
    return bins


def _decode_account_data(account_id: str, data) -> bytes:
    if not isinstance(data, list) or len(data) < 2 or data[1] != "base64":
        raise InvalidPoolAccountError(f"Account {account_id} returned data in an unexpected encoding.")
    try:
        return base64.b64decode(data[0])
    except ValueError as exc:
        raise InvalidPoolAccountError(f"Account {account_id} data is not valid base64.") from exc
