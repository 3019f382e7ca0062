from __future__ import annotations

import base64
import json
import struct

from decimal import Decimal

import base58
import httpx
import pytest

from binengine.domain.exceptions import (
    InvalidPoolAccountError,
    InvalidPoolError,
    LookupFailedError,
    InvalidParameterError,
    RateLimitedError,
)
from binengine.domain.services.bin_math import REFERENCE_BIN_ID, price_for_bin
from binengine.infrastructure.clients.solana_rpc_client import (
    BIN_ARRAY_BINS_OFFSET,
    BIN_ARRAY_DISCRIMINATOR,
    BIN_ARRAY_SIZE,
    BIN_SIZE,
    DLMM_PROGRAM_ID,
    LB_PAIR_DISCRIMINATOR,
    LB_PAIR_MIN_SIZE,
    SolanaRpcClient,
    SolanaRpcClientSettings,
    bin_array_address,
    bin_array_index,
)

POOL_ID = base58.b58encode(bytes(range(200, 232))).decode("ascii")
ACTIVE_ON_CHAIN = -1000
MINT_X = bytes(range(1, 33))
MINT_Y = bytes(range(101, 133))


def _lb_pair_bytes(*, active_id: int = ACTIVE_ON_CHAIN, bin_step: int = 25, discriminator: bytes = LB_PAIR_DISCRIMINATOR) -> bytes:
    data = bytearray(LB_PAIR_MIN_SIZE)
    data[:8] = discriminator
    struct.pack_into("<i", data, 76, active_id)
    struct.pack_into("<H", data, 80, bin_step)
    data[88:120] = MINT_X
    data[120:152] = MINT_Y
    return bytes(data)


def _bin_array_bytes(index: int, amounts: dict[int, tuple[int, int, int]]) -> bytes:
    data = bytearray(BIN_ARRAY_SIZE)
    data[:8] = BIN_ARRAY_DISCRIMINATOR
    struct.pack_into("<q", data, 8, index)
    for position, (amount_x, amount_y, supply) in amounts.items():
        offset = BIN_ARRAY_BINS_OFFSET + position * BIN_SIZE
        struct.pack_into("<QQ", data, offset, amount_x, amount_y)
        struct.pack_into("<QQ", data, offset + 32, supply & (2**64 - 1), supply >> 64)
    return bytes(data)


def _account(data: bytes, owner: str = DLMM_PROGRAM_ID) -> dict:
    return {"data": [base64.b64encode(data).decode("ascii"), "base64"], "owner": owner}


def _client(handler) -> SolanaRpcClient:
    return SolanaRpcClient(
        SolanaRpcClientSettings(rpc_url="https://rpc.test", timeout_seconds=5),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def _result(request: httpx.Request, result) -> httpx.Response:
    body = json.loads(request.content)
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})


@pytest.mark.asyncio
async def test_get_pool_state_decodes_lb_pair():
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert body["method"] == "getAccountInfo"
        assert body["params"][0] == POOL_ID
        return _result(request, {"value": _account(_lb_pair_bytes())})

    state = await _client(handler).get_pool_state(pool_id=POOL_ID)

    assert state.pool_id == POOL_ID
    assert state.active_bin_id == REFERENCE_BIN_ID + ACTIVE_ON_CHAIN
    assert state.bin_step == 25
    assert state.base_asset_id == base58.b58encode(MINT_X).decode("ascii")
    assert state.quote_asset_id == base58.b58encode(MINT_Y).decode("ascii")


@pytest.mark.asyncio
async def test_active_id_is_moved_to_engine_bin_ids():
    def handler(request: httpx.Request) -> httpx.Response:
        return _result(request, {"value": _account(_lb_pair_bytes(active_id=-1234))})

    state = await _client(handler).get_pool_state(pool_id=POOL_ID)
    assert state.active_bin_id == REFERENCE_BIN_ID - 1234


@pytest.mark.asyncio
async def test_decoded_pool_is_priced_like_the_on_chain_bin():
    def handler(request: httpx.Request) -> httpx.Response:
        return _result(request, {"value": _account(_lb_pair_bytes())})

    state = await _client(handler).get_pool_state(pool_id=POOL_ID)

    price = price_for_bin(state.active_bin_id, state.bin_step)
    assert abs(price - Decimal("0.08234148740757744")) < Decimal("1e-12")
    assert price_for_bin(REFERENCE_BIN_ID, state.bin_step) == Decimal(1)


@pytest.mark.asyncio
async def test_missing_pool_account_is_invalid_pool():
    def handler(request: httpx.Request) -> httpx.Response:
        return _result(request, {"value": None})

    with pytest.raises(InvalidPoolError) as exc_info:
        await _client(handler).get_pool_state(pool_id=POOL_ID)
    assert not isinstance(exc_info.value, InvalidPoolAccountError)
    assert POOL_ID in str(exc_info.value)


@pytest.mark.parametrize(
    "account",
    [
        _account(_lb_pair_bytes(discriminator=b"\x00" * 8)),
        _account(_lb_pair_bytes()[:100]),
        _account(_lb_pair_bytes(), owner="11111111111111111111111111111111"),
        _account(_lb_pair_bytes(bin_step=0)),
        {"data": ["not-json-parsed"], "owner": DLMM_PROGRAM_ID},
    ],
)
@pytest.mark.asyncio
async def test_unparseable_pool_account(account):
    def handler(request: httpx.Request) -> httpx.Response:
        return _result(request, {"value": account})

    with pytest.raises(InvalidPoolAccountError):
        await _client(handler).get_pool_state(pool_id=POOL_ID)


@pytest.mark.asyncio
async def test_get_decimals_reads_parsed_mint():
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert body["params"][1] == {"encoding": "jsonParsed"}
        return _result(
            request,
            {"value": {"data": {"parsed": {"type": "mint", "info": {"decimals": 9}}, "program": "spl-token"}}},
        )

    assert await _client(handler).get_decimals(asset_id="mint") == 9


@pytest.mark.asyncio
async def test_get_decimals_of_non_mint_fails():
    def handler(request: httpx.Request) -> httpx.Response:
        return _result(request, {"value": {"data": ["AAAA", "base64"]}})

    with pytest.raises(LookupFailedError):
        await _client(handler).get_decimals(asset_id="not-a-mint")


@pytest.mark.asyncio
async def test_http_429_is_rate_limited():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, text="Too Many Requests")

    with pytest.raises(RateLimitedError):
        await _client(handler).get_decimals(asset_id="mint")


@pytest.mark.asyncio
async def test_rpc_error_mentioning_too_many_requests_is_rate_limited():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": "Too Many Requests"}})

    with pytest.raises(RateLimitedError):
        await _client(handler).get_pool_state(pool_id=POOL_ID)


@pytest.mark.asyncio
async def test_other_failures_are_lookup_failures():
    def rpc_error(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": "node is behind"}})

    def server_error(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="unavailable")

    def unreachable(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    for handler in (rpc_error, server_error, unreachable):
        with pytest.raises(LookupFailedError) as exc_info:
            await _client(handler).get_pool_state(pool_id=POOL_ID)
        assert not isinstance(exc_info.value, RateLimitedError)


@pytest.mark.asyncio
async def test_get_bins_reads_only_the_bin_arrays_in_window():
    active = REFERENCE_BIN_ID
    present = _bin_array_bytes(0, {0: (5_000, 7_000, 2**64 + 3), 30: (1, 1, 1)})
    expected_addresses = [bin_array_address(POOL_ID, -1), bin_array_address(POOL_ID, 0)]
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        requests.append(body)
        # Index -1 was never initialized on chain.
        return _result(request, {"context": {"slot": 1}, "value": [None, _account(present)]})

    bins = await _client(handler).get_bins(pool_id=POOL_ID, min_bin_id=active - 1, max_bin_id=active + 1)

    assert len(requests) == 1
    assert requests[0]["method"] == "getMultipleAccounts"
    assert requests[0]["params"] == [expected_addresses, {"encoding": "base64"}]
    assert len(bins) == 1
    assert bins[0].bin_id == active
    assert (bins[0].amount_base, bins[0].amount_quote) == (5_000, 7_000)
    assert bins[0].supply == 2**64 + 3


@pytest.mark.asyncio
async def test_get_bins_maps_array_ids_back_to_engine_ids():
    array = _bin_array_bytes(-15, {49: (1, 0, 1)})

    def handler(request: httpx.Request) -> httpx.Response:
        return _result(request, {"value": [_account(array)]})

    bin_id = REFERENCE_BIN_ID + ACTIVE_ON_CHAIN - 1
    bins = await _client(handler).get_bins(pool_id=POOL_ID, min_bin_id=bin_id, max_bin_id=bin_id)

    assert [item.bin_id for item in bins] == [bin_id]


def test_bin_array_addresses_depend_on_pool_and_index():
    other_pool = base58.b58encode(bytes(range(1, 33))).decode("ascii")

    assert bin_array_address(POOL_ID, 0) == bin_array_address(POOL_ID, 0)
    assert bin_array_address(POOL_ID, 0) != bin_array_address(POOL_ID, -1)
    assert bin_array_address(POOL_ID, 0) != bin_array_address(other_pool, 0)
    with pytest.raises(InvalidParameterError):
        bin_array_address("not-an-address", 0)


@pytest.mark.asyncio
async def test_empty_window_does_no_io():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("unexpected request")

    assert await _client(handler).get_bins(pool_id=POOL_ID, min_bin_id=10, max_bin_id=9) == []


def test_bin_array_index_floors_negative_ids():
    assert bin_array_index(0) == 0
    assert bin_array_index(69) == 0
    assert bin_array_index(70) == 1
    assert bin_array_index(-1) == -1
    assert bin_array_index(-70) == -1
    assert bin_array_index(-71) == -2
