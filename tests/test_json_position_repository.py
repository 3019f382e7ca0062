from __future__ import annotations

import json
from decimal import Decimal

import pytest

from binengine.domain.exceptions import InvalidParameterError, LookupFailedError, PositionNotFoundError
from binengine.infrastructure.positions.json_position_repository import JsonPositionRepository


@pytest.mark.asyncio
async def test_reads_position_by_id_from_wrapped_document(tmp_path):
    path = tmp_path / "positions.json"
    path.write_text(
        json.dumps(
            {
                "positions": [
                    {"publicKey": "pos-1", "lbPair": "pool", "lowerBinId": 1, "upperBinId": 3, "totalBase": "2"},
                    {"publicKey": "pos-2", "lbPair": "pool", "positionBinData": [{"binId": 5, "amountX": 10}]},
                ]
            }
        ),
        encoding="utf-8",
    )
    repository = JsonPositionRepository(path)

    first = await repository.get_position(position_id="pos-1")
    second = await repository.get_position(position_id="pos-2")

    assert (first.lower_bin_id, first.upper_bin_id, first.total_base) == (1, 3, Decimal("2"))
    assert second.bins[0].amount_base == 10
    assert len(await repository.list_positions()) == 2


@pytest.mark.asyncio
async def test_reads_plain_list_document(tmp_path):
    path = tmp_path / "positions.json"
    path.write_text(json.dumps([{"position_id": "pos", "pool_id": "pool"}]), encoding="utf-8")

    position = await JsonPositionRepository(path).get_position(position_id="pos")
    assert position.pool_id == "pool"


@pytest.mark.asyncio
async def test_unknown_position(tmp_path):
    path = tmp_path / "positions.json"
    path.write_text("[]", encoding="utf-8")

    with pytest.raises(PositionNotFoundError):
        await JsonPositionRepository(path).get_position(position_id="pos")


@pytest.mark.asyncio
async def test_unreadable_or_malformed_documents(tmp_path):
    with pytest.raises(LookupFailedError):
        await JsonPositionRepository(tmp_path / "missing.json").get_position(position_id="pos")

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(LookupFailedError):
        await JsonPositionRepository(broken).get_position(position_id="pos")

    invalid = tmp_path / "invalid.json"
    invalid.write_text(json.dumps([{"pool_id": "pool"}]), encoding="utf-8")
    with pytest.raises(InvalidParameterError):
        await JsonPositionRepository(invalid).list_positions()


@pytest.mark.asyncio
async def test_malformed_record_only_fails_its_own_lookup(tmp_path):
    path = tmp_path / "positions.json"
    path.write_text(
        json.dumps(
            [
                {"position_id": "bad", "pool_id": "pool", "lower_bin_id": "not-a-number"},
                {"position_id": "good", "pool_id": "pool", "lower_bin_id": 1, "upper_bin_id": 2},
            ]
        ),
        encoding="utf-8",
    )
    repository = JsonPositionRepository(path)

    position = await repository.get_position(position_id="good")
    assert (position.lower_bin_id, position.upper_bin_id) == (1, 2)
    with pytest.raises(InvalidParameterError):
        await repository.get_position(position_id="bad")
    with pytest.raises(PositionNotFoundError):
        await repository.get_position(position_id="other")
