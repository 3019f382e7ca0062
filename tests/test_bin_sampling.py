from __future__ import annotations

from decimal import Decimal

import pytest

from binengine.domain.entities.bin import Bin
from binengine.domain.exceptions import InvalidParameterError
from binengine.domain.services.bin_sampling import bins_to_candles, sample_bins


def _bin(bin_id: int, liquidity: str = "0", *, is_active: bool = False) -> Bin:
    return Bin.build(
        bin_id=bin_id,
        price=Decimal(bin_id + 1),
        price_per_token=Decimal(bin_id + 1),
        liquidity_base=Decimal(liquidity),
        liquidity_quote=Decimal("0"),
        is_active=is_active,
    )


def test_total_liquidity_is_plain_sum():
    item = Bin.build(
        bin_id=1,
        price=Decimal("1"),
        price_per_token=Decimal("1"),
        liquidity_base=Decimal("2.5"),
        liquidity_quote=Decimal("40"),
        is_active=False,
    )
    assert item.total_liquidity == Decimal("42.5")


def test_small_input_is_returned_unchanged():
    bins = [_bin(i, "1") for i in range(70)]
    assert sample_bins(bins, 70) == bins


def test_keeps_every_significant_bin_and_fills_with_empty():
    bins = [_bin(i, "5" if i % 20 == 0 else "0") for i in range(200)]

    sampled = sample_bins(bins, 70)

    assert len(sampled) == 70
    significant_ids = {item.bin_id for item in bins if item.total_liquidity > 0}
    assert significant_ids <= {item.bin_id for item in sampled}
    assert [item.bin_id for item in sampled] == sorted(item.bin_id for item in sampled)


def test_strides_significant_bins_when_they_exceed_target():
    bins = [_bin(i, "1") for i in range(300)]

    sampled = sample_bins(bins, 70)

    assert len(sampled) == 70
    assert sampled[0].bin_id == 0
    assert sampled[1].bin_id == 4


def test_active_bin_is_always_kept():
    bins = [_bin(i, "1", is_active=(i == 1)) for i in range(300)]

    sampled = sample_bins(bins, 70)

    assert len(sampled) == 71
    assert any(item.bin_id == 1 and item.is_active for item in sampled)
    assert [item.bin_id for item in sampled] == sorted(item.bin_id for item in sampled)


def test_empty_active_bin_survives_sampling():
    bins = [_bin(i, "1" if i < 100 else "0", is_active=(i == 250)) for i in range(300)]

    sampled = sample_bins(bins, 70)

    assert 250 in {item.bin_id for item in sampled}
    assert len(sampled) <= 71


@pytest.mark.parametrize("target", [0, -3])
def test_rejects_non_positive_target(target):
    with pytest.raises(InvalidParameterError):
        sample_bins([_bin(0)], target)


def test_candles_span_half_the_neighbour_distance():
    bins = [
        _bin(2, "3"),
        _bin(0, "1"),
    ]

    candles = bins_to_candles(bins)

    assert [candle.bin_id for candle in candles] == [0, 2]
    first = candles[0]
    assert first.low == Decimal("0")
    assert first.high == Decimal("2")
    assert first.open == first.low
    assert first.close == first.high
    assert first.volume == Decimal("1")
    assert candles[1].low == Decimal("2")
    assert candles[1].high == Decimal("4")


def test_single_candle_uses_relative_width():
    candles = bins_to_candles([_bin(99, "1")])

    assert candles[0].low == Decimal("99.9")
    assert candles[0].high == Decimal("100.1")


def test_candles_of_nothing():
    assert bins_to_candles([]) == []
