from __future__ import annotations

from decimal import Decimal

from binengine.domain.entities.bin import Bin, BinCandle
from binengine.domain.exceptions import InvalidParameterError


DEFAULT_SAMPLE_TARGET = 70


def sample_bins(bins: list[Bin], target_count: int = DEFAULT_SAMPLE_TARGET) -> list[Bin]:
    """Reduce ``bins`` to roughly ``target_count`` entries for a fixed-size chart.

    Bins with liquidity are kept ahead of empty ones; when even those exceed the
    target they are stride-sampled. The active bin is always kept, so the result
    may hold ``target_count + 1`` entries.
    """
    if isinstance(target_count, bool) or not isinstance(target_count, int) or target_count < 1:
        raise InvalidParameterError(f"target_count must be a positive integer (got {target_count!r}).")

    if len(bins) <= target_count:
        return list(bins)

    significant = [item for item in bins if item.total_liquidity > 0]
    empty = [item for item in bins if item.total_liquidity <= 0]

    if len(significant) <= target_count:
        sampled = list(significant)
        slots_remaining = target_count - len(significant)
        if slots_remaining > 0 and empty:
            sampled.extend(_stride(empty, slots_remaining))
    else:
        sampled = _stride(significant, target_count)

    active = next((item for item in bins if item.is_active), None)
    if active is not None and not any(item.bin_id == active.bin_id for item in sampled):
        sampled.append(active)

    sampled.sort(key=lambda item: item.bin_id)
    return sampled


def bins_to_candles(bins: list[Bin]) -> list[BinCandle]:
    if not bins:
        return []

    ordered = sorted(bins, key=lambda item: item.bin_id)
    if len(ordered) > 1:
        half_width = abs(ordered[1].price - ordered[0].price) / 2
    else:
        half_width = ordered[0].price * Decimal("0.001")

    candles: list[BinCandle] = []
    for item in ordered:
        lower = item.price - half_width
        upper = item.price + half_width
        candles.append(
            BinCandle(
                bin_id=item.bin_id,
                open=lower,
                high=upper,
                low=lower,
                close=upper,
                volume=item.total_liquidity,
            )
        )
    return candles


def _stride(items: list[Bin], limit: int) -> list[Bin]:
    step = max(1, len(items) // limit)
    return items[::step][:limit]
