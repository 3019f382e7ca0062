from __future__ import annotations

import logging
from decimal import Decimal

from binengine.application.ports.ledger_port import LedgerPort
from binengine.application.use_cases.active_bin_tracker import ActiveBinTracker
from binengine.application.use_cases.pool_resolver import PoolResolver, normalize_pool_id
from binengine.domain.entities.bin import Bin, RawBin
from binengine.domain.entities.pool import Pool
from binengine.domain.exceptions import InvalidParameterError
from binengine.domain.services.bin_math import (
    bin_for_price,
    normalize_amount,
    price_for_bin,
    price_from_per_token,
    price_per_token,
)
from binengine.domain.services.bin_range import align_bin_window


logger = logging.getLogger(__name__)

# 20 bin arrays of 70 bins.
DEFAULT_MAX_BIN_WINDOW = 1400


class BinRangeFetcher:
    def __init__(
        self,
        *,
        ledger_port: LedgerPort,
        pool_resolver: PoolResolver,
        active_bin_tracker: ActiveBinTracker,
        max_bin_window: int = DEFAULT_MAX_BIN_WINDOW,
    ):
        self._ledger_port = ledger_port
        self._pool_resolver = pool_resolver
        self._active_bin_tracker = active_bin_tracker
        self._max_bin_window = max_bin_window

    async def get_bins_around_active(self, pool_id: str, radius: int) -> list[Bin]:
        if isinstance(radius, bool) or not isinstance(radius, int):
            raise InvalidParameterError(f"radius must be an integer (got {radius!r}).")
        if radius < 0:
            raise InvalidParameterError(f"radius must be >= 0 (got {radius}).")
        key = normalize_pool_id(pool_id)
        active = await self._active_bin_tracker.get_active_bin(key)
        min_bin_id, max_bin_id = align_bin_window(active.bin_id, radius)
        return await self._fetch_window(key, min_bin_id, max_bin_id, active.bin_id)

    async def get_bins_between_prices(
        self,
        pool_id: str,
        min_price: Decimal | float | str,
        max_price: Decimal | float | str,
        *,
        per_token: bool = False,
    ) -> list[Bin]:
        """Bins covering ``[min_price, max_price]``.

        Prices are raw bin prices unless ``per_token`` is set, in which case they
        are human prices and are converted with the pool decimals first.
        """
        key = normalize_pool_id(pool_id)
        pool = await self._pool_resolver.get_pool(key)

        low = _positive_price(min_price, "min_price")
        high = _positive_price(max_price, "max_price")
        if low > high:
            raise InvalidParameterError(f"min_price {low} must not exceed max_price {high}.")
        if per_token:
            low = price_from_per_token(low, pool.base_decimals, pool.quote_decimals)
            high = price_from_per_token(high, pool.base_decimals, pool.quote_decimals)

        min_bin_id = bin_for_price(low, pool.bin_step, round_up=False)
        max_bin_id = bin_for_price(high, pool.bin_step, round_up=True)
        active = await self._active_bin_tracker.get_active_bin(key)
        return await self._fetch_window(key, min_bin_id, max_bin_id, active.bin_id)

    async def get_bins_between_ids(self, pool_id: str, min_bin_id: int, max_bin_id: int) -> list[Bin]:
        if min_bin_id > max_bin_id:
            raise InvalidParameterError(
                f"min_bin_id {min_bin_id} must not exceed max_bin_id {max_bin_id}."
            )
        key = normalize_pool_id(pool_id)
        active = await self._active_bin_tracker.get_active_bin(key)
        return await self._fetch_window(key, min_bin_id, max_bin_id, active.bin_id)

    async def _fetch_window(
        self,
        pool_id: str,
        min_bin_id: int,
        max_bin_id: int,
        active_bin_id: int,
    ) -> list[Bin]:
        width = max_bin_id - min_bin_id + 1
        if width > self._max_bin_window:
            raise InvalidParameterError(
                f"Bin window {min_bin_id}-{max_bin_id} for pool {pool_id} spans {width} bins; "
                f"max is {self._max_bin_window}."
            )

        pool = await self._pool_resolver.get_pool(pool_id)
        raw_bins = await self._ledger_port.get_bins(
            pool_id=pool_id,
            min_bin_id=min_bin_id,
            max_bin_id=max_bin_id,
        )
        by_id = {item.bin_id: item for item in raw_bins if min_bin_id <= item.bin_id <= max_bin_id}

        bins = [
            _build_bin(
                pool,
                by_id.get(bin_id) or RawBin(bin_id=bin_id, amount_base=0, amount_quote=0),
                is_active=bin_id == active_bin_id,
            )
            for bin_id in range(min_bin_id, max_bin_id + 1)
        ]
        logger.info(
            "bin_range_fetcher: fetched pool=%s window=%s-%s bins=%s with_liquidity=%s",
            pool_id,
            min_bin_id,
            max_bin_id,
            len(bins),
            len(by_id),
        )
        return bins


def _build_bin(pool: Pool, raw: RawBin, *, is_active: bool) -> Bin:
    price = price_for_bin(raw.bin_id, pool.bin_step)
    return Bin.build(
        bin_id=raw.bin_id,
        price=price,
        price_per_token=price_per_token(price, pool.base_decimals, pool.quote_decimals),
        liquidity_base=normalize_amount(raw.amount_base, pool.base_decimals),
        liquidity_quote=normalize_amount(raw.amount_quote, pool.quote_decimals),
        is_active=is_active,
    )


def _positive_price(value: Decimal | float | str, field: str) -> Decimal:
    try:
        price = value if isinstance(value, Decimal) else Decimal(str(value))
    except ArithmeticError as exc:
        raise InvalidParameterError(f"{field} is not a number: {value!r}.") from exc
    if not price.is_finite() or price <= 0:
        raise InvalidParameterError(f"{field} must be positive (got {value!r}).")
    return price
