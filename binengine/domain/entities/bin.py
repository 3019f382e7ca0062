from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class RawBin:
    bin_id: int
    amount_base: int
    amount_quote: int
    supply: int = 0


@dataclass(frozen=True)
class Bin:
    bin_id: int
    price: Decimal
    price_per_token: Decimal
    liquidity_base: Decimal
    liquidity_quote: Decimal
    total_liquidity: Decimal
    is_active: bool

    @classmethod
    def build(
        cls,
        *,
        bin_id: int,
        price: Decimal,
        price_per_token: Decimal,
        liquidity_base: Decimal,
        liquidity_quote: Decimal,
        is_active: bool,
    ) -> "Bin":
        # Plain token sum, not a valuation.
        return cls(
            bin_id=bin_id,
            price=price,
            price_per_token=price_per_token,
            liquidity_base=liquidity_base,
            liquidity_quote=liquidity_quote,
            total_liquidity=liquidity_base + liquidity_quote,
            is_active=is_active,
        )


@dataclass(frozen=True)
class ActiveBin:
    bin_id: int
    price: Decimal
    price_per_token: Decimal
    supply: int
    amount_base: Decimal
    amount_quote: Decimal
    raw_amount_base: int
    raw_amount_quote: int


@dataclass(frozen=True)
class BinCandle:
    bin_id: int
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal
