from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from binengine.domain.entities.bin import Bin


@dataclass(frozen=True)
class PositionBin:
    bin_id: int
    amount_base: int
    amount_quote: int
    fee_base: int = 0
    fee_quote: int = 0


@dataclass(frozen=True)
class Position:
    position_id: str
    pool_id: str
    lower_bin_id: int | None
    upper_bin_id: int | None
    total_base: Decimal = Decimal("0")
    total_quote: Decimal = Decimal("0")
    fees_base: Decimal = Decimal("0")
    fees_quote: Decimal = Decimal("0")
    bins: tuple[PositionBin, ...] = field(default_factory=tuple)
    # Totals and fees in raw integer units, normalized with pool decimals on analysis.
    totals_are_raw: bool = False


@dataclass(frozen=True)
class PositionRange:
    position_id: str
    lower_bin_id: int
    upper_bin_id: int
    lower_price: Decimal
    upper_price: Decimal
    total_liquidity_base: Decimal
    total_liquidity_quote: Decimal
    unclaimed_fees_base: Decimal
    unclaimed_fees_quote: Decimal
    bins: list[Bin]


@dataclass(frozen=True)
class RebalanceResult:
    should_rebalance: bool
    current_price: Decimal
    active_bin_id: int
    lower_bin_id: int
    upper_bin_id: int
    reason: str | None = None


@dataclass(frozen=True)
class PositionHealth:
    position_id: str
    needs_rebalance: bool
    last_check: datetime
    current_price: Decimal | None = None
    reason: str | None = None
    error: str | None = None
