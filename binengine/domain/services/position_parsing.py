from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

from binengine.domain.entities.position import Position, PositionBin
from binengine.domain.exceptions import InvalidParameterError


# Ordered fallbacks: the first field present (and not None) wins.
POSITION_ID_FIELDS = ("position_id", "positionId", "publicKey", "address")
POOL_ID_FIELDS = ("pool_id", "poolId", "lbPair", "pool_address", "poolAddress")
LOWER_BIN_FIELDS = ("lower_bin_id", "lowerBinId", "minBinId")
UPPER_BIN_FIELDS = ("upper_bin_id", "upperBinId", "maxBinId")
TOTAL_BASE_FIELDS = ("total_base", "totalBase", "baseAmount")
TOTAL_QUOTE_FIELDS = ("total_quote", "totalQuote", "quoteAmount")
FEES_BASE_FIELDS = ("fees_base", "unclaimedFeesBase")
FEES_QUOTE_FIELDS = ("fees_quote", "unclaimedFeesQuote")
# Raw-unit totals, read only when none of the token-unit fields above are present.
RAW_TOTAL_BASE_FIELDS = ("totalXAmount",)
RAW_TOTAL_QUOTE_FIELDS = ("totalYAmount",)
RAW_FEES_BASE_FIELDS = ("feeX",)
RAW_FEES_QUOTE_FIELDS = ("feeY",)
BINS_FIELDS = ("bins", "positionBinData")

BIN_ID_FIELDS = ("bin_id", "binId", "id")
BIN_BASE_FIELDS = ("amount_base", "positionXAmount", "totalXAmount", "xAmount", "amountX")
BIN_QUOTE_FIELDS = ("amount_quote", "positionYAmount", "totalYAmount", "yAmount", "amountY")
BIN_FEE_BASE_FIELDS = ("fee_base", "positionFeeXAmount", "feeX")
BIN_FEE_QUOTE_FIELDS = ("fee_quote", "positionFeeYAmount", "feeY")

NESTED_DATA_FIELD = "positionData"


def parse_position(payload: Mapping[str, Any]) -> Position:
    if not isinstance(payload, Mapping):
        raise InvalidParameterError("position payload must be a mapping.")

    sources: list[Mapping[str, Any]] = [payload]
    nested = payload.get(NESTED_DATA_FIELD)
    if isinstance(nested, Mapping):
        sources.append(nested)

    position_id = _first(sources, POSITION_ID_FIELDS)
    if position_id is None:
        raise InvalidParameterError("position payload has no position id.")
    pool_id = _first(sources, POOL_ID_FIELDS)
    if pool_id is None:
        raise InvalidParameterError(f"position {position_id} has no pool id.")

    raw_bins = _first(sources, BINS_FIELDS)
    if raw_bins is None:
        raw_bins = []
    if not isinstance(raw_bins, (list, tuple)):
        raise InvalidParameterError(f"position {position_id} bins must be a list.")

    totals, totals_are_raw = _totals(sources)
    return Position(
        position_id=str(position_id),
        pool_id=str(pool_id),
        lower_bin_id=_optional_int(_first(sources, LOWER_BIN_FIELDS), "lower_bin_id"),
        upper_bin_id=_optional_int(_first(sources, UPPER_BIN_FIELDS), "upper_bin_id"),
        total_base=totals[0],
        total_quote=totals[1],
        fees_base=totals[2],
        fees_quote=totals[3],
        bins=tuple(parse_position_bin(item) for item in raw_bins),
        totals_are_raw=totals_are_raw,
    )


def position_id_of(payload: Mapping[str, Any]) -> str | None:
    """Raw position id of a payload without parsing the rest of it."""
    if not isinstance(payload, Mapping):
        return None
    sources: list[Mapping[str, Any]] = [payload]
    nested = payload.get(NESTED_DATA_FIELD)
    if isinstance(nested, Mapping):
        sources.append(nested)
    position_id = _first(sources, POSITION_ID_FIELDS)
    return None if position_id is None else str(position_id)


def parse_position_bin(
payload: Mapping[str, Any]) -> PositionBin:
    if not isinstance(payload, Mapping):
        raise InvalidParameterError("position bin entry must be a mapping.")
    sources = [payload]
    bin_id = _optional_int(_first(sources, BIN_ID_FIELDS), "bin_id")
    if bin_id is None:
        raise InvalidParameterError("position bin entry has no bin id.")
    return PositionBin(
        bin_id=bin_id,
        amount_base=_raw_amount(_first(sources, BIN_BASE_FIELDS), "amount_base"),
        amount_quote=_raw_amount(_first(sources, BIN_QUOTE_FIELDS), "amount_quote"),
        fee_base=_raw_amount(_first(sources, BIN_FEE_BASE_FIELDS), "fee_base"),
        fee_quote=_raw_amount(_first(sources, BIN_FEE_QUOTE_FIELDS), "fee_quote"),
    )


def _first(sources: list[Mapping[str, Any]], fields: tuple[str, ...]) -> Any:
    for source in sources:
        for name in fields:
            value = source.get(name)
            if value is not None:
                return value
    return None


def _totals(sources: list[Mapping[str, Any]]) -> tuple[tuple[Decimal, Decimal, Decimal, Decimal], bool]:
    token_fields = (TOTAL_BASE_FIELDS, TOTAL_QUOTE_FIELDS, FEES_BASE_FIELDS, FEES_QUOTE_FIELDS)
    token_values = [_first(sources, fields) for fields in token_fields]
    if any(value is not None for value in token_values):
        names = ("total_base", "total_quote", "fees_base", "fees_quote")
        return tuple(_decimal(value, name) for value, name in zip(token_values, names)), False

    raw_fields = (RAW_TOTAL_BASE_FIELDS, RAW_TOTAL_QUOTE_FIELDS, RAW_FEES_BASE_FIELDS, RAW_FEES_QUOTE_FIELDS)
    raw_values = [_first(sources, fields) for fields in raw_fields]
    names = ("totalXAmount", "totalYAmount", "feeX", "feeY")
    totals = tuple(Decimal(_raw_amount(value, name)) for value, name in zip(raw_values, names))
    return totals, any(value is not None for value in raw_values)


def _to_decimal(value: Any, field_name: str) -> Decimal:
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise InvalidParameterError(f"{field_name} is not numeric: {value!r}.") from exc
    if not result.is_finite():
        raise InvalidParameterError(f"{field_name} is not finite: {value!r}.")
    return result


def _decimal(value: Any, field_name: str) -> Decimal:
    if value is None:
        return Decimal("0")
    return _to_decimal(value, field_name)


def _raw_amount(value: Any, field_name: str) -> int:
    if value is None:
        return 0
    amount = _to_decimal(value, field_name)
    if amount < 0:
        raise InvalidParameterError(f"{field_name} must be non-negative: {value!r}.")
    return int(amount)


def _optional_int(value: Any, field_name: str) -> int | None:
    if value is None:
        return None
    number = _to_decimal(value, field_name)
    if number != number.to_integral_value():
        raise InvalidParameterError(f"{field_name} must be an integer: {value!r}.")
    return int(number)
