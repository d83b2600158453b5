"""
Random value generation for every FuzzerDataType

A ``GeneratedValue`` keeps the raw value in the engine's storage form
(integers for temporal types, an unscaled integer for decimals, a packed
128-bit integer for intervals) and renders it three ways: SQL literal text,
an Arrow scalar, and a typed sqlglot literal for use inside generated queries.
"""

import datetime
from dataclasses import dataclass
from decimal import Context, Decimal
from typing import Optional, Sequence, Tuple, Union

import numpy as np
import pyarrow as pa
from sqlglot import exp

from .rng import random_bool, random_float, random_range
from .types import FuzzerDataType, TypeKind

NANOS_PER_SECOND = 1_000_000_000
NANOS_PER_DAY = 86_400 * NANOS_PER_SECOND
MAX_DATE_DAYS = 36_500
MAX_TIMESTAMP_NANOS = NANOS_PER_DAY * MAX_DATE_DAYS
MAX_INTERVAL_MONTHS = 120
MAX_INTERVAL_DAYS = 365

MAX_SAFE_SCALE = 30
MAX_DECIMAL_INTEGRAL = 1000

EPOCH = datetime.date(1970, 1, 1)

_DECIMAL_CONTEXT = Context(prec=100)

RawValue = Union[int, float, bool]


@dataclass
class ValueGenerationConfig:
    """Options for generate_value"""
    nullable: bool = True
    null_probability: float = 0.1
    int_range: Tuple[int, int] = (-100, 100)
    uint_range: Tuple[int, int] = (0, 200)
    float_range: Tuple[float, float] = (-100.0, 100.0)


def safe_power_of_10(scale: int) -> int:
    """10^scale, saturating at 10^30 so generated mantissas stay bounded"""
    return 10 ** min(max(scale, 0), MAX_SAFE_SCALE)


def _to_signed(value: int, bits: int) -> int:
    value &= (1 << bits) - 1
    if value >= 1 << (bits - 1):
        value -= 1 << bits
    return value


def pack_interval(months: int, days: int, nanoseconds: int) -> int:
    """
    Pack a month/day/nanosecond interval into one unsigned 128-bit integer.

    Layout: days in bits 0-31, months in bits 32-63, nanoseconds in bits
    64-127, each field in two's complement.
    """
    return (
        (days & 0xFFFFFFFF)
        | ((months & 0xFFFFFFFF) << 32)
        | ((nanoseconds & 0xFFFFFFFFFFFFFFFF) << 64)
    )


def unpack_interval(packed: int) -> Tuple[int, int, int]:
    """Inverse of pack_interval, returns (months, days, nanoseconds)"""
    days = _to_signed(packed, 32)
    months = _to_signed(packed >> 32, 32)
    nanoseconds = _to_signed(packed >> 64, 64)
    return months, days, nanoseconds


def unscaled_to_decimal(unscaled: int, scale: int) -> Decimal:
    return Decimal(unscaled).scaleb(-scale, context=_DECIMAL_CONTEXT)


def _plural(amount: int, unit: str) -> str:
    return f"{amount} {unit}" if amount == 1 else f"{amount} {unit}s"


def format_interval(months: int, days: int, nanoseconds: int) -> str:
    """Human unit text for an interval, listing only non-zero components"""
    years, months = divmod(months, 12)
    hours, rest = divmod(nanoseconds, 3600 * NANOS_PER_SECOND)
    minutes, rest = divmod(rest, 60 * NANOS_PER_SECOND)
    seconds, nanos = divmod(rest, NANOS_PER_SECOND)
    parts = [
        _plural(amount, unit)
        for amount, unit in (
            (years, "year"),
            (months, "month"),
            (days, "day"),
            (hours, "hour"),
            (minutes, "minute"),
            (seconds, "second"),
            (nanos, "nanosecond"),
        )
        if amount
    ]
    return " ".join(parts) if parts else "0"


def format_date(days: int) -> str:
    return (EPOCH + datetime.timedelta(days=days)).isoformat()


def format_time(nanoseconds: int) -> str:
    seconds, nanos = divmod(nanoseconds, NANOS_PER_SECOND)
    minutes, seconds = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}.{nanos:09d}"


def format_timestamp(nanoseconds: int, timezone: Optional[str] = None) -> str:
    days, nanos_of_day = divmod(nanoseconds, NANOS_PER_DAY)
    text = f"{format_date(days)} {format_time(nanos_of_day)}"
    # the stored value is a UTC instant
    if timezone is not None:
        text += "+00:00"
    return text


def format_decimal(unscaled: int, scale: int) -> str:
    if scale <= 0:
        return str(unscaled)
    sign = "-" if unscaled < 0 else ""
    integral, fractional = divmod(abs(unscaled), 10 ** scale)
    return f"{sign}{integral}.{fractional:0{scale}d}"


def arrow_type_string(data_type: FuzzerDataType) -> str:
    """Arrow's own spelling of a timestamp type, as accepted by arrow_cast"""
    if data_type.timezone is None:
        return "Timestamp(Nanosecond, None)"
    return f'Timestamp(Nanosecond, Some("{data_type.timezone}"))'


def _sql_type_node(data_type: FuzzerDataType) -> exp.DataType:
    # USERDEFINED keeps the SQL type name exactly as written
    return exp.DataType(this=exp.DataType.Type.USERDEFINED, kind=data_type.to_sql_type())


@dataclass(frozen=True)
class GeneratedValue:
    """
    A concrete value of ``data_type``, or Null when ``value`` is None.

    Raw value by type:
        ints/floats/boolean: the Python value
        decimal: the unscaled integer (value = unscaled * 10^-scale)
        date32: days since 1970-01-01
        time64: nanoseconds since midnight
        timestamp: nanoseconds since the epoch (UTC)
        interval: packed 128-bit integer, see pack_interval
    """
    data_type: FuzzerDataType
    value: Optional[RawValue] = None

    def is_null(self) -> bool:
        return self.value is None

    def literal_text(self) -> str:
        """SQL text of the value without the quotes of temporal literals"""
        if self.value is None:
            return "NULL"
        kind = self.data_type.kind
        if kind == TypeKind.BOOLEAN:
            return "TRUE" if self.value else "FALSE"
        if kind == TypeKind.DECIMAL:
            return format_decimal(self.value, self.data_type.scale)
        if kind == TypeKind.DATE32:
            return format_date(self.value)
        if kind == TypeKind.TIME64_NANOSECOND:
            return format_time(self.value)
        if kind == TypeKind.TIMESTAMP:
            return format_timestamp(self.value, self.data_type.timezone)
        if kind == TypeKind.INTERVAL_MONTH_DAY_NANO:
            return format_interval(*unpack_interval(self.value))
        return repr(self.value) if isinstance(self.value, float) else str(self.value)

    def to_sql_string(self) -> str:
        text = self.literal_text()
        if self.value is None:
            return text
        kind = self.data_type.kind
        if kind == TypeKind.INTERVAL_MONTH_DAY_NANO:
            return f"INTERVAL '{text}'"
        if self.data_type.is_time():
            return f"'{text}'"
        return text

    def to_python(self):
        """Value in the form pyarrow accepts for this type's Arrow array"""
        if self.value is None:
            return None
        kind = self.data_type.kind
        if kind == TypeKind.DECIMAL:
            return unscaled_to_decimal(self.value, self.data_type.scale)
        if kind == TypeKind.INTERVAL_MONTH_DAY_NANO:
            return pa.MonthDayNano(unpack_interval(self.value))
        return self.value

    def to_arrow_scalar(self) -> pa.Scalar:
        if self.value is None:
            return pa.scalar(None, type=self.data_type.to_arrow_type())
        return build_arrow_array(self.data_type, [self])[0]

    def to_sql_expr(self) -> exp.Expression:
        """Typed literal node, so the engine sees the declared type"""
        kind = self.data_type.kind
        if self.value is None:
            return exp.Cast(this=exp.Null(), to=_sql_type_node(self.data_type))
        if kind == TypeKind.BOOLEAN:
            return exp.true() if self.value else exp.false()
        if kind == TypeKind.INTERVAL_MONTH_DAY_NANO:
            return exp.Interval(this=exp.Literal.string(self.literal_text()))
        if kind == TypeKind.TIMESTAMP and self.data_type.timezone is not None:
            return exp.Anonymous(
                this="arrow_cast",
                expressions=[
                    exp.Literal.string(self.literal_text()),
                    exp.Literal.string(arrow_type_string(self.data_type)),
                ],
            )
        if kind == TypeKind.DECIMAL or self.data_type.is_time():
            literal = exp.Literal.string(self.literal_text())
        else:
            literal = exp.Literal.number(self.literal_text())
        return exp.Cast(this=literal, to=_sql_type_node(self.data_type))


def build_arrow_array(data_type: FuzzerDataType, values: Sequence[GeneratedValue]) -> pa.Array:
    """Build one Arrow column of ``data_type`` from generated values"""
    arrow_type = data_type.to_arrow_type()
    kind = data_type.kind
    if kind == TypeKind.DATE32:
        return pa.array([v.value for v in values], type=pa.int32()).cast(arrow_type)
    if kind in (TypeKind.TIME64_NANOSECOND, TypeKind.TIMESTAMP):
        return pa.array([v.value for v in values], type=pa.int64()).cast(arrow_type)
    return pa.array([v.to_python() for v in values], type=arrow_type)


def _generate_decimal(rng: np.random.Generator, precision: int, scale: int) -> int:
    fraction_bound = safe_power_of_10(scale)
    if scale >= precision:
        # purely fractional
        return random_range(rng, 0, safe_power_of_10(precision) - 1)

    max_integral = min(safe_power_of_10(precision - scale) - 1, MAX_DECIMAL_INTEGRAL)
    integral = random_range(rng, -max_integral, max_integral)
    fractional = random_range(rng, 0, fraction_bound - 1) if scale > 0 else 0
    unscaled = integral * fraction_bound + fractional

    max_total = safe_power_of_10(precision) - 1
    return max(-max_total, min(unscaled, max_total))


def generate_value(
    rng: np.random.Generator,
    data_type: FuzzerDataType,
    config: Optional[ValueGenerationConfig] = None,
) -> GeneratedValue:
    """Draw one value of ``data_type``"""
    config = config or ValueGenerationConfig()
    if config.nullable and random_bool(rng, config.null_probability):
        return GeneratedValue(data_type)

    kind = data_type.kind
    if kind in (TypeKind.INT32, TypeKind.INT64):
        value = random_range(rng, *config.int_range)
    elif kind in (TypeKind.UINT32, TypeKind.UINT64):
        value = random_range(rng, *config.uint_range)
    elif kind == TypeKind.FLOAT32:
        value = float(np.float32(random_float(rng, *config.float_range)))
    elif kind == TypeKind.FLOAT64:
        value = random_float(rng, *config.float_range)
    elif kind == TypeKind.BOOLEAN:
        value = random_bool(rng, 0.5)
    elif kind == TypeKind.DECIMAL:
        value = _generate_decimal(rng, data_type.precision, data_type.scale)
    elif kind == TypeKind.DATE32:
        value = random_range(rng, 0, MAX_DATE_DAYS)
    elif kind == TypeKind.TIME64_NANOSECOND:
        value = random_range(rng, 0, NANOS_PER_DAY - 1)
    elif kind == TypeKind.TIMESTAMP:
        value = random_range(rng, 0, MAX_TIMESTAMP_NANOS)
    elif kind == TypeKind.INTERVAL_MONTH_DAY_NANO:
        months = random_range(rng, 0, MAX_INTERVAL_MONTHS)
        days = random_range(rng, 0, MAX_INTERVAL_DAYS)
        nanoseconds = random_range(rng, 0, NANOS_PER_DAY - 1)
        value = pack_interval(months, days, nanoseconds)
    else:
        raise ValueError(f"Unsupported data type: {data_type}")
    return GeneratedValue(data_type, value)
