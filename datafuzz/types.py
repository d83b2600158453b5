"""
Logical data types supported by the fuzzer and their mapping to the engine

Each ``FuzzerDataType`` maps to exactly one Arrow type (the engine's native
type system) and back, and knows its SQL DDL name and a lowercase display
name used to build column names.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

import numpy as np
import pyarrow as pa

from .rng import choose, random_bool, random_range

MAX_DECIMAL_PRECISION = 76
MAX_DECIMAL128_PRECISION = 38

# None means "no timezone"
TIMEZONE_LABELS = (None, "UTC", "+08:00", "-05:00")

DECIMAL_PRESETS = ((10, 2), (38, 10), (5, 5), (76, 20))


class TypeKind(Enum):
    """Variant tag of a FuzzerDataType"""
    INT32 = "int32"
    INT64 = "int64"
    UINT32 = "uint32"
    UINT64 = "uint64"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    BOOLEAN = "boolean"
    DECIMAL = "decimal"
    DATE32 = "date32"
    TIME64_NANOSECOND = "time64_nanosecond"
    TIMESTAMP = "timestamp_nanosecond"
    INTERVAL_MONTH_DAY_NANO = "interval_month_day_nano"


INTEGER_KINDS = frozenset({TypeKind.INT32, TypeKind.INT64, TypeKind.UINT32, TypeKind.UINT64})
FLOAT_KINDS = frozenset({TypeKind.FLOAT32, TypeKind.FLOAT64})
NUMERIC_KINDS = INTEGER_KINDS | FLOAT_KINDS | {TypeKind.DECIMAL}
TIME_KINDS = frozenset({TypeKind.DATE32, TypeKind.TIME64_NANOSECOND, TypeKind.TIMESTAMP})

_SIMPLE_ARROW_TYPES = {
    TypeKind.INT32: pa.int32(),
    TypeKind.INT64: pa.int64(),
    TypeKind.UINT32: pa.uint32(),
    TypeKind.UINT64: pa.uint64(),
    TypeKind.FLOAT32: pa.float32(),
    TypeKind.FLOAT64: pa.float64(),
    TypeKind.BOOLEAN: pa.bool_(),
    TypeKind.DATE32: pa.date32(),
    TypeKind.TIME64_NANOSECOND: pa.time64("ns"),
    TypeKind.INTERVAL_MONTH_DAY_NANO: pa.month_day_nano_interval(),
}

_SIMPLE_SQL_TYPES = {
    TypeKind.INT32: "INT",
    TypeKind.INT64: "BIGINT",
    TypeKind.UINT32: "INT UNSIGNED",
    TypeKind.UINT64: "BIGINT UNSIGNED",
    TypeKind.FLOAT32: "REAL",
    TypeKind.FLOAT64: "DOUBLE",
    TypeKind.BOOLEAN: "BOOLEAN",
    TypeKind.DATE32: "DATE",
    TypeKind.TIME64_NANOSECOND: "TIME",
    TypeKind.INTERVAL_MONTH_DAY_NANO: "INTERVAL",
}


@dataclass(frozen=True)
class FuzzerDataType:
    """
    A logical column/expression type.

    Attributes:
        kind: Variant tag
        precision: Decimal precision (1-76), only for DECIMAL
        scale: Decimal scale (0-precision), only for DECIMAL
        timezone: Optional timezone label, only for TIMESTAMP
    """
    kind: TypeKind
    precision: Optional[int] = None
    scale: Optional[int] = None
    timezone: Optional[str] = None

    def __post_init__(self):
        if self.kind == TypeKind.DECIMAL:
            if self.precision is None or self.scale is None:
                raise ValueError("Decimal type needs precision and scale")
            if not 1 <= self.precision <= MAX_DECIMAL_PRECISION:
                raise ValueError(f"Invalid decimal precision: {self.precision}")
            if not 0 <= self.scale <= self.precision:
                raise ValueError(f"Invalid decimal scale {self.scale} for precision {self.precision}")
        elif self.precision is not None or self.scale is not None:
            raise ValueError(f"{self.kind.value} does not take precision/scale")
        if self.timezone is not None and self.kind != TypeKind.TIMESTAMP:
            raise ValueError(f"{self.kind.value} does not take a timezone")

    @classmethod
    def decimal(cls, precision: int, scale: int) -> "FuzzerDataType":
        return cls(TypeKind.DECIMAL, precision=precision, scale=scale)

    @classmethod
    def timestamp(cls, timezone: Optional[str] = None) -> "FuzzerDataType":
        return cls(TypeKind.TIMESTAMP, timezone=timezone)

    def to_arrow_type(self) -> pa.DataType:
        if self.kind == TypeKind.DECIMAL:
            if self.precision <= MAX_DECIMAL128_PRECISION:
                return pa.decimal128(self.precision, self.scale)
            return pa.decimal256(self.precision, self.scale)
        if self.kind == TypeKind.TIMESTAMP:
            return pa.timestamp("ns", tz=self.timezone)
        return _SIMPLE_ARROW_TYPES[self.kind]

    @classmethod
    def from_arrow_type(cls, arrow_type: pa.DataType) -> Optional["FuzzerDataType"]:
        """Map an Arrow type back, or None when the fuzzer has no such type"""
        for kind, simple in _SIMPLE_ARROW_TYPES.items():
            if arrow_type == simple:
                return cls(kind)
        if pa.types.is_decimal(arrow_type):
            precision, scale = arrow_type.precision, arrow_type.scale
            if 1 <= precision <= MAX_DECIMAL_PRECISION and 0 <= scale <= precision:
                return cls.decimal(precision, scale)
            return None
        if pa.types.is_timestamp(arrow_type) and arrow_type.unit == "ns":
            return cls.timestamp(arrow_type.tz)
        return None

    def to_sql_type(self) -> str:
        if self.kind == TypeKind.DECIMAL:
            return f"DECIMAL({self.precision}, {self.scale})"
        if self.kind == TypeKind.TIMESTAMP:
            return "TIMESTAMP" if self.timezone is None else "TIMESTAMP WITH TIME ZONE"
        return _SIMPLE_SQL_TYPES[self.kind]

    def display_name(self) -> str:
        if self.kind == TypeKind.DECIMAL:
            return f"decimal_{self.precision}_{self.scale}"
        if self.kind == TypeKind.TIMESTAMP and self.timezone is not None:
            return "timestamp_nanosecond_tz"
        return self.kind.value

    def is_numeric(self) -> bool:
        return self.kind in NUMERIC_KINDS

    def is_time(self) -> bool:
        return self.kind in TIME_KINDS

    def __str__(self) -> str:
        if self.kind == TypeKind.DECIMAL:
            return f"Decimal({self.precision}, {self.scale})"
        if self.kind == TypeKind.TIMESTAMP:
            return f"Timestamp({self.timezone or 'no tz'})"
        return self.kind.name.title().replace("_", "")


INT32 = FuzzerDataType(TypeKind.INT32)
INT64 = FuzzerDataType(TypeKind.INT64)
UINT32 = FuzzerDataType(TypeKind.UINT32)
UINT64 = FuzzerDataType(TypeKind.UINT64)
FLOAT32 = FuzzerDataType(TypeKind.FLOAT32)
FLOAT64 = FuzzerDataType(TypeKind.FLOAT64)
BOOLEAN = FuzzerDataType(TypeKind.BOOLEAN)
DATE32 = FuzzerDataType(TypeKind.DATE32)
TIME64_NANOSECOND = FuzzerDataType(TypeKind.TIME64_NANOSECOND)
TIMESTAMP = FuzzerDataType.timestamp()
INTERVAL_MONTH_DAY_NANO = FuzzerDataType(TypeKind.INTERVAL_MONTH_DAY_NANO)


def available_data_types() -> List[FuzzerDataType]:
    """Representative instance of every supported type, in a fixed order"""
    types = [
        INT32, INT64, UINT32, UINT64, FLOAT32, FLOAT64, BOOLEAN,
    ]
    types.extend(FuzzerDataType.decimal(p, s) for p, s in DECIMAL_PRESETS)
    types.extend([DATE32, TIME64_NANOSECOND])
    types.extend(FuzzerDataType.timestamp(tz) for tz in TIMEZONE_LABELS)
    types.append(INTERVAL_MONTH_DAY_NANO)
    return types


def random_data_type(rng: np.random.Generator) -> FuzzerDataType:
    """
    Pick a type: the variant uniformly, then its parameters.

    Decimals use a preset half of the time so that generated expressions
    can find columns of the same type, and fully random parameters otherwise.
    """
    kind = choose(rng, list(TypeKind))
    if kind == TypeKind.DECIMAL:
        if random_bool(rng, 0.5):
            precision, scale = choose(rng, DECIMAL_PRESETS)
        else:
            precision = random_range(rng, 1, MAX_DECIMAL_PRECISION)
            scale = random_range(rng, 0, precision)
        return FuzzerDataType.decimal(precision, scale)
    if kind == TypeKind.TIMESTAMP:
        return FuzzerDataType.timestamp(choose(rng, TIMEZONE_LABELS))
    return FuzzerDataType(kind)
