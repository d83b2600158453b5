"""
Tests for random values and their SQL/Arrow renderings
"""

from decimal import Decimal

import pyarrow as pa
import pytest

from datafuzz.engine import DataFusionEngine
from datafuzz.rng import rng_from_seed
from datafuzz.types import (
    BOOLEAN,
    DATE32,
    FLOAT32,
    FLOAT64,
    INT32,
    INT64,
    INTERVAL_MONTH_DAY_NANO,
    TIME64_NANOSECOND,
    TIMESTAMP,
    UINT32,
    UINT64,
    FuzzerDataType,
    TypeKind,
    available_data_types,
)
from datafuzz.value_generator import (
    NANOS_PER_DAY,
    NANOS_PER_SECOND,
    GeneratedValue,
    ValueGenerationConfig,
    build_arrow_array,
    format_interval,
    generate_value,
    pack_interval,
    safe_power_of_10,
    unpack_interval,
)

NON_NULL = ValueGenerationConfig(nullable=False)


class TestHelpers:
    """Power of ten and interval packing."""

    @pytest.mark.parametrize("scale", range(0, 77))
    def test_safe_power_of_10(self, scale):
        assert safe_power_of_10(scale) == 10 ** min(scale, 30)

    def test_interval_layout(self):
        assert pack_interval(0, 1, 0) == 1
        assert pack_interval(1, 0, 0) == 1 << 32
        assert pack_interval(0, 0, 1) == 1 << 64

    @pytest.mark.parametrize("months,days,nanos", [
        (0, 0, 0),
        (14, 3, 5 * NANOS_PER_SECOND),
        (-1, -2, -3),
        (2 ** 31 - 1, -(2 ** 31), 2 ** 63 - 1),
    ])
    def test_interval_unpack(self, months, days, nanos):
        packed = pack_interval(months, days, nanos)
        assert 0 <= packed < 1 << 128
        assert unpack_interval(packed) == (months, days, nanos)

    def test_format_interval(self):
        nanos = 3600 * NANOS_PER_SECOND + 1
        assert format_interval(14, 3, nanos) == "1 year 2 months 3 days 1 hour 1 nanosecond"
        assert format_interval(0, 0, 0) == "0"
        assert format_interval(0, 2, 0) == "2 days"


class TestSqlRendering:
    """Literal text of each type."""

    def test_null(self):
        value = GeneratedValue(INT32)
        assert value.is_null()
        assert value.to_sql_string() == "NULL"
        assert value.to_sql_expr().sql() == "CAST(NULL AS INT)"

    def test_integer(self):
        assert GeneratedValue(INT32, -5).to_sql_string() == "-5"
        assert GeneratedValue(INT32, 5).to_sql_expr().sql() == "CAST(5 AS INT)"

    def test_boolean(self):
        assert GeneratedValue(BOOLEAN, True).to_sql_string() == "TRUE"
        assert GeneratedValue(BOOLEAN, False).to_sql_expr().sql() == "FALSE"

    def test_decimal(self):
        value = GeneratedValue(FuzzerDataType.decimal(10, 2), -5)
        assert value.to_sql_string() == "-0.05"
        assert value.to_python() == Decimal("-0.05")
        assert GeneratedValue(FuzzerDataType.decimal(5, 0), 123).to_sql_string() == "123"

    def test_temporal(self):
        assert GeneratedValue(DATE32, 0).to_sql_string() == "'1970-01-01'"
        assert GeneratedValue(TIME64_NANOSECOND, 1).to_sql_string() == "'00:00:00.000000001'"
        assert GeneratedValue(TIMESTAMP, NANOS_PER_DAY).to_sql_string() == "'1970-01-02 00:00:00.000000000'"

    def test_timestamp_with_timezone(self):
        value = GeneratedValue(FuzzerDataType.timestamp("+08:00"), 0)
        assert value.literal_text() == "1970-01-01 00:00:00.000000000+00:00"
        assert value.to_sql_expr().sql().upper().startswith("ARROW_CAST(")

    def test_interval(self):
        value = GeneratedValue(INTERVAL_MONTH_DAY_NANO, pack_interval(1, 0, 0))
        assert value.to_sql_string() == "INTERVAL '1 month'"


class TestGenerateValue:
    """Value ranges and determinism."""

    def test_deterministic(self):
        a, b = rng_from_seed(11), rng_from_seed(11)
        types = available_data_types()
        assert [generate_value(a, t) for t in types] == [generate_value(b, t) for t in types]

    def test_not_nullable(self, rng):
        for data_type in available_data_types():
            for _ in range(20):
                assert not generate_value(rng, data_type, NON_NULL).is_null()

    def test_nulls_appear(self, rng):
        values = [generate_value(rng, INT64, ValueGenerationConfig(null_probability=0.5)) for _ in range(100)]
        assert any(v.is_null() for v in values)

    def test_integer_ranges(self, rng):
        config = ValueGenerationConfig(nullable=False)
        for _ in range(200):
            assert -100 <= generate_value(rng, INT32, config).value <= 100
            assert 0 <= generate_value(rng, UINT64, config).value <= 200

    def test_decimals_fit_precision(self, rng):
        for precision in range(1, 77):
            for scale in (0, precision // 2, precision):
                data_type = FuzzerDataType.decimal(precision, scale)
                for _ in range(5):
                    unscaled = generate_value(rng, data_type, NON_NULL).value
                    assert abs(unscaled) < 10 ** precision
                    if scale >= precision:
                        assert unscaled >= 0

    @pytest.mark.parametrize("precision,scale", [(20, 20), (38, 25), (76, 76), (76, 20)])
    def test_wide_decimals(self, precision, scale):
        rng = rng_from_seed(7)
        data_type = FuzzerDataType.decimal(precision, scale)
        for _ in range(50):
            unscaled = generate_value(rng, data_type, NON_NULL).value
            assert abs(unscaled) < 10 ** min(precision, 30)

    def test_temporal_ranges(self, rng):
        for _ in range(100):
            assert 0 <= generate_value(rng, TIME64_NANOSECOND, NON_NULL).value < NANOS_PER_DAY
            months, days, nanos = unpack_interval(generate_value(rng, INTERVAL_MONTH_DAY_NANO, NON_NULL).value)
            assert 0 <= months <= 120
            assert 0 <= days <= 365
            assert 0 <= nanos < NANOS_PER_DAY


class TestArrowConversion:
    """Arrow arrays and scalars."""

    @pytest.mark.parametrize("data_type", available_data_types(), ids=str)
    def test_build_arrow_array(self, data_type):
        rng = rng_from_seed(21)
        values = [generate_value(rng, data_type) for _ in range(20)] + [GeneratedValue(data_type)]
        array = build_arrow_array(data_type, values)
        assert array.type == data_type.to_arrow_type()
        assert len(array) == 21
        assert array.null_count == sum(v.is_null() for v in values)

    def test_null_scalar(self):
        scalar = GeneratedValue(INT32).to_arrow_scalar()
        assert scalar.type == pa.int32()
        assert not scalar.is_valid

    def test_null_scalar_keeps_decimal_type(self):
        scalar = GeneratedValue(FuzzerDataType.decimal(10, 2)).to_arrow_scalar()
        assert scalar.type == pa.decimal128(10, 2)
        assert not scalar.is_valid

    def test_date_scalar(self):
        scalar = GeneratedValue(DATE32, 1).to_arrow_scalar()
        assert scalar.type == pa.date32()
        assert str(scalar.as_py()) == "1970-01-02"


ENGINE_ROUND_TRIP_TYPES = [
    INT32, INT64, UINT32, UINT64, FLOAT32, FLOAT64, BOOLEAN,
    FuzzerDataType.decimal(10, 2), FuzzerDataType.decimal(5, 5),
    DATE32, TIME64_NANOSECOND, TIMESTAMP, FuzzerDataType.timestamp("+08:00"),
    INTERVAL_MONTH_DAY_NANO,
]


class TestEngineRoundTrip:
    """The typed SQL literal evaluates to the same Arrow scalar as the native value."""

    @pytest.mark.parametrize("data_type", ENGINE_ROUND_TRIP_TYPES, ids=str)
    def test_select_literal(self, data_type):
        engine = DataFusionEngine()
        rng = rng_from_seed(100)
        for _ in range(5):
            value = generate_value(rng, data_type, NON_NULL)
            batches = engine.execute_sync(f"SELECT {value.to_sql_expr().sql()} AS v")
            actual = batches[0].column(0)[0]
            expected = value.to_arrow_scalar()
            assert actual.type == expected.type
            assert actual.equals(expected), value.to_sql_string()

    def test_float_values_keep_kind(self):
        rng = rng_from_seed(1)
        value = generate_value(rng, FLOAT32, NON_NULL)
        assert value.data_type.kind == TypeKind.FLOAT32
        assert isinstance(value.value, float)
