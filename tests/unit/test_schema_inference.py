import pandas as pd
import pytest

from kpi_dashboard.core.schema_inference import (
    calculate_median,
    calculate_variance,
    classify_value,
    infer_data_type,
    infer_schema,
)
from kpi_dashboard.models import ColumnType
from kpi_dashboard.utils.exceptions import InvalidInputError

# --- Type inference ---

def test_type_threshold_85_percent_numeric_is_number():
    """17 numbers and 3 junk strings (85%) still infer as number."""
    values = list(range(17)) + ["n/a", "unknown", "-"]
    assert infer_data_type(values) == ColumnType.number

def test_type_threshold_79_percent_numeric_is_string():
    """79 numbers and 21 strings fall below the 80% bar."""
    values = list(range(79)) + ["x"] * 21
    assert infer_data_type(values) == ColumnType.string

def test_numeric_strings_count_as_numbers():
    assert infer_data_type(["1", " 2.5 ", "3"]) == ColumnType.number

def test_date_strings_infer_as_date():
    assert infer_data_type(["2024-01-01", "2024-02-01", "2024-03-01"]) == ColumnType.date

def test_date_must_match_the_whole_string():
    assert infer_data_type(["2024-01-01\n"] * 3) == ColumnType.string
    assert classify_value("2024-01-01 extra") == ColumnType.string
    assert classify_value("2024-01-01") == ColumnType.date

def test_booleans_are_not_numbers():
    assert infer_data_type([True, False, True]) == ColumnType.string

def test_no_values_defaults_to_string():
    assert infer_data_type([]) == ColumnType.string

# --- Measure / dimension classification ---

def test_numeric_column_is_measure(sales_rows):
    schema = infer_schema(sales_rows)
    assert "revenue" in schema.measure_names()
    assert "units" in schema.measure_names()
    assert set(schema.dimension_names()) == {"region", "product", "date"}

def test_two_unique_values_is_dimension_regardless_of_variance():
    """A 0/100 column has huge variance but only two distinct values."""
    rows = [{"flag": v} for v in [0, 100] * 10]
    schema = infer_schema(rows)
    assert schema.get("flag").inferred_type == ColumnType.number
    assert schema.dimension_names() == ["flag"]

def test_low_variance_codes_are_dimensions():
    """98 ones, a 0 and a 2: three unique values but variance 0.02."""
    rows = [{"status": 1} for _ in range(98)] + [{"status": 0}, {"status": 2}]
    schema = infer_schema(rows)
    assert schema.measures == []
    assert schema.get("status").stats.variance == pytest.approx(0.02)

def test_string_column_is_dimension():
    schema = infer_schema([{"city": c} for c in ["Oslo", "Rome", "Lima", "Oslo"]])
    assert schema.dimension_names() == ["city"]

# --- Stats ---

def test_numeric_stats():
    schema = infer_schema([{"x": v} for v in [3, 1, 2, 4]])
    stats = schema.get("x").stats
    assert stats.min == 1
    assert stats.max == 4
    assert stats.sum == 10
    assert stats.avg == 2.5
    assert stats.median == 2.5
    assert stats.variance == pytest.approx(1.25)

def test_string_stats_top_values_ties_in_first_seen_order():
    schema = infer_schema([{"c": v} for v in ["b", "a", "a", "b", "c"]])
    stats = schema.get("c").stats
    assert stats.unique_count == 3
    assert stats.cardinality == pytest.approx(0.6)
    assert [(t.value, t.count) for t in stats.top_values] == [("b", 2), ("a", 2), ("c", 1)]

def test_top_values_capped_at_five():
    """Labels, not numeric strings: the column has to infer as string to get top values."""
    labels = ["v0"] * 3 + ["v1"] * 2 + [f"v{i}" for i in range(2, 10)]
    stats = infer_schema([{"c": v} for v in labels]).get("c").stats
    assert stats.unique_count == 10
    assert [(t.value, t.count) for t in stats.top_values] == [
        ("v0", 3), ("v1", 2), ("v2", 1), ("v3", 1), ("v4", 1),
    ]

def test_median_odd_and_even():
    assert calculate_median([1, 2, 3]) == 2
    assert calculate_median([1, 2, 3, 4]) == 2.5

def test_variance_of_single_value_is_zero():
    assert calculate_variance([42]) == 0.0

# --- Sampling and missing values ---

def test_empty_dataset_raises():
    with pytest.raises(InvalidInputError):
        infer_schema([])

def test_missing_keys_are_tolerated():
    rows = [{"a": 1, "b": "x"}, {"a": 2}, {"a": 3, "b": None}]
    schema = infer_schema(rows)
    b = schema.get("b")
    assert b.nullable is True
    assert b.sample_values == ["x"]
    assert b.stats.count == 1
    assert b.stats.null_count == 2
    assert schema.get("a").nullable is False

def test_columns_in_first_seen_order():
    schema = infer_schema([{"a": 1}, {"b": 2, "a": 3}, {"c": 4}])
    assert [c.name for c in schema.columns] == ["a", "b", "c"]

def test_sample_is_a_prefix():
    rows = [{"v": "x"}, {"v": "y"}, {"v": 1}]
    schema = infer_schema(rows, sample_size=2)
    assert schema.sample_size == 2
    assert schema.row_count == 3
    assert schema.get("v").unique_value_count == 2

def test_sample_values_capped_at_five():
    schema = infer_schema([{"n": i} for i in range(10)])
    assert schema.get("n").sample_values == [0, 1, 2, 3, 4]

def test_dataframe_input():
    """A DataFrame is accepted and NaN cells are treated as missing."""
    df = pd.DataFrame({"revenue": [10.0, None, 30.0, 50.0], "region": ["EU", "US", None, "EU"]})
    schema = infer_schema(df)
    assert schema.get("revenue").nullable is True
    assert schema.get("revenue").stats.sum == 90
    assert schema.get("region").stats.unique_count == 2
