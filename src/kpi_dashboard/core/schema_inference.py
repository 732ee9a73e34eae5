"""
schema_inference.py
─────────────────────────────────────────────────────────────────────────────
Classifies every column of a dataset from a head-of-file sample.

  value kinds    number  → int/float, or a string that parses as a float
                 date    → string matching YYYY-MM-DD
                 string  → everything else
  column type    the dominant kind when it covers ≥ 80% of non-null values,
                 otherwise string
  measure        number column with ≥ 3 unique values and population
                 variance > 0.1; everything else is a dimension
─────────────────────────────────────────────────────────────────────────────
"""

import re
from collections import Counter
from typing import Any, List, Optional, Sequence

import pandas as pd

from kpi_dashboard.config import settings
from kpi_dashboard.models import (
    ColumnDescriptor,
    ColumnStats,
    ColumnType,
    Dataset,
    Schema,
    TopValue,
)
from kpi_dashboard.utils.exceptions import InvalidInputError
from kpi_dashboard.utils.logger import get_logger
from kpi_dashboard.utils.numeric import is_missing, numeric_series, to_number

logger = get_logger(__name__)

DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}")
SAMPLE_VALUE_COUNT = 5
TOP_VALUE_COUNT = 5


def as_rows(dataset: Any) -> Dataset:
    """Accept a list of row dicts or a DataFrame; NaN cells become None."""
    if isinstance(dataset, pd.DataFrame):
        frame = dataset.astype(object).where(dataset.notna(), None)
        return frame.to_dict(orient="records")
    if dataset is None:
        return []
    return dataset if isinstance(dataset, list) else list(dataset)


# ── value classification ─────────────────────────────────────────────────────
def classify_value(value: Any) -> ColumnType:
    if to_number(value) is not None:
        return ColumnType.number
    if isinstance(value, str) and DATE_PATTERN.fullmatch(value):
        return ColumnType.date
    return ColumnType.string


def infer_data_type(values: Sequence[Any], threshold: Optional[float] = None) -> ColumnType:
    """Dominant kind over the non-null values, string when nothing dominates."""
    if not values:
        return ColumnType.string
    threshold = settings.TYPE_DOMINANCE_THRESHOLD if threshold is None else threshold

    counts = Counter(classify_value(v) for v in values)
    total = len(values)
    for kind in (ColumnType.number, ColumnType.date):
        if counts[kind] / total >= threshold:
            return kind
    return ColumnType.string


# ── statistics ───────────────────────────────────────────────────────────────
def calculate_variance(values: Sequence[float]) -> float:
    """Population variance: mean of squared deviations. 0 for fewer than 2 values."""
    if len(values) < 2:
        return 0.0
    return float(pd.Series(values, dtype="float64").var(ddof=0))


def calculate_median(sorted_values: Sequence[float]) -> float:
    n = len(sorted_values)
    mid = n // 2
    if n % 2 == 0:
        return (sorted_values[mid - 1] + sorted_values[mid]) / 2
    return sorted_values[mid]


def _hashable(value: Any) -> Any:
    try:
        hash(value)
    except TypeError:
        return repr(value)
    return value


def calculate_column_stats(values: Sequence[Any], data_type: ColumnType, sample_size: int) -> ColumnStats:
    stats = ColumnStats(count=len(values), null_count=sample_size - len(values))

    if data_type == ColumnType.number:
        numbers = sorted(numeric_series(values).tolist())
        if numbers:
            total = sum(numbers)
            stats.min = numbers[0]
            stats.max = numbers[-1]
            stats.sum = total
            stats.avg = total / len(numbers)
            stats.median = calculate_median(numbers)
            stats.variance = calculate_variance(numbers)

    elif data_type == ColumnType.string and values:
        # Counter keeps first-seen order, and most_common is stable on ties
        frequency = Counter(_hashable(v) for v in values)
        stats.unique_count = len(frequency)
        stats.cardinality = len(frequency) / len(values)
        stats.top_values = [
            TopValue(value=value, count=count)
            for value, count in frequency.most_common(TOP_VALUE_COUNT)
        ]

    return stats


# ── classification ───────────────────────────────────────────────────────────
def should_be_measure(column: ColumnDescriptor, values: Sequence[Any]) -> bool:
    if column.inferred_type != ColumnType.number:
        return False
    if column.unique_value_count < settings.MIN_MEASURE_UNIQUE_VALUES:
        return False

    numbers = numeric_series(values)
    if numbers.empty:
        return False
    # Low variance usually means integer codes (0/1/2 flags), not quantities
    return calculate_variance(numbers.tolist()) > settings.MEASURE_VARIANCE_EPSILON


def _column_names(sample: Dataset) -> List[str]:
    names: dict = {}
    for row in sample:
        for key in row:
            names.setdefault(key, None)
    return list(names)


def describe_column(name: str, sample: Dataset) -> tuple:
    values = [row.get(name) for row in sample]
    values = [v for v in values if not is_missing(v)]
    data_type = infer_data_type(values)

    descriptor = ColumnDescriptor(
        name=name,
        inferred_type=data_type,
        nullable=len(values) < len(sample),
        unique_value_count=len({_hashable(v) for v in values}),
        sample_values=values[:SAMPLE_VALUE_COUNT],
        stats=calculate_column_stats(values, data_type, len(sample)),
    )
    return descriptor, values


def infer_schema(dataset: Any, sample_size: Optional[int] = None) -> Schema:
    """
    Build the column schema for a dataset from its first `sample_size` rows.
    Raises InvalidInputError on an empty dataset.
    """
    rows = as_rows(dataset)
    if not rows:
        raise InvalidInputError("No data to analyze.")

    sample_size = settings.SCHEMA_SAMPLE_SIZE if sample_size is None else sample_size
    if sample_size <= 0:
        raise InvalidInputError("Sample size must be greater than zero.")
    sample = rows[:sample_size]

    columns, measures, dimensions = [], [], []
    for name in _column_names(sample):
        descriptor, values = describe_column(name, sample)
        columns.append(descriptor)
        if should_be_measure(descriptor, values):
            measures.append(descriptor)
        else:
            dimensions.append(descriptor)

    logger.info(
        f"Inferred schema from {len(sample)}/{len(rows)} rows: "
        f"{len(measures)} measures, {len(dimensions)} dimensions"
    )
    return Schema(
        columns=columns,
        measures=measures,
        dimensions=dimensions,
        sample_size=len(sample),
        row_count=len(rows),
    )
