"""
aggregation.py
─────────────────────────────────────────────────────────────────────────────
Scalar KPI computation with memoization.

Cache keys are (calculation, column, fingerprint). The fingerprint hashes the
row count together with the aggregated column's values, so two row sets of
the same length but different content never share an entry. Name and format
are not part of the key: callers sharing a cached value may label and render
it differently.
─────────────────────────────────────────────────────────────────────────────
"""

import hashlib
import threading
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Union

from pydantic import ValidationError

from kpi_dashboard.core.formatting import format_value
from kpi_dashboard.core.limits import apply_limit
from kpi_dashboard.core.schema_inference import as_rows
from kpi_dashboard.models import Calculation, Dataset, KPIDefinition, KPIResult
from kpi_dashboard.utils.exceptions import UnsupportedCalculationError
from kpi_dashboard.utils.logger import get_logger
from kpi_dashboard.utils.numeric import column_numbers, stringify

logger = get_logger(__name__)

COUNT_ALL = "*"


class CacheKey(NamedTuple):
    calculation: str
    column: str
    fingerprint: str


def fingerprint_rows(rows: Dataset, column: str) -> str:
    """
    SHA-256 over the row count and the column's values, in row order.
    Each value is tagged with its type so None and the string "null" differ.
    """
    digest = hashlib.sha256(f"{len(rows)}|".encode("utf-8"))
    if column != COUNT_ALL:
        for row in rows:
            value = row.get(column)
            digest.update(f"{type(value).__name__}\x1e{stringify(value)}".encode("utf-8"))
            digest.update(b"\x1f")
    return digest.hexdigest()


class AggregationCache:
    """
    Process-wide memo of computed KPI values.

    Every read and write takes the instance lock, so one cache can be shared
    by concurrent request handlers. Nothing expires on its own: call clear()
    from a sweeper or a session teardown hook.
    """

    def __init__(self):
        self._entries: Dict[CacheKey, Dict[str, Any]] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: CacheKey) -> Optional[Dict[str, Any]]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            self.hits += 1
            return dict(entry)

    def put(self, key: CacheKey, entry: Dict[str, Any]) -> None:
        with self._lock:
            self._entries[key] = dict(entry)

    def clear(self) -> int:
        with self._lock:
            dropped = len(self._entries)
            self._entries.clear()
            self.hits = 0
            self.misses = 0
        logger.info(f"Aggregation cache cleared ({dropped} entries)")
        return dropped

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        with self._lock:
            return key in self._entries


default_cache = AggregationCache()


def clear_cache() -> int:
    """Drop every entry of the process-wide cache."""
    return default_cache.clear()


# ── operators ─────────────────────────────────────────────────────────────────
def calculate_sum(rows: Iterable[dict], column: str) -> float:
    return float(column_numbers(rows, column).sum())


def calculate_average(rows: Iterable[dict], column: str) -> float:
    numbers = column_numbers(rows, column)
    if numbers.empty:
        return 0.0
    return float(numbers.sum()) / len(numbers)


def calculate_count(rows: Dataset, column: str) -> float:
    if column == COUNT_ALL:
        return float(len(rows))
    present = 0
    for row in rows:
        value = row.get(column)
        if value is not None and value != "":
            present += 1
    return float(present)


def calculate_max(rows: Iterable[dict], column: str) -> float:
    numbers = column_numbers(rows, column)
    return 0.0 if numbers.empty else float(numbers.max())


def calculate_min(rows: Iterable[dict], column: str) -> float:
    numbers = column_numbers(rows, column)
    return 0.0 if numbers.empty else float(numbers.min())


OPERATORS = {
    Calculation.sum: calculate_sum,
    Calculation.avg: calculate_average,
    Calculation.count: calculate_count,
    Calculation.max: calculate_max,
    Calculation.min: calculate_min,
}


def _run_operator(rows: Dataset, definition: KPIDefinition) -> float:
    operator = OPERATORS.get(definition.calculation)
    if operator is None:
        raise UnsupportedCalculationError(str(definition.calculation))
    return operator(rows, definition.column)


def as_kpi_definition(definition: Union[KPIDefinition, Dict[str, Any]]) -> KPIDefinition:
    """Validate a raw mapping; an unknown operator surfaces as UnsupportedCalculationError."""
    if isinstance(definition, KPIDefinition):
        return definition
    try:
        return KPIDefinition.model_validate(definition)
    except ValidationError as e:
        if any(err["loc"] == ("calculation",) for err in e.errors()):
            raise UnsupportedCalculationError(str(definition.get("calculation"))) from e
        raise


def compute_kpi(
    rows: Any,
    definition: Union[KPIDefinition, Dict[str, Any]],
    cache: Optional[AggregationCache] = None,
) -> Optional[KPIResult]:
    """
    Compute one KPI over `rows`. Returns None (with a warning) for an
    unknown operator.
    """
    rows = as_rows(rows)
    cache = default_cache if cache is None else cache
    try:
        definition = as_kpi_definition(definition)
    except UnsupportedCalculationError as e:
        logger.warning(e.message)
        return None

    key = CacheKey(definition.calculation.value, definition.column, fingerprint_rows(rows, definition.column))
    cached = cache.get(key)
    if cached is None:
        value = _run_operator(rows, definition)
        cached = {
            "value": value,
            "formatted_value": format_value(value, definition.format),
            "format": definition.format,
            "calculation": definition.calculation,
            "column": definition.column,
        }
        cache.put(key, cached)
    elif cached["format"] != definition.format:
        cached["formatted_value"] = format_value(cached["value"], definition.format)

    return KPIResult(
        name=definition.name,
        value=cached["value"],
        formatted_value=cached["formatted_value"],
        calculation=cached["calculation"],
        column=cached["column"],
        format=definition.format,
        data_point_count=len(rows),
    )


def compute_kpis(
    dataset: Any,
    definitions: Iterable[Union[KPIDefinition, Dict[str, Any]]],
    limit: Optional[int] = None,
    cache: Optional[AggregationCache] = None,
) -> List[KPIResult]:
    """
    Compute a batch of KPIs over the first `limit` rows. A bad definition is
    logged and skipped; the rest of the batch still runs.
    """
    rows = as_rows(dataset)
    working = apply_limit(rows, limit)
    limited = len(rows) > len(working)

    results = []
    for definition in definitions:
        try:
            kpi = compute_kpi(working, definition, cache=cache)
        except Exception as e:
            name = getattr(definition, "name", None) or (definition.get("name") if isinstance(definition, dict) else None)
            logger.warning(f"Skipping KPI {name!r}: {str(e)}")
            continue
        if kpi is not None:
            kpi.limited = limited
            results.append(kpi)

    logger.info(f"Computed {len(results)} KPIs over {len(working)} rows")
    return results
