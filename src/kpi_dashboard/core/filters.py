from typing import Any, Dict, Iterable, Mapping, Optional

from kpi_dashboard.config import settings
from kpi_dashboard.core.formatting import format_column_name
from kpi_dashboard.core.schema_inference import as_rows
from kpi_dashboard.models import Dataset, FilterChoice, FilterOption, Row, Schema
from kpi_dashboard.utils.exceptions import InvalidInputError
from kpi_dashboard.utils.logger import get_logger
from kpi_dashboard.utils.numeric import is_missing, stringify

logger = get_logger(__name__)

MISSING_SENTINELS = ("null", "undefined")

FilterSet = Mapping[str, Iterable[Any]]


def _normalize(filters: Optional[FilterSet]) -> Dict[str, frozenset]:
    """Drop empty allow-lists; they impose no constraint."""
    if not filters:
        return {}
    active = {}
    for column, allowed in filters.items():
        if allowed is None:
            continue
        if isinstance(allowed, str):
            allowed = [allowed]
        values = frozenset(stringify(v) for v in allowed)
        if values:
            active[column] = values
    return active


def row_matches(row: Row, filters: Mapping[str, frozenset]) -> bool:
    for column, allowed in filters.items():
        value = row.get(column)
        if is_missing(value):
            if not any(s in allowed for s in MISSING_SENTINELS):
                return False
        elif stringify(value) not in allowed:
            return False
    return True


def _check_limit(limit: Optional[int]) -> None:
    if limit is not None and limit <= 0:
        raise InvalidInputError("Row limit must be greater than zero.")


def apply_filters(dataset: Any, filters: Optional[FilterSet] = None, limit: Optional[int] = None) -> Dataset:
    """
    Return the rows matching every allow-list, in dataset order.

    With a limit the scan stops at the limit-th match, so the result is the
    first matches in row order rather than a sample of all of them.
    """
    _check_limit(limit)
    rows = as_rows(dataset)
    active = _normalize(filters)

    if not active:
        return rows[:limit] if limit is not None else rows

    filtered = []
    for row in rows:
        if row_matches(row, active):
            filtered.append(row)
            if limit is not None and len(filtered) >= limit:
                break

    logger.debug(f"Filtered {len(rows)} rows to {len(filtered)} on {sorted(active)}")
    return filtered


def get_filter_options(
    dataset: Any,
    schema: Schema,
    sample_size: Optional[int] = None,
) -> Dict[str, FilterOption]:
    """
    Distinct values per dimension, for building filter pickers.
    Dimensions with a single value or more than MAX_FILTER_OPTIONS values are left out.
    """
    rows = as_rows(dataset)
    sample_size = settings.FILTER_OPTIONS_SAMPLE_SIZE if sample_size is None else sample_size
    max_options = settings.MAX_FILTER_OPTIONS
    sample = rows[:sample_size]
    is_sampled = len(rows) > sample_size

    options = {}
    for dimension in schema.dimensions:
        seen = set()
        for row in sample:
            value = row.get(dimension.name)
            if is_missing(value):
                continue
            seen.add(stringify(value))
            if len(seen) > max_options:
                break

        if 1 < len(seen) <= max_options:
            options[dimension.name] = FilterOption(
                label=format_column_name(dimension.name),
                options=[FilterChoice(label=v, value=v) for v in sorted(seen)],
                is_sampled=is_sampled,
            )
    return options
