import math
from typing import Any, Iterable, Optional

import numpy as np
import pandas as pd


def is_missing(value: Any) -> bool:
    """True for None and float NaN, the two ways a cell can be absent."""
    if value is None:
        return True
    return isinstance(value, float) and math.isnan(value)


def to_number(value: Any) -> Optional[float]:
    """
    Parse a scalar cell into a float, or None when it is not numeric.
    Numbers pass straight through; strings are stripped and parsed.
    Booleans are flags, not quantities, and never count as numbers.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, np.integer, np.floating)):
        number = float(value)
        return None if math.isnan(number) else number
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
        return None if math.isnan(number) else number
    return None


def numeric_series(values: Iterable[Any]) -> pd.Series:
    """Float series of the parseable values, non-numeric cells dropped."""
    parsed = [to_number(v) for v in values]
    return pd.Series([p for p in parsed if p is not None], dtype="float64")


def column_numbers(rows: Iterable[dict], column: str) -> pd.Series:
    return numeric_series(row.get(column) for row in rows)


def stringify(value: Any) -> str:
    """
    Render a cell the way the upstream JSON producer does, so that allow-lists
    and group labels built from serialized data line up with in-memory rows.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (float, np.floating)):
        if math.isfinite(value) and float(value).is_integer():
            return str(int(value))
        return str(float(value))
    if isinstance(value, np.integer):
        return str(int(value))
    return str(value)
