import math
import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional, Union

from kpi_dashboard.config import settings
from kpi_dashboard.models import ValueFormat


def _is_renderable(value: Any) -> bool:
    if value is None or isinstance(value, bool):
        return False
    try:
        return math.isfinite(value)
    except TypeError:
        return False


def _format_currency(value: float) -> str:
    sign = "-" if value < 0 else ""
    # Half-up: 2.5 -> 3
    rounded = Decimal(abs(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    amount = f"{rounded:,.0f}"
    if amount == "0":
        sign = ""
    return f"{sign}{settings.CURRENCY_SYMBOL}{amount}"


def _format_plain(value: float) -> str:
    text = f"{value:,.3f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def _format_compact(value: float) -> str:
    magnitude = abs(value)
    if magnitude >= 1_000_000:
        return f"{value / 1_000_000:.1f}M"
    if magnitude >= 1_000:
        return f"{value / 1_000:.1f}K"
    return _format_plain(value)


def format_value(value: Any, fmt: Optional[Union[ValueFormat, str]] = None) -> str:
    """
    Render a KPI value for display.

    currency → "$1,235"      percent → "45.0%"      number → "1.2M" / "3.4K" / "12.5"
    Non-finite input always renders as "0".
    """
    if not _is_renderable(value):
        return "0"
    value = float(value)

    if isinstance(fmt, str) and not isinstance(fmt, ValueFormat):
        fmt = ValueFormat._value2member_map_.get(fmt.strip().lower(), ValueFormat.number)

    if fmt == ValueFormat.currency:
        return _format_currency(value)
    if fmt == ValueFormat.percent:
        return f"{value:,.1f}%"
    return _format_compact(value)


def format_column_name(name: str) -> str:
    """'total_revenue' → 'Total Revenue'"""
    spaced = re.sub(r"[_-]", " ", name)
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), spaced)
