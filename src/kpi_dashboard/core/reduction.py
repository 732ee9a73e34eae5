"""
reduction.py
─────────────────────────────────────────────────────────────────────────────
Bounds the number of points a chart receives, choosing the strategy that
keeps each chart type readable.

  pie        → top 7 slices + one "Others" slice holding the remainder
  line/area  → every ceil(n / cap)-th point, starting at the first
  bar/other  → first min(50, cap) points of the descending sequence

Strategies run only when a chart has more points than the cap.
─────────────────────────────────────────────────────────────────────────────
"""

import math
from typing import List, Optional, Sequence

from kpi_dashboard.config import settings
from kpi_dashboard.models import ChartType, Row
from kpi_dashboard.utils.logger import get_logger

logger = get_logger(__name__)

OTHERS_LABEL = "Others"


def reduce_for_pie(
    points: List[Row],
    dimension: str,
    measures: Sequence[str],
    max_categories: Optional[int] = None,
) -> List[Row]:
    """
    Keep the largest `max_categories - 1` slices and fold the rest into "Others".
    Every measure of the "Others" slice is the exact sum of the folded slices.
    """
    max_categories = settings.PIE_MAX_CATEGORIES if max_categories is None else max_categories
    if len(points) <= max_categories:
        return points

    primary = measures[0]
    ranked = sorted(points, key=lambda p: p.get(primary) or 0, reverse=True)
    top, rest = ranked[:max_categories - 1], ranked[max_categories - 1:]

    others = {dimension: OTHERS_LABEL}
    for measure in measures:
        others[measure] = sum(p.get(measure) or 0 for p in rest)
    return top + [others]


def reduce_for_time_series(points: List[Row], cap: int) -> List[Row]:
    """Uniform stride sampling; values between sampled indices are dropped."""
    target = min(cap, len(points))
    if target <= 0:
        return []
    stride = math.ceil(len(points) / target)
    return points[::stride]


def reduce_for_bar(points: List[Row], cap: int, max_bars: Optional[int] = None) -> List[Row]:
    max_bars = settings.BAR_MAX_POINTS if max_bars is None else max_bars
    return points[:min(max_bars, cap)]


def reduce_data_for_visualization(
    points: List[Row],
    chart_type: ChartType,
    dimension: str,
    measures: Sequence[str],
    cap: Optional[int] = None,
) -> List[Row]:
    cap = settings.MAX_CHART_DATA_POINTS if cap is None else cap
    if len(points) <= cap:
        return points

    logger.info(f"Reducing {len(points)} data points to {cap} for {chart_type.value} chart")

    if chart_type == ChartType.pie:
        return reduce_for_pie(points, dimension, measures)
    if chart_type in (ChartType.line, ChartType.area):
        return reduce_for_time_series(points, cap)
    return reduce_for_bar(points, cap)
