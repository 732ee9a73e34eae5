"""
KPI dashboard engine: schema inference, filtering, cached KPI aggregation
and size-bounded chart data.
"""
from kpi_dashboard.core.aggregation import AggregationCache, clear_cache, compute_kpi, compute_kpis
from kpi_dashboard.core.chart_builder import build_chart, build_charts
from kpi_dashboard.core.filters import apply_filters, get_filter_options
from kpi_dashboard.core.formatting import format_value
from kpi_dashboard.core.schema_inference import infer_schema

__all__ = [
    "AggregationCache",
    "apply_filters",
    "build_chart",
    "build_charts",
    "clear_cache",
    "compute_kpi",
    "compute_kpis",
    "format_value",
    "get_filter_options",
    "infer_schema",
]
