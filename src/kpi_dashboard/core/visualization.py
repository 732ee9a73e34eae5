"""
visualization.py
─────────────────────────────────────────────────────────────────────────────
Turns reduced ChartData into a Plotly figure for clients without their own
charting layer.

Chart type → trace
  bar / grouped-bar / stacked-bar → one go.Bar per measure
  line / area                     → go.Scatter lines (area filled to zero)
  pie                             → go.Pie on the primary measure
  scatter                         → go.Scatter markers
  heatmap                         → go.Heatmap, measures × dimension labels
─────────────────────────────────────────────────────────────────────────────
"""

from typing import Optional

import plotly.graph_objects as go

from kpi_dashboard.models import ChartData, ChartType
from kpi_dashboard.utils.exceptions import VisualizationError
from kpi_dashboard.utils.logger import get_logger

logger = get_logger(__name__)

# ── colour palette (dark-theme friendly) ─────────────────────────────────────
CLR_SERIES   = ["#4C9BE8", "#F5A623", "#50E3C2", "#FF4B4B", "#B8E986", "#9013FE"]
CLR_BG       = "rgba(0,0,0,0)"
FONT_COLOR   = "#FFFFFF"

LAYOUT_BASE = dict(
    paper_bgcolor=CLR_BG,
    plot_bgcolor ="rgba(14,17,23,1)",
    font         =dict(color=FONT_COLOR, size=13),
    margin       =dict(l=60, r=40, t=70, b=80),
    xaxis        =dict(gridcolor="#2a2f3a", zerolinecolor="#2a2f3a"),
    yaxis        =dict(gridcolor="#2a2f3a", zerolinecolor="#2a2f3a"),
)


def _apply_layout(fig: go.Figure, title: str, xlabel: Optional[str] = None, ylabel: Optional[str] = None) -> go.Figure:
    updates = dict(**LAYOUT_BASE, title=dict(text=title, font=dict(size=18, color=FONT_COLOR)))
    if xlabel:
        updates["xaxis"] = {**LAYOUT_BASE.get("xaxis", {}), "title": xlabel}
    if ylabel:
        updates["yaxis"] = {**LAYOUT_BASE.get("yaxis", {}), "title": ylabel}
    fig.update_layout(**updates)
    return fig


def _colour(i: int) -> str:
    return CLR_SERIES[i % len(CLR_SERIES)]


def _labels(chart: ChartData) -> list:
    dimension = chart.dimensions[0]
    return [p[dimension] for p in chart.data]


def _series(chart: ChartData, measure: str) -> list:
    return [p.get(measure, 0) for p in chart.data]


def _bar_figure(chart: ChartData) -> go.Figure:
    labels = _labels(chart)
    fig = go.Figure()
    for i, measure in enumerate(chart.measures):
        fig.add_trace(go.Bar(x=labels, y=_series(chart, measure), name=measure, marker_color=_colour(i)))
    barmode = "stack" if chart.type == ChartType.stacked_bar else "group"
    fig.update_layout(barmode=barmode, xaxis_tickangle=-35)
    return fig


def _line_figure(chart: ChartData) -> go.Figure:
    labels = _labels(chart)
    fill = "tozeroy" if chart.type == ChartType.area else None
    fig = go.Figure()
    for i, measure in enumerate(chart.measures):
        fig.add_trace(go.Scatter(
            x=labels, y=_series(chart, measure), name=measure,
            mode="lines+markers", fill=fill,
            line=dict(color=_colour(i), width=2),
        ))
    return fig


def _pie_figure(chart: ChartData) -> go.Figure:
    measure = chart.measures[0]
    return go.Figure(go.Pie(
        labels=_labels(chart),
        values=_series(chart, measure),
        hole=0.35,
        marker=dict(colors=[_colour(i) for i in range(len(chart.data))]),
    ))


def _scatter_figure(chart: ChartData) -> go.Figure:
    labels = _labels(chart)
    fig = go.Figure()
    for i, measure in enumerate(chart.measures):
        fig.add_trace(go.Scatter(
            x=labels, y=_series(chart, measure), name=measure,
            mode="markers", marker=dict(color=_colour(i), size=8, opacity=0.8),
        ))
    return fig


def _heatmap_figure(chart: ChartData) -> go.Figure:
    z = [_series(chart, measure) for measure in chart.measures]
    return go.Figure(go.Heatmap(
        z=z,
        x=_labels(chart),
        y=list(chart.measures),
        colorscale="Blues",
        hovertemplate="<b>%{y}</b> @ %{x}<br>%{z:,.2f}<extra></extra>",
    ))


BUILDERS = {
    ChartType.bar: _bar_figure,
    ChartType.grouped_bar: _bar_figure,
    ChartType.stacked_bar: _bar_figure,
    ChartType.line: _line_figure,
    ChartType.area: _line_figure,
    ChartType.pie: _pie_figure,
    ChartType.scatter: _scatter_figure,
    ChartType.heatmap: _heatmap_figure,
}


def chart_to_figure(chart: ChartData) -> go.Figure:
    fig = BUILDERS[chart.type](chart)
    if chart.type == ChartType.pie:
        return _apply_layout(fig, chart.title)
    return _apply_layout(fig, chart.title, xlabel=chart.dimensions[0], ylabel=", ".join(chart.measures))


def chart_to_plotly_json(chart: ChartData) -> str:
    """Render one chart as Plotly figure JSON."""
    try:
        fig = chart_to_figure(chart)
    except Exception as e:
        logger.error(f"Visualization generation failed for '{chart.title}': {e}", exc_info=True)
        raise VisualizationError(f"Failed to render chart '{chart.title}'.") from e
    return fig.to_json()
