import json

from kpi_dashboard.core.chart_builder import build_chart
from kpi_dashboard.core.visualization import chart_to_plotly_json
from kpi_dashboard.models import ChartDefinition


def render(rows, type_, measures=("revenue",)):
    definition = ChartDefinition(title="Test", type=type_, measures=list(measures), dimensions=["region"])
    return json.loads(chart_to_plotly_json(build_chart(rows, definition)))


def test_bar_generates_json(sales_rows):
    """A bar chart renders one Bar trace per measure."""
    figure = render(sales_rows, "bar", measures=("revenue", "units"))
    assert "data" in figure and "layout" in figure
    assert [t["type"] for t in figure["data"]] == ["bar", "bar"]
    assert figure["layout"]["barmode"] == "group"

def test_stacked_bar_mode(sales_rows):
    figure = render(sales_rows, "stacked-bar")
    assert figure["layout"]["barmode"] == "stack"

def test_area_is_filled(sales_rows):
    figure = render(sales_rows, "area")
    assert figure["data"][0]["fill"] == "tozeroy"

def test_pie_uses_labels(sales_rows):
    figure = render(sales_rows, "pie")
    assert figure["data"][0]["labels"] == ["APAC", "US", "EU", "Unknown"]

def test_heatmap(sales_rows):
    figure = render(sales_rows, "heatmap", measures=("revenue", "units"))
    assert figure["data"][0]["type"] == "heatmap"
    assert figure["data"][0]["y"] == ["revenue", "units"]
