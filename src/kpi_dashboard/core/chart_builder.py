from typing import Any, Dict, Iterable, List, Optional, Union

from kpi_dashboard.config import settings
from kpi_dashboard.core.aggregation import calculate_sum
from kpi_dashboard.core.limits import apply_limit
from kpi_dashboard.core.reduction import reduce_data_for_visualization
from kpi_dashboard.core.schema_inference import as_rows
from kpi_dashboard.models import ChartData, ChartDefinition, ChartType, Dataset, RenderHint, Row
from kpi_dashboard.utils.exceptions import IncompleteChartDefinitionError
from kpi_dashboard.utils.logger import get_logger
from kpi_dashboard.utils.numeric import is_missing, stringify

logger = get_logger(__name__)

UNKNOWN_LABEL = "Unknown"

COMPONENTS = {
    ChartType.bar: "BarChart",
    ChartType.line: "LineChart",
    ChartType.area: "AreaChart",
    ChartType.pie: "PieChart",
    ChartType.scatter: "ScatterChart",
}


def group_rows(rows: Dataset, dimension: str) -> Dict[str, List[Row]]:
    """Bucket rows by the string label of `dimension`, in first-seen order."""
    groups: Dict[str, List[Row]] = {}
    for row in rows:
        value = row.get(dimension)
        key = UNKNOWN_LABEL if is_missing(value) or value == "" else stringify(value)
        groups.setdefault(key, []).append(row)
    return groups


def sort_chart_data(points: List[Row], chart_type: ChartType, dimension: str, primary_measure: str) -> List[Row]:
    if chart_type in (ChartType.line, ChartType.area):
        # Label order, not time order: upstream must supply sortable labels
        return sorted(points, key=lambda p: str(p[dimension]))
    return sorted(points, key=lambda p: p.get(primary_measure) or 0, reverse=True)


def aggregate_chart_points(rows: Dataset, definition: ChartDefinition) -> List[Row]:
    """One sorted point per group of the primary dimension, each measure summed."""
    if not definition.measures or not definition.dimensions:
        raise IncompleteChartDefinitionError(
            f"Chart '{definition.title}' needs at least one measure and one dimension."
        )

    dimension = definition.dimensions[0]
    measures = definition.measures

    points = []
    for label, group in group_rows(rows, dimension).items():
        point = {dimension: label}
        for measure in measures:
            point[measure] = calculate_sum(group, measure)
        points.append(point)

    return sort_chart_data(points, definition.type, dimension, measures[0])


def resolve_render_hint(definition: ChartDefinition) -> RenderHint:
    primary_measure = definition.measures[0]
    primary_dimension = definition.dimensions[0]
    component = COMPONENTS.get(definition.type)

    if definition.type == ChartType.pie:
        return RenderHint(component=component, data_key=primary_measure, name_key=primary_dimension)
    return RenderHint(component=component, data_key=primary_measure, x_axis_key=primary_dimension)


def as_chart_definition(definition: Union[ChartDefinition, Dict[str, Any]]) -> ChartDefinition:
    if isinstance(definition, ChartDefinition):
        return definition
    return ChartDefinition.model_validate(definition)


def build_chart(
    dataset: Any,
    definition: Union[ChartDefinition, Dict[str, Any]],
    limit: Optional[int] = None,
    max_points: Optional[int] = None,
    chart_id: Optional[str] = None,
) -> ChartData:
    """
    Group, aggregate, sort and reduce `dataset` into the points of one chart.
    Raises IncompleteChartDefinitionError when measures or dimensions are missing.
    """
    definition = as_chart_definition(definition)
    rows = as_rows(dataset)
    working = apply_limit(rows, limit)
    max_points = settings.MAX_CHART_DATA_POINTS if max_points is None else max_points

    points = aggregate_chart_points(working, definition)
    data = reduce_data_for_visualization(
        points, definition.type, definition.dimensions[0], definition.measures, cap=max_points
    )

    return ChartData(
        id=definition.id or chart_id or "chart_0",
        title=definition.title,
        type=definition.type,
        data=data,
        measures=list(definition.measures),
        dimensions=list(definition.dimensions),
        hint=resolve_render_hint(definition),
        data_point_count=len(working),
        limited=len(rows) > len(working),
        reduced=len(points) > len(data),
    )


def build_charts(
    dataset: Any,
    definitions: Iterable[Union[ChartDefinition, Dict[str, Any]]],
    limit: Optional[int] = None,
    max_points: Optional[int] = None,
) -> List[ChartData]:
    """Build every chart it can; incomplete or empty ones are logged and skipped."""
    rows = as_rows(dataset)
    charts = []
    for index, definition in enumerate(definitions):
        try:
            chart = build_chart(rows, definition, limit=limit, max_points=max_points, chart_id=f"chart_{index}")
        except Exception as e:
            logger.warning(f"Skipping chart {index}: {str(e)}")
            continue
        if not chart.data:
            logger.warning(f"Skipping chart '{chart.title}': no data points")
            continue
        charts.append(chart)
    return charts
