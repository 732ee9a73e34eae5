"""
Domain models shared by the engine and the API layer.
"""
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

Row = Dict[str, Any]
Dataset = List[Row]


class ColumnType(str, Enum):
    number = "number"
    date = "date"
    string = "string"


class TopValue(BaseModel):
    value: Any
    count: int


class ColumnStats(BaseModel):
    """
    Summary statistics for a sampled column. Numeric fields are filled for
    number columns, the cardinality fields for string columns.
    """
    count: int = 0
    null_count: int = 0
    # number
    min: Optional[float] = None
    max: Optional[float] = None
    sum: Optional[float] = None
    avg: Optional[float] = None
    median: Optional[float] = None
    variance: Optional[float] = None
    # string
    unique_count: Optional[int] = None
    cardinality: Optional[float] = None
    top_values: Optional[List[TopValue]] = None


class ColumnDescriptor(BaseModel):
    """Represents metadata for a single column."""
    name: str
    inferred_type: ColumnType
    nullable: bool
    unique_value_count: int
    sample_values: List[Any] = Field(default_factory=list)
    stats: ColumnStats


class Schema(BaseModel):
    columns: List[ColumnDescriptor]
    measures: List[ColumnDescriptor]
    dimensions: List[ColumnDescriptor]
    sample_size: int
    row_count: int

    def measure_names(self) -> List[str]:
        return [c.name for c in self.measures]

    def dimension_names(self) -> List[str]:
        return [c.name for c in self.dimensions]

    def get(self, name: str) -> Optional[ColumnDescriptor]:
        for column in self.columns:
            if column.name == name:
                return column
        return None


class Calculation(str, Enum):
    sum = "sum"
    avg = "avg"
    count = "count"
    max = "max"
    min = "min"


class ValueFormat(str, Enum):
    currency = "currency"
    percent = "percent"
    number = "number"


class KPIDefinition(BaseModel):
    """A single scalar metric: one operator over one column."""
    model_config = ConfigDict(frozen=True)

    name: str
    calculation: Calculation
    column: str
    format: ValueFormat = ValueFormat.number

    @field_validator("calculation", mode="before")
    @classmethod
    def normalize_calculation(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip().lower()
            return "avg" if v == "average" else v
        return v

    @field_validator("format", mode="before")
    @classmethod
    def normalize_format(cls, v: Any) -> Any:
        if v is None:
            return ValueFormat.number
        if isinstance(v, str):
            v = v.strip().lower()
            return v if v in ValueFormat._value2member_map_ else ValueFormat.number
        return v


class KPIResult(BaseModel):
    name: str
    value: float
    formatted_value: str
    calculation: Calculation
    column: str
    format: ValueFormat
    data_point_count: int = 0
    limited: bool = False


class ChartType(str, Enum):
    bar = "bar"
    line = "line"
    area = "area"
    pie = "pie"
    scatter = "scatter"
    stacked_bar = "stacked-bar"
    grouped_bar = "grouped-bar"
    heatmap = "heatmap"


class ChartDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    type: ChartType
    measures: List[str] = Field(default_factory=list)
    dimensions: List[str] = Field(default_factory=list)
    id: Optional[str] = None


class RenderHint(BaseModel):
    """Axis keys a front end needs to draw the chart."""
    component: Optional[str] = None
    data_key: str
    x_axis_key: Optional[str] = None
    name_key: Optional[str] = None
    margin: Dict[str, int] = Field(
        default_factory=lambda: {"top": 20, "right": 30, "left": 20, "bottom": 5}
    )


class ChartData(BaseModel):
    id: str
    title: str
    type: ChartType
    data: List[Row]
    measures: List[str]
    dimensions: List[str]
    hint: RenderHint
    data_point_count: int
    limited: bool = False
    reduced: bool = False


class FilterChoice(BaseModel):
    label: str
    value: str


class FilterOption(BaseModel):
    label: str
    options: List[FilterChoice]
    is_sampled: bool = False


class DataLimitOption(BaseModel):
    label: str
    value: Optional[int] = None


class LimitedData(BaseModel):
    data: Dataset
    is_limited: bool
    total_records: int
    displayed_records: int


class DataChunk(BaseModel):
    data: Dataset
    start_index: int
    end_index: int
    total_rows: int
    has_more: bool
