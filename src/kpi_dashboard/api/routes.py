from contextlib import asynccontextmanager
from typing import Any, Dict, List, Literal, Optional, Union

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from kpi_dashboard.config import settings
from kpi_dashboard.utils.exceptions import AppException
from kpi_dashboard.utils.logger import get_logger

# Import core logic
from kpi_dashboard.core.aggregation import clear_cache, compute_kpis
from kpi_dashboard.core.chart_builder import build_charts
from kpi_dashboard.core.filters import apply_filters, get_filter_options
from kpi_dashboard.core.limits import get_data_limit_options, is_large_dataset
from kpi_dashboard.core.session import CacheSweeper, DatasetStore
from kpi_dashboard.core.visualization import chart_to_plotly_json

logger = get_logger(__name__)

# --- In-Memory Session Store ---
store = DatasetStore()
sweeper = CacheSweeper()


@asynccontextmanager
async def lifespan(app: FastAPI):
    sweeper.start()
    yield
    sweeper.stop(timeout=1.0)


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs",
    lifespan=lifespan,
)


class DatasetUpload(BaseModel):
    rows: List[Dict[str, Any]]
    name: Optional[str] = None


class KPIRequest(BaseModel):
    kpis: List[Dict[str, Any]]
    filters: Dict[str, List[Union[str, int, float, bool, None]]] = Field(default_factory=dict)
    limit: Optional[int] = Field(None, gt=0)


class ChartRequest(BaseModel):
    charts: List[Dict[str, Any]]
    filters: Dict[str, List[Union[str, int, float, bool, None]]] = Field(default_factory=dict)
    limit: Optional[int] = Field(None, gt=0)
    format: Literal["json", "plotly"] = "json"


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    logger.warning(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "online", "message": f"{settings.APP_NAME} is running", "datasets": len(store)}


@app.post("/datasets")
def upload_dataset(payload: DatasetUpload):
    """
    Registers a parsed dataset and returns its inferred schema.
    Expected Payload: {"rows": [{"region": "EU", "revenue": 100}, ...], "name": "sales"}
    """
    logger.info(f"Received dataset upload: {payload.name or 'unnamed'} ({len(payload.rows)} rows)")
    entry = store.add(payload.rows, name=payload.name)
    return {
        "id": entry.id,
        "name": entry.name,
        "rows": len(entry.rows),
        "is_large_dataset": is_large_dataset(entry.rows),
        "schema": entry.column_schema.model_dump(),
    }


@app.get("/datasets/{dataset_id}/schema")
def get_schema(dataset_id: str):
    return store.get(dataset_id).column_schema.model_dump()


@app.get("/datasets/{dataset_id}/filter-options")
def filter_options(dataset_id: str):
    entry = store.get(dataset_id)
    options = get_filter_options(entry.rows, entry.column_schema)
    return {name: option.model_dump() for name, option in options.items()}


@app.get("/data-limit-options")
def data_limit_options():
    return [option.model_dump() for option in get_data_limit_options()]


def filtered_rows(rows: List[Dict[str, Any]], filters: Dict[str, List[Any]], limit: Optional[int]) -> List[Dict[str, Any]]:
    # One match past the limit lets the engine report whether rows were cut off
    scan_limit = limit + 1 if limit is not None else None
    return apply_filters(rows, filters, limit=scan_limit)


@app.post("/datasets/{dataset_id}/kpis")
def kpis(dataset_id: str, payload: KPIRequest):
    entry = store.get(dataset_id)
    rows = filtered_rows(entry.rows, payload.filters, payload.limit)
    results = compute_kpis(rows, payload.kpis, limit=payload.limit)
    return {
        "kpis": [kpi.model_dump(mode="json") for kpi in results],
        "total_records": min(len(rows), payload.limit or len(rows)),
        "limited": payload.limit is not None and len(rows) > payload.limit,
    }


@app.post("/datasets/{dataset_id}/charts")
def charts(dataset_id: str, payload: ChartRequest):
    entry = store.get(dataset_id)
    rows = filtered_rows(entry.rows, payload.filters, payload.limit)
    built = build_charts(rows, payload.charts, limit=payload.limit)

    if payload.format == "plotly":
        return {"charts": [{"id": c.id, "title": c.title, "figure": chart_to_plotly_json(c)} for c in built]}
    return {"charts": [c.model_dump(mode="json") for c in built]}


@app.delete("/datasets/{dataset_id}")
def delete_dataset(dataset_id: str):
    store.remove(dataset_id)
    clear_cache()
    return {"message": f"Dataset {dataset_id} removed."}


@app.post("/cache/clear")
def clear_aggregation_cache():
    return {"cleared": clear_cache()}
