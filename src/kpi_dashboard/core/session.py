"""
In-memory dataset store and the periodic cache sweep.

The store and the aggregation cache each hold their own lock; neither lock is
held while calling into the other, so they can never deadlock.
"""
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from kpi_dashboard.config import settings
from kpi_dashboard.core.aggregation import AggregationCache, default_cache
from kpi_dashboard.core.schema_inference import as_rows, infer_schema
from kpi_dashboard.models import Dataset, Schema
from kpi_dashboard.utils.exceptions import DatasetNotFoundError
from kpi_dashboard.utils.logger import get_logger

logger = get_logger(__name__)


class StoredDataset(BaseModel):
    """A dataset held in memory together with its derived schema."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    rows: Dataset
    column_schema: Schema
    created_at: datetime


class DatasetStore:
    def __init__(self):
        self._datasets: Dict[str, StoredDataset] = {}
        self._lock = threading.Lock()

    def add(self, dataset: Any, name: Optional[str] = None) -> StoredDataset:
        """Infer the schema and register the rows under a fresh id."""
        rows = as_rows(dataset)
        schema = infer_schema(rows)
        dataset_id = uuid.uuid4().hex
        entry = StoredDataset(
            id=dataset_id,
            name=name or dataset_id,
            rows=rows,
            column_schema=schema,
            created_at=datetime.now(timezone.utc),
        )
        with self._lock:
            self._datasets[dataset_id] = entry
        logger.info(f"Stored dataset {dataset_id} ({len(rows)} rows)")
        return entry

    def get(self, dataset_id: str) -> StoredDataset:
        with self._lock:
            entry = self._datasets.get(dataset_id)
        if entry is None:
            raise DatasetNotFoundError(dataset_id)
        return entry

    def remove(self, dataset_id: str) -> None:
        with self._lock:
            entry = self._datasets.pop(dataset_id, None)
        if entry is None:
            raise DatasetNotFoundError(dataset_id)
        logger.info(f"Removed dataset {dataset_id}")

    def ids(self) -> List[str]:
        with self._lock:
            return list(self._datasets)

    def clear(self) -> None:
        with self._lock:
            self._datasets.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._datasets)

    def __contains__(self, dataset_id: str) -> bool:
        with self._lock:
            return dataset_id in self._datasets


class CacheSweeper:
    """
    Clears an aggregation cache every `interval` seconds on a daemon thread.
    Owned by the server process; the engine itself never starts one.
    """

    def __init__(self, cache: Optional[AggregationCache] = None, interval: Optional[float] = None):
        self.cache = default_cache if cache is None else cache
        self.interval = settings.CACHE_SWEEP_INTERVAL_SECONDS if interval is None else interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def sweep(self) -> int:
        return self.cache.clear()

    def _run(self) -> None:
        # wait() returns True once stop() is called
        while not self._stop.wait(self.interval):
            self.sweep()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="cache-sweeper", daemon=True)
        self._thread.start()
        logger.info(f"Cache sweeper started (every {self.interval}s)")

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Cache sweeper stopped")
