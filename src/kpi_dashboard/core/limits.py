from typing import List, Optional

from kpi_dashboard.config import settings
from kpi_dashboard.models import DataChunk, DataLimitOption, Dataset, LimitedData
from kpi_dashboard.utils.exceptions import InvalidInputError


def apply_limit(rows: Dataset, limit: Optional[int]) -> Dataset:
    """Leading `limit` rows; None keeps everything."""
    if limit is None:
        return rows
    if limit <= 0:
        raise InvalidInputError("Row limit must be greater than zero.")
    return rows[:limit]


def get_data_limit_options() -> List[DataLimitOption]:
    return [
        DataLimitOption(label="Top 50 Records", value=50),
        DataLimitOption(label="Top 100 Records", value=100),
        DataLimitOption(label="Top 1,000 Records", value=1000),
        DataLimitOption(label="Top 10,000 Records", value=10000),
        DataLimitOption(label="All Data", value=None),
    ]


def get_optimized_data(rows: Dataset, limit: Optional[int] = None) -> LimitedData:
    if not limit or limit >= len(rows):
        return LimitedData(
            data=rows,
            is_limited=False,
            total_records=len(rows),
            displayed_records=len(rows),
        )
    return LimitedData(
        data=rows[:limit],
        is_limited=True,
        total_records=len(rows),
        displayed_records=limit,
    )


def is_large_dataset(rows: Dataset) -> bool:
    return len(rows) > settings.LARGE_DATASET_THRESHOLD


def get_data_chunk(rows: Dataset, chunk_index: int, chunk_size: Optional[int] = None) -> DataChunk:
    """One page of rows for paginated transfer of large datasets."""
    chunk_size = settings.DATA_CHUNK_SIZE if chunk_size is None else chunk_size
    if chunk_index < 0 or chunk_size <= 0:
        raise InvalidInputError("Chunk index must be non-negative and chunk size positive.")

    start = chunk_index * chunk_size
    end = min(start + chunk_size, len(rows))
    start = min(start, end)
    return DataChunk(
        data=rows[start:end],
        start_index=start,
        end_index=end,
        total_rows=len(rows),
        has_more=end < len(rows),
    )
