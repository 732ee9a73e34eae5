import pytest

from kpi_dashboard.core.aggregation import AggregationCache


@pytest.fixture
def sales_rows():
    """Small sales table: two measures, two dimensions, one date column."""
    return [
        {"region": "EU", "product": "A", "date": "2024-01-01", "revenue": 100, "units": 1},
        {"region": "US", "product": "B", "date": "2024-01-02", "revenue": 250, "units": 5},
        {"region": "EU", "product": "B", "date": "2024-01-03", "revenue": 50, "units": 2},
        {"region": "APAC", "product": "A", "date": "2024-01-04", "revenue": 400, "units": 8},
        {"region": "US", "product": "C", "date": "2024-01-05", "revenue": 75, "units": 3},
        {"region": None, "product": "C", "date": "2024-01-06", "revenue": 25, "units": 4},
    ]


@pytest.fixture
def cache():
    return AggregationCache()
