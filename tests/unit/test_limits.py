import pytest

from kpi_dashboard.core.limits import apply_limit, get_data_chunk, get_data_limit_options, get_optimized_data
from kpi_dashboard.utils.exceptions import InvalidInputError

ROWS = [{"i": i} for i in range(25)]


def test_apply_limit():
    assert apply_limit(ROWS, None) is ROWS
    assert apply_limit(ROWS, 3) == ROWS[:3]

def test_apply_limit_rejects_non_positive():
    with pytest.raises(InvalidInputError):
        apply_limit(ROWS, -1)

def test_data_limit_options():
    options = get_data_limit_options()
    assert [o.value for o in options] == [50, 100, 1000, 10000, None]
    assert options[-1].label == "All Data"

def test_optimized_data_limited():
    result = get_optimized_data(ROWS, 10)
    assert result.is_limited is True
    assert result.total_records == 25
    assert result.displayed_records == 10
    assert len(result.data) == 10

def test_optimized_data_unlimited():
    result = get_optimized_data(ROWS, 100)
    assert result.is_limited is False
    assert result.displayed_records == 25

def test_data_chunks():
    first = get_data_chunk(ROWS, 0, chunk_size=10)
    last = get_data_chunk(ROWS, 2, chunk_size=10)
    assert (first.start_index, first.end_index, first.has_more) == (0, 10, True)
    assert (last.start_index, last.end_index, last.has_more) == (20, 25, False)
    assert last.data == ROWS[20:]

def test_chunk_past_the_end_is_empty():
    chunk = get_data_chunk(ROWS, 9, chunk_size=10)
    assert chunk.data == []
    assert chunk.has_more is False

def test_negative_chunk_index_raises():
    with pytest.raises(InvalidInputError):
        get_data_chunk(ROWS, -1)
