from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
import sys

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from sunat_sender.correlative import (  # noqa: E402
    MAX_NUMBER,
    CorrelativeError,
    SqliteCorrelativeAllocator,
    format_correlative,
)

TENANT = "20123456786"


@pytest.fixture()
def allocator(tmp_path) -> SqliteCorrelativeAllocator:
    alloc = SqliteCorrelativeAllocator(tmp_path / "series.db")
    alloc.register_series(TENANT, "01", "F001")
    return alloc


def test_format_correlative():
    assert format_correlative(1) == "00000001"
    assert format_correlative(12345678) == "12345678"


def test_allocates_sequential_numbers(allocator):
    assert allocator.allocate_next(TENANT, "F001") == "00000001"
    assert allocator.allocate_next(TENANT, "F001") == "00000002"
    assert allocator.current_number(TENANT, "F001") == 2


def test_series_are_independent_per_tenant(allocator):
    allocator.register_series("20100066603", "01", "F001", current_number=41)
    assert allocator.allocate_next("20100066603", "F001") == "00000042"
    assert allocator.allocate_next(TENANT, "F001") == "00000001"


def test_unknown_and_inactive_series(allocator):
    with pytest.raises(CorrelativeError) as exc:
        allocator.allocate_next(TENANT, "B001")
    assert exc.value.code == "UNKNOWN_SERIES"

    allocator.deactivate_series(TENANT, "F001")
    with pytest.raises(CorrelativeError) as exc:
        allocator.allocate_next(TENANT, "F001")
    assert exc.value.code == "INACTIVE_SERIES"

    allocator.register_series(TENANT, "01", "F001")
    assert allocator.allocate_next(TENANT, "F001") == "00000001"


def test_exhausted_series_does_not_advance(allocator):
    allocator.register_series(TENANT, "03", "B001", current_number=MAX_NUMBER)
    with pytest.raises(CorrelativeError) as exc:
        allocator.allocate_next(TENANT, "B001")
    assert exc.value.code == "SERIES_EXHAUSTED"
    assert allocator.current_number(TENANT, "B001") == MAX_NUMBER


def test_concurrent_allocations_never_repeat(allocator):
    with ThreadPoolExecutor(max_workers=8) as pool:
        numbers = list(pool.map(lambda _: allocator.allocate_next(TENANT, "F001"), range(40)))
    assert len(set(numbers)) == 40
    assert sorted(numbers) == [format_correlative(n) for n in range(1, 41)]
