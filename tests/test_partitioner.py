import math

import pytest

from shared.constants import DEFAULT_SPLIT_PART_DATA_SIZE, MIB
from transfer_tool.partitioner import partition


@pytest.mark.parametrize("total, max_part", [
    (1, 1), (1, 100), (99, 100), (100, 100), (101, 100), (300, 100), (1001, 7),
])
def test_ranges_cover_payload_exactly(total, max_part):
    ranges = list(partition(total, max_part))

    assert len(ranges) == math.ceil(total / max_part)
    assert sum(r.length for r in ranges) == total
    assert all(0 < r.length <= max_part for r in ranges)
    assert all(r.length == max_part for r in ranges[:-1])
    assert [r.index for r in ranges] == list(range(len(ranges)))
    for prev, cur in zip(ranges, ranges[1:]):
        assert cur.offset == prev.end


def test_exact_multiple_has_no_trailing_empty_range():
    ranges = list(partition(300, 100))
    assert [(r.offset, r.length) for r in ranges] == [(0, 100), (100, 100), (200, 100)]


def test_logical_split_of_250_mib_recording():
    data_size = 262_144_000
    plan = partition(data_size, DEFAULT_SPLIT_PART_DATA_SIZE)
    ranges = list(plan)

    assert DEFAULT_SPLIT_PART_DATA_SIZE == 100 * MIB - 44
    assert len(plan) == 3
    assert [r.length for r in ranges[:2]] == [DEFAULT_SPLIT_PART_DATA_SIZE] * 2
    assert ranges[2].length == data_size - 2 * DEFAULT_SPLIT_PART_DATA_SIZE
    assert sum(r.length for r in ranges) == data_size


def test_plan_is_restartable():
    plan = partition(1000, 300)
    assert list(plan) == list(plan)
    assert len(plan) == 4


def test_part_numbers_are_one_based():
    assert [r.part_number for r in partition(50, 20)] == [1, 2, 3]


def test_empty_payload_yields_nothing():
    plan = partition(0, 100)
    assert list(plan) == []
    assert len(plan) == 0


def test_invalid_arguments():
    with pytest.raises(ValueError):
        partition(100, 0)
    with pytest.raises(ValueError):
        partition(-1, 10)
