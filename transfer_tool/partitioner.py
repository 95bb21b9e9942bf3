"""
Partitioning of a payload into ordered, size-bounded byte ranges.

Used for transport parts (multipart upload slices) and for logical audio
parts (each one later gets its own WAV header). The caller picks the size.
"""

from typing import Iterator

from shared.models import ChunkRange


class PartitionPlan:
    """
    Ordered, non-overlapping ranges covering ``total_length`` bytes.

    Iteration is lazy and can be repeated; nothing is cached between passes.
    Only the last range may be shorter than ``max_part_length`` and no range
    is empty.
    """

    def __init__(self, total_length: int, max_part_length: int):
        if max_part_length <= 0:
            raise ValueError("max_part_length must be positive")
        if total_length < 0:
            raise ValueError("total_length must not be negative")
        self.total_length = total_length
        self.max_part_length = max_part_length

    def __len__(self) -> int:
        return -(-self.total_length // self.max_part_length)

    def __iter__(self) -> Iterator[ChunkRange]:
        offset = 0
        index = 0
        while offset < self.total_length:
            length = min(self.max_part_length, self.total_length - offset)
            yield ChunkRange(index=index, offset=offset, length=length)
            offset += length
            index += 1

    def __repr__(self) -> str:
        return f"PartitionPlan(total_length={self.total_length}, max_part_length={self.max_part_length}, parts={len(self)})"


def partition(total_length: int, max_part_length: int) -> PartitionPlan:
    """Split ``total_length`` bytes into ranges of at most ``max_part_length``."""
    return PartitionPlan(total_length, max_part_length)
