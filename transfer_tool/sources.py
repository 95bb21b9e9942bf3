"""
Byte sources that part uploads read their ranges from.
"""

import os
from typing import Union

from shared.exceptions import LocalIOError
from shared.models import ChunkRange


class ByteSource:
    """Random-access read of exact byte ranges."""

    def read_range(self, chunk: ChunkRange) -> bytes:
        raise NotImplementedError

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class FileByteSource(ByteSource):
    """Reads ranges from a local file, optionally starting past a header."""

    def __init__(self, path: Union[str, os.PathLike], base_offset: int = 0):
        self.path = str(path)
        self.base_offset = base_offset
        try:
            self._file = open(self.path, 'rb')
        except OSError as e:
            raise LocalIOError(f"Failed to open file: {e}", self.path) from e

    def read_range(self, chunk: ChunkRange) -> bytes:
        try:
            self._file.seek(self.base_offset + chunk.offset)
            data = self._file.read(chunk.length)
        except OSError as e:
            raise LocalIOError(f"Failed to read part {chunk.part_number}: {e}", self.path) from e
        if len(data) != chunk.length:
            raise LocalIOError(
                f"Short read for part {chunk.part_number}: expected {chunk.length} bytes, got {len(data)}",
                self.path,
            )
        return data

    def close(self) -> None:
        self._file.close()


class BufferByteSource(ByteSource):
    """Reads ranges from an in-memory buffer."""

    def __init__(self, data: bytes):
        self._view = memoryview(data)

    def read_range(self, chunk: ChunkRange) -> bytes:
        if chunk.end > len(self._view):
            raise LocalIOError(
                f"Part {chunk.part_number} runs past end of buffer ({chunk.end} > {len(self._view)})"
            )
        return bytes(self._view[chunk.offset:chunk.end])
