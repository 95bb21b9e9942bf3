"""
Canonical 44-byte PCM WAV header: parsing, serialization and rewriting.

The header is kept as raw bytes so that a rewrite only touches the fields it
is asked to change; every other byte is carried over from the original.
"""

import struct
from typing import Optional, Union

from shared.constants import (
    WAV_HEADER_SIZE,
    WAV_RIFF_OVERHEAD,
    WAV_RIFF_TAG,
    WAV_WAVE_TAG,
)
from shared.exceptions import InvalidMagicError, MalformedHeaderError
from shared.models import ResampleTarget

# (offset, struct format) of each little-endian field
RIFF_SIZE = (4, '<I')
FMT_CHUNK_SIZE = (16, '<I')
AUDIO_FORMAT = (20, '<H')
CHANNELS = (22, '<H')
SAMPLE_RATE = (24, '<I')
BYTE_RATE = (28, '<I')
BLOCK_ALIGN = (32, '<H')
BITS_PER_SAMPLE = (34, '<H')
DATA_SIZE = (40, '<I')

UINT32_MAX = 0xFFFFFFFF


class WavHeader:
    """A 44-byte WAV header with named field access."""

    __slots__ = ('_raw',)

    def __init__(self, raw: bytes):
        if len(raw) < WAV_HEADER_SIZE:
            raise MalformedHeaderError(
                f"WAV header needs {WAV_HEADER_SIZE} bytes, got {len(raw)}"
            )
        self._raw = bytes(raw[:WAV_HEADER_SIZE])

    @classmethod
    def parse(cls, data: bytes) -> 'WavHeader':
        """
        Parse and verify a header.

        Raises:
            MalformedHeaderError: Fewer than 44 bytes
            InvalidMagicError: RIFF/WAVE tags absent
        """
        header = cls(data)
        if data[0:4] != WAV_RIFF_TAG:
            raise InvalidMagicError("Invalid WAV file: missing RIFF tag")
        if data[8:12] != WAV_WAVE_TAG:
            raise InvalidMagicError("Invalid WAV file: missing WAVE tag")
        return header

    @staticmethod
    def has_valid_magic(data: bytes) -> bool:
        return len(data) >= 12 and data[0:4] == WAV_RIFF_TAG and data[8:12] == WAV_WAVE_TAG

    def _get(self, field) -> int:
        offset, fmt = field
        return struct.unpack_from(fmt, self._raw, offset)[0]

    @property
    def riff_size(self) -> int:
        return self._get(RIFF_SIZE)

    @property
    def fmt_chunk_size(self) -> int:
        return self._get(FMT_CHUNK_SIZE)

    @property
    def audio_format(self) -> int:
        return self._get(AUDIO_FORMAT)

    @property
    def channels(self) -> int:
        return self._get(CHANNELS)

    @property
    def sample_rate(self) -> int:
        return self._get(SAMPLE_RATE)

    @property
    def byte_rate(self) -> int:
        return self._get(BYTE_RATE)

    @property
    def block_align(self) -> int:
        return self._get(BLOCK_ALIGN)

    @property
    def bits_per_sample(self) -> int:
        return self._get(BITS_PER_SAMPLE)

    @property
    def data_size(self) -> int:
        return self._get(DATA_SIZE)

    def to_bytes(self) -> bytes:
        return self._raw

    def replace(self, **fields: int) -> 'WavHeader':
        """
        Return a new header with the given fields overwritten.

        Field names are the lower-case property names, e.g. ``data_size=100``.
        """
        buf = bytearray(self._raw)
        for name, value in fields.items():
            offset, fmt = _FIELDS[name]
            struct.pack_into(fmt, buf, offset, value)
        return WavHeader(bytes(buf))

    def __eq__(self, other) -> bool:
        return isinstance(other, WavHeader) and self._raw == other._raw

    def __hash__(self) -> int:
        return hash(self._raw)

    def __repr__(self) -> str:
        return (f"WavHeader(channels={self.channels}, sample_rate={self.sample_rate}, "
                f"bits_per_sample={self.bits_per_sample}, data_size={self.data_size})")


_FIELDS = {
    'riff_size': RIFF_SIZE,
    'fmt_chunk_size': FMT_CHUNK_SIZE,
    'audio_format': AUDIO_FORMAT,
    'channels': CHANNELS,
    'sample_rate': SAMPLE_RATE,
    'byte_rate': BYTE_RATE,
    'block_align': BLOCK_ALIGN,
    'bits_per_sample': BITS_PER_SAMPLE,
    'data_size': DATA_SIZE,
}


def _check_u32(name: str, value: int) -> None:
    if not 0 <= value <= UINT32_MAX:
        raise ValueError(f"{name} {value} does not fit in a WAV header")


def rewrite_for_format(header: WavHeader, target: ResampleTarget, total_file_size: int) -> WavHeader:
    """
    Resample mode: write new format parameters.

    Channels, sample rate, bit depth, byte rate and block align follow
    ``target``; the RIFF size is recomputed from the total file size.
    """
    riff_size = total_file_size - 8
    _check_u32('riff_size', riff_size)
    return header.replace(
        channels=target.channels,
        sample_rate=target.sample_rate_hz,
        bits_per_sample=target.bits_per_sample,
        byte_rate=target.byte_rate,
        block_align=target.block_align,
        riff_size=riff_size,
    )


def rewrite_for_data_size(header: WavHeader, data_size: int) -> WavHeader:
    """Resize mode: only the data size and the RIFF size change."""
    _check_u32('data_size', data_size)
    _check_u32('riff_size', data_size + WAV_RIFF_OVERHEAD)
    return header.replace(data_size=data_size, riff_size=data_size + WAV_RIFF_OVERHEAD)


def rewrite(header: WavHeader, target: Union[ResampleTarget, int],
            total_file_size: Optional[int] = None) -> WavHeader:
    """
    Rewrite ``header`` in resample mode (``target`` is a ResampleTarget) or
    resize mode (``target`` is the new data length in bytes).
    """
    if isinstance(target, ResampleTarget):
        if total_file_size is None:
            raise ValueError("resample mode needs the total file size")
        return rewrite_for_format(header, target, total_file_size)
    return rewrite_for_data_size(header, target)


def build_header(data_size: int, sample_rate_hz: int = 16000, channels: int = 1,
                 bits_per_sample: int = 16) -> WavHeader:
    """Build a fresh canonical PCM header."""
    block_align = channels * bits_per_sample // 8
    raw = struct.pack(
        '<4sI4s4sIHHIIHH4sI',
        WAV_RIFF_TAG, data_size + WAV_RIFF_OVERHEAD, WAV_WAVE_TAG,
        b'fmt ', 16, 1, channels, sample_rate_hz,
        sample_rate_hz * block_align, block_align, bits_per_sample,
        b'data', data_size,
    )
    return WavHeader(raw)
