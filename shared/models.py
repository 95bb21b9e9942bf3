"""
Data models for audio files, byte ranges, credentials and transfer results.

This module defines the value types that flow through the transfer pipeline:
from file inspection, through partitioning, to the multipart session and the
results handed back to callers.
"""

from dataclasses import dataclass, asdict, field
from typing import List, Dict, Optional, Any
from enum import Enum
from datetime import datetime, timezone

from shared.constants import (
    DEFAULT_TARGET_SAMPLE_RATE,
    DEFAULT_TARGET_CHANNELS,
    DEFAULT_TARGET_BITS_PER_SAMPLE,
)


class StorageProvider(Enum):
    """Supported object stores."""
    AWS_S3 = "s3"
    CLOUDFLARE_R2 = "r2"
    ALIYUN_OSS = "oss"
    LOCAL = "local"


@dataclass(frozen=True)
class AudioMeta:
    """
    Result of validating an audio file.

    Format fields are only populated for WAV containers; other supported
    extensions carry size and extension only.

    Attributes:
        path: Path that was validated
        size_bytes: File size in bytes
        extension: Lower-cased extension without the dot
        is_wav_container: True when the RIFF/WAVE header was verified
        channels: Channel count from the header
        sample_rate_hz: Sample rate from the header
        bits_per_sample: Bit depth from the header
        data_size_bytes: Bytes after the 44-byte header
    """
    path: str
    size_bytes: int
    extension: str
    is_wav_container: bool
    channels: Optional[int] = None
    sample_rate_hz: Optional[int] = None
    bits_per_sample: Optional[int] = None
    data_size_bytes: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ChunkRange:
    """A byte range of a payload. ``index`` is 0-based."""
    index: int
    offset: int
    length: int

    @property
    def part_number(self) -> int:
        """1-based part number used by the object store."""
        return self.index + 1

    @property
    def end(self) -> int:
        return self.offset + self.length


@dataclass(frozen=True)
class ResampleTarget:
    """Format parameters written into a WAV header in resample mode."""
    sample_rate_hz: int = DEFAULT_TARGET_SAMPLE_RATE
    channels: int = DEFAULT_TARGET_CHANNELS
    bits_per_sample: int = DEFAULT_TARGET_BITS_PER_SAMPLE

    @property
    def byte_rate(self) -> int:
        return self.sample_rate_hz * self.channels * self.bits_per_sample // 8

    @property
    def block_align(self) -> int:
        return self.channels * self.bits_per_sample // 8


@dataclass(frozen=True)
class TemporaryCredentials:
    """
    Short-lived object store credentials issued by the credential broker.

    Owned by a single pipeline invocation and never written to disk.
    """
    access_key_id: str
    access_key_secret: str = field(repr=False)
    security_token: str = field(repr=False)
    expiration: Optional[datetime] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check expiration. Credentials without an expiration never expire."""
        if self.expiration is None:
            return False
        now = now or datetime.now(timezone.utc)
        return self.expiration <= now


@dataclass(frozen=True)
class MultipartHandle:
    """Identifies an open multipart upload on the remote store."""
    object_key: str
    upload_id: str


@dataclass(frozen=True)
class CompletedPart:
    """A part acknowledged by the remote store."""
    part_number: int
    etag: str


@dataclass(frozen=True)
class CompletedObject:
    """A finalized object on the remote store."""
    object_key: str
    etag: str

    @property
    def identifier(self) -> str:
        return f"{self.object_key}#{self.etag}"


@dataclass
class UploadResult:
    """Outcome of uploading one object."""
    object_key: str
    etag: str
    url: str
    parts: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SplitResult:
    """
    Outcome of splitting a recording into independently playable parts.

    ``urls`` and ``object_keys`` are ordered by part number.
    """
    request_id: str
    urls: List[str]
    object_keys: List[str]
    total_parts: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
