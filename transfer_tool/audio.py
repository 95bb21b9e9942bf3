"""
Audio file inspection.

Validates candidate files (existence, size, extension) and, for WAV
containers, reads and verifies the fixed-size header.
"""

import logging
import os
from pathlib import Path
from typing import Union

from shared.constants import (
    MAX_AUDIO_FILE_SIZE,
    SUPPORTED_AUDIO_FORMATS,
    WAV_EXTENSION,
    WAV_HEADER_SIZE,
)
from shared.exceptions import (
    AudioNotFoundError,
    FileTooLargeError,
    LocalIOError,
    MalformedHeaderError,
    UnsupportedFormatError,
)
from shared.models import AudioMeta
from .wav import WavHeader

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]


class AudioInspector:
    """Handler for audio file validation."""

    @staticmethod
    def extension_of(file_path: PathLike) -> str:
        """Lower-cased extension without the leading dot."""
        return Path(file_path).suffix.lower().lstrip('.')

    @staticmethod
    def is_supported_format(file_path: PathLike) -> bool:
        return AudioInspector.extension_of(file_path) in SUPPORTED_AUDIO_FORMATS

    @staticmethod
    def read_header(file_path: PathLike) -> WavHeader:
        """
        Read and verify the 44-byte header of a WAV file.

        Raises:
            MalformedHeaderError: File shorter than 44 bytes
            InvalidMagicError: RIFF/WAVE tags absent
            LocalIOError: File cannot be read
        """
        try:
            with open(file_path, 'rb') as f:
                raw = f.read(WAV_HEADER_SIZE)
        except OSError as e:
            raise LocalIOError(f"Failed to read WAV header: {e}", str(file_path)) from e

        if len(raw) < WAV_HEADER_SIZE:
            raise MalformedHeaderError(
                f"Failed to read WAV header: {len(raw)} of {WAV_HEADER_SIZE} bytes available"
            )
        return WavHeader.parse(raw)

    @staticmethod
    def validate(file_path: PathLike) -> AudioMeta:
        """
        Validate an audio file.

        Args:
            file_path: Path to audio file

        Returns:
            AudioMeta; format fields are filled in for WAV files only

        Raises:
            AudioNotFoundError: Path does not exist
            FileTooLargeError: File is larger than 5GB
            UnsupportedFormatError: Extension not one of wav, mp3, pcm, m4a, aac
            MalformedHeaderError, InvalidMagicError: Bad WAV header
        """
        path = str(file_path)
        try:
            size = os.stat(path).st_size
        except FileNotFoundError as e:
            raise AudioNotFoundError(f"File not found: {path}", path) from e
        except OSError as e:
            raise LocalIOError(f"Failed to stat file: {e}", path) from e

        if size > MAX_AUDIO_FILE_SIZE:
            raise FileTooLargeError(
                f"File exceeds 5GB limit: {size / 1024 / 1024 / 1024:.2f}GB",
                path, size,
            )

        ext = AudioInspector.extension_of(path)
        if ext not in SUPPORTED_AUDIO_FORMATS:
            raise UnsupportedFormatError(
                f"Unsupported audio format: {ext or '<none>'} "
                f"(supported: {', '.join(SUPPORTED_AUDIO_FORMATS)})",
                path, ext,
            )

        if ext != WAV_EXTENSION:
            return AudioMeta(path=path, size_bytes=size, extension=ext, is_wav_container=False)

        header = AudioInspector.read_header(path)
        meta = AudioMeta(
            path=path,
            size_bytes=size,
            extension=ext,
            is_wav_container=True,
            channels=header.channels,
            sample_rate_hz=header.sample_rate,
            bits_per_sample=header.bits_per_sample,
            data_size_bytes=size - WAV_HEADER_SIZE,
        )
        logger.debug("Validated %s: %s Hz, %s ch, %s bit, %s data bytes",
                     path, meta.sample_rate_hz, meta.channels,
                     meta.bits_per_sample, meta.data_size_bytes)
        return meta
