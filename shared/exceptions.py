"""
Error taxonomy for the transfer pipeline.

Every failure surfaces as one exception carrying an :class:`ErrorKind` and,
for remote transfer failures, the :class:`TransferStage` and part number
that failed. The original exception, if any, is kept as ``__cause__``.
"""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Closed set of failure categories."""
    VALIDATION = "validation"
    MALFORMED_HEADER = "malformed_header"
    INVALID_MAGIC = "invalid_magic"
    CREDENTIAL = "credential"
    TRANSFER = "transfer"
    IO = "io"
    STORAGE_BACKEND = "storage_backend"
    SESSION_STATE = "session_state"


class TransferStage(Enum):
    """Remote transfer step that failed."""
    INIT = "init"
    PART = "part"
    COMPLETE = "complete"
    ABORT = "abort"
    VERIFY = "verify"
    SIGN = "sign"


class TransferToolError(Exception):
    """Base class for all transfer tool errors."""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TransferToolError):
    """Input file rejected before any work is done."""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class AudioNotFoundError(ValidationError):
    pass


class FileTooLargeError(ValidationError):

    def __init__(self, message: str, path: Optional[str] = None, size_bytes: int = 0):
        super().__init__(message, path)
        self.size_bytes = size_bytes


class UnsupportedFormatError(ValidationError):

    def __init__(self, message: str, path: Optional[str] = None, extension: str = ""):
        super().__init__(message, path)
        self.extension = extension


class HeaderError(TransferToolError):
    """WAV header could not be parsed."""


class MalformedHeaderError(HeaderError):
    kind = ErrorKind.MALFORMED_HEADER


class InvalidMagicError(HeaderError):
    kind = ErrorKind.INVALID_MAGIC


class CredentialError(TransferToolError):
    """Credential broker denied the request or returned unusable credentials."""

    kind = ErrorKind.CREDENTIAL

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code


class LocalIOError(TransferToolError):
    """Local read or write failure."""

    kind = ErrorKind.IO

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class StorageBackendError(TransferToolError):
    """Raised by object store implementations; wrapped into TransferError upstream."""

    kind = ErrorKind.STORAGE_BACKEND


class SessionStateError(TransferToolError):
    """Operation called in a state that does not allow it."""

    kind = ErrorKind.SESSION_STATE


class TransferError(TransferToolError):
    """
    A remote transfer step failed.

    Attributes:
        stage: Which step failed
        part_index: 1-based part number for PART and VERIFY failures
        object_key: Key of the object being transferred, when known
    """

    kind = ErrorKind.TRANSFER

    def __init__(self, stage: TransferStage, message: str,
                 part_index: Optional[int] = None,
                 object_key: Optional[str] = None):
        self.stage = stage
        self.part_index = part_index
        self.object_key = object_key
        super().__init__(message)

    def __str__(self) -> str:
        where = self.stage.value
        if self.part_index is not None:
            where = f"{where}({self.part_index})"
        return f"transfer failed at {where}: {self.message}"
