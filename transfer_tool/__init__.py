"""Chunked audio transfer: validation, WAV header rewriting, partitioning and multipart upload."""

from .pipeline import TransferPipeline
from .upload_session import SessionState, UploadSession

__all__ = ["TransferPipeline", "UploadSession", "SessionState"]
