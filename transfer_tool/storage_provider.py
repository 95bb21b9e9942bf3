"""
Abstract base class for object stores.

This module defines the operations the transfer pipeline needs from a remote
store: multipart upload, single-shot put, existence check and signed URLs.
Implementations raise StorageBackendError for any backend failure.
"""

from abc import ABC, abstractmethod
from typing import BinaryIO, List, Union

from shared.constants import DEFAULT_URL_TTL_SECONDS
from shared.models import CompletedPart, MultipartHandle

ObjectBody = Union[bytes, BinaryIO]


class ObjectStore(ABC):
    """
    Interface every object store (S3-compatible or local) implements.
    """

    bucket_name: str

    @abstractmethod
    def initiate_multipart_upload(self, object_key: str) -> MultipartHandle:
        """
        Start a multipart upload.

        Args:
            object_key: Key the finished object will be stored under

        Returns:
            Handle identifying the upload
        """

    @abstractmethod
    def upload_part(self, handle: MultipartHandle, part_number: int, data: bytes) -> CompletedPart:
        """
        Upload one part.

        Args:
            handle: Handle from initiate_multipart_upload
            part_number: 1-based part number
            data: Part bytes

        Returns:
            Part number and ETag acknowledged by the store
        """

    @abstractmethod
    def complete_multipart_upload(self, handle: MultipartHandle, parts: List[CompletedPart]) -> str:
        """
        Assemble uploaded parts into the final object.

        Args:
            handle: Handle from initiate_multipart_upload
            parts: Parts in part-number order

        Returns:
            ETag of the finished object
        """

    @abstractmethod
    def abort_multipart_upload(self, handle: MultipartHandle) -> None:
        """Discard an unfinished multipart upload and its parts."""

    @abstractmethod
    def put_object(self, object_key: str, data: ObjectBody) -> str:
        """
        Upload an object in one request.

        Args:
            object_key: Key to store the object under
            data: Object bytes, or a binary file object read to its end

        Returns:
            ETag of the stored object
        """

    @abstractmethod
    def object_exists(self, object_key: str) -> bool:
        """Check whether an object exists."""

    @abstractmethod
    def get_file_url(self, object_key: str, expires_in: int = DEFAULT_URL_TTL_SECONDS) -> str:
        """
        Get a time-limited GET URL for an object.

        Args:
            object_key: Key of the object
            expires_in: Validity window in seconds
        """
