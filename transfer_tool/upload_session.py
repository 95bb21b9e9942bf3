"""
Multipart upload session.

An UploadSession walks one object through credential acquisition, multipart
initiation, strictly sequential part uploads and finalization. Any failure
after the session is open aborts the remote upload (best effort) and raises
a TransferError naming the stage and part that failed. Nothing is retried.
"""

import logging
import time
from enum import Enum
from typing import Callable, Iterable, List, Optional

from shared.config import TransferConfig
from shared.exceptions import (
    LocalIOError,
    SessionStateError,
    StorageBackendError,
    TransferError,
    TransferStage,
)
from shared.models import (
    ChunkRange,
    CompletedObject,
    CompletedPart,
    MultipartHandle,
    TemporaryCredentials,
)
from .credentials import CredentialBroker
from .provider_factory import StorageProviderFactory
from .sources import ByteSource
from .storage_provider import ObjectStore

logger = logging.getLogger(__name__)


class SessionState(Enum):
    UNINITIALIZED = "uninitialized"
    CREDENTIALS_OBTAINED = "credentials_obtained"
    SESSION_OPEN = "session_open"
    PARTS_UPLOADING = "parts_uploading"
    COMPLETED = "completed"
    ABORTED = "aborted"


StoreFactory = Callable[[TransferConfig, TemporaryCredentials], ObjectStore]


class UploadSession:
    """
    Lifecycle of one multipart upload.

    Attributes:
        state: Current SessionState
        parts: Parts acknowledged so far, in part-number order
        handle: Multipart handle once the session is open
        completed: Finished object once the session is completed
    """

    def __init__(self, config: TransferConfig,
                 store_factory: StoreFactory = StorageProviderFactory.create,
                 sleep: Callable[[float], None] = time.sleep):
        self.config = config
        self.state = SessionState.UNINITIALIZED
        self.store: Optional[ObjectStore] = None
        self.handle: Optional[MultipartHandle] = None
        self.parts: List[CompletedPart] = []
        self.completed: Optional[CompletedObject] = None
        self._store_factory = store_factory
        self._sleep = sleep

    @property
    def object_key(self) -> Optional[str]:
        return self.handle.object_key if self.handle else None

    def _require(self, *states: SessionState) -> None:
        if self.state not in states:
            expected = ", ".join(s.value for s in states)
            raise SessionStateError(f"Session is {self.state.value}, expected {expected}")

    def obtain_credentials(self, broker: CredentialBroker) -> TemporaryCredentials:
        """
        Fetch credentials once and connect the object store.

        Raises:
            CredentialError: Broker denied the request
        """
        self._require(SessionState.UNINITIALIZED)
        credentials = broker.fetch()
        self.store = self._store_factory(self.config, credentials)
        self.state = SessionState.CREDENTIALS_OBTAINED
        return credentials

    def attach_store(self, store: ObjectStore) -> None:
        """Use an already connected store instead of fetching credentials."""
        self._require(SessionState.UNINITIALIZED)
        self.store = store
        self.state = SessionState.CREDENTIALS_OBTAINED

    def open(self, object_key: str) -> MultipartHandle:
        """
        Start the multipart upload.

        Raises:
            TransferError: stage INIT
        """
        self._require(SessionState.CREDENTIALS_OBTAINED)
        try:
            self.handle = self.store.initiate_multipart_upload(object_key)
        except StorageBackendError as e:
            raise TransferError(TransferStage.INIT, e.message, object_key=object_key) from e
        self.state = SessionState.SESSION_OPEN
        logger.info("Opened multipart upload for %s", object_key)
        return self.handle

    def upload_part(self, chunk: ChunkRange, data: bytes) -> CompletedPart:
        """
        Upload one part as part number ``chunk.index + 1``.

        Parts must arrive in order. On failure the upload is aborted.

        Raises:
            TransferError: stage PART with the failing part number
        """
        self._require(SessionState.SESSION_OPEN, SessionState.PARTS_UPLOADING)
        expected = len(self.parts) + 1
        if chunk.part_number != expected:
            raise SessionStateError(f"Expected part {expected}, got part {chunk.part_number}")

        self.state = SessionState.PARTS_UPLOADING
        try:
            part = self.store.upload_part(self.handle, chunk.part_number, data)
        except StorageBackendError as e:
            self._abort_quietly()
            raise TransferError(TransferStage.PART, e.message,
                                part_index=chunk.part_number, object_key=self.object_key) from e

        self.parts.append(part)
        logger.debug("Uploaded part %d (%d bytes) of %s", part.part_number, len(data), self.object_key)
        return part

    def upload_parts(self, source: ByteSource, plan: Iterable[ChunkRange],
                     on_part: Optional[Callable[[ChunkRange], None]] = None) -> List[CompletedPart]:
        """
        Upload every range of ``plan`` read from ``source``, one at a time.

        Raises:
            TransferError: A part upload failed (upload aborted)
            LocalIOError: A range could not be read (upload aborted)
        """
        for chunk in plan:
            if chunk.index and self.config.pacing_delay_seconds:
                self._sleep(self.config.pacing_delay_seconds)
            try:
                data = source.read_range(chunk)
            except LocalIOError:
                self._abort_quietly()
                raise
            self.upload_part(chunk, data)
            if on_part:
                on_part(chunk)
        return list(self.parts)

    def complete(self, expected_parts: Optional[int] = None) -> CompletedObject:
        """
        Finalize the upload with the recorded parts.

        Raises:
            TransferError: stage COMPLETE (upload aborted)
        """
        self._require(SessionState.SESSION_OPEN, SessionState.PARTS_UPLOADING)

        numbers = [p.part_number for p in self.parts]
        problem = None
        if not numbers:
            problem = "no parts were uploaded"
        elif numbers != list(range(1, len(numbers) + 1)):
            problem = f"part numbers are not contiguous: {numbers}"
        elif expected_parts is not None and len(numbers) != expected_parts:
            problem = f"{len(numbers)} of {expected_parts} parts uploaded"
        if problem:
            self._abort_quietly()
            raise TransferError(TransferStage.COMPLETE, problem, object_key=self.object_key)

        try:
            etag = self.store.complete_multipart_upload(self.handle, list(self.parts))
        except StorageBackendError as e:
            self._abort_quietly()
            raise TransferError(TransferStage.COMPLETE, e.message, object_key=self.object_key) from e

        self.state = SessionState.COMPLETED
        self.completed = CompletedObject(object_key=self.handle.object_key, etag=etag)
        logger.info("Completed %s in %d parts (ETag %s)", self.object_key, len(self.parts), etag)
        return self.completed

    def abort(self) -> None:
        """
        Abort the upload on request of the caller.

        Raises:
            TransferError: stage ABORT if the store rejects the abort
        """
        self._require(SessionState.SESSION_OPEN, SessionState.PARTS_UPLOADING)
        self.state = SessionState.ABORTED
        try:
            self.store.abort_multipart_upload(self.handle)
        except StorageBackendError as e:
            raise TransferError(TransferStage.ABORT, e.message, object_key=self.object_key) from e

    def _abort_quietly(self) -> None:
        self.state = SessionState.ABORTED
        try:
            self.store.abort_multipart_upload(self.handle)
        except StorageBackendError as e:
            logger.warning("Abort of %s failed: %s", self.object_key, e.message)

    def signed_url(self, expires_in: Optional[int] = None) -> str:
        """
        Mint a GET URL for the completed object. Does not change state.

        Raises:
            TransferError: stage SIGN
        """
        self._require(SessionState.COMPLETED)
        ttl = expires_in if expires_in is not None else self.config.url_ttl_seconds
        try:
            return self.store.get_file_url(self.completed.object_key, ttl)
        except StorageBackendError as e:
            raise TransferError(TransferStage.SIGN, e.message, object_key=self.object_key) from e

    def run(self, source: ByteSource, plan, on_part: Optional[Callable[[ChunkRange], None]] = None) -> CompletedObject:
        """Upload every part of ``plan`` and finalize. The session must be open."""
        self.upload_parts(source, plan, on_part)
        return self.complete(expected_parts=len(plan))
