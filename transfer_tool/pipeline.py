"""
Transfer pipeline: the two end-to-end flows built from inspection, header
rewriting, partitioning and the upload session.

* Resample-and-upload rewrites the WAV header to the target format in a
  scratch copy and sends that copy as a multipart upload.
* Split-and-upload cuts the audio data into independently playable WAV files,
  each with its own header, and uploads every one as a separate object.

Each invocation fetches its own temporary credentials and never stores them.
"""

import logging
import os
import shutil
import tempfile
import time
import uuid
from pathlib import Path
from typing import Callable, Optional

from rich.progress import Progress

from shared.config import TransferConfig
from shared.constants import (
    COPY_BUFFER_SIZE,
    PROCESSED_OBJECT_KEY_TEMPLATE,
    SCRATCH_DIR_PREFIX,
    SPLIT_PART_KEY_TEMPLATE,
    WAV_HEADER_SIZE,
)
from shared.exceptions import (
    FileTooLargeError,
    LocalIOError,
    StorageBackendError,
    TransferError,
    TransferStage,
    UnsupportedFormatError,
    ValidationError,
)
from shared.models import AudioMeta, ChunkRange, ResampleTarget, SplitResult, UploadResult
from .audio import AudioInspector
from .credentials import CredentialBroker
from .partitioner import partition
from .provider_factory import StorageProviderFactory
from .sources import FileByteSource
from .upload_session import StoreFactory, UploadSession
from .wav import UINT32_MAX, WavHeader, rewrite_for_data_size, rewrite_for_format

logger = logging.getLogger(__name__)


def split_part_key(request_id: str, part_number: int) -> str:
    """Object key of one split part: ``audio/<request_id>/part_<n>.wav``."""
    return SPLIT_PART_KEY_TEMPLATE.format(request_id=request_id, part_number=part_number)


def _progress_hook(progress: Optional[Progress], description: str,
                   total: int) -> Optional[Callable[[ChunkRange], None]]:
    if progress is None:
        return None
    task = progress.add_task(description, total=total)
    return lambda chunk: progress.advance(task, chunk.length)


class TransferPipeline:
    """Runs transfer flows against the store described by ``config``."""

    def __init__(self, config: TransferConfig,
                 broker: Optional[CredentialBroker] = None,
                 store_factory: StoreFactory = StorageProviderFactory.create,
                 sleep: Callable[[float], None] = time.sleep,
                 clock: Callable[[], float] = time.time):
        self.config = config
        self.broker = broker or CredentialBroker.from_config(config)
        self._store_factory = store_factory
        self._sleep = sleep
        self._clock = clock

    def _new_session(self) -> UploadSession:
        return UploadSession(self.config, self._store_factory, self._sleep)

    def default_object_key(self, file_path: str) -> str:
        """``audio/<unix-ts>_<stem>.wav``, the timestamp avoids name clashes."""
        return PROCESSED_OBJECT_KEY_TEMPLATE.format(
            timestamp=int(self._clock()), stem=Path(file_path).stem
        )

    # Resample and upload

    def resample_and_upload(self, file_path: str, object_key: Optional[str] = None,
                            target: ResampleTarget = ResampleTarget(),
                            progress: Optional[Progress] = None) -> UploadResult:
        """
        Rewrite the header to ``target`` and upload the result in transport parts.

        The scratch copy and its directory are removed on every exit path.

        Raises:
            ValidationError, HeaderError: File rejected
            CredentialError: Broker denied credentials
            TransferError: Remote step failed
            LocalIOError: Scratch copy could not be written or read
        """
        meta = AudioInspector.validate(file_path)
        object_key = object_key or self.default_object_key(file_path)

        try:
            scratch_dir = tempfile.mkdtemp(prefix=SCRATCH_DIR_PREFIX, dir=self.config.scratch_dir)
        except OSError as e:
            raise LocalIOError(f"Failed to create scratch directory: {e}") from e

        try:
            processed = os.path.join(scratch_dir, f"processed_{uuid.uuid4().hex}.wav")
            self.prepare_audio(meta, processed, target)
            return self._multipart(processed, object_key, self.config.transport_part_size, progress)
        finally:
            try:
                shutil.rmtree(scratch_dir)
            except OSError as e:
                logger.warning("Failed to remove scratch directory %s: %s", scratch_dir, e)

    @staticmethod
    def prepare_audio(meta: AudioMeta, dest_path: str, target: ResampleTarget) -> None:
        """
        Write a copy of ``meta.path`` to ``dest_path``.

        WAV containers get a header rewritten for ``target``; anything else is
        copied byte for byte.

        Raises:
            FileTooLargeError: WAV too large for a RIFF size field
            LocalIOError: Copy could not be written
        """
        # riff_size is a u32 holding file size - 8
        if meta.is_wav_container and meta.size_bytes - 8 > UINT32_MAX:
            raise FileTooLargeError(
                f"WAV file of {meta.size_bytes} bytes exceeds the 4GB RIFF size limit "
                f"({UINT32_MAX + 8} bytes)",
                meta.path, meta.size_bytes,
            )
        try:
            with open(meta.path, 'rb') as src, open(dest_path, 'wb') as dst:
                if meta.is_wav_container:
                    header = WavHeader.parse(src.read(WAV_HEADER_SIZE))
                    dst.write(rewrite_for_format(header, target, meta.size_bytes).to_bytes())
                else:
                    logger.info("%s is not a WAV container, uploading without header rewrite", meta.path)
                shutil.copyfileobj(src, dst, COPY_BUFFER_SIZE)
                dst.flush()
                os.fsync(dst.fileno())
        except OSError as e:
            raise LocalIOError(f"Failed to prepare audio: {e}", meta.path) from e

    # Plain uploads

    def multipart_upload(self, file_path: str, object_key: Optional[str] = None,
                         progress: Optional[Progress] = None) -> UploadResult:
        """Upload a file unchanged as a multipart upload with the small part profile."""
        AudioInspector.validate(file_path)
        object_key = object_key or Path(file_path).name
        return self._multipart(str(file_path), object_key, self.config.multipart_part_size, progress)

    def upload_file(self, file_path: str, object_key: Optional[str] = None) -> UploadResult:
        """Upload an already prepared file in a single request, streamed from disk."""
        AudioInspector.validate(file_path)
        object_key = object_key or Path(file_path).name

        store = self._store_factory(self.config, self.broker.fetch())
        try:
            f = open(file_path, 'rb')
        except OSError as e:
            raise LocalIOError(f"Failed to open file: {e}", str(file_path)) from e

        with f:
            try:
                etag = store.put_object(object_key, f)
            except StorageBackendError as e:
                raise TransferError(TransferStage.PART, e.message, part_index=1, object_key=object_key) from e
        try:
            url = store.get_file_url(object_key, self.config.url_ttl_seconds)
        except StorageBackendError as e:
            raise TransferError(TransferStage.SIGN, e.message, object_key=object_key) from e

        logger.info("Uploaded %s to %s", file_path, object_key)
        return UploadResult(object_key=object_key, etag=etag, url=url, parts=1)

    def _multipart(self, path: str, object_key: str, part_size: int,
                   progress: Optional[Progress]) -> UploadResult:
        session = self._new_session()
        session.obtain_credentials(self.broker)

        plan = partition(os.path.getsize(path), part_size)
        logger.info("Uploading %s as %s in %d parts of up to %d bytes",
                    path, object_key, len(plan), part_size)

        with FileByteSource(path) as source:
            session.open(object_key)
            on_part = _progress_hook(progress, "Uploading", plan.total_length)
            completed = session.run(source, plan, on_part)

        url = session.signed_url()
        return UploadResult(object_key=completed.object_key, etag=completed.etag,
                            url=url, parts=len(session.parts))

    # Split and upload

    def split_and_upload(self, file_path: str, request_id: str,
                         progress: Optional[Progress] = None) -> SplitResult:
        """
        Split a WAV recording into playable parts and upload each one.

        Every part gets the original header with its own data and RIFF sizes,
        is stored under ``audio/<request_id>/part_<n>.wav``, verified to exist
        and signed.

        Raises:
            ValidationError, HeaderError: File rejected (non-WAV containers included)
            CredentialError: Broker denied credentials
            TransferError: stage PART, VERIFY or SIGN with the part number
        """
        if not request_id or '/' in request_id:
            raise ValidationError(f"Invalid request id: {request_id!r}")

        meta = AudioInspector.validate(file_path)
        if not meta.is_wav_container:
            raise UnsupportedFormatError(
                f"Splitting needs a WAV container, got {meta.extension}", meta.path, meta.extension
            )
        header = AudioInspector.read_header(file_path)

        store = self._store_factory(self.config, self.broker.fetch())
        plan = partition(meta.data_size_bytes, self.config.split_part_data_size)
        logger.info("Splitting %s (%d data bytes) into %d parts for request %s",
                    file_path, meta.data_size_bytes, len(plan), request_id)

        on_part = _progress_hook(progress, "Splitting and uploading", plan.total_length)
        urls = []
        object_keys = []
        with FileByteSource(file_path, base_offset=WAV_HEADER_SIZE) as source:
            for chunk in plan:
                part_number = chunk.part_number
                object_key = split_part_key(request_id, part_number)
                body = rewrite_for_data_size(header, chunk.length).to_bytes() + source.read_range(chunk)

                try:
                    store.put_object(object_key, body)
                except StorageBackendError as e:
                    raise TransferError(TransferStage.PART, e.message,
                                        part_index=part_number, object_key=object_key) from e

                try:
                    exists = store.object_exists(object_key)
                except StorageBackendError as e:
                    raise TransferError(TransferStage.VERIFY, e.message,
                                        part_index=part_number, object_key=object_key) from e
                if not exists:
                    raise TransferError(TransferStage.VERIFY, f"object {object_key} missing after upload",
                                        part_index=part_number, object_key=object_key)

                try:
                    urls.append(store.get_file_url(object_key, self.config.url_ttl_seconds))
                except StorageBackendError as e:
                    raise TransferError(TransferStage.SIGN, e.message,
                                        part_index=part_number, object_key=object_key) from e
                object_keys.append(object_key)

                logger.info("Part %d/%d uploaded: %s (%d bytes)", part_number, len(plan), object_key, len(body))
                if on_part:
                    on_part(chunk)

        return SplitResult(request_id=request_id, urls=urls, object_keys=object_keys, total_parts=len(plan))
