"""
Local filesystem object store.
Implements the ObjectStore interface on a directory tree, for self-hosting on
a NAS or local drive and for offline runs.
"""

import hashlib
import shutil
import time
import uuid
from pathlib import Path
from typing import List, Optional
from urllib.parse import urlencode

from shared.constants import COPY_BUFFER_SIZE, DEFAULT_URL_TTL_SECONDS
from shared.exceptions import StorageBackendError
from shared.models import CompletedPart, MultipartHandle
from .storage_provider import ObjectBody, ObjectStore


MULTIPART_STAGING_DIR = ".multipart"


class LocalStorageProvider(ObjectStore):
    """
    Object store that keeps objects as files under ``base_path/bucket_name``.
    Multipart parts are staged under ``.multipart/<upload_id>/`` and
    concatenated on completion.
    """

    def __init__(self, base_path: str, bucket_name: str):
        self.base_path = Path(base_path).expanduser().absolute()
        self.bucket_name = bucket_name
        self.bucket_root.mkdir(parents=True, exist_ok=True)

    @property
    def bucket_root(self) -> Path:
        if self.bucket_name in [".", "", "default"]:
            return self.base_path
        return self.base_path / self.bucket_name

    def _get_path(self, object_key: str) -> Path:
        """Get absolute local path for a key, refusing keys that escape the bucket."""
        path = (self.bucket_root / object_key).resolve()
        if self.bucket_root.resolve() not in path.parents:
            raise StorageBackendError(f"Invalid object key: {object_key}")
        return path

    def _staging_dir(self, handle: MultipartHandle) -> Path:
        return self.bucket_root / MULTIPART_STAGING_DIR / handle.upload_id

    def initiate_multipart_upload(self, object_key: str) -> MultipartHandle:
        self._get_path(object_key)
        handle = MultipartHandle(object_key=object_key, upload_id=uuid.uuid4().hex)
        try:
            self._staging_dir(handle).mkdir(parents=True)
        except OSError as e:
            raise StorageBackendError(f"Initiate multipart upload failed: {e}") from e
        return handle

    def upload_part(self, handle: MultipartHandle, part_number: int, data: bytes) -> CompletedPart:
        staging = self._staging_dir(handle)
        if not staging.is_dir():
            raise StorageBackendError(f"No such upload: {handle.upload_id}")
        try:
            (staging / f"part-{part_number:05d}").write_bytes(data)
        except OSError as e:
            raise StorageBackendError(f"Upload part {part_number} failed: {e}") from e
        return CompletedPart(part_number=part_number, etag=hashlib.md5(data).hexdigest())

    def complete_multipart_upload(self, handle: MultipartHandle, parts: List[CompletedPart]) -> str:
        staging = self._staging_dir(handle)
        if not staging.is_dir():
            raise StorageBackendError(f"No such upload: {handle.upload_id}")

        dest_path = self._get_path(handle.object_key)
        digest = hashlib.md5()
        try:
            dest_path.parent.mkdir(parents=True, exist_ok=True)
            with open(dest_path, 'wb') as out:
                for part in parts:
                    part_path = staging / f"part-{part.part_number:05d}"
                    if not part_path.exists():
                        raise StorageBackendError(f"Part {part.part_number} was never uploaded")
                    with open(part_path, 'rb') as src:
                        shutil.copyfileobj(src, out)
                    digest.update(bytes.fromhex(part.etag))
            shutil.rmtree(staging)
        except OSError as e:
            raise StorageBackendError(f"Complete multipart upload failed: {e}") from e
        return f"{digest.hexdigest()}-{len(parts)}"

    def abort_multipart_upload(self, handle: MultipartHandle) -> None:
        try:
            shutil.rmtree(self._staging_dir(handle))
        except FileNotFoundError:
            return
        except OSError as e:
            raise StorageBackendError(f"Abort multipart upload failed: {e}") from e

    def put_object(self, object_key: str, data: ObjectBody) -> str:
        dest_path = self._get_path(object_key)
        digest = hashlib.md5()
        try:
            dest_path.parent.mkdir(parents=True, exist_ok=True)
            with open(dest_path, 'wb') as out:
                if isinstance(data, (bytes, bytearray)):
                    out.write(data)
                    digest.update(data)
                else:
                    for block in iter(lambda: data.read(COPY_BUFFER_SIZE), b''):
                        out.write(block)
                        digest.update(block)
        except OSError as e:
            raise StorageBackendError(f"Put object {object_key} failed: {e}") from e
        return digest.hexdigest()

    def object_exists(self, object_key: str) -> bool:
        return self._get_path(object_key).is_file()

    def get_file_url(self, object_key: str, expires_in: int = DEFAULT_URL_TTL_SECONDS,
                     now: Optional[float] = None) -> str:
        """Return a file:// URL carrying its expiry time."""
        path = self._get_path(object_key)
        expires = int((now if now is not None else time.time()) + expires_in)
        return f"{path.as_uri()}?{urlencode({'Expires': expires})}"
