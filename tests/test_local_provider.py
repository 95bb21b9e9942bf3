import hashlib

import pytest

from shared.exceptions import StorageBackendError
from shared.models import CompletedPart, MultipartHandle
from transfer_tool.local_provider import LocalStorageProvider


@pytest.fixture
def store(tmp_path):
    return LocalStorageProvider(str(tmp_path), "bucket")


def test_multipart_concatenates_parts(store):
    handle = store.initiate_multipart_upload("audio/x.wav")
    parts = [store.upload_part(handle, n, bytes([n]) * 10) for n in (1, 2, 3)]
    etag = store.complete_multipart_upload(handle, parts)

    assert (store.bucket_root / "audio/x.wav").read_bytes() == b"\x01" * 10 + b"\x02" * 10 + b"\x03" * 10
    assert etag.endswith("-3")
    assert not (store.bucket_root / ".multipart" / handle.upload_id).exists()


def test_abort_discards_staged_parts(store):
    handle = store.initiate_multipart_upload("audio/x.wav")
    store.upload_part(handle, 1, b"abc")
    store.abort_multipart_upload(handle)
    store.abort_multipart_upload(handle)

    assert not store.object_exists("audio/x.wav")
    with pytest.raises(StorageBackendError):
        store.upload_part(handle, 2, b"def")


def test_complete_with_unknown_part_fails(store):
    handle = store.initiate_multipart_upload("audio/x.wav")
    with pytest.raises(StorageBackendError):
        store.complete_multipart_upload(handle, [CompletedPart(1, hashlib.md5(b"").hexdigest())])


def test_unknown_upload(store):
    with pytest.raises(StorageBackendError):
        store.upload_part(MultipartHandle("audio/x.wav", "nope"), 1, b"")


def test_put_exists_and_url(store):
    etag = store.put_object("audio/r/part_1.wav", b"RIFF")
    assert etag == hashlib.md5(b"RIFF").hexdigest()
    assert store.object_exists("audio/r/part_1.wav")
    assert not store.object_exists("audio/r/part_2.wav")

    url = store.get_file_url("audio/r/part_1.wav", expires_in=60, now=1000)
    assert url.startswith("file://")
    assert url.endswith("part_1.wav?Expires=1060")


def test_keys_cannot_escape_bucket(store):
    with pytest.raises(StorageBackendError):
        store.put_object("../outside.wav", b"x")


def test_put_streams_file_objects(store, tmp_path):
    source = tmp_path / "prepared.wav"
    source.write_bytes(b"RIFF" + b"\x01" * 1000)
    with open(source, 'rb') as f:
        etag = store.put_object("audio/prepared.wav", f)

    assert (store.bucket_root / "audio/prepared.wav").read_bytes() == source.read_bytes()
    assert etag == hashlib.md5(source.read_bytes()).hexdigest()
