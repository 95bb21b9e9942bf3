"""Shared fixtures for transfer tool tests."""

from datetime import datetime, timedelta, timezone

import pytest

from shared.config import TransferConfig
from shared.exceptions import CredentialError, StorageBackendError
from shared.models import StorageProvider, TemporaryCredentials
from transfer_tool.local_provider import LocalStorageProvider
from transfer_tool.wav import build_header


def audio_bytes(length: int) -> bytes:
    """Deterministic, non-repeating-looking sample data."""
    return bytes((i * 7 + 3) % 251 for i in range(length))


@pytest.fixture
def make_wav(tmp_path):
    """Write a WAV file with ``data_size`` bytes of audio after a canonical header."""
    def _make(name="speech.wav", data_size=1000, sample_rate_hz=44100, channels=2, bits_per_sample=16):
        path = tmp_path / name
        header = build_header(data_size, sample_rate_hz, channels, bits_per_sample)
        path.write_bytes(header.to_bytes() + audio_bytes(data_size))
        return path
    return _make


@pytest.fixture
def config(tmp_path):
    scratch = tmp_path / "scratch"
    scratch.mkdir()
    return TransferConfig(
        app_key="test-app",
        app_secret="test-secret",
        provider=StorageProvider.LOCAL,
        endpoint=str(tmp_path / "store"),
        bucket="bucket",
        transport_part_size=256,
        multipart_part_size=128,
        split_part_data_size=400,
        pacing_delay_seconds=0,
        scratch_dir=str(scratch),
    )


def make_credentials(expires_in=timedelta(hours=1)):
    return TemporaryCredentials(
        access_key_id="STS.test",
        access_key_secret="secret",
        security_token="token",
        expiration=datetime.now(timezone.utc) + expires_in,
    )


class FakeBroker:
    def __init__(self, error=None):
        self.calls = 0
        self.error = error

    def fetch(self, now=None):
        self.calls += 1
        if self.error:
            raise self.error
        return make_credentials()


@pytest.fixture
def broker():
    return FakeBroker()


@pytest.fixture
def denying_broker():
    return FakeBroker(error=CredentialError("Credential request denied: bad app key", code=401))


class RecordingStore(LocalStorageProvider):
    """
    Local store that records every call and can be told to fail.

    Attributes:
        fail_part: part number whose upload raises
        fail_abort: abort raises too
        missing_keys: keys object_exists reports as absent
    """

    def __init__(self, base_path, bucket_name, fail_part=None, fail_abort=False,
                 fail_complete=False, missing_keys=()):
        super().__init__(base_path, bucket_name)
        self.calls = []
        self.fail_part = fail_part
        self.fail_abort = fail_abort
        self.fail_complete = fail_complete
        self.missing_keys = set(missing_keys)
        self.bodies = []

    def initiate_multipart_upload(self, object_key):
        self.calls.append(("initiate", object_key))
        return super().initiate_multipart_upload(object_key)

    def upload_part(self, handle, part_number, data):
        self.calls.append(("upload_part", part_number))
        if part_number == self.fail_part:
            raise StorageBackendError(f"connection reset on part {part_number}")
        return super().upload_part(handle, part_number, data)

    def complete_multipart_upload(self, handle, parts):
        self.calls.append(("complete", [p.part_number for p in parts]))
        if self.fail_complete:
            raise StorageBackendError("InvalidPart")
        return super().complete_multipart_upload(handle, parts)

    def abort_multipart_upload(self, handle):
        self.calls.append(("abort", handle.object_key))
        if self.fail_abort:
            raise StorageBackendError("abort refused")
        return super().abort_multipart_upload(handle)

    def put_object(self, object_key, data):
        self.calls.append(("put", object_key))
        self.bodies.append(data)
        return super().put_object(object_key, data)

    def object_exists(self, object_key):
        self.calls.append(("exists", object_key))
        if object_key in self.missing_keys:
            return False
        return super().object_exists(object_key)

    def names(self):
        return [c[0] for c in self.calls]


@pytest.fixture
def store_factory():
    """Factory handing out one RecordingStore; options set via ``store_factory.options``."""
    class Factory:
        def __init__(self):
            self.options = {}
            self.store = None
            self.credentials = []

        def __call__(self, config, credentials):
            self.credentials.append(credentials)
            self.store = RecordingStore(config.endpoint, config.bucket, **self.options)
            return self.store

    return Factory()
