import json

import pytest

from shared.config import TransferConfig, load_config, save_config
from shared.constants import DEFAULT_SPLIT_PART_DATA_SIZE, DEFAULT_TRANSPORT_PART_SIZE
from shared.crypto import CredentialManager
from shared.models import StorageProvider


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in ("APP_KEY", "APP_SECRET", "PROVIDER", "BUCKET", "TRANSPORT_PART_SIZE",
                 "PACING_DELAY_SECONDS", "ENDPOINT"):
        # set first so teardown also removes values loaded from .env files
        monkeypatch.setenv("VOICEDROP_" + name, "")
        monkeypatch.delenv("VOICEDROP_" + name)
    return str(tmp_path / "missing.env")


def test_defaults():
    config = TransferConfig(app_key="k", app_secret="s")
    assert config.provider == StorageProvider.ALIYUN_OSS
    assert config.transport_part_size == DEFAULT_TRANSPORT_PART_SIZE
    assert config.split_part_data_size == DEFAULT_SPLIT_PART_DATA_SIZE


def test_secret_hidden_from_repr():
    assert "hunter2" not in repr(TransferConfig(app_key="k", app_secret="hunter2"))


@pytest.mark.parametrize("field", ["transport_part_size", "multipart_part_size",
                                   "split_part_data_size", "url_ttl_seconds"])
def test_sizes_must_be_positive(field):
    with pytest.raises(ValueError):
        TransferConfig(app_key="k", app_secret="s", **{field: 0})


def test_negative_pacing_rejected():
    with pytest.raises(ValueError):
        TransferConfig(app_key="k", app_secret="s", pacing_delay_seconds=-1)


def test_with_overrides_returns_copy():
    config = TransferConfig(app_key="k", app_secret="s")
    changed = config.with_overrides(bucket="other")
    assert changed.bucket == "other"
    assert config.bucket != "other"


def test_from_env(monkeypatch, clean_env):
    monkeypatch.setenv("VOICEDROP_APP_KEY", "env-key")
    monkeypatch.setenv("VOICEDROP_APP_SECRET", "env-secret")
    monkeypatch.setenv("VOICEDROP_PROVIDER", "R2")
    monkeypatch.setenv("VOICEDROP_BUCKET", "recordings")
    monkeypatch.setenv("VOICEDROP_TRANSPORT_PART_SIZE", "1048576")
    monkeypatch.setenv("VOICEDROP_PACING_DELAY_SECONDS", "0.5")

    config = TransferConfig.from_env(clean_env)
    assert config.app_key == "env-key"
    assert config.provider == StorageProvider.CLOUDFLARE_R2
    assert config.bucket == "recordings"
    assert config.transport_part_size == 1048576
    assert config.pacing_delay_seconds == 0.5


def test_from_env_reads_dotenv_file(tmp_path, clean_env):
    env_file = tmp_path / ".env"
    env_file.write_text("VOICEDROP_APP_KEY=file-key\nVOICEDROP_APP_SECRET=file-secret\n")
    config = TransferConfig.from_env(str(env_file))
    assert config.app_key == "file-key"


def test_from_env_requires_credentials(clean_env):
    with pytest.raises(ValueError, match="VOICEDROP_APP_KEY"):
        TransferConfig.from_env(clean_env)


def test_saved_config_encrypts_secret(tmp_path):
    config = TransferConfig(app_key="k", app_secret="top-secret", provider=StorageProvider.LOCAL,
                            endpoint=str(tmp_path), bucket="b")
    path = save_config(config, tmp_path / "conf" / "config.json")

    raw = json.loads(path.read_text())
    assert raw["is_encrypted"] is True
    assert raw["app_secret"] != "top-secret"
    assert raw["provider"] == "local"

    assert load_config(path) == config


def test_undecryptable_secret_is_an_error():
    data = TransferConfig(app_key="k", app_secret="s").to_dict()
    data["app_secret"] = CredentialManager.encrypt("s", key=CredentialManager.generate_key_from_password("x", b"y"))
    with pytest.raises(ValueError, match="decrypted"):
        TransferConfig.from_dict(data)


def test_plain_dict_round_trip():
    config = TransferConfig(app_key="k", app_secret="s", region="eu-west-1")
    assert TransferConfig.from_dict(config.to_dict(encrypt=False)) == config
