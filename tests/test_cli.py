import pytest
from click.testing import CliRunner

from shared.config import save_config
from transfer_tool.cli import cli
from transfer_tool.credentials import CredentialBroker

from conftest import make_credentials


@pytest.fixture
def runner(monkeypatch):
    monkeypatch.setenv("VOICEDROP_APP_KEY", "")
    monkeypatch.delenv("VOICEDROP_APP_KEY")
    return CliRunner()


@pytest.fixture
def config_file(tmp_path, config):
    return str(save_config(config, tmp_path / "config.json"))


def test_inspect_shows_header(runner, make_wav):
    result = runner.invoke(cli, ["inspect", str(make_wav(sample_rate_hz=48000))])
    assert result.exit_code == 0
    assert "48000 Hz" in result.output


def test_inspect_rejects_unsupported(runner, tmp_path):
    path = tmp_path / "a.ogg"
    path.write_bytes(b"OggS")
    result = runner.invoke(cli, ["inspect", str(path)])
    assert result.exit_code == 1
    assert "Unsupported" in result.output or "ogg" in result.output


def test_upload_without_config(runner, tmp_path, make_wav):
    result = runner.invoke(cli, ["--config", str(tmp_path / "none.json"), "upload", str(make_wav())])
    assert result.exit_code != 0
    assert "Configuration not found" in result.output


def test_split_with_local_store(runner, config_file, config, make_wav, monkeypatch):
    monkeypatch.setattr(CredentialBroker, "fetch", lambda self, now=None: make_credentials())
    result = runner.invoke(cli, ["--config", config_file, "split", str(make_wav()), "--request-id", "r9"])
    assert result.exit_code == 0, result.output
    assert "3 parts uploaded for request r9" in result.output


def test_upload_with_local_store(runner, config_file, make_wav, monkeypatch):
    monkeypatch.setattr(CredentialBroker, "fetch", lambda self, now=None: make_credentials())
    result = runner.invoke(cli, ["--config", config_file, "upload", str(make_wav()), "--key", "audio/k.wav"])
    assert result.exit_code == 0, result.output
    assert "Upload complete" in result.output
