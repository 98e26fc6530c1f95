"""Tests for configuration loading, env overlays and credential overrides."""

from pathlib import Path

import pytest

import appdirs  # type: ignore[import-untyped]
from gox_stream.config import StreamConfig, load_config


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path: Path):
    monkeypatch.setattr(appdirs, "user_config_dir", lambda appname: str(tmp_path / "config"))
    for name in ("GOX_STREAM_ENV", "GOX_API_KEY", "GOX_API_SECRET"):
        monkeypatch.delenv(name, raising=False)


def _write(path: Path, body: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body.strip())
    return path


def test_missing_file_uses_defaults(tmp_path: Path, caplog):
    config = load_config(tmp_path / "nope.yaml")

    assert config.stream == StreamConfig()
    assert config.env == "live"
    assert config.credentials.api_key == ""
    assert "Configuration file not found" in caplog.text


def test_stream_section_is_parsed(tmp_path: Path):
    path = _write(
        tmp_path / "config.yaml",
        """
stream:
  currencies: "usd, eur"
  secure: true
  channel_capacity: 4
  error_capacity: 20
credentials:
  api_key: "0123-abcd"
  api_secret: "c2VjcmV0"
""",
    )

    config = load_config(path)

    assert config.stream.currencies == ["USD", "EUR"]
    assert config.stream.secure is True
    assert config.stream.channel_capacity == 4
    assert config.stream.error_capacity == 20
    assert config.stream.url == "wss://websocket.mtgox.com:443/mtgox?Currency=USD,EUR"
    assert config.credentials.api_key == "0123-abcd"


def test_invalid_values_fall_back_to_defaults(tmp_path: Path, caplog):
    path = _write(
        tmp_path / "config.yaml",
        """
stream:
  currencies: []
  channel_capacity: 0
  error_capacity: "many"
""",
    )

    config = load_config(path)

    assert config.stream.currencies == ["USD"]
    assert config.stream.channel_capacity == 1
    assert config.stream.error_capacity == 10
    assert "stream.channel_capacity is invalid" in caplog.text


def test_quoted_secure_flag_falls_back_to_default(tmp_path: Path, caplog):
    path = _write(
        tmp_path / "config.yaml",
        """
stream:
  secure: "false"
""",
    )

    config = load_config(path)

    assert config.stream.secure is False
    assert config.stream.url.startswith("ws://")
    assert "stream.secure is invalid" in caplog.text


def test_env_overlay_is_deep_merged(tmp_path: Path, monkeypatch):
    path = _write(
        tmp_path / "config.yaml",
        """
stream:
  currencies: [USD]
  secure: false
""",
    )
    _write(
        tmp_path / "config.dev.yaml",
        """
stream:
  host: localhost
""",
    )
    monkeypatch.setenv("GOX_STREAM_ENV", "dev")

    config = load_config(path)

    assert config.env == "dev"
    assert config.stream.host == "localhost"
    assert config.stream.currencies == ["USD"]
    assert config.stream.url == "ws://localhost:80/mtgox?Currency=USD"


def test_environment_credentials_take_precedence(tmp_path: Path, monkeypatch):
    path = _write(
        tmp_path / "config.yaml",
        """
credentials:
  api_key: "file-key"
  api_secret: "file-secret"
""",
    )
    monkeypatch.setenv("GOX_API_KEY", "env-key")
    monkeypatch.setenv("GOX_API_SECRET", "env-secret")

    config = load_config(path)

    assert config.credentials.api_key == "env-key"
    assert config.credentials.api_secret == "env-secret"
    assert "env-secret" not in repr(config.credentials)


def test_non_mapping_file_is_ignored(tmp_path: Path):
    path = _write(tmp_path / "config.yaml", "- just\n- a list")

    config = load_config(path)

    assert config.stream == StreamConfig()


def test_default_path_uses_appdirs(tmp_path: Path):
    _write(tmp_path / "config" / "config.yaml", "stream:\n  currencies: [JPY]")

    config = load_config()

    assert config.stream.currencies == ["JPY"]
