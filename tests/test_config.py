"""Tests for Settings defaults, validation and YAML persistence."""

import pytest
from pydantic import ValidationError

from apple_mcp.config import ALL_BACKENDS, Settings, load_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for var in (
        "APPLE_MCP_DEBUG",
        "APPLE_MCP_EAGER_LOADING",
        "APPLE_MCP_STARTUP_TIMEOUT",
        "APPLE_MCP_ENABLED_BACKENDS",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))


def test_defaults():
    settings = Settings()
    assert settings.eager_loading is True
    assert settings.startup_timeout == 5.0
    assert settings.enabled_backends == ALL_BACKENDS
    assert settings.default_notes_folder == "Claude"
    assert settings.log_pii_redact is True


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("APPLE_MCP_STARTUP_TIMEOUT", "2.5")
    monkeypatch.setenv("APPLE_MCP_EAGER_LOADING", "false")
    settings = Settings()
    assert settings.startup_timeout == 2.5
    assert settings.eager_loading is False


def test_unknown_backend_is_rejected():
    with pytest.raises(ValidationError, match="Unknown backends: spotify"):
        Settings(enabled_backends=["contacts", "spotify"])


def test_non_positive_timeout_is_rejected():
    with pytest.raises(ValidationError):
        Settings(startup_timeout=0)


def test_yaml_round_trip(tmp_path):
    path = tmp_path / "nested" / "config.yaml"
    Settings(enabled_backends=["notes", "mail"], startup_timeout=1.5).to_file(str(path))

    loaded = load_settings(str(path))
    assert loaded.enabled_backends == ["notes", "mail"]
    assert loaded.startup_timeout == 1.5


def test_missing_explicit_config_is_an_error(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_settings(str(tmp_path / "nope.yaml"))


def test_missing_default_config_falls_back_to_environment():
    assert load_settings().app_name == "Apple MCP tools"
