import json
from pathlib import Path

import pytest

from linearcmd import config
from linearcmd.config import load_settings, resolve_store_path
from linearcmd.errors import ConfigError
from linearcmd.linear_api import client_factory


def test_config_dir_override(tmp_path):
    assert config.config_directory() == tmp_path / "config"


@pytest.mark.parametrize(
    ("system", "release", "expected"),
    [
        ("Linux", "6.1.0", Path(".config") / "linear-cmd"),
        ("Linux", "5.15.0-microsoft-standard-WSL2", Path(".config") / "linear-cmd"),
        ("Darwin", "23.0", Path("Library") / "Preferences" / "linear-cmd"),
        ("Windows", "10", Path("AppData") / "Roaming" / "linear-cmd"),
    ],
)
def test_config_dir_per_os(monkeypatch, tmp_path, system, release, expected):
    monkeypatch.delenv("LINEARCMD_CONFIG_DIR")
    monkeypatch.setattr(config.platform, "system", lambda: system)
    monkeypatch.setattr(config.platform, "release", lambda: release)
    monkeypatch.setattr(config.Path, "home", classmethod(lambda cls: tmp_path))
    assert config.config_directory() == tmp_path / expected


def test_unsupported_os(monkeypatch):
    monkeypatch.delenv("LINEARCMD_CONFIG_DIR")
    monkeypatch.setattr(config.platform, "system", lambda: "Plan9")
    with pytest.raises(ConfigError):
        config.config_directory()


def test_metadata_file_created_on_first_use(tmp_path):
    store_path = resolve_store_path(tmp_path)
    assert store_path == tmp_path / "config.json"
    meta = json.loads((tmp_path / "user_metadata.json").read_text())
    assert meta == {"config_path": str(tmp_path / "config.json")}


def test_metadata_can_relocate_the_store(tmp_path):
    custom = tmp_path / "elsewhere" / "accounts.json"
    (tmp_path / "user_metadata.json").write_text(json.dumps({"config_path": str(custom)}))
    assert resolve_store_path(tmp_path) == custom


def test_corrupt_metadata_is_a_config_error(tmp_path):
    (tmp_path / "user_metadata.json").write_text("[]")
    with pytest.raises(ConfigError):
        resolve_store_path(tmp_path)


def test_defaults_without_settings_file(tmp_path):
    settings = load_settings(tmp_path)
    assert settings.api_url == config.DEFAULT_API_URL
    assert settings.http_timeout == 30.0
    assert settings.retry_attempts == 3
    assert settings.logging_level == "WARNING"
    assert settings.logging_json_enabled is False
    assert settings.store_path == tmp_path / "config.json"


def test_settings_yaml_and_env_overrides(tmp_path, monkeypatch):
    (tmp_path / "settings.yaml").write_text(
        "api:\n  url: https://example.test/graphql\n  timeout: 5\n"
        "retry:\n  attempts: 5\n  base_sleep: 0.1\n"
        "logging:\n  json_enabled: true\n  level: info\n"
    )
    monkeypatch.delenv("LINEARCMD_RETRY_BASE")
    monkeypatch.setenv("LINEARCMD_HTTP_TIMEOUT", "12.5")

    settings = load_settings(tmp_path)

    assert settings.api_url == "https://example.test/graphql"
    assert settings.http_timeout == 12.5
    assert settings.retry_attempts == 5
    assert settings.retry_base_sleep == 0.1
    assert settings.logging_json_enabled is True
    assert settings.logging_level == "INFO"


def test_retry_env_overrides_settings_file(tmp_path, monkeypatch):
    (tmp_path / "settings.yaml").write_text("retry:\n  attempts: 5\n  base_sleep: 2\n")
    monkeypatch.setenv("LINEARCMD_RETRY_ATTEMPTS", "1")
    monkeypatch.setenv("LINEARCMD_RETRY_BASE", "0.25")

    settings = load_settings(tmp_path)

    assert settings.retry_attempts == 1
    assert settings.retry_base_sleep == 0.25
    client = client_factory(settings)("lin_api_key")
    assert client.retry is not None
    assert client.retry.attempts == 1
    assert client.retry.base_sleep == 0.25


def test_non_numeric_retry_env_is_a_config_error(tmp_path, monkeypatch):
    monkeypatch.setenv("LINEARCMD_RETRY_ATTEMPTS", "many")
    with pytest.raises(ConfigError):
        load_settings(tmp_path)


def test_dotenv_file_is_loaded(tmp_path):
    (tmp_path / ".env").write_text("LINEARCMD_LOG_LEVEL=debug\n")
    settings = load_settings(tmp_path / "cfg")
    assert settings.logging_level == "DEBUG"


def test_invalid_yaml(tmp_path):
    (tmp_path / "settings.yaml").write_text("api: [unclosed\n")
    with pytest.raises(ConfigError):
        load_settings(tmp_path)


def test_non_numeric_timeout(tmp_path):
    (tmp_path / "settings.yaml").write_text("api:\n  timeout: soon\n")
    with pytest.raises(ConfigError):
        load_settings(tmp_path)
