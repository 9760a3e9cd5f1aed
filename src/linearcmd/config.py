from __future__ import annotations

import json
import os
import platform
from dataclasses import dataclass
from pathlib import Path
from typing import Any, cast

import yaml
from dotenv import load_dotenv

from .errors import ConfigError

APP_NAME = "linear-cmd"
DEFAULT_API_URL = "https://api.linear.app/graphql"
SETTINGS_FILE = "settings.yaml"
USER_METADATA_FILE = "user_metadata.json"
DEFAULT_STORE_FILE = "config.json"


@dataclass
class CliSettings:
    config_dir: Path
    store_path: Path
    api_url: str = DEFAULT_API_URL
    http_timeout: float = 30.0
    retry_attempts: int = 3
    retry_base_sleep: float = 0.5
    # Logging configuration
    logging_json_enabled: bool = False
    logging_level: str = "WARNING"


def _user_os() -> str:
    system = platform.system()
    if system == "Linux":
        release = platform.release().lower()
        if "microsoft" in release or "wsl" in release:
            return "wsl"
        return "linux"
    if system == "Darwin":
        return "mac"
    if system == "Windows":
        return "windows"
    raise ConfigError(f"Unsupported OS: {system}")


def config_directory() -> Path:
    """Per-OS configuration directory (``LINEARCMD_CONFIG_DIR`` wins)."""
    override = os.environ.get("LINEARCMD_CONFIG_DIR")
    if override:
        return Path(override).expanduser()
    home = Path.home()
    user_os = _user_os()
    if user_os in ("linux", "wsl"):
        return home / ".config" / APP_NAME
    if user_os == "mac":
        return home / "Library" / "Preferences" / APP_NAME
    return home / "AppData" / "Roaming" / APP_NAME


def resolve_store_path(config_dir: Path) -> Path:
    """Return the account store location recorded in the user metadata file.

    The metadata file is created on first use, pointing at the default store
    inside ``config_dir``.
    """
    meta_path = config_dir / USER_METADATA_FILE
    if not meta_path.exists():
        default = config_dir / DEFAULT_STORE_FILE
        config_dir.mkdir(parents=True, exist_ok=True)
        meta_path.write_text(
            json.dumps({"config_path": str(default)}, indent=2) + "\n", encoding="utf-8"
        )
        return default
    try:
        raw: Any = json.loads(meta_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Failed to load user metadata {meta_path}: {exc}") from exc
    if not isinstance(raw, dict) or not isinstance(raw.get("config_path"), str):
        raise ConfigError(f"User metadata {meta_path} is missing 'config_path'")
    return Path(raw["config_path"]).expanduser()


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _as_float(value: Any, key: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Setting '{key}' must be a number, got {value!r}") from exc


def _as_int(value: Any, key: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Setting '{key}' must be an integer, got {value!r}") from exc


def _read_settings_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Settings file {path} must contain a mapping")
    return cast(dict[str, Any], raw)


def load_settings(
    config_dir: str | Path | None = None, *, load_env_file: bool = True
) -> CliSettings:
    if load_env_file:
        env_file = Path.cwd() / ".env"
        if env_file.exists():
            load_dotenv(env_file)
    cdir = Path(config_dir) if config_dir is not None else config_directory()
    raw = _read_settings_file(cdir / SETTINGS_FILE)
    api = cast(dict[str, Any], raw.get("api", {}) or {})
    retry = cast(dict[str, Any], raw.get("retry", {}) or {})
    logging_config = cast(dict[str, Any], raw.get("logging", {}) or {})

    api_url = os.environ.get("LINEARCMD_API_URL") or api.get("url", DEFAULT_API_URL)
    timeout_raw = os.environ.get("LINEARCMD_HTTP_TIMEOUT") or api.get("timeout", 30)
    attempts_raw = os.environ.get("LINEARCMD_RETRY_ATTEMPTS") or retry.get("attempts", 3)
    base_raw = os.environ.get("LINEARCMD_RETRY_BASE") or retry.get("base_sleep", 0.5)
    level = os.environ.get("LINEARCMD_LOG_LEVEL") or logging_config.get("level", "WARNING")

    return CliSettings(
        config_dir=cdir,
        store_path=resolve_store_path(cdir),
        api_url=str(api_url),
        http_timeout=_as_float(timeout_raw, "api.timeout"),
        retry_attempts=_as_int(attempts_raw, "retry.attempts"),
        retry_base_sleep=_as_float(base_raw, "retry.base_sleep"),
        logging_json_enabled=_env_bool(
            os.environ.get("LINEARCMD_LOG_JSON"),
            bool(logging_config.get("json_enabled", False)),
        ),
        logging_level=str(level).upper(),
    )


__all__ = [
    "APP_NAME",
    "CliSettings",
    "DEFAULT_API_URL",
    "config_directory",
    "load_settings",
    "resolve_store_path",
]
