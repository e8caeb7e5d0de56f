"""Configuration loading and validation for the Elio chat client."""

from __future__ import annotations

from copy import deepcopy
import logging
import os
from pathlib import Path
import re
import tomllib
from typing import Any
from urllib.parse import urlparse

from platformdirs import user_config_path, user_data_path, user_state_path
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from .exceptions import ConfigValidationError
from .history import HISTORY_STORAGE_KEY
from .session import DEFAULT_SYSTEM_INSTRUCTION

LOGGER = logging.getLogger(__name__)

APP_NAME = "elio-chat"
CONFIG_DIR = user_config_path(APP_NAME)
CONFIG_PATH = CONFIG_DIR / "config.toml"

VALID_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}
VALID_REASONING_EFFORTS = {"", "low", "medium", "high"}
_STORAGE_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


def _non_empty_string(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError("Expected a string value.")
    normalized = value.strip()
    if not normalized:
        raise ValueError("String value must not be empty.")
    return normalized


class AppConfig(BaseModel):
    """Application metadata."""

    title: str = "Elio"

    @field_validator("title", mode="before")
    @classmethod
    def _validate_title(cls, value: Any) -> str:
        return _non_empty_string(value)


class ModelConfig(BaseModel):
    """Remote model endpoint and session settings."""

    host: str = "http://localhost:11434"
    model: str = "llama3.2"
    timeout: int = Field(default=120, ge=1, le=3600)
    api_key: str = ""
    system_prompt: str = DEFAULT_SYSTEM_INSTRUCTION
    reasoning_effort: str = ""
    max_history_messages: int = Field(default=200, ge=2, le=100_000)
    max_context_tokens: int = Field(default=8192, ge=128, le=1_000_000)

    @field_validator("host", mode="before")
    @classmethod
    def _validate_host(cls, value: Any) -> str:
        normalized = _non_empty_string(value)
        parsed = urlparse(normalized)
        if parsed.scheme.lower() not in {"http", "https"}:
            raise ValueError("model.host must use http or https scheme.")
        if not parsed.hostname:
            raise ValueError("model.host must include a hostname.")
        return normalized

    @field_validator("model", mode="before")
    @classmethod
    def _validate_model(cls, value: Any) -> str:
        return _non_empty_string(value)

    @field_validator("api_key", "system_prompt", mode="before")
    @classmethod
    def _normalize_text(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Expected a string value.")
        return value.strip()

    @field_validator("reasoning_effort", mode="before")
    @classmethod
    def _validate_reasoning_effort(cls, value: Any) -> str:
        if value is None:
            return ""
        if not isinstance(value, str):
            raise ValueError("reasoning_effort must be a string.")
        normalized = value.strip().lower()
        if normalized not in VALID_REASONING_EFFORTS:
            raise ValueError(f"Unsupported reasoning_effort {normalized!r}.")
        return normalized


class SessionSettings(BaseModel):
    """Initial session configuration."""

    use_thinking: bool = False


class AttachmentsConfig(BaseModel):
    """Limits for files attached to a message."""

    max_bytes: int = Field(default=10 * 1024 * 1024, ge=1, le=100 * 1024 * 1024)


class PersistenceConfig(BaseModel):
    """Where conversation history is stored."""

    directory: str = str(user_data_path(APP_NAME))
    storage_key: str = HISTORY_STORAGE_KEY

    @field_validator("directory", mode="before")
    @classmethod
    def _validate_directory(cls, value: Any) -> str:
        return _non_empty_string(value)

    @field_validator("storage_key", mode="before")
    @classmethod
    def _validate_storage_key(cls, value: Any) -> str:
        normalized = _non_empty_string(value)
        if not _STORAGE_KEY_PATTERN.match(normalized):
            raise ValueError("storage_key may only contain letters, digits, '.', '_' and '-'.")
        return normalized


class SuggestionsConfig(BaseModel):
    """Starter prompt suggestions on an empty conversation."""

    enabled: bool = True


class LoggingConfig(BaseModel):
    """Logging behavior and output destinations."""

    level: str = "INFO"
    structured: bool = True
    log_to_file: bool = False
    log_file_path: str = str(user_state_path(APP_NAME) / "app.log")

    @field_validator("level", mode="before")
    @classmethod
    def _validate_level(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Logging level must be a string.")
        normalized = value.strip().upper()
        if normalized not in VALID_LOG_LEVELS:
            raise ValueError(f"Unsupported log level {normalized!r}.")
        return normalized

    @field_validator("log_file_path", mode="before")
    @classmethod
    def _validate_log_file_path(cls, value: Any) -> str:
        return _non_empty_string(value)


class KeybindsConfig(BaseModel):
    """Keyboard action mapping. Blank values disable a binding."""

    new_conversation: str = "ctrl+n"
    toggle_thinking: str = "ctrl+t"
    delete_conversation: str = "ctrl+d"
    export_conversation: str = "ctrl+e"
    focus_history: str = "ctrl+h"
    quit: str = "ctrl+q"

    @field_validator("*", mode="before")
    @classmethod
    def _validate_keybind(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Keybind must be a string.")
        return value.strip()


class Config(BaseModel):
    """Root configuration model for all sections."""

    model_config = ConfigDict(populate_by_name=True)
    app: AppConfig = AppConfig()
    model: ModelConfig = ModelConfig()
    session: SessionSettings = SessionSettings()
    attachments: AttachmentsConfig = AttachmentsConfig()
    persistence: PersistenceConfig = PersistenceConfig()
    suggestions: SuggestionsConfig = SuggestionsConfig()
    logging: LoggingConfig = LoggingConfig()
    keybinds: KeybindsConfig = KeybindsConfig()


DEFAULT_CONFIG: dict[str, dict[str, Any]] = Config().model_dump()


def ensure_config_dir(config_dir: Path | None = None) -> Path:
    """Ensure that the config directory exists and return its path."""
    directory = config_dir or CONFIG_DIR
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        LOGGER.warning("Unable to create config directory %s: %s", directory, exc)
    return directory


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override values onto base values."""
    merged: dict[str, Any] = deepcopy(base)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _enforce_private_permissions(path: Path) -> None:
    """Best-effort private permissions; the file may hold an API key."""
    if os.name != "posix" or not path.exists():
        return
    try:
        path.chmod(0o600)
    except OSError as exc:
        LOGGER.warning("Unable to enforce 0600 permissions for %s: %s", path, exc)


def _validate_config(raw: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """Validate merged config and fall back to safe defaults when invalid."""
    try:
        return Config.model_validate(raw).model_dump()
    except ValidationError as exc:
        LOGGER.warning(
            "config.invalid",
            extra={"event": "config.invalid", "reason": str(exc)},
        )
        return deepcopy(DEFAULT_CONFIG)
    except Exception as exc:  # noqa: BLE001 - unexpected model construction failure.
        raise ConfigValidationError(f"Unable to validate configuration: {exc}") from exc


def load_config(config_path: Path | None = None) -> dict[str, dict[str, Any]]:
    """Load configuration from TOML, merge with defaults, and validate.

    A missing file yields the defaults. An unparseable file is logged and
    ignored rather than crashing the client.
    """
    target_path = config_path or CONFIG_PATH
    ensure_config_dir(target_path.parent)

    raw_data: dict[str, Any] = {}
    if target_path.exists():
        _enforce_private_permissions(target_path)
        try:
            raw_data = tomllib.loads(target_path.read_text(encoding="utf-8"))
        except (OSError, tomllib.TOMLDecodeError) as exc:
            LOGGER.warning(
                "config.parse_failed",
                extra={"event": "config.parse_failed", "path": str(target_path), "reason": str(exc)},
            )
            raw_data = {}

    return _validate_config(_deep_merge(DEFAULT_CONFIG, raw_data))
