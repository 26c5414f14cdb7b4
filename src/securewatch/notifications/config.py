"""Notification engine configuration.

Settings are validated with Pydantic. They are read from an optional JSON
file (default: ~/.securewatch/config.json) and then overridden by
``SECUREWATCH_*`` environment variables.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, SecretStr, ValidationError, field_validator, model_validator

from securewatch.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".securewatch" / "config.json"


class EngineConfig(BaseModel):
    """Notification engine configuration.

    Attributes:
        api_base_url: Base URL of the SecureWatch API
        request_timeout: HTTP timeout in seconds
        auth_token: Optional bearer token sent with every request
        poll_interval_seconds: Delay between background refreshes
        fetch_limit: Page size requested from the notification service
        max_notifications: Cap on the canonical notification list
        dismissal_limit: Size above which dismissed ids are trimmed
        dismissal_retain: Number of dismissed ids kept after trimming
        default_toast_duration_ms: Lifetime of toasts without a duration
        storage_dir: Directory for persisted client state
    """

    api_base_url: str = Field(default="http://localhost:3001", description="SecureWatch API URL")
    request_timeout: float = Field(default=10.0, gt=0, le=300)
    auth_token: Optional[SecretStr] = Field(default=None, description="Bearer token")
    poll_interval_seconds: float = Field(default=30.0, gt=0)
    fetch_limit: int = Field(default=20, ge=1, le=500)
    max_notifications: int = Field(default=50, ge=1)
    dismissal_limit: int = Field(default=100, ge=1)
    dismissal_retain: int = Field(default=50, ge=0)
    default_toast_duration_ms: int = Field(default=5000, gt=0)
    storage_dir: Path = Field(default=Path.home() / ".securewatch" / "notifications")

    @field_validator("api_base_url")
    @classmethod
    def _validate_api_base_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("api_base_url must start with http:// or https://")
        return value.rstrip("/")

    @field_validator("storage_dir")
    @classmethod
    def _expand_storage_dir(cls, value: Path) -> Path:
        return value.expanduser()

    @model_validator(mode="after")
    def _check_dismissal_bounds(self) -> "EngineConfig":
        if self.dismissal_retain > self.dismissal_limit:
            raise ValueError("dismissal_retain must not exceed dismissal_limit")
        return self


def load_engine_config(path: Path = DEFAULT_CONFIG_PATH) -> EngineConfig:
    """Load configuration from ``path`` (if present) plus environment overrides.

    Raises:
        ConfigurationError: If the file is unreadable or values are invalid
    """
    data: Dict[str, Any] = {}
    path = Path(path).expanduser()

    if path.exists():
        try:
            data = json.loads(path.read_text())
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigurationError(f"Cannot read config file {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a JSON object")

    data = _apply_env_overrides(data)

    try:
        config = EngineConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc

    logger.debug(f"Loaded engine config (api={config.api_base_url}, path={path})")
    return config


def _apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(data)
    _set_env_override(merged, "api_base_url", "SECUREWATCH_API_URL")
    _set_env_override(merged, "auth_token", "SECUREWATCH_AUTH_TOKEN")
    _set_env_override(merged, "request_timeout", "SECUREWATCH_REQUEST_TIMEOUT", cast_float=True)
    _set_env_override(merged, "poll_interval_seconds", "SECUREWATCH_POLL_INTERVAL", cast_float=True)
    _set_env_override(merged, "fetch_limit", "SECUREWATCH_FETCH_LIMIT", cast_int=True)
    _set_env_override(merged, "storage_dir", "SECUREWATCH_STORAGE_DIR")
    return merged


def _set_env_override(
    mapping: Dict[str, Any],
    key: str,
    env_name: str,
    *,
    cast_int: bool = False,
    cast_float: bool = False,
) -> None:
    raw = os.getenv(env_name)
    if raw is None:
        return
    try:
        if cast_int:
            mapping[key] = int(raw)
        elif cast_float:
            mapping[key] = float(raw)
        else:
            mapping[key] = raw
    except ValueError as exc:
        raise ConfigurationError(f"{env_name} has an invalid value: {raw!r}") from exc


# Global instance
_engine_config: Optional[EngineConfig] = None


def get_engine_config() -> EngineConfig:
    """Get the default engine config singleton."""
    global _engine_config
    if _engine_config is None:
        _engine_config = load_engine_config()
    return _engine_config
