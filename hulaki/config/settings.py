"""Configuration settings and loading."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class HulakiConfig(BaseSettings):
    """Configuration for the hulaki command-line client."""

    model_config = SettingsConfigDict(
        env_prefix="HULAKI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    timeout: float = 30.0
    open_timeout: float = 10.0
    send_timeout: float = 5.0
    grpc_connect_timeout: float = 1.0
    socketio_listen_duration: str = "5s"
    event_queue_size: int = 1024
    log_limit: int | None = None
    max_frame_size: int | None = None
    char_limit: int = 240
    verbose: bool = False
    log_file: str | None = None

    @field_validator("timeout", "open_timeout", "send_timeout", "grpc_connect_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeouts must be positive")
        return v

    @field_validator("event_queue_size", "char_limit")
    @classmethod
    def validate_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("log_limit", "max_frame_size")
    @classmethod
    def validate_optional_limit(cls, v: int | None) -> int | None:
        if v is not None and v < 1:
            raise ValueError("must be at least 1 or unset")
        return v


def load_config(config_path: str | Path | None = None) -> HulakiConfig:
    """Load configuration from file and environment.

    Priority: env vars > config file > defaults
    """
    config_data: dict[str, Any] = {}

    if config_path is not None:
        config_path = Path(config_path)
        if config_path.exists():
            with open(config_path) as f:
                config_data = yaml.safe_load(f) or {}

    env_overrides = _get_env_overrides()
    config_data.update(env_overrides)

    return HulakiConfig(**config_data)


def _get_env_overrides() -> dict[str, Any]:
    """Get configuration overrides from environment variables."""
    overrides: dict[str, Any] = {}

    env_mappings = {
        "HULAKI_TIMEOUT": ("timeout", float),
        "HULAKI_OPEN_TIMEOUT": ("open_timeout", float),
        "HULAKI_SEND_TIMEOUT": ("send_timeout", float),
        "HULAKI_GRPC_CONNECT_TIMEOUT": ("grpc_connect_timeout", float),
        "HULAKI_SOCKETIO_LISTEN_DURATION": "socketio_listen_duration",
        "HULAKI_EVENT_QUEUE_SIZE": ("event_queue_size", int),
        "HULAKI_LOG_LIMIT": ("log_limit", int),
        "HULAKI_MAX_FRAME_SIZE": ("max_frame_size", int),
        "HULAKI_CHAR_LIMIT": ("char_limit", int),
        "HULAKI_LOG_FILE": "log_file",
        "HULAKI_VERBOSE": ("verbose", lambda x: x.lower() in ("true", "1", "yes")),
    }

    for env_key, config_key in env_mappings.items():
        value = os.environ.get(env_key)
        if value is not None:
            if isinstance(config_key, tuple):
                key, converter = config_key
                overrides[key] = converter(value)
            else:
                overrides[config_key] = value

    return overrides
