"""Application settings loaded from environment variables and config files.

Configuration is loaded from (highest priority first):
1. Environment variables (prefix: ``QUEUENOTIFIER_``, nested via ``__``)
2. YAML config file (``QUEUENOTIFIER_CONFIG_PATH`` env var)
3. Defaults defined here
"""

from __future__ import annotations

import enum
from pathlib import Path
from typing import Any, Self

import yaml
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from queue_notifier.models import Category

# ---------------------------------------------------------------------------
# Enums for validated choices
# ---------------------------------------------------------------------------


class StorageEngine(enum.StrEnum):
    """Supported settings-store backends."""

    MEMORY = "memory"
    REDIS = "redis"


# ---------------------------------------------------------------------------
# Sub-config models
# ---------------------------------------------------------------------------


class BotConfig(BaseSettings):
    """Telegram bot settings."""

    model_config = SettingsConfigDict(
        env_prefix="QUEUENOTIFIER_BOT__",
        case_sensitive=False,
    )

    token: str = ""
    admin_ids: list[int] = Field(default_factory=lambda: [389569299, 366409812])
    site_url: str = "https://dotaclassic.ru"


class StorageConfig(BaseSettings):
    """Recipient settings store."""

    model_config = SettingsConfigDict(
        env_prefix="QUEUENOTIFIER_STORAGE__",
        case_sensitive=False,
    )

    engine: StorageEngine = Field(
        default=StorageEngine.REDIS,
        description="Store backend: memory or redis",
    )
    url: str = "redis://localhost:6379/0"
    users_key: str = "tg_bot:users"
    max_connections: int = 10


class StreamConfig(BaseSettings):
    """Queue-state event source."""

    model_config = SettingsConfigDict(
        env_prefix="QUEUENOTIFIER_STREAM__",
        case_sensitive=False,
    )

    enabled: bool = True
    url: str = "https://api.dotaclassic.ru"
    path: str = "/socket.io"
    event: str = "QUEUE_STATE"
    transports: list[str] = ["websocket"]
    reconnect_initial: float = 1.0
    reconnect_max: float = 30.0


class QueueConfig(BaseSettings):
    """Threshold policy and mode → category mapping."""

    model_config = SettingsConfigDict(
        env_prefix="QUEUENOTIFIER_QUEUE__",
        case_sensitive=False,
    )

    thresholds: list[int] = Field(default_factory=lambda: [8, 9])
    low_water_mark: int = 5
    modes: dict[int, Category] = Field(
        default_factory=lambda: {1: Category.NORMAL, 8: Category.HIGHROOM},
    )
    default_category: Category = Category.HIGHROOM

    @field_validator("thresholds")
    @classmethod
    def _positive_thresholds(cls, value: list[int]) -> list[int]:
        if any(t <= 0 for t in value):
            msg = "thresholds must be positive integers"
            raise ValueError(msg)
        return value

    @field_validator("modes")
    @classmethod
    def _no_manual_mode(cls, value: dict[int, Category]) -> dict[int, Category]:
        if Category.MANUAL in value.values():
            msg = "the manual category cannot be bound to a queue mode"
            raise ValueError(msg)
        return value


class StatsConfig(BaseSettings):
    """Online statistics endpoint used by the manual broadcast."""

    model_config = SettingsConfigDict(
        env_prefix="QUEUENOTIFIER_STATS__",
        case_sensitive=False,
    )

    url: str = "https://api.dotaclassic.ru"
    timeout: float = 10.0


class BroadcastConfig(BaseSettings):
    """Fan-out settings."""

    model_config = SettingsConfigDict(
        env_prefix="QUEUENOTIFIER_BROADCAST__",
        case_sensitive=False,
    )

    max_concurrency: int = Field(default=20, ge=1)
    drain_timeout: float = 10.0


class ServerConfig(BaseSettings):
    """Diagnostics HTTP server settings."""

    model_config = SettingsConfigDict(
        env_prefix="QUEUENOTIFIER_SERVER__",
        case_sensitive=False,
    )

    enabled: bool = True
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 3003


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


def _load_yaml(path: str | Path) -> dict[str, Any]:
    """Load a YAML configuration file and return its contents as a dict.

    Returns an empty dict if the file doesn't exist or is empty.
    """
    p = Path(path)
    if not p.exists():
        return {}
    text = p.read_text(encoding="utf-8")
    data = yaml.safe_load(text)
    return data if isinstance(data, dict) else {}


class AppConfig(BaseSettings):
    """Top-level application configuration.

    Loads settings from environment variables (``QUEUENOTIFIER_`` prefix),
    an optional YAML file, and built-in defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="QUEUENOTIFIER_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    debug: bool = False
    log_level: str = "info"
    config_path: str = ""

    bot: BotConfig = Field(default_factory=BotConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    stream: StreamConfig = Field(default_factory=StreamConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    stats: StatsConfig = Field(default_factory=StatsConfig)
    broadcast: BroadcastConfig = Field(default_factory=BroadcastConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    @model_validator(mode="before")
    @classmethod
    def _merge_yaml(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Merge YAML config file contents under the env var overrides."""
        config_path = values.get("config_path", "")
        if not config_path:
            return values
        yaml_data = _load_yaml(config_path)
        for key, val in yaml_data.items():
            if key not in values or values[key] is None:
                values[key] = val
            elif isinstance(val, dict) and isinstance(values.get(key), dict):
                values[key] = {**val, **values[key]}
        return values

    @classmethod
    def from_yaml(cls, path: str | Path) -> Self:
        """Construct ``AppConfig`` loading defaults from a YAML file.

        Environment variables still override YAML values.
        """
        return cls(config_path=str(path))
