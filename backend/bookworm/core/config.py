"""Application configuration handling."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, Field, field_validator

from bookworm.utils.retry import RetryPolicy, always_retry, is_retryable_error

ENV_PREFIX = "BKW_"
DEFAULT_CONFIG_PATH = Path("~/.config/bookworm/config.yaml")

_YAML_KEY_MAP: Mapping[tuple[str, ...], str] = {
    ("storage", "db_path"): "db_path",
    ("ml", "base_url"): "ml_service_url",
    ("ml", "timeout"): "ml_timeout",
    ("ml", "retries"): "ml_retries",
    ("ml", "retry_delay"): "ml_retry_delay",
    ("ml", "retry_max_delay"): "ml_retry_max_delay",
    ("ml", "backoff_multiplier"): "ml_backoff_multiplier",
    ("ml", "retry_transient_only"): "ml_retry_transient_only",
    ("ml", "embedding_dim"): "embedding_dim",
    ("analysis", "top_words"): "top_words_default",
    ("enrichment", "reprocess_limit"): "reprocess_limit",
    ("enrichment", "max_concurrent"): "max_concurrent_enrichments",
    ("enrichment", "auto_enqueue"): "auto_enqueue",
}


class Settings(BaseModel):
    """Runtime configuration loaded from YAML file and environment variables."""

    db_path: Path = Field(default=Path.home() / ".bookworm" / "bookworm.db")
    ml_service_url: str = "http://localhost:8000"
    ml_timeout: float = Field(default=30.0, gt=0)
    ml_retries: int = Field(default=3, ge=1)
    ml_retry_delay: float = Field(default=1.0, ge=0)
    ml_retry_max_delay: float = Field(default=30.0, ge=0)
    ml_backoff_multiplier: float = Field(default=2.0, gt=1)
    ml_retry_transient_only: bool = False
    embedding_dim: int = Field(default=384, ge=1)
    top_words_default: int = Field(default=20, ge=0)
    reprocess_limit: int = Field(default=10, ge=1)
    max_concurrent_enrichments: int = Field(default=0, ge=0)
    auto_enqueue: bool = True

    model_config = {
        "validate_assignment": True,
        "extra": "ignore",
    }

    @field_validator("db_path", mode="before")
    @classmethod
    def _expand_db_path(cls, value: Any) -> Path:
        if isinstance(value, Path):
            return value.expanduser()
        if isinstance(value, str):
            return Path(value).expanduser()
        raise TypeError("db_path must be a path or string")

    @field_validator("ml_service_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    def retry_policy(self) -> RetryPolicy:
        """Backoff policy for ML calls, built fresh for each call site."""
        return RetryPolicy(
            max_attempts=self.ml_retries,
            initial_delay=self.ml_retry_delay,
            max_delay=max(self.ml_retry_max_delay, self.ml_retry_delay),
            backoff_multiplier=self.ml_backoff_multiplier,
            should_retry=is_retryable_error if self.ml_retry_transient_only else always_retry,
        )

    @classmethod
    def from_yaml(cls, path: Path | None = None) -> "Settings":
        """Load YAML config and overlay env vars; fall back to defaults."""
        config_path = cls._resolve_config_path(path)
        data: dict[str, Any] = {}
        if config_path and config_path.exists():
            with config_path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
            data.update(_flatten_yaml(raw))
        data.update(_load_env_overrides())
        return cls(**data)

    @staticmethod
    def _resolve_config_path(path: Path | None) -> Path | None:
        if path is not None:
            return path.expanduser()
        env_path = os.environ.get(f"{ENV_PREFIX}CONFIG")
        if env_path:
            return Path(env_path).expanduser()
        resolved_default = DEFAULT_CONFIG_PATH.expanduser()
        return resolved_default if resolved_default.exists() else None


def _flatten_yaml(raw: Mapping[str, Any], prefix: tuple[str, ...] = ()) -> dict[str, Any]:
    """Flatten nested YAML configuration to Settings field names."""
    flat: dict[str, Any] = {}
    for key, value in raw.items():
        next_prefix = prefix + (key,)
        if isinstance(value, Mapping):
            flat.update(_flatten_yaml(value, prefix=next_prefix))
        else:
            mapped_key = _YAML_KEY_MAP.get(next_prefix)
            if mapped_key:
                flat[mapped_key] = value
            elif key in Settings.model_fields:
                flat[key] = value
    return flat


def _load_env_overrides() -> dict[str, Any]:
    """Map environment variables with BKW_ prefix into Settings fields."""
    overrides: dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        field_name = key[len(ENV_PREFIX) :].lower()
        if field_name in Settings.model_fields:
            overrides[field_name] = value
    return overrides


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings accessor for dependency injection."""
    return Settings.from_yaml()


__all__ = ["Settings", "get_settings"]
