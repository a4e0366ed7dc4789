"""Application configuration handling."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

ENV_PREFIX = "LRAG_"
DEFAULT_CONFIG_PATH = Path("~/.config/local-rag/config.yaml")

OLLAMA_BASE_URL = "http://localhost:11434"
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"

_YAML_KEY_MAP: Mapping[tuple[str, ...], str] = {
    ("storage", "db_path"): "db_path",
    ("chunking", "size"): "chunk_size",
    ("chunking", "overlap"): "chunk_overlap",
    ("retrieval", "top_k"): "top_k",
    ("embeddings", "provider"): "embedding_provider",
    ("embeddings", "model"): "embedding_model",
    ("embeddings", "concurrency"): "embed_concurrency",
    ("llm", "provider"): "llm_provider",
    ("llm", "model"): "llm_model",
    ("providers", "openrouter_api_key"): "openrouter_api_key",
    ("providers", "ollama_base_url"): "ollama_base_url",
    ("providers", "openrouter_base_url"): "openrouter_base_url",
    ("providers", "request_timeout"): "request_timeout",
    ("logging", "json"): "log_json",
}


class ProviderConfig(BaseModel):
    """Immutable provider selection passed to every embedding/generation call."""

    llm_provider: str = "ollama"
    embedding_provider: str = "ollama"
    llm_model: str = "llama3"
    embedding_model: str = "nomic-embed-text"
    openrouter_api_key: str | None = None
    ollama_base_url: str = OLLAMA_BASE_URL
    openrouter_base_url: str = OPENROUTER_BASE_URL
    request_timeout: float = Field(default=60.0, gt=0)

    model_config = {"frozen": True, "extra": "ignore"}

    @field_validator("llm_provider", "embedding_provider", mode="before")
    @classmethod
    def _lower_provider(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("openrouter_api_key", mode="before")
    @classmethod
    def _blank_key_is_missing(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class Settings(BaseModel):
    """Runtime configuration loaded from YAML file and environment variables."""

    db_path: Path = Field(default=Path.home() / ".local-rag" / "rag.db")
    chunk_size: int = Field(default=500, gt=0)
    chunk_overlap: int = Field(default=100, ge=0)
    top_k: int = Field(default=5, gt=0)
    embed_concurrency: int = Field(default=4, ge=1)
    llm_provider: str = "ollama"
    embedding_provider: str = "ollama"
    llm_model: str = "llama3"
    embedding_model: str = "nomic-embed-text"
    openrouter_api_key: str | None = None
    ollama_base_url: str = OLLAMA_BASE_URL
    openrouter_base_url: str = OPENROUTER_BASE_URL
    request_timeout: float = Field(default=60.0, gt=0)
    log_json: bool = True

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

    @model_validator(mode="after")
    def _check_overlap(self) -> "Settings":
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError("chunk_overlap must be smaller than chunk_size")
        return self

    def provider_config(self, **overrides: Any) -> ProviderConfig:
        """Build a fresh ProviderConfig, letting non-None overrides win."""
        values = {name: getattr(self, name) for name in ProviderConfig.model_fields}
        values.update({key: value for key, value in overrides.items() if value is not None})
        return ProviderConfig(**values)

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
    """Map environment variables with LRAG_ prefix into Settings fields."""
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
    """Cached settings accessor for process-level wiring."""
    return Settings.from_yaml()


def load_provider_config(**overrides: Any) -> ProviderConfig:
    """Re-read settings and return a provider config; never cached."""
    return Settings.from_yaml().provider_config(**overrides)


__all__ = ["ProviderConfig", "Settings", "get_settings", "load_provider_config"]
