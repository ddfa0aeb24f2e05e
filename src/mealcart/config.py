"""Application configuration helpers."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

ENV_FILE_CANDIDATES = (Path(".env"), Path(".env.local"))


class Settings(BaseModel):
    """Global application settings loaded from environment variables or .env files."""

    database_path: Path = Field(
        default=Path("./data/mealcart.db"),
        description="SQLite database location.",
    )
    api_token: Optional[str] = Field(
        default=None,
        description="Bearer token required for mutating endpoints.",
    )
    log_level: str = Field(default="INFO", description="Logging level (DEBUG/INFO/WARNING/ERROR)")
    log_format: str = Field(
        default="plain",
        description="Logging format (plain/json).",
    )
    log_requests: bool = Field(
        default=True,
        description="Emit request access logs when true.",
    )
    embedding_base_url: Optional[str] = Field(
        default=None,
        description="Embedding API base URL (OpenAI-compatible or Ollama).",
    )
    embedding_api_key: Optional[str] = Field(
        default=None,
        description="API key sent as a bearer token to the embedding endpoint.",
    )
    embedding_model: str = Field(
        default="text-embedding-3-small",
        description="Model identifier passed to the embedding endpoint.",
    )
    embedding_provider: str = Field(
        default="openai",
        description="Embedding provider (openai or ollama).",
    )
    embedding_timeout: float = Field(
        default=30.0,
        description="Seconds before an embedding request is abandoned.",
    )
    similarity_threshold: float = Field(
        default=0.82,
        description="Cosine similarity at or above which an ingredient counts as covered.",
    )
    deduplication_threshold: float = Field(
        default=0.9,
        description="Cosine similarity at or above which two ingredients are merged.",
    )
    embedding_dedup_enabled: bool = Field(
        default=False,
        description="Merge semantically identical meal ingredients during sync when true.",
    )
    llm_base_url: Optional[str] = Field(
        default=None,
        description="Chat completion base URL used by the base-ingredient backfill.",
    )
    llm_api_key: Optional[str] = Field(
        default=None,
        description="API key for the chat completion endpoint (falls back to the embedding key).",
    )
    llm_model: str = Field(
        default="gpt-4o-mini",
        description="Model identifier for base-ingredient normalisation.",
    )
    llm_provider: str = Field(
        default="openai",
        description="Chat completion provider (openai or ollama).",
    )
    llm_temperature: float = Field(
        default=0.0,
        description="Sampling temperature for base-ingredient normalisation.",
    )
    llm_max_tokens: int = Field(
        default=2000,
        description="Maximum tokens to request from the normalisation LLM.",
    )
    backfill_batch_size: int = Field(
        default=50,
        description="Number of master list items handled per backfill batch.",
    )

    model_config = ConfigDict(frozen=True)


def _coerce_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _parse_env_file(path: Path) -> dict[str, str]:
    payload: dict[str, str] = {}
    try:
        with path.open("r", encoding="utf-8") as handle:
            for raw_line in handle:
                line = raw_line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                key, raw_value = line.split("=", 1)
                payload[key.strip()] = raw_value.strip().strip('"').strip("'")
    except FileNotFoundError:
        return {}
    return payload


def _load_env_file_values() -> dict[str, str]:
    values: dict[str, str] = {}
    for candidate in ENV_FILE_CANDIDATES:
        values.update(_parse_env_file(candidate))
    return values


_FLOAT_FIELDS = {
    "MEALCART_EMBEDDING_TIMEOUT": "embedding_timeout",
    "MEALCART_SIMILARITY_THRESHOLD": "similarity_threshold",
    "MEALCART_DEDUPLICATION_THRESHOLD": "deduplication_threshold",
    "MEALCART_LLM_TEMPERATURE": "llm_temperature",
}

_INT_FIELDS = {
    "MEALCART_LLM_MAX_TOKENS": "llm_max_tokens",
    "MEALCART_BACKFILL_BATCH_SIZE": "backfill_batch_size",
}

_STR_FIELDS = {
    "MEALCART_API_TOKEN": "api_token",
    "MEALCART_LOG_LEVEL": "log_level",
    "MEALCART_LOG_FORMAT": "log_format",
    "MEALCART_EMBEDDING_BASE_URL": "embedding_base_url",
    "MEALCART_EMBEDDING_MODEL": "embedding_model",
    "MEALCART_EMBEDDING_PROVIDER": "embedding_provider",
    "MEALCART_LLM_BASE_URL": "llm_base_url",
    "MEALCART_LLM_MODEL": "llm_model",
    "MEALCART_LLM_PROVIDER": "llm_provider",
}


def _load_from_env() -> dict[str, object]:
    """Load optional overrides from env vars (with .env fallbacks)."""

    file_values = _load_env_file_values()

    def _env(key: str) -> Optional[str]:
        return os.environ.get(key) or file_values.get(key)

    payload: dict[str, object] = {}
    if (db_path := _env("MEALCART_DATABASE_PATH")):
        payload["database_path"] = Path(db_path)
    for key, field in _STR_FIELDS.items():
        if (value := _env(key)):
            payload[field] = value
    if (embedding_key := _env("MEALCART_EMBEDDING_API_KEY") or _env("OPENAI_API_KEY")):
        payload["embedding_api_key"] = embedding_key
    if (llm_key := _env("MEALCART_LLM_API_KEY")):
        payload["llm_api_key"] = llm_key
    if (log_requests := _env("MEALCART_LOG_REQUESTS")):
        payload["log_requests"] = _coerce_bool(log_requests)
    if (dedup_enabled := _env("MEALCART_EMBEDDING_DEDUP_ENABLED")):
        payload["embedding_dedup_enabled"] = _coerce_bool(dedup_enabled)
    for key, field in _FLOAT_FIELDS.items():
        if (raw := _env(key)):
            try:
                payload[field] = float(raw)
            except ValueError:
                pass
    for key, field in _INT_FIELDS.items():
        if (raw := _env(key)):
            try:
                payload[field] = int(raw)
            except ValueError:
                pass
    return payload


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings(**_load_from_env())
