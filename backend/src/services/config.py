"""Application configuration helpers."""

from __future__ import annotations

from functools import lru_cache
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

PROJECT_ROOT = Path(__file__).resolve().parents[3]
DATA_DIR = PROJECT_ROOT / "data"
DEFAULT_NOTES_DB_PATH = DATA_DIR / "notes.db"
DEFAULT_SEARCH_INDEX_PATH = DATA_DIR / "search.db"
DEFAULT_CORS_ORIGINS = "http://localhost:3000,http://localhost:5173"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class AppConfig(BaseModel):
    """Runtime configuration loaded from environment variables."""

    model_config = ConfigDict(frozen=True)

    notes_db_path: Path = Field(
        default=DEFAULT_NOTES_DB_PATH,
        description="SQLite file holding the authoritative notes and links",
    )
    search_index_path: Path = Field(
        default=DEFAULT_SEARCH_INDEX_PATH,
        description="SQLite FTS5 file holding the search projection of notes",
    )
    llm_api_base: str = Field(
        default="https://api.openai.com/v1",
        description="Base URL of an OpenAI-compatible chat completions API",
    )
    llm_api_key: Optional[str] = Field(None, description="Bearer token for the LLM API")
    llm_model: str = Field(default="gpt-4", min_length=1)
    llm_timeout_seconds: float = Field(default=60.0, gt=0)
    search_result_limit: int = Field(default=10, ge=1, le=100)
    prompts_dir: Optional[Path] = Field(
        None, description="Optional directory of prompt templates overriding the built-ins"
    )
    cors_origins: tuple[str, ...] = Field(default=tuple(DEFAULT_CORS_ORIGINS.split(",")))
    log_level: str = Field(default="INFO")

    @field_validator("notes_db_path", "search_index_path", mode="before")
    @classmethod
    def _normalize_db_path(cls, value: str | Path | None) -> Path:
        if value is None or value == "":
            raise ValueError("Database path cannot be empty")
        path = value if isinstance(value, Path) else Path(value)
        return path.expanduser().resolve()

    @field_validator("prompts_dir", mode="before")
    @classmethod
    def _normalize_prompts_dir(cls, value: str | Path | None) -> Optional[Path]:
        if value is None or value == "":
            return None
        path = value if isinstance(value, Path) else Path(value)
        return path.expanduser().resolve()

    @field_validator("llm_api_base")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        cleaned = value.strip().rstrip("/")
        if not cleaned.startswith(("http://", "https://")):
            raise ValueError("LLM_API_BASE must be an http(s) URL")
        return cleaned

    @field_validator("llm_api_key", mode="before")
    @classmethod
    def _blank_key_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        cleaned = value.strip()
        return cleaned or None

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: str | tuple[str, ...] | list[str]) -> tuple[str, ...]:
        if isinstance(value, str):
            value = value.split(",")
        return tuple(origin.strip() for origin in value if origin and origin.strip())

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown LOG_LEVEL: {value}")
        return level


def _read_env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(key, default)


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Load and cache application configuration."""
    config = AppConfig(
        notes_db_path=_read_env("NOTES_DB_PATH", str(DEFAULT_NOTES_DB_PATH)),
        search_index_path=_read_env("SEARCH_INDEX_PATH", str(DEFAULT_SEARCH_INDEX_PATH)),
        llm_api_base=_read_env("LLM_API_BASE", "https://api.openai.com/v1"),
        llm_api_key=_read_env("LLM_API_KEY") or _read_env("OPENAI_API_KEY"),
        llm_model=_read_env("LLM_MODEL", "gpt-4"),
        llm_timeout_seconds=_read_env("LLM_TIMEOUT_SECONDS", "60"),
        search_result_limit=_read_env("SEARCH_RESULT_LIMIT", "10"),
        prompts_dir=_read_env("PROMPTS_DIR"),
        cors_origins=_read_env("CORS_ORIGINS", DEFAULT_CORS_ORIGINS),
        log_level=_read_env("LOG_LEVEL", "INFO"),
    )
    # Ensure the data directories exist for downstream services.
    config.notes_db_path.parent.mkdir(parents=True, exist_ok=True)
    config.search_index_path.parent.mkdir(parents=True, exist_ok=True)
    return config


def reload_config() -> AppConfig:
    """Clear cached config (useful for tests) and reload."""
    get_config.cache_clear()
    return get_config()


def configure_logging(level: str = "INFO") -> None:
    """Install the process-wide log format at application start-up."""
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)


__all__ = [
    "AppConfig",
    "get_config",
    "reload_config",
    "configure_logging",
    "PROJECT_ROOT",
    "DEFAULT_NOTES_DB_PATH",
    "DEFAULT_SEARCH_INDEX_PATH",
]
