"""Application settings loaded from environment variables / .env file."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from agents.schemas import ModelName

# .env lives at project root (two levels up from platform/backend/)
_ENV_FILE = Path(__file__).resolve().parent.parent.parent / ".env"
_DEFAULT_STORE = Path(__file__).resolve().parent / "agents" / "agents_store.json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    openai_api_key: str | None = None
    openai_base_url: str | None = None
    # None keeps the transport's own default
    openai_timeout_seconds: float | None = None
    # Used when an agent is saved without a model
    default_model: ModelName = "gpt-4o"
    agent_store_path: Path = _DEFAULT_STORE
    validate_api_keys: bool = True
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
        "http://127.0.0.1:5500",
        "http://127.0.0.1:8000",
    ]


@lru_cache
def get_settings() -> Settings:
    return Settings()
