from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    environment: str = "dev"
    base_url: str = "http://localhost:8000"
    log_level: str = "INFO"

    database_url: str = "sqlite:///./spendwise.db"
    redis_url: str = "redis://localhost:6379/0"

    # Inputs past this length are truncated before amount scanning.
    extraction_max_chars: int = 100_000
    extraction_context_chars: int = 50


settings = Settings()
