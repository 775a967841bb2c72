"""Application settings and configuration management."""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    DB_PATH: str = Field(default="data/interviews.db")
    # Empty paths select the files bundled with the repository.
    APP_CONFIG_PATH: str = ""
    PROMPTS_PATH: str = ""

    PRINCIPAL_HEADER: str = "X-Principal-Id"
    MAX_WRITE_RETRIES: int = Field(default=3, ge=0)

    model_config = SettingsConfigDict(env_file=".env", validate_assignment=True, extra="ignore")


settings = Settings()
