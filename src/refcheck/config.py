from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "RefCheck"
    app_env: str = "development"
    app_host: str = "127.0.0.1"
    app_port: int = 8788
    log_level: str = "INFO"

    database_url: str = "sqlite:///./data/refcheck.db"
    data_dir: Path = Path("./data")
    seed_mock_data: bool = True

    token_ttl_days: int = 30
    reminder_interval_days: int = 3
    max_reminders: int = 3

    submit_failure_rate: float = 0.1
    mock_latency_ms: int = 0

    cors_origins: str = "http://127.0.0.1:8788"

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, value: str) -> str:
        allowed = {"development", "staging", "production", "test"}
        if value not in allowed:
            raise ValueError(f"app_env must be one of {sorted(allowed)}")
        return value

    @field_validator("submit_failure_rate")
    @classmethod
    def validate_failure_rate(cls, value: float) -> float:
        if value < 0 or value > 1:
            raise ValueError("submit_failure_rate must be between 0 and 1")
        return value

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
