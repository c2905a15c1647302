"""Application configuration managed via environment variables."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Kairos Planner Backend"
    debug: bool = False
    log_level: str = "INFO"
    third_party_log_level: str = "WARNING"
    database_url: str = "sqlite:///./kairos.db"
    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "kairos"
    openai_api_key: str | None = None
    oracle_model: str = "gpt-4o"
    oracle_timeout_seconds: float = 20.0
    task_cap_minutes: int = 60
    recovery_buffer_minutes: int = 15
    retention_days: int = 7
    default_active_start: str = "08:00"
    default_active_end: str = "23:00"
    session_ticker_enabled: bool = True
    scheduler_enabled: bool = False
    scheduler_timezone: str = "UTC"
    retention_job_hour: int = 3
    retention_job_minute: int = 0


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
