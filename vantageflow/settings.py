from typing import Literal

from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Values are read from process environment and optionally from `.env`.
    `timezone` decides where "today" falls when a caller does not supply it.
    """

    database_url: str = "sqlite+pysqlite:///./vantageflow.db"
    timezone: str = "UTC"
    default_view: Literal["week", "month", "quarter", "year", "range"] = "month"
    max_range_days: int = 366
    log_level: str = "INFO"
    sentry_dsn: str | None = None
    environment: str = "development"
    release: str | None = None
    sentry_traces_sample_rate: float = 0.1
    rate_limit_per_minute: int = 30
    rate_limit_window_seconds: int = 60

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")
