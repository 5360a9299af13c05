"""Application configuration via environment variables."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration for the project benchmarking service."""

    # Application
    app_name: str = "Project Benchmarking Service"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = Field(default="development", pattern=r"^(development|staging|production)$")
    log_level: str = "INFO"
    log_format: str = "json"

    # API
    api_prefix: str = "/api"
    allowed_origins: str = "http://localhost:3000"
    rate_limit_default: str = "100/minute"

    # Storage: an empty URL keeps benchmarks in memory
    database_url: str = ""

    # External project data service (metadata + raw metrics)
    project_data_url: str = ""
    project_data_token: str = ""
    metrics_fetch_timeout_seconds: float = Field(default=10.0, gt=0)

    # Scoring
    default_industry: str | None = None
    engine_score_weight: float = Field(default=0.7, ge=0.0, le=1.0)

    # Background jobs
    background_jobs_enabled: bool = True
    auto_benchmarking: bool = False
    auto_benchmark_interval_seconds: int = Field(default=3600, gt=0)
    analytics_cleanup_interval_seconds: int = Field(default=300, gt=0)

    # Retention
    analytics_retention_days: int = Field(default=7, gt=0)
    analytics_max_entries: int = Field(default=1000, gt=0)
    benchmark_retention_days: int | None = Field(default=None, gt=0)

    @property
    def allowed_origins_list(self) -> list[str]:
        return [o.strip() for o in self.allowed_origins.split(",")]

    @property
    def comparison_score_weight(self) -> float:
        return round(1.0 - self.engine_score_weight, 10)

    model_config = {"env_prefix": "PROJBENCH_", "env_file": ".env", "extra": "ignore"}


def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
