"""Health and readiness payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

HealthStatus = Literal["healthy", "degraded", "unhealthy"]


class ComponentHealth(BaseModel):
    """One checked component: the app, the benchmark store or the scheduler."""

    service: str
    status: HealthStatus
    latency_ms: float = Field(default=0.0, ge=0.0)
    backend: str | None = Field(default=None, description="Store backend, e.g. 'memory' or 'sqlite'")
    details: str | None = None


class HealthResponse(BaseModel):
    status: HealthStatus
    version: str
    environment: str
    services: list[ComponentHealth]
    background_jobs: list[str] = Field(default_factory=list)
    checked_at: datetime
