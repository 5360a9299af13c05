"""Health, readiness and liveness endpoints."""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from starlette.concurrency import run_in_threadpool

from projbench.schemas.health import ComponentHealth, HealthResponse

router = APIRouter(tags=["health"])


async def _timed_check(name: str, check: Callable[[], str | None], backend: str | None = None) -> ComponentHealth:
    """Run a blocking check in the threadpool; whatever it returns becomes the details."""
    start = time.monotonic()
    try:
        details = await run_in_threadpool(check)
        status = "healthy"
    except Exception as exc:
        details, status = str(exc)[:200], "unhealthy"
    return ComponentHealth(
        service=name,
        status=status,
        latency_ms=round((time.monotonic() - start) * 1000, 2),
        backend=backend,
        details=details,
    )


def _app_check(request: Request) -> Callable[[], str]:
    orchestrator = request.app.state.orchestrator

    def check() -> str:
        if not orchestrator.is_running:
            raise RuntimeError("orchestrator has been stopped")
        return "accepting benchmarks"

    return check


def _store_check(request: Request) -> Callable[[], str]:
    store = request.app.state.orchestrator.store

    def check() -> str:
        return f"{store.count()} benchmarks stored"

    return check


def _jobs_check(request: Request) -> Callable[[], str]:
    settings = request.app.state.settings
    jobs = request.app.state.background_jobs

    def check() -> str:
        if not settings.background_jobs_enabled:
            return "disabled"
        if jobs is None or not jobs.running:
            raise RuntimeError("scheduler is not running")
        return ", ".join(jobs.job_ids())

    return check


def _running_jobs(request: Request) -> list[str]:
    jobs = request.app.state.background_jobs
    return jobs.job_ids() if jobs is not None and jobs.running else []


def _response(request: Request, services: list[ComponentHealth], failed: str) -> HealthResponse:
    settings = request.app.state.settings
    return HealthResponse(
        status="healthy" if all(s.status == "healthy" for s in services) else failed,
        version=settings.app_version,
        environment=settings.environment,
        services=services,
        background_jobs=_running_jobs(request),
        checked_at=datetime.now(timezone.utc),
    )


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Is the orchestrator accepting work?"""
    services = [await _timed_check("app", _app_check(request))]
    return _response(request, services, failed="degraded")


@router.get("/health/ready", response_model=HealthResponse)
async def readiness_check(request: Request) -> HealthResponse:
    """Can the benchmark store be read and is the scheduler up when enabled?"""
    store = request.app.state.orchestrator.store
    services = [
        await _timed_check("app", _app_check(request)),
        await _timed_check("benchmark_store", _store_check(request), backend=store.backend),
        await _timed_check("background_jobs", _jobs_check(request)),
    ]
    return _response(request, services, failed="unhealthy")


@router.get("/health/live")
async def liveness_check() -> dict[str, str]:
    """Liveness probe; answers as long as the process does."""
    return {"status": "alive"}
