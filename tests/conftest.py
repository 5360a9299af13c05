"""Shared test fixtures for the project benchmarking test suite."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from projbench.app import create_app
from projbench.config import Settings
from projbench.services.orchestrator import BenchmarkOrchestrator
from projbench.store import InMemoryBenchmarkStore


def _test_settings(**overrides) -> Settings:
    """Return settings suitable for testing."""
    values = dict(
        environment="development",
        debug=True,
        log_format="console",
        rate_limit_default="1000/minute",
        allowed_origins="http://localhost:3000,http://localhost:5015",
        database_url="",
        project_data_url="",
        background_jobs_enabled=False,
    )
    values.update(overrides)
    return Settings(**values)


class FakeClock:
    """Deterministic clock; each call to ``advance`` moves time forward."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


class LoopRecordingStore(InMemoryBenchmarkStore):
    """Records whether each store call ran on the event loop thread."""

    def __init__(self) -> None:
        super().__init__()
        self.calls: list[tuple[str, bool]] = []

    def _record(self, name: str) -> None:
        try:
            asyncio.get_running_loop()
            on_loop = True
        except RuntimeError:
            on_loop = False
        self.calls.append((name, on_loop))

    def put(self, result):
        self._record("put")
        super().put(result)

    def query(self, *args, **kwargs):
        self._record("query")
        return super().query(*args, **kwargs)


@pytest.fixture
def settings():
    """Test settings."""
    return _test_settings()


@pytest.fixture
def app(settings):
    """Create a fresh FastAPI app for testing."""
    return create_app(settings)


@pytest.fixture
def client(app):
    """HTTP test client."""
    return TestClient(app)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def orchestrator(settings, clock):
    """Orchestrator with in-memory store, providers and a fake clock."""
    return BenchmarkOrchestrator(settings, clock=clock)


@pytest.fixture
def strong_performance():
    """Performance metrics that land in the A+ range (engine and comparison both 0.95)."""
    return {
        "response_time": 80,
        "throughput": 900,
        "cpu_utilization": 0.6,
        "memory_utilization": 0.65,
    }


@pytest.fixture
def average_performance():
    """Every metric in the average band: 0.6 throughout."""
    return {
        "response_time": 400,
        "throughput": 300,
        "cpu_utilization": 0.85,
        "memory_utilization": 0.85,
    }


@pytest.fixture
def weak_performance():
    """Every metric in the poor band: 0.4 throughout."""
    return {
        "response_time": 1500,
        "throughput": 10,
        "cpu_utilization": 0.95,
        "memory_utilization": 0.95,
    }


@pytest.fixture
def healthy_project_metrics(strong_performance):
    """Nested comprehensive metrics for a project in good shape."""
    return {
        "performance": dict(strong_performance),
        "quality": {
            "test_coverage": 85,
            "code_quality": 0.92,
            "maintainability": 0.75,
            "technical_debt": 0.15,
        },
        "security": {
            "security_score": 0.95,
            "vulnerability_count": 2,
            "authentication_strength": 0.9,
            "data_encryption": 0.85,
        },
        "compliance": {
            "gdpr_compliance": 96,
            "iso27001_compliance": 0.92,
        },
    }


@pytest.fixture
def struggling_project_metrics(weak_performance):
    """Nested comprehensive metrics with security and compliance gaps."""
    return {
        "performance": dict(weak_performance),
        "quality": {
            "test_coverage": 40,
            "code_quality": 0.45,
            "technical_debt": 0.6,
        },
        "security": {
            "security_score": 0.3,
            "vulnerability_count": 30,
        },
        "compliance": {
            "gdpr_compliance": 50,
            "iso27001_compliance": 0.55,
        },
    }
