"""Benchmark and analytics stores.

``InMemoryBenchmarkStore`` backs development and testing. ``SqlBenchmarkStore``
persists results through SQLAlchemy (SQLite or PostgreSQL). Both are owned by
the orchestrator; nothing else holds a reference to them.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

from sqlalchemy import create_engine, delete, func, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from projbench.models import Base, BenchmarkRecord
from projbench.schemas.benchmark import BenchmarkResult


class BenchmarkStore(Protocol):
    """Append-only store of benchmark results."""

    backend: str

    def put(self, result: BenchmarkResult) -> None: ...

    def get(self, result_id: str) -> BenchmarkResult | None: ...

    def query(
        self,
        project_id: str | None = None,
        benchmark_type: str | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[BenchmarkResult]: ...

    def delete(self, result_id: str) -> bool: ...

    def count(self) -> int: ...

    def project_ids(self) -> list[str]: ...


def _utc(value: datetime) -> datetime:
    return value.astimezone(timezone.utc) if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _matches(
    result: BenchmarkResult,
    project_id: str | None,
    benchmark_type: str | None,
    since: datetime | None,
    until: datetime | None,
) -> bool:
    if project_id is not None and result.project_id != project_id:
        return False
    if benchmark_type is not None and result.benchmark_type != benchmark_type:
        return False
    if since is not None and result.timestamp < since:
        return False
    if until is not None and result.timestamp > until:
        return False
    return True


class InMemoryBenchmarkStore:
    """Dict-backed store for development and testing.

    Calls may arrive from worker threads, so every access holds the lock.
    """

    backend = "memory"

    def __init__(self) -> None:
        self._results: dict[str, BenchmarkResult] = {}
        self._lock = threading.Lock()

    def put(self, result: BenchmarkResult) -> None:
        with self._lock:
            self._results[result.id] = result

    def get(self, result_id: str) -> BenchmarkResult | None:
        with self._lock:
            return self._results.get(result_id)

    def query(
        self,
        project_id: str | None = None,
        benchmark_type: str | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[BenchmarkResult]:
        """Matching results, oldest first; equal timestamps keep insertion order."""
        with self._lock:
            matches = [
                r for r in self._results.values()
                if _matches(r, project_id, benchmark_type, since, until)
            ]
        return sorted(matches, key=lambda r: r.timestamp)

    def delete(self, result_id: str) -> bool:
        with self._lock:
            return self._results.pop(result_id, None) is not None

    def count(self) -> int:
        return len(self._results)

    def project_ids(self) -> list[str]:
        with self._lock:
            return list(dict.fromkeys(r.project_id for r in self._results.values()))


class SqlBenchmarkStore:
    """SQLAlchemy-backed store; the whole result is kept as a JSON payload."""

    def __init__(self, database_url: str) -> None:
        engine_kwargs: dict[str, Any] = {}
        if database_url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in database_url or database_url.rstrip("/") == "sqlite:":
                engine_kwargs["poolclass"] = StaticPool
        self.engine = create_engine(database_url, **engine_kwargs)
        self.backend = self.engine.dialect.name
        self._sessions = sessionmaker(bind=self.engine, expire_on_commit=False)
        Base.metadata.create_all(self.engine)

    def _session(self) -> Session:
        return self._sessions()

    def put(self, result: BenchmarkResult) -> None:
        record = BenchmarkRecord(
            id=result.id,
            project_id=result.project_id,
            benchmark_type=result.benchmark_type,
            recorded_at=_utc(result.timestamp),
            score=result.score,
            overall_score=result.benchmark.overall_score,
            grade=result.grade,
            payload=result.model_dump(mode="json"),
        )
        with self._session() as session, session.begin():
            session.add(record)

    def get(self, result_id: str) -> BenchmarkResult | None:
        with self._session() as session:
            record = session.get(BenchmarkRecord, result_id)
            return BenchmarkResult.model_validate(record.payload) if record else None

    def query(
        self,
        project_id: str | None = None,
        benchmark_type: str | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[BenchmarkResult]:
        """Matching results, oldest first; every filter runs in SQL."""
        statement = select(BenchmarkRecord.payload).order_by(BenchmarkRecord.recorded_at, BenchmarkRecord.created_at)
        if project_id is not None:
            statement = statement.where(BenchmarkRecord.project_id == project_id)
        if benchmark_type is not None:
            statement = statement.where(BenchmarkRecord.benchmark_type == benchmark_type)
        if since is not None:
            statement = statement.where(BenchmarkRecord.recorded_at >= _utc(since))
        if until is not None:
            statement = statement.where(BenchmarkRecord.recorded_at <= _utc(until))

        with self._session() as session:
            payloads = list(session.scalars(statement))
        return [BenchmarkResult.model_validate(p) for p in payloads]

    def delete(self, result_id: str) -> bool:
        with self._session() as session, session.begin():
            deleted = session.execute(delete(BenchmarkRecord).where(BenchmarkRecord.id == result_id))
            return deleted.rowcount > 0

    def count(self) -> int:
        with self._session() as session:
            return session.scalar(select(func.count()).select_from(BenchmarkRecord)) or 0

    def project_ids(self) -> list[str]:
        statement = (
            select(BenchmarkRecord.project_id)
            .group_by(BenchmarkRecord.project_id)
            .order_by(func.min(BenchmarkRecord.created_at))
        )
        with self._session() as session:
            return list(session.scalars(statement))


def create_benchmark_store(database_url: str = "") -> BenchmarkStore:
    """In-memory store for an empty URL, SQL store otherwise."""
    if not database_url:
        return InMemoryBenchmarkStore()
    return SqlBenchmarkStore(database_url)


@dataclass
class AnalyticsEvent:
    """A derived event recorded after each run."""

    event: str
    data: dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    key: str = field(default_factory=lambda: uuid.uuid4().hex)


class AnalyticsStore:
    """Capped, time-purged event log."""

    def __init__(self, max_entries: int = 1000) -> None:
        self.max_entries = max_entries
        self._events: dict[str, AnalyticsEvent] = {}

    def add(self, event: str, data: dict[str, Any], timestamp: datetime | None = None) -> AnalyticsEvent:
        entry = AnalyticsEvent(event=event, data=data, timestamp=timestamp or datetime.now(timezone.utc))
        self._events[entry.key] = entry
        if len(self._events) > self.max_entries:
            oldest = sorted(self._events.values(), key=lambda e: e.timestamp)
            for expired in oldest[: len(self._events) - self.max_entries]:
                self._events.pop(expired.key, None)
        return entry

    def snapshot(self) -> list[AnalyticsEvent]:
        """Copy of the current entries, safe to iterate while deleting."""
        return list(self._events.values())

    def remove(self, key: str) -> bool:
        return self._events.pop(key, None) is not None

    def count(self) -> int:
        return len(self._events)
