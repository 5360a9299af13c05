"""Benchmark models — persisted benchmark run results."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Float, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from projbench.models.base import Base


class BenchmarkRecord(Base):
    """One stored benchmark run, keyed by (project_id, benchmark_type, recorded_at).

    The full result is kept as a JSON payload; the scalar columns exist for
    filtering and ordering.
    """

    __tablename__ = "benchmark_records"
    __table_args__ = (
        Index("ix_benchmark_records_project_type_time", "project_id", "benchmark_type", "recorded_at"),
    )

    project_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    benchmark_type: Mapped[str] = mapped_column(String(20), nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    score: Mapped[float] = mapped_column(Float, default=0.0)
    overall_score: Mapped[float] = mapped_column(Float, default=0.0)
    grade: Mapped[str] = mapped_column(String(2), nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    def __repr__(self) -> str:
        return f"<BenchmarkRecord {self.project_id} {self.benchmark_type} {self.recorded_at:%Y-%m-%dT%H:%M}>"
