"""Request bodies for the benchmark API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from projbench.schemas.analytics import ComparisonTarget


class CreateBenchmarkRequest(BaseModel):
    project_id: str = Field(..., min_length=1)
    benchmark_type: str
    metrics: dict[str, Any] | None = None
    industry: str | None = None
    weights: dict[str, Any] | None = None


class CompareRequest(BaseModel):
    project_id: str = Field(..., min_length=1)
    comparison_targets: list[ComparisonTarget] = Field(..., min_length=1)
    benchmark_type: str = "comprehensive"


class TrendRequest(BaseModel):
    project_id: str = Field(..., min_length=1)
    time_range: str = "30d"
    benchmark_type: str | None = None


class ImprovementPlanRequest(BaseModel):
    project_id: str = Field(..., min_length=1)
    focus_areas: list[str] = Field(default_factory=list)
    timeline: str = "3m"


class AddStandardRequest(BaseModel):
    """Admin extension of the threshold tables; ``industry`` scopes it to a vertical."""

    category: str
    metric: str
    thresholds: dict[str, Any]
    industry: str | None = None
