"""Benchmark domain models — scored snapshots, trends, forecasts and run results."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from projbench.schemas.recommendation import Recommendation
from projbench.schemas.standards import ComparisonResult


BENCHMARK_TYPES = ["performance", "quality", "security", "compliance", "comprehensive"]


class MetricValue(BaseModel):
    """A single raw metric reading supplied by a metric source.

    The value must already be a finite number; strings and booleans are
    rejected rather than coerced.
    """

    category: str = Field(..., min_length=1)
    metric: str = Field(..., min_length=1)
    value: float = Field(..., strict=True, allow_inf_nan=False)
    unit: str = ""


class AnalysisItem(BaseModel):
    """A category singled out by the benchmark analysis."""

    category: str
    score: float
    description: str


class PriorityArea(BaseModel):
    """A category that should be worked on first."""

    category: str
    score: float
    priority: str


class BenchmarkAnalysis(BaseModel):
    """Strengths, weaknesses, opportunities and threats for one benchmark."""

    model_config = ConfigDict(frozen=True)

    strengths: list[AnalysisItem] = Field(default_factory=list)
    weaknesses: list[AnalysisItem] = Field(default_factory=list)
    opportunities: list[AnalysisItem] = Field(default_factory=list)
    threats: list[AnalysisItem] = Field(default_factory=list)
    overall_assessment: str = ""
    priority_areas: list[PriorityArea] = Field(default_factory=list)


class Benchmark(BaseModel):
    """Timestamped, scored snapshot of a project's category metrics.

    Instances are frozen: once the engine builds one it is only ever copied
    (to attach recommendations), never edited in place.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    project_id: str
    benchmark_type: str = Field(..., pattern=r"^(performance|quality|security|compliance|comprehensive)$")
    timestamp: datetime
    industry: str | None = None
    metrics: dict[str, dict[str, float]] = Field(default_factory=dict)
    metric_scores: dict[str, dict[str, float]] = Field(default_factory=dict)
    category_scores: dict[str, float] = Field(default_factory=dict)
    overall_score: float = Field(..., ge=0.0, le=1.0)
    grade: str
    analysis: BenchmarkAnalysis = Field(default_factory=BenchmarkAnalysis)
    recommendations: list[Recommendation] = Field(default_factory=list)
    dropped_metrics: list[str] = Field(default_factory=list)


class TrendResult(BaseModel):
    """Regression-derived direction, rate and confidence across a history."""

    trend: str
    direction: str = Field(..., description="'improving', 'declining', or 'stable'")
    rate: float = 0.0
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    data_points: int = 0
    first_score: float | None = None
    last_score: float | None = None
    improvement: float = 0.0


class MetricTrend(BaseModel):
    """Direction of a single metric across a history."""

    metric: str
    direction: str
    rate: float
    values: list[float]


class ForecastHorizon(BaseModel):
    """Projected score for one horizon."""

    score: float = Field(..., ge=0.0, le=1.0)
    confidence: float = Field(..., ge=0.0, le=1.0)
    factors: list[str] = Field(default_factory=list)


class Forecast(BaseModel):
    """Three-horizon projection of a benchmark score."""

    next_month: ForecastHorizon
    next_quarter: ForecastHorizon
    next_year: ForecastHorizon


class ProjectContext(BaseModel):
    """Project metadata returned by a metadata provider."""

    id: str
    name: str
    type: str = "software_development"
    industry: str | None = None
    team_size: int | None = None
    technologies: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


class BenchmarkResult(BaseModel):
    """Persisted composite of one benchmark run.

    ``score``/``grade`` are the blended figures (engine score weighted with the
    standards comparison score); they drive rankings and leaderboards.
    """

    id: str
    project_id: str
    benchmark_type: str
    timestamp: datetime
    score: float = Field(..., ge=0.0, le=1.0)
    grade: str
    benchmark: Benchmark
    comparison: ComparisonResult
    trend: TrendResult
    forecast: Forecast
    recommendations: list[Recommendation] = Field(default_factory=list)
    project: ProjectContext | None = None
