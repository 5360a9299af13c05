"""Query-side report models: comparisons, trends, analytics, leaderboard, status."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from projbench.schemas.benchmark import MetricTrend, TrendResult
from projbench.schemas.recommendation import Recommendation
from projbench.schemas.standards import ComparisonResult


class ComparisonTarget(BaseModel):
    """Something to compare a project against: an industry average or a peer project."""

    type: str = Field(..., pattern=r"^(industry|project)$")
    name: str | None = None
    industry: str | None = None
    project_id: str | None = None

    @model_validator(mode="after")
    def _peer_needs_project_id(self) -> "ComparisonTarget":
        if self.type == "project" and not self.project_id:
            raise ValueError("project targets require project_id")
        return self


class ComparisonEntry(BaseModel):
    """One participant in a comparison, project included."""

    name: str
    type: str
    project_id: str | None = None
    score: float
    difference: float = Field(0.0, description="Project score minus this entry's score")
    rank: int
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)


class ComparisonReport(BaseModel):
    project_id: str
    benchmark_type: str
    project_score: float
    project_grade: str
    rank: int
    percentile: float = Field(..., ge=0.0, le=100.0)
    total: int
    standards_comparison: ComparisonResult
    entries: list[ComparisonEntry]
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    recommendations: list[Recommendation] = Field(default_factory=list)
    timestamp: datetime


class ImprovementArea(BaseModel):
    metric: str
    value: float
    target: float = 0.8
    improvement_needed: float
    priority: str


class TopArea(BaseModel):
    metric: str
    value: float
    performance: str = "excellent"


class TrendReport(BaseModel):
    project_id: str
    time_range: str
    benchmark_type: str
    trend: TrendResult
    metric_trends: list[MetricTrend] = Field(default_factory=list)
    improvement_areas: list[ImprovementArea] = Field(default_factory=list)
    recommendations: list[Recommendation] = Field(default_factory=list)
    timestamp: datetime


class AnalyticsReport(BaseModel):
    """Aggregates over stored benchmark results."""

    project_id: str | None = None
    group_by: str
    total_benchmarks: int
    average_score: float
    grade_distribution: dict[str, int]
    improvement_rate: float
    benchmark_frequency: dict[str, int]
    group_averages: dict[str, float]
    top_performing_areas: list[TopArea] = Field(default_factory=list)
    areas_for_improvement: list[ImprovementArea] = Field(default_factory=list)


class LeaderboardEntry(BaseModel):
    rank: int
    project_id: str
    average_score: float
    benchmark_count: int
    latest_grade: str


class Leaderboard(BaseModel):
    category: str | None = None
    metric: str | None = None
    time_range: str
    entries: list[LeaderboardEntry]


class SystemStatus(BaseModel):
    is_running: bool
    total_benchmarks: int
    active_projects: int
    pending_benchmarks: int
    uptime_seconds: float
    started_at: datetime
    auto_benchmarking: bool
    analytics_events: int
