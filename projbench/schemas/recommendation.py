"""Recommendation and improvement-plan models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class Recommendation(BaseModel):
    """A single ranked remediation item."""

    id: str
    project_id: str
    category: str
    metric: str | None = None
    categories: list[str] = Field(default_factory=list)
    type: str
    priority: str = Field(..., pattern=r"^(critical|high|medium|low|info)$")
    impact: str
    title: str
    description: str
    current_value: float | None = None
    target_value: float | None = None
    effort: str
    timeline: str
    actions: list[str] = Field(default_factory=list)
    metrics: list[str] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)
    resources: list[str] = Field(default_factory=list)
    risks: list[str] = Field(default_factory=list)
    benefits: list[str] = Field(default_factory=list)


class OutcomeHorizon(BaseModel):
    """Expected score gain and the items that deliver it."""

    score: float = 0.0
    improvements: list[str] = Field(default_factory=list)


class ExpectedOutcomes(BaseModel):
    short_term: OutcomeHorizon = Field(default_factory=OutcomeHorizon)
    medium_term: OutcomeHorizon = Field(default_factory=OutcomeHorizon)
    long_term: OutcomeHorizon = Field(default_factory=OutcomeHorizon)


class PlanPhase(BaseModel):
    """One contiguous slice of the ranked recommendation list."""

    phase: int
    name: str
    duration_weeks: int
    recommendations: list[Recommendation]
    objectives: list[str]


class Milestone(BaseModel):
    milestone: int
    name: str
    target_date: datetime
    objectives: list[str]


class PlanTask(BaseModel):
    name: str
    description: str
    effort: str
    category: str


class ScheduleItem(BaseModel):
    """Calendar window for a phase."""

    phase: int
    start_date: datetime
    end_date: datetime
    tasks: list[PlanTask]


class SuccessMetric(BaseModel):
    metric: str
    category: str
    current_value: float | None = None
    target_value: float | None = None
    measurement_method: str = "automated"
    frequency: str = "weekly"


class ImprovementPlan(BaseModel):
    """Phased, resourced and timed remediation schedule."""

    project_id: str
    timeline: str
    focus_areas: list[str] = Field(default_factory=list)
    current_score: float = Field(default=0.0, ge=0.0, le=1.0)
    target_score: float = Field(default=0.0, ge=0.0, le=1.0)
    phases: list[PlanPhase]
    milestones: list[Milestone]
    resources: dict[str, int] = Field(default_factory=dict, description="Estimated hours per category plus 'total'")
    schedule: list[ScheduleItem] = Field(default_factory=list)
    success_metrics: list[SuccessMetric] = Field(default_factory=list)
    generated_at: datetime
