"""Threshold tables and standards-comparison models."""

from __future__ import annotations

from pydantic import BaseModel, Field


class Threshold(BaseModel):
    """Four-band threshold for a metric.

    For higher-is-better metrics the bands descend (excellent is the largest
    value); for lower-is-better metrics they ascend.
    """

    excellent: float
    good: float
    average: float
    poor: float
    lower_is_better: bool = False


class MetricComparison(BaseModel):
    """Banded score of one raw value against its threshold."""

    metric: str
    value: float
    score: float = Field(..., ge=0.0, le=1.0)
    level: str
    standard: Threshold | None = None
    improvement: float = 0.0
    potential: float = 0.0


class CategoryComparison(BaseModel):
    category: str
    score: float = Field(..., ge=0.0, le=1.0)
    level: str
    metrics: dict[str, MetricComparison] = Field(default_factory=dict)
    strengths: list[MetricComparison] = Field(default_factory=list)
    weaknesses: list[MetricComparison] = Field(default_factory=list)
    opportunities: list[MetricComparison] = Field(default_factory=list)


class ComparisonResult(BaseModel):
    """Scored gap analysis of a benchmark against the threshold tables."""

    benchmark_type: str
    industry: str | None = None
    categories: dict[str, CategoryComparison] = Field(default_factory=dict)
    overall_score: float = Field(default=0.0, ge=0.0, le=1.0)
    grade: str = "F"


class IndustryBenchmark(BaseModel):
    """Synthetic "industry average" comparison target."""

    name: str
    industry: str | None = None
    benchmark_type: str
    metrics: dict[str, dict[str, float]] = Field(default_factory=dict)
    score: float = 0.7
    grade: str = "B+"
