"""Trend analysis — regression over benchmark history plus a pluggable forecaster."""

from __future__ import annotations

import statistics
from collections.abc import Sequence
from typing import Protocol

from projbench.errors import ValidationError
from projbench.schemas.benchmark import (
    Benchmark,
    Forecast,
    ForecastHorizon,
    MetricTrend,
    TrendResult,
)
from projbench.services.grading import clamp01


# Fixed direction thresholds on the fitted slope
IMPROVING_SLOPE = 0.1
DECLINING_SLOPE = -0.1

CONFIDENCE_EPSILON = 0.001
FULL_CONFIDENCE_POINTS = 10


def insufficient_data(data_points: int = 0) -> TrendResult:
    """Sentinel returned when fewer than two points are available."""
    return TrendResult(
        trend="insufficient_data",
        direction="stable",
        rate=0.0,
        confidence=0.0,
        data_points=data_points,
    )


def regression_slope(values: Sequence[float]) -> float:
    """Ordinary least-squares slope of values against normalized position.

    Positions run from 0 (oldest) to 1 (newest), so the slope is the fitted
    change in score across the whole window, independent of sample count.
    """
    n = len(values)
    if n < 2:
        return 0.0
    xs = [i / (n - 1) for i in range(n)]
    mean_x = statistics.fmean(xs)
    mean_y = statistics.fmean(values)
    sxx = sum((x - mean_x) ** 2 for x in xs)
    sxy = sum((x - mean_x) * (y - mean_y) for x, y in zip(xs, values))
    return sxy / sxx


def trend_confidence(values: Sequence[float]) -> float:
    """Reward low variance and larger samples, clamped to [0, 1]."""
    n = len(values)
    if n == 0:
        return 0.0
    mean = statistics.fmean(values)
    variance = statistics.pvariance(values)
    consistency = 1 - variance / (mean * mean + CONFIDENCE_EPSILON)
    return clamp01(consistency * min(n / FULL_CONFIDENCE_POINTS, 1.0))


def direction_for(slope: float) -> str:
    if slope > IMPROVING_SLOPE:
        return "improving"
    if slope < DECLINING_SLOPE:
        return "declining"
    return "stable"


def analyze_scores(scores: Sequence[float]) -> TrendResult:
    """Trend of an already-ordered score series."""
    if len(scores) < 2:
        return insufficient_data(len(scores))

    slope = regression_slope(scores)
    direction = direction_for(slope)
    return TrendResult(
        trend=direction,
        direction=direction,
        rate=round(abs(slope), 10),
        confidence=trend_confidence(scores),
        data_points=len(scores),
        first_score=scores[0],
        last_score=scores[-1],
        improvement=round(scores[-1] - scores[0], 10),
    )


class Forecaster(Protocol):
    """Anything that can project a score over the three standard horizons."""

    def forecast(self, score: float, history: Sequence[float] = ()) -> Forecast: ...


class HeuristicForecaster:
    """Deterministic placeholder: fixed bumps with decreasing confidence."""

    horizons = {
        "next_month": (0.05, 0.7, ["Continued development", "Team experience"]),
        "next_quarter": (0.15, 0.6, ["Process improvements", "Tool upgrades"]),
        "next_year": (0.25, 0.5, ["Strategic initiatives", "Technology adoption"]),
    }

    def forecast(self, score: float, history: Sequence[float] = ()) -> Forecast:
        return Forecast(**{
            name: ForecastHorizon(score=min(score + bump, 1.0), confidence=confidence, factors=list(factors))
            for name, (bump, confidence, factors) in self.horizons.items()
        })


class TrendAnalyzer:
    """Direction, rate and confidence across a project's benchmark history."""

    def __init__(self, forecaster: Forecaster | None = None) -> None:
        self.forecaster = forecaster or HeuristicForecaster()

    def analyze_trends(self, history: Sequence[Benchmark]) -> TrendResult:
        """Analyze a same-project, same-type history.

        The history is sorted by timestamp before fitting the engine's
        overall scores.

        Raises:
            ValidationError: If the history mixes projects or benchmark types.
        """
        if len(history) < 2:
            return insufficient_data(len(history))

        projects = {item.project_id for item in history}
        types = {item.benchmark_type for item in history}
        if len(projects) > 1 or len(types) > 1:
            raise ValidationError("Trend history must contain a single project and benchmark type")

        ordered = sorted(history, key=lambda item: item.timestamp)
        return analyze_scores([item.overall_score for item in ordered])

    def metric_trends(self, history: Sequence[Benchmark]) -> list[MetricTrend]:
        """Per-metric direction of normalized scores, keyed ``category.metric``."""
        ordered = sorted(history, key=lambda item: item.timestamp)
        series: dict[str, list[float]] = {}
        for benchmark in ordered:
            for category, scores in benchmark.metric_scores.items():
                for metric, value in scores.items():
                    series.setdefault(f"{category}.{metric}", []).append(value)

        trends = []
        for key, values in series.items():
            if len(values) < 2:
                continue
            slope = regression_slope(values)
            if slope > 1e-9:
                direction = "improving"
            elif slope < -1e-9:
                direction = "declining"
            else:
                direction = "stable"
            trends.append(MetricTrend(metric=key, direction=direction, rate=round(abs(slope), 10), values=values))
        return trends

    def predict_future_performance(self, benchmark: Benchmark, history: Sequence[float] = ()) -> Forecast:
        """Three-horizon projection from the configured forecaster."""
        return self.forecaster.forecast(benchmark.overall_score, history)
