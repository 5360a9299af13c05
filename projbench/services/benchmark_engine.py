"""Benchmark engine — turns raw per-category metrics into a scored Benchmark."""

from __future__ import annotations

import math
import uuid
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

import structlog

from projbench.errors import BenchmarkComputationError, ValidationError
from projbench.schemas.benchmark import (
    BENCHMARK_TYPES,
    AnalysisItem,
    Benchmark,
    BenchmarkAnalysis,
    PriorityArea,
)
from projbench.services.grading import SCORE_PRECISION, assessment_for, clamp01, grade_for
from projbench.services.metric_registry import (
    CATEGORIES,
    EXTRA_CATEGORIES,
    MetricRegistry,
    metric_registry,
)
from projbench.services.patterns import flagged_categories
from projbench.services.standards import STRENGTH_THRESHOLD, WEAKNESS_THRESHOLD, StandardsRegistry

logger = structlog.get_logger()


# Overall blend for comprehensive runs, renormalized over categories present
CATEGORY_BLEND_WEIGHTS = {
    "performance": 0.30,
    "quality": 0.25,
    "security": 0.20,
    "maintainability": 0.15,
    "compliance": 0.10,
}

OPPORTUNITY_THRESHOLD = 0.7
PRIORITY_AREA_THRESHOLD = 0.7
MAX_PRIORITY_AREAS = 3


def is_metric_number(value: Any) -> bool:
    """True for finite ints/floats; booleans, strings, NaN and infinities are rejected."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def weighted_mean(scores: dict[str, float], weights: dict[str, float]) -> float:
    """Weighted mean of normalized scores, clamped to [0, 1].

    Args:
        scores: Metric name to normalized score.
        weights: Metric name to weight; every key of ``scores`` must be present.

    Returns:
        The clamped mean, or 0.0 when the total weight is zero.
    """
    total_weight = sum(weights[metric] for metric in scores)
    if total_weight <= 0:
        return 0.0
    mean = sum(score * weights[metric] for metric, score in scores.items()) / total_weight
    return clamp01(round(mean, SCORE_PRECISION))


def blend_overall(category_scores: dict[str, float]) -> float:
    """Blend category scores with the fixed comprehensive weights."""
    present = {c: w for c, w in CATEGORY_BLEND_WEIGHTS.items() if c in category_scores}
    total_weight = sum(present.values())
    if total_weight <= 0:
        return 0.0
    blended = sum(category_scores[c] * w for c, w in present.items()) / total_weight
    return clamp01(round(blended, SCORE_PRECISION))


class BenchmarkEngine:
    """Scores raw metrics against the standards tables."""

    def __init__(
        self,
        standards: StandardsRegistry | None = None,
        registry: MetricRegistry | None = None,
    ) -> None:
        self.registry = registry or metric_registry
        self.standards = standards or StandardsRegistry(self.registry)

    # ─── Input handling ─────────────────────────────────────────────────────

    @staticmethod
    def validate_request(project_id: Any, benchmark_type: Any) -> None:
        """Reject a run before any computation happens."""
        if not isinstance(project_id, str) or not project_id.strip():
            raise ValidationError("project_id is required")
        if benchmark_type not in BENCHMARK_TYPES:
            raise ValidationError(
                f"Unknown benchmark_type '{benchmark_type}'. Expected one of: {', '.join(BENCHMARK_TYPES)}"
            )

    def scoped_categories(self, benchmark_type: str) -> list[str]:
        return list(CATEGORIES) if benchmark_type == "comprehensive" else [benchmark_type]

    def collect_metrics(
        self,
        benchmark_type: str,
        raw_metrics: Mapping[str, Any] | None,
    ) -> tuple[dict[str, dict[str, float]], list[str]]:
        """Split raw input into a typed category → metric → value map.

        Accepts nested ``{category: {metric: value}}`` blocks, flat
        ``{metric: value}`` pairs, or a mix. Values that are not finite numbers
        are dropped and reported, never coerced.
        """
        scoped = self.scoped_categories(benchmark_type)
        accepted = scoped + (EXTRA_CATEGORIES if benchmark_type == "comprehensive" else [])
        metrics: dict[str, dict[str, float]] = {category: {} for category in scoped}
        dropped: list[str] = []

        for key, value in (raw_metrics or {}).items():
            name = str(key).strip().lower()
            if isinstance(value, Mapping):
                if name not in accepted:
                    # Blocks for other categories are simply out of scope for this run
                    if name not in CATEGORIES + EXTRA_CATEGORIES:
                        dropped.append(f"{name}.*")
                    continue
                block = metrics.setdefault(name, {})
                for metric, metric_value in value.items():
                    canonical = self.registry.canonical_name(str(metric))
                    if is_metric_number(metric_value):
                        block[canonical] = float(metric_value)
                    else:
                        dropped.append(f"{name}.{canonical}")
                continue

            canonical = self.registry.canonical_name(name)
            if benchmark_type == "comprehensive":
                category = self.registry.category_of(canonical)
            else:
                category = benchmark_type
            if category is None or category not in metrics:
                dropped.append(canonical)
                continue
            if is_metric_number(value):
                metrics[category][canonical] = float(value)
            else:
                dropped.append(f"{category}.{canonical}")

        return metrics, dropped

    def resolve_weights(self, weight_overrides: Mapping[str, Any] | None) -> dict[str, float]:
        overrides: dict[str, float] = {}
        for metric, weight in (weight_overrides or {}).items():
            if not is_metric_number(weight) or weight < 0:
                raise ValidationError(f"Weight for '{metric}' must be a non-negative number")
            overrides[self.registry.canonical_name(str(metric))] = float(weight)
        return overrides

    # ─── Scoring ────────────────────────────────────────────────────────────

    def normalize(self, category: str, metric: str, value: float, industry: str | None = None) -> float:
        """Map a raw value to [0, 1], higher always meaning better.

        Metrics with a threshold table use its four bands. Others are read as
        a fraction (values above 1 are percentages), clamped, and inverted for
        lower-is-better metrics.
        """
        if self.standards.lookup(category, metric, industry) is not None:
            return self.standards.compare_metric(category, metric, value, industry).score

        fraction = clamp01(value / 100 if value > 1 else value)
        if self.registry.is_lower_better(metric):
            return 1.0 - fraction
        return fraction

    def score_categories(
        self,
        metrics: dict[str, dict[str, float]],
        overrides: dict[str, float],
        industry: str | None,
    ) -> tuple[dict[str, dict[str, float]], dict[str, float]]:
        metric_scores: dict[str, dict[str, float]] = {}
        category_scores: dict[str, float] = {}
        for category, values in metrics.items():
            scores = {m: self.normalize(category, m, v, industry) for m, v in values.items()}
            weights = {m: overrides.get(m, self.registry.weight_of(m)) for m in values}
            metric_scores[category] = scores
            category_scores[category] = weighted_mean(scores, weights)
        return metric_scores, category_scores

    def analyse(self, category_scores: dict[str, float], overall_score: float) -> BenchmarkAnalysis:
        """Classify each category and pick the priority areas."""
        flagged = flagged_categories(category_scores)
        strengths, weaknesses, opportunities, threats = [], [], [], []

        for category, score in category_scores.items():
            if score >= STRENGTH_THRESHOLD:
                strengths.append(AnalysisItem(
                    category=category, score=score,
                    description=f"Excellent performance in {category}",
                ))
            elif score < WEAKNESS_THRESHOLD:
                weaknesses.append(AnalysisItem(
                    category=category, score=score,
                    description=f"Needs improvement in {category}",
                ))
            elif score >= OPPORTUNITY_THRESHOLD:
                opportunities.append(AnalysisItem(
                    category=category, score=score,
                    description=f"Strong {category} performance is close to excellent",
                ))
            elif category in flagged:
                threats.append(AnalysisItem(
                    category=category, score=score,
                    description=f"Weak {category} performance is part of a wider risk pattern",
                ))
            else:
                opportunities.append(AnalysisItem(
                    category=category, score=score,
                    description=f"Targeted work on {category} would lift the overall score",
                ))

        low = sorted(
            ((c, s) for c, s in category_scores.items() if s < PRIORITY_AREA_THRESHOLD),
            key=lambda item: item[1],
        )[:MAX_PRIORITY_AREAS]
        priority_areas = [
            PriorityArea(category=c, score=s, priority="high" if s < WEAKNESS_THRESHOLD else "medium")
            for c, s in low
        ]

        return BenchmarkAnalysis(
            strengths=strengths,
            weaknesses=weaknesses,
            opportunities=opportunities,
            threats=threats,
            overall_assessment=assessment_for(overall_score),
            priority_areas=priority_areas,
        )

    def run_benchmark(
        self,
        project_id: str,
        benchmark_type: str,
        raw_metrics: Mapping[str, Any] | None = None,
        weight_overrides: Mapping[str, Any] | None = None,
        industry: str | None = None,
        timestamp: datetime | None = None,
    ) -> Benchmark:
        """Score one set of raw metrics.

        Args:
            project_id: Project being benchmarked.
            benchmark_type: One of ``BENCHMARK_TYPES``.
            raw_metrics: Nested or flat metric values; missing means empty.
            weight_overrides: Per-metric weights replacing the defaults.
            industry: Vertical whose threshold overrides apply.
            timestamp: Snapshot time, defaults to now (UTC).

        Returns:
            A frozen Benchmark. Empty input yields score 0 with every
            category weak.

        Raises:
            ValidationError: On a missing project id, unknown type or bad weight.
            BenchmarkComputationError: When a scoring stage fails.
        """
        self.validate_request(project_id, benchmark_type)
        overrides = self.resolve_weights(weight_overrides)
        metrics, dropped = self.collect_metrics(benchmark_type, raw_metrics)

        if dropped:
            logger.warning("metrics_dropped", project_id=project_id, dropped=dropped)

        try:
            metric_scores, category_scores = self.score_categories(metrics, overrides, industry)
        except Exception as exc:
            logger.error("benchmark_stage_failed", stage="normalization", project_id=project_id, error=str(exc))
            raise BenchmarkComputationError(f"Metric normalization failed for '{project_id}': {exc}") from exc

        if benchmark_type == "comprehensive":
            overall = blend_overall(category_scores)
        else:
            overall = category_scores.get(benchmark_type, 0.0)

        try:
            analysis = self.analyse(category_scores, overall)
        except Exception as exc:
            logger.error("benchmark_stage_failed", stage="analysis", project_id=project_id, error=str(exc))
            raise BenchmarkComputationError(f"Benchmark analysis failed for '{project_id}': {exc}") from exc

        benchmark = Benchmark(
            id=str(uuid.uuid4()),
            project_id=project_id,
            benchmark_type=benchmark_type,
            timestamp=timestamp or datetime.now(timezone.utc),
            industry=industry,
            metrics=metrics,
            metric_scores=metric_scores,
            category_scores=category_scores,
            overall_score=overall,
            grade=grade_for(overall),
            analysis=analysis,
            dropped_metrics=dropped,
        )

        logger.info(
            "benchmark_scored",
            project_id=project_id,
            benchmark_type=benchmark_type,
            overall_score=round(overall, 4),
            grade=benchmark.grade,
        )
        return benchmark
