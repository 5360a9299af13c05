"""Standards registry — industry threshold tables and banded normalization."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import structlog

from projbench.errors import ValidationError
from projbench.schemas.benchmark import Benchmark
from projbench.schemas.standards import (
    CategoryComparison,
    ComparisonResult,
    IndustryBenchmark,
    MetricComparison,
    Threshold,
)
from projbench.services.grading import SCORE_PRECISION, clamp01, grade_for, level_for
from projbench.services.metric_registry import (
    CATEGORIES,
    EXTRA_CATEGORIES,
    MetricRegistry,
    metric_registry,
)

logger = structlog.get_logger()


# Band scores; four bands, never interpolated
BAND_SCORES = {"excellent": 1.0, "good": 0.8, "average": 0.6, "poor": 0.4}

# Metric-level bucket thresholds, shared with the engine's category analysis
STRENGTH_THRESHOLD = 0.8
WEAKNESS_THRESHOLD = 0.5

# Score used when the industry is represented by its average thresholds
INDUSTRY_AVERAGE_SCORE = 0.7

_HIGH_BANDS = (0.9, 0.8, 0.7, 0.5)
_COMPLIANCE_BANDS = (0.95, 0.9, 0.8, 0.6)

DEFAULT_STANDARDS: dict[str, dict[str, tuple[float, float, float, float]]] = {
    "performance": {
        "response_time": (100, 300, 500, 1000),
        "throughput": (1000, 500, 200, 50),
        "cpu_utilization": (0.7, 0.8, 0.9, 1.0),
        "memory_utilization": (0.7, 0.8, 0.9, 1.0),
    },
    "quality": {
        "test_coverage": _HIGH_BANDS,
        "code_quality": _HIGH_BANDS,
        "maintainability": _HIGH_BANDS,
        "technical_debt": (0.1, 0.2, 0.3, 0.5),
    },
    "security": {
        "vulnerability_count": (0, 5, 10, 25),
        "security_score": _HIGH_BANDS,
        "authentication_strength": _HIGH_BANDS,
        "data_encryption": _HIGH_BANDS,
    },
    "compliance": {
        "gdpr_compliance": _COMPLIANCE_BANDS,
        "iso27001_compliance": _COMPLIANCE_BANDS,
        "soc2_compliance": _COMPLIANCE_BANDS,
        "pci_compliance": _COMPLIANCE_BANDS,
    },
}

INDUSTRY_STANDARDS: dict[str, dict[str, dict[str, tuple[float, float, float, float]]]] = {
    "fintech": {
        "performance": {
            "response_time": (50, 100, 200, 500),
            "throughput": (2000, 1000, 500, 100),
        },
        "security": {
            "security_score": _COMPLIANCE_BANDS,
            "vulnerability_count": (0, 2, 5, 10),
        },
        "compliance": {
            "pci_compliance": (0.98, 0.95, 0.9, 0.8),
        },
    },
    "healthcare": {
        "performance": {
            "response_time": (200, 500, 1000, 2000),
            "throughput": (500, 200, 100, 50),
        },
        "security": {
            "security_score": _COMPLIANCE_BANDS,
            "vulnerability_count": (0, 1, 3, 8),
        },
        "compliance": {
            "hipaa_compliance": (0.98, 0.95, 0.9, 0.8),
        },
    },
    "ecommerce": {
        "performance": {
            "response_time": (100, 300, 500, 1000),
            "throughput": (1000, 500, 200, 50),
        },
        "security": {
            "security_score": _HIGH_BANDS,
            "vulnerability_count": (0, 5, 10, 20),
        },
        "compliance": {
            "pci_compliance": _COMPLIANCE_BANDS,
        },
    },
    "saas": {
        "performance": {
            "response_time": (150, 300, 500, 1000),
            "throughput": (800, 400, 200, 100),
        },
        "quality": {
            "test_coverage": _HIGH_BANDS,
            "code_quality": _HIGH_BANDS,
        },
        "security": {
            "security_score": _HIGH_BANDS,
            "vulnerability_count": (0, 3, 8, 15),
        },
    },
}


def scale_to_threshold(value: float, threshold: Threshold) -> float:
    """Read a percentage (e.g. 85) as a fraction when the table is fractional."""
    if value > 1 and max(threshold.excellent, threshold.good, threshold.average, threshold.poor) <= 1:
        return value / 100
    return value


def band_for(value: float, threshold: Threshold) -> str:
    """Return the band a value falls in, respecting metric direction."""
    if threshold.lower_is_better:
        if value <= threshold.excellent:
            return "excellent"
        if value <= threshold.good:
            return "good"
        if value <= threshold.average:
            return "average"
        return "poor"
    if value >= threshold.excellent:
        return "excellent"
    if value >= threshold.good:
        return "good"
    if value >= threshold.average:
        return "average"
    return "poor"


class StandardsRegistry:
    """Generic and industry-specific threshold tables.

    Lookups try ``(industry, category, metric)`` first and fall back to the
    generic ``(category, metric)`` table. A metric with no table at all scores
    0.5 with level ``"unknown"``.
    """

    def __init__(self, registry: MetricRegistry | None = None, load_defaults: bool = True) -> None:
        self.registry = registry or metric_registry
        self._generic: dict[str, dict[str, Threshold]] = {}
        self._industry: dict[str, dict[str, dict[str, Threshold]]] = {}
        if load_defaults:
            self._load_defaults()

    def _load_defaults(self) -> None:
        for category, metrics in DEFAULT_STANDARDS.items():
            for metric, bands in metrics.items():
                self.add_standard(category, metric, _bands_to_dict(bands))
        for industry, categories in INDUSTRY_STANDARDS.items():
            self.add_industry_standard(
                industry,
                {
                    category: {metric: _bands_to_dict(bands) for metric, bands in metrics.items()}
                    for category, metrics in categories.items()
                },
            )

    # ─── Admin ──────────────────────────────────────────────────────────────

    def _build_threshold(self, category: str, metric: str, thresholds: Threshold | dict[str, Any]) -> tuple[str, Threshold]:
        if category not in CATEGORIES + EXTRA_CATEGORIES:
            raise ValidationError(f"Unknown category '{category}'")
        if not metric or not metric.strip():
            raise ValidationError("Metric name is required")

        canonical = self.registry.canonical_name(metric)
        raw = thresholds.model_dump() if isinstance(thresholds, Threshold) else dict(thresholds)
        missing = [band for band in BAND_SCORES if band not in raw]
        if missing:
            raise ValidationError(f"Threshold for '{canonical}' is missing bands: {', '.join(missing)}")

        try:
            threshold = Threshold(
                excellent=float(raw["excellent"]),
                good=float(raw["good"]),
                average=float(raw["average"]),
                poor=float(raw["poor"]),
                lower_is_better=self.registry.is_lower_better(canonical),
            )
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Threshold for '{canonical}' must be numeric") from exc

        bands = [threshold.excellent, threshold.good, threshold.average, threshold.poor]
        ordered = bands == sorted(bands) if threshold.lower_is_better else bands == sorted(bands, reverse=True)
        if not ordered:
            direction = "ascending" if threshold.lower_is_better else "descending"
            raise ValidationError(
                f"Threshold bands for '{canonical}' must be {direction} from excellent to poor"
            )
        return canonical, threshold

    def add_standard(self, category: str, metric: str, thresholds: Threshold | dict[str, Any]) -> Threshold:
        """Add or replace a generic threshold table."""
        canonical, threshold = self._build_threshold(category, metric, thresholds)
        self._generic.setdefault(category, {})[canonical] = threshold
        logger.debug("standard_added", category=category, metric=canonical)
        return threshold

    def add_industry_standard(
        self,
        industry: str,
        standards: dict[str, dict[str, Threshold | dict[str, Any]]],
    ) -> dict[str, dict[str, Threshold]]:
        """Add vertical-specific overrides for an industry."""
        if not industry or not industry.strip():
            raise ValidationError("Industry name is required")

        # Validate everything before touching the table
        built: dict[str, dict[str, Threshold]] = {}
        for category, metrics in standards.items():
            for metric, thresholds in metrics.items():
                canonical, threshold = self._build_threshold(category, metric, thresholds)
                built.setdefault(category, {})[canonical] = threshold

        table = self._industry.setdefault(industry.lower(), {})
        for category, metrics in built.items():
            table.setdefault(category, {}).update(metrics)
        logger.debug("industry_standard_added", industry=industry.lower(), categories=sorted(built))
        return built

    # ─── Queries ────────────────────────────────────────────────────────────

    @property
    def industries(self) -> list[str]:
        return sorted(self._industry)

    def lookup(self, category: str, metric: str, industry: str | None = None) -> Threshold | None:
        """Find the threshold for a metric, industry table first."""
        canonical = self.registry.canonical_name(metric)
        if industry:
            threshold = self._industry.get(industry.lower(), {}).get(category, {}).get(canonical)
            if threshold is not None:
                return threshold
        return self._generic.get(category, {}).get(canonical)

    def get_standards(
        self,
        category: str | None = None,
        metric: str | None = None,
        industry: str | None = None,
    ) -> dict[str, dict[str, Threshold]]:
        """Return threshold tables filtered by category and/or metric.

        With an industry, its overrides replace the generic rows they cover.
        """
        merged: dict[str, dict[str, Threshold]] = {
            cat: dict(metrics) for cat, metrics in self._generic.items()
        }
        if industry:
            for cat, metrics in self._industry.get(industry.lower(), {}).items():
                merged.setdefault(cat, {}).update(metrics)

        if category:
            merged = {category: merged[category]} if category in merged else {}
        if metric:
            canonical = self.registry.canonical_name(metric)
            merged = {
                cat: {canonical: metrics[canonical]}
                for cat, metrics in merged.items()
                if canonical in metrics
            }
        return merged

    # ─── Comparison ─────────────────────────────────────────────────────────

    def compare_metric(
        self,
        category: str,
        metric: str,
        value: float,
        industry: str | None = None,
    ) -> MetricComparison:
        """Score one raw value against its threshold table."""
        canonical = self.registry.canonical_name(metric)
        threshold = self.lookup(category, canonical, industry)
        if threshold is None:
            return MetricComparison(metric=canonical, value=value, score=0.5, level="unknown")

        scaled = scale_to_threshold(value, threshold)
        level = band_for(scaled, threshold)

        if threshold.lower_is_better:
            improvement = max(scaled - threshold.good, 0.0)
            potential = max(scaled - threshold.excellent, 0.0)
        else:
            improvement = max(threshold.good - scaled, 0.0)
            potential = max(threshold.excellent - scaled, 0.0)

        return MetricComparison(
            metric=canonical,
            value=value,
            score=BAND_SCORES[level],
            level=level,
            standard=threshold,
            improvement=round(improvement, 6),
            potential=round(potential, 6),
        )

    def compare_category(
        self,
        category: str,
        metrics: dict[str, float],
        industry: str | None = None,
    ) -> CategoryComparison:
        comparisons: dict[str, MetricComparison] = {}
        strengths: list[MetricComparison] = []
        weaknesses: list[MetricComparison] = []
        opportunities: list[MetricComparison] = []

        for metric, value in metrics.items():
            comparison = self.compare_metric(category, metric, value, industry)
            comparisons[comparison.metric] = comparison
            if comparison.score >= STRENGTH_THRESHOLD:
                strengths.append(comparison)
            elif comparison.score < WEAKNESS_THRESHOLD:
                weaknesses.append(comparison)
            else:
                opportunities.append(comparison)

        score = _mean_score(c.score for c in comparisons.values())
        return CategoryComparison(
            category=category,
            score=score,
            level=level_for(score),
            metrics=comparisons,
            strengths=strengths,
            weaknesses=weaknesses,
            opportunities=opportunities,
        )

    def compare_benchmark(self, benchmark: Benchmark, industry: str | None = None) -> ComparisonResult:
        """Compare every metric of a benchmark with the threshold tables.

        Pure function of the benchmark and the current tables, so repeated
        calls on the same inputs return equal results.
        """
        industry = industry or benchmark.industry
        categories = {
            category: self.compare_category(category, metrics, industry)
            for category, metrics in benchmark.metrics.items()
        }
        overall = _mean_score(c.score for c in categories.values())
        return ComparisonResult(
            benchmark_type=benchmark.benchmark_type,
            industry=industry,
            categories=categories,
            overall_score=overall,
            grade=grade_for(overall),
        )

    def industry_benchmark(
        self,
        benchmark_type: str,
        industry: str | None = None,
        name: str | None = None,
    ) -> IndustryBenchmark:
        """Build an industry-average target with every metric at its ``average`` band."""
        categories = CATEGORIES if benchmark_type == "comprehensive" else [benchmark_type]
        tables = self.get_standards(industry=industry)
        metrics = {
            category: {metric: threshold.average for metric, threshold in tables.get(category, {}).items()}
            for category in categories
            if tables.get(category)
        }
        label = industry.title() if industry else "Generic"
        return IndustryBenchmark(
            name=name or f"{label} Industry Average",
            industry=industry,
            benchmark_type=benchmark_type,
            metrics=metrics,
            score=INDUSTRY_AVERAGE_SCORE,
            grade=grade_for(INDUSTRY_AVERAGE_SCORE),
        )


def _mean_score(scores: Iterable[float]) -> float:
    values = list(scores)
    if not values:
        return 0.0
    return clamp01(round(sum(values) / len(values), SCORE_PRECISION))


def _bands_to_dict(bands: tuple[float, float, float, float]) -> dict[str, float]:
    excellent, good, average, poor = bands
    return {"excellent": excellent, "good": good, "average": average, "poor": poor}
