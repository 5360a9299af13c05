"""Recommendation planner — ranked remediation items and phased improvement plans."""

from __future__ import annotations

import math
import re
import uuid
from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta, timezone

import structlog

from projbench.errors import ValidationError
from projbench.schemas.benchmark import Benchmark, TrendResult
from projbench.schemas.recommendation import (
    ExpectedOutcomes,
    ImprovementPlan,
    Milestone,
    OutcomeHorizon,
    PlanPhase,
    PlanTask,
    Recommendation,
    ScheduleItem,
    SuccessMetric,
)
from projbench.schemas.standards import ComparisonResult
from projbench.services.metric_registry import MetricRegistry, metric_registry
from projbench.services.patterns import detect_cross_category_patterns

logger = structlog.get_logger()


PRIORITY_ORDER = {"critical": 5, "high": 4, "medium": 3, "low": 2, "info": 1}
IMPACT_ORDER = {"critical": 5, "high": 4, "medium": 3, "low": 2}

# (lower bound inclusive, upper bound exclusive, type, priority, impact, target)
CATEGORY_RULES = [
    (0.0, 0.5, "critical_improvement", "critical", "high", 0.7),
    (0.5, 0.7, "improvement", "high", "medium", 0.8),
    (0.7, 0.9, "optimization", "medium", "medium", 0.95),
]

# priority → (title verb, description verdict)
CATEGORY_WORDING = {
    "critical": ("Critical: Improve", "is below acceptable standards"),
    "high": ("Improve", "needs improvement"),
    "medium": ("Optimize", "is good but can be optimized"),
}

METRIC_SCORE_THRESHOLD = 0.6
METRIC_TARGET = 0.8
ACCEPTABLE_CATEGORY_SCORE = 0.5
COMPETITIVE_GAP = -0.1

# Gap upper bound → (effort, timeline)
EFFORT_BUCKETS = [
    (0.1, "low", "1-2 weeks"),
    (0.2, "medium", "1-2 months"),
    (0.3, "high", "3-6 months"),
]
LARGEST_EFFORT = ("very_high", "6+ months")

EFFORT_HOURS = {"low": 8, "medium": 16, "high": 32, "very_high": 64}
DEFAULT_EFFORT_HOURS = 16

TIMELINE_PATTERN = re.compile(r"^\d+[wmy]$")
PHASE_COUNTS = {"1m": 2, "3m": 3}
DEFAULT_PHASE_COUNT = 4
PHASE_WEEKS = {"1m": 2, "3m": 3}
DEFAULT_PHASE_WEEKS = 6

TARGET_SCORE_STEP = 0.2

CATEGORY_ACTIONS = {
    "performance": {
        "critical": ["Optimize database queries", "Implement caching", "Use CDN", "Optimize images", "Implement lazy loading"],
        "high": ["Review performance bottlenecks", "Implement monitoring", "Optimize critical paths"],
        "medium": ["Fine-tune performance", "Implement advanced caching", "Optimize algorithms"],
    },
    "quality": {
        "critical": ["Increase test coverage", "Refactor complex code", "Improve documentation", "Reduce technical debt"],
        "high": ["Implement code reviews", "Add automated testing", "Improve code standards"],
        "medium": ["Optimize code quality", "Enhance documentation", "Implement best practices"],
    },
    "security": {
        "critical": ["Update dependencies", "Implement security headers", "Add input validation", "Use HTTPS"],
        "high": ["Conduct security audit", "Implement rate limiting", "Add authentication"],
        "medium": ["Enhance security measures", "Implement monitoring", "Update security policies"],
    },
    "compliance": {
        "critical": ["Update privacy policies", "Implement data retention", "Add audit logging"],
        "high": ["Conduct compliance audit", "Implement data protection", "Add consent management"],
        "medium": ["Enhance compliance measures", "Update documentation", "Implement monitoring"],
    },
}

CATEGORY_DEPENDENCIES = {
    "performance": ["Performance monitoring tools", "CDN service", "Caching solution"],
    "quality": ["Testing framework", "Code analysis tools", "Documentation tools"],
    "security": ["Security scanning tools", "Authentication system", "Encryption libraries"],
    "compliance": ["Audit logging system", "Data protection tools", "Policy management system"],
}

CATEGORY_RESOURCES = {
    "performance": {
        "critical": ["Performance Engineer", "DevOps Engineer", "Infrastructure Team"],
        "high": ["Senior Developer", "DevOps Engineer"],
        "medium": ["Developer", "Technical Lead"],
    },
    "quality": {
        "critical": ["QA Engineer", "Technical Lead", "Code Review Team"],
        "high": ["QA Engineer", "Senior Developer"],
        "medium": ["Developer", "Technical Lead"],
    },
    "security": {
        "critical": ["Security Expert", "DevOps Engineer", "Legal Team"],
        "high": ["Security Expert", "Senior Developer"],
        "medium": ["Developer", "Security Team"],
    },
    "compliance": {
        "critical": ["Compliance Officer", "Legal Team", "Data Protection Officer"],
        "high": ["Compliance Officer", "Legal Team"],
        "medium": ["Legal Team", "Project Manager"],
    },
}

CATEGORY_RISKS = {
    "performance": ["Performance degradation", "User experience issues", "Scalability problems"],
    "quality": ["Bugs and defects", "Maintenance difficulties", "Technical debt accumulation"],
    "security": ["Security breaches", "Data leaks", "Regulatory violations"],
    "compliance": ["Regulatory fines", "Legal issues", "Reputation damage"],
}

CATEGORY_BENEFITS = {
    "performance": ["Better user experience", "Improved scalability", "Reduced costs"],
    "quality": ["Fewer bugs", "Easier maintenance", "Better code quality"],
    "security": ["Reduced security risks", "Compliance", "Customer trust"],
    "compliance": ["Regulatory compliance", "Risk mitigation", "Legal protection"],
}


def estimate_effort(current: float, target: float) -> tuple[str, str]:
    """Look up (effort, timeline) from the score gap."""
    gap = round(target - current, 10)
    for upper, effort, timeline in EFFORT_BUCKETS:
        if gap <= upper:
            return effort, timeline
    return LARGEST_EFFORT


def rank_recommendations(recommendations: Iterable[Recommendation]) -> list[Recommendation]:
    """Stable sort by priority then impact, both descending."""
    return sorted(
        recommendations,
        key=lambda r: (-PRIORITY_ORDER.get(r.priority, 0), -IMPACT_ORDER.get(r.impact, 0)),
    )


def _new_id() -> str:
    return f"rec_{uuid.uuid4().hex[:12]}"


def _lowest_category(benchmark: Benchmark) -> str:
    if not benchmark.category_scores:
        return benchmark.benchmark_type
    return min(benchmark.category_scores, key=lambda c: benchmark.category_scores[c])


def _measured_metrics(benchmark: Benchmark, categories: Iterable[str] | None = None) -> list[str]:
    """Metric names actually present in the benchmark, in category order."""
    wanted = benchmark.metrics if categories is None else categories
    names = (metric for category in wanted for metric in benchmark.metrics.get(category, {}))
    return list(dict.fromkeys(names))


class RecommendationPlanner:
    """Builds ranked recommendations from a benchmark, its comparison and its trend."""

    def __init__(self, registry: MetricRegistry | None = None) -> None:
        self.registry = registry or metric_registry

    # ─── Rules ──────────────────────────────────────────────────────────────

    def category_recommendations(self, benchmark: Benchmark) -> list[Recommendation]:
        recommendations = []
        for category, score in benchmark.category_scores.items():
            for lower, upper, rec_type, priority, impact, target in CATEGORY_RULES:
                if lower <= score < upper:
                    effort, timeline = estimate_effort(score, target)
                    verb, verdict = CATEGORY_WORDING[priority]
                    recommendations.append(Recommendation(
                        id=_new_id(),
                        project_id=benchmark.project_id,
                        category=category,
                        type=rec_type,
                        priority=priority,
                        impact=impact,
                        title=f"{verb} {category} performance",
                        description=f"Current {category} score is {score * 100:.1f}%, which {verdict}",
                        current_value=score,
                        target_value=target,
                        effort=effort,
                        timeline=timeline,
                        actions=CATEGORY_ACTIONS.get(category, {}).get(priority, ["Review and improve this area"]),
                        metrics=_measured_metrics(benchmark, [category]),
                        dependencies=CATEGORY_DEPENDENCIES.get(category, []),
                        resources=CATEGORY_RESOURCES.get(category, {}).get(priority, ["Project Team"]),
                        risks=CATEGORY_RISKS.get(category, ["Project delays", "Quality issues"]),
                        benefits=CATEGORY_BENEFITS.get(category, ["Improved performance", "Better quality"]),
                    ))
                    break
        return recommendations

    def metric_recommendations(
        self,
        benchmark: Benchmark,
        comparison: ComparisonResult | None = None,
    ) -> list[Recommendation]:
        """Weak metrics inside categories that are otherwise acceptable."""
        recommendations = []
        for category, scores in benchmark.metric_scores.items():
            if benchmark.category_scores.get(category, 0.0) < ACCEPTABLE_CATEGORY_SCORE:
                continue
            for metric, score in scores.items():
                if score >= METRIC_SCORE_THRESHOLD:
                    continue
                effort, timeline = estimate_effort(score, METRIC_TARGET)
                label = self.registry.label_of(metric)
                description = f"Current {label} score is {score * 100:.1f}%, which needs improvement"

                detail = comparison.categories.get(category) if comparison else None
                standard = detail.metrics.get(metric).standard if detail and metric in detail.metrics else None
                if standard is not None:
                    raw = benchmark.metrics.get(category, {}).get(metric)
                    unit = self.registry.unit_of(metric)
                    description += f" (measured {raw:g}{unit}, good is {standard.good:g}{unit})"

                recommendations.append(Recommendation(
                    id=_new_id(),
                    project_id=benchmark.project_id,
                    category=category,
                    metric=metric,
                    type="metric_improvement",
                    priority="medium",
                    impact="medium",
                    title=f"Improve {label} in {category}",
                    description=description,
                    current_value=score,
                    target_value=METRIC_TARGET,
                    effort=effort,
                    timeline=timeline,
                    actions=CATEGORY_ACTIONS.get(category, {}).get("medium", ["Review and improve this area"]),
                    metrics=[metric],
                    dependencies=CATEGORY_DEPENDENCIES.get(category, []),
                    resources=CATEGORY_RESOURCES.get(category, {}).get("medium", ["Project Team"]),
                    risks=CATEGORY_RISKS.get(category, ["Project delays", "Quality issues"]),
                    benefits=CATEGORY_BENEFITS.get(category, ["Improved performance", "Better quality"]),
                ))
        return recommendations

    def pattern_recommendations(self, benchmark: Benchmark) -> list[Recommendation]:
        recommendations = []
        for pattern in detect_cross_category_patterns(benchmark.category_scores):
            worst = min(pattern.categories, key=lambda c: benchmark.category_scores[c])
            current = benchmark.category_scores[worst]
            target = 0.7 if pattern.kind == "security_compliance" else 0.6
            effort, timeline = estimate_effort(current, target)
            recommendations.append(Recommendation(
                id=_new_id(),
                project_id=benchmark.project_id,
                category=worst,
                categories=pattern.categories,
                type="pattern_based",
                priority=pattern.priority,
                impact=pattern.impact,
                title=pattern.title,
                description=pattern.description,
                current_value=current,
                target_value=target,
                effort=effort,
                timeline=timeline,
                actions=pattern.actions,
                metrics=_measured_metrics(benchmark, pattern.categories),
                dependencies=pattern.dependencies,
                resources=pattern.resources,
                risks=pattern.risks,
                benefits=pattern.benefits,
            ))
        return recommendations

    def trend_recommendations(self, benchmark: Benchmark, trend: TrendResult | None) -> list[Recommendation]:
        """Exactly one reversal item when the trend is declining."""
        if trend is None or trend.direction != "declining":
            return []
        return [Recommendation(
            id=_new_id(),
            project_id=benchmark.project_id,
            category=_lowest_category(benchmark),
            categories=list(benchmark.category_scores),
            type="trend_reversal",
            priority="high",
            impact="high",
            title="Reverse declining performance trend",
            description=f"Performance has been declining at a rate of {trend.rate * 100:.1f}% across the window",
            current_value=trend.last_score,
            target_value=trend.first_score,
            effort="high",
            timeline="3-6 months",
            actions=[
                "Conduct root cause analysis",
                "Implement corrective measures",
                "Monitor progress closely",
                "Adjust strategies as needed",
            ],
            metrics=_measured_metrics(benchmark),
            resources=["Project Manager", "Technical Lead", "Analytics Team"],
            risks=["Continued decline", "Project failure", "Team demotivation"],
            benefits=["Performance improvement", "Team confidence", "Project success"],
        )]

    def comparison_recommendations(
        self,
        benchmark: Benchmark,
        project_score: float,
        targets: Sequence[tuple[str, float]],
    ) -> list[Recommendation]:
        """Items for every comparison target the project trails by more than 0.1."""
        recommendations = []
        for name, target_score in targets:
            gap = project_score - target_score
            if gap >= COMPETITIVE_GAP:
                continue
            target = min(target_score + 0.1, 1.0)
            effort, timeline = estimate_effort(project_score, target)
            recommendations.append(Recommendation(
                id=_new_id(),
                project_id=benchmark.project_id,
                category=_lowest_category(benchmark),
                categories=list(benchmark.category_scores),
                type="competitive_improvement",
                priority="high",
                impact="high",
                title=f"Improve performance vs {name}",
                description=f"Current score is {abs(gap) * 100:.1f}% below {name}",
                current_value=project_score,
                target_value=target,
                effort=effort,
                timeline=timeline,
                actions=[
                    "Analyze competitor practices",
                    "Implement best practices",
                    "Optimize performance",
                    "Improve quality",
                    "Enhance security",
                ],
                metrics=_measured_metrics(benchmark),
                resources=["Competitive Analysis Team", "Performance Engineer", "Quality Engineer"],
                risks=["Competitive disadvantage", "Market share loss", "Customer churn"],
                benefits=["Competitive advantage", "Market leadership", "Customer satisfaction"],
            ))
        return rank_recommendations(recommendations)

    def generate(
        self,
        benchmark: Benchmark,
        comparison: ComparisonResult | None = None,
        trend: TrendResult | None = None,
    ) -> list[Recommendation]:
        """Every rule, merged and ranked."""
        recommendations = [
            *self.category_recommendations(benchmark),
            *self.metric_recommendations(benchmark, comparison),
            *self.pattern_recommendations(benchmark),
            *self.trend_recommendations(benchmark, trend),
        ]
        ranked = rank_recommendations(recommendations)
        logger.debug("recommendations_generated", project_id=benchmark.project_id, count=len(ranked))
        return ranked

    # ─── Summaries ──────────────────────────────────────────────────────────

    @staticmethod
    def priority_matrix(recommendations: Iterable[Recommendation]) -> dict[str, list[str]]:
        """Recommendation ids bucketed by ``<priority>_<impact>``."""
        matrix: dict[str, list[str]] = {
            "critical_critical": [],
            "critical_high": [],
            "high_high": [],
            "high_medium": [],
            "medium_medium": [],
            "low_low": [],
        }
        for rec in recommendations:
            matrix.setdefault(f"{rec.priority}_{rec.impact}", []).append(rec.id)
        return matrix

    @staticmethod
    def expected_outcomes(recommendations: Iterable[Recommendation]) -> ExpectedOutcomes:
        """Projected score gains split by how soon they land."""
        short, medium, long = OutcomeHorizon(), OutcomeHorizon(), OutcomeHorizon()
        for rec in recommendations:
            if rec.current_value is None or rec.target_value is None:
                continue
            gain = max(rec.target_value - rec.current_value, 0.0)
            if "week" in rec.timeline:
                short.score += gain * 0.3
                short.improvements.append(rec.title)
            elif rec.timeline == "1-2 months":
                medium.score += gain * 0.5
                medium.improvements.append(rec.title)
            else:
                long.score += gain * 0.2
                long.improvements.append(rec.title)
        return ExpectedOutcomes(short_term=short, medium_term=medium, long_term=long)

    # ─── Planning ───────────────────────────────────────────────────────────

    def build_improvement_plan(
        self,
        project_id: str,
        recommendations: Sequence[Recommendation],
        timeline: str = "3m",
        current_score: float = 0.0,
        focus_areas: Sequence[str] = (),
        now: datetime | None = None,
    ) -> ImprovementPlan:
        """Slice ranked recommendations into contiguous, timed phases.

        Args:
            project_id: Project the plan belongs to.
            recommendations: Already-ranked items; order is preserved.
            timeline: ``1m`` (2 phases of 2 weeks), ``3m`` (3 phases of 3
                weeks) or anything else (4 phases of 6 weeks).
            current_score: Blended score the plan starts from.
            focus_areas: Restrict to these categories when non-empty.
            now: Plan start, defaults to now (UTC).
        """
        if not TIMELINE_PATTERN.match(timeline or ""):
            raise ValidationError(f"Invalid timeline '{timeline}'. Expected e.g. '1m', '3m', '6m'")

        now = now or datetime.now(timezone.utc)
        items = list(recommendations)
        if focus_areas:
            focus = set(focus_areas)
            items = [r for r in items if r.category in focus or focus.intersection(r.categories)]

        phase_count = PHASE_COUNTS.get(timeline, DEFAULT_PHASE_COUNT)
        weeks = PHASE_WEEKS.get(timeline, DEFAULT_PHASE_WEEKS)
        size = math.ceil(len(items) / phase_count) if items else 0

        phases, milestones, schedule = [], [], []
        for i in range(phase_count):
            chunk = items[i * size:(i + 1) * size]
            objectives = [r.title for r in chunk]
            phases.append(PlanPhase(
                phase=i + 1,
                name=f"Phase {i + 1}",
                duration_weeks=weeks,
                recommendations=chunk,
                objectives=objectives,
            ))
            milestones.append(Milestone(
                milestone=i + 1,
                name=f"Milestone {i + 1}",
                target_date=now + timedelta(weeks=weeks * (i + 1)),
                objectives=objectives,
            ))
            schedule.append(ScheduleItem(
                phase=i + 1,
                start_date=now + timedelta(weeks=weeks * i),
                end_date=now + timedelta(weeks=weeks * (i + 1)),
                tasks=[
                    PlanTask(name=r.title, description=r.description, effort=r.effort, category=r.category)
                    for r in chunk
                ],
            ))

        resources: dict[str, int] = {}
        for rec in items:
            hours = EFFORT_HOURS.get(rec.effort, DEFAULT_EFFORT_HOURS)
            resources[rec.category] = resources.get(rec.category, 0) + hours
        resources["total"] = sum(resources.values())

        success_metrics = [
            SuccessMetric(
                metric=rec.metric or f"{rec.category}_score",
                category=rec.category,
                current_value=rec.current_value,
                target_value=rec.target_value,
            )
            for rec in items
        ]

        return ImprovementPlan(
            project_id=project_id,
            timeline=timeline,
            focus_areas=list(focus_areas),
            current_score=current_score,
            target_score=min(current_score + TARGET_SCORE_STEP, 1.0),
            phases=phases,
            milestones=milestones,
            resources=resources,
            schedule=schedule,
            success_metrics=success_metrics,
            generated_at=now,
        )
