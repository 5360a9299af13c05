"""Benchmark orchestrator — owns all mutable state and sequences a benchmark run.

A run goes: fetch project context and raw metrics → score (engine) → compare
with the standards tables → blend → trend over stored history → recommend →
forecast → persist → record an analytics event. Read queries and the two
background ticks operate on the same store.
"""

from __future__ import annotations

import asyncio
import contextlib
import re
import statistics
from collections.abc import AsyncIterator, Callable, Mapping, Sequence
from datetime import datetime, timedelta, timezone
from typing import Any

import pydantic
import structlog

from projbench.config import Settings
from projbench.errors import (
    BenchmarkComputationError,
    BenchmarkServiceError,
    MetricsFetchTimeout,
    MetricsProviderError,
    ValidationError,
)
from projbench.schemas.analytics import (
    AnalyticsReport,
    ComparisonEntry,
    ComparisonReport,
    ComparisonTarget,
    ImprovementArea,
    Leaderboard,
    LeaderboardEntry,
    SystemStatus,
    TopArea,
    TrendReport,
)
from projbench.schemas.benchmark import BenchmarkResult, ProjectContext
from projbench.schemas.recommendation import ImprovementPlan, Recommendation
from projbench.schemas.standards import Threshold
from projbench.services.benchmark_engine import BenchmarkEngine
from projbench.services.grading import GRADES, SCORE_PRECISION, clamp01, grade_for
from projbench.services.metric_registry import CATEGORIES, EXTRA_CATEGORIES, metric_registry
from projbench.services.providers import (
    InMemoryMetricsProvider,
    InMemoryProjectProvider,
    MetricsProvider,
    ProjectDataClient,
    ProjectMetadataProvider,
)
from projbench.services.recommendation_planner import (
    PRIORITY_ORDER,
    TIMELINE_PATTERN,
    RecommendationPlanner,
    rank_recommendations,
)
from projbench.services.standards import StandardsRegistry
from projbench.services.trend_analyzer import TrendAnalyzer, analyze_scores
from projbench.store import AnalyticsStore, BenchmarkStore, create_benchmark_store

logger = structlog.get_logger()


TIME_RANGE_PATTERN = re.compile(r"^(\d+)([hdwmy])$")
TIME_RANGE_UNITS = {
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
    "w": timedelta(weeks=1),
    "m": timedelta(days=30),
    "y": timedelta(days=365),
}

GROUP_BY_FORMATS: dict[str, Callable[[datetime], str]] = {
    "hour": lambda ts: ts.strftime("%Y-%m-%dT%H"),
    "day": lambda ts: ts.strftime("%Y-%m-%d"),
    "week": lambda ts: f"{ts.isocalendar()[0]}-W{ts.isocalendar()[1]:02d}",
    "month": lambda ts: ts.strftime("%Y-%m"),
}

DEFAULT_LIST_LIMIT = 50
DEFAULT_LEADERBOARD_LIMIT = 10

# Peer ratio test: more than 10% better/worse than the comparison value
RATIO_MARGIN = 0.1

TOP_AREA_THRESHOLD = 0.8
IMPROVEMENT_AREA_THRESHOLD = 0.7
IMPROVEMENT_AREA_TARGET = 0.8


def parse_time_range(time_range: str) -> timedelta:
    """Parse ``<n><h|d|w|m|y>`` (e.g. ``30d``) into a timedelta."""
    match = TIME_RANGE_PATTERN.match(time_range or "")
    if not match or int(match.group(1)) <= 0:
        raise ValidationError(f"Invalid time_range '{time_range}'. Expected e.g. '24h', '7d', '4w', '3m', '1y'")
    return int(match.group(1)) * TIME_RANGE_UNITS[match.group(2)]


def _as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def merge_metrics(base: Mapping[str, Any], overrides: Mapping[str, Any] | None) -> dict[str, Any]:
    """Overlay request metrics on provider metrics, merging category blocks."""
    merged: dict[str, Any] = {
        key: dict(value) if isinstance(value, Mapping) else value for key, value in base.items()
    }
    for key, value in (overrides or {}).items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key].update(value)
        else:
            merged[key] = dict(value) if isinstance(value, Mapping) else value
    return merged


def improvement_areas(metric_scores: Mapping[str, Mapping[str, float]]) -> list[ImprovementArea]:
    areas = [
        ImprovementArea(
            metric=f"{category}.{metric}",
            value=score,
            target=IMPROVEMENT_AREA_TARGET,
            improvement_needed=round(IMPROVEMENT_AREA_TARGET - score, 10),
            priority="high" if score < 0.5 else "medium" if score < 0.6 else "low",
        )
        for category, scores in metric_scores.items()
        for metric, score in scores.items()
        if score < IMPROVEMENT_AREA_THRESHOLD
    ]
    return sorted(areas, key=lambda a: a.improvement_needed, reverse=True)


class BenchmarkOrchestrator:
    """Single owner of benchmark history, analytics and latest recommendations."""

    def __init__(
        self,
        settings: Settings | None = None,
        store: BenchmarkStore | None = None,
        standards: StandardsRegistry | None = None,
        engine: BenchmarkEngine | None = None,
        trend_analyzer: TrendAnalyzer | None = None,
        planner: RecommendationPlanner | None = None,
        project_provider: ProjectMetadataProvider | None = None,
        metrics_provider: MetricsProvider | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.registry = metric_registry
        self.standards = standards or StandardsRegistry(self.registry)
        self.engine = engine or BenchmarkEngine(self.standards, self.registry)
        self.trends = trend_analyzer or TrendAnalyzer()
        self.planner = planner or RecommendationPlanner(self.registry)
        self.project_provider = project_provider or InMemoryProjectProvider()
        self.metrics_provider = metrics_provider or InMemoryMetricsProvider()
        self.store = store if store is not None else create_benchmark_store(self.settings.database_url)
        self.analytics = AnalyticsStore(self.settings.analytics_max_entries)

        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._recommendations: dict[str, list[Recommendation]] = {}
        self._active_projects: dict[str, None] = dict.fromkeys(self.store.project_ids())
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}
        self._pending = 0
        self.started_at = self._clock()
        self.is_running = True

    def now(self) -> datetime:
        return self._clock()

    def stop(self) -> None:
        self.is_running = False

    @contextlib.asynccontextmanager
    async def _project_lock(self, project_id: str) -> AsyncIterator[None]:
        """Hold the project's lock; it is dropped once nobody holds or awaits it."""
        lock = self._locks.setdefault(project_id, asyncio.Lock())
        self._lock_users[project_id] = self._lock_users.get(project_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[project_id] -= 1
            if not self._lock_users[project_id]:
                del self._lock_users[project_id]
                del self._locks[project_id]

    @staticmethod
    def _require_project_id(project_id: Any) -> None:
        if not isinstance(project_id, str) or not project_id.strip():
            raise ValidationError("project_id is required")

    # ─── Benchmark runs ─────────────────────────────────────────────────────

    async def _fetch(self, project_id: str, benchmark_type: str) -> tuple[ProjectContext, dict[str, Any]]:
        """Fetch project context and provider metrics under the configured timeout."""
        timeout = self.settings.metrics_fetch_timeout_seconds
        try:
            project, metrics = await asyncio.wait_for(
                asyncio.gather(
                    self.project_provider.get_project(project_id),
                    self.metrics_provider.get_metrics(project_id, benchmark_type),
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.warning("metrics_fetch_timeout", project_id=project_id, timeout_seconds=timeout)
            raise MetricsFetchTimeout(
                f"Fetching metrics for '{project_id}' exceeded {timeout:g}s"
            ) from exc
        except BenchmarkServiceError:
            raise
        except Exception as exc:
            logger.error("metrics_fetch_failed", project_id=project_id, error=str(exc))
            raise MetricsProviderError(f"Fetching metrics for '{project_id}' failed: {exc}") from exc
        return project, dict(metrics or {})

    async def run_benchmark(
        self,
        project_id: str,
        benchmark_type: str,
        metrics: Mapping[str, Any] | None = None,
        industry: str | None = None,
        weights: Mapping[str, Any] | None = None,
    ) -> BenchmarkResult:
        """Run, score, persist and return one benchmark.

        Runs for the same project are serialized; different projects proceed
        concurrently.
        """
        self.engine.validate_request(project_id, benchmark_type)
        self._pending += 1
        try:
            async with self._project_lock(project_id):
                return await self._run_locked(project_id, benchmark_type, metrics, industry, weights)
        finally:
            self._pending -= 1

    async def _run_locked(
        self,
        project_id: str,
        benchmark_type: str,
        metrics: Mapping[str, Any] | None,
        industry: str | None,
        weights: Mapping[str, Any] | None,
    ) -> BenchmarkResult:
        project, provided = await self._fetch(project_id, benchmark_type)
        raw = merge_metrics(provided, metrics)
        industry = industry or project.industry or self.settings.default_industry
        timestamp = self.now()

        benchmark = self.engine.run_benchmark(project_id, benchmark_type, raw, weights, industry, timestamp)

        try:
            comparison = self.standards.compare_benchmark(benchmark, industry)
        except Exception as exc:
            logger.error("benchmark_stage_failed", stage="comparison", project_id=project_id, error=str(exc))
            raise BenchmarkComputationError(f"Standards comparison failed for '{project_id}': {exc}") from exc

        weight = self.settings.engine_score_weight
        blended = weight * benchmark.overall_score + (1 - weight) * comparison.overall_score
        score = clamp01(round(blended, SCORE_PRECISION))

        stored = await asyncio.to_thread(self.store.query, project_id, benchmark_type)
        history = [r.benchmark.overall_score for r in stored]
        trend = analyze_scores(history + [benchmark.overall_score])

        try:
            recommendations = self.planner.generate(benchmark, comparison, trend)
        except Exception as exc:
            logger.error("benchmark_stage_failed", stage="recommendations", project_id=project_id, error=str(exc))
            raise BenchmarkComputationError(f"Recommendation planning failed for '{project_id}': {exc}") from exc

        forecast = self.trends.predict_future_performance(benchmark, history)
        benchmark = benchmark.model_copy(update={"recommendations": recommendations})

        result = BenchmarkResult(
            id=benchmark.id,
            project_id=project_id,
            benchmark_type=benchmark_type,
            timestamp=timestamp,
            score=score,
            grade=grade_for(score),
            benchmark=benchmark,
            comparison=comparison,
            trend=trend,
            forecast=forecast,
            recommendations=recommendations,
            project=project,
        )

        await asyncio.to_thread(self.store.put, result)
        self._recommendations[project_id] = recommendations
        self._active_projects[project_id] = None
        self.analytics.add(
            "benchmark_completed",
            {"project_id": project_id, "benchmark_type": benchmark_type, "score": score, "grade": result.grade},
            timestamp,
        )

        logger.info(
            "benchmark_completed",
            project_id=project_id,
            benchmark_type=benchmark_type,
            score=round(score, 4),
            grade=result.grade,
            recommendations=len(recommendations),
        )
        return result

    async def _latest_or_run(self, project_id: str, benchmark_type: str) -> BenchmarkResult:
        history = await asyncio.to_thread(self.store.query, project_id, benchmark_type)
        if history:
            return history[-1]
        return await self.run_benchmark(project_id, benchmark_type)

    # ─── Comparison ─────────────────────────────────────────────────────────

    def _ratio_flags(
        self,
        project: Mapping[str, Mapping[str, float]],
        other: Mapping[str, Mapping[str, float]],
    ) -> tuple[list[str], list[str]]:
        """Direction-aware ±10% test on raw metric values."""
        strengths, weaknesses = [], []
        for category, values in project.items():
            for metric, value in values.items():
                other_value = other.get(category, {}).get(metric)
                if other_value is None:
                    continue
                better = value > other_value * (1 + RATIO_MARGIN)
                worse = value < other_value * (1 - RATIO_MARGIN)
                if self.registry.is_lower_better(metric):
                    better = value < other_value * (1 - RATIO_MARGIN)
                    worse = value > other_value * (1 + RATIO_MARGIN)
                if better:
                    strengths.append(f"{category}.{metric}")
                elif worse:
                    weaknesses.append(f"{category}.{metric}")
        return strengths, weaknesses

    async def compare_benchmarks(
        self,
        project_id: str,
        targets: Sequence[ComparisonTarget | Mapping[str, Any]],
        benchmark_type: str = "comprehensive",
    ) -> ComparisonReport:
        """Rank a project against industry averages and peer projects.

        Rank is the position in descending score order with ties broken by
        insertion order (the project itself first); percentile is
        ``(1 - (rank - 1) / N) * 100``.
        """
        self.engine.validate_request(project_id, benchmark_type)
        if not targets:
            raise ValidationError("comparison_targets is required")
        try:
            parsed = [
                t if isinstance(t, ComparisonTarget) else ComparisonTarget.model_validate(t) for t in targets
            ]
        except pydantic.ValidationError as exc:
            raise ValidationError(f"Invalid comparison target: {exc.errors()[0]['msg']}") from exc

        project_result = await self._latest_or_run(project_id, benchmark_type)
        participants: list[tuple[str, str, str | None, float, dict[str, dict[str, float]]]] = [
            (f"Project {project_id}", "project", project_id, project_result.score, project_result.benchmark.metrics)
        ]
        for target in parsed:
            if target.type == "industry":
                average = self.standards.industry_benchmark(benchmark_type, target.industry, target.name)
                participants.append((average.name, "industry", None, average.score, average.metrics))
            else:
                peer = await self._latest_or_run(target.project_id, benchmark_type)
                name = target.name or f"Project {target.project_id}"
                participants.append((name, "project", target.project_id, peer.score, peer.benchmark.metrics))

        order = sorted(range(len(participants)), key=lambda i: -participants[i][3])
        ranks = {index: position + 1 for position, index in enumerate(order)}
        total = len(participants)
        rank = ranks[0]

        entries: list[ComparisonEntry] = []
        all_strengths: list[str] = []
        all_weaknesses: list[str] = []
        for index, (name, kind, peer_id, score, metrics) in enumerate(participants):
            strengths: list[str] = []
            weaknesses: list[str] = []
            if index > 0:
                strengths, weaknesses = self._ratio_flags(project_result.benchmark.metrics, metrics)
                all_strengths.extend(strengths)
                all_weaknesses.extend(weaknesses)
            entries.append(ComparisonEntry(
                name=name,
                type=kind,
                project_id=peer_id,
                score=score,
                difference=round(project_result.score - score, 10),
                rank=ranks[index],
                strengths=strengths,
                weaknesses=weaknesses,
            ))

        recommendations = self.planner.comparison_recommendations(
            project_result.benchmark,
            project_result.score,
            [(p[0], p[3]) for p in participants[1:]],
        )

        logger.info("benchmark_compared", project_id=project_id, rank=rank, total=total)
        return ComparisonReport(
            project_id=project_id,
            benchmark_type=benchmark_type,
            project_score=project_result.score,
            project_grade=project_result.grade,
            rank=rank,
            percentile=(1 - (rank - 1) / total) * 100,
            total=total,
            standards_comparison=project_result.comparison,
            entries=entries,
            strengths=list(dict.fromkeys(all_strengths)),
            weaknesses=list(dict.fromkeys(all_weaknesses)),
            recommendations=recommendations,
            timestamp=self.now(),
        )

    # ─── Reads ──────────────────────────────────────────────────────────────

    def get_benchmarks(
        self,
        project_id: str,
        benchmark_type: str | None = None,
        include_history: bool = False,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> list[BenchmarkResult]:
        """Newest first; without history only the latest result per type."""
        self._require_project_id(project_id)
        if limit < 1:
            raise ValidationError("limit must be at least 1")
        results = sorted(self.store.query(project_id, benchmark_type), key=lambda r: r.timestamp, reverse=True)
        if not include_history:
            latest: dict[str, BenchmarkResult] = {}
            for result in results:
                latest.setdefault(result.benchmark_type, result)
            results = list(latest.values())
        return results[:limit]

    def analyze_trends(
        self,
        project_id: str,
        time_range: str = "30d",
        benchmark_type: str | None = None,
    ) -> TrendReport:
        """Trend of engine scores inside a trailing window.

        Without a type, the type of the project's most recent run is used.
        """
        self._require_project_id(project_id)
        cutoff = self.now() - parse_time_range(time_range)
        if benchmark_type is not None:
            self.engine.validate_request(project_id, benchmark_type)
        else:
            recent = self.store.query(project_id)
            benchmark_type = recent[-1].benchmark_type if recent else "comprehensive"

        history = self.store.query(project_id, benchmark_type, since=cutoff)
        trend = self.trends.analyze_trends([r.benchmark for r in history])
        latest = history[-1] if history else None

        return TrendReport(
            project_id=project_id,
            time_range=time_range,
            benchmark_type=benchmark_type,
            trend=trend,
            metric_trends=self.trends.metric_trends([r.benchmark for r in history]),
            improvement_areas=improvement_areas(latest.benchmark.metric_scores) if latest else [],
            recommendations=self.planner.trend_recommendations(latest.benchmark, trend) if latest else [],
            timestamp=self.now(),
        )

    def get_recommendations(
        self,
        project_id: str | None = None,
        category: str | None = None,
        priority: str | None = None,
    ) -> list[Recommendation]:
        """Latest recommendations, optionally filtered, in ranked order."""
        if priority is not None and priority not in PRIORITY_ORDER:
            raise ValidationError(f"Unknown priority '{priority}'")
        if project_id is not None:
            pool = list(self._recommendations.get(project_id, []))
        else:
            pool = [rec for recs in self._recommendations.values() for rec in recs]
        if category is not None:
            pool = [r for r in pool if r.category == category or category in r.categories]
        if priority is not None:
            pool = [r for r in pool if r.priority == priority]
        return rank_recommendations(pool)

    async def generate_improvement_plan(
        self,
        project_id: str,
        focus_areas: Sequence[str] | None = None,
        timeline: str = "3m",
    ) -> ImprovementPlan:
        """Phased plan from the latest comprehensive result (run one if none exists)."""
        self._require_project_id(project_id)
        if not TIMELINE_PATTERN.match(timeline or ""):
            raise ValidationError(f"Invalid timeline '{timeline}'. Expected e.g. '1m', '3m', '6m'")

        result = await self._latest_or_run(project_id, "comprehensive")
        plan = self.planner.build_improvement_plan(
            project_id,
            result.recommendations,
            timeline=timeline,
            current_score=result.score,
            focus_areas=list(focus_areas or []),
            now=self.now(),
        )
        logger.info("improvement_plan_generated", project_id=project_id, timeline=timeline, phases=len(plan.phases))
        return plan

    def get_benchmark_analytics(
        self,
        project_id: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        group_by: str = "day",
    ) -> AnalyticsReport:
        """Aggregate stored results, grouped by hour, day, ISO week or month."""
        if group_by not in GROUP_BY_FORMATS:
            raise ValidationError(f"Invalid group_by '{group_by}'. Expected one of: {', '.join(GROUP_BY_FORMATS)}")
        start_date, end_date = _as_utc(start_date), _as_utc(end_date)
        if start_date and end_date and start_date > end_date:
            raise ValidationError("start_date must not be after end_date")

        results = self.store.query(project_id, since=start_date, until=end_date)
        key_for = GROUP_BY_FORMATS[group_by]

        groups: dict[str, list[float]] = {}
        for result in results:
            groups.setdefault(key_for(result.timestamp.astimezone(timezone.utc)), []).append(result.score)

        grade_distribution = dict.fromkeys(GRADES, 0)
        for result in results:
            grade_distribution[result.grade] = grade_distribution.get(result.grade, 0) + 1

        per_project: dict[str, list[float]] = {}
        for result in results:
            per_project.setdefault(result.project_id, []).append(result.score)
        # First-to-last change within each project, averaged across projects
        rates = [
            (scores[-1] - scores[0]) / scores[0]
            for scores in per_project.values()
            if len(scores) >= 2 and scores[0] != 0
        ]
        improvement_rate = statistics.fmean(rates) if rates else 0.0

        top_areas: list[TopArea] = []
        weak_areas: list[ImprovementArea] = []
        if results:
            latest_scores = results[-1].benchmark.metric_scores
            top_areas = sorted(
                (
                    TopArea(metric=f"{category}.{metric}", value=score)
                    for category, scores in latest_scores.items()
                    for metric, score in scores.items()
                    if score >= TOP_AREA_THRESHOLD
                ),
                key=lambda a: a.value,
                reverse=True,
            )
            weak_areas = improvement_areas(latest_scores)

        return AnalyticsReport(
            project_id=project_id,
            group_by=group_by,
            total_benchmarks=len(results),
            average_score=statistics.fmean(r.score for r in results) if results else 0.0,
            grade_distribution=grade_distribution,
            improvement_rate=improvement_rate,
            benchmark_frequency={key: len(scores) for key, scores in groups.items()},
            group_averages={key: statistics.fmean(scores) for key, scores in groups.items()},
            top_performing_areas=top_areas,
            areas_for_improvement=weak_areas,
        )

    def get_leaderboard(
        self,
        category: str | None = None,
        metric: str | None = None,
        time_range: str = "30d",
        limit: int = DEFAULT_LEADERBOARD_LIMIT,
    ) -> Leaderboard:
        """Projects ranked by their average score inside a trailing window.

        Ranks by the blended score, a category score, or a single metric's
        normalized score. Each project appears once.
        """
        if category is not None and category not in CATEGORIES + EXTRA_CATEGORIES:
            raise ValidationError(f"Unknown category '{category}'")
        if limit < 1:
            raise ValidationError("limit must be at least 1")
        cutoff = self.now() - parse_time_range(time_range)
        canonical = self.registry.canonical_name(metric) if metric else None

        per_project: dict[str, list[float]] = {}
        latest_grade: dict[str, str] = {}
        for result in self.store.query(since=cutoff):
            if canonical:
                value = next(
                    (
                        scores[canonical]
                        for cat, scores in result.benchmark.metric_scores.items()
                        if (category is None or cat == category) and canonical in scores
                    ),
                    None,
                )
            elif category:
                value = result.benchmark.category_scores.get(category)
            else:
                value = result.score
            if value is None:
                continue
            per_project.setdefault(result.project_id, []).append(value)
            latest_grade[result.project_id] = result.grade

        averages = [(pid, statistics.fmean(values), len(values)) for pid, values in per_project.items()]
        averages.sort(key=lambda item: -item[1])

        entries = [
            LeaderboardEntry(
                rank=position + 1,
                project_id=pid,
                average_score=average,
                benchmark_count=count,
                latest_grade=latest_grade[pid],
            )
            for position, (pid, average, count) in enumerate(averages[:limit])
        ]
        return Leaderboard(category=category, metric=canonical, time_range=time_range, entries=entries)

    def get_standards(
        self,
        category: str | None = None,
        metric: str | None = None,
        industry: str | None = None,
    ) -> dict[str, dict[str, Threshold]]:
        return self.standards.get_standards(category, metric, industry)

    def add_standard(
        self,
        category: str,
        metric: str,
        thresholds: Threshold | Mapping[str, Any],
        industry: str | None = None,
    ) -> Threshold:
        """Admin extension of the threshold tables."""
        if industry:
            built = self.standards.add_industry_standard(industry, {category: {metric: thresholds}})
            threshold = next(iter(built[category].values()))
        else:
            threshold = self.standards.add_standard(category, metric, thresholds)
        logger.info("standard_added", category=category, metric=metric, industry=industry)
        return threshold

    def status(self) -> SystemStatus:
        return SystemStatus(
            is_running=self.is_running,
            total_benchmarks=self.store.count(),
            active_projects=len(self._active_projects),
            pending_benchmarks=self._pending,
            uptime_seconds=max((self.now() - self.started_at).total_seconds(), 0.0),
            started_at=self.started_at,
            auto_benchmarking=self.settings.auto_benchmarking,
            analytics_events=self.analytics.count(),
        )

    # ─── Background ticks ───────────────────────────────────────────────────

    async def auto_benchmark_tick(self) -> dict[str, int]:
        """Comprehensive run for every active project; one failure never stops the batch."""
        completed = failed = 0
        for project_id in list(self._active_projects):
            try:
                await self.run_benchmark(project_id, "comprehensive")
                completed += 1
            except Exception:
                failed += 1
                logger.exception("auto_benchmark_failed", project_id=project_id)
        logger.info("auto_benchmark_tick", completed=completed, failed=failed)
        return {"completed": completed, "failed": failed}

    async def cleanup_tick(self) -> dict[str, int]:
        """Purge expired analytics events (and old benchmarks when retention is set)."""
        now = self.now()
        cutoff = now - timedelta(days=self.settings.analytics_retention_days)
        purged_events = purged_benchmarks = 0

        for entry in self.analytics.snapshot():
            if entry.timestamp >= cutoff:
                continue
            try:
                if self.analytics.remove(entry.key):
                    purged_events += 1
            except Exception:
                logger.exception("analytics_cleanup_failed", key=entry.key)

        retention = self.settings.benchmark_retention_days
        if retention:
            expired = await asyncio.to_thread(self.store.query, until=now - timedelta(days=retention))
            for result in expired:
                try:
                    if await asyncio.to_thread(self.store.delete, result.id):
                        purged_benchmarks += 1
                except Exception:
                    logger.exception("benchmark_cleanup_failed", benchmark_id=result.id)

        logger.info("cleanup_tick", purged_events=purged_events, purged_benchmarks=purged_benchmarks)
        return {"purged_events": purged_events, "purged_benchmarks": purged_benchmarks}


def create_orchestrator(settings: Settings) -> BenchmarkOrchestrator:
    """Wire an orchestrator from settings.

    A configured project data URL replaces both in-memory providers with the
    HTTP client.
    """
    if settings.project_data_url:
        client = ProjectDataClient(
            settings.project_data_url,
            api_token=settings.project_data_token,
            timeout=settings.metrics_fetch_timeout_seconds,
        )
        return BenchmarkOrchestrator(settings, project_provider=client, metrics_provider=client)
    return BenchmarkOrchestrator(settings)
