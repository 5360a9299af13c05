"""Benchmark API endpoints — runs, comparisons, trends, plans and analytics."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Query, Request
from starlette.concurrency import run_in_threadpool

from projbench.schemas.api import (
    AddStandardRequest,
    CompareRequest,
    CreateBenchmarkRequest,
    ImprovementPlanRequest,
    TrendRequest,
)
from projbench.services.orchestrator import BenchmarkOrchestrator
from projbench.services.recommendation_planner import RecommendationPlanner

router = APIRouter(prefix="/benchmarks", tags=["benchmarks"])


def _orchestrator(request: Request) -> BenchmarkOrchestrator:
    return request.app.state.orchestrator


def _envelope(**payload: Any) -> dict[str, Any]:
    """Success body: ``{success: true, <payload>, timestamp}``."""
    return {"success": True, **payload, "timestamp": datetime.now(timezone.utc).isoformat()}


def _dump(model) -> Any:
    return model.model_dump(mode="json")


@router.post("", status_code=201)
async def create_benchmark(body: CreateBenchmarkRequest, request: Request) -> dict[str, Any]:
    """Run a benchmark and return the stored result."""
    result = await _orchestrator(request).run_benchmark(
        body.project_id,
        body.benchmark_type,
        metrics=body.metrics,
        industry=body.industry,
        weights=body.weights,
    )
    return _envelope(benchmark=_dump(result))


@router.get("/industry-standards")
async def get_industry_standards(
    request: Request,
    category: str | None = None,
    metric: str | None = None,
    industry: str | None = None,
) -> dict[str, Any]:
    standards = _orchestrator(request).get_standards(category, metric, industry)
    return _envelope(
        standards={cat: {name: _dump(t) for name, t in rows.items()} for cat, rows in standards.items()},
        industry=industry,
    )


@router.post("/industry-standards", status_code=201)
async def add_industry_standard(body: AddStandardRequest, request: Request) -> dict[str, Any]:
    """Admin: add or replace a threshold row."""
    threshold = _orchestrator(request).add_standard(body.category, body.metric, body.thresholds, body.industry)
    return _envelope(
        category=body.category,
        metric=body.metric,
        industry=body.industry,
        threshold=_dump(threshold),
    )


@router.post("/compare")
async def compare_benchmarks(body: CompareRequest, request: Request) -> dict[str, Any]:
    report = await _orchestrator(request).compare_benchmarks(
        body.project_id,
        body.comparison_targets,
        benchmark_type=body.benchmark_type,
    )
    return _envelope(comparison=_dump(report))


@router.post("/trends")
async def analyze_trends(body: TrendRequest, request: Request) -> dict[str, Any]:
    report = await run_in_threadpool(
        _orchestrator(request).analyze_trends,
        body.project_id,
        time_range=body.time_range,
        benchmark_type=body.benchmark_type,
    )
    return _envelope(trends=_dump(report))


@router.get("/recommendations")
async def get_recommendations(
    request: Request,
    project_id: str | None = None,
    category: str | None = None,
    priority: str | None = None,
) -> dict[str, Any]:
    recommendations = _orchestrator(request).get_recommendations(project_id, category, priority)
    return _envelope(
        recommendations=[_dump(r) for r in recommendations],
        priority_matrix=RecommendationPlanner.priority_matrix(recommendations),
        expected_outcomes=_dump(RecommendationPlanner.expected_outcomes(recommendations)),
        count=len(recommendations),
    )


@router.post("/improvement-plan")
async def generate_improvement_plan(body: ImprovementPlanRequest, request: Request) -> dict[str, Any]:
    plan = await _orchestrator(request).generate_improvement_plan(
        body.project_id,
        focus_areas=body.focus_areas,
        timeline=body.timeline,
    )
    return _envelope(plan=_dump(plan))


@router.get("/analytics")
async def get_analytics(
    request: Request,
    project_id: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    group_by: str = "day",
) -> dict[str, Any]:
    report = await run_in_threadpool(
        _orchestrator(request).get_benchmark_analytics, project_id, start_date, end_date, group_by,
    )
    return _envelope(analytics=_dump(report))


@router.get("/leaderboard")
async def get_leaderboard(
    request: Request,
    category: str | None = None,
    metric: str | None = None,
    time_range: str = "30d",
    limit: int = Query(default=10, ge=1, le=100),
) -> dict[str, Any]:
    leaderboard = await run_in_threadpool(_orchestrator(request).get_leaderboard, category, metric, time_range, limit)
    return _envelope(leaderboard=_dump(leaderboard))


# Declared last so the fixed paths above take precedence
@router.get("/{project_id}")
async def get_benchmarks(
    project_id: str,
    request: Request,
    benchmark_type: str | None = None,
    include_history: bool = False,
    limit: int = Query(default=50, ge=1, le=500),
) -> dict[str, Any]:
    results = await run_in_threadpool(
        _orchestrator(request).get_benchmarks, project_id, benchmark_type, include_history, limit,
    )
    return _envelope(project_id=project_id, benchmarks=[_dump(r) for r in results], count=len(results))
