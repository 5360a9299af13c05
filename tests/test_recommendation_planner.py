"""Tests for recommendation rules, ranking and improvement plans."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from projbench.errors import ValidationError
from projbench.schemas.recommendation import Recommendation
from projbench.services.benchmark_engine import BenchmarkEngine
from projbench.services.recommendation_planner import (
    PRIORITY_ORDER,
    RecommendationPlanner,
    estimate_effort,
    rank_recommendations,
)
from projbench.services.trend_analyzer import analyze_scores

NOW = datetime(2026, 4, 1, tzinfo=timezone.utc)


def _rec(title, category="performance", priority="medium", impact="medium", effort="medium", **extra):
    return Recommendation(
        id=f"rec_{title}",
        project_id="proj-1",
        category=category,
        type="improvement",
        priority=priority,
        impact=impact,
        title=title,
        description=f"{title} description",
        effort=effort,
        timeline=extra.pop("timeline", "1-2 months"),
        **extra,
    )


# ─── Test 1: Effort and ranking ──────────────────────────────────────────────

class TestEffortAndRanking:
    """Effort buckets and stable ranking."""

    @pytest.mark.parametrize("current,target,effort,timeline", [
        (0.75, 0.8, "low", "1-2 weeks"),
        (0.7, 0.8, "low", "1-2 weeks"),
        (0.65, 0.8, "medium", "1-2 months"),
        (0.4, 0.7, "high", "3-6 months"),
        (0.1, 0.7, "very_high", "6+ months"),
    ])
    def test_effort_buckets(self, current, target, effort, timeline):
        assert estimate_effort(current, target) == (effort, timeline)

    def test_rank_by_priority_then_impact(self):
        ranked = rank_recommendations([
            _rec("a", priority="medium", impact="medium"),
            _rec("b", priority="critical", impact="high"),
            _rec("c", priority="high", impact="medium"),
            _rec("d", priority="critical", impact="critical"),
        ])
        assert [r.title for r in ranked] == ["d", "b", "c", "a"]

    def test_rank_is_stable(self):
        ranked = rank_recommendations([_rec("first"), _rec("second"), _rec("third")])
        assert [r.title for r in ranked] == ["first", "second", "third"]


# ─── Test 2: Rules ───────────────────────────────────────────────────────────

class TestRules:
    """Category, metric, pattern, trend and comparison rules."""

    def test_critical_category(self, weak_performance):
        benchmark = BenchmarkEngine().run_benchmark("proj-1", "performance", weak_performance)
        recs = RecommendationPlanner().category_recommendations(benchmark)
        assert len(recs) == 1
        rec = recs[0]
        assert rec.type == "critical_improvement"
        assert rec.priority == "critical"
        assert rec.target_value == 0.7
        assert rec.effort == "high"
        assert rec.title.startswith("Critical: Improve performance")
        assert "Optimize database queries" in rec.actions

    def test_improvement_category(self, average_performance):
        benchmark = BenchmarkEngine().run_benchmark("proj-1", "performance", average_performance)
        rec = RecommendationPlanner().category_recommendations(benchmark)[0]
        assert rec.type == "improvement"
        assert rec.priority == "high"
        assert rec.target_value == 0.8
        assert rec.timeline == "1-2 months"

    def test_excellent_category_has_no_item(self):
        benchmark = BenchmarkEngine().run_benchmark("proj-1", "performance", {"response_time": 50})
        assert RecommendationPlanner().category_recommendations(benchmark) == []

    def test_weak_metric_in_acceptable_category(self):
        engine = BenchmarkEngine()
        benchmark = engine.run_benchmark("proj-1", "performance", {
            "response_time": 80, "throughput": 10, "cpu_utilization": 0.6, "memory_utilization": 0.6,
        })
        comparison = engine.standards.compare_benchmark(benchmark)
        recs = RecommendationPlanner().metric_recommendations(benchmark, comparison)
        assert [r.metric for r in recs] == ["throughput"]
        assert recs[0].target_value == 0.8
        assert "measured 10RPS, good is 500RPS" in recs[0].description

    def test_weak_category_skips_metric_items(self, weak_performance):
        benchmark = BenchmarkEngine().run_benchmark("proj-1", "performance", weak_performance)
        assert RecommendationPlanner().metric_recommendations(benchmark) == []

    def test_security_pattern_is_critical(self, struggling_project_metrics):
        benchmark = BenchmarkEngine().run_benchmark("proj-1", "comprehensive", struggling_project_metrics)
        recs = RecommendationPlanner().pattern_recommendations(benchmark)
        kinds = {r.title: r for r in recs}
        security = kinds["Address security and compliance gaps"]
        assert security.priority == "critical"
        assert security.impact == "critical"
        assert security.category in ("security", "compliance")
        assert "Address systemic performance issues" in kinds

    def test_category_item_lists_measured_metrics_only(self):
        benchmark = BenchmarkEngine().run_benchmark("proj-1", "performance", {"response_time": 400})
        rec = RecommendationPlanner().category_recommendations(benchmark)[0]
        assert rec.metrics == ["response_time"]

    def test_every_item_references_measured_metrics(self, struggling_project_metrics):
        engine = BenchmarkEngine()
        benchmark = engine.run_benchmark("proj-1", "comprehensive", struggling_project_metrics)
        recs = RecommendationPlanner().generate(
            benchmark, engine.standards.compare_benchmark(benchmark), analyze_scores([0.6, 0.45]),
        )
        measured = {metric for values in benchmark.metrics.values() for metric in values}
        assert {r.type for r in recs} >= {"critical_improvement", "pattern_based", "trend_reversal"}
        for rec in recs:
            assert rec.metrics
            assert set(rec.metrics) <= measured
            assert rec.category in benchmark.category_scores

    def test_declining_trend_yields_one_high_reversal(self, average_performance):
        benchmark = BenchmarkEngine().run_benchmark("proj-1", "performance", average_performance)
        recs = RecommendationPlanner().trend_recommendations(benchmark, analyze_scores([0.6, 0.45]))
        assert len(recs) == 1
        assert recs[0].type == "trend_reversal"
        assert recs[0].priority == "high"
        assert recs[0].category == "performance"

    def test_improving_trend_yields_nothing(self, average_performance):
        benchmark = BenchmarkEngine().run_benchmark("proj-1", "performance", average_performance)
        planner = RecommendationPlanner()
        assert planner.trend_recommendations(benchmark, analyze_scores([0.5, 0.6, 0.7, 0.8])) == []
        assert planner.trend_recommendations(benchmark, None) == []

    def test_comparison_gap(self, average_performance):
        benchmark = BenchmarkEngine().run_benchmark("proj-1", "performance", average_performance)
        recs = RecommendationPlanner().comparison_recommendations(
            benchmark, 0.5, [("Leader", 0.7), ("Close peer", 0.55)],
        )
        assert len(recs) == 1
        assert recs[0].title == "Improve performance vs Leader"
        assert recs[0].target_value == pytest.approx(0.8)

    def test_generate_is_ranked(self, struggling_project_metrics):
        engine = BenchmarkEngine()
        benchmark = engine.run_benchmark("proj-1", "comprehensive", struggling_project_metrics)
        recs = RecommendationPlanner().generate(
            benchmark, engine.standards.compare_benchmark(benchmark), analyze_scores([0.6, 0.45]),
        )
        priorities = [PRIORITY_ORDER[r.priority] for r in recs]
        assert priorities == sorted(priorities, reverse=True)
        assert recs[0].priority == "critical"
        assert sum(1 for r in recs if r.type == "trend_reversal") == 1
        categories = set(benchmark.category_scores)
        assert all(r.category in categories for r in recs)


# ─── Test 3: Summaries ───────────────────────────────────────────────────────

class TestSummaries:
    """Priority matrix and expected outcomes."""

    def test_priority_matrix(self):
        recs = [_rec("a", priority="critical", impact="critical"), _rec("b", priority="high", impact="high")]
        matrix = RecommendationPlanner.priority_matrix(recs)
        assert matrix["critical_critical"] == ["rec_a"]
        assert matrix["high_high"] == ["rec_b"]
        assert matrix["low_low"] == []

    def test_expected_outcomes(self):
        recs = [
            _rec("quick", timeline="1-2 weeks", current_value=0.7, target_value=0.8),
            _rec("mid", timeline="1-2 months", current_value=0.6, target_value=0.8),
            _rec("long", timeline="3-6 months", current_value=0.4, target_value=0.7),
        ]
        outcomes = RecommendationPlanner.expected_outcomes(recs)
        assert outcomes.short_term.score == pytest.approx(0.03)
        assert outcomes.medium_term.score == pytest.approx(0.1)
        assert outcomes.long_term.score == pytest.approx(0.06)
        assert outcomes.short_term.improvements == ["quick"]


# ─── Test 4: Improvement plan ────────────────────────────────────────────────

class TestImprovementPlan:
    """Phase slicing, schedule and resources."""

    def _recs(self, count):
        return [_rec(f"item-{i}", effort="high" if i % 2 else "low") for i in range(count)]

    def test_three_month_plan(self):
        plan = RecommendationPlanner().build_improvement_plan(
            "proj-1", self._recs(7), timeline="3m", current_score=0.55, now=NOW,
        )
        assert len(plan.phases) == 3
        assert [len(p.recommendations) for p in plan.phases] == [3, 3, 1]
        assert all(p.duration_weeks == 3 for p in plan.phases)
        assert plan.target_score == pytest.approx(0.75)
        assert plan.schedule[1].start_date == NOW + timedelta(weeks=3)
        assert plan.milestones[-1].target_date == NOW + timedelta(weeks=9)

    def test_order_preserved_across_phases(self):
        recs = self._recs(5)
        plan = RecommendationPlanner().build_improvement_plan("proj-1", recs, timeline="3m", now=NOW)
        flattened = [r.title for p in plan.phases for r in p.recommendations]
        assert flattened == [r.title for r in recs]

    def test_one_month_plan(self):
        plan = RecommendationPlanner().build_improvement_plan("proj-1", self._recs(3), timeline="1m", now=NOW)
        assert len(plan.phases) == 2
        assert plan.phases[0].duration_weeks == 2

    def test_long_plan(self):
        plan = RecommendationPlanner().build_improvement_plan("proj-1", self._recs(8), timeline="6m", now=NOW)
        assert len(plan.phases) == 4
        assert plan.phases[0].duration_weeks == 6

    def test_resources_in_hours(self):
        plan = RecommendationPlanner().build_improvement_plan("proj-1", self._recs(4), now=NOW)
        # two low (8h) + two high (32h)
        assert plan.resources == {"performance": 80, "total": 80}

    def test_target_capped(self):
        plan = RecommendationPlanner().build_improvement_plan("proj-1", [], current_score=0.9, now=NOW)
        assert plan.target_score == 1.0
        assert all(p.recommendations == [] for p in plan.phases)

    def test_focus_areas_filter(self):
        recs = [_rec("perf"), _rec("sec", category="security")]
        plan = RecommendationPlanner().build_improvement_plan(
            "proj-1", recs, focus_areas=["security"], now=NOW,
        )
        titles = [r.title for p in plan.phases for r in p.recommendations]
        assert titles == ["sec"]
        assert plan.focus_areas == ["security"]

    @pytest.mark.parametrize("timeline", ["", "soon", "3", "m3", "3 months"])
    def test_invalid_timeline(self, timeline):
        with pytest.raises(ValidationError, match="timeline"):
            RecommendationPlanner().build_improvement_plan("proj-1", [], timeline=timeline)

    def test_success_metrics(self):
        recs = [_rec("a", metric="throughput", current_value=0.4, target_value=0.8), _rec("b", category="quality")]
        plan = RecommendationPlanner().build_improvement_plan("proj-1", recs, now=NOW)
        assert [m.metric for m in plan.success_metrics] == ["throughput", "quality_score"]

    def test_generate_without_comparison(self):
        """Standards detail is optional; the planner works from the benchmark alone."""
        engine = BenchmarkEngine()
        benchmark = engine.run_benchmark("proj-1", "performance", {"response_time": 600})
        assert RecommendationPlanner().generate(benchmark)
