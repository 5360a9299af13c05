"""API tests — every benchmark endpoint, its success envelope and its error envelope."""

from __future__ import annotations

import pytest

from tests.conftest import LoopRecordingStore


def _create(client, project_id, metrics, benchmark_type="performance", **extra):
    response = client.post("/api/benchmarks", json={
        "project_id": project_id,
        "benchmark_type": benchmark_type,
        "metrics": metrics,
        **extra,
    })
    assert response.status_code == 201, response.text
    return response.json()["benchmark"]


def _assert_error(response, status_code, error):
    assert response.status_code == status_code
    body = response.json()
    assert body["success"] is False
    assert body["error"] == error
    assert body["message"]


# ─── Test 1: Creating benchmarks ─────────────────────────────────────────────

class TestCreateBenchmark:
    """POST /api/benchmarks"""

    def test_create_returns_201_envelope(self, client, strong_performance):
        response = client.post("/api/benchmarks", json={
            "project_id": "proj-1",
            "benchmark_type": "performance",
            "metrics": strong_performance,
        })
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert "timestamp" in body
        benchmark = body["benchmark"]
        assert benchmark["project_id"] == "proj-1"
        assert benchmark["grade"] == "A+"
        assert benchmark["score"] == pytest.approx(0.95)
        assert benchmark["benchmark"]["category_scores"]["performance"] == pytest.approx(0.95)
        assert set(benchmark["forecast"]) == {"next_month", "next_quarter", "next_year"}

    def test_create_with_industry(self, client):
        benchmark = _create(client, "bank", {"response_time": 150}, industry="fintech")
        assert benchmark["benchmark"]["industry"] == "fintech"
        assert benchmark["benchmark"]["overall_score"] == 0.6

    def test_create_with_weights(self, client, strong_performance):
        benchmark = _create(
            client, "proj-1", strong_performance,
            weights={"response_time": 1, "throughput": 0, "cpu": 0, "memory": 0},
        )
        assert benchmark["benchmark"]["overall_score"] == 1.0

    def test_unknown_type_is_400(self, client):
        response = client.post("/api/benchmarks", json={"project_id": "proj-1", "benchmark_type": "usability"})
        _assert_error(response, 400, "Validation error")
        assert "usability" in response.json()["message"]

    def test_missing_fields_are_400(self, client):
        response = client.post("/api/benchmarks", json={"project_id": "proj-1"})
        _assert_error(response, 400, "Validation error")
        assert "benchmark_type" in response.json()["message"]

    def test_empty_project_id_is_400(self, client):
        response = client.post("/api/benchmarks", json={"project_id": "", "benchmark_type": "performance"})
        _assert_error(response, 400, "Validation error")

    def test_negative_weight_is_400(self, client, strong_performance):
        response = client.post("/api/benchmarks", json={
            "project_id": "proj-1",
            "benchmark_type": "performance",
            "metrics": strong_performance,
            "weights": {"throughput": -1},
        })
        _assert_error(response, 400, "Validation error")


# ─── Test 2: Listing benchmarks ──────────────────────────────────────────────

class TestListBenchmarks:
    """GET /api/benchmarks/{project_id}"""

    def test_latest_per_type(self, client, strong_performance, weak_performance):
        _create(client, "proj-1", weak_performance)
        latest = _create(client, "proj-1", strong_performance)
        _create(client, "proj-1", {"test_coverage": 90}, benchmark_type="quality")

        body = client.get("/api/benchmarks/proj-1").json()
        assert body["success"] is True
        assert body["project_id"] == "proj-1"
        assert body["count"] == 2
        performance = [b for b in body["benchmarks"] if b["benchmark_type"] == "performance"]
        assert [b["id"] for b in performance] == [latest["id"]]

    def test_history_and_filter(self, client, strong_performance, weak_performance):
        _create(client, "proj-1", weak_performance)
        _create(client, "proj-1", strong_performance)
        body = client.get(
            "/api/benchmarks/proj-1",
            params={"benchmark_type": "performance", "include_history": "true"},
        ).json()
        assert body["count"] == 2

    def test_unknown_project_is_empty(self, client):
        body = client.get("/api/benchmarks/nobody").json()
        assert body["count"] == 0
        assert body["benchmarks"] == []

    def test_bad_limit_is_400(self, client):
        _assert_error(client.get("/api/benchmarks/proj-1", params={"limit": 0}), 400, "Validation error")


# ─── Test 3: Comparison and trends ───────────────────────────────────────────

class TestCompareAndTrends:
    """POST /api/benchmarks/compare and /api/benchmarks/trends"""

    def test_compare(self, client, strong_performance, weak_performance):
        _create(client, "leader", strong_performance)
        _create(client, "laggard", weak_performance)
        response = client.post("/api/benchmarks/compare", json={
            "project_id": "leader",
            "benchmark_type": "performance",
            "comparison_targets": [
                {"type": "industry", "industry": "saas"},
                {"type": "project", "project_id": "laggard", "name": "Team B"},
            ],
        })
        assert response.status_code == 200
        comparison = response.json()["comparison"]
        assert comparison["rank"] == 1
        assert comparison["total"] == 3
        assert comparison["percentile"] == pytest.approx(100.0)
        assert [e["name"] for e in comparison["entries"]] == [
            "Project leader", "Saas Industry Average", "Team B",
        ]

    def test_compare_requires_targets(self, client):
        response = client.post("/api/benchmarks/compare", json={
            "project_id": "leader", "comparison_targets": [],
        })
        _assert_error(response, 400, "Validation error")

    def test_compare_rejects_peer_without_id(self, client):
        response = client.post("/api/benchmarks/compare", json={
            "project_id": "leader", "comparison_targets": [{"type": "project"}],
        })
        _assert_error(response, 400, "Validation error")

    def test_trends(self, client, average_performance, strong_performance):
        _create(client, "proj-1", average_performance)
        _create(client, "proj-1", strong_performance)
        response = client.post("/api/benchmarks/trends", json={
            "project_id": "proj-1", "time_range": "7d", "benchmark_type": "performance",
        })
        assert response.status_code == 200
        trends = response.json()["trends"]
        assert trends["trend"]["direction"] == "improving"
        assert trends["trend"]["data_points"] == 2
        assert trends["time_range"] == "7d"

    def test_trends_bad_range(self, client):
        response = client.post("/api/benchmarks/trends", json={"project_id": "proj-1", "time_range": "soon"})
        _assert_error(response, 400, "Validation error")
        assert "time_range" in response.json()["message"]


# ─── Test 4: Recommendations and plans ───────────────────────────────────────

class TestRecommendationsAndPlans:
    """GET /api/benchmarks/recommendations and POST /api/benchmarks/improvement-plan"""

    def test_recommendations(self, client, struggling_project_metrics):
        _create(client, "proj-1", struggling_project_metrics, benchmark_type="comprehensive")
        body = client.get("/api/benchmarks/recommendations", params={"project_id": "proj-1"}).json()
        assert body["success"] is True
        assert body["count"] == len(body["recommendations"]) > 0
        assert body["recommendations"][0]["priority"] == "critical"
        assert "critical_critical" in body["priority_matrix"]
        assert set(body["expected_outcomes"]) == {"short_term", "medium_term", "long_term"}

    def test_recommendations_filtered(self, client, struggling_project_metrics):
        _create(client, "proj-1", struggling_project_metrics, benchmark_type="comprehensive")
        body = client.get("/api/benchmarks/recommendations", params={"priority": "high"}).json()
        assert body["count"] > 0
        assert all(r["priority"] == "high" for r in body["recommendations"])

    def test_recommendations_bad_priority(self, client):
        response = client.get("/api/benchmarks/recommendations", params={"priority": "urgent"})
        _assert_error(response, 400, "Validation error")

    def test_improvement_plan(self, client, struggling_project_metrics):
        _create(client, "proj-1", struggling_project_metrics, benchmark_type="comprehensive")
        response = client.post("/api/benchmarks/improvement-plan", json={
            "project_id": "proj-1", "timeline": "6m", "focus_areas": ["security"],
        })
        assert response.status_code == 200
        plan = response.json()["plan"]
        assert plan["project_id"] == "proj-1"
        assert plan["timeline"] == "6m"
        assert len(plan["phases"]) == 4
        for phase in plan["phases"]:
            for rec in phase["recommendations"]:
                assert rec["category"] == "security" or "security" in rec["categories"]

    def test_improvement_plan_bad_timeline(self, client):
        response = client.post("/api/benchmarks/improvement-plan", json={
            "project_id": "proj-1", "timeline": "someday",
        })
        _assert_error(response, 400, "Validation error")


# ─── Test 5: Analytics and leaderboard ───────────────────────────────────────

class TestAnalyticsAndLeaderboard:
    """GET /api/benchmarks/analytics and /api/benchmarks/leaderboard"""

    def test_analytics(self, client, strong_performance, weak_performance):
        _create(client, "proj-1", weak_performance)
        _create(client, "proj-1", strong_performance)
        body = client.get("/api/benchmarks/analytics", params={"project_id": "proj-1", "group_by": "month"}).json()
        analytics = body["analytics"]
        assert analytics["total_benchmarks"] == 2
        assert analytics["grade_distribution"]["A+"] == 1
        assert analytics["grade_distribution"]["C"] == 1
        assert analytics["improvement_rate"] == pytest.approx((0.95 - 0.4) / 0.4)
        assert sum(analytics["benchmark_frequency"].values()) == 2

    def test_analytics_bad_group_by(self, client):
        response = client.get("/api/benchmarks/analytics", params={"group_by": "decade"})
        _assert_error(response, 400, "Validation error")

    def test_analytics_bad_date(self, client):
        response = client.get("/api/benchmarks/analytics", params={"start_date": "yesterday"})
        _assert_error(response, 400, "Validation error")

    def test_leaderboard(self, client, strong_performance, average_performance, weak_performance):
        _create(client, "slow", weak_performance)
        _create(client, "fast", strong_performance)
        _create(client, "steady", average_performance)
        body = client.get("/api/benchmarks/leaderboard").json()
        entries = body["leaderboard"]["entries"]
        assert [e["project_id"] for e in entries] == ["fast", "steady", "slow"]
        assert [e["rank"] for e in entries] == [1, 2, 3]

    def test_leaderboard_limit_bounds(self, client):
        _assert_error(client.get("/api/benchmarks/leaderboard", params={"limit": 0}), 400, "Validation error")
        _assert_error(client.get("/api/benchmarks/leaderboard", params={"limit": 101}), 400, "Validation error")

    def test_leaderboard_unknown_category(self, client):
        response = client.get("/api/benchmarks/leaderboard", params={"category": "marketing"})
        _assert_error(response, 400, "Validation error")

    def test_store_reads_run_off_the_event_loop(self, app, client, strong_performance):
        store = LoopRecordingStore()
        app.state.orchestrator.store = store
        _create(client, "proj-1", strong_performance)
        for path in ("/api/benchmarks/leaderboard", "/api/benchmarks/analytics", "/api/benchmarks/proj-1"):
            assert client.get(path).status_code == 200
        assert client.post("/api/benchmarks/trends", json={"project_id": "proj-1"}).status_code == 200
        assert [name for name, _ in store.calls].count("query") >= 5
        assert not any(on_loop for _, on_loop in store.calls)


# ─── Test 6: Industry standards ──────────────────────────────────────────────

class TestIndustryStandards:
    """GET and POST /api/benchmarks/industry-standards"""

    def test_get_all(self, client):
        body = client.get("/api/benchmarks/industry-standards").json()
        assert body["success"] is True
        assert {"performance", "quality", "security", "compliance"} <= set(body["standards"])

    def test_get_filtered_for_industry(self, client):
        body = client.get("/api/benchmarks/industry-standards", params={
            "category": "performance", "metric": "latency", "industry": "fintech",
        }).json()
        assert body["industry"] == "fintech"
        row = body["standards"]["performance"]["response_time"]
        assert row["good"] == 100
        assert row["lower_is_better"] is True

    def test_add_standard(self, client):
        response = client.post("/api/benchmarks/industry-standards", json={
            "category": "performance",
            "metric": "response_time",
            "industry": "gaming",
            "thresholds": {"excellent": 20, "good": 50, "average": 100, "poor": 200},
        })
        assert response.status_code == 201
        assert response.json()["threshold"]["good"] == 50

        body = client.get("/api/benchmarks/industry-standards", params={"industry": "gaming"}).json()
        assert body["standards"]["performance"]["response_time"]["excellent"] == 20

    def test_add_standard_bad_order(self, client):
        response = client.post("/api/benchmarks/industry-standards", json={
            "category": "performance",
            "metric": "response_time",
            "thresholds": {"excellent": 500, "good": 300, "average": 100, "poor": 50},
        })
        _assert_error(response, 400, "Validation error")


# ─── Test 7: Status and unknown routes ───────────────────────────────────────

class TestSystemAndRouting:
    """GET /api/system/status and the 404 envelope."""

    def test_system_status(self, client, strong_performance):
        _create(client, "proj-1", strong_performance)
        body = client.get("/api/system/status").json()
        assert body["success"] is True
        assert body["status"]["total_benchmarks"] == 1
        assert body["status"]["active_projects"] == 1
        assert body["status"]["is_running"] is True
        assert body["background_jobs"] == []

    def test_unknown_endpoint(self, client):
        response = client.get("/api/nothing-here")
        _assert_error(response, 404, "Endpoint not found")

    def test_unknown_nested_endpoint(self, client):
        response = client.post("/api/benchmarks/proj-1/rerun")
        _assert_error(response, 404, "Endpoint not found")
