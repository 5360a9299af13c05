"""Project metadata and raw-metrics providers."""

from __future__ import annotations

from typing import Any, Protocol

import httpx
import pydantic
import structlog

from projbench.errors import MetricsProviderError, NotFoundError
from projbench.schemas.benchmark import MetricValue, ProjectContext

logger = structlog.get_logger()


def readings_to_metrics(readings: list[Any]) -> dict[str, dict[str, float]]:
    """Group ``[{category, metric, value, unit}]`` readings into category blocks.

    Readings that fail validation are dropped and logged, never coerced.
    """
    metrics: dict[str, dict[str, float]] = {}
    for raw in readings:
        try:
            reading = MetricValue.model_validate(raw)
        except pydantic.ValidationError as exc:
            logger.warning("metric_reading_dropped", reading=raw, error=exc.errors()[0]["msg"])
            continue
        metrics.setdefault(reading.category.lower(), {})[reading.metric] = reading.value
    return metrics


class ProjectMetadataProvider(Protocol):
    async def get_project(self, project_id: str) -> ProjectContext: ...


class MetricsProvider(Protocol):
    async def get_metrics(self, project_id: str, benchmark_type: str) -> dict[str, Any]: ...


class InMemoryProjectProvider:
    """Project registry used during development and testing.

    Unknown projects get a generated context rather than an error, so ad hoc
    benchmarks can be run without registering the project first.
    """

    def __init__(self, projects: dict[str, ProjectContext] | None = None) -> None:
        self.projects: dict[str, ProjectContext] = dict(projects or {})

    def add_project(self, project: ProjectContext) -> None:
        self.projects[project.id] = project

    async def get_project(self, project_id: str) -> ProjectContext:
        project = self.projects.get(project_id)
        if project is None:
            return ProjectContext(id=project_id, name=f"Project {project_id}")
        return project


class InMemoryMetricsProvider:
    """Static raw metrics per project, nested by category."""

    def __init__(self, metrics: dict[str, dict[str, Any]] | None = None) -> None:
        self.metrics: dict[str, dict[str, Any]] = dict(metrics or {})

    def set_metrics(self, project_id: str, metrics: dict[str, Any]) -> None:
        self.metrics[project_id] = metrics

    async def get_metrics(self, project_id: str, benchmark_type: str) -> dict[str, Any]:
        metrics = self.metrics.get(project_id, {})
        if benchmark_type == "comprehensive":
            return dict(metrics)
        return {k: v for k, v in metrics.items() if k == benchmark_type or not isinstance(v, dict)}


class ProjectDataClient:
    """HTTP client for a remote project data service.

    Serves both provider contracts: ``GET /projects/{id}`` for metadata and
    ``GET /projects/{id}/metrics?type=...`` for raw numbers.
    """

    def __init__(
        self,
        base_url: str,
        api_token: str = "",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_token = api_token
        self.timeout = timeout
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._headers(),
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _get(self, path: str, params: dict[str, str] | None = None) -> dict[str, Any]:
        try:
            async with self._client() as client:
                response = await client.get(path, params=params)
        except httpx.HTTPError as exc:
            logger.error("project_data_request_failed", path=path, error=str(exc))
            raise MetricsProviderError(f"Project data service unreachable: {exc}") from exc

        if response.status_code == 404:
            raise NotFoundError(f"Project data not found at {path}")
        if response.status_code != 200:
            logger.error("project_data_error_response", path=path, status_code=response.status_code)
            raise MetricsProviderError(
                f"Project data service returned {response.status_code}: {response.text[:200]}"
            )
        body = response.json()
        return body.get("data", body) if isinstance(body, dict) else {}

    async def get_project(self, project_id: str) -> ProjectContext:
        data = await self._get(f"/projects/{project_id}")
        data.setdefault("id", project_id)
        data.setdefault("name", f"Project {project_id}")
        return ProjectContext.model_validate(data)

    async def get_metrics(self, project_id: str, benchmark_type: str) -> dict[str, Any]:
        data = await self._get(f"/projects/{project_id}/metrics", params={"type": benchmark_type})
        metrics = data.get("metrics", data)
        if isinstance(metrics, list):
            return readings_to_metrics(metrics)
        return metrics

    async def test_connection(self) -> bool:
        """Check that the service answers its health endpoint."""
        try:
            async with self._client() as client:
                response = await client.get("/health")
            return response.status_code == 200
        except httpx.HTTPError:
            return False
