"""Service exceptions and their HTTP status mapping."""

from __future__ import annotations


class BenchmarkServiceError(Exception):
    """Base class for errors surfaced through the query API."""

    status_code = 500
    error = "Internal server error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(BenchmarkServiceError):
    """Raised when a request is rejected before any computation."""

    status_code = 400
    error = "Validation error"


class NotFoundError(BenchmarkServiceError):
    """Raised when a requested project or record does not exist."""

    status_code = 404
    error = "Not found"


class BenchmarkComputationError(BenchmarkServiceError):
    """Raised when a scoring stage fails."""

    status_code = 500
    error = "Benchmark computation failed"


class MetricsProviderError(BenchmarkServiceError):
    """Raised when the project data service returns an error."""

    status_code = 502
    error = "Metrics provider error"


class MetricsFetchTimeout(BenchmarkServiceError):
    """Raised when fetching project data exceeds the configured timeout."""

    status_code = 504
    error = "Metrics provider timeout"
