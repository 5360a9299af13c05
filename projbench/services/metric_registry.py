"""Metric catalogue — category, direction, unit and default weight per metric."""

from __future__ import annotations

from dataclasses import dataclass, field


# Scored categories, in display order
CATEGORIES = ["performance", "quality", "security", "compliance"]

# Categories accepted only inside comprehensive runs (blend-only)
EXTRA_CATEGORIES = ["maintainability"]

# Metrics where lower is better (closed set)
LOWER_IS_BETTER = {
    "response_time",
    "p95_response_time",
    "p99_response_time",
    "cpu_utilization",
    "memory_utilization",
    "disk_utilization",
    "vulnerability_count",
    "critical_vulnerabilities",
    "defect_count",
    "technical_debt",
    "code_duplication",
    "cyclomatic_complexity",
}

# Default per-metric weights; anything unlisted weighs 1
DEFAULT_METRIC_WEIGHTS = {
    # Performance
    "response_time": 0.3,
    "p95_response_time": 0.2,
    "throughput": 0.2,
    "cpu_utilization": 0.15,
    "memory_utilization": 0.15,
    # Quality
    "code_quality": 0.3,
    "test_coverage": 0.25,
    "maintainability": 0.2,
    "technical_debt": 0.15,
    "documentation_coverage": 0.1,
    # Security
    "security_score": 0.4,
    "vulnerability_count": 0.2,
    "authentication_strength": 0.2,
    "data_encryption": 0.2,
    # Compliance
    "gdpr_compliance": 0.25,
    "iso27001_compliance": 0.25,
    "development_process": 0.25,
    "testing_process": 0.25,
}


@dataclass(frozen=True)
class MetricDefinition:
    """A known metric and how it should be read."""

    name: str
    category: str
    label: str
    unit: str = ""
    description: str = ""
    aliases: tuple[str, ...] = field(default_factory=tuple)

    @property
    def lower_is_better(self) -> bool:
        return self.name in LOWER_IS_BETTER

    @property
    def weight(self) -> float:
        return DEFAULT_METRIC_WEIGHTS.get(self.name, 1.0)


_DEFINITIONS = [
    # Performance
    MetricDefinition("response_time", "performance", "Response Time", "ms",
                     "Average response time in milliseconds",
                     ("average_response_time", "avg_response_time", "latency")),
    MetricDefinition("p95_response_time", "performance", "P95 Response Time", "ms",
                     "95th percentile response time", ("p95_latency",)),
    MetricDefinition("p99_response_time", "performance", "P99 Response Time", "ms",
                     "99th percentile response time", ("p99_latency",)),
    MetricDefinition("throughput", "performance", "Throughput", "RPS",
                     "Requests per second", ("rps", "requests_per_second")),
    MetricDefinition("concurrent_users", "performance", "Concurrent Users", "users",
                     "Peak concurrent users sustained"),
    MetricDefinition("cpu_utilization", "performance", "CPU Utilization", "%",
                     "CPU utilization percentage", ("cpu", "cpu_usage")),
    MetricDefinition("memory_utilization", "performance", "Memory Utilization", "%",
                     "Memory utilization percentage", ("memory", "memory_usage")),
    MetricDefinition("disk_utilization", "performance", "Disk Utilization", "%",
                     "Disk utilization percentage", ("disk", "disk_usage")),
    MetricDefinition("scalability_score", "performance", "Scalability", "score",
                     "Scalability assessment score"),
    # Quality
    MetricDefinition("code_quality", "quality", "Code Quality", "score",
                     "Overall code quality score", ("code_quality_score",)),
    MetricDefinition("test_coverage", "quality", "Test Coverage", "%",
                     "Percentage of code covered by tests", ("coverage",)),
    MetricDefinition("maintainability", "quality", "Maintainability", "index",
                     "Code maintainability index", ("maintainability_index",)),
    MetricDefinition("technical_debt", "quality", "Technical Debt", "ratio",
                     "Technical debt ratio", ("tech_debt",)),
    MetricDefinition("code_duplication", "quality", "Code Duplication", "%",
                     "Share of duplicated code", ("duplication",)),
    MetricDefinition("cyclomatic_complexity", "quality", "Cyclomatic Complexity", "score",
                     "Average cyclomatic complexity", ("complexity",)),
    MetricDefinition("defect_count", "quality", "Defect Count", "count",
                     "Open defects", ("defects", "bug_count")),
    MetricDefinition("documentation_coverage", "quality", "Documentation Coverage", "%",
                     "Share of public API that is documented", ("docs_coverage",)),
    # Security
    MetricDefinition("vulnerability_count", "security", "Vulnerability Count", "count",
                     "Number of security vulnerabilities", ("vulnerabilities",)),
    MetricDefinition("critical_vulnerabilities", "security", "Critical Vulnerabilities", "count",
                     "Number of critical vulnerabilities", ("critical_vulnerability_count",)),
    MetricDefinition("security_score", "security", "Security Score", "score",
                     "Overall security score"),
    MetricDefinition("authentication_strength", "security", "Authentication Strength", "score",
                     "Strength of authentication controls"),
    MetricDefinition("authorization_coverage", "security", "Authorization Coverage", "%",
                     "Share of endpoints behind authorization checks"),
    MetricDefinition("data_encryption", "security", "Data Encryption", "score",
                     "Coverage of encryption at rest and in transit"),
    # Compliance
    MetricDefinition("gdpr_compliance", "compliance", "GDPR Compliance", "%",
                     "GDPR compliance percentage", ("gdpr",)),
    MetricDefinition("hipaa_compliance", "compliance", "HIPAA Compliance", "%",
                     "HIPAA compliance percentage", ("hipaa",)),
    MetricDefinition("iso27001_compliance", "compliance", "ISO 27001 Compliance", "%",
                     "ISO 27001 compliance percentage", ("iso27001",)),
    MetricDefinition("soc2_compliance", "compliance", "SOC 2 Compliance", "%",
                     "SOC 2 compliance percentage", ("soc2",)),
    MetricDefinition("pci_compliance", "compliance", "PCI DSS Compliance", "%",
                     "PCI DSS compliance percentage", ("pci",)),
    MetricDefinition("development_process", "compliance", "Development Process", "score",
                     "Adherence to the development process"),
    MetricDefinition("testing_process", "compliance", "Testing Process", "score",
                     "Adherence to the testing process"),
    MetricDefinition("deployment_process", "compliance", "Deployment Process", "score",
                     "Adherence to the deployment process"),
]


class MetricRegistry:
    """Lookup table for metric definitions, keyed by canonical name and alias."""

    def __init__(self, definitions: list[MetricDefinition] | None = None) -> None:
        self._definitions: dict[str, MetricDefinition] = {}
        self._aliases: dict[str, str] = {}
        for definition in definitions if definitions is not None else _DEFINITIONS:
            self.register(definition)

    def register(self, definition: MetricDefinition) -> None:
        """Add or replace a metric definition."""
        self._definitions[definition.name] = definition
        for alias in definition.aliases:
            self._aliases[alias] = definition.name

    def canonical_name(self, metric: str) -> str:
        """Resolve an alias to its canonical metric name (unknown names pass through)."""
        key = metric.strip().lower()
        return self._aliases.get(key, key)

    def get(self, metric: str) -> MetricDefinition | None:
        return self._definitions.get(self.canonical_name(metric))

    def category_of(self, metric: str) -> str | None:
        definition = self.get(metric)
        return definition.category if definition else None

    def is_lower_better(self, metric: str) -> bool:
        return self.canonical_name(metric) in LOWER_IS_BETTER

    def weight_of(self, metric: str) -> float:
        return DEFAULT_METRIC_WEIGHTS.get(self.canonical_name(metric), 1.0)

    def unit_of(self, metric: str) -> str:
        definition = self.get(metric)
        return definition.unit if definition else ""

    def label_of(self, metric: str) -> str:
        definition = self.get(metric)
        return definition.label if definition else metric.replace("_", " ")

    def metrics_for(self, category: str) -> list[str]:
        return [d.name for d in self._definitions.values() if d.category == category]


# Shared default catalogue
metric_registry = MetricRegistry()
