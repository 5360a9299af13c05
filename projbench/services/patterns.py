"""Cross-category pattern checks shared by analysis and recommendations."""

from __future__ import annotations

from dataclasses import dataclass, field


SYSTEMIC_THRESHOLD = 0.6
SYSTEMIC_MIN_CATEGORIES = 2
SECURITY_THRESHOLD = 0.7
SECURITY_CATEGORIES = ("security", "compliance")


@dataclass
class Pattern:
    """A weakness spanning more than one category."""

    kind: str
    priority: str
    impact: str
    title: str
    description: str
    categories: list[str]
    actions: list[str] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)
    resources: list[str] = field(default_factory=list)
    risks: list[str] = field(default_factory=list)
    benefits: list[str] = field(default_factory=list)


def detect_cross_category_patterns(category_scores: dict[str, float]) -> list[Pattern]:
    """Return the systemic and security/compliance patterns present in a score map."""
    patterns: list[Pattern] = []

    low = [category for category, score in category_scores.items() if score < SYSTEMIC_THRESHOLD]
    if len(low) >= SYSTEMIC_MIN_CATEGORIES:
        patterns.append(Pattern(
            kind="systemic",
            priority="high",
            impact="high",
            title="Address systemic performance issues",
            description=f"Multiple categories ({', '.join(low)}) are underperforming",
            categories=low,
            actions=["Conduct root cause analysis", "Implement process improvements", "Provide team training"],
            resources=["Project Manager", "Technical Lead", "Training Budget"],
            risks=["Project delays", "Team burnout", "Quality issues"],
            benefits=["Improved overall performance", "Better team morale", "Reduced technical debt"],
        ))

    gaps = [
        category for category in SECURITY_CATEGORIES
        if category in category_scores and category_scores[category] < SECURITY_THRESHOLD
    ]
    if gaps:
        patterns.append(Pattern(
            kind="security_compliance",
            priority="critical",
            impact="critical",
            title="Address security and compliance gaps",
            description=f"Critical security/compliance issues in {', '.join(gaps)}",
            categories=gaps,
            actions=["Conduct security audit", "Update policies", "Implement security controls"],
            dependencies=["Security team", "Legal team"],
            resources=["Security Expert", "Compliance Officer", "Legal Counsel"],
            risks=["Security breaches", "Regulatory fines", "Reputation damage"],
            benefits=["Reduced security risks", "Regulatory compliance", "Customer trust"],
        ))

    return patterns


def flagged_categories(category_scores: dict[str, float]) -> set[str]:
    """Categories named by any cross-category pattern."""
    return {
        category
        for pattern in detect_cross_category_patterns(category_scores)
        for category in pattern.categories
    }
