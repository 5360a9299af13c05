"""Score helpers shared by the engine, standards registry and orchestrator."""

from __future__ import annotations


# Inclusive lower bounds, highest first
GRADE_LADDER = [
    (0.9, "A+"),
    (0.8, "A"),
    (0.7, "B+"),
    (0.6, "B"),
    (0.5, "C+"),
    (0.4, "C"),
    (0.3, "D"),
]

GRADES = [grade for _, grade in GRADE_LADDER] + ["F"]

# Scores are rounded before grading so 0.7 computed as 0.69999999 still grades B+
SCORE_PRECISION = 10


def clamp01(value: float) -> float:
    """Clamp a value to the closed interval [0, 1]."""
    return max(0.0, min(1.0, value))


def grade_for(score: float) -> str:
    """Map a score in [0, 1] to its letter grade."""
    rounded = round(score, SCORE_PRECISION)
    for lower_bound, grade in GRADE_LADDER:
        if rounded >= lower_bound:
            return grade
    return "F"


def level_for(score: float) -> str:
    """Qualitative level for a category score."""
    if score >= 0.9:
        return "excellent"
    if score >= 0.7:
        return "good"
    if score >= 0.5:
        return "average"
    return "poor"


def assessment_for(score: float) -> str:
    """One-line verdict for an overall score."""
    if score >= 0.9:
        return "Excellent - Industry leading performance"
    if score >= 0.8:
        return "Good - Above industry average"
    if score >= 0.7:
        return "Average - Meets industry standards"
    if score >= 0.6:
        return "Below Average - Needs improvement"
    return "Poor - Significant improvement required"
