"""Database models for the project benchmarking service."""

from projbench.models.base import Base
from projbench.models.benchmark import BenchmarkRecord

__all__ = [
    "Base",
    "BenchmarkRecord",
]
