"""Initial schema — benchmark records.

Revision ID: 001
Revises: None
Create Date: 2026-10-16
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Benchmark records (append-only run results)
    op.create_table(
        "benchmark_records",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("project_id", sa.String(255), nullable=False),
        sa.Column("benchmark_type", sa.String(20), nullable=False),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("score", sa.Float, server_default="0"),
        sa.Column("overall_score", sa.Float, server_default="0"),
        sa.Column("grade", sa.String(2), nullable=False),
        sa.Column("payload", sa.JSON, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_benchmark_records_project_id", "benchmark_records", ["project_id"])
    op.create_index(
        "ix_benchmark_records_project_type_time",
        "benchmark_records",
        ["project_id", "benchmark_type", "recorded_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_benchmark_records_project_type_time", table_name="benchmark_records")
    op.drop_index("ix_benchmark_records_project_id", table_name="benchmark_records")
    op.drop_table("benchmark_records")
