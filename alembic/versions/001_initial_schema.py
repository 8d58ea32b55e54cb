"""Initial schema — jobs and technicians.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import ARRAY, JSONB

from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Jobs
    op.create_table(
        "jobs",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("state", sa.String(32), nullable=False),
        sa.Column("priority", sa.String(16), nullable=False),
        sa.Column("customer_tier", sa.String(16), nullable=False),
        sa.Column("required_skills", ARRAY(sa.String(64)), nullable=False, server_default="{}"),
        sa.Column("latitude", sa.Float, nullable=False),
        sa.Column("longitude", sa.Float, nullable=False),
        sa.Column("address", sa.Text, nullable=False, server_default=""),
        sa.Column("sla_response_deadline", sa.DateTime(timezone=True), nullable=False),
        sa.Column("sla_completion_deadline", sa.DateTime(timezone=True), nullable=False),
        sa.Column("state_entered_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("assigned_technician_id", sa.String(64), nullable=True),
        sa.Column("rework_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("history", JSONB, nullable=False, server_default="[]"),
        sa.Column("parts", JSONB, nullable=False, server_default="[]"),
        sa.Column("reassignments", JSONB, nullable=False, server_default="[]"),
        sa.Column("escalations", JSONB, nullable=False, server_default="[]"),
        sa.Column(
            "escalation_levels_fired", ARRAY(sa.Integer), nullable=False, server_default="{}"
        ),
        sa.Column("archived", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    )
    op.create_index("idx_jobs_state", "jobs", ["state"])
    op.create_index("idx_jobs_technician", "jobs", ["assigned_technician_id"])

    # Technicians
    op.create_table(
        "technicians",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("skills", ARRAY(sa.String(64)), nullable=False, server_default="{}"),
        sa.Column("latitude", sa.Float, nullable=True),
        sa.Column("longitude", sa.Float, nullable=True),
        sa.Column("active_job_ids", ARRAY(sa.String(64)), nullable=False, server_default="{}"),
        sa.Column("performance_score", sa.Float, nullable=False, server_default="0"),
        sa.Column("committed_hours", sa.Float, nullable=False, server_default="0"),
        sa.Column("availability_windows", JSONB, nullable=False, server_default="[]"),
    )


def downgrade() -> None:
    op.drop_table("technicians")
    op.drop_index("idx_jobs_technician", table_name="jobs")
    op.drop_index("idx_jobs_state", table_name="jobs")
    op.drop_table("jobs")
