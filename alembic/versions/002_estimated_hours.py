"""Estimated bench hours per job and booked hours per technician.

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column(
        "jobs",
        sa.Column("estimated_hours", sa.Float, nullable=False, server_default="2.0"),
    )
    op.add_column(
        "technicians",
        sa.Column("job_hours", JSONB, nullable=False, server_default="{}"),
    )


def downgrade() -> None:
    op.drop_column("technicians", "job_hours")
    op.drop_column("jobs", "estimated_hours")
