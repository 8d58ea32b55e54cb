"""SQLAlchemy ORM models — maps to PostgreSQL tables."""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB
from sqlalchemy.orm import Mapped, mapped_column

from repair_lifecycle.adapters.persistence.database import Base


class JobModel(Base):
    __tablename__ = "jobs"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    state: Mapped[str] = mapped_column(String(32), nullable=False)
    priority: Mapped[str] = mapped_column(String(16), nullable=False)
    customer_tier: Mapped[str] = mapped_column(String(16), nullable=False)
    required_skills: Mapped[list[str]] = mapped_column(
        ARRAY(String(64)), nullable=False, default=list
    )
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    address: Mapped[str] = mapped_column(Text, nullable=False, default="")
    sla_response_deadline: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    sla_completion_deadline: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    state_entered_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    assigned_technician_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    rework_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    history: Mapped[list[dict]] = mapped_column(JSONB, nullable=False, default=list)
    parts: Mapped[list[dict]] = mapped_column(JSONB, nullable=False, default=list)
    reassignments: Mapped[list[dict]] = mapped_column(JSONB, nullable=False, default=list)
    escalations: Mapped[list[dict]] = mapped_column(JSONB, nullable=False, default=list)
    escalation_levels_fired: Mapped[list[int]] = mapped_column(
        ARRAY(Integer), nullable=False, default=list
    )
    archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    estimated_hours: Mapped[float] = mapped_column(Float, nullable=False, default=2.0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_jobs_state", "state"),
        Index("idx_jobs_technician", "assigned_technician_id"),
    )


class TechnicianModel(Base):
    __tablename__ = "technicians"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    skills: Mapped[list[str]] = mapped_column(ARRAY(String(64)), nullable=False, default=list)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    active_job_ids: Mapped[list[str]] = mapped_column(
        ARRAY(String(64)), nullable=False, default=list
    )
    performance_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    committed_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    job_hours: Mapped[dict[str, float]] = mapped_column(JSONB, nullable=False, default=dict)
    availability_windows: Mapped[list[dict]] = mapped_column(JSONB, nullable=False, default=list)
