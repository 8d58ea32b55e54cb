"""SQLAlchemy repository implementations (the JobRecord Store).

Each repository call runs in its own short transaction, so a write made under
a job lock is committed before the lock is released.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from repair_lifecycle.adapters.persistence.models import JobModel, TechnicianModel
from repair_lifecycle.application.ports.job_repo import JobRepository
from repair_lifecycle.application.ports.technician_repo import TechnicianRepository
from repair_lifecycle.domain.entities.job import (
    EscalationRecord,
    HistoryEntry,
    Job,
    PartLine,
    ReassignmentEntry,
)
from repair_lifecycle.domain.entities.technician import AvailabilityWindow, Technician
from repair_lifecycle.domain.errors import (
    DuplicateJobError,
    JobNotFoundError,
    TechnicianNotFoundError,
)
from repair_lifecycle.domain.value_objects.enums import (
    CustomerTier,
    EscalationAction,
    JobState,
    PartAvailability,
    Priority,
)
from repair_lifecycle.domain.value_objects.geo_point import GeoPoint, Location

# ─── Mappers ─────────────────────────────────────────────────────────


def _ts(value: str) -> datetime:
    return datetime.fromisoformat(value)


def _history_to_json(entry: HistoryEntry) -> dict:
    return {
        "from_state": entry.from_state.value if entry.from_state else None,
        "to_state": entry.to_state.value,
        "timestamp": entry.timestamp.isoformat(),
        "actor": entry.actor,
        "reason": entry.reason,
    }


def _history_from_json(d: dict) -> HistoryEntry:
    return HistoryEntry(
        from_state=JobState(d["from_state"]) if d.get("from_state") else None,
        to_state=JobState(d["to_state"]),
        timestamp=_ts(d["timestamp"]),
        actor=d.get("actor", ""),
        reason=d.get("reason"),
    )


def _part_to_json(part: PartLine) -> dict:
    return {
        "name": part.name,
        "quantity": part.quantity,
        "availability": part.availability.value,
    }


def _part_from_json(d: dict) -> PartLine:
    return PartLine(
        name=d["name"],
        quantity=d.get("quantity", 1),
        availability=PartAvailability(d.get("availability", PartAvailability.IN_STOCK.value)),
    )


def _reassignment_to_json(entry: ReassignmentEntry) -> dict:
    return {
        "previous_technician_id": entry.previous_technician_id,
        "new_technician_id": entry.new_technician_id,
        "reason": entry.reason,
        "actor": entry.actor,
        "timestamp": entry.timestamp.isoformat(),
    }


def _reassignment_from_json(d: dict) -> ReassignmentEntry:
    return ReassignmentEntry(
        previous_technician_id=d.get("previous_technician_id"),
        new_technician_id=d["new_technician_id"],
        reason=d.get("reason", ""),
        actor=d.get("actor", ""),
        timestamp=_ts(d["timestamp"]),
    )


def _escalation_to_json(record: EscalationRecord) -> dict:
    return {
        "level": record.level,
        "action": record.action.value,
        "state": record.state.value,
        "fired_at": record.fired_at.isoformat(),
        "delivered": record.delivered,
    }


def _escalation_from_json(d: dict) -> EscalationRecord:
    return EscalationRecord(
        level=d["level"],
        action=EscalationAction(d["action"]),
        state=JobState(d["state"]),
        fired_at=_ts(d["fired_at"]),
        delivered=d.get("delivered", False),
    )


def job_to_row(job: Job) -> dict:
    """Column values for a job. Used for both insert and update."""
    return {
        "id": job.id,
        "state": job.state.value,
        "priority": job.priority.value,
        "customer_tier": job.customer_tier.value,
        "required_skills": sorted(job.required_skills),
        "latitude": job.location.point.latitude,
        "longitude": job.location.point.longitude,
        "address": job.location.address,
        "sla_response_deadline": job.sla_response_deadline,
        "sla_completion_deadline": job.sla_completion_deadline,
        "state_entered_at": job.state_entered_at,
        "assigned_technician_id": job.assigned_technician_id,
        "rework_count": job.rework_count,
        "history": [_history_to_json(h) for h in job.history],
        "parts": [_part_to_json(p) for p in job.parts],
        "reassignments": [_reassignment_to_json(r) for r in job.reassignments],
        "escalations": [_escalation_to_json(e) for e in job.escalations],
        "escalation_levels_fired": job.escalation_levels_fired,
        "archived": job.archived,
        "estimated_hours": job.estimated_hours,
    }


def _job_to_domain(m: JobModel) -> Job:
    return Job(
        id=m.id,
        state=JobState(m.state),
        priority=Priority(m.priority),
        customer_tier=CustomerTier(m.customer_tier),
        required_skills=frozenset(m.required_skills or ()),
        location=Location(
            point=GeoPoint(latitude=m.latitude, longitude=m.longitude),
            address=m.address or "",
        ),
        sla_response_deadline=m.sla_response_deadline,
        sla_completion_deadline=m.sla_completion_deadline,
        state_entered_at=m.state_entered_at,
        assigned_technician_id=m.assigned_technician_id,
        history=[_history_from_json(d) for d in m.history or []],
        parts=[_part_from_json(d) for d in m.parts or []],
        rework_count=m.rework_count,
        escalations=[_escalation_from_json(d) for d in m.escalations or []],
        reassignments=[_reassignment_from_json(d) for d in m.reassignments or []],
        archived=m.archived,
        estimated_hours=m.estimated_hours,
    )


def technician_to_row(technician: Technician) -> dict:
    location = technician.current_location
    return {
        "id": technician.id,
        "name": technician.name,
        "skills": sorted(technician.skills),
        "latitude": location.latitude if location else None,
        "longitude": location.longitude if location else None,
        "active_job_ids": sorted(technician.active_job_ids),
        "performance_score": technician.performance_score,
        "committed_hours": technician.committed_hours,
        "job_hours": dict(sorted(technician.job_hours.items())),
        "availability_windows": [
            {"start": w.start.isoformat(), "end": w.end.isoformat()}
            for w in technician.availability_windows
        ],
    }


def _technician_to_domain(m: TechnicianModel) -> Technician:
    location = None
    if m.latitude is not None and m.longitude is not None:
        location = GeoPoint(latitude=m.latitude, longitude=m.longitude)
    return Technician(
        id=m.id,
        name=m.name,
        skills=set(m.skills) if m.skills else set(),
        current_location=location,
        active_job_ids=set(m.active_job_ids) if m.active_job_ids else set(),
        performance_score=m.performance_score,
        availability_windows=[
            AvailabilityWindow(start=_ts(w["start"]), end=_ts(w["end"]))
            for w in m.availability_windows or []
        ],
        committed_hours=m.committed_hours,
        job_hours=dict(m.job_hours or {}),
    )


# ─── Repositories ────────────────────────────────────────────────────


class SqlJobRepository(JobRepository):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._sessions = session_factory

    async def get_by_id(self, job_id: str) -> Job | None:
        async with self._sessions() as s:
            m = await s.get(JobModel, job_id)
            return _job_to_domain(m) if m else None

    async def add(self, job: Job) -> Job:
        try:
            async with self._sessions() as s, s.begin():
                if await s.get(JobModel, job.id) is not None:
                    raise DuplicateJobError(f"Job {job.id} already exists")
                s.add(JobModel(**job_to_row(job)))
        except IntegrityError as exc:
            raise DuplicateJobError(f"Job {job.id} already exists") from exc
        return job

    async def save(self, job: Job) -> Job:
        async with self._sessions() as s, s.begin():
            result = await s.execute(
                select(JobModel).where(JobModel.id == job.id).with_for_update()
            )
            m = result.scalar_one_or_none()
            if m is None:
                raise JobNotFoundError(f"Job {job.id} not found")
            for column, value in job_to_row(job).items():
                setattr(m, column, value)
        return job

    async def get_open(self) -> list[Job]:
        async with self._sessions() as s:
            result = await s.execute(
                select(JobModel)
                .where(
                    JobModel.state.notin_([JobState.DELIVERED.value, JobState.ESCALATED.value]),
                    JobModel.archived.is_(False),
                )
                .order_by(JobModel.state_entered_at)
            )
            return [_job_to_domain(m) for m in result.scalars()]


class SqlTechnicianRepository(TechnicianRepository):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._sessions = session_factory

    async def get_by_id(self, technician_id: str) -> Technician | None:
        async with self._sessions() as s:
            m = await s.get(TechnicianModel, technician_id)
            return _technician_to_domain(m) if m else None

    async def get_all(self) -> list[Technician]:
        async with self._sessions() as s:
            result = await s.execute(select(TechnicianModel).order_by(TechnicianModel.id))
            return [_technician_to_domain(m) for m in result.scalars()]

    async def get_many(self, technician_ids: set[str]) -> list[Technician]:
        if not technician_ids:
            return []
        async with self._sessions() as s:
            result = await s.execute(
                select(TechnicianModel)
                .where(TechnicianModel.id.in_(sorted(technician_ids)))
                .order_by(TechnicianModel.id)
            )
            return [_technician_to_domain(m) for m in result.scalars()]

    async def save(self, technician: Technician) -> Technician:
        async with self._sessions() as s, s.begin():
            m = await s.get(TechnicianModel, technician.id, with_for_update=True)
            row = technician_to_row(technician)
            if m is None:
                s.add(TechnicianModel(**row))
            else:
                for column, value in row.items():
                    setattr(m, column, value)
        return technician

    async def add_active_job(
        self, technician_id: str, job_id: str, hours: float = 0.0
    ) -> bool:
        async with self._sessions() as s, s.begin():
            m = await self._locked(s, technician_id)
            current = list(m.active_job_ids or [])
            if job_id in current:
                return False
            m.active_job_ids = sorted([*current, job_id])
            m.job_hours = {**(m.job_hours or {}), job_id: hours}
            return True

    async def remove_active_job(self, technician_id: str, job_id: str) -> bool:
        async with self._sessions() as s, s.begin():
            m = await self._locked(s, technician_id)
            current = list(m.active_job_ids or [])
            if job_id not in current:
                return False
            m.active_job_ids = [j for j in current if j != job_id]
            m.job_hours = {k: v for k, v in (m.job_hours or {}).items() if k != job_id}
            return True

    async def _locked(self, s: AsyncSession, technician_id: str) -> TechnicianModel:
        result = await s.execute(
            select(TechnicianModel)
            .where(TechnicianModel.id == technician_id)
            .with_for_update()
        )
        m = result.scalar_one_or_none()
        if m is None:
            raise TechnicianNotFoundError(f"Technician {technician_id} not found")
        return m
