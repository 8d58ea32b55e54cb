"""Request models and response serializers for the job endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field

from repair_lifecycle.application.use_cases.escalation_scheduler import EscalationStatus
from repair_lifecycle.domain.commands import CandidatePoolFilter
from repair_lifecycle.domain.entities.assignment import AssignmentResult, AssignmentScore
from repair_lifecycle.domain.entities.job import DEFAULT_ESTIMATED_HOURS, Job, PartLine
from repair_lifecycle.domain.policies.transitions import allowed_targets
from repair_lifecycle.domain.value_objects.enums import (
    CustomerTier,
    JobState,
    PartAvailability,
    Priority,
)

# ─── Requests ────────────────────────────────────────────────────────


class PartIn(BaseModel):
    name: str = Field(min_length=1)
    quantity: int = Field(default=1, ge=1)
    availability: PartAvailability = PartAvailability.IN_STOCK

    def to_domain(self) -> PartLine:
        return PartLine(name=self.name, quantity=self.quantity, availability=self.availability)


class LocationIn(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    address: str = ""


class CreateJobRequest(BaseModel):
    priority: Priority
    customer_tier: CustomerTier = CustomerTier.STANDARD
    required_skills: list[str] = Field(default_factory=list)
    location: LocationIn
    parts: list[PartIn] = Field(default_factory=list)
    estimated_hours: float = Field(default=DEFAULT_ESTIMATED_HOURS, gt=0)
    job_id: str | None = None
    auto_assign: bool | None = None
    actor: str = "api"


class AdvanceJobRequest(BaseModel):
    target_state: JobState
    reason: str | None = None
    actor: str = "api"


class PoolFilterIn(BaseModel):
    technician_ids: list[str] | None = None
    exclude_ids: list[str] = Field(default_factory=list)

    def to_domain(self) -> CandidatePoolFilter:
        return CandidatePoolFilter(
            technician_ids=frozenset(self.technician_ids) if self.technician_ids is not None else None,
            exclude_ids=frozenset(self.exclude_ids),
        )


class AssignmentRequest(BaseModel):
    pool: PoolFilterIn = Field(default_factory=PoolFilterIn)
    actor: str = "api"


class ReassignRequest(BaseModel):
    reason: str = Field(min_length=1)
    pool: PoolFilterIn = Field(default_factory=PoolFilterIn)
    actor: str = "api"


class UpdatePartsRequest(BaseModel):
    parts: list[PartIn]
    actor: str = "api"


# ─── Serializers ─────────────────────────────────────────────────────


def serialize_job(job: Job) -> dict:
    return {
        "id": job.id,
        "state": job.state.value,
        "allowed_next_states": [s.value for s in allowed_targets(job.state)],
        "priority": job.priority.value,
        "customer_tier": job.customer_tier.value,
        "required_skills": sorted(job.required_skills),
        "location": {
            "latitude": job.location.point.latitude,
            "longitude": job.location.point.longitude,
            "address": job.location.address,
        },
        "sla_response_deadline": job.sla_response_deadline.isoformat(),
        "sla_completion_deadline": job.sla_completion_deadline.isoformat(),
        "state_entered_at": job.state_entered_at.isoformat(),
        "assigned_technician_id": job.assigned_technician_id,
        "rework_count": job.rework_count,
        "estimated_hours": job.estimated_hours,
        "escalation_levels_fired": job.escalation_levels_fired,
        "archived": job.archived,
        "history": [
            {
                "from_state": h.from_state.value if h.from_state else None,
                "to_state": h.to_state.value,
                "timestamp": h.timestamp.isoformat(),
                "actor": h.actor,
                "reason": h.reason,
            }
            for h in job.history
        ],
        "parts": [
            {"name": p.name, "quantity": p.quantity, "availability": p.availability.value}
            for p in job.parts
        ],
        "reassignments": [
            {
                "previous_technician_id": r.previous_technician_id,
                "new_technician_id": r.new_technician_id,
                "reason": r.reason,
                "actor": r.actor,
                "timestamp": r.timestamp.isoformat(),
            }
            for r in job.reassignments
        ],
    }


def serialize_score(s: AssignmentScore) -> dict:
    return {
        "technician_id": s.technician_id,
        "skill_match_score": s.skill_match_score,
        "availability_score": s.availability_score,
        "location_score": s.location_score,
        "performance_score": s.performance_score,
        "workload_score": s.workload_score,
        "overall_score": s.overall_score,
        "confidence": s.confidence,
        "recommendation": s.recommendation.value,
        "distance_km": s.distance_km,
        "reasoning_factors": list(s.reasoning_factors),
    }


def serialize_assignment(result: AssignmentResult) -> dict:
    return {
        "job_id": result.job_id,
        "technician_id": result.technician_id,
        "previous_technician_id": result.previous_technician_id,
        "score": serialize_score(result.score),
        "alternatives": [serialize_score(a) for a in result.alternatives],
        "reason": result.reason,
        "excluded": result.excluded,
        "config_version": result.config_version,
        "estimated_start": result.estimated_start.isoformat() if result.estimated_start else None,
        "estimated_completion": (
            result.estimated_completion.isoformat() if result.estimated_completion else None
        ),
        "committed_at": result.committed_at.isoformat() if result.committed_at else None,
    }


def serialize_escalation(status: EscalationStatus) -> dict:
    return {
        "job_id": status.job_id,
        "level": status.level,
        "fired_at": [ts.isoformat() for ts in status.fired_at],
        "fired": [
            {
                "level": r.level,
                "action": r.action.value,
                "state": r.state.value,
                "fired_at": r.fired_at.isoformat(),
                "delivered": r.delivered,
            }
            for r in status.fired
        ],
    }
