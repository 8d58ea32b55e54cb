"""Command objects accepted by the lifecycle service.

Each command is processed under the target job's lock; none of them carries
mutable state shared with the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from repair_lifecycle.domain.entities.job import DEFAULT_ESTIMATED_HOURS, PartLine
from repair_lifecycle.domain.value_objects.enums import CustomerTier, JobState, Priority
from repair_lifecycle.domain.value_objects.geo_point import Location

SYSTEM_ACTOR = "system"


@dataclass(frozen=True)
class JobSpec:
    priority: Priority
    customer_tier: CustomerTier
    required_skills: frozenset[str]
    location: Location
    parts: tuple[PartLine, ...] = ()
    estimated_hours: float = DEFAULT_ESTIMATED_HOURS
    job_id: str | None = None
    auto_assign: bool | None = None  # None = use the configured default
    actor: str = SYSTEM_ACTOR


@dataclass(frozen=True)
class AdvanceJobCommand:
    job_id: str
    target_state: JobState
    reason: str | None = None
    actor: str = SYSTEM_ACTOR


@dataclass(frozen=True)
class CandidatePoolFilter:
    """Restricts the technicians considered for an assignment.

    ``technician_ids`` limits the pool to the given ids (None = everyone);
    ``exclude_ids`` removes ids from it.
    """

    technician_ids: frozenset[str] | None = None
    exclude_ids: frozenset[str] = field(default_factory=frozenset)

    def admits(self, technician_id: str) -> bool:
        if technician_id in self.exclude_ids:
            return False
        return self.technician_ids is None or technician_id in self.technician_ids


@dataclass(frozen=True)
class RequestAssignmentCommand:
    job_id: str
    pool: CandidatePoolFilter = field(default_factory=CandidatePoolFilter)
    actor: str = SYSTEM_ACTOR


@dataclass(frozen=True)
class ReassignCommand:
    job_id: str
    reason: str
    pool: CandidatePoolFilter = field(default_factory=CandidatePoolFilter)
    actor: str = SYSTEM_ACTOR
