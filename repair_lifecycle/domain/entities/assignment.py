"""Assignment results — computed per request, never persisted as-is."""

from dataclasses import dataclass, field
from datetime import datetime

from repair_lifecycle.domain.value_objects.enums import Recommendation


@dataclass(frozen=True)
class AssignmentScore:
    technician_id: str
    skill_match_score: float
    availability_score: float
    location_score: float
    performance_score: float
    workload_score: float
    overall_score: float
    confidence: float
    recommendation: Recommendation
    distance_km: float | None = None
    reasoning_factors: tuple[str, ...] = ()


@dataclass
class AssignmentResult:
    job_id: str
    technician_id: str
    score: AssignmentScore
    alternatives: list[AssignmentScore]
    reason: str
    config_version: str
    previous_technician_id: str | None = None
    excluded: dict[str, str] = field(default_factory=dict)
    estimated_start: datetime | None = None
    estimated_completion: datetime | None = None
    committed_at: datetime | None = None

    @property
    def is_reassignment(self) -> bool:
        return self.previous_technician_id is not None
