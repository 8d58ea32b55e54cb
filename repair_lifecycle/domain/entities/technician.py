"""Technician entity — a field or bench engineer who takes repair jobs."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from repair_lifecycle.domain.value_objects.geo_point import GeoPoint


@dataclass(frozen=True)
class AvailabilityWindow:
    start: datetime
    end: datetime

    def overlap_hours(self, start: datetime, end: datetime) -> float:
        lo = max(self.start, start)
        hi = min(self.end, end)
        if hi <= lo:
            return 0.0
        return (hi - lo).total_seconds() / 3600


@dataclass
class Technician:
    id: str
    name: str
    skills: set[str] = field(default_factory=set)
    current_location: GeoPoint | None = None
    active_job_ids: set[str] = field(default_factory=set)
    performance_score: float = 0.0  # rolling average of job outcomes, 0-100
    availability_windows: list[AvailabilityWindow] = field(default_factory=list)
    committed_hours: float = 0.0  # booked outside this service (training, other sites)
    job_hours: dict[str, float] = field(default_factory=dict)  # estimate per active job

    @property
    def active_job_count(self) -> int:
        return len(self.active_job_ids)

    @property
    def booked_hours(self) -> float:
        """External commitments plus the estimates of every active job."""
        return self.committed_hours + sum(self.job_hours.values())

    def missing_skills(self, required: frozenset[str] | set[str]) -> set[str]:
        return set(required) - self.skills

    def available_hours(self, start: datetime, end: datetime) -> float:
        """Scheduled hours inside [start, end].

        A technician without declared windows is treated as available for the
        whole interval.
        """
        if end <= start:
            return 0.0
        if not self.availability_windows:
            return (end - start).total_seconds() / 3600
        return sum(w.overlap_hours(start, end) for w in self.availability_windows)

    def next_available(self, at: datetime) -> datetime:
        """Earliest moment at or after ``at`` inside an availability window."""
        if not self.availability_windows:
            return at
        upcoming = [w for w in self.availability_windows if w.end > at]
        if not upcoming:
            return at
        return max(at, min(w.start for w in upcoming))

    def take_job(self, job_id: str, hours: float = 0.0) -> bool:
        """Add a job and its estimate. Returns False if it was already there."""
        if job_id in self.active_job_ids:
            return False
        self.active_job_ids.add(job_id)
        self.job_hours[job_id] = hours
        return True

    def release_job(self, job_id: str) -> bool:
        if job_id not in self.active_job_ids:
            return False
        self.active_job_ids.discard(job_id)
        self.job_hours.pop(job_id, None)
        return True
