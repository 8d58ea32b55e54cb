"""Job entity — a repair work order moving through the lifecycle."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from repair_lifecycle.domain.value_objects.enums import (
    CustomerTier,
    EscalationAction,
    JobState,
    PartAvailability,
    Priority,
)
from repair_lifecycle.domain.value_objects.geo_point import Location

DEFAULT_ESTIMATED_HOURS = 2.0


@dataclass(frozen=True)
class HistoryEntry:
    from_state: JobState | None  # None only for the creation entry
    to_state: JobState
    timestamp: datetime
    actor: str
    reason: str | None = None


@dataclass(frozen=True)
class PartLine:
    name: str
    quantity: int = 1
    availability: PartAvailability = PartAvailability.IN_STOCK

    @property
    def in_stock(self) -> bool:
        return self.availability == PartAvailability.IN_STOCK


@dataclass(frozen=True)
class ReassignmentEntry:
    previous_technician_id: str | None
    new_technician_id: str
    reason: str
    actor: str
    timestamp: datetime


@dataclass(frozen=True)
class EscalationRecord:
    level: int
    action: EscalationAction
    state: JobState
    fired_at: datetime
    delivered: bool = False


@dataclass
class Job:
    id: str
    state: JobState
    priority: Priority
    customer_tier: CustomerTier
    required_skills: frozenset[str]
    location: Location
    sla_response_deadline: datetime
    sla_completion_deadline: datetime
    state_entered_at: datetime
    assigned_technician_id: str | None = None
    history: list[HistoryEntry] = field(default_factory=list)
    parts: list[PartLine] = field(default_factory=list)
    rework_count: int = 0
    escalations: list[EscalationRecord] = field(default_factory=list)
    reassignments: list[ReassignmentEntry] = field(default_factory=list)
    archived: bool = False
    estimated_hours: float = DEFAULT_ESTIMATED_HOURS  # bench time the repair is expected to take

    def current_escalations(self) -> list[EscalationRecord]:
        """Records fired since the job last entered its current state.

        Every state visit starts a fresh escalation cycle; earlier records stay
        in ``escalations`` as history.
        """
        return [
            e for e in self.escalations
            if e.state == self.state and e.fired_at >= self.state_entered_at
        ]

    @property
    def escalation_levels_fired(self) -> list[int]:
        return sorted({e.level for e in self.current_escalations()})

    @property
    def escalation_level(self) -> int:
        """Highest level fired in the current state, 0 when none."""
        return max(self.escalation_levels_fired, default=0)

    def has_fired(self, level: int) -> bool:
        return level in self.escalation_levels_fired

    def time_in_state(self, now: datetime) -> timedelta:
        return now - self.state_entered_at

    def pending_parts(self) -> list[PartLine]:
        return [p for p in self.parts if not p.in_stock]

    def parts_ready(self) -> bool:
        return not self.pending_parts()

    def record_transition(
        self,
        to_state: JobState,
        at: datetime,
        actor: str,
        reason: str | None = None,
    ) -> HistoryEntry:
        """Append to history and move the job. History is never rewritten."""
        entry = HistoryEntry(
            from_state=self.state, to_state=to_state,
            timestamp=at, actor=actor, reason=reason,
        )
        self.history.append(entry)
        self.state = to_state
        self.state_entered_at = at
        return entry

    def record_reassignment(
        self,
        new_technician_id: str,
        reason: str,
        actor: str,
        at: datetime,
    ) -> ReassignmentEntry:
        entry = ReassignmentEntry(
            previous_technician_id=self.assigned_technician_id,
            new_technician_id=new_technician_id,
            reason=reason,
            actor=actor,
            timestamp=at,
        )
        self.reassignments.append(entry)
        self.assigned_technician_id = new_technician_id
        return entry
