"""TransitionPolicy — legal-edge table and guards for the job lifecycle.

Forward path (no skipping):
  CREATED → IN_DIAGNOSIS → AWAITING_APPROVAL → APPROVED → IN_PROGRESS →
  PARTS_ORDERED → TESTING → QUALITY_CHECK → COMPLETED → CUSTOMER_APPROVED →
  DELIVERED

Exception edges:
  AWAITING_APPROVAL → CREATED   customer declined the quote (reason required)
  QUALITY_CHECK → IN_PROGRESS   quality check failed (reason required); once the
                                rework limit is used up the job goes to
                                ESCALATED instead
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from repair_lifecycle.domain.entities.job import Job
from repair_lifecycle.domain.errors import (
    PartsNotReadyError,
    TerminalStateError,
    TransitionError,
)
from repair_lifecycle.domain.value_objects.enums import JobState


class EdgeKind(str, Enum):
    FORWARD = "forward"
    QUOTE_DECLINED = "quote_declined"
    QUALITY_REWORK = "quality_rework"


TRANSITIONS: dict[JobState, dict[JobState, EdgeKind]] = {
    JobState.CREATED: {JobState.IN_DIAGNOSIS: EdgeKind.FORWARD},
    JobState.IN_DIAGNOSIS: {JobState.AWAITING_APPROVAL: EdgeKind.FORWARD},
    JobState.AWAITING_APPROVAL: {
        JobState.APPROVED: EdgeKind.FORWARD,
        JobState.CREATED: EdgeKind.QUOTE_DECLINED,
    },
    JobState.APPROVED: {JobState.IN_PROGRESS: EdgeKind.FORWARD},
    JobState.IN_PROGRESS: {JobState.PARTS_ORDERED: EdgeKind.FORWARD},
    JobState.PARTS_ORDERED: {JobState.TESTING: EdgeKind.FORWARD},
    JobState.TESTING: {JobState.QUALITY_CHECK: EdgeKind.FORWARD},
    JobState.QUALITY_CHECK: {
        JobState.COMPLETED: EdgeKind.FORWARD,
        JobState.IN_PROGRESS: EdgeKind.QUALITY_REWORK,
    },
    JobState.COMPLETED: {JobState.CUSTOMER_APPROVED: EdgeKind.FORWARD},
    JobState.CUSTOMER_APPROVED: {JobState.DELIVERED: EdgeKind.FORWARD},
    JobState.DELIVERED: {},
    JobState.ESCALATED: {},
}


def edge_kind(from_state: JobState, to_state: JobState) -> EdgeKind | None:
    return TRANSITIONS.get(from_state, {}).get(to_state)


def allowed_targets(state: JobState) -> list[JobState]:
    return list(TRANSITIONS.get(state, {}))


@dataclass(frozen=True)
class TransitionPlan:
    """What applying a validated request will do to the job."""

    from_state: JobState
    to_state: JobState
    kind: EdgeKind
    rework_count: int
    reason: str | None

    @property
    def escalated(self) -> bool:
        return self.to_state == JobState.ESCALATED


class TransitionValidator:
    """Pure checks: never touches storage, never mutates the job."""

    def __init__(self, max_reworks: int = 3):
        self._max_reworks = max_reworks

    def plan(self, job: Job, target: JobState, reason: str | None = None) -> TransitionPlan:
        """Validate ``job.state → target`` and describe the resulting move.

        Raises:
            TerminalStateError: job is DELIVERED.
            PartsNotReadyError: PARTS_ORDERED → TESTING with parts still missing.
            TransitionError: any other illegal or under-specified request.
        """
        current = job.state
        if current.is_terminal:
            raise TerminalStateError(f"Job {job.id} is {current.value} and accepts no transitions")
        if current == JobState.ESCALATED:
            raise TransitionError(
                f"Job {job.id} is ESCALATED and awaits manual resolution"
            )

        kind = edge_kind(current, target)
        if kind is None:
            raise TransitionError(
                f"Illegal transition for job {job.id}: {current.value} → {target.value}"
            )

        reason = reason.strip() if reason else None
        rework_count = job.rework_count
        to_state = target

        if kind == EdgeKind.QUOTE_DECLINED and not reason:
            raise TransitionError("A reason is required when the customer declines the quote")

        if kind == EdgeKind.QUALITY_REWORK:
            if not reason:
                raise TransitionError("A reason is required when the quality check fails")
            if rework_count >= self._max_reworks:
                to_state = JobState.ESCALATED
            else:
                rework_count += 1

        if to_state == JobState.IN_PROGRESS and not job.assigned_technician_id:
            raise TransitionError(f"Job {job.id} needs an assigned technician before IN_PROGRESS")

        if current == JobState.PARTS_ORDERED and target == JobState.TESTING:
            if not job.parts_ready():
                raise PartsNotReadyError(job.id, [p.name for p in job.pending_parts()])

        return TransitionPlan(
            from_state=current,
            to_state=to_state,
            kind=kind,
            rework_count=rework_count,
            reason=reason,
        )
