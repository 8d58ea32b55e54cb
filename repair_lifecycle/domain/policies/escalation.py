"""EscalationPolicy evaluation — which levels are due for a job right now."""

from __future__ import annotations

from datetime import datetime

from repair_lifecycle.domain.entities.job import Job
from repair_lifecycle.domain.value_objects.enums import CustomerTier, JobState, Priority
from repair_lifecycle.domain.value_objects.lifecycle_config import (
    EscalationLevel,
    EscalationPolicy,
)


def base_threshold_hours(
    policy: EscalationPolicy,
    state: JobState,
    priority: Priority,
    tier: CustomerTier,
) -> float | None:
    """Level-1 threshold for a state, or None when the state never escalates."""
    hours = policy.state_hours.get(state)
    if hours is None:
        return None
    return hours * policy.priority_factor.get(priority, 1.0) * policy.tier_factor.get(tier, 1.0)


def level_threshold_hours(
    policy: EscalationPolicy,
    level: EscalationLevel,
    state: JobState,
    priority: Priority,
    tier: CustomerTier,
) -> float | None:
    base = base_threshold_hours(policy, state, priority, tier)
    if base is None:
        return None
    return base * level.threshold_factor


def due_levels(job: Job, now: datetime, policy: EscalationPolicy) -> list[EscalationLevel]:
    """Levels whose threshold the job has overstayed and that have not fired yet.

    Returned in ascending order. Jobs that are DELIVERED or ESCALATED never
    have due levels. A level fired during the current state visit is never
    returned again; a transition starts a new cycle from level 1.
    """
    if not job.state.is_open:
        return []

    hours_in_state = job.time_in_state(now).total_seconds() / 3600
    due: list[EscalationLevel] = []
    for level in policy.levels:
        if job.has_fired(level.level):
            continue
        threshold = level_threshold_hours(
            policy, level, job.state, job.priority, job.customer_tier
        )
        if threshold is not None and hours_in_state >= threshold:
            due.append(level)
    return due
