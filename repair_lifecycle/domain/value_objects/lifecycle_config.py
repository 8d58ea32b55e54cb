"""LifecycleConfig — versioned, immutable tuning for scoring, SLAs and escalation.

Built once by the infrastructure layer (see ``repair_lifecycle.config``) and
injected into the lifecycle service, assignment engine and escalation scheduler.
Nothing in the domain or application layers reads process settings directly.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from repair_lifecycle.domain.value_objects.enums import (
    CustomerTier,
    EscalationAction,
    JobState,
    Priority,
)


@dataclass(frozen=True)
class ScoringWeights:
    skill: float = 0.30
    availability: float = 0.25
    location: float = 0.20
    performance: float = 0.15
    workload: float = 0.10

    def __post_init__(self) -> None:
        values = self.as_dict()
        negative = [name for name, value in values.items() if value < 0]
        if negative:
            raise ValueError(f"Scoring weights must be non-negative: {', '.join(negative)}")
        total = sum(values.values())
        if not math.isclose(total, 1.0, abs_tol=1e-6):
            raise ValueError(f"Scoring weights must sum to 1.0, got {total:.4f}")

    def as_dict(self) -> dict[str, float]:
        return {
            "skill": self.skill,
            "availability": self.availability,
            "location": self.location,
            "performance": self.performance,
            "workload": self.workload,
        }


@dataclass(frozen=True)
class ScoringPolicy:
    weights: ScoringWeights = field(default_factory=ScoringWeights)
    max_travel_km: float = 50.0
    workload_penalty_per_job: float = 8.0
    workload_exponent: float = 1.5
    confidence_spread: float = 20.0  # score gap that yields confidence 1.0
    min_availability_horizon_hours: float = 4.0
    max_alternatives: int = 3
    start_lead_minutes: float = 30.0  # from assignment to the technician picking the job up


def _default_response_hours() -> dict[Priority, float]:
    return {
        Priority.URGENT: 2.0,
        Priority.HIGH: 4.0,
        Priority.MEDIUM: 8.0,
        Priority.LOW: 24.0,
    }


def _default_completion_hours() -> dict[Priority, float]:
    return {
        Priority.URGENT: 24.0,
        Priority.HIGH: 48.0,
        Priority.MEDIUM: 72.0,
        Priority.LOW: 120.0,
    }


def _default_tier_factor() -> dict[CustomerTier, float]:
    return {
        CustomerTier.ENTERPRISE: 0.5,
        CustomerTier.PREMIUM: 0.75,
        CustomerTier.STANDARD: 1.0,
    }


@dataclass(frozen=True)
class SlaPolicy:
    response_hours: dict[Priority, float] = field(default_factory=_default_response_hours)
    completion_hours: dict[Priority, float] = field(default_factory=_default_completion_hours)
    tier_factor: dict[CustomerTier, float] = field(default_factory=_default_tier_factor)


@dataclass(frozen=True)
class EscalationLevel:
    level: int
    action: EscalationAction
    threshold_factor: float  # multiple of the state's base threshold


def _default_state_hours() -> dict[JobState, float]:
    return {
        JobState.CREATED: 24.0,
        JobState.IN_DIAGNOSIS: 2.0,
        JobState.AWAITING_APPROVAL: 48.0,
        JobState.APPROVED: 4.0,
        JobState.IN_PROGRESS: 8.0,
        JobState.PARTS_ORDERED: 72.0,
        JobState.TESTING: 2.0,
        JobState.QUALITY_CHECK: 1.0,
        JobState.COMPLETED: 24.0,
        JobState.CUSTOMER_APPROVED: 4.0,
    }


def _default_priority_factor() -> dict[Priority, float]:
    return {
        Priority.URGENT: 0.25,
        Priority.HIGH: 0.5,
        Priority.MEDIUM: 1.0,
        Priority.LOW: 1.5,
    }


def _default_levels() -> tuple[EscalationLevel, ...]:
    # Reminder cadence of 3 / 7 / 14 units, normalised to the first level.
    return (
        EscalationLevel(1, EscalationAction.EMAIL_REMINDER, 1.0),
        EscalationLevel(2, EscalationAction.SMS_AND_EMAIL, 7 / 3),
        EscalationLevel(3, EscalationAction.MANAGER_NOTIFICATION, 14 / 3),
    )


@dataclass(frozen=True)
class EscalationPolicy:
    state_hours: dict[JobState, float] = field(default_factory=_default_state_hours)
    priority_factor: dict[Priority, float] = field(default_factory=_default_priority_factor)
    tier_factor: dict[CustomerTier, float] = field(default_factory=_default_tier_factor)
    levels: tuple[EscalationLevel, ...] = field(default_factory=_default_levels)

    def __post_init__(self) -> None:
        numbers = [lvl.level for lvl in self.levels]
        if numbers != sorted(numbers) or len(set(numbers)) != len(numbers):
            raise ValueError("Escalation levels must be unique and in ascending order")
        factors = [lvl.threshold_factor for lvl in self.levels]
        if factors != sorted(factors):
            raise ValueError("Escalation thresholds must grow with the level")


@dataclass(frozen=True)
class LifecycleConfig:
    version: str = "1"
    scoring: ScoringPolicy = field(default_factory=ScoringPolicy)
    sla: SlaPolicy = field(default_factory=SlaPolicy)
    escalation: EscalationPolicy = field(default_factory=EscalationPolicy)
    max_reworks: int = 3
    auto_assign_on_create: bool = True
    reassign_on_escalation_level: int | None = None

    def __post_init__(self) -> None:
        if self.max_reworks < 0:
            raise ValueError("max_reworks cannot be negative")
