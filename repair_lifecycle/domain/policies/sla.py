"""SlaPolicy evaluation — response / completion deadlines from priority and tier."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from repair_lifecycle.domain.value_objects.enums import CustomerTier, Priority
from repair_lifecycle.domain.value_objects.lifecycle_config import SlaPolicy


@dataclass(frozen=True)
class SlaDeadlines:
    response: datetime
    completion: datetime


def compute_sla_deadlines(
    priority: Priority,
    tier: CustomerTier,
    created_at: datetime,
    policy: SlaPolicy,
) -> SlaDeadlines:
    """Deadlines are base hours for the priority scaled by the customer tier.

    ENTERPRISE and PREMIUM customers get proportionally shorter windows.
    """
    factor = policy.tier_factor.get(tier, 1.0)
    response_hours = policy.response_hours[priority] * factor
    completion_hours = policy.completion_hours[priority] * factor
    return SlaDeadlines(
        response=created_at + timedelta(hours=response_hours),
        completion=created_at + timedelta(hours=completion_hours),
    )
