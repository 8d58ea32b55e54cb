"""Domain enums — pure Python, no external dependencies."""

from enum import Enum


class JobState(str, Enum):
    CREATED = "CREATED"
    IN_DIAGNOSIS = "IN_DIAGNOSIS"
    AWAITING_APPROVAL = "AWAITING_APPROVAL"
    APPROVED = "APPROVED"
    IN_PROGRESS = "IN_PROGRESS"
    PARTS_ORDERED = "PARTS_ORDERED"
    TESTING = "TESTING"
    QUALITY_CHECK = "QUALITY_CHECK"
    COMPLETED = "COMPLETED"
    CUSTOMER_APPROVED = "CUSTOMER_APPROVED"
    DELIVERED = "DELIVERED"
    # Out-of-band: raised after the rework limit, resolved by a human.
    ESCALATED = "ESCALATED"

    @property
    def is_terminal(self) -> bool:
        return self == JobState.DELIVERED

    @property
    def is_open(self) -> bool:
        """Open jobs still move through the lifecycle and can escalate."""
        return self not in (JobState.DELIVERED, JobState.ESCALATED)


LIFECYCLE_ORDER: tuple[JobState, ...] = (
    JobState.CREATED,
    JobState.IN_DIAGNOSIS,
    JobState.AWAITING_APPROVAL,
    JobState.APPROVED,
    JobState.IN_PROGRESS,
    JobState.PARTS_ORDERED,
    JobState.TESTING,
    JobState.QUALITY_CHECK,
    JobState.COMPLETED,
    JobState.CUSTOMER_APPROVED,
    JobState.DELIVERED,
)


class Priority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class CustomerTier(str, Enum):
    STANDARD = "STANDARD"
    PREMIUM = "PREMIUM"
    ENTERPRISE = "ENTERPRISE"


class PartAvailability(str, Enum):
    IN_STOCK = "IN_STOCK"
    ORDER_REQUIRED = "ORDER_REQUIRED"
    RARE = "RARE"


class Recommendation(str, Enum):
    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    FAIR = "FAIR"
    POOR = "POOR"


class EscalationAction(str, Enum):
    EMAIL_REMINDER = "EMAIL_REMINDER"
    SMS_AND_EMAIL = "SMS_AND_EMAIL"
    MANAGER_NOTIFICATION = "MANAGER_NOTIFICATION"
