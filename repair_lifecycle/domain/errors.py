"""Domain error taxonomy.

Validation errors reach the caller with their specific type; only
``StoreTimeoutError`` (and its lock variant) is meant to be retried.
"""

from __future__ import annotations


class LifecycleError(Exception):
    """Base class for every error raised by the lifecycle core."""

    retryable = False


class TransitionError(LifecycleError):
    """Requested state change is not legal for the job."""


class TerminalStateError(TransitionError):
    """Job is DELIVERED and accepts no further transitions."""


class PartsNotReadyError(TransitionError):
    """Bill of materials still has parts that are not in stock."""

    def __init__(self, job_id: str, pending: list[str]):
        self.job_id = job_id
        self.pending = pending
        super().__init__(
            f"Job {job_id} cannot enter TESTING, parts not in stock: {', '.join(pending)}"
        )


class NoEligibleTechnicianError(LifecycleError):
    """Filtered candidate pool is empty. Needs human intervention."""

    def __init__(self, job_id: str, exclusions: dict[str, str] | None = None):
        self.job_id = job_id
        self.exclusions = exclusions or {}
        super().__init__(
            f"No eligible technician for job {job_id} "
            f"({len(self.exclusions)} candidate(s) excluded)"
        )


class StaleAssignmentError(LifecycleError):
    """Job moved on while an assignment was being computed."""


class AlreadyAssignedError(LifecycleError):
    """Job already has a technician; reassignment must be requested explicitly."""


class JobNotFoundError(LifecycleError):
    pass


class TechnicianNotFoundError(LifecycleError):
    pass


class DuplicateJobError(LifecycleError):
    pass


class StoreTimeoutError(LifecycleError):
    """A store call did not finish within its time budget."""

    retryable = True

    def __init__(self, operation: str, timeout: float):
        self.operation = operation
        self.timeout = timeout
        super().__init__(f"{operation} timed out after {timeout:.1f}s")


class LockTimeoutError(StoreTimeoutError):
    """Per-job or per-technician lock could not be acquired in time."""


class NotificationDispatchError(LifecycleError):
    """Notification collaborator failed. Logged, never fatal."""
