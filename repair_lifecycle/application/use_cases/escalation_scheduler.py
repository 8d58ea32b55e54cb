"""EscalationScheduler — decides whether and which escalation level to fire.

Delivery belongs to the notifier. Bookkeeping is at-most-once: a level is
persisted as fired before the notification goes out, and a failed dispatch
never un-fires it.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from datetime import datetime

from repair_lifecycle.application.ports.job_repo import JobRepository
from repair_lifecycle.application.ports.notifier_port import NotificationEvent, NotifierPort
from repair_lifecycle.application.services.bounded import bounded
from repair_lifecycle.application.services.clock import utc_now
from repair_lifecycle.application.services.locks import LockRegistry
from repair_lifecycle.domain.entities.job import EscalationRecord, Job
from repair_lifecycle.domain.errors import (
    JobNotFoundError,
    LifecycleError,
    NotificationDispatchError,
)
from repair_lifecycle.domain.policies.escalation import due_levels
from repair_lifecycle.domain.value_objects.lifecycle_config import EscalationPolicy

logger = logging.getLogger(__name__)

EscalationHook = Callable[[Job, list[EscalationRecord]], Awaitable[None]]


@dataclass
class EscalationStatus:
    job_id: str
    level: int
    fired: list[EscalationRecord] = field(default_factory=list)

    @property
    def fired_at(self) -> list[datetime]:
        return [r.fired_at for r in self.fired]


async def dispatch_quietly(
    notifier: NotifierPort,
    event: NotificationEvent,
    timeout: float | None,
) -> bool:
    """Send one event. Failures are logged and reported as False, never raised."""
    try:
        await asyncio.wait_for(notifier.dispatch(event), timeout)
        return True
    except asyncio.TimeoutError:
        logger.warning(
            "Notification for job %s (%s) timed out after %ss",
            event.job_id, event.action.value, timeout,
        )
    except NotificationDispatchError as exc:
        logger.warning(
            "Notification for job %s (%s) failed: %s",
            event.job_id, event.action.value, exc,
        )
    return False


class EscalationScheduler:
    def __init__(
        self,
        job_repo: JobRepository,
        notifier: NotifierPort,
        policy: EscalationPolicy,
        locks: LockRegistry,
        store_timeout: float | None = 5.0,
        notification_timeout: float | None = 5.0,
        clock: Callable[[], datetime] | None = None,
        on_escalated: EscalationHook | None = None,
    ):
        self._jobs = job_repo
        self._notifier = notifier
        self._policy = policy
        self._locks = locks
        self._store_timeout = store_timeout
        self._notification_timeout = notification_timeout
        self._clock = clock or utc_now
        self._on_escalated = on_escalated

    async def check_job(self, job_id: str, now: datetime | None = None) -> list[EscalationRecord]:
        """Fire every level the job is due for and has not fired yet.

        Calling it again with nothing new due is a no-op returning [].
        """
        now = now or self._clock()
        async with self._locks.job(job_id):
            job = await bounded(self._jobs.get_by_id(job_id), self._store_timeout, "load job")
            if job is None:
                raise JobNotFoundError(f"Job {job_id} not found")

            levels = due_levels(job, now, self._policy)
            if not levels:
                return []

            updated = copy.deepcopy(job)
            for level in levels:
                updated.escalations.append(
                    EscalationRecord(
                        level=level.level,
                        action=level.action,
                        state=job.state,
                        fired_at=now,
                    )
                )
            # Persisted before dispatch: a crash after this point can lose a
            # notification but can never send one twice.
            await bounded(self._jobs.save(updated), self._store_timeout, "save escalation")

            delivered: dict[int, bool] = {}
            for level in levels:
                hours = job.time_in_state(now).total_seconds() / 3600
                logger.info(
                    "Job %s escalated to level %d (%s) after %.1fh in %s",
                    job.id, level.level, level.action.value, hours, job.state.value,
                )
                event = NotificationEvent(
                    job_id=job.id,
                    kind="escalation",
                    action=level.action,
                    state=job.state,
                    occurred_at=now,
                    level=level.level,
                    message=f"Job {job.id} has been in {job.state.value} for {hours:.1f}h",
                )
                delivered[level.level] = await dispatch_quietly(
                    self._notifier, event, self._notification_timeout
                )

            if any(delivered.values()):
                updated.escalations = [
                    replace(r, delivered=True) if delivered.get(r.level) and r.fired_at == now else r
                    for r in updated.escalations
                ]
                await bounded(self._jobs.save(updated), self._store_timeout, "save escalation")

            fired = [r for r in updated.escalations if r.fired_at == now and r.level in delivered]

        if self._on_escalated is not None:
            await self._on_escalated(updated, fired)
        return fired

    async def status(self, job_id: str, now: datetime | None = None) -> EscalationStatus:
        """Lazy read-time check followed by the job's escalation summary."""
        await self.check_job(job_id, now)
        job = await bounded(self._jobs.get_by_id(job_id), self._store_timeout, "load job")
        if job is None:
            raise JobNotFoundError(f"Job {job_id} not found")
        return EscalationStatus(
            job_id=job.id,
            level=job.escalation_level,
            fired=sorted(job.current_escalations(), key=lambda r: r.level),
        )

    async def run_once(self, now: datetime | None = None) -> int:
        """Sweep all open jobs. Returns the number of levels fired."""
        now = now or self._clock()
        jobs = await bounded(self._jobs.get_open(), self._store_timeout, "load open jobs")
        fired = 0
        for job in jobs:
            if not due_levels(job, now, self._policy):
                continue
            try:
                fired += len(await self.check_job(job.id, now))
            except LifecycleError as exc:
                logger.warning("Escalation check failed for job %s: %s", job.id, exc)
            except Exception:
                logger.exception("Escalation check crashed for job %s", job.id)
        if fired:
            logger.info("Escalation sweep fired %d level(s) across %d open job(s)", fired, len(jobs))
        return fired
