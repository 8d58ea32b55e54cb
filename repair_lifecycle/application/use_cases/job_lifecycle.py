"""JobLifecycleService — the façade consumed by the API layer.

Every mutation of a job runs under that job's lock: load, validate, apply to a
working copy, persist. A failure at any step leaves the stored record exactly
as it was.
"""

from __future__ import annotations

import copy
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from repair_lifecycle.application.ports.job_repo import JobRepository
from repair_lifecycle.application.ports.notifier_port import NotificationEvent, NotifierPort
from repair_lifecycle.application.ports.technician_repo import TechnicianRepository
from repair_lifecycle.application.services.bounded import bounded
from repair_lifecycle.application.services.clock import utc_now
from repair_lifecycle.application.services.locks import LockRegistry
from repair_lifecycle.application.use_cases.assignment_engine import AssignmentEngine
from repair_lifecycle.application.use_cases.escalation_scheduler import (
    EscalationScheduler,
    EscalationStatus,
    dispatch_quietly,
)
from repair_lifecycle.domain.commands import (
    SYSTEM_ACTOR,
    AdvanceJobCommand,
    CandidatePoolFilter,
    JobSpec,
    ReassignCommand,
    RequestAssignmentCommand,
)
from repair_lifecycle.domain.entities.assignment import AssignmentResult
from repair_lifecycle.domain.entities.job import EscalationRecord, HistoryEntry, Job, PartLine
from repair_lifecycle.domain.errors import (
    JobNotFoundError,
    LifecycleError,
    TransitionError,
)
from repair_lifecycle.domain.policies.sla import compute_sla_deadlines
from repair_lifecycle.domain.policies.transitions import TransitionValidator
from repair_lifecycle.domain.value_objects.enums import EscalationAction, JobState
from repair_lifecycle.domain.value_objects.lifecycle_config import LifecycleConfig

logger = logging.getLogger(__name__)


@dataclass
class JobCreation:
    job: Job
    assignment: AssignmentResult | None = None
    assignment_error: LifecycleError | None = None


class JobLifecycleService:
    def __init__(
        self,
        config: LifecycleConfig,
        job_repo: JobRepository,
        technician_repo: TechnicianRepository,
        notifier: NotifierPort,
        locks: LockRegistry | None = None,
        store_timeout: float | None = 5.0,
        notification_timeout: float | None = 5.0,
        clock: Callable[[], datetime] | None = None,
    ):
        self._config = config
        self._jobs = job_repo
        self._technicians = technician_repo
        self._notifier = notifier
        self._locks = locks or LockRegistry()
        self._timeout = store_timeout
        self._notification_timeout = notification_timeout
        self._clock = clock or utc_now
        self._validator = TransitionValidator(config.max_reworks)
        self.engine = AssignmentEngine(
            config, job_repo, technician_repo, self._locks, store_timeout, self._clock
        )
        self.scheduler = EscalationScheduler(
            job_repo,
            notifier,
            config.escalation,
            self._locks,
            store_timeout=store_timeout,
            notification_timeout=notification_timeout,
            clock=self._clock,
            on_escalated=self._after_escalation,
        )

    @property
    def config(self) -> LifecycleConfig:
        return self._config

    # ─── CreateJob ───────────────────────────────────────────────────

    async def create_job(self, spec: JobSpec) -> JobCreation:
        """Create a job in CREATED with SLA deadlines, then optionally assign it.

        An assignment failure does not undo the creation; the error is returned
        alongside the job so the caller can route it to a human.
        """
        now = self._clock()
        job_id = spec.job_id or f"JOB-{uuid.uuid4().hex[:12].upper()}"
        deadlines = compute_sla_deadlines(
            spec.priority, spec.customer_tier, now, self._config.sla
        )
        job = Job(
            id=job_id,
            state=JobState.CREATED,
            priority=spec.priority,
            customer_tier=spec.customer_tier,
            required_skills=frozenset(spec.required_skills),
            location=spec.location,
            sla_response_deadline=deadlines.response,
            sla_completion_deadline=deadlines.completion,
            state_entered_at=now,
            history=[
                HistoryEntry(
                    from_state=None,
                    to_state=JobState.CREATED,
                    timestamp=now,
                    actor=spec.actor,
                )
            ],
            parts=list(spec.parts),
            estimated_hours=spec.estimated_hours,
        )

        async with self._locks.job(job_id):
            job = await bounded(self._jobs.add(job), self._timeout, "create job")
        logger.info(
            "Job %s created (%s/%s, skills=%s), response due %s",
            job.id, job.priority.value, job.customer_tier.value,
            sorted(job.required_skills), job.sla_response_deadline.isoformat(),
        )

        auto_assign = spec.auto_assign
        if auto_assign is None:
            auto_assign = self._config.auto_assign_on_create
        if not auto_assign:
            return JobCreation(job=job)

        try:
            result = await self.engine.request(
                job.id, CandidatePoolFilter(), spec.actor, "initial assignment"
            )
        except LifecycleError as exc:
            logger.warning("Job %s: automatic assignment failed: %s", job.id, exc)
            return JobCreation(job=job, assignment_error=exc)

        return JobCreation(job=await self.get_job(job.id), assignment=result)

    # ─── AdvanceJob ──────────────────────────────────────────────────

    async def advance_job(self, command: AdvanceJobCommand) -> Job:
        """Validate and apply one state change.

        Raises:
            JobNotFoundError: unknown job.
            TransitionError / TerminalStateError / PartsNotReadyError:
                the move is not legal; the job is left unchanged.
            StoreTimeoutError: store or lock exceeded its time budget.
        """
        async with self._locks.job(command.job_id):
            job = await self._load(command.job_id)
            plan = self._validator.plan(job, command.target_state, command.reason)

            now = self._clock()
            updated = copy.deepcopy(job)
            updated.record_transition(plan.to_state, now, command.actor, plan.reason)
            updated.rework_count = plan.rework_count

            release_from = None
            if plan.to_state == JobState.DELIVERED and updated.assigned_technician_id:
                release_from = updated.assigned_technician_id

            if release_from is None:
                await bounded(self._jobs.save(updated), self._timeout, "save job")
            else:
                await self._save_and_release(updated, release_from)

        if plan.escalated:
            logger.warning(
                "Job %s failed quality check after %d rework(s), escalated by %s: %s",
                job.id, plan.rework_count, command.actor, plan.reason,
            )
            await dispatch_quietly(
                self._notifier,
                NotificationEvent(
                    job_id=job.id,
                    kind="rework_limit",
                    action=EscalationAction.MANAGER_NOTIFICATION,
                    state=JobState.ESCALATED,
                    occurred_at=now,
                    message=(
                        f"Job {job.id} failed quality check after "
                        f"{plan.rework_count} rework(s): {plan.reason}"
                    ),
                ),
                self._notification_timeout,
            )
        else:
            logger.info(
                "Job %s: %s → %s by %s",
                job.id, plan.from_state.value, plan.to_state.value, command.actor,
            )
        return updated

    async def _save_and_release(self, job: Job, technician_id: str) -> None:
        async with self._locks.technician_set([technician_id]):
            released = await bounded(
                self._technicians.remove_active_job(technician_id, job.id),
                self._timeout,
                "release technician",
            )
            try:
                await bounded(self._jobs.save(job), self._timeout, "save job")
            except Exception:
                if released:
                    await bounded(
                        self._technicians.add_active_job(
                            technician_id, job.id, job.estimated_hours
                        ),
                        self._timeout,
                        "restore technician workload",
                    )
                raise
        logger.info("Job %s delivered, technician %s released", job.id, technician_id)

    # ─── Assignment ──────────────────────────────────────────────────

    async def request_assignment(self, command: RequestAssignmentCommand) -> AssignmentResult:
        return await self.engine.request(
            command.job_id, command.pool, command.actor, "initial assignment"
        )

    async def reassign_job(self, command: ReassignCommand) -> AssignmentResult:
        """Move the job to the best technician other than the current one."""
        reason = command.reason.strip() if command.reason else ""
        if not reason:
            raise TransitionError("A reason is required to reassign a job")
        return await self.engine.request(
            command.job_id, command.pool, command.actor, reason, reassign=True
        )

    # ─── Escalation ──────────────────────────────────────────────────

    async def get_escalation_status(self, job_id: str) -> EscalationStatus:
        return await self.scheduler.status(job_id)

    async def run_escalation_sweep(self) -> int:
        return await self.scheduler.run_once()

    async def _after_escalation(self, job: Job, fired: list[EscalationRecord]) -> None:
        threshold = self._config.reassign_on_escalation_level
        if threshold is None or not job.assigned_technician_id or not job.state.is_open:
            return
        if not any(r.level >= threshold for r in fired):
            return
        top = max(r.level for r in fired)
        try:
            await self.engine.request(
                job.id,
                CandidatePoolFilter(),
                SYSTEM_ACTOR,
                f"escalation level {top} in {job.state.value}",
                reassign=True,
            )
        except LifecycleError as exc:
            logger.warning("Job %s: reassignment after escalation failed: %s", job.id, exc)

    # ─── Reads and maintenance ───────────────────────────────────────

    async def get_job(self, job_id: str) -> Job:
        return await self._load(job_id)

    async def update_parts(self, job_id: str, parts: list[PartLine], actor: str = SYSTEM_ACTOR) -> Job:
        """Replace the bill of materials. Not allowed once DELIVERED or ESCALATED."""
        async with self._locks.job(job_id):
            job = await self._load(job_id)
            if not job.state.is_open:
                raise TransitionError(
                    f"Job {job_id} is {job.state.value}; parts can no longer change"
                )
            updated = copy.deepcopy(job)
            updated.parts = list(parts)
            await bounded(self._jobs.save(updated), self._timeout, "save job")
        logger.info(
            "Job %s parts updated by %s (%d line(s), %d pending)",
            job_id, actor, len(updated.parts), len(updated.pending_parts()),
        )
        return updated

    async def archive_job(self, job_id: str, actor: str = SYSTEM_ACTOR) -> Job:
        async with self._locks.job(job_id):
            job = await self._load(job_id)
            if job.state != JobState.DELIVERED:
                raise TransitionError(
                    f"Job {job_id} is {job.state.value}; only delivered jobs can be archived"
                )
            if job.archived:
                return job
            updated = copy.deepcopy(job)
            updated.archived = True
            await bounded(self._jobs.save(updated), self._timeout, "archive job")
        logger.info("Job %s archived by %s", job_id, actor)
        return updated

    async def _load(self, job_id: str) -> Job:
        job = await bounded(self._jobs.get_by_id(job_id), self._timeout, "load job")
        if job is None:
            raise JobNotFoundError(f"Job {job_id} not found")
        return job
