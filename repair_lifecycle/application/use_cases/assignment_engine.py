"""AssignmentEngine — rank the candidate pool and commit the winner.

Flow of one request:
1. Load the job and the candidate pool (outside the job lock) and reject an
   empty pool early.
2. Take the job lock, reload the job and abort with ``StaleAssignmentError``
   if it changed since step 1.
3. Take the technician locks (previous holder plus candidates, sorted),
   reload the candidates, filter hard exclusions and score them.
4. Move the job between active sets with its estimated hours.
5. Persist the job; on failure undo the technician changes.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from repair_lifecycle.application.ports.job_repo import JobRepository
from repair_lifecycle.application.ports.technician_repo import TechnicianRepository
from repair_lifecycle.application.services.bounded import bounded
from repair_lifecycle.application.services.clock import utc_now
from repair_lifecycle.application.services.locks import LockRegistry
from repair_lifecycle.domain.commands import CandidatePoolFilter
from repair_lifecycle.domain.entities.assignment import AssignmentResult, AssignmentScore
from repair_lifecycle.domain.entities.job import Job
from repair_lifecycle.domain.entities.technician import Technician
from repair_lifecycle.domain.errors import (
    AlreadyAssignedError,
    JobNotFoundError,
    NoEligibleTechnicianError,
    StaleAssignmentError,
    TransitionError,
)
from repair_lifecycle.domain.policies.technician_scoring import (
    TechnicianScorer,
    rank_cards,
)
from repair_lifecycle.domain.value_objects.lifecycle_config import LifecycleConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JobSnapshot:
    """What an in-flight assignment expects the job to still look like."""

    job_id: str
    state: str
    history_length: int
    assigned_technician_id: str | None

    @classmethod
    def of(cls, job: Job) -> "JobSnapshot":
        return cls(
            job_id=job.id,
            state=job.state.value,
            history_length=len(job.history),
            assigned_technician_id=job.assigned_technician_id,
        )


def build_reason(technician: Technician | None, score: AssignmentScore) -> str:
    reasons = []
    if score.skill_match_score >= 80:
        reasons.append("strong skill alignment")
    if score.availability_score >= 80:
        reasons.append("immediate availability")
    if score.location_score >= 80:
        reasons.append("optimal location")
    if score.performance_score >= 80:
        reasons.append("excellent track record")
    main = ", ".join(reasons) if reasons else "best available option"
    name = technician.name if technician else score.technician_id
    return (
        f"Assigned to {name} based on {main} "
        f"(score {score.overall_score:.0f}/100, confidence {score.confidence:.0%})"
    )


class AssignmentEngine:
    """Selects and commits the best technician for a job."""

    def __init__(
        self,
        config: LifecycleConfig,
        job_repo: JobRepository,
        technician_repo: TechnicianRepository,
        locks: LockRegistry,
        store_timeout: float | None = 5.0,
        clock: Callable[[], datetime] | None = None,
    ):
        self._config = config
        self._jobs = job_repo
        self._technicians = technician_repo
        self._locks = locks
        self._timeout = store_timeout
        self._clock = clock or utc_now
        self._scorer = TechnicianScorer(config.scoring)

    # ─── Pure selection ──────────────────────────────────────────────

    def assign(
        self,
        job: Job,
        candidate_pool: list[Technician],
        now: datetime,
        previous_technician_id: str | None = None,
    ) -> AssignmentResult:
        """Rank ``candidate_pool`` for ``job`` without touching any store.

        Returns the winner, its score, up to ``max_alternatives`` runners-up,
        a human-readable reason and the winner's estimated start and
        completion times.

        Raises:
            NoEligibleTechnicianError: every candidate hit a hard exclusion.
        """
        excluded: dict[str, str] = {}
        cards = []
        by_id: dict[str, Technician] = {}
        for technician in candidate_pool:
            reason = self._scorer.exclusion_reason(job, technician, now)
            if reason is not None:
                excluded[technician.id] = reason
                logger.debug("Job %s: technician %s excluded (%s)", job.id, technician.id, reason)
                continue
            by_id[technician.id] = technician
            cards.append(self._scorer.score(job, technician, now))

        if not cards:
            raise NoEligibleTechnicianError(job.id, excluded)

        ranked = rank_cards(cards, self._config.scoring.confidence_spread)
        winner = ranked[0]
        alternatives = ranked[1 : 1 + self._config.scoring.max_alternatives]

        chosen = by_id[winner.technician_id]
        start = chosen.next_available(now) + timedelta(
            minutes=self._config.scoring.start_lead_minutes
        )
        return AssignmentResult(
            job_id=job.id,
            technician_id=winner.technician_id,
            score=winner,
            alternatives=alternatives,
            reason=build_reason(chosen, winner),
            config_version=self._config.version,
            previous_technician_id=previous_technician_id,
            excluded=excluded,
            estimated_start=start,
            estimated_completion=start + timedelta(hours=job.estimated_hours),
        )

    # ─── Request / commit ────────────────────────────────────────────

    async def request(
        self,
        job_id: str,
        pool: CandidatePoolFilter,
        actor: str,
        reason: str,
        reassign: bool = False,
    ) -> AssignmentResult:
        """Score the pool for a job and commit the winner under the job lock.

        Raises:
            JobNotFoundError, TransitionError: job missing or not assignable.
            AlreadyAssignedError: first assignment requested on an assigned job.
            NoEligibleTechnicianError: nobody survives the hard filters.
            StaleAssignmentError: job changed while the pool was being scored.
            StoreTimeoutError: a store call or lock exceeded its time budget.
        """
        job = await self._load_job(job_id)
        self._ensure_assignable(job, reassign)
        expected = JobSnapshot.of(job)

        if reassign and job.assigned_technician_id:
            pool = CandidatePoolFilter(
                technician_ids=pool.technician_ids,
                exclude_ids=pool.exclude_ids | {job.assigned_technician_id},
            )
        candidates = await self._load_pool(pool)

        now = self._clock()
        # Fails fast on an empty pool; the binding ranking runs in commit().
        self.assign(job, candidates, now, job.assigned_technician_id)
        return await self.commit(
            expected, [t.id for t in candidates], actor, reason, now
        )

    async def commit(
        self,
        expected: JobSnapshot,
        candidate_ids: list[str],
        actor: str,
        reason: str,
        now: datetime,
    ) -> AssignmentResult:
        """Re-rank the candidates under their locks and persist the winner.

        The job lock is held first, then the locks of the previous technician
        and every candidate in sorted order. Candidates are reloaded under
        those locks, so bookings committed by a concurrent request are part
        of the final ranking.
        """
        async with self._locks.job(expected.job_id):
            current = await self._load_job(expected.job_id)
            if JobSnapshot.of(current) != expected:
                logger.info(
                    "Job %s changed during assignment (%s → %s), aborting",
                    expected.job_id, expected.state, current.state.value,
                )
                raise StaleAssignmentError(
                    f"Job {expected.job_id} changed while the assignment was computed"
                )

            previous = current.assigned_technician_id
            async with self._locks.technician_set([previous, *candidate_ids]):
                fresh = await bounded(
                    self._technicians.get_many(set(candidate_ids)),
                    self._timeout,
                    "reload technicians",
                )
                result = self.assign(current, fresh, now, previous)
                new = result.technician_id

                updated = copy.deepcopy(current)
                if previous is None:
                    updated.assigned_technician_id = new
                else:
                    updated.record_reassignment(new, reason, actor, now)

                hours = current.estimated_hours
                try:
                    await self._move_active_job(result.job_id, previous, new, hours)
                    await bounded(self._jobs.save(updated), self._timeout, "save job")
                except Exception:
                    logger.exception(
                        "Job %s: saving the assignment failed, restoring technician workloads",
                        result.job_id,
                    )
                    await self._move_active_job(result.job_id, new, previous, hours)
                    raise

        result.committed_at = now
        if previous is None:
            logger.info(
                "Job %s → technician %s (score %.1f, confidence %.2f, %s)",
                result.job_id, new, result.score.overall_score,
                result.score.confidence, result.score.recommendation.value,
            )
        else:
            logger.info(
                "Job %s reassigned %s → %s by %s: %s",
                result.job_id, previous, new, actor, reason,
            )
        return result

    # ─── Helpers ─────────────────────────────────────────────────────

    async def _load_job(self, job_id: str) -> Job:
        job = await bounded(self._jobs.get_by_id(job_id), self._timeout, "load job")
        if job is None:
            raise JobNotFoundError(f"Job {job_id} not found")
        return job

    async def _load_pool(self, pool: CandidatePoolFilter) -> list[Technician]:
        if pool.technician_ids is not None:
            technicians = await bounded(
                self._technicians.get_many(set(pool.technician_ids)),
                self._timeout,
                "load technicians",
            )
        else:
            technicians = await bounded(
                self._technicians.get_all(), self._timeout, "load technicians"
            )
        return [t for t in technicians if pool.admits(t.id)]

    def _ensure_assignable(self, job: Job, reassign: bool) -> None:
        if not job.state.is_open:
            raise TransitionError(
                f"Job {job.id} is {job.state.value}; assignments are no longer accepted"
            )
        if job.assigned_technician_id and not reassign:
            raise AlreadyAssignedError(
                f"Job {job.id} is already assigned to {job.assigned_technician_id}"
            )

    async def _move_active_job(
        self, job_id: str, from_id: str | None, to_id: str | None, hours: float
    ) -> None:
        if from_id:
            await bounded(
                self._technicians.remove_active_job(from_id, job_id),
                self._timeout,
                "decrement technician workload",
            )
        if to_id:
            await bounded(
                self._technicians.add_active_job(to_id, job_id, hours),
                self._timeout,
                "increment technician workload",
            )
