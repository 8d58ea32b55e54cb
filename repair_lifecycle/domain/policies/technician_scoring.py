"""TechnicianScoringPolicy — hard exclusions, sub-scores and ranking.

Every sub-score is on a 0-100 scale. The overall score is the weighted sum
using ``ScoringWeights``; the ranking is deterministic for a given pool
regardless of the order the pool is supplied in.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from repair_lifecycle.domain.entities.assignment import AssignmentScore
from repair_lifecycle.domain.entities.job import Job
from repair_lifecycle.domain.entities.technician import Technician
from repair_lifecycle.domain.value_objects.enums import Priority, Recommendation
from repair_lifecycle.domain.value_objects.lifecycle_config import ScoringPolicy


@dataclass(frozen=True)
class ScoreCard:
    """Sub-scores for one (job, technician) pair before ranking."""

    technician_id: str
    skill_match_score: float
    availability_score: float
    location_score: float
    performance_score: float
    workload_score: float
    overall_score: float
    active_job_count: int
    distance_km: float | None


def skill_match_score(required: frozenset[str], skills: set[str]) -> float:
    """Share of required skills the technician has, scaled to 100."""
    if not required:
        return 100.0
    return 100.0 * len(required & skills) / len(required)


def location_score(distance_km: float | None, max_travel_km: float) -> float:
    """Linear decay with distance, 0 at (and beyond) the travel radius."""
    if distance_km is None or max_travel_km <= 0:
        return 0.0
    return max(0.0, 100.0 * (1 - distance_km / max_travel_km))


def workload_score(active_jobs: int, penalty_per_job: float, exponent: float) -> float:
    """Each extra active job costs more than the previous one."""
    return max(0.0, 100.0 - penalty_per_job * (active_jobs ** exponent))


def availability_score(capacity_hours: float, booked_hours: float) -> float:
    """Share of the SLA window still free after booked work, scaled to 100."""
    if capacity_hours <= 0:
        return 0.0
    free_share = (capacity_hours - booked_hours) / capacity_hours
    return max(0.0, min(100.0, 100.0 * free_share))


def recommendation_for(overall: float) -> Recommendation:
    if overall >= 85:
        return Recommendation.EXCELLENT
    if overall >= 70:
        return Recommendation.GOOD
    if overall >= 50:
        return Recommendation.FAIR
    return Recommendation.POOR


def reasoning_factors(card: ScoreCard) -> tuple[str, ...]:
    factors: list[str] = []

    if card.skill_match_score >= 100:
        factors.append("Covers every required skill")

    if card.availability_score >= 80:
        factors.append("Plenty of free capacity before the SLA deadline")
    elif card.availability_score >= 50:
        factors.append("Available within the SLA window")
    else:
        factors.append("Tight capacity inside the SLA window")

    if card.location_score >= 80:
        factors.append("Close to the job location")
    elif card.location_score > 0:
        factors.append("Reasonable travel distance")
    else:
        factors.append("Outside the normal travel radius")

    if card.performance_score >= 80:
        factors.append("Outstanding performance history")
    elif card.performance_score < 60:
        factors.append("Performance below average")

    if card.workload_score >= 80:
        factors.append("Light current workload")
    elif card.workload_score < 50:
        factors.append("Heavy workload, delays possible")

    return tuple(factors)


def sort_key(card: ScoreCard) -> tuple:
    """Highest score first; then fewer active jobs, better performance, smaller id."""
    return (
        -card.overall_score,
        card.active_job_count,
        -card.performance_score,
        card.technician_id,
    )


def confidence_for(score: float, others: list[float], spread: float) -> float:
    """Lead over the best other candidate, normalised to [0, 1]."""
    if not others:
        return 1.0
    if spread <= 0:
        return 1.0 if score > max(others) else 0.0
    lead = score - max(others)
    return round(max(0.0, min(1.0, lead / spread)), 4)


class TechnicianScorer:
    """Scores a single technician against a single job."""

    def __init__(self, policy: ScoringPolicy):
        self._policy = policy

    @property
    def policy(self) -> ScoringPolicy:
        return self._policy

    def horizons(self, job: Job, now: datetime) -> tuple[datetime, datetime]:
        """(response_end, capacity_end) windows measured from ``now``.

        Overdue jobs still get a minimum look-ahead so that someone can pick
        them up.
        """
        floor = now + timedelta(hours=self._policy.min_availability_horizon_hours)
        response_end = max(job.sla_response_deadline, floor)
        capacity_end = max(job.sla_completion_deadline, response_end)
        return response_end, capacity_end

    def exclusion_reason(self, job: Job, technician: Technician, now: datetime) -> str | None:
        """Hard filters. Returns a reason when the technician cannot be considered."""
        missing = technician.missing_skills(job.required_skills)
        if missing:
            return f"missing skills: {', '.join(sorted(missing))}"

        response_end, capacity_end = self.horizons(job, now)
        if technician.available_hours(now, response_end) <= 0:
            return "no availability before the SLA response deadline"
        if technician.available_hours(now, capacity_end) - technician.booked_hours <= 0:
            return "no free capacity inside the SLA window"

        distance = job.location.distance_km(technician.current_location)
        beyond_radius = distance is None or distance > self._policy.max_travel_km
        if beyond_radius and job.priority != Priority.URGENT:
            if distance is None:
                return "location unknown"
            return f"beyond travel radius ({distance:.1f} km > {self._policy.max_travel_km:.0f} km)"

        return None

    def score(self, job: Job, technician: Technician, now: datetime) -> ScoreCard:
        """Compute the five sub-scores and their weighted sum.

        Callers are expected to have applied ``exclusion_reason`` first.
        """
        policy = self._policy
        weights = policy.weights
        _, capacity_end = self.horizons(job, now)

        distance = job.location.distance_km(technician.current_location)
        skill = skill_match_score(job.required_skills, technician.skills)
        availability = availability_score(
            technician.available_hours(now, capacity_end), technician.booked_hours
        )
        location = location_score(distance, policy.max_travel_km)
        performance = technician.performance_score
        workload = workload_score(
            technician.active_job_count,
            policy.workload_penalty_per_job,
            policy.workload_exponent,
        )

        overall = (
            weights.skill * skill
            + weights.availability * availability
            + weights.location * location
            + weights.performance * performance
            + weights.workload * workload
        )

        return ScoreCard(
            technician_id=technician.id,
            skill_match_score=round(skill, 2),
            availability_score=round(availability, 2),
            location_score=round(location, 2),
            performance_score=round(performance, 2),
            workload_score=round(workload, 2),
            overall_score=round(overall, 2),
            active_job_count=technician.active_job_count,
            distance_km=round(distance, 2) if distance is not None else None,
        )


def rank_cards(cards: list[ScoreCard], spread: float) -> list[AssignmentScore]:
    """Order score cards best-first and attach confidence and recommendation."""
    ordered = sorted(cards, key=sort_key)
    ranked: list[AssignmentScore] = []
    for i, card in enumerate(ordered):
        others = [c.overall_score for j, c in enumerate(ordered) if j != i]
        ranked.append(
            AssignmentScore(
                technician_id=card.technician_id,
                skill_match_score=card.skill_match_score,
                availability_score=card.availability_score,
                location_score=card.location_score,
                performance_score=card.performance_score,
                workload_score=card.workload_score,
                overall_score=card.overall_score,
                confidence=confidence_for(card.overall_score, others, spread),
                recommendation=recommendation_for(card.overall_score),
                distance_km=card.distance_km,
                reasoning_factors=reasoning_factors(card),
            )
        )
    return ranked
