"""Tests for ORM ↔ domain mappers (no database needed)."""

from datetime import timedelta

from tests.fakes import NOW, make_job, make_technician

from repair_lifecycle.adapters.persistence.models import JobModel, TechnicianModel
from repair_lifecycle.adapters.persistence.repositories import (
    _job_to_domain,
    _technician_to_domain,
    job_to_row,
    technician_to_row,
)
from repair_lifecycle.domain.entities.job import EscalationRecord, PartLine
from repair_lifecycle.domain.entities.technician import AvailabilityWindow
from repair_lifecycle.domain.value_objects.enums import (
    EscalationAction,
    JobState,
    PartAvailability,
)


def _rich_job():
    job = make_job(
        "JOB-9",
        skills={"screen_repair", "battery"},
        technician_id="T1",
        parts=[PartLine("battery", 2, PartAvailability.RARE)],
        estimated_hours=3.5,
    )
    job.record_transition(JobState.IN_DIAGNOSIS, NOW + timedelta(hours=1), "bench", None)
    job.record_reassignment("T2", "shift change", "lead", NOW + timedelta(hours=2))
    job.escalations.append(
        EscalationRecord(
            1, EscalationAction.EMAIL_REMINDER, JobState.IN_DIAGNOSIS, NOW + timedelta(hours=3), True
        )
    )
    return job


def test_job_row_contains_persisted_fields():
    row = job_to_row(_rich_job())
    assert row["state"] == "IN_DIAGNOSIS"
    assert row["required_skills"] == ["battery", "screen_repair"]
    assert row["escalation_levels_fired"] == [1]
    assert row["history"][0]["from_state"] is None
    assert row["history"][1]["timestamp"] == (NOW + timedelta(hours=1)).isoformat()
    assert row["parts"] == [{"name": "battery", "quantity": 2, "availability": "RARE"}]
    assert row["estimated_hours"] == 3.5


def test_job_survives_row_mapping():
    job = _rich_job()
    restored = _job_to_domain(JobModel(**job_to_row(job)))
    assert restored == job


def test_technician_survives_row_mapping():
    tech = make_technician(
        "T1",
        skills={"screen_repair"},
        active_jobs={"JOB-1"},
        windows=[AvailabilityWindow(NOW, NOW + timedelta(hours=8))],
        committed_hours=3.5,
    )
    tech.take_job("JOB-2", 4.0)
    row = technician_to_row(tech)
    assert row["active_job_ids"] == ["JOB-1", "JOB-2"]
    assert row["job_hours"] == {"JOB-2": 4.0}
    restored = _technician_to_domain(TechnicianModel(**row))
    assert restored == tech


def test_technician_without_location():
    tech = make_technician("T1", location=None)
    restored = _technician_to_domain(TechnicianModel(**technician_to_row(tech)))
    assert restored.current_location is None
