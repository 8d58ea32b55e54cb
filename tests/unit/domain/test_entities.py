"""Tests for domain entities."""

from datetime import timedelta

from tests.fakes import NOW, make_job, make_technician

from repair_lifecycle.domain.entities.job import EscalationRecord, PartLine
from repair_lifecycle.domain.entities.technician import AvailabilityWindow
from repair_lifecycle.domain.value_objects.enums import (
    EscalationAction,
    JobState,
    PartAvailability,
)


def test_record_transition_appends_history():
    job = make_job()
    later = NOW + timedelta(hours=1)
    entry = job.record_transition(JobState.IN_DIAGNOSIS, later, "alice")
    assert job.state == JobState.IN_DIAGNOSIS
    assert job.state_entered_at == later
    assert job.history[-1] == entry
    assert entry.from_state == JobState.CREATED
    assert len(job.history) == 2


def test_record_reassignment_keeps_previous():
    job = make_job(technician_id="T1")
    entry = job.record_reassignment("T2", "sick leave", "dispatcher", NOW)
    assert entry.previous_technician_id == "T1"
    assert job.assigned_technician_id == "T2"
    assert job.reassignments == [entry]


def test_pending_parts():
    job = make_job(parts=[
        PartLine("screen"),
        PartLine("battery", availability=PartAvailability.ORDER_REQUIRED),
        PartLine("hinge", availability=PartAvailability.RARE),
    ])
    assert [p.name for p in job.pending_parts()] == ["battery", "hinge"]
    assert not job.parts_ready()


def test_no_parts_means_ready():
    assert make_job().parts_ready()


def test_escalation_level_is_highest_fired():
    job = make_job()
    assert job.escalation_level == 0
    job.escalations.append(
        EscalationRecord(2, EscalationAction.SMS_AND_EMAIL, JobState.CREATED, NOW)
    )
    job.escalations.append(
        EscalationRecord(1, EscalationAction.EMAIL_REMINDER, JobState.CREATED, NOW)
    )
    assert job.escalation_level == 2
    assert job.escalation_levels_fired == [1, 2]
    assert job.has_fired(1)
    assert not job.has_fired(3)


def test_technician_active_jobs_idempotent():
    t = make_technician("T1")
    assert t.take_job("J1") is True
    assert t.take_job("J1") is False
    assert t.active_job_count == 1
    assert t.release_job("J1") is True
    assert t.release_job("J1") is False
    assert t.active_job_count == 0


def test_booked_hours_follow_active_jobs():
    t = make_technician("T1", committed_hours=3.0)
    t.take_job("J1", 4.0)
    t.take_job("J2", 1.5)
    assert t.take_job("J1", 10.0) is False
    assert t.booked_hours == 8.5
    t.release_job("J1")
    assert t.job_hours == {"J2": 1.5}
    assert t.booked_hours == 4.5


def test_next_available_inside_window_is_now():
    t = make_technician("T1", windows=[
        AvailabilityWindow(NOW - timedelta(hours=1), NOW + timedelta(hours=4)),
    ])
    assert t.next_available(NOW) == NOW


def test_next_available_waits_for_next_window():
    t = make_technician("T1", windows=[
        AvailabilityWindow(NOW - timedelta(hours=5), NOW - timedelta(hours=1)),
        AvailabilityWindow(NOW + timedelta(hours=9), NOW + timedelta(hours=17)),
        AvailabilityWindow(NOW + timedelta(hours=3), NOW + timedelta(hours=6)),
    ])
    assert t.next_available(NOW) == NOW + timedelta(hours=3)


def test_next_available_without_windows():
    assert make_technician("T1").next_available(NOW) == NOW

def test_technician_missing_skills():
    t = make_technician("T1", skills={"screen_repair", "battery"})
    assert t.missing_skills(frozenset({"screen_repair", "water_damage"})) == {"water_damage"}


def test_available_hours_without_windows_is_whole_interval():
    t = make_technician("T1")
    assert t.available_hours(NOW, NOW + timedelta(hours=6)) == 6.0


def test_available_hours_sums_window_overlap():
    t = make_technician("T1", windows=[
        AvailabilityWindow(NOW + timedelta(hours=1), NOW + timedelta(hours=3)),
        AvailabilityWindow(NOW + timedelta(hours=5), NOW + timedelta(hours=10)),
    ])
    assert t.available_hours(NOW, NOW + timedelta(hours=6)) == 3.0


def test_available_hours_empty_interval():
    t = make_technician("T1")
    assert t.available_hours(NOW, NOW) == 0.0
