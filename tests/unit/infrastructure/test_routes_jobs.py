"""API tests — FastAPI app with the lifecycle service overridden by fakes."""

from __future__ import annotations

import httpx
import pytest
import pytest_asyncio

from tests.fakes import (
    FakeClock,
    FakeJobRepo,
    FakeNotifier,
    FakeTechnicianRepo,
    make_job,
    make_technician,
)

from repair_lifecycle.application.services.locks import LockRegistry
from repair_lifecycle.application.use_cases.job_lifecycle import JobLifecycleService
from repair_lifecycle.domain.entities.job import PartLine
from repair_lifecycle.domain.value_objects.enums import JobState, PartAvailability
from repair_lifecycle.domain.value_objects.lifecycle_config import LifecycleConfig
from repair_lifecycle.infrastructure.api.dependencies import get_lifecycle_service
from repair_lifecycle.main import create_app


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def job_repo():
    return FakeJobRepo([
        make_job("JOB-1"),
        make_job(
            "JOB-2",
            state=JobState.PARTS_ORDERED,
            technician_id="T1",
            parts=[PartLine("hinge", availability=PartAvailability.RARE)],
        ),
    ])


@pytest.fixture
def service(job_repo, clock):
    return JobLifecycleService(
        LifecycleConfig(),
        job_repo,
        FakeTechnicianRepo([
            make_technician("T1", active_jobs={"JOB-2"}),
            make_technician("T2"),
            make_technician("T3", skills={"battery"}),
        ]),
        FakeNotifier(),
        locks=LockRegistry(timeout=1.0),
        store_timeout=1.0,
        clock=clock,
    )


@pytest_asyncio.fixture
async def client(service):
    app = create_app()
    app.dependency_overrides[get_lifecycle_service] = lambda: service
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.mark.asyncio
async def test_create_job_with_assignment(client):
    response = await client.post("/api/jobs", json={
        "priority": "URGENT",
        "customer_tier": "ENTERPRISE",
        "required_skills": ["screen_repair"],
        "location": {"latitude": 43.238949, "longitude": 76.945465, "address": "Abay Ave 10"},
        "job_id": "JOB-NEW",
        "estimated_hours": 3,
    })
    assert response.status_code == 201
    data = response.json()
    assert data["job"]["state"] == "CREATED"
    assert data["job"]["estimated_hours"] == 3.0
    assert data["job"]["allowed_next_states"] == ["IN_DIAGNOSIS"]
    assert data["assignment"]["technician_id"] == "T2"
    assert "T3" in data["assignment"]["excluded"]
    assert data["assignment_error"] is None
    assert data["assignment"]["estimated_start"] == "2026-03-02T09:30:00+00:00"
    assert data["assignment"]["estimated_completion"] == "2026-03-02T12:30:00+00:00"


@pytest.mark.asyncio
async def test_create_job_rejects_bad_priority(client):
    response = await client.post("/api/jobs", json={
        "priority": "WHENEVER",
        "location": {"latitude": 43.2, "longitude": 76.9},
    })
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_get_job(client):
    response = await client.get("/api/jobs/JOB-1")
    assert response.status_code == 200
    assert response.json()["history"][0]["to_state"] == "CREATED"


@pytest.mark.asyncio
async def test_closed_job_lists_no_next_states(client, job_repo):
    job_repo.jobs["JOB-1"].state = JobState.DELIVERED
    response = await client.get("/api/jobs/JOB-1")
    assert response.json()["allowed_next_states"] == []


@pytest.mark.asyncio
async def test_create_job_rejects_non_positive_estimate(client):
    response = await client.post("/api/jobs", json={
        "priority": "LOW",
        "location": {"latitude": 43.2, "longitude": 76.9},
        "estimated_hours": 0,
    })
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_unknown_job_is_404(client):
    response = await client.get("/api/jobs/NOPE")
    assert response.status_code == 404
    assert response.json()["error"] == "JobNotFoundError"


@pytest.mark.asyncio
async def test_advance_job(client):
    response = await client.post("/api/jobs/JOB-1/transitions", json={"target_state": "IN_DIAGNOSIS"})
    assert response.status_code == 200
    assert response.json()["state"] == "IN_DIAGNOSIS"


@pytest.mark.asyncio
async def test_illegal_transition_is_409(client):
    response = await client.post("/api/jobs/JOB-1/transitions", json={"target_state": "DELIVERED"})
    assert response.status_code == 409
    assert response.json()["error"] == "TransitionError"


@pytest.mark.asyncio
async def test_parts_not_ready_lists_pending(client, job_repo):
    response = await client.post("/api/jobs/JOB-2/transitions", json={"target_state": "TESTING"})
    assert response.status_code == 409
    body = response.json()
    assert body["error"] == "PartsNotReadyError"
    assert body["pending_parts"] == ["hinge"]
    assert job_repo.jobs["JOB-2"].state == JobState.PARTS_ORDERED


@pytest.mark.asyncio
async def test_update_parts(client):
    response = await client.put("/api/jobs/JOB-2/parts", json={
        "parts": [{"name": "hinge", "availability": "IN_STOCK"}],
    })
    assert response.status_code == 200
    assert response.json()["parts"][0]["availability"] == "IN_STOCK"


@pytest.mark.asyncio
async def test_assignment_and_conflict(client):
    first = await client.post("/api/jobs/JOB-1/assignment")
    assert first.status_code == 200
    assert first.json()["technician_id"] == "T2"

    again = await client.post("/api/jobs/JOB-1/assignment", json={})
    assert again.status_code == 409
    assert again.json()["error"] == "AlreadyAssignedError"


@pytest.mark.asyncio
async def test_no_eligible_technician_is_422(client):
    response = await client.post("/api/jobs/JOB-1/assignment", json={
        "pool": {"technician_ids": ["T3"]},
    })
    assert response.status_code == 422
    assert "T3" in response.json()["exclusions"]


@pytest.mark.asyncio
async def test_reassignment(client):
    response = await client.post("/api/jobs/JOB-2/reassignment", json={"reason": "T1 is sick"})
    assert response.status_code == 200
    data = response.json()
    assert data["previous_technician_id"] == "T1"
    assert data["technician_id"] == "T2"


@pytest.mark.asyncio
async def test_escalation_status(client, clock):
    clock.advance(hours=25)
    response = await client.get("/api/jobs/JOB-1/escalation")
    assert response.status_code == 200
    data = response.json()
    assert data["level"] == 1
    assert len(data["fired_at"]) == 1


@pytest.mark.asyncio
async def test_escalation_sweep(client, clock):
    clock.advance(hours=25)
    response = await client.post("/api/escalations/sweep")
    assert response.status_code == 200
    assert response.json()["levels_fired"] >= 1


@pytest.mark.asyncio
async def test_archive_requires_delivered(client):
    response = await client.post("/api/jobs/JOB-1/archive")
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_store_timeout_is_503_with_retry_after(client, job_repo, service):
    service._timeout = 0.01
    job_repo.delay = 0.2
    response = await client.post("/api/jobs/JOB-1/transitions", json={"target_state": "IN_DIAGNOSIS"})
    assert response.status_code == 503
    assert response.headers["Retry-After"] == "1"
    assert response.json()["retryable"] is True
