"""Job endpoints — lifecycle transitions, assignment and escalation status."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from repair_lifecycle.application.services.retry import retry_store_timeouts
from repair_lifecycle.application.use_cases.job_lifecycle import JobLifecycleService
from repair_lifecycle.domain.commands import (
    AdvanceJobCommand,
    JobSpec,
    ReassignCommand,
    RequestAssignmentCommand,
)
from repair_lifecycle.domain.value_objects.geo_point import GeoPoint, Location
from repair_lifecycle.infrastructure.api.dependencies import get_lifecycle_service
from repair_lifecycle.infrastructure.api.errors import error_body
from repair_lifecycle.infrastructure.api.schemas import (
    AdvanceJobRequest,
    AssignmentRequest,
    CreateJobRequest,
    ReassignRequest,
    UpdatePartsRequest,
    serialize_assignment,
    serialize_escalation,
    serialize_job,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.post("", status_code=201)
async def create_job(
    body: CreateJobRequest,
    service: JobLifecycleService = Depends(get_lifecycle_service),
):
    """Create a job in CREATED; optionally assign a technician right away."""
    spec = JobSpec(
        priority=body.priority,
        customer_tier=body.customer_tier,
        required_skills=frozenset(body.required_skills),
        location=Location(
            point=GeoPoint(latitude=body.location.latitude, longitude=body.location.longitude),
            address=body.location.address,
        ),
        parts=tuple(p.to_domain() for p in body.parts),
        estimated_hours=body.estimated_hours,
        job_id=body.job_id,
        auto_assign=body.auto_assign,
        actor=body.actor,
    )
    created = await service.create_job(spec)
    return {
        "job": serialize_job(created.job),
        "assignment": serialize_assignment(created.assignment) if created.assignment else None,
        "assignment_error": error_body(created.assignment_error) if created.assignment_error else None,
    }


@router.get("/{job_id}")
async def get_job(job_id: str, service: JobLifecycleService = Depends(get_lifecycle_service)):
    job = await retry_store_timeouts(lambda: service.get_job(job_id))
    return serialize_job(job)


@router.post("/{job_id}/transitions")
async def advance_job(
    job_id: str,
    body: AdvanceJobRequest,
    service: JobLifecycleService = Depends(get_lifecycle_service),
):
    job = await service.advance_job(
        AdvanceJobCommand(
            job_id=job_id, target_state=body.target_state, reason=body.reason, actor=body.actor
        )
    )
    return serialize_job(job)


@router.post("/{job_id}/assignment")
async def request_assignment(
    job_id: str,
    body: AssignmentRequest | None = None,
    service: JobLifecycleService = Depends(get_lifecycle_service),
):
    body = body or AssignmentRequest()
    result = await service.request_assignment(
        RequestAssignmentCommand(job_id=job_id, pool=body.pool.to_domain(), actor=body.actor)
    )
    return serialize_assignment(result)


@router.post("/{job_id}/reassignment")
async def reassign_job(
    job_id: str,
    body: ReassignRequest,
    service: JobLifecycleService = Depends(get_lifecycle_service),
):
    result = await service.reassign_job(
        ReassignCommand(
            job_id=job_id, reason=body.reason, pool=body.pool.to_domain(), actor=body.actor
        )
    )
    return serialize_assignment(result)


@router.get("/{job_id}/escalation")
async def get_escalation_status(
    job_id: str, service: JobLifecycleService = Depends(get_lifecycle_service)
):
    """Current escalation level; fires any level that has become due."""
    status = await retry_store_timeouts(lambda: service.get_escalation_status(job_id))
    return serialize_escalation(status)


@router.put("/{job_id}/parts")
async def update_parts(
    job_id: str,
    body: UpdatePartsRequest,
    service: JobLifecycleService = Depends(get_lifecycle_service),
):
    job = await service.update_parts(job_id, [p.to_domain() for p in body.parts], body.actor)
    return serialize_job(job)


@router.post("/{job_id}/archive")
async def archive_job(job_id: str, service: JobLifecycleService = Depends(get_lifecycle_service)):
    job = await service.archive_job(job_id, actor="api")
    return serialize_job(job)


escalation_router = APIRouter(prefix="/escalations", tags=["escalations"])


@escalation_router.post("/sweep")
async def run_escalation_sweep(service: JobLifecycleService = Depends(get_lifecycle_service)):
    """Check every open job now instead of waiting for the background worker."""
    fired = await service.run_escalation_sweep()
    return {"status": "ok", "levels_fired": fired}
