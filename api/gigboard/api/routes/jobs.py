from fastapi import APIRouter, Depends, Query, status

from gigboard.api.deps import get_engagement_manager, get_job_service
from gigboard.api.errors import http_error
from gigboard.core.auth import Principal
from gigboard.core.security import get_current_principal
from gigboard.schemas.applications import ApplicationOut
from gigboard.schemas.jobs import (
    JobCancelOut,
    JobCancelRequest,
    JobCreateRequest,
    JobOut,
    JobStatusName,
    JobUpdateRequest,
)
from gigboard.services.engagements import EngagementManager
from gigboard.services.errors import LifecycleError
from gigboard.services.jobs import JobService
from gigboard.services.records import JobStatus

router = APIRouter()


@router.post("", response_model=JobOut, status_code=status.HTTP_201_CREATED)
async def create_job(
    payload: JobCreateRequest,
    principal: Principal = Depends(get_current_principal),
    jobs: JobService = Depends(get_job_service),
) -> JobOut:
    try:
        job = await jobs.create(principal.user_id, payload.to_draft())
    except LifecycleError as exc:
        raise http_error(exc) from exc
    return JobOut.from_record(job)


@router.get("/mine", response_model=list[JobOut])
async def list_my_jobs(
    principal: Principal = Depends(get_current_principal),
    jobs: JobService = Depends(get_job_service),
    status_filter: JobStatusName | None = Query(default=None, alias="status"),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
) -> list[JobOut]:
    try:
        rows = await jobs.list_for_owner(
            principal.user_id,
            status=JobStatus(status_filter) if status_filter else None,
            limit=limit,
            offset=offset,
        )
    except LifecycleError as exc:
        raise http_error(exc) from exc
    return [JobOut.from_record(row) for row in rows]


@router.get("/available", response_model=list[JobOut])
async def list_available_jobs(
    principal: Principal = Depends(get_current_principal),
    jobs: JobService = Depends(get_job_service),
    skill: list[str] | None = Query(default=None),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
) -> list[JobOut]:
    try:
        rows = await jobs.list_open(principal.user_id, skills=skill, limit=limit, offset=offset)
    except LifecycleError as exc:
        raise http_error(exc) from exc
    return [JobOut.from_record(row) for row in rows]


@router.get("/{job_id}", response_model=JobOut)
async def get_job(
    job_id: str,
    _principal: Principal = Depends(get_current_principal),
    jobs: JobService = Depends(get_job_service),
) -> JobOut:
    try:
        job = await jobs.get(job_id)
    except LifecycleError as exc:
        raise http_error(exc) from exc
    return JobOut.from_record(job)


@router.patch("/{job_id}", response_model=JobOut)
async def update_job(
    job_id: str,
    payload: JobUpdateRequest,
    principal: Principal = Depends(get_current_principal),
    jobs: JobService = Depends(get_job_service),
) -> JobOut:
    try:
        job = await jobs.update(job_id, principal.user_id, payload.to_changes())
    except LifecycleError as exc:
        raise http_error(exc) from exc
    return JobOut.from_record(job)


@router.post("/{job_id}/close", response_model=JobOut)
async def close_job(
    job_id: str,
    principal: Principal = Depends(get_current_principal),
    jobs: JobService = Depends(get_job_service),
) -> JobOut:
    try:
        job = await jobs.close(job_id, principal.user_id)
    except LifecycleError as exc:
        raise http_error(exc) from exc
    return JobOut.from_record(job)


@router.post("/{job_id}/cancel", response_model=JobCancelOut)
async def cancel_job(
    job_id: str,
    payload: JobCancelRequest | None = None,
    principal: Principal = Depends(get_current_principal),
    engagements: EngagementManager = Depends(get_engagement_manager),
) -> JobCancelOut:
    reason = payload.reason if payload is not None else None
    try:
        result = await engagements.cancel_by_job(job_id, principal.user_id, reason)
    except LifecycleError as exc:
        raise http_error(exc) from exc
    return JobCancelOut.from_result(result)


@router.get("/{job_id}/applicants", response_model=list[ApplicationOut])
async def list_applicants(
    job_id: str,
    principal: Principal = Depends(get_current_principal),
    jobs: JobService = Depends(get_job_service),
    limit: int = Query(default=100, ge=1, le=200),
) -> list[ApplicationOut]:
    try:
        rows = await jobs.list_applicants(job_id, principal.user_id, limit=limit)
    except LifecycleError as exc:
        raise http_error(exc) from exc
    return [ApplicationOut.from_record(row) for row in rows]
