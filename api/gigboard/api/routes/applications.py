from fastapi import APIRouter, Depends, Query, status

from gigboard.api.deps import get_lifecycle_engine
from gigboard.api.errors import http_error
from gigboard.core.auth import Principal
from gigboard.core.security import get_current_principal
from gigboard.schemas.applications import (
    AcceptOut,
    ApplicationCreateRequest,
    ApplicationOut,
    ApplicationStatusName,
)
from gigboard.services.errors import LifecycleError
from gigboard.services.lifecycle import ApplicationLifecycleEngine
from gigboard.services.records import ApplicationStatus

router = APIRouter()


@router.post("", response_model=ApplicationOut, status_code=status.HTTP_201_CREATED)
async def apply_for_job(
    payload: ApplicationCreateRequest,
    principal: Principal = Depends(get_current_principal),
    engine: ApplicationLifecycleEngine = Depends(get_lifecycle_engine),
) -> ApplicationOut:
    try:
        application = await engine.apply(payload.job_id, principal.user_id, payload.message)
    except LifecycleError as exc:
        raise http_error(exc) from exc
    return ApplicationOut.from_record(application)


@router.get("/mine", response_model=list[ApplicationOut])
async def list_my_applications(
    principal: Principal = Depends(get_current_principal),
    engine: ApplicationLifecycleEngine = Depends(get_lifecycle_engine),
    status_filter: ApplicationStatusName | None = Query(default=None, alias="status"),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
) -> list[ApplicationOut]:
    try:
        rows = await engine.list_for_applicant(
            principal.user_id,
            status=ApplicationStatus(status_filter) if status_filter else None,
            limit=limit,
            offset=offset,
        )
    except LifecycleError as exc:
        raise http_error(exc) from exc
    return [ApplicationOut.from_record(row) for row in rows]


@router.post("/{application_id}/accept", response_model=AcceptOut)
async def accept_application(
    application_id: str,
    principal: Principal = Depends(get_current_principal),
    engine: ApplicationLifecycleEngine = Depends(get_lifecycle_engine),
) -> AcceptOut:
    try:
        result = await engine.accept(application_id, principal.user_id)
    except LifecycleError as exc:
        raise http_error(exc) from exc
    return AcceptOut.from_result(result)


@router.post("/{application_id}/reject", response_model=ApplicationOut)
async def reject_application(
    application_id: str,
    principal: Principal = Depends(get_current_principal),
    engine: ApplicationLifecycleEngine = Depends(get_lifecycle_engine),
) -> ApplicationOut:
    try:
        application = await engine.reject(application_id, principal.user_id)
    except LifecycleError as exc:
        raise http_error(exc) from exc
    return ApplicationOut.from_record(application)


@router.delete("/{application_id}", response_model=ApplicationOut)
async def withdraw_application(
    application_id: str,
    principal: Principal = Depends(get_current_principal),
    engine: ApplicationLifecycleEngine = Depends(get_lifecycle_engine),
) -> ApplicationOut:
    try:
        application = await engine.withdraw(application_id, principal.user_id)
    except LifecycleError as exc:
        raise http_error(exc) from exc
    return ApplicationOut.from_record(application)
