from typing import Literal

from fastapi import APIRouter, Depends, Query

from gigboard.api.deps import get_engagement_manager
from gigboard.api.errors import http_error
from gigboard.core.auth import Principal
from gigboard.core.security import get_current_principal
from gigboard.schemas.engagements import EngagementOut, EngagementStatusName, RatingRequest, RatingResultOut
from gigboard.services.engagements import EngagementManager
from gigboard.services.errors import LifecycleError
from gigboard.services.records import EngagementStatus

router = APIRouter()


@router.get("", response_model=list[EngagementOut])
async def list_engagements(
    principal: Principal = Depends(get_current_principal),
    engagements: EngagementManager = Depends(get_engagement_manager),
    role: Literal["worker", "employer"] = Query(default="worker"),
    status_filter: EngagementStatusName | None = Query(default=None, alias="status"),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
) -> list[EngagementOut]:
    try:
        rows = await engagements.list_for_user(
            principal.user_id,
            role=role,
            status=EngagementStatus(status_filter) if status_filter else None,
            limit=limit,
            offset=offset,
        )
    except LifecycleError as exc:
        raise http_error(exc) from exc
    return [EngagementOut.from_record(row) for row in rows]


@router.post("/{accepted_job_id}/complete", response_model=EngagementOut)
async def complete_engagement(
    accepted_job_id: str,
    principal: Principal = Depends(get_current_principal),
    engagements: EngagementManager = Depends(get_engagement_manager),
) -> EngagementOut:
    try:
        engagement = await engagements.complete(accepted_job_id, principal.user_id)
    except LifecycleError as exc:
        raise http_error(exc) from exc
    return EngagementOut.from_record(engagement)


@router.post("/{accepted_job_id}/rate", response_model=RatingResultOut)
async def rate_engagement(
    accepted_job_id: str,
    payload: RatingRequest,
    principal: Principal = Depends(get_current_principal),
    engagements: EngagementManager = Depends(get_engagement_manager),
) -> RatingResultOut:
    try:
        result = await engagements.rate(accepted_job_id, principal.user_id, payload.rating, payload.review)
    except LifecycleError as exc:
        raise http_error(exc) from exc
    return RatingResultOut.from_result(result)
