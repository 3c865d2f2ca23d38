from fastapi import APIRouter, Depends, Query, status

from gigboard.api.deps import get_skill_post_service
from gigboard.api.errors import http_error
from gigboard.core.auth import Principal
from gigboard.core.security import get_current_principal
from gigboard.schemas.skill_posts import (
    SkillPostCreateRequest,
    SkillPostOut,
    SkillPostUpdateRequest,
    SkillRequestRequest,
)
from gigboard.services.errors import LifecycleError
from gigboard.services.skill_posts import SkillPostService

router = APIRouter()


@router.post("", response_model=SkillPostOut, status_code=status.HTTP_201_CREATED)
async def create_skill_post(
    payload: SkillPostCreateRequest,
    principal: Principal = Depends(get_current_principal),
    posts: SkillPostService = Depends(get_skill_post_service),
) -> SkillPostOut:
    try:
        post = await posts.create(principal.user_id, payload.to_draft())
    except LifecycleError as exc:
        raise http_error(exc) from exc
    return SkillPostOut.from_record(post)


@router.get("", response_model=list[SkillPostOut])
async def list_skill_posts(
    _: Principal = Depends(get_current_principal),
    posts: SkillPostService = Depends(get_skill_post_service),
    category: str | None = Query(default=None, max_length=100),
    search: str | None = Query(default=None, max_length=100),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
) -> list[SkillPostOut]:
    try:
        rows = await posts.list_active(category=category, search=search, limit=limit, offset=offset)
    except LifecycleError as exc:
        raise http_error(exc) from exc
    return [SkillPostOut.from_record(row) for row in rows]


@router.get("/mine", response_model=list[SkillPostOut])
async def list_my_skill_posts(
    principal: Principal = Depends(get_current_principal),
    posts: SkillPostService = Depends(get_skill_post_service),
) -> list[SkillPostOut]:
    try:
        rows = await posts.list_for_owner(principal.user_id)
    except LifecycleError as exc:
        raise http_error(exc) from exc
    return [SkillPostOut.from_record(row) for row in rows]


@router.get("/{post_id}", response_model=SkillPostOut)
async def get_skill_post(
    post_id: str,
    _: Principal = Depends(get_current_principal),
    posts: SkillPostService = Depends(get_skill_post_service),
) -> SkillPostOut:
    try:
        post = await posts.view(post_id)
    except LifecycleError as exc:
        raise http_error(exc) from exc
    return SkillPostOut.from_record(post)


@router.patch("/{post_id}", response_model=SkillPostOut)
async def update_skill_post(
    post_id: str,
    payload: SkillPostUpdateRequest,
    principal: Principal = Depends(get_current_principal),
    posts: SkillPostService = Depends(get_skill_post_service),
) -> SkillPostOut:
    try:
        post = await posts.update(post_id, principal.user_id, payload.to_changes())
    except LifecycleError as exc:
        raise http_error(exc) from exc
    return SkillPostOut.from_record(post)


@router.delete("/{post_id}", response_model=SkillPostOut)
async def delete_skill_post(
    post_id: str,
    principal: Principal = Depends(get_current_principal),
    posts: SkillPostService = Depends(get_skill_post_service),
) -> SkillPostOut:
    try:
        post = await posts.delete(post_id, principal.user_id)
    except LifecycleError as exc:
        raise http_error(exc) from exc
    return SkillPostOut.from_record(post)


@router.post("/{post_id}/request", response_model=SkillPostOut)
async def request_job_from_skill_post(
    post_id: str,
    payload: SkillRequestRequest,
    principal: Principal = Depends(get_current_principal),
    posts: SkillPostService = Depends(get_skill_post_service),
) -> SkillPostOut:
    try:
        post = await posts.request_job(post_id, principal.user_id, payload.message)
    except LifecycleError as exc:
        raise http_error(exc) from exc
    return SkillPostOut.from_record(post)
