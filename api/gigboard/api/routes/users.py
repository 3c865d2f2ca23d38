from fastapi import APIRouter, Depends

from gigboard.api.deps import get_user_service
from gigboard.api.errors import http_error
from gigboard.core.auth import Principal
from gigboard.core.security import get_current_principal
from gigboard.schemas.users import PublicUserOut, UserOut, UserPatchRequest
from gigboard.services.errors import LifecycleError
from gigboard.services.users import UserService

router = APIRouter()


@router.get("/me", response_model=UserOut)
async def get_me(
    principal: Principal = Depends(get_current_principal),
    users: UserService = Depends(get_user_service),
) -> UserOut:
    try:
        user = await users.get(principal.user_id)
    except LifecycleError as exc:
        raise http_error(exc) from exc
    return UserOut.from_record(user)


@router.patch("/me", response_model=UserOut)
async def patch_me(
    payload: UserPatchRequest,
    principal: Principal = Depends(get_current_principal),
    users: UserService = Depends(get_user_service),
) -> UserOut:
    try:
        user = await users.update_profile(
            principal.user_id,
            name=payload.name.strip() if payload.name is not None else None,
            device_token=payload.device_token,
        )
    except LifecycleError as exc:
        raise http_error(exc) from exc
    return UserOut.from_record(user)


@router.get("/{user_id}", response_model=PublicUserOut)
async def get_user(
    user_id: str,
    _: Principal = Depends(get_current_principal),
    users: UserService = Depends(get_user_service),
) -> PublicUserOut:
    try:
        user = await users.get(user_id)
    except LifecycleError as exc:
        raise http_error(exc) from exc
    return PublicUserOut.from_record(user)
