from fastapi import APIRouter, Depends, Query, Response, status

from gigboard.api.deps import get_inbox
from gigboard.api.errors import http_error
from gigboard.core.auth import Principal
from gigboard.core.security import get_current_principal
from gigboard.schemas.notifications import DeleteAllOut, MarkAllReadOut, NotificationOut, UnreadCountOut
from gigboard.services.errors import LifecycleError
from gigboard.services.notifications import NotificationInbox

router = APIRouter()


@router.get("", response_model=list[NotificationOut])
async def list_notifications(
    principal: Principal = Depends(get_current_principal),
    inbox: NotificationInbox = Depends(get_inbox),
    unread_only: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
) -> list[NotificationOut]:
    try:
        rows = await inbox.list_for_user(principal.user_id, unread_only=unread_only, limit=limit, offset=offset)
    except LifecycleError as exc:
        raise http_error(exc) from exc
    return [NotificationOut.from_record(row) for row in rows]


@router.get("/unread-count", response_model=UnreadCountOut)
async def unread_count(
    principal: Principal = Depends(get_current_principal),
    inbox: NotificationInbox = Depends(get_inbox),
) -> UnreadCountOut:
    try:
        count = await inbox.unread_count(principal.user_id)
    except LifecycleError as exc:
        raise http_error(exc) from exc
    return UnreadCountOut(count=count)


@router.post("/read-all", response_model=MarkAllReadOut)
async def mark_all_read(
    principal: Principal = Depends(get_current_principal),
    inbox: NotificationInbox = Depends(get_inbox),
) -> MarkAllReadOut:
    try:
        updated = await inbox.mark_all_read(principal.user_id)
    except LifecycleError as exc:
        raise http_error(exc) from exc
    return MarkAllReadOut(updated=updated)


@router.post("/{notification_id}/read", response_model=NotificationOut)
async def mark_read(
    notification_id: str,
    principal: Principal = Depends(get_current_principal),
    inbox: NotificationInbox = Depends(get_inbox),
) -> NotificationOut:
    try:
        notification = await inbox.mark_read(notification_id, principal.user_id)
    except LifecycleError as exc:
        raise http_error(exc) from exc
    return NotificationOut.from_record(notification)


@router.delete("", response_model=DeleteAllOut)
async def delete_all_notifications(
    principal: Principal = Depends(get_current_principal),
    inbox: NotificationInbox = Depends(get_inbox),
) -> DeleteAllOut:
    try:
        deleted = await inbox.delete_all(principal.user_id)
    except LifecycleError as exc:
        raise http_error(exc) from exc
    return DeleteAllOut(deleted=deleted)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: str,
    principal: Principal = Depends(get_current_principal),
    inbox: NotificationInbox = Depends(get_inbox),
) -> Response:
    try:
        await inbox.delete(notification_id, principal.user_id)
    except LifecycleError as exc:
        raise http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
