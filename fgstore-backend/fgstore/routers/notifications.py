from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fgstore.core.api_docs import error_responses
from fgstore.core.deps import get_db
from fgstore.core.errors import to_http_exception
from fgstore.core.security_current import Actor, get_current_actor
from fgstore.schemas.notification import MarkAllReadOut, NotificationListOut, NotificationOut
from fgstore.services import notification_service

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get(
    "",
    response_model=NotificationListOut,
    summary="List my notifications",
    responses=error_responses(401, 422, 500),
)
def list_notifications(
    status: str | None = Query(default=None, pattern="^(unread|read)$"),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    rows = notification_service.list_notifications(db, user_id=actor.uid, status=status)
    return NotificationListOut(
        items=[NotificationOut.model_validate(row) for row in rows],
        unread_count=sum(1 for row in rows if row.status == "unread"),
    )


@router.post(
    "/read-all",
    response_model=MarkAllReadOut,
    summary="Mark all my notifications read",
    responses=error_responses(401, 500),
)
def mark_all_read(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return MarkAllReadOut(updated=notification_service.mark_all_read(db, user_id=actor.uid))


@router.post(
    "/{notification_id}/read",
    response_model=NotificationOut,
    summary="Mark notification read",
    responses=error_responses(401, 404, 500),
)
def mark_read(
    notification_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    try:
        notification = notification_service.mark_read(db, user_id=actor.uid, notification_id=notification_id)
    except LookupError as exc:
        raise to_http_exception(exc) from exc
    return NotificationOut.model_validate(notification)
