import logging
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from fgstore.core.config import settings
from fgstore.core.errors import NotFoundError
from fgstore.core.observability import log_event
from fgstore.core.time_utils import utcnow
from fgstore.models.notification import Notification
from fgstore.models.sales_request import SalesApprovalHistory
from fgstore.models.user import User

REQUEST_TYPE_LABELS = {
    "direct_representative": "Direct Representative",
    "direct_shop": "Direct Shop",
    "distributor": "Distributor",
}


def notify_role(db: Session, *, role: str, notification: dict[str, Any]) -> int:
    """Append one unread notification per active user holding `role`; commits."""
    user_ids = db.execute(
        select(User.id).where(User.role == role, User.status == "active").order_by(User.id)
    ).scalars().all()
    for user_id in user_ids:
        db.add(
            Notification(
                user_id=user_id,
                type=notification["type"],
                request_id=notification.get("request_id"),
                message=notification["message"],
                data=notification.get("data"),
                status="unread",
            )
        )
    db.commit()
    return len(user_ids)


def build_approval_notification(history: SalesApprovalHistory) -> dict[str, Any]:
    label = REQUEST_TYPE_LABELS.get(history.request_type, "sales")
    return {
        "type": "approved_sales_request",
        "request_id": history.id,
        "message": f"New approved {label} request ready for dispatch: {history.requester_name}",
        "data": {
            "request_type": "approved_sales",
            "requester_name": history.requester_name,
            "requester_role": history.requester_role,
            "total_items": len(history.items or {}),
            "total_quantity": history.total_quantity or 0,
            "priority": history.priority or "normal",
        },
    }


def notify_approved_request(db: Session, history: SalesApprovalHistory) -> int:
    """Best-effort fan-out to the FG store; a failure is logged and reported as 0 recipients."""
    try:
        count = notify_role(
            db,
            role=settings.fg_notification_role,
            notification=build_approval_notification(history),
        )
    except Exception as exc:  # noqa: BLE001 - the approval is already committed
        db.rollback()
        log_event(
            "notification_fanout_failed",
            level=logging.ERROR,
            history_id=history.id,
            role=settings.fg_notification_role,
            error=str(exc),
        )
        return 0

    log_event("notification_fanout", history_id=history.id, recipients=count)
    return count


def list_notifications(db: Session, *, user_id: str, status: str | None = None) -> list[Notification]:
    stmt = select(Notification).where(Notification.user_id == user_id)
    if status:
        stmt = stmt.where(Notification.status == status)
    return list(db.execute(stmt.order_by(Notification.created_at.desc())).scalars().all())


def mark_read(db: Session, *, user_id: str, notification_id: str) -> Notification:
    notification = db.execute(
        select(Notification).where(
            Notification.id == notification_id,
            Notification.user_id == user_id,
        )
    ).scalar_one_or_none()
    if not notification:
        raise NotFoundError("Notification not found")
    if notification.status != "read":
        notification.status = "read"
        notification.read_at = utcnow()
    db.commit()
    return notification


def mark_all_read(db: Session, *, user_id: str) -> int:
    result = db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.status == "unread")
        .values(status="read", read_at=utcnow())
    )
    db.commit()
    return int(result.rowcount or 0)
