import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from fgstore.core.id_utils import generate_shortuuid
from fgstore.core.observability import log_event
from fgstore.core.security_current import Actor
from fgstore.models.audit_log import AuditLog


def log_audit_event(
    db: Session,
    *,
    actor: Actor,
    action: str,
    target_type: str,
    target_id: str | None = None,
    metadata_json: dict[str, Any] | None = None,
) -> AuditLog:
    """Stage an audit row in the caller's transaction; it is written only if that commit succeeds."""
    event = AuditLog(
        id=generate_shortuuid(),
        actor_user_id=actor.uid,
        actor_role=actor.role,
        action=action,
        target_type=target_type,
        target_id=target_id,
        metadata_json=metadata_json,
    )
    db.add(event)
    log_event("audit_staged", level=logging.DEBUG, action=action, target_type=target_type, target_id=target_id)
    return event


def list_audit_events(db: Session, *, target_type: str, target_id: str) -> list[AuditLog]:
    return list(
        db.execute(
            select(AuditLog)
            .where(AuditLog.target_type == target_type, AuditLog.target_id == target_id)
            .order_by(AuditLog.created_at, AuditLog.id)
        ).scalars().all()
    )
