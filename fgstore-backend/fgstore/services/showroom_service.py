from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fgstore.core.errors import ConflictError, NotFoundError
from fgstore.core.security_current import Actor
from fgstore.models.showroom import DirectShowroom
from fgstore.models.user import User
from fgstore.services.audit_service import log_audit_event

SHOWROOM_STATUSES = ("active", "inactive", "suspended")
DUPLICATE_CODE_MESSAGE = "Showroom code already exists"

DEFAULT_OPENING_HOURS = {
    "monday": "9:00-18:00",
    "tuesday": "9:00-18:00",
    "wednesday": "9:00-18:00",
    "thursday": "9:00-18:00",
    "friday": "9:00-18:00",
    "saturday": "9:00-18:00",
    "sunday": "closed",
}

_UPDATABLE_FIELDS = (
    "name",
    "location",
    "city",
    "contact_number",
    "email",
    "opening_hours",
    "target_sales",
)


def _normalize_code(code: Any) -> str:
    return str(code or "").strip().upper()


def list_showrooms(db: Session) -> list[DirectShowroom]:
    return list(
        db.execute(
            select(DirectShowroom).order_by(DirectShowroom.created_at.desc(), DirectShowroom.id.desc())
        ).scalars().all()
    )


def list_active_showrooms(db: Session) -> list[DirectShowroom]:
    return [showroom for showroom in list_showrooms(db) if showroom.status == "active"]


def get_showroom(db: Session, showroom_id: str) -> DirectShowroom:
    showroom = db.get(DirectShowroom, showroom_id)
    if not showroom:
        raise NotFoundError("Showroom not found")
    return showroom


def get_showroom_by_code(db: Session, code: str) -> DirectShowroom | None:
    normalized = _normalize_code(code)
    if not normalized:
        return None
    return db.execute(select(DirectShowroom).where(DirectShowroom.code == normalized)).scalar_one_or_none()


def _manager_or_404(db: Session, manager_id: str) -> User:
    manager = db.get(User, manager_id)
    if not manager:
        raise NotFoundError("Manager not found")
    return manager


def _clear_backref(user: User, showroom_id: str) -> None:
    if user.showroom_id == showroom_id:
        user.showroom_id = None
        user.showroom_name = None
        user.showroom_code = None


def sync_manager_backref(db: Session, showroom: DirectShowroom, previous_manager_id: str | None) -> None:
    """
    Keep users.showroom_* in line with showroom.manager_id.

    The previous manager loses the back-reference when replaced. The current manager is
    (re)linked with the showroom's current name and code, or unlinked when the showroom is
    no longer active.
    """
    if previous_manager_id and previous_manager_id != showroom.manager_id:
        previous = db.get(User, previous_manager_id)
        if previous:
            _clear_backref(previous, showroom.id)

    if not showroom.manager_id:
        return
    manager = _manager_or_404(db, showroom.manager_id)
    if showroom.status == "inactive":
        _clear_backref(manager, showroom.id)
        return
    manager.showroom_id = showroom.id
    manager.showroom_name = showroom.name
    manager.showroom_code = showroom.code


def _commit_unique(db: Session, *, flush_only: bool = False) -> None:
    try:
        if flush_only:
            db.flush()
        else:
            db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(DUPLICATE_CODE_MESSAGE) from None


def create_showroom(db: Session, *, actor: Actor, payload: dict[str, Any]) -> DirectShowroom:
    code = _normalize_code(payload.get("code"))
    if not code:
        raise ValueError("Showroom code is required")
    if get_showroom_by_code(db, code):
        raise ConflictError(DUPLICATE_CODE_MESSAGE)

    status = payload.get("status") or "active"
    if status not in SHOWROOM_STATUSES:
        raise ValueError("Showroom status must be active, inactive or suspended")
    if payload.get("manager_id"):
        _manager_or_404(db, payload["manager_id"])

    showroom = DirectShowroom(
        name=payload["name"],
        code=code,
        location=payload["location"],
        city=payload["city"],
        contact_number=payload.get("contact_number") or "",
        email=payload.get("email") or "",
        manager_id=payload.get("manager_id") or None,
        status=status,
        opening_hours=payload.get("opening_hours") or dict(DEFAULT_OPENING_HOURS),
        target_sales=payload.get("target_sales") or Decimal("0"),
        metadata_json=payload.get("metadata") or {},
        created_by=actor.uid,
    )
    db.add(showroom)
    _commit_unique(db, flush_only=True)
    sync_manager_backref(db, showroom, previous_manager_id=None)
    log_audit_event(
        db,
        actor=actor,
        action="showroom.create",
        target_type="direct_showroom",
        target_id=showroom.id,
        metadata_json={"code": code, "manager_id": showroom.manager_id},
    )
    _commit_unique(db)
    db.refresh(showroom)
    return showroom


def update_showroom(db: Session, *, actor: Actor, showroom_id: str, changes: dict[str, Any]) -> DirectShowroom:
    """Apply a partial update; `manager_id` present and None unassigns the manager."""
    showroom = get_showroom(db, showroom_id)
    previous_manager_id = showroom.manager_id

    if changes.get("code") is not None:
        code = _normalize_code(changes["code"])
        if not code:
            raise ValueError("Showroom code is required")
        if code != showroom.code:
            existing = get_showroom_by_code(db, code)
            if existing and existing.id != showroom.id:
                raise ConflictError(DUPLICATE_CODE_MESSAGE)
            showroom.code = code

    if changes.get("status") is not None:
        if changes["status"] not in SHOWROOM_STATUSES:
            raise ValueError("Showroom status must be active, inactive or suspended")
        showroom.status = changes["status"]

    if "manager_id" in changes:
        manager_id = changes["manager_id"] or None
        if manager_id:
            _manager_or_404(db, manager_id)
        showroom.manager_id = manager_id

    for field in _UPDATABLE_FIELDS:
        if changes.get(field) is not None:
            setattr(showroom, field, changes[field])
    if changes.get("metadata") is not None:
        showroom.metadata_json = changes["metadata"]

    sync_manager_backref(db, showroom, previous_manager_id)
    log_audit_event(
        db,
        actor=actor,
        action="showroom.update",
        target_type="direct_showroom",
        target_id=showroom.id,
        metadata_json={"changes": sorted(changes.keys())},
    )
    _commit_unique(db)
    db.refresh(showroom)
    return showroom


def delete_showroom(db: Session, *, actor: Actor, showroom_id: str) -> DirectShowroom:
    showroom = get_showroom(db, showroom_id)
    showroom.status = "inactive"
    sync_manager_backref(db, showroom, showroom.manager_id)
    log_audit_event(
        db,
        actor=actor,
        action="showroom.deactivate",
        target_type="direct_showroom",
        target_id=showroom.id,
        metadata_json={"code": showroom.code},
    )
    db.commit()
    db.refresh(showroom)
    return showroom


def assign_manager(db: Session, *, actor: Actor, showroom_id: str, manager_id: str | None) -> DirectShowroom:
    return update_showroom(db, actor=actor, showroom_id=showroom_id, changes={"manager_id": manager_id})


def get_showroom_staff(db: Session, showroom_id: str) -> list[User]:
    get_showroom(db, showroom_id)
    return list(
        db.execute(select(User).where(User.showroom_id == showroom_id).order_by(User.email)).scalars().all()
    )


def get_showroom_stats(db: Session, showroom_id: str) -> dict[str, Any]:
    showroom = get_showroom(db, showroom_id)
    staff = get_showroom_staff(db, showroom_id)
    return {
        "showroom": showroom,
        "total_staff": len(staff),
        "active_staff": sum(1 for user in staff if user.status == "active"),
        "target_sales": showroom.target_sales or Decimal("0"),
    }
