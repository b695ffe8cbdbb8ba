import math
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fgstore.core.config import settings
from fgstore.core.errors import ConflictError, NotFoundError
from fgstore.core.security_current import Actor
from fgstore.models.inventory import FgInventoryBatch, FgPackagedBatch
from fgstore.models.location import FgStorageLocation
from fgstore.services.audit_service import log_audit_event

LOCATION_STATUSES = ("active", "inactive")


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def list_locations(db: Session, *, status: str | None = None, search: str | None = None) -> list[FgStorageLocation]:
    stmt = select(FgStorageLocation)
    if status:
        stmt = stmt.where(FgStorageLocation.status == status)
    term = (search or "").strip().lower()
    if term:
        pattern = f"%{term}%"
        stmt = stmt.where(
            func.lower(FgStorageLocation.name).like(pattern) | func.lower(FgStorageLocation.code).like(pattern)
        )
    return list(db.execute(stmt.order_by(FgStorageLocation.code)).scalars().all())


def get_location(db: Session, location_id: str) -> FgStorageLocation:
    location = db.get(FgStorageLocation, location_id)
    if not location:
        raise NotFoundError("Location not found")
    return location


def _code_taken(db: Session, code: str, *, exclude_id: str | None = None) -> bool:
    stmt = select(FgStorageLocation.id).where(FgStorageLocation.code == code)
    if exclude_id:
        stmt = stmt.where(FgStorageLocation.id != exclude_id)
    return db.execute(stmt).first() is not None


def _validate_status(status: str) -> str:
    if status not in LOCATION_STATUSES:
        raise ValueError("Location status must be active or inactive")
    return status


def create_location(db: Session, *, actor: Actor, data: dict[str, Any]) -> FgStorageLocation:
    code = str(data.get("code") or "").strip().upper()
    name = str(data.get("name") or "").strip()
    if not code or not name:
        raise ValueError("Location code and name are required")
    if _code_taken(db, code):
        raise ConflictError("Location code already exists")

    location = FgStorageLocation(
        code=code,
        name=name,
        capacity=data.get("capacity"),
        status=_validate_status(data.get("status") or "active"),
        description=data.get("description"),
    )
    db.add(location)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Location code already exists") from None
    log_audit_event(
        db,
        actor=actor,
        action="location.create",
        target_type="fg_storage_location",
        target_id=location.id,
        metadata_json={"code": code, "name": name},
    )
    db.commit()
    db.refresh(location)
    return location


def update_location(db: Session, *, actor: Actor, location_id: str, changes: dict[str, Any]) -> FgStorageLocation:
    location = get_location(db, location_id)

    if "code" in changes and changes["code"] is not None:
        code = str(changes["code"]).strip().upper()
        if not code:
            raise ValueError("Location code cannot be empty")
        if code != location.code and _code_taken(db, code, exclude_id=location.id):
            raise ConflictError("Location code already exists")
        location.code = code
    if changes.get("name") is not None:
        name = str(changes["name"]).strip()
        if not name:
            raise ValueError("Location name cannot be empty")
        location.name = name
    if "capacity" in changes:
        location.capacity = changes["capacity"]
    if changes.get("status") is not None:
        location.status = _validate_status(changes["status"])
    if "description" in changes:
        location.description = changes["description"]

    log_audit_event(
        db,
        actor=actor,
        action="location.update",
        target_type="fg_storage_location",
        target_id=location.id,
        metadata_json={"changes": sorted(changes.keys())},
    )
    db.commit()
    db.refresh(location)
    return location


def active_location_codes(db: Session) -> list[str]:
    """Codes of active locations; the configured fallback codes when none exist."""
    codes = db.execute(
        select(FgStorageLocation.code)
        .where(FgStorageLocation.status == "active")
        .order_by(FgStorageLocation.code)
    ).scalars().all()
    return list(codes) if codes else list(settings.fallback_location_codes)


def location_overview(db: Session, *, status: str | None = None, search: str | None = None) -> dict[str, Any]:
    locations = list_locations(db, status=status, search=search)

    counts: dict[str, int] = {}
    for model in (FgInventoryBatch, FgPackagedBatch):
        rows = db.execute(select(model.location, func.count(model.id)).group_by(model.location)).all()
        for code, count in rows:
            counts[code] = counts.get(code, 0) + int(count)

    entries = []
    for location in locations:
        item_count = counts.get(location.code, 0)
        if location.capacity:
            utilization = _round_half_up(item_count / location.capacity * 100)
        else:
            utilization = 100 if item_count > 0 else 0
        entries.append({"location": location, "item_count": item_count, "utilization": utilization})

    total_capacity = sum(int(location.capacity or 0) for location in locations)
    used_capacity = sum(entry["item_count"] for entry in entries)
    return {
        "locations": entries,
        "stats": {
            "total_locations": len(locations),
            "total_capacity": total_capacity,
            "used_capacity": used_capacity,
            "utilization": _round_half_up(used_capacity / total_capacity * 100) if total_capacity > 0 else 0,
            "full_locations": sum(1 for entry in entries if entry["utilization"] >= 100),
            "empty_locations": sum(1 for entry in entries if entry["item_count"] == 0),
        },
    }
