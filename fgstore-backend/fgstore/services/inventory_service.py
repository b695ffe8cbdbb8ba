from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from fgstore.core.config import settings
from fgstore.core.errors import NotFoundError
from fgstore.core.id_utils import generate_release_code
from fgstore.core.security_current import Actor
from fgstore.models.inventory import FgInventoryBatch, FgPackagedBatch, FgStockMovement
from fgstore.services.audit_service import log_audit_event

QUALITY_GRADES = ("A", "B", "C", "D")
MOVEMENT_TYPES = ("in", "out")
CATEGORIES = ("bulk", "units")

QUANTITY_QUANT = Decimal("0.001")


def _to_quantity(value: Any) -> Decimal:
    try:
        quantity = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError("Quantity must be a number") from None
    if not quantity.is_finite():
        raise ValueError("Quantity must be a number")
    return quantity.quantize(QUANTITY_QUANT)


def _required(data: dict[str, Any], key: str, label: str) -> str:
    value = str(data.get(key) or "").strip()
    if not value:
        raise ValueError(f"{label} is required")
    return value


def _quality_grade(value: Any) -> str:
    grade = str(value or "A").strip().upper() or "A"
    if grade not in QUALITY_GRADES:
        raise ValueError("Quality Grade must be A, B, C, or D")
    return grade


def _location(value: Any) -> str:
    return str(value or "").strip().upper() or settings.default_location_code


def record_movement(
    db: Session,
    *,
    movement_type: str,
    category: str,
    inventory_id: str,
    product_id: str,
    product_name: str,
    batch_number: str,
    quantity: Decimal | int,
    reason: str,
    variant_name: str | None = None,
    reference_id: str | None = None,
    created_by: str | None = None,
) -> FgStockMovement:
    movement = FgStockMovement(
        movement_type=movement_type,
        category=category,
        inventory_id=inventory_id,
        product_id=product_id,
        product_name=product_name,
        variant_name=variant_name,
        batch_number=batch_number,
        quantity=quantity,
        reason=reason,
        reference_id=reference_id,
        created_by=created_by,
    )
    db.add(movement)
    return movement


def list_bulk_inventory(
    db: Session,
    *,
    product_name: str | None = None,
    location: str | None = None,
    in_stock_only: bool = False,
) -> list[FgInventoryBatch]:
    stmt = select(FgInventoryBatch)
    if product_name:
        stmt = stmt.where(FgInventoryBatch.product_name == product_name)
    if location:
        stmt = stmt.where(FgInventoryBatch.location == location.strip().upper())
    if in_stock_only:
        stmt = stmt.where(FgInventoryBatch.quantity > 0)
    stmt = stmt.order_by(FgInventoryBatch.product_name, FgInventoryBatch.batch_number)
    return list(db.execute(stmt).scalars().all())


def list_packaged_inventory(
    db: Session,
    *,
    product_name: str | None = None,
    location: str | None = None,
    in_stock_only: bool = False,
) -> list[FgPackagedBatch]:
    stmt = select(FgPackagedBatch)
    if product_name:
        stmt = stmt.where(FgPackagedBatch.product_name == product_name)
    if location:
        stmt = stmt.where(FgPackagedBatch.location == location.strip().upper())
    if in_stock_only:
        stmt = stmt.where(FgPackagedBatch.units_in_stock > 0)
    stmt = stmt.order_by(
        FgPackagedBatch.product_name,
        FgPackagedBatch.variant_name,
        FgPackagedBatch.batch_number,
    )
    return list(db.execute(stmt).scalars().all())


def add_bulk_stock(
    db: Session,
    *,
    actor: Actor,
    data: dict[str, Any],
    commit: bool = True,
) -> FgInventoryBatch:
    """Receive bulk stock; an existing (product, batch) pair has its quantity incremented."""
    product_id = _required(data, "product_id", "Product ID")
    product_name = _required(data, "product_name", "Product Name")
    batch_number = _required(data, "batch_number", "Batch Number")
    quantity = _to_quantity(data.get("quantity"))
    if quantity <= 0:
        raise ValueError("Quantity must be greater than 0 for bulk products")
    expiry_date: date | None = data.get("expiry_date")

    batch = db.execute(
        select(FgInventoryBatch).where(
            FgInventoryBatch.product_id == product_id,
            FgInventoryBatch.batch_number == batch_number,
        )
    ).scalar_one_or_none()
    if batch:
        batch.quantity = _to_quantity(batch.quantity) + quantity
    else:
        batch = FgInventoryBatch(
            product_id=product_id,
            product_name=product_name,
            batch_number=batch_number,
            quantity=quantity,
            unit=str(data.get("unit") or "kg").strip() or "kg",
            quality_grade=_quality_grade(data.get("quality_grade")),
            expiry_date=expiry_date,
            location=_location(data.get("location")),
            release_code=data.get("release_code") or generate_release_code(),
            received_from=data.get("received_from") or "manual_entry",
        )
        db.add(batch)
    db.flush()

    record_movement(
        db,
        movement_type="in",
        category="bulk",
        inventory_id=batch.id,
        product_id=product_id,
        product_name=product_name,
        batch_number=batch_number,
        quantity=quantity,
        reason=data.get("reason") or "stock_in",
        created_by=actor.uid,
    )
    log_audit_event(
        db,
        actor=actor,
        action="inventory.bulk_stock_in",
        target_type="fg_inventory",
        target_id=batch.id,
        metadata_json={"product_id": product_id, "batch_number": batch_number, "quantity": str(quantity)},
    )
    if commit:
        db.commit()
        db.refresh(batch)
    return batch


def add_packaged_stock(
    db: Session,
    *,
    actor: Actor,
    data: dict[str, Any],
    commit: bool = True,
) -> FgPackagedBatch:
    """Receive packaged units; an existing (product, variant, batch) has its units incremented."""
    product_id = _required(data, "product_id", "Product ID")
    product_name = _required(data, "product_name", "Product Name")
    variant_name = _required(data, "variant_name", "Variant Name")
    batch_number = _required(data, "batch_number", "Batch Number")
    units = data.get("units_received")
    try:
        units = int(units)
    except (TypeError, ValueError):
        raise ValueError("Units received must be a whole number") from None
    if units <= 0:
        raise ValueError("Units in Stock must be greater than 0 for packaged products")

    batch = db.execute(
        select(FgPackagedBatch).where(
            FgPackagedBatch.product_id == product_id,
            FgPackagedBatch.variant_name == variant_name,
            FgPackagedBatch.batch_number == batch_number,
        )
    ).scalar_one_or_none()
    if batch:
        batch.units_in_stock = int(batch.units_in_stock or 0) + units
    else:
        batch = FgPackagedBatch(
            product_id=product_id,
            product_name=product_name,
            variant_name=variant_name,
            variant_size=_required(data, "variant_size", "Variant Size"),
            variant_unit=_required(data, "variant_unit", "Variant Unit"),
            batch_number=batch_number,
            units_in_stock=units,
            quality_grade=_quality_grade(data.get("quality_grade")),
            expiry_date=data.get("expiry_date"),
            location=_location(data.get("location")),
            release_code=data.get("release_code") or generate_release_code(),
            received_from=data.get("received_from") or "manual_entry",
        )
        db.add(batch)
    db.flush()

    record_movement(
        db,
        movement_type="in",
        category="units",
        inventory_id=batch.id,
        product_id=product_id,
        product_name=product_name,
        variant_name=variant_name,
        batch_number=batch_number,
        quantity=units,
        reason=data.get("reason") or "stock_in",
        created_by=actor.uid,
    )
    log_audit_event(
        db,
        actor=actor,
        action="inventory.units_stock_in",
        target_type="fg_packaged_inventory",
        target_id=batch.id,
        metadata_json={
            "product_id": product_id,
            "variant_name": variant_name,
            "batch_number": batch_number,
            "units": units,
        },
    )
    if commit:
        db.commit()
        db.refresh(batch)
    return batch


def get_batch(
    db: Session,
    *,
    inventory_type: str,
    batch_id: str,
    for_update: bool = False,
) -> FgInventoryBatch | FgPackagedBatch | None:
    if inventory_type == "bulk":
        model = FgInventoryBatch
    elif inventory_type == "units":
        model = FgPackagedBatch
    else:
        raise ValueError("Inventory type must be bulk or units")
    stmt = select(model).where(model.id == batch_id)
    if for_update:
        stmt = stmt.with_for_update()
    return db.execute(stmt).scalar_one_or_none()


def adjust_stock(
    db: Session,
    *,
    actor: Actor,
    inventory_type: str,
    batch_id: str,
    delta: Any,
    reason: str,
):
    reason = (reason or "").strip()
    if not reason:
        raise ValueError("Adjustment reason is required")

    batch = get_batch(db, inventory_type=inventory_type, batch_id=batch_id, for_update=True)
    if not batch:
        raise NotFoundError("Inventory batch not found")

    if inventory_type == "bulk":
        amount = _to_quantity(delta)
        current = _to_quantity(batch.quantity)
    else:
        try:
            requested = Decimal(str(delta))
        except (InvalidOperation, ValueError):
            raise ValueError("Adjustment for packaged stock must be a whole number") from None
        if not requested.is_finite() or requested != requested.to_integral_value():
            raise ValueError("Adjustment for packaged stock must be a whole number")
        amount = int(requested)
        current = int(batch.units_in_stock or 0)
    if amount == 0:
        raise ValueError("Adjustment cannot be zero")
    if current + amount < 0:
        raise ValueError("Adjustment would make stock negative")

    if inventory_type == "bulk":
        batch.quantity = current + amount
    else:
        batch.units_in_stock = current + amount

    record_movement(
        db,
        movement_type="in" if amount > 0 else "out",
        category=inventory_type,
        inventory_id=batch.id,
        product_id=batch.product_id,
        product_name=batch.product_name,
        variant_name=getattr(batch, "variant_name", None),
        batch_number=batch.batch_number,
        quantity=abs(amount),
        reason=f"adjustment: {reason}",
        created_by=actor.uid,
    )
    log_audit_event(
        db,
        actor=actor,
        action="inventory.adjust",
        target_type="fg_inventory" if inventory_type == "bulk" else "fg_packaged_inventory",
        target_id=batch.id,
        metadata_json={"delta": str(amount), "reason": reason},
    )
    db.commit()
    db.refresh(batch)
    return batch


def list_stock_movements(
    db: Session,
    *,
    search: str | None = None,
    movement_type: str | None = None,
    category: str | None = None,
    limit: int | None = None,
) -> list[FgStockMovement]:
    if movement_type and movement_type not in MOVEMENT_TYPES:
        raise ValueError("Movement type must be in or out")
    if category and category not in CATEGORIES:
        raise ValueError("Category must be bulk or units")

    stmt = select(FgStockMovement)
    if movement_type:
        stmt = stmt.where(FgStockMovement.movement_type == movement_type)
    if category:
        stmt = stmt.where(FgStockMovement.category == category)
    term = (search or "").strip().lower()
    if term:
        pattern = f"%{term}%"
        stmt = stmt.where(
            or_(
                FgStockMovement.product_name.ilike(pattern),
                FgStockMovement.batch_number.ilike(pattern),
                FgStockMovement.reason.ilike(pattern),
                FgStockMovement.variant_name.ilike(pattern),
            )
        )
    stmt = stmt.order_by(FgStockMovement.created_at.desc(), FgStockMovement.id)
    if limit:
        stmt = stmt.limit(limit)
    return list(db.execute(stmt).scalars().all())
