from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from fgstore.core.errors import AllocationError, InvalidStateError, NotFoundError
from fgstore.core.id_utils import generate_release_code
from fgstore.core.money import ZERO_MONEY, to_money
from fgstore.core.observability import log_event
from fgstore.core.security_current import Actor
from fgstore.core.time_utils import utcnow
from fgstore.models.dispatch import FgDispatch, FgDispatchLine
from fgstore.models.inventory import FgPackagedBatch
from fgstore.models.sales_request import SalesApprovalHistory
from fgstore.services.audit_service import log_audit_event
from fgstore.services.dispatch_allocator import (
    INVENTORY_TYPES,
    BatchOption,
    DispatchAllocation,
    available_batches,
)
from fgstore.services.inventory_service import get_batch, record_movement
from fgstore.services.pricing_service import current_retail_price
from fgstore.services.unit_of_work import UnitOfWork


@dataclass(frozen=True)
class DispatchResult:
    dispatch: FgDispatch
    lines: list[FgDispatchLine]
    history: SalesApprovalHistory


def _history_for_update(db: Session, history_id: str) -> SalesApprovalHistory:
    history = db.execute(
        select(SalesApprovalHistory).where(SalesApprovalHistory.id == history_id).with_for_update()
    ).scalar_one_or_none()
    if not history:
        raise NotFoundError("Approval history record not found")
    return history


def dispatch_options(db: Session, history_id: str) -> dict[str, list[BatchOption]]:
    history = db.execute(
        select(SalesApprovalHistory).where(SalesApprovalHistory.id == history_id)
    ).scalar_one_or_none()
    if not history:
        raise NotFoundError("Approval history record not found")
    return available_batches(db, history.items or {})


def _apply_submission(
    db: Session,
    allocation: DispatchAllocation,
    submission_items: dict[str, Any],
) -> tuple[list[str], dict[tuple[str, str], Any]]:
    """
    Replay the submitted choices onto a server-built allocation. Batches are re-read
    under a row lock; the locked rows are returned keyed by (batch id, inventory type).
    """
    messages: list[str] = []
    locked: dict[tuple[str, str], Any] = {}

    for item_id, submitted in submission_items.items():
        if item_id not in allocation.items:
            messages.append(f"{item_id}: Item is not part of this request")
            continue
        item = allocation.items[item_id]
        if "dispatch_qty" in submitted:
            allocation.set_dispatch_qty(item_id, submitted["dispatch_qty"])

        for choice in submitted.get("batches") or []:
            inventory_type = choice.get("inventory_type")
            batch_id = choice.get("batch_id")
            if inventory_type not in INVENTORY_TYPES:
                messages.append(f"{item.name}: Unknown inventory type {inventory_type}")
                continue

            key = (batch_id, inventory_type)
            batch = locked.get(key)
            if batch is None:
                batch = get_batch(db, inventory_type=inventory_type, batch_id=batch_id, for_update=True)
                if batch is None:
                    messages.append(f"{item.name}: Batch {batch_id} not found")
                    continue
                locked[key] = batch
            if batch.product_name != item.name:
                messages.append(f"{item.name}: Batch {batch.batch_number} does not belong to this product")
                continue

            option = (
                BatchOption.from_packaged(batch)
                if isinstance(batch, FgPackagedBatch)
                else BatchOption.from_bulk(batch)
            )
            allocation.select_batch(item_id, option, choice.get("quantity"))

    return messages, locked


def _check_stock(allocation: DispatchAllocation, locked: dict[tuple[str, str], Any]) -> list[str]:
    """Each locked batch must cover everything taken from it, across all items."""
    taken: dict[tuple[str, str], int] = {}
    messages = []
    for item in allocation.items.values():
        if item.dispatch_qty <= 0:
            continue
        for key, selected in item.batches.items():
            taken[key] = taken.get(key, 0) + selected.quantity
            available = selected.option.available
            if taken[key] > available:
                messages.append(
                    f"{item.name}: Batch {selected.option.batch_number} has only {available} available"
                )
    return messages


def dispatch_request(
    db: Session,
    *,
    history_id: str,
    actor: Actor,
    submission: dict[str, Any],
) -> DispatchResult:
    """
    Dispatch an approved request against the chosen batches.

    `submission` is {"items": {item_id: {"dispatch_qty", "batches": [{batch_id,
    inventory_type, quantity}]}}, "notes"}. Quantities and product matches are
    re-checked against locked batch rows; any failure rejects the whole submission.
    """
    with UnitOfWork(db) as uow:
        history = _history_for_update(db, history_id)
        if history.is_dispatched:
            raise InvalidStateError("Request has already been dispatched")

        allocation = DispatchAllocation.from_history(history)
        messages, locked = _apply_submission(db, allocation, submission.get("items") or {})
        messages += allocation.validate()
        if not messages:
            messages += _check_stock(allocation, locked)
        payload = allocation.build_payload()
        if not messages and not payload:
            messages.append("No items selected for dispatch")
        if messages:
            raise AllocationError(messages)

        now = utcnow()
        dispatch = uow.add(
            FgDispatch(
                history_id=history.id,
                request_id=history.request_id,
                release_code=generate_release_code(),
                recipient_type=history.request_type,
                recipient_id=history.requester_id or "",
                recipient_name=history.requester_name or "Unknown",
                shop_name=history.shop_name or None,
                dispatched_by=actor.uid,
                dispatched_by_name=actor.display_name,
                dispatched_by_role=actor.role,
                notes=(submission.get("notes") or "").strip(),
                total_items=len(payload),
                total_quantity=sum(entry["qty"] for entry in payload.values()),
                total_value=ZERO_MONEY,
                dispatched_at=now,
            )
        )
        db.flush()

        total_value = Decimal("0")
        lines = []
        for item_id, entry in payload.items():
            item = allocation.items[item_id]
            for selected in item.batches.values():
                option = selected.option
                batch = locked[option.key]
                if option.inventory_type == "bulk":
                    batch.quantity = Decimal(str(batch.quantity)) - selected.quantity
                else:
                    batch.units_in_stock = int(batch.units_in_stock) - selected.quantity

                record_movement(
                    db,
                    movement_type="out",
                    category=option.inventory_type,
                    inventory_id=option.batch_id,
                    product_id=option.product_id,
                    product_name=option.product_name,
                    variant_name=option.variant_name,
                    batch_number=option.batch_number,
                    quantity=selected.quantity,
                    reason="dispatch",
                    reference_id=dispatch.id,
                    created_by=actor.uid,
                )
                lines.append(
                    uow.add(
                        FgDispatchLine(
                            dispatch_id=dispatch.id,
                            item_id=item_id,
                            item_name=entry["name"],
                            approved_qty=item.approved_qty,
                            dispatch_qty=item.dispatch_qty,
                            batch_id=option.batch_id,
                            batch_number=option.batch_number,
                            location=option.location,
                            inventory_type=option.inventory_type,
                            quantity=selected.quantity,
                        )
                    )
                )
                price = current_retail_price(
                    db,
                    product_id=option.product_id,
                    variant_name=option.variant_name,
                )
                if price is not None:
                    total_value += price * selected.quantity

        dispatch.total_value = to_money(total_value)
        history.is_dispatched = True
        history.is_completed_by_fg = allocation.is_complete()
        history.dispatched_at = now

        log_audit_event(
            db,
            actor=actor,
            action="dispatch.create",
            target_type="fg_dispatch",
            target_id=dispatch.id,
            metadata_json={
                "history_id": history.id,
                "release_code": dispatch.release_code,
                "total_quantity": dispatch.total_quantity,
            },
        )
        uow.commit()

    log_event(
        "dispatch_committed",
        dispatch_id=dispatch.id,
        history_id=history_id,
        total_items=dispatch.total_items,
        total_quantity=dispatch.total_quantity,
    )
    return DispatchResult(dispatch=dispatch, lines=lines, history=history)


def get_dispatch(db: Session, dispatch_id: str) -> tuple[FgDispatch, list[FgDispatchLine]]:
    dispatch = db.execute(select(FgDispatch).where(FgDispatch.id == dispatch_id)).scalar_one_or_none()
    if not dispatch:
        raise NotFoundError("Dispatch not found")
    lines = db.execute(
        select(FgDispatchLine).where(FgDispatchLine.dispatch_id == dispatch.id).order_by(FgDispatchLine.item_id)
    ).scalars().all()
    return dispatch, list(lines)
