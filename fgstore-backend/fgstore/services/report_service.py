import csv
import io
from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from fgstore.core.config import settings
from fgstore.core.money import to_money
from fgstore.core.time_utils import as_utc, end_of_day, start_of_day
from fgstore.models.dispatch import FgDispatch
from fgstore.models.inventory import FgInventoryBatch, FgPackagedBatch
from fgstore.models.sales_request import SalesApprovalHistory
from fgstore.services.expiry_service import expiry_report
from fgstore.services.inventory_service import list_stock_movements

RECIPIENT_TYPES = ("direct_shop", "distributor", "direct_representative")
RECIPIENT_SORT_KEYS = {
    "value": "total_value",
    "quantity": "total_quantity",
    "dispatches": "total_dispatches",
}

DISPATCH_CSV_COLUMNS = [
    "Date",
    "Time",
    "Release Code",
    "Recipient Type",
    "Recipient Name",
    "Shop Name",
    "Items Count",
    "Total Quantity",
    "Total Value",
    "Status",
    "Dispatched By",
]


def dispatch_report(
    db: Session,
    *,
    date_from: date | None = None,
    date_to: date | None = None,
    recipient_type: str | None = None,
    status: str | None = None,
) -> list[FgDispatch]:
    stmt = select(FgDispatch)
    if recipient_type:
        stmt = stmt.where(FgDispatch.recipient_type == recipient_type)
    if status:
        stmt = stmt.where(FgDispatch.status == status)
    rows = db.execute(stmt.order_by(FgDispatch.dispatched_at.desc(), FgDispatch.id)).scalars().all()

    lower_bound = start_of_day(date_from) if date_from else None
    upper_bound = end_of_day(date_to) if date_to else None
    result = []
    for dispatch in rows:
        dispatched_at = as_utc(dispatch.dispatched_at)
        if lower_bound and dispatched_at < lower_bound:
            continue
        if upper_bound and dispatched_at > upper_bound:
            continue
        result.append(dispatch)
    return result


def export_dispatch_report_csv(dispatches: Iterable[FgDispatch]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(DISPATCH_CSV_COLUMNS)
    for dispatch in dispatches:
        dispatched_at = as_utc(dispatch.dispatched_at)
        writer.writerow(
            [
                dispatched_at.strftime("%Y-%m-%d"),
                dispatched_at.strftime("%H:%M:%S"),
                dispatch.release_code,
                dispatch.recipient_type,
                dispatch.recipient_name,
                dispatch.shop_name or "N/A",
                dispatch.total_items,
                dispatch.total_quantity,
                f"{to_money(dispatch.total_value):.2f}",
                dispatch.status,
                dispatch.dispatched_by_name,
            ]
        )
    return buffer.getvalue()


def recipient_summary(
    db: Session,
    *,
    recipient_type: str | None = None,
    search: str | None = None,
    sort_by: str = "value",
) -> dict[str, Any]:
    """Dispatch totals per recipient, plus overall totals and the top recipient by value."""
    if sort_by not in RECIPIENT_SORT_KEYS:
        raise ValueError("Sort must be one of value, quantity, dispatches")
    if recipient_type and recipient_type not in RECIPIENT_TYPES:
        raise ValueError("Unknown recipient type")

    stmt = select(FgDispatch)
    if recipient_type:
        stmt = stmt.where(FgDispatch.recipient_type == recipient_type)
    dispatches = db.execute(stmt).scalars().all()

    grouped: dict[tuple[str, str], dict[str, Any]] = {}
    for dispatch in dispatches:
        key = (dispatch.recipient_type, dispatch.recipient_id or dispatch.recipient_name)
        entry = grouped.setdefault(
            key,
            {
                "recipient_type": dispatch.recipient_type,
                "recipient_id": dispatch.recipient_id,
                "recipient_name": dispatch.recipient_name,
                "shop_name": dispatch.shop_name,
                "total_dispatches": 0,
                "total_quantity": 0,
                "total_value": Decimal("0.00"),
                "last_dispatch_at": None,
            },
        )
        entry["total_dispatches"] += 1
        entry["total_quantity"] += int(dispatch.total_quantity or 0)
        entry["total_value"] = to_money(entry["total_value"] + to_money(dispatch.total_value or 0))
        dispatched_at = as_utc(dispatch.dispatched_at)
        if entry["last_dispatch_at"] is None or dispatched_at > entry["last_dispatch_at"]:
            entry["last_dispatch_at"] = dispatched_at

    recipients = list(grouped.values())
    term = (search or "").strip().lower()
    if term:
        recipients = [
            entry
            for entry in recipients
            if term in (entry["recipient_name"] or "").lower() or term in (entry["shop_name"] or "").lower()
        ]
    sort_key = RECIPIENT_SORT_KEYS[sort_by]
    recipients.sort(key=lambda entry: entry[sort_key], reverse=True)

    by_value = sorted(recipients, key=lambda entry: entry["total_value"], reverse=True)
    return {
        "recipients": recipients,
        "stats": {
            "total_recipients": len(recipients),
            "total_dispatches": sum(entry["total_dispatches"] for entry in recipients),
            "total_value": to_money(sum((entry["total_value"] for entry in recipients), Decimal("0"))),
            "top_recipient": by_value[0]["recipient_name"] if by_value else None,
        },
    }


def dashboard(db: Session, *, today: date | None = None) -> dict[str, Any]:
    bulk_count, bulk_quantity = db.execute(
        select(func.count(FgInventoryBatch.id), func.coalesce(func.sum(FgInventoryBatch.quantity), 0))
    ).one()
    packaged_count, packaged_units = db.execute(
        select(func.count(FgPackagedBatch.id), func.coalesce(func.sum(FgPackagedBatch.units_in_stock), 0))
    ).one()

    pending = db.execute(
        select(SalesApprovalHistory)
        .where(SalesApprovalHistory.is_dispatched.is_(False))
        .order_by(SalesApprovalHistory.approved_at.desc())
    ).scalars().all()

    expiry = expiry_report(db, today=today)
    alerts = [entry for entry in expiry["items"] if entry.status in ("expired", "critical")]

    return {
        "stats": {
            "total_items": int(bulk_count) + int(packaged_count),
            "total_bulk_items": int(bulk_count),
            "total_packaged_items": int(packaged_count),
            "total_bulk_quantity": Decimal(str(bulk_quantity)),
            "total_packaged_units": int(packaged_units),
            "expiring_items": len(alerts),
            "pending_dispatches": len(pending),
        },
        "pending_dispatches": list(pending[:5]),
        "expiry_alerts": alerts[:5],
        "recent_movements": list_stock_movements(db, limit=settings.recent_movements_limit),
    }
