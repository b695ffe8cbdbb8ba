from dataclasses import dataclass
from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from fgstore.core.config import settings
from fgstore.models.inventory import FgInventoryBatch, FgPackagedBatch

EXPIRY_STATUSES = ("expired", "critical", "warning", "good")


@dataclass(frozen=True)
class ExpiryEntry:
    batch: FgInventoryBatch | FgPackagedBatch
    inventory_type: str
    days_to_expiry: int
    status: str


def expiry_status(expiry_date: date | None, today: date | None = None) -> str | None:
    if expiry_date is None:
        return None
    days = (expiry_date - (today or date.today())).days
    if days < 0:
        return "expired"
    if days <= settings.expiry_critical_days:
        return "critical"
    if days <= settings.expiry_warning_days:
        return "warning"
    return "good"


def expiry_report(
    db: Session,
    *,
    status: str | None = None,
    search: str | None = None,
    today: date | None = None,
) -> dict:
    """Batches with an expiry date from both inventories, soonest first, plus counts per status."""
    if status and status not in EXPIRY_STATUSES:
        raise ValueError("Expiry status must be expired, critical, warning or good")
    today = today or date.today()

    entries: list[ExpiryEntry] = []
    for model, inventory_type in ((FgInventoryBatch, "bulk"), (FgPackagedBatch, "units")):
        batches = db.execute(select(model).where(model.expiry_date.is_not(None))).scalars().all()
        for batch in batches:
            entries.append(
                ExpiryEntry(
                    batch=batch,
                    inventory_type=inventory_type,
                    days_to_expiry=(batch.expiry_date - today).days,
                    status=expiry_status(batch.expiry_date, today),
                )
            )
    entries.sort(key=lambda entry: (entry.batch.expiry_date, entry.batch.batch_number))

    summary = {
        "total": len(entries),
        "expired": sum(1 for entry in entries if entry.status == "expired"),
        "critical": sum(1 for entry in entries if entry.status == "critical"),
        "warning": sum(1 for entry in entries if entry.status == "warning"),
    }

    term = (search or "").strip().lower()
    if term:
        entries = [
            entry
            for entry in entries
            if term in entry.batch.product_name.lower() or term in entry.batch.batch_number.lower()
        ]
    if status:
        entries = [entry for entry in entries if entry.status == status]
    return {"items": entries, "summary": summary}
