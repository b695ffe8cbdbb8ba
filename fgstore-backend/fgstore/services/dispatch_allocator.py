"""
Batch allocation for dispatching an approved sales request.

An allocation starts from the approved items of one history record. For every item the
dispatcher picks a dispatch quantity (at most the approved quantity) and spreads it over
inventory batches of the same product. A submission is only accepted when, for each item
being dispatched, the batch quantities add up to the dispatch quantity exactly.
"""

import math
import re
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from fgstore.models.inventory import FgInventoryBatch, FgPackagedBatch
from fgstore.models.sales_request import SalesApprovalHistory
from fgstore.services.request_items import item_quantity

BULK = "bulk"
UNITS = "units"
INVENTORY_TYPES = (BULK, UNITS)

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def parse_int(value: Any) -> int:
    """Leading-integer parse: "12.7" -> 12, "7 boxes" -> 7, anything else -> 0."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, (float, Decimal)):
        number = float(value)
        return int(number) if math.isfinite(number) else 0
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else 0


@dataclass(frozen=True)
class BatchOption:
    batch_id: str
    inventory_type: str
    product_id: str
    product_name: str
    batch_number: str
    location: str
    available: Decimal | int
    variant_name: str | None = None
    quality_grade: str | None = None
    expiry_date: date | None = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.batch_id, self.inventory_type)

    @classmethod
    def from_bulk(cls, batch: FgInventoryBatch) -> "BatchOption":
        return cls(
            batch_id=batch.id,
            inventory_type=BULK,
            product_id=batch.product_id,
            product_name=batch.product_name,
            batch_number=batch.batch_number,
            location=batch.location,
            available=batch.quantity,
            quality_grade=batch.quality_grade,
            expiry_date=batch.expiry_date,
        )

    @classmethod
    def from_packaged(cls, batch: FgPackagedBatch) -> "BatchOption":
        return cls(
            batch_id=batch.id,
            inventory_type=UNITS,
            product_id=batch.product_id,
            product_name=batch.product_name,
            batch_number=batch.batch_number,
            location=batch.location,
            available=batch.units_in_stock,
            variant_name=batch.variant_name,
            quality_grade=batch.quality_grade,
            expiry_date=batch.expiry_date,
        )


@dataclass
class SelectedBatch:
    option: BatchOption
    quantity: int


@dataclass
class AllocationItem:
    item_id: str
    name: str
    approved_qty: int
    dispatch_qty: int
    batches: dict[tuple[str, str], SelectedBatch] = field(default_factory=dict)

    def total_selected(self) -> int:
        return sum(selected.quantity for selected in self.batches.values())


def available_batches(db: Session, items: dict[str, dict[str, Any]]) -> dict[str, list[BatchOption]]:
    """Per item id, in-stock bulk then packaged batches whose product name equals the item name."""
    names = {str(item.get("name") or item_id) for item_id, item in items.items()}
    if not names:
        return {}

    bulk_rows = db.execute(
        select(FgInventoryBatch)
        .where(FgInventoryBatch.product_name.in_(names), FgInventoryBatch.quantity > 0)
        .order_by(FgInventoryBatch.expiry_date, FgInventoryBatch.batch_number)
    ).scalars().all()
    packaged_rows = db.execute(
        select(FgPackagedBatch)
        .where(FgPackagedBatch.product_name.in_(names), FgPackagedBatch.units_in_stock > 0)
        .order_by(FgPackagedBatch.expiry_date, FgPackagedBatch.batch_number)
    ).scalars().all()

    options = [BatchOption.from_bulk(row) for row in bulk_rows]
    options += [BatchOption.from_packaged(row) for row in packaged_rows]

    result: dict[str, list[BatchOption]] = {}
    for item_id, item in items.items():
        name = str(item.get("name") or item_id)
        result[item_id] = [option for option in options if option.product_name == name]
    return result


class DispatchAllocation:
    def __init__(self, items: dict[str, AllocationItem]):
        self.items = items

    @classmethod
    def from_history(cls, history: SalesApprovalHistory) -> "DispatchAllocation":
        items = {}
        for item_id, item in (history.items or {}).items():
            approved = max(0, parse_int(item_quantity(item)))
            name = item.get("name") if isinstance(item, dict) else None
            items[item_id] = AllocationItem(
                item_id=item_id,
                name=str(name or item_id),
                approved_qty=approved,
                dispatch_qty=approved,
            )
        return cls(items)

    def _item(self, item_id: str) -> AllocationItem:
        try:
            return self.items[item_id]
        except KeyError:
            raise ValueError(f"Item {item_id} is not part of this request") from None

    def set_dispatch_qty(self, item_id: str, value: Any) -> int:
        item = self._item(item_id)
        item.dispatch_qty = max(0, min(item.approved_qty, parse_int(value)))
        return item.dispatch_qty

    def select_batch(self, item_id: str, option: BatchOption, quantity: Any) -> None:
        """Set the quantity taken from one batch; zero or less drops the batch."""
        item = self._item(item_id)
        amount = parse_int(quantity)
        if amount > 0:
            item.batches[option.key] = SelectedBatch(option=option, quantity=amount)
        else:
            item.batches.pop(option.key, None)

    def total_selected(self, item_id: str) -> int:
        return self._item(item_id).total_selected()

    def validate(self) -> list[str]:
        messages = []
        for item in self.items.values():
            if item.dispatch_qty <= 0:
                continue
            total = item.total_selected()
            if total == 0:
                messages.append(f"{item.name}: No batches selected")
            elif total < item.dispatch_qty:
                messages.append(f"{item.name}: Selected {total}, need {item.dispatch_qty}")
            elif total > item.dispatch_qty:
                messages.append(f"{item.name}: Selected {total}, only need {item.dispatch_qty}")
        return messages

    def build_payload(self) -> dict[str, dict[str, Any]]:
        payload = {}
        for item_id, item in self.items.items():
            if item.dispatch_qty <= 0 or not item.batches:
                continue
            payload[item_id] = {
                "name": item.name,
                "qty": item.dispatch_qty,
                "batches": [
                    {
                        "batch_id": selected.option.batch_id,
                        "batch_number": selected.option.batch_number,
                        "location": selected.option.location,
                        "inventory_type": selected.option.inventory_type,
                        "quantity": selected.quantity,
                    }
                    for selected in item.batches.values()
                ],
            }
        return payload

    def is_complete(self) -> bool:
        """Every approved item is being dispatched in full."""
        return all(
            item.approved_qty <= 0 or (item.dispatch_qty == item.approved_qty and item.batches)
            for item in self.items.values()
        )
