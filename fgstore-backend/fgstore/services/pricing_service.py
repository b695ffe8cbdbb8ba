import csv
import io
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from fgstore.core.config import settings
from fgstore.core.currencies import (
    PRICE_TYPES,
    SUPPORTED_CURRENCY_CODES,
    normalize_currency_code,
    normalize_price_type,
)
from fgstore.core.errors import NotFoundError
from fgstore.core.money import ZERO_MONEY, parse_money, to_money
from fgstore.core.security_current import Actor
from fgstore.core.time_utils import as_utc, end_of_day, start_of_day, utcnow
from fgstore.models.inventory import FgInventoryBatch, FgPackagedBatch
from fgstore.models.pricing import FgPriceHistory, FgProductPrice
from fgstore.services.audit_service import log_audit_event

CHANGE_TYPES = ("increase", "decrease")

PRICE_HISTORY_CSV_COLUMNS = [
    "Date",
    "Time",
    "Product ID",
    "Product Name",
    "Previous Price",
    "New Price",
    "Change Amount",
    "Change Percentage",
    "Change Type",
    "Reason",
    "Changed By",
    "Effective Date",
]


@dataclass(frozen=True)
class PriceHistoryEntry:
    """A history row with the product name resolved for display."""

    record: FgPriceHistory
    product_name: str

    @property
    def change_percentage(self) -> float:
        return calculate_price_change(self.record.previous_price, self.record.new_price)

    @property
    def change_amount(self) -> Decimal:
        return abs(to_money(self.record.new_price) - to_money(self.record.previous_price))

    @property
    def change_type(self) -> str:
        return "increase" if self.record.new_price >= self.record.previous_price else "decrease"


def product_key_for(product_id: str, variant_name: str | None = None) -> str:
    variant = (variant_name or "").strip()
    return f"{product_id}_{variant}" if variant else product_id


def calculate_price_change(previous: Any, new: Any) -> float:
    """Percentage change; 0 when there is no positive previous price."""
    previous_value = parse_money(previous) or ZERO_MONEY
    new_value = parse_money(new) or ZERO_MONEY
    if previous_value <= 0:
        return 0.0
    return float((new_value - previous_value) / previous_value * 100)


def get_product_price(db: Session, product_key: str) -> FgProductPrice:
    record = db.get(FgProductPrice, product_key)
    if not record:
        raise NotFoundError("Price not found for product")
    return record


def list_product_pricing(db: Session, *, price_type: str | None = None) -> list[FgProductPrice]:
    stmt = select(FgProductPrice)
    if price_type:
        stmt = stmt.where(FgProductPrice.price_type == normalize_price_type(price_type))
    return list(db.execute(stmt.order_by(FgProductPrice.product_key)).scalars().all())


def current_retail_price(db: Session, *, product_id: str, variant_name: str | None = None) -> Decimal | None:
    """Retail price for a variant, falling back to the product-level price."""
    keys = [product_key_for(product_id, variant_name)]
    if keys[0] != product_id:
        keys.append(product_id)
    for key in keys:
        record = db.get(FgProductPrice, key)
        if record and record.price_type == "retail":
            return to_money(record.price)
    return None


def update_product_price(
    db: Session,
    *,
    actor: Actor,
    product_key: str,
    data: dict[str, Any],
    commit: bool = True,
) -> FgPriceHistory:
    """
    Set the current price for `product_key` and append the change to the history.
    The previous price of a first-time price is 0.
    """
    product_key = (product_key or "").strip()
    if not product_key:
        raise ValueError("Product key is required")

    price = parse_money(data.get("price"))
    if price is None or price <= 0:
        raise ValueError("Price must be a positive number")
    currency = normalize_currency_code(data.get("currency") or settings.default_currency)
    if currency not in SUPPORTED_CURRENCY_CODES:
        raise ValueError("Unsupported currency")
    price_type = normalize_price_type(data.get("price_type") or "retail")
    if price_type not in PRICE_TYPES:
        raise ValueError("Unsupported price type")
    effective_date = data.get("effective_date") or utcnow()
    change_reason = data.get("change_reason")

    record = db.get(FgProductPrice, product_key)
    previous_price = to_money(record.price) if record else ZERO_MONEY
    product_id = data.get("product_id") or product_key.split("_", 1)[0]

    if record is None:
        record = FgProductPrice(product_key=product_key, product_id=product_id)
        db.add(record)
    record.product_name = data.get("product_name") or record.product_name
    record.variant_name = data.get("variant_name") or record.variant_name
    record.price = price
    record.currency = currency
    record.price_type = price_type
    record.effective_date = effective_date
    record.change_reason = change_reason
    record.updated_by = actor.uid
    record.updated_by_name = actor.display_name

    history = FgPriceHistory(
        product_key=product_key,
        product_id=product_id,
        product_name=record.product_name,
        previous_price=previous_price,
        new_price=price,
        currency=currency,
        price_type=price_type,
        change_reason=change_reason,
        changed_by=actor.uid,
        changed_by_name=actor.display_name,
        effective_date=effective_date,
    )
    db.add(history)
    log_audit_event(
        db,
        actor=actor,
        action="pricing.update",
        target_type="product_price",
        target_id=product_key,
        metadata_json={"previous_price": str(previous_price), "new_price": str(price), "currency": currency},
    )
    if commit:
        db.commit()
        db.refresh(history)
    return history


def _product_names(db: Session) -> dict[str, str]:
    names: dict[str, str] = {}
    for product_id, product_name in db.execute(
        select(FgInventoryBatch.product_id, FgInventoryBatch.product_name)
    ).all():
        if product_id and product_name:
            names[product_id] = product_name
    for product_id, product_name in db.execute(
        select(FgPackagedBatch.product_id, FgPackagedBatch.product_name)
    ).all():
        if product_id and product_name:
            names[product_id] = product_name
    for product_id, product_name in db.execute(
        select(FgProductPrice.product_id, FgProductPrice.product_name)
    ).all():
        if product_id and product_name:
            names[product_id] = product_name
    return names


def _resolve_name(record: FgPriceHistory, names: dict[str, str]) -> str:
    if record.product_name:
        return record.product_name
    for candidate in (record.product_key, record.product_id):
        if candidate in names:
            return names[candidate]
        if "_" in candidate:
            base_id = candidate.split("_", 1)[0]
            if base_id in names:
                return names[base_id]
    return record.product_id or "Unknown Product"


def list_price_history(
    db: Session,
    *,
    search: str | None = None,
    product: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    change_type: str | None = None,
) -> list[PriceHistoryEntry]:
    if change_type and change_type not in CHANGE_TYPES:
        raise ValueError("Change type must be increase or decrease")

    records = db.execute(
        select(FgPriceHistory).order_by(FgPriceHistory.recorded_at.desc(), FgPriceHistory.id)
    ).scalars().all()
    names = _product_names(db)
    lower_bound = start_of_day(date_from) if date_from else None
    upper_bound = end_of_day(date_to) if date_to else None
    term = (search or "").strip().lower()

    entries = []
    for record in records:
        entry = PriceHistoryEntry(record=record, product_name=_resolve_name(record, names))
        recorded_at = as_utc(record.recorded_at)
        if term and not any(
            term in (value or "").lower()
            for value in (entry.product_name, record.product_id, record.change_reason, record.changed_by_name)
        ):
            continue
        if product and product not in entry.product_name:
            continue
        if lower_bound and recorded_at < lower_bound:
            continue
        if upper_bound and recorded_at > upper_bound:
            continue
        if change_type == "increase" and entry.change_percentage <= 0:
            continue
        if change_type == "decrease" and entry.change_percentage >= 0:
            continue
        entries.append(entry)
    return entries


def price_history_summary(entries: list[PriceHistoryEntry]) -> dict[str, Any]:
    total = len(entries)
    increases = sum(1 for entry in entries if entry.record.new_price > entry.record.previous_price)
    decreases = sum(1 for entry in entries if entry.record.new_price < entry.record.previous_price)
    average = sum(entry.change_percentage for entry in entries) / total if total else 0.0
    return {
        "total_changes": total,
        "increases": increases,
        "decreases": decreases,
        "average_change_percentage": round(average, 2),
        "unique_products": len({entry.product_name for entry in entries}),
    }


def pricing_analytics(db: Session, product_key: str, *, recent_limit: int = 5) -> dict[str, Any] | None:
    records = db.execute(
        select(FgPriceHistory)
        .where(FgPriceHistory.product_key == product_key)
        .order_by(FgPriceHistory.recorded_at.desc(), FgPriceHistory.id)
    ).scalars().all()
    if not records:
        return None

    prices = [to_money(record.new_price) for record in records]
    changes = [abs(calculate_price_change(record.previous_price, record.new_price)) for record in records]
    current = db.get(FgProductPrice, product_key)
    return {
        "product_key": product_key,
        "current_price": to_money(current.price) if current else prices[0],
        "currency": current.currency if current else records[0].currency,
        "total_changes": len(records),
        "min_price": min(prices),
        "max_price": max(prices),
        "avg_price": to_money(sum(prices) / len(prices)),
        "price_volatility": round(sum(changes) / len(changes), 2),
        "last_change": records[0],
        "recent_changes": list(records[:recent_limit]),
    }


def _format_money(currency: str, value: Decimal) -> str:
    return f"{currency} {to_money(value):.2f}"


def export_price_history_csv(entries: Iterable[PriceHistoryEntry]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(PRICE_HISTORY_CSV_COLUMNS)
    for entry in entries:
        record = entry.record
        recorded_at: datetime = as_utc(record.recorded_at) or utcnow()
        effective = as_utc(record.effective_date)
        currency = record.currency or "LKR"
        writer.writerow(
            [
                recorded_at.strftime("%Y-%m-%d"),
                recorded_at.strftime("%H:%M:%S"),
                record.product_id or "N/A",
                entry.product_name,
                _format_money(currency, record.previous_price),
                _format_money(currency, record.new_price),
                _format_money(currency, entry.change_amount),
                f"{entry.change_percentage:.1f}%",
                "Increase" if entry.change_type == "increase" else "Decrease",
                record.change_reason or "Not specified",
                record.changed_by_name or "Unknown",
                effective.strftime("%Y-%m-%d") if effective else "Immediate",
            ]
        )
    return buffer.getvalue()
