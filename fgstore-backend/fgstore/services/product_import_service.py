"""
Spreadsheet ingestion for finished goods and their prices.

Rows arrive as objects keyed by the template's column headers ("Product Type",
"Batch Number", ...). Exports from other tools use camelCase keys instead, so every
field is looked up under both names.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fgstore.core.config import settings
from fgstore.core.currencies import PRICE_TYPES, SUPPORTED_CURRENCY_CODES
from fgstore.core.observability import log_event
from fgstore.core.security_current import Actor
from fgstore.services.inventory_service import QUALITY_GRADES, add_bulk_stock, add_packaged_stock
from fgstore.services.location_service import active_location_codes
from fgstore.services.pricing_service import product_key_for, update_product_price

IMPORT_CHANGE_REASON = "Bulk upload via Excel template"

# field -> (template header, camelCase key)
FIELD_HEADERS: dict[str, tuple[str, str]] = {
    "product_type": ("Product Type", "productType"),
    "product_name": ("Product Name", "productName"),
    "product_id": ("Product ID", "productId"),
    "batch_number": ("Batch Number", "batchNumber"),
    "quantity": ("Quantity", "quantity"),
    "unit": ("Unit", "unit"),
    "variant_name": ("Variant Name", "variantName"),
    "variant_size": ("Variant Size", "variantSize"),
    "variant_unit": ("Variant Unit", "variantUnit"),
    "units_in_stock": ("Units in Stock", "unitsInStock"),
    "quality_grade": ("Quality Grade", "qualityGrade"),
    "expiry_date": ("Expiry Date (YYYY-MM-DD)", "expiryDate"),
    "location": ("Location", "location"),
    "price": ("Price", "price"),
    "currency": ("Currency", "currency"),
    "price_type": ("Price Type", "priceType"),
    "notes": ("Notes", "notes"),
}

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_NUMBER_PREFIX = re.compile(r"^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


@dataclass
class RowValidation:
    row_number: int
    data: dict[str, Any]
    values: dict[str, Any] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def cell(row: dict[str, Any], name: str) -> Any:
    """Template header first, camelCase key second; empty cells count as missing."""
    header, key = FIELD_HEADERS[name]
    for candidate in (header, key):
        value = row.get(candidate)
        if value not in (None, ""):
            return value
    return None


def _text(row: dict[str, Any], name: str, default: str = "") -> str:
    value = cell(row, name)
    return str(value).strip() if value is not None else default


def _number(value: Any) -> float:
    """Leading-number parse; anything unparseable or non-finite is 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else 0.0
    match = _NUMBER_PREFIX.match(str(value))
    if not match:
        return 0.0
    number = float(match.group(0))
    return number if math.isfinite(number) else 0.0


def _parse_expiry(value: str) -> date | None:
    return date.fromisoformat(value) if value else None


def validate_row(row: dict[str, Any], row_number: int, locations: list[str]) -> RowValidation:
    result = RowValidation(row_number=row_number, data=row)
    errors, warnings = result.errors, result.warnings

    product_type = _text(row, "product_type").lower()
    product_name = _text(row, "product_name")
    product_id = _text(row, "product_id")
    batch_number = _text(row, "batch_number")
    location = _text(row, "location", settings.default_location_code) or settings.default_location_code

    if product_type not in ("bulk", "units"):
        errors.append('Product Type must be "bulk" or "units"')
    if not product_name:
        errors.append("Product Name is required")
    if not product_id:
        errors.append("Product ID is required")
    if not batch_number:
        errors.append("Batch Number is required")
    if location not in locations:
        warnings.append(f'Location "{location}" not found. Using default: {settings.default_location_code}')
        location = settings.default_location_code

    values: dict[str, Any] = {
        "product_type": product_type,
        "product_name": product_name,
        "product_id": product_id,
        "batch_number": batch_number,
        "location": location,
    }

    if product_type == "bulk":
        quantity = _number(cell(row, "quantity"))
        unit = _text(row, "unit", "kg")
        if quantity <= 0:
            errors.append("Quantity must be greater than 0 for bulk products")
        if not unit:
            errors.append("Unit is required for bulk products")
        if cell(row, "variant_name") is not None:
            warnings.append("Variant Name should be empty for bulk products")
        if cell(row, "units_in_stock") is not None:
            warnings.append("Units in Stock should be empty for bulk products")
        values.update(quantity=quantity, unit=unit)
    elif product_type == "units":
        variant_name = _text(row, "variant_name")
        variant_size = _text(row, "variant_size")
        variant_unit = _text(row, "variant_unit")
        units = _number(cell(row, "units_in_stock"))
        if not variant_name:
            errors.append("Variant Name is required for packaged products")
        if not variant_size or not variant_unit:
            errors.append("Variant Size and Unit are required for packaged products")
        if units <= 0:
            errors.append("Units in Stock must be greater than 0 for packaged products")
        if cell(row, "quantity") is not None:
            warnings.append("Quantity should be empty for packaged products")
        values.update(
            variant_name=variant_name,
            variant_size=variant_size,
            variant_unit=variant_unit,
            units_in_stock=int(units),
        )

    quality_grade = _text(row, "quality_grade", "A").upper() or "A"
    if quality_grade not in QUALITY_GRADES:
        errors.append("Quality Grade must be A, B, C, or D")
    values["quality_grade"] = quality_grade

    expiry_text = _text(row, "expiry_date")
    values["expiry_date"] = None
    if expiry_text:
        if not _DATE_PATTERN.match(expiry_text):
            errors.append("Expiry Date must be in YYYY-MM-DD format")
        else:
            try:
                values["expiry_date"] = _parse_expiry(expiry_text)
            except ValueError:
                errors.append("Expiry Date is not a valid date")

    price_cell = cell(row, "price")
    price = _number(price_cell)
    if price_cell is None or price <= 0:
        errors.append("Price must be a positive number")
    values["price"] = price

    currency = _text(row, "currency", settings.default_currency).upper() or settings.default_currency
    if currency not in SUPPORTED_CURRENCY_CODES:
        warnings.append(f'Currency "{currency}" not standard. Using {settings.default_currency}')
        currency = settings.default_currency
    values["currency"] = currency

    price_type = _text(row, "price_type", "retail").lower() or "retail"
    if price_type not in PRICE_TYPES:
        warnings.append(f'Price Type "{price_type}" not standard. Using retail')
        price_type = "retail"
    values["price_type"] = price_type

    result.values = values
    return result


def validate_rows(rows: list[dict[str, Any]], locations: list[str]) -> list[RowValidation]:
    # Row 1 of the sheet is the header.
    return [validate_row(row, index + 2, locations) for index, row in enumerate(rows)]


def _import_row(db: Session, actor: Actor, values: dict[str, Any]) -> None:
    if values["product_type"] == "bulk":
        add_bulk_stock(
            db,
            actor=actor,
            data={
                "product_id": values["product_id"],
                "product_name": values["product_name"],
                "batch_number": values["batch_number"],
                "quantity": values["quantity"],
                "unit": values["unit"],
                "quality_grade": values["quality_grade"],
                "expiry_date": values["expiry_date"],
                "location": values["location"],
                "received_from": "manual_entry",
            },
            commit=False,
        )
        product_key = values["product_id"]
        variant_name = None
    else:
        add_packaged_stock(
            db,
            actor=actor,
            data={
                "product_id": values["product_id"],
                "product_name": values["product_name"],
                "variant_name": values["variant_name"],
                "variant_size": values["variant_size"],
                "variant_unit": values["variant_unit"],
                "batch_number": values["batch_number"],
                "units_received": values["units_in_stock"],
                "quality_grade": values["quality_grade"],
                "expiry_date": values["expiry_date"],
                "location": values["location"],
                "received_from": "manual_entry",
            },
            commit=False,
        )
        variant_name = values["variant_name"]
        product_key = product_key_for(values["product_id"], variant_name)

    update_product_price(
        db,
        actor=actor,
        product_key=product_key,
        data={
            "product_id": values["product_id"],
            "product_name": values["product_name"],
            "variant_name": variant_name,
            "price": values["price"],
            "currency": values["currency"],
            "price_type": values["price_type"],
            "change_reason": IMPORT_CHANGE_REASON,
        },
        commit=False,
    )


def import_rows(db: Session, *, actor: Actor, rows: list[dict[str, Any]]) -> dict[str, Any]:
    """
    Validate every row, then write the valid ones to inventory and pricing.

    Each row is its own transaction: a row that fails is rolled back and reported as
    "Row n: message" without affecting rows before or after it.
    """
    validation = validate_rows(rows, active_location_codes(db))
    success_count = 0
    errors: list[str] = []

    for result in validation:
        if not result.is_valid:
            continue
        try:
            _import_row(db, actor, result.values)
            db.commit()
        except (ValueError, LookupError, SQLAlchemyError) as exc:
            db.rollback()
            errors.append(f"Row {result.row_number}: {exc}")
            log_event(
                "product_import_row_failed",
                level=logging.WARNING,
                row_number=result.row_number,
                error=str(exc),
            )
            continue
        success_count += 1

    log_event("product_import_completed", success_count=success_count, error_count=len(errors))
    return {
        "success_count": success_count,
        "error_count": len(errors),
        "errors": errors,
        "validation": validation,
    }
