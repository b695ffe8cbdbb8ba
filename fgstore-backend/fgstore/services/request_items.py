"""
Canonical item parsing for sales requests.

Requests reach the store in several shapes:

* ``items`` as an object ``{item_id: {name, qty}}`` (current clients),
* ``items`` as a JSON-encoded string of that object,
* items whose quantity lives under ``quantity`` instead of ``qty``, or is a bare number,
* a flat ``product`` + ``quantity`` pair (legacy),
* a ``products`` field, object or JSON string (legacy).

``normalize_request_items`` is the only place that knows about these shapes. Everything
downstream (history records, notifications, dispatch) sees ``{item_id: {"name", "qty", ...}}``.
"""

import json
import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

NO_ITEMS_MESSAGE = "Cannot approve request: No items found in request"


@dataclass(frozen=True)
class CanonicalItems:
    items: dict[str, dict[str, Any]]
    source: str
    total_quantity: float


def to_quantity(value: Any) -> int | float:
    """Numeric coercion where anything unparseable or non-finite counts as 0."""
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        try:
            number = float(text)
        except ValueError:
            return 0
    else:
        return 0
    if not math.isfinite(number):
        return 0
    return int(number) if number.is_integer() else number


def item_quantity(item: Any) -> int | float:
    if isinstance(item, dict):
        if item.get("qty") is not None:
            return to_quantity(item["qty"])
        if item.get("quantity") is not None:
            return to_quantity(item["quantity"])
        return 0
    if isinstance(item, (int, float, Decimal)) and not isinstance(item, bool):
        return to_quantity(item)
    return 0


def compute_total_quantity(items: dict[str, Any] | None) -> float:
    if not isinstance(items, dict):
        return 0.0
    total = sum(item_quantity(item) for item in items.values())
    total = float(total)
    return total if math.isfinite(total) else 0.0


def _parse_json_text(value: str) -> Any:
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        return None


def _as_mapping(value: Any) -> dict[str, Any] | None:
    if isinstance(value, dict):
        return value
    if isinstance(value, list):
        return {str(index): entry for index, entry in enumerate(value)}
    return None


def _has_entries(value: Any) -> bool:
    mapping = _as_mapping(value)
    return bool(mapping)


def _canonical_entry(item_id: str, item: Any) -> dict[str, Any]:
    if isinstance(item, dict):
        entry = {key: value for key, value in item.items() if key != "quantity"}
        entry["name"] = item.get("name") or item_id
        entry["qty"] = item_quantity(item)
        return entry
    return {"name": item_id, "qty": item_quantity(item)}


def normalize_request_items(
    *,
    items: Any = None,
    product: Any = None,
    quantity: Any = None,
    products: Any = None,
) -> CanonicalItems:
    """
    Resolve a request's items, in order:

    1. ``items``: parsed when it is a string (unparseable text counts as no items).
    2. ``product`` + ``quantity`` when both are present: a single-entry mapping.
    3. ``products``: parsed when it is a string, the raw value kept when parsing fails.

    Raises ValueError when nothing usable is found; that request is malformed upstream.
    """
    resolved: Any = None
    source = "items"

    if items:
        if isinstance(items, str):
            resolved = _parse_json_text(items)
            source = "items_json"
        elif isinstance(items, (dict, list)):
            resolved = items

    if not _has_entries(resolved) and product and quantity:
        name = str(product)
        resolved = {name: {"name": name, "qty": to_quantity(quantity)}}
        source = "product_quantity"

    if not _has_entries(resolved) and products:
        if isinstance(products, str):
            parsed = _parse_json_text(products)
            resolved = parsed if parsed is not None else products
        else:
            resolved = products
        source = "products"

    mapping = _as_mapping(resolved)
    if not mapping:
        raise ValueError(NO_ITEMS_MESSAGE)

    canonical = {str(item_id): _canonical_entry(str(item_id), item) for item_id, item in mapping.items()}
    return CanonicalItems(
        items=canonical,
        source=source,
        total_quantity=compute_total_quantity(canonical),
    )
