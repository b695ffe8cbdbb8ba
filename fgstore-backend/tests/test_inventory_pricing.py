import csv
import io
from decimal import Decimal

import pytest

from conftest import actor_for, auth_headers, seed_user
from fgstore.services import inventory_service
from fgstore.services.audit_service import list_audit_events


def _store(session_local):
    return seed_user(
        session_local,
        email="store@example.com",
        role="FinishedGoodsStoreManager",
        display_name="FG Store",
    )


def _bulk_body(**overrides):
    body = {
        "product_id": "HONEY001",
        "product_name": "Honey Syrup",
        "batch_number": "BATCH001",
        "quantity": "100",
        "unit": "L",
        "location": "fg-b1",
    }
    body.update(overrides)
    return body


def test_receiving_same_bulk_batch_increments_quantity(test_context):
    client, session_local = test_context
    store = _store(session_local)

    first = client.post("/inventory/bulk", json=_bulk_body(), headers=auth_headers(store))
    assert first.status_code == 201, first.text
    assert first.json()["location"] == "FG-B1"
    assert first.json()["quality_grade"] == "A"

    second = client.post("/inventory/bulk", json=_bulk_body(quantity="50.5"), headers=auth_headers(store))
    assert second.status_code == 201, second.text
    assert second.json()["id"] == first.json()["id"]
    assert Decimal(second.json()["quantity"]) == Decimal("150.5")

    listing = client.get("/inventory/bulk?location=FG-B1", headers=auth_headers(store))
    assert len(listing.json()["items"]) == 1

    movements = client.get("/inventory/movements?category=bulk", headers=auth_headers(store))
    assert movements.status_code == 200, movements.text
    items = movements.json()["items"]
    assert len(items) == 2
    assert {item["movement_type"] for item in items} == {"in"}
    assert {item["reason"] for item in items} == {"stock_in"}


def test_packaged_batches_are_unique_per_variant(test_context):
    client, session_local = test_context
    store = _store(session_local)
    body = {
        "product_id": "TEA001",
        "product_name": "Herbal Tea",
        "variant_name": "500g",
        "variant_size": "500",
        "variant_unit": "g",
        "batch_number": "T1",
        "units_received": 10,
    }

    client.post("/inventory/packaged", json=body, headers=auth_headers(store))
    client.post("/inventory/packaged", json=body, headers=auth_headers(store))
    client.post("/inventory/packaged", json={**body, "variant_name": "1kg"}, headers=auth_headers(store))

    items = client.get("/inventory/packaged", headers=auth_headers(store)).json()["items"]
    assert sorted((item["variant_name"], item["units_in_stock"]) for item in items) == [("1kg", 10), ("500g", 20)]
    assert all(item["location"] == "FG-A1" for item in items)


def test_adjustment_records_movement_and_never_goes_negative(test_context):
    client, session_local = test_context
    store = _store(session_local)
    batch = client.post("/inventory/bulk", json=_bulk_body(), headers=auth_headers(store)).json()

    too_much = client.post(
        f"/inventory/{batch['id']}/adjust",
        json={"inventory_type": "bulk", "delta": "-150", "reason": "spillage"},
        headers=auth_headers(store),
    )
    assert too_much.status_code == 400
    assert too_much.json()["error"]["message"] == "Adjustment would make stock negative"

    adjusted = client.post(
        f"/inventory/{batch['id']}/adjust",
        json={"inventory_type": "bulk", "delta": "-20", "reason": "damaged"},
        headers=auth_headers(store),
    )
    assert adjusted.status_code == 200, adjusted.text
    assert Decimal(adjusted.json()["quantity"]) == Decimal("80")

    search = client.get("/inventory/movements?search=damaged", headers=auth_headers(store)).json()["items"]
    assert len(search) == 1
    assert search[0]["movement_type"] == "out"
    assert search[0]["reason"] == "adjustment: damaged"
    assert Decimal(search[0]["quantity"]) == Decimal("20")

    missing = client.post(
        "/inventory/unknown/adjust",
        json={"inventory_type": "units", "delta": "5", "reason": "recount"},
        headers=auth_headers(store),
    )
    assert missing.status_code == 404


def test_inventory_writes_need_store_role(test_context):
    client, session_local = test_context
    head = seed_user(session_local, email="head@example.com", role="HeadOfOperations")

    assert client.get("/inventory/bulk", headers=auth_headers(head)).status_code == 200
    assert client.post("/inventory/bulk", json=_bulk_body(), headers=auth_headers(head)).status_code == 403


def test_price_updates_build_history_and_analytics(test_context):
    client, session_local = test_context
    store = _store(session_local)
    client.post("/inventory/bulk", json=_bulk_body(), headers=auth_headers(store))

    for price, reason in (("200", "Launch"), ("250", "Supplier cost increase"), ("225", "Promotion")):
        res = client.put(
            "/pricing/HONEY001",
            json={"price": price, "change_reason": reason},
            headers=auth_headers(store),
        )
        assert res.status_code == 200, res.text

    current = client.get("/pricing/HONEY001", headers=auth_headers(store)).json()
    assert current["price"] == "225.00"
    assert current["currency"] == "LKR"
    assert current["updated_by_name"] == "FG Store"

    history = client.get("/pricing/history", headers=auth_headers(store))
    assert history.status_code == 200, history.text
    body = history.json()
    assert body["summary"]["total_changes"] == 3
    assert body["summary"]["decreases"] == 1
    assert body["summary"]["unique_products"] == 1
    assert {item["product_name"] for item in body["items"]} == {"Honey Syrup"}

    increase = next(item for item in body["items"] if item["change_reason"] == "Supplier cost increase")
    assert increase["previous_price"] == "200.00"
    assert increase["change_percentage"] == 25.0
    assert increase["change_amount"] == "50.00"

    decreases = client.get("/pricing/history?change_type=decrease", headers=auth_headers(store)).json()
    assert [item["change_reason"] for item in decreases["items"]] == ["Promotion"]

    bad_filter = client.get("/pricing/history?change_type=sideways", headers=auth_headers(store))
    assert bad_filter.status_code == 400

    analytics = client.get("/pricing/HONEY001/analytics", headers=auth_headers(store))
    assert analytics.status_code == 200, analytics.text
    stats = analytics.json()
    assert stats["current_price"] == "225.00"
    assert stats["total_changes"] == 3
    assert stats["min_price"] == "200.00"
    assert stats["max_price"] == "250.00"
    assert stats["avg_price"] == "225.00"
    assert stats["last_change"]["change_reason"] == "Promotion"
    assert len(stats["recent_changes"]) == 3

    assert client.get("/pricing/NOPE/analytics", headers=auth_headers(store)).status_code == 404

    db = session_local()
    try:
        events = list_audit_events(db, target_type="product_price", target_id="HONEY001")
    finally:
        db.close()
    assert [event.action for event in events] == ["pricing.update"] * 3
    assert events[-1].metadata_json["new_price"] == "225.00"
    assert events[-1].actor_role == "FinishedGoodsStoreManager"


def test_price_validation(test_context):
    client, session_local = test_context
    store = _store(session_local)

    currency = client.put("/pricing/HONEY001", json={"price": "10", "currency": "GBP"}, headers=auth_headers(store))
    assert currency.status_code == 400
    assert currency.json()["error"]["message"] == "Unsupported currency"

    negative = client.put("/pricing/HONEY001", json={"price": "-1"}, headers=auth_headers(store))
    assert negative.status_code == 422

    assert client.get("/pricing/HONEY001", headers=auth_headers(store)).status_code == 404


def test_price_history_export_csv(test_context):
    client, session_local = test_context
    store = _store(session_local)
    client.put("/pricing/TEA001_500g", json={"price": "100", "product_name": "Herbal Tea"}, headers=auth_headers(store))
    client.put("/pricing/TEA001_500g", json={"price": "110"}, headers=auth_headers(store))

    res = client.get("/pricing/history/export", headers=auth_headers(store))
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["row_count"] == 2
    assert body["content_type"] == "text/csv"
    assert body["filename"].startswith("price-history-")

    rows = list(csv.reader(io.StringIO(body["csv_content"])))
    assert rows[0][:4] == ["Date", "Time", "Product ID", "Product Name"]
    latest = next(row for row in rows[1:] if row[5] == "LKR 110.00")
    assert latest[2] == "TEA001"
    assert latest[3] == "Herbal Tea"
    assert latest[4] == "LKR 100.00"
    assert latest[5] == "LKR 110.00"
    assert latest[7] == "10.0%"
    assert latest[8] == "Increase"
    assert latest[9] == "Not specified"
    assert latest[10] == "FG Store"


def test_packaged_adjustment_rejects_fractional_units(test_context, db_session):
    client, session_local = test_context
    store = _store(session_local)
    actor = actor_for(store)
    batch = inventory_service.add_packaged_stock(
        db_session,
        actor=actor,
        data={
            "product_id": "TEA001",
            "product_name": "Herbal Tea",
            "variant_name": "500g",
            "variant_size": "500",
            "variant_unit": "g",
            "batch_number": "T1",
            "units_received": 10,
        },
    )

    for delta in (Decimal("-2.5"), Decimal("0.5")):
        with pytest.raises(ValueError, match="Adjustment for packaged stock must be a whole number"):
            inventory_service.adjust_stock(
                db_session,
                actor=actor,
                inventory_type="units",
                batch_id=batch.id,
                delta=delta,
                reason="recount",
            )
        db_session.rollback()

    over_http = client.post(
        f"/inventory/{batch.id}/adjust",
        json={"inventory_type": "units", "delta": "-2.5", "reason": "recount"},
        headers=auth_headers(store),
    )
    assert over_http.status_code == 400
    assert over_http.json()["error"]["message"] == "Adjustment for packaged stock must be a whole number"

    whole = inventory_service.adjust_stock(
        db_session,
        actor=actor,
        inventory_type="units",
        batch_id=batch.id,
        delta=Decimal("-2.0"),
        reason="recount",
    )
    assert whole.units_in_stock == 8

    movements = inventory_service.list_stock_movements(db_session, search="recount")
    assert [(movement.movement_type, Decimal(movement.quantity)) for movement in movements] == [("out", Decimal("2"))]
