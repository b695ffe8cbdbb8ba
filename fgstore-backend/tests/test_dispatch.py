from sqlalchemy import select

from conftest import auth_headers, seed_user
from fgstore.models.dispatch import FgDispatch, FgDispatchLine
from fgstore.models.inventory import FgPackagedBatch, FgStockMovement
from fgstore.models.sales_request import SalesApprovalHistory
from fgstore.services.dispatch_allocator import BatchOption, DispatchAllocation, parse_int


def _option(batch_id: str, available: int, name: str = "Herbal Tea") -> BatchOption:
    return BatchOption(
        batch_id=batch_id,
        inventory_type="units",
        product_id="TEA001",
        product_name=name,
        batch_number=f"BN-{batch_id}",
        location="FG-A1",
        available=available,
        variant_name="500g",
    )


def _allocation(qty=50) -> DispatchAllocation:
    history = SalesApprovalHistory(items={"tea": {"name": "Herbal Tea", "qty": qty}})
    return DispatchAllocation.from_history(history)


def test_parse_int_takes_leading_integer():
    assert parse_int("12.7") == 12
    assert parse_int("7 boxes") == 7
    assert parse_int("boxes") == 0
    assert parse_int(None) == 0
    assert parse_int(3.9) == 3


def test_allocation_requires_exact_batch_total():
    allocation = _allocation()
    assert allocation.validate() == ["Herbal Tea: No batches selected"]

    allocation.select_batch("tea", _option("A", 30), 30)
    assert allocation.validate() == ["Herbal Tea: Selected 30, need 50"]

    allocation.select_batch("tea", _option("B", 40), 25)
    assert allocation.validate() == ["Herbal Tea: Selected 55, only need 50"]

    allocation.select_batch("tea", _option("B", 40), 20)
    assert allocation.validate() == []
    payload = allocation.build_payload()
    assert payload["tea"]["qty"] == 50
    assert [batch["quantity"] for batch in payload["tea"]["batches"]] == [30, 20]
    assert allocation.is_complete() is True


def test_allocation_clamps_dispatch_qty_and_drops_zero_batches():
    allocation = _allocation()

    assert allocation.set_dispatch_qty("tea", "80") == 50
    assert allocation.set_dispatch_qty("tea", "-3") == 0
    assert allocation.set_dispatch_qty("tea", "abc") == 0
    assert allocation.validate() == []
    assert allocation.build_payload() == {}

    allocation.set_dispatch_qty("tea", 20)
    allocation.select_batch("tea", _option("A", 30), 20)
    allocation.select_batch("tea", _option("A", 30), 0)
    assert allocation.total_selected("tea") == 0
    assert allocation.is_complete() is False


def _approved_history(client, session_local, *, qty=50):
    rep = seed_user(session_local, email="rep@example.com", role="DirectRepresentative", display_name="Rep One")
    head = seed_user(session_local, email="head@example.com", role="HeadOfOperations")
    store = seed_user(session_local, email="store@example.com", role="FinishedGoodsStoreManager", display_name="FG")

    created = client.post(
        "/requests",
        json={"items": {"tea": {"name": "Herbal Tea", "qty": qty}}},
        headers=auth_headers(rep),
    )
    assert created.status_code == 201, created.text
    approved = client.post(f"/requests/{created.json()['id']}/approve", headers=auth_headers(head))
    assert approved.status_code == 200, approved.text
    return approved.json()["history"]["id"], store


def _receive_units(client, store, *, batch_number: str, units: int, product_name: str = "Herbal Tea") -> str:
    res = client.post(
        "/inventory/packaged",
        json={
            "product_id": "TEA001",
            "product_name": product_name,
            "variant_name": "500g",
            "variant_size": "500",
            "variant_unit": "g",
            "batch_number": batch_number,
            "units_received": units,
            "expiry_date": "2030-01-31",
            "location": "FG-A2",
        },
        headers=auth_headers(store),
    )
    assert res.status_code == 201, res.text
    return res.json()["id"]


def test_dispatch_options_list_matching_batches(test_context):
    client, session_local = test_context
    history_id, store = _approved_history(client, session_local)
    batch_a = _receive_units(client, store, batch_number="A1", units=30)
    _receive_units(client, store, batch_number="X1", units=5, product_name="Lime Juice")

    res = client.get(f"/dispatch/{history_id}/options", headers=auth_headers(store))
    assert res.status_code == 200, res.text
    items = res.json()["items"]
    assert len(items) == 1
    assert items[0]["approved_qty"] == 50
    assert [batch["batch_id"] for batch in items[0]["batches"]] == [batch_a]
    assert items[0]["batches"][0]["available"] == 30


def test_short_selection_rejects_whole_submission(test_context):
    client, session_local = test_context
    history_id, store = _approved_history(client, session_local)
    batch_a = _receive_units(client, store, batch_number="A1", units=30)

    res = client.post(
        f"/dispatch/{history_id}",
        json={
            "items": {
                "tea": {
                    "dispatch_qty": 50,
                    "batches": [{"batch_id": batch_a, "inventory_type": "units", "quantity": 30}],
                }
            }
        },
        headers=auth_headers(store),
    )
    assert res.status_code == 400, res.text
    messages = [detail["message"] for detail in res.json()["error"]["details"]]
    assert messages == ["Herbal Tea: Selected 30, need 50"]
    assert res.json()["error"]["code"] == "allocation_failed"

    db = session_local()
    try:
        assert db.get(FgPackagedBatch, batch_a).units_in_stock == 30
        assert db.execute(select(FgDispatch)).scalars().all() == []
        assert db.get(SalesApprovalHistory, history_id).is_dispatched is False
    finally:
        db.close()


def test_exact_selection_commits_dispatch(test_context):
    client, session_local = test_context
    history_id, store = _approved_history(client, session_local)
    batch_a = _receive_units(client, store, batch_number="A1", units=30)
    batch_b = _receive_units(client, store, batch_number="B1", units=25)

    price = client.put(
        "/pricing/TEA001_500g",
        json={"price": "250", "variant_name": "500g", "product_name": "Herbal Tea"},
        headers=auth_headers(store),
    )
    assert price.status_code == 200, price.text

    res = client.post(
        f"/dispatch/{history_id}",
        json={
            "items": {
                "tea": {
                    "dispatch_qty": 50,
                    "batches": [
                        {"batch_id": batch_a, "inventory_type": "units", "quantity": 30},
                        {"batch_id": batch_b, "inventory_type": "units", "quantity": 20},
                    ],
                }
            },
            "notes": "Van 2",
        },
        headers=auth_headers(store),
    )
    assert res.status_code == 201, res.text
    body = res.json()
    assert body["is_completed_by_fg"] is True
    dispatch = body["dispatch"]
    assert dispatch["recipient_name"] == "Rep One"
    assert dispatch["recipient_type"] == "direct_representative"
    assert dispatch["total_items"] == 1
    assert dispatch["total_quantity"] == 50
    assert dispatch["total_value"] == "12500.00"
    assert len(dispatch["release_code"]) == 10
    assert sorted(line["quantity"] for line in dispatch["lines"]) == [20, 30]

    db = session_local()
    try:
        assert db.get(FgPackagedBatch, batch_a).units_in_stock == 0
        assert db.get(FgPackagedBatch, batch_b).units_in_stock == 5
        history = db.get(SalesApprovalHistory, history_id)
        assert history.is_dispatched is True
        assert history.dispatched_at is not None
        out_movements = db.execute(
            select(FgStockMovement).where(FgStockMovement.movement_type == "out")
        ).scalars().all()
        assert {movement.reference_id for movement in out_movements} == {dispatch["id"]}
        assert len(db.execute(select(FgDispatchLine)).scalars().all()) == 2
    finally:
        db.close()

    record = client.get(f"/dispatch/records/{dispatch['id']}", headers=auth_headers(store))
    assert record.status_code == 200, record.text
    assert len(record.json()["lines"]) == 2

    again = client.post(
        f"/dispatch/{history_id}",
        json={"items": {"tea": {"batches": [{"batch_id": batch_b, "inventory_type": "units", "quantity": 5}]}}},
        headers=auth_headers(store),
    )
    assert again.status_code == 409
    assert again.json()["error"]["message"] == "Request has already been dispatched"


def test_partial_dispatch_is_not_completed(test_context):
    client, session_local = test_context
    history_id, store = _approved_history(client, session_local)
    batch_a = _receive_units(client, store, batch_number="A1", units=30)

    res = client.post(
        f"/dispatch/{history_id}",
        json={
            "items": {
                "tea": {
                    "dispatch_qty": "20",
                    "batches": [{"batch_id": batch_a, "inventory_type": "units", "quantity": 20}],
                }
            }
        },
        headers=auth_headers(store),
    )
    assert res.status_code == 201, res.text
    assert res.json()["is_completed_by_fg"] is False
    assert res.json()["dispatch"]["total_value"] == "0.00"


def test_batch_of_other_product_or_short_stock_is_rejected(test_context):
    client, session_local = test_context
    history_id, store = _approved_history(client, session_local, qty=10)
    lime = _receive_units(client, store, batch_number="L1", units=50, product_name="Lime Juice")
    small = _receive_units(client, store, batch_number="S1", units=4)

    wrong_product = client.post(
        f"/dispatch/{history_id}",
        json={"items": {"tea": {"batches": [{"batch_id": lime, "inventory_type": "units", "quantity": 10}]}}},
        headers=auth_headers(store),
    )
    assert wrong_product.status_code == 400
    messages = [detail["message"] for detail in wrong_product.json()["error"]["details"]]
    assert "Herbal Tea: Batch L1 does not belong to this product" in messages

    short_stock = client.post(
        f"/dispatch/{history_id}",
        json={"items": {"tea": {"batches": [{"batch_id": small, "inventory_type": "units", "quantity": 10}]}}},
        headers=auth_headers(store),
    )
    assert short_stock.status_code == 400
    messages = [detail["message"] for detail in short_stock.json()["error"]["details"]]
    assert messages == ["Herbal Tea: Batch S1 has only 4 available"]


def test_requester_cannot_dispatch(test_context):
    client, session_local = test_context
    history_id, _ = _approved_history(client, session_local)
    rep = seed_user(session_local, email="rep2@example.com", role="Distributor")

    res = client.post(
        f"/dispatch/{history_id}",
        json={"items": {"tea": {"batches": []}}},
        headers=auth_headers(rep),
    )
    assert res.status_code == 403
