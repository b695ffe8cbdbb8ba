import csv
import io
from datetime import date, timedelta

from conftest import auth_headers, seed_user
from fgstore.services.expiry_service import expiry_status


def _store(session_local):
    return seed_user(session_local, email="store@example.com", role="FinishedGoodsStoreManager", display_name="FG")


def _receive_bulk(client, store, *, batch_number, expiry_date=None, location="FG-A1", name="Honey Syrup"):
    res = client.post(
        "/inventory/bulk",
        json={
            "product_id": "HONEY001",
            "product_name": name,
            "batch_number": batch_number,
            "quantity": "10",
            "unit": "L",
            "expiry_date": expiry_date.isoformat() if expiry_date else None,
            "location": location,
        },
        headers=auth_headers(store),
    )
    assert res.status_code == 201, res.text
    return res.json()["id"]


def test_expiry_status_thresholds():
    today = date(2026, 10, 19)
    assert expiry_status(None, today) is None
    assert expiry_status(today - timedelta(days=1), today) == "expired"
    assert expiry_status(today, today) == "critical"
    assert expiry_status(today + timedelta(days=7), today) == "critical"
    assert expiry_status(today + timedelta(days=8), today) == "warning"
    assert expiry_status(today + timedelta(days=30), today) == "warning"
    assert expiry_status(today + timedelta(days=31), today) == "good"


def test_expiry_report_sorts_and_summarises(test_context):
    client, session_local = test_context
    store = _store(session_local)
    today = date.today()
    _receive_bulk(client, store, batch_number="GOOD", expiry_date=today + timedelta(days=90))
    _receive_bulk(client, store, batch_number="OLD", expiry_date=today - timedelta(days=2))
    _receive_bulk(client, store, batch_number="SOON", expiry_date=today + timedelta(days=3))
    _receive_bulk(client, store, batch_number="LATER", expiry_date=today + timedelta(days=20))
    _receive_bulk(client, store, batch_number="NONE")

    res = client.get("/inventory/expiry", headers=auth_headers(store))
    assert res.status_code == 200, res.text
    body = res.json()
    assert [item["batch_number"] for item in body["items"]] == ["OLD", "SOON", "LATER", "GOOD"]
    assert [item["status"] for item in body["items"]] == ["expired", "critical", "warning", "good"]
    assert body["items"][0]["days_to_expiry"] == -2
    assert body["summary"] == {"total": 4, "expired": 1, "critical": 1, "warning": 1}

    critical = client.get("/inventory/expiry?status=critical", headers=auth_headers(store)).json()
    assert [item["batch_number"] for item in critical["items"]] == ["SOON"]
    assert critical["summary"]["total"] == 4

    assert client.get("/inventory/expiry?status=stale", headers=auth_headers(store)).status_code == 400


def test_locations_overview_and_active_codes(test_context):
    client, session_local = test_context
    store = _store(session_local)

    fallback = client.get("/locations/active-codes", headers=auth_headers(store))
    assert fallback.json()["codes"] == ["FG-A1", "FG-A2", "FG-B1", "FG-B2"]

    created = client.post(
        "/locations",
        json={"code": "fg-a1", "name": "Aisle A1", "capacity": 2},
        headers=auth_headers(store),
    )
    assert created.status_code == 201, created.text
    assert created.json()["code"] == "FG-A1"
    client.post("/locations", json={"code": "FG-B1", "name": "Aisle B1", "capacity": 4}, headers=auth_headers(store))
    spare = client.post("/locations", json={"code": "FG-C1", "name": "Overflow"}, headers=auth_headers(store))

    duplicate = client.post("/locations", json={"code": "FG-A1", "name": "Again"}, headers=auth_headers(store))
    assert duplicate.status_code == 409

    _receive_bulk(client, store, batch_number="A", location="FG-A1")
    _receive_bulk(client, store, batch_number="B", location="FG-A1")
    _receive_bulk(client, store, batch_number="C", location="FG-B1")

    overview = client.get("/locations/overview", headers=auth_headers(store))
    assert overview.status_code == 200, overview.text
    body = overview.json()
    by_code = {entry["location"]["code"]: entry for entry in body["locations"]}
    assert by_code["FG-A1"]["item_count"] == 2
    assert by_code["FG-A1"]["utilization"] == 100
    assert by_code["FG-B1"]["utilization"] == 25
    assert by_code["FG-C1"]["utilization"] == 0
    assert body["stats"] == {
        "total_locations": 3,
        "total_capacity": 6,
        "used_capacity": 3,
        "utilization": 50,
        "full_locations": 1,
        "empty_locations": 1,
    }

    deactivated = client.patch(
        f"/locations/{spare.json()['id']}",
        json={"status": "inactive"},
        headers=auth_headers(store),
    )
    assert deactivated.status_code == 200, deactivated.text
    codes = client.get("/locations/active-codes", headers=auth_headers(store)).json()["codes"]
    assert codes == ["FG-A1", "FG-B1"]

    head = seed_user(session_local, email="head@example.com", role="HeadOfOperations")
    assert client.post("/locations", json={"code": "FG-D1", "name": "D"}, headers=auth_headers(head)).status_code == 403


def _dispatched_request(client, session_local, store):
    rep = seed_user(session_local, email="rep@example.com", role="DirectRepresentative", display_name="Rep One")
    head = seed_user(session_local, email="head@example.com", role="HeadOfOperations")

    created = client.post(
        "/requests",
        json={"items": {"tea": {"name": "Herbal Tea", "qty": 10}}},
        headers=auth_headers(rep),
    )
    history_id = client.post(
        f"/requests/{created.json()['id']}/approve", headers=auth_headers(head)
    ).json()["history"]["id"]

    batch = client.post(
        "/inventory/packaged",
        json={
            "product_id": "TEA001",
            "product_name": "Herbal Tea",
            "variant_name": "500g",
            "variant_size": "500",
            "variant_unit": "g",
            "batch_number": "T1",
            "units_received": 15,
        },
        headers=auth_headers(store),
    ).json()["id"]
    client.put("/pricing/TEA001", json={"price": "100"}, headers=auth_headers(store))
    return history_id, batch, head


def test_dispatch_reports_and_dashboard(test_context):
    client, session_local = test_context
    store = _store(session_local)
    history_id, batch, head = _dispatched_request(client, session_local, store)

    before = client.get("/reports/dashboard", headers=auth_headers(head))
    assert before.status_code == 200, before.text
    assert before.json()["stats"]["pending_dispatches"] == 1
    assert before.json()["pending_dispatches"][0]["id"] == history_id

    dispatched = client.post(
        f"/dispatch/{history_id}",
        json={"items": {"tea": {"batches": [{"batch_id": batch, "inventory_type": "units", "quantity": 10}]}}},
        headers=auth_headers(store),
    )
    assert dispatched.status_code == 201, dispatched.text
    assert dispatched.json()["dispatch"]["total_value"] == "1000.00"

    report = client.get("/reports/dispatches", headers=auth_headers(head))
    assert report.status_code == 200, report.text
    body = report.json()
    assert len(body["items"]) == 1
    assert body["total_quantity"] == 10
    assert body["total_value"] == "1000.00"

    tomorrow = (date.today() + timedelta(days=1)).isoformat()
    assert client.get(f"/reports/dispatches?date_from={tomorrow}", headers=auth_headers(head)).json()["items"] == []

    export = client.get("/reports/dispatches/export", headers=auth_headers(head)).json()
    assert export["row_count"] == 1
    rows = list(csv.reader(io.StringIO(export["csv_content"])))
    assert rows[0][2] == "Release Code"
    assert rows[1][3:6] == ["direct_representative", "Rep One", "N/A"]
    assert rows[1][8] == "1000.00"

    recipients = client.get("/reports/recipients", headers=auth_headers(head))
    assert recipients.status_code == 200, recipients.text
    summary = recipients.json()
    assert summary["stats"]["total_recipients"] == 1
    assert summary["stats"]["top_recipient"] == "Rep One"
    assert summary["recipients"][0]["total_quantity"] == 10
    assert summary["recipients"][0]["total_value"] == "1000.00"

    assert client.get("/reports/recipients?search=nobody", headers=auth_headers(head)).json()["recipients"] == []
    assert client.get("/reports/recipients?sort_by=colour", headers=auth_headers(head)).status_code == 400

    after = client.get("/reports/dashboard", headers=auth_headers(store)).json()
    assert after["stats"]["pending_dispatches"] == 0
    assert after["stats"]["total_packaged_items"] == 1
    assert after["stats"]["total_packaged_units"] == 5
    assert any(movement["movement_type"] == "out" for movement in after["recent_movements"])


def test_reports_need_reports_permission(test_context):
    client, session_local = test_context
    rep = seed_user(session_local, email="rep@example.com", role="Distributor")

    assert client.get("/reports/dashboard", headers=auth_headers(rep)).status_code == 403
