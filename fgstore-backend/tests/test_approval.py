import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from conftest import actor_for, auth_headers, seed_user
from fgstore.models.audit_log import AuditLog
from fgstore.models.notification import Notification
from fgstore.models.sales_request import SalesApprovalHistory, SalesRequest
from fgstore.services import approval_service, notification_service


def _seed_team(session_local):
    rep = seed_user(session_local, email="rep@example.com", role="DirectRepresentative", display_name="Nimal Perera")
    head = seed_user(session_local, email="head@example.com", role="HeadOfOperations", display_name="Head Ops")
    store = seed_user(
        session_local,
        email="store@example.com",
        role="FinishedGoodsStoreManager",
        display_name="FG Store",
    )
    return rep, head, store


def _create_request(client, rep, **overrides):
    body = {"request_type": "direct_representative", "items": {"p1": {"name": "Tea", "qty": "10"}}}
    body.update(overrides)
    res = client.post("/requests", json=body, headers=auth_headers(rep))
    assert res.status_code == 201, res.text
    return res.json()


def test_approve_creates_history_and_notifies_store(test_context):
    client, session_local = test_context
    rep, head, store = _seed_team(session_local)
    seed_user(session_local, email="store2@example.com", role="FinishedGoodsStoreManager", status="inactive")

    request = _create_request(client, rep, priority="high", notes="Weekly restock")
    assert request["status"] == "Pending"
    assert request["requested_by_name"] == "Nimal Perera"

    approve_res = client.post(f"/requests/{request['id']}/approve", headers=auth_headers(head))
    assert approve_res.status_code == 200, approve_res.text
    body = approve_res.json()
    assert body["verified"] is True
    assert body["request"]["status"] == "Approved"
    assert body["request"]["approver_name"] == "Head Ops"

    history = body["history"]
    assert history["type"] == "direct_rep_sale"
    assert history["total_quantity"] == 10
    assert history["items"] == {"p1": {"name": "Tea", "qty": 10}}
    assert history["requester_name"] == "Nimal Perera"
    assert history["shop_name"] == "Nimal Perera"
    assert history["priority"] == "high"
    assert history["is_dispatched"] is False

    notifications_res = client.get("/notifications", headers=auth_headers(store))
    assert notifications_res.status_code == 200, notifications_res.text
    notifications = notifications_res.json()
    assert notifications["unread_count"] == 1
    notification = notifications["items"][0]
    assert notification["type"] == "approved_sales_request"
    assert notification["request_id"] == history["id"]
    assert notification["message"] == (
        "New approved Direct Representative request ready for dispatch: Nimal Perera"
    )
    assert notification["data"]["total_quantity"] == 10
    assert notification["data"]["priority"] == "high"

    db = session_local()
    try:
        # Inactive store users are skipped.
        assert len(db.execute(select(Notification)).scalars().all()) == 1
        actions = db.execute(select(AuditLog.action)).scalars().all()
        assert "sales_request.approve" in actions
    finally:
        db.close()

    pending_res = client.get("/approval-history?is_dispatched=false", headers=auth_headers(store))
    assert pending_res.status_code == 200, pending_res.text
    assert pending_res.json()["pagination"]["total"] == 1


def test_malformed_request_fails_and_stays_pending(test_context):
    client, session_local = test_context
    _, head, _ = _seed_team(session_local)

    db = session_local()
    try:
        request = SalesRequest(request_type="distributor", items="{broken", status="Pending")
        db.add(request)
        db.commit()
        request_id = request.id
    finally:
        db.close()

    res = client.post(f"/requests/{request_id}/approve", headers=auth_headers(head))
    assert res.status_code == 400, res.text
    assert res.json()["error"]["message"] == "Cannot approve request: No items found in request"

    db = session_local()
    try:
        assert db.get(SalesRequest, request_id).status == "Pending"
        assert db.execute(select(SalesApprovalHistory)).scalars().all() == []
        assert db.execute(select(Notification)).scalars().all() == []
    finally:
        db.close()


def test_legacy_product_quantity_request_is_approved(test_context):
    client, session_local = test_context
    _, head, _ = _seed_team(session_local)

    db = session_local()
    try:
        request = SalesRequest(
            request_type="direct_shop",
            product="Herbal Tea",
            quantity="12",
            shop_name="Kandy Showroom",
            status="Pending",
        )
        db.add(request)
        db.commit()
        request_id = request.id
    finally:
        db.close()

    res = client.post(f"/requests/{request_id}/approve", headers=auth_headers(head))
    assert res.status_code == 200, res.text
    history = res.json()["history"]
    assert history["type"] == "direct_shop_sale"
    assert history["items"] == {"Herbal Tea": {"name": "Herbal Tea", "qty": 12}}
    assert history["requester_name"] == "Direct Shop"
    assert history["shop_name"] == "Kandy Showroom"


def test_approve_twice_and_reject_after_approval_conflict(test_context):
    client, session_local = test_context
    rep, head, _ = _seed_team(session_local)
    request = _create_request(client, rep)

    first = client.post(f"/requests/{request['id']}/approve", headers=auth_headers(head))
    assert first.status_code == 200, first.text

    second = client.post(f"/requests/{request['id']}/approve", headers=auth_headers(head))
    assert second.status_code == 409
    assert second.json()["error"]["message"] == "Request is already approved"

    reject = client.post(f"/requests/{request['id']}/reject", json={}, headers=auth_headers(head))
    assert reject.status_code == 409


def test_reject_sets_default_reason(test_context):
    client, session_local = test_context
    rep, head, store = _seed_team(session_local)
    request = _create_request(client, rep)

    res = client.post(f"/requests/{request['id']}/reject", json={"reason": "  "}, headers=auth_headers(head))
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["status"] == "Rejected"
    assert body["rejection_reason"] == "Request rejected"
    assert body["rejected_by"] == head.id

    assert client.get("/notifications", headers=auth_headers(store)).json()["items"] == []


def test_notification_failure_does_not_fail_approval(test_context, monkeypatch):
    client, session_local = test_context
    rep, head, store = _seed_team(session_local)
    request = _create_request(client, rep)

    def broken_notify_role(db, *, role, notification):
        raise RuntimeError("notification store unavailable")

    monkeypatch.setattr(notification_service, "notify_role", broken_notify_role)

    res = client.post(f"/requests/{request['id']}/approve", headers=auth_headers(head))
    assert res.status_code == 200, res.text
    assert res.json()["verified"] is True
    assert res.json()["request"]["status"] == "Approved"

    assert client.get("/notifications", headers=auth_headers(store)).json()["items"] == []


def test_requester_cannot_approve_and_anonymous_is_rejected(test_context):
    client, session_local = test_context
    rep, _, _ = _seed_team(session_local)
    request = _create_request(client, rep)

    forbidden = client.post(f"/requests/{request['id']}/approve", headers=auth_headers(rep))
    assert forbidden.status_code == 403
    assert forbidden.json()["error"]["code"] == "forbidden"

    anonymous = client.get("/requests")
    assert anonymous.status_code == 401


def test_unknown_request_returns_404(test_context):
    client, session_local = test_context
    _, head, _ = _seed_team(session_local)

    res = client.post("/requests/missing/approve", headers=auth_headers(head))
    assert res.status_code == 404
    assert res.json()["error"]["message"] == "Request not found"


def test_mark_notifications_read(test_context):
    client, session_local = test_context
    rep, head, store = _seed_team(session_local)
    for _ in range(2):
        request = _create_request(client, rep)
        client.post(f"/requests/{request['id']}/approve", headers=auth_headers(head))

    items = client.get("/notifications", headers=auth_headers(store)).json()["items"]
    assert len(items) == 2

    read_res = client.post(f"/notifications/{items[0]['id']}/read", headers=auth_headers(store))
    assert read_res.status_code == 200, read_res.text
    assert read_res.json()["status"] == "read"

    other_user = client.post(f"/notifications/{items[1]['id']}/read", headers=auth_headers(head))
    assert other_user.status_code == 404

    all_res = client.post("/notifications/read-all", headers=auth_headers(store))
    assert all_res.json() == {"updated": 1}
    assert client.get("/notifications?status=unread", headers=auth_headers(store)).json()["unread_count"] == 0


def test_unverified_history_keeps_approval_and_logs_error(test_context, db_session, monkeypatch):
    _, session_local = test_context
    rep, head, _store = _seed_team(session_local)
    request = approval_service.create_request(
        db_session,
        actor=actor_for(rep),
        payload={"items": {"p1": {"name": "Tea", "qty": 4}}},
    )

    original_get = Session.get

    def lose_history_on_reread(self, entity, ident, **kwargs):
        if entity is SalesApprovalHistory and kwargs.get("populate_existing"):
            return None
        return original_get(self, entity, ident, **kwargs)

    events = []
    monkeypatch.setattr(Session, "get", lose_history_on_reread)
    monkeypatch.setattr(
        approval_service,
        "log_event",
        lambda event, **fields: events.append((event, fields.get("level"), fields)),
    )

    result = approval_service.approve(db_session, request_id=request.id, actor=actor_for(head))
    monkeypatch.undo()

    assert result.verified is False
    unverified = [entry for entry in events if entry[0] == "approval_history_unverified"]
    assert len(unverified) == 1
    assert unverified[0][1] == logging.ERROR
    assert unverified[0][2]["history_id"] == result.history.id

    db = session_local()
    try:
        assert db.get(SalesRequest, request.id).status == "Approved"
        assert db.get(SalesApprovalHistory, result.history.id) is not None
    finally:
        db.close()
