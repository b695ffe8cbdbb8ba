import pytest

from conftest import actor_for, auth_headers, seed_user
from fgstore.models.user import User
from fgstore.services import showroom_service


def _showroom_body(**overrides):
    body = {
        "name": "Colombo Flagship",
        "code": "ds001",
        "location": "12 Galle Road",
        "city": "Colombo",
    }
    body.update(overrides)
    return body


def _user(session_local, user_id: str) -> User:
    db = session_local()
    try:
        return db.get(User, user_id)
    finally:
        db.close()


def test_create_showroom_uppercases_code_and_defaults(test_context):
    client, session_local = test_context
    admin = seed_user(session_local, email="admin@example.com", role="Admin")

    res = client.post("/showrooms", json=_showroom_body(), headers=auth_headers(admin))
    assert res.status_code == 201, res.text
    body = res.json()
    assert body["code"] == "DS001"
    assert body["status"] == "active"
    assert body["opening_hours"]["monday"] == "9:00-18:00"
    assert body["opening_hours"]["sunday"] == "closed"
    assert body["created_by"] == admin.id

    by_code = client.get("/showrooms/by-code/DS001", headers=auth_headers(admin))
    assert by_code.status_code == 200, by_code.text
    assert by_code.json()["id"] == body["id"]

    lower = client.get("/showrooms/by-code/ds001", headers=auth_headers(admin))
    assert lower.json()["id"] == body["id"]

    missing = client.get("/showrooms/by-code/NOPE", headers=auth_headers(admin))
    assert missing.status_code == 404


def test_duplicate_code_is_rejected_case_insensitively(test_context):
    client, session_local = test_context
    admin = seed_user(session_local, email="admin@example.com", role="Admin")

    first = client.post("/showrooms", json=_showroom_body(code="DS001"), headers=auth_headers(admin))
    assert first.status_code == 201, first.text

    duplicate = client.post("/showrooms", json=_showroom_body(code="ds001", name="Other"), headers=auth_headers(admin))
    assert duplicate.status_code == 409
    assert duplicate.json()["error"]["message"] == "Showroom code already exists"

    second = client.post("/showrooms", json=_showroom_body(code="DS002"), headers=auth_headers(admin))
    rename = client.patch(
        f"/showrooms/{second.json()['id']}",
        json={"code": "ds001"},
        headers=auth_headers(admin),
    )
    assert rename.status_code == 409


def test_manager_back_reference_follows_assignment(test_context):
    client, session_local = test_context
    admin = seed_user(session_local, email="admin@example.com", role="Admin")
    first_manager = seed_user(session_local, email="m1@example.com", role="DirectShopManager")
    second_manager = seed_user(session_local, email="m2@example.com", role="DirectShopManager")

    created = client.post(
        "/showrooms",
        json=_showroom_body(manager_id=first_manager.id),
        headers=auth_headers(admin),
    )
    assert created.status_code == 201, created.text
    showroom_id = created.json()["id"]

    linked = _user(session_local, first_manager.id)
    assert linked.showroom_id == showroom_id
    assert linked.showroom_code == "DS001"
    assert linked.showroom_name == "Colombo Flagship"

    renamed = client.patch(
        f"/showrooms/{showroom_id}",
        json={"name": "Colombo Central", "code": "ds010"},
        headers=auth_headers(admin),
    )
    assert renamed.status_code == 200, renamed.text
    refreshed = _user(session_local, first_manager.id)
    assert refreshed.showroom_name == "Colombo Central"
    assert refreshed.showroom_code == "DS010"

    reassigned = client.put(
        f"/showrooms/{showroom_id}/manager",
        json={"manager_id": second_manager.id},
        headers=auth_headers(admin),
    )
    assert reassigned.status_code == 200, reassigned.text
    assert _user(session_local, first_manager.id).showroom_id is None
    assert _user(session_local, second_manager.id).showroom_id == showroom_id

    staff = client.get(f"/showrooms/{showroom_id}/staff", headers=auth_headers(admin))
    assert [member["id"] for member in staff.json()["items"]] == [second_manager.id]

    stats = client.get(f"/showrooms/{showroom_id}/stats", headers=auth_headers(admin))
    assert stats.json()["total_staff"] == 1
    assert stats.json()["active_staff"] == 1

    deleted = client.delete(f"/showrooms/{showroom_id}", headers=auth_headers(admin))
    assert deleted.status_code == 200, deleted.text
    assert deleted.json()["status"] == "inactive"
    assert _user(session_local, second_manager.id).showroom_id is None

    active = client.get("/showrooms/active", headers=auth_headers(admin))
    assert active.json()["items"] == []
    assert len(client.get("/showrooms", headers=auth_headers(admin)).json()["items"]) == 1


def test_update_without_manager_key_keeps_manager(test_context):
    client, session_local = test_context
    admin = seed_user(session_local, email="admin@example.com", role="Admin")
    manager = seed_user(session_local, email="m1@example.com", role="DirectShopManager")
    created = client.post("/showrooms", json=_showroom_body(manager_id=manager.id), headers=auth_headers(admin))
    showroom_id = created.json()["id"]

    res = client.patch(f"/showrooms/{showroom_id}", json={"city": "Negombo"}, headers=auth_headers(admin))
    assert res.status_code == 200, res.text
    assert res.json()["manager_id"] == manager.id
    assert res.json()["city"] == "Negombo"

    cleared = client.patch(f"/showrooms/{showroom_id}", json={"manager_id": None}, headers=auth_headers(admin))
    assert cleared.json()["manager_id"] is None
    assert _user(session_local, manager.id).showroom_id is None


def test_unknown_manager_and_empty_update(test_context):
    client, session_local = test_context
    admin = seed_user(session_local, email="admin@example.com", role="Admin")

    unknown = client.post("/showrooms", json=_showroom_body(manager_id="ghost"), headers=auth_headers(admin))
    assert unknown.status_code == 404
    assert unknown.json()["error"]["message"] == "Manager not found"

    created = client.post("/showrooms", json=_showroom_body(), headers=auth_headers(admin))
    empty = client.patch(f"/showrooms/{created.json()['id']}", json={}, headers=auth_headers(admin))
    assert empty.status_code == 422


def test_shop_manager_can_view_but_not_create(test_context):
    client, session_local = test_context
    shop_manager = seed_user(session_local, email="m1@example.com", role="DirectShopManager")

    assert client.get("/showrooms", headers=auth_headers(shop_manager)).status_code == 200
    res = client.post("/showrooms", json=_showroom_body(), headers=auth_headers(shop_manager))
    assert res.status_code == 403


def test_blank_code_on_update_is_rejected(test_context, db_session):
    client, session_local = test_context
    admin = seed_user(session_local, email="admin@example.com", role="Admin")
    showroom_id = client.post("/showrooms", json=_showroom_body(), headers=auth_headers(admin)).json()["id"]

    blank = client.patch(f"/showrooms/{showroom_id}", json={"code": "   "}, headers=auth_headers(admin))
    assert blank.status_code == 422

    renamed = client.patch(
        f"/showrooms/{showroom_id}",
        json={"name": "  Kandy Store  ", "city": " Kandy "},
        headers=auth_headers(admin),
    )
    assert renamed.status_code == 200, renamed.text
    assert renamed.json()["name"] == "Kandy Store"
    assert renamed.json()["city"] == "Kandy"
    assert renamed.json()["code"] == "DS001"

    with pytest.raises(ValueError, match="Showroom code is required"):
        showroom_service.update_showroom(
            db_session,
            actor=actor_for(admin),
            showroom_id=showroom_id,
            changes={"code": "  "},
        )
    db_session.rollback()
    assert showroom_service.get_showroom(db_session, showroom_id).code == "DS001"
