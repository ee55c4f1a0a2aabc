import json

import pytest

from models.audit_log import AuditLog
from models.slot import Slot
from tests.conftest import fresh


def _signup(client, name, password="correct-horse"):
    resp = client.post("/api/auth/signup", json={
        "name": name,
        "email": f"{name.lower()}@example.com",
        "password": password,
    })
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


def _auth(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def alice_token(client):
    return _signup(client, "Alice")["token"]


@pytest.fixture
def bob_token(client):
    return _signup(client, "Bob")["token"]


def _create_event(client, token, title, start, end, status="SWAPPABLE"):
    resp = client.post("/api/events", headers=_auth(token), json={
        "title": title, "start_time": start, "end_time": end, "status": status,
    })
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["id"]


# ---------- access layer ----------

def test_root_and_status(client):
    assert client.get("/").get_json()["status"] == "online"
    resp = client.get("/api/status")
    assert resp.status_code == 200
    assert resp.get_json()["database"]["status"] == "connected"
    assert client.get("/health").status_code == 200


def test_signup_login_me_logout(client):
    body = _signup(client, "Alice")
    assert body["user"]["email"] == "alice@example.com"

    resp = client.post("/api/auth/login", json={"email": "ALICE@example.com", "password": "correct-horse"})
    assert resp.status_code == 200
    token = resp.get_json()["token"]

    me = client.get("/api/auth/me", headers=_auth(token))
    assert me.status_code == 200
    assert me.get_json()["name"] == "Alice"

    assert client.post("/api/auth/logout", headers=_auth(token)).status_code == 200
    assert client.get("/api/auth/me", headers=_auth(token)).status_code == 401


def test_signup_validation(client):
    resp = client.post("/api/auth/signup", json={"email": "x@example.com"})
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "MISSING_FIELD"
    assert resp.get_json()["details"]["fields"] == ["name", "password"]

    _signup(client, "Alice")
    dup = client.post("/api/auth/signup", json={
        "name": "Other", "email": "alice@example.com", "password": "correct-horse",
    })
    assert dup.status_code == 409


def test_login_bad_credentials(client):
    _signup(client, "Alice")
    resp = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "wrong-pass"})
    assert resp.status_code == 401
    assert AuditLog.query.filter_by(action="LOGIN_FAIL").count() == 1


def test_protected_routes_require_auth(client):
    assert client.get("/api/events").status_code == 401
    assert client.post("/api/swap-request", json={}).status_code == 401
    assert client.get("/api/events", headers=_auth("not-a-token")).status_code == 401


def test_cookie_session_needs_csrf_for_writes(client):
    _signup(client, "Alice")  # sets session + csrf cookies on the test client
    payload = {"title": "x", "start_time": "2030-01-20T09:00:00", "end_time": "2030-01-20T10:00:00"}

    assert client.get("/api/events").status_code == 200
    assert client.post("/api/events", json=payload).status_code == 403

    csrf = client.get_cookie("csrf_token").value
    resp = client.post("/api/events", json=payload, headers={"X-CSRF-Token": csrf})
    assert resp.status_code == 201


# ---------- events ----------

def test_event_crud(client, alice_token):
    slot_id = _create_event(client, alice_token, "Gym", "2030-01-20T09:00:00", "2030-01-20T10:00:00", "BUSY")

    resp = client.put(f"/api/events/{slot_id}", headers=_auth(alice_token), json={"status": "SWAPPABLE"})
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "SWAPPABLE"

    listed = client.get("/api/events", headers=_auth(alice_token)).get_json()
    assert [e["id"] for e in listed] == [slot_id]

    resp = client.delete(f"/api/events/{slot_id}", headers=_auth(alice_token))
    assert resp.status_code == 200
    assert client.get("/api/events", headers=_auth(alice_token)).get_json() == []


def test_event_errors(client, alice_token, bob_token):
    resp = client.post("/api/events", headers=_auth(alice_token), json={"title": "x"})
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "MISSING_FIELD"

    slot_id = _create_event(client, alice_token, "Gym", "2030-01-20T09:00:00", "2030-01-20T10:00:00")
    resp = client.put(f"/api/events/{slot_id}", headers=_auth(bob_token), json={"title": "hijack"})
    assert resp.status_code == 404
    assert resp.get_json()["code"] == "NOT_FOUND"

    resp = client.put(f"/api/events/{slot_id}", headers=_auth(alice_token), json={"status": "LATER"})
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "INVALID_OPERATION"


# ---------- swaps ----------

def test_swap_accept_flow(client, alice_token, bob_token):
    s1 = _create_event(client, alice_token, "Alice shift", "2030-01-20T09:00:00", "2030-01-20T10:00:00")
    s2 = _create_event(client, bob_token, "Bob shift", "2030-01-21T09:00:00", "2030-01-21T10:00:00")

    market = client.get("/api/swappable-slots", headers=_auth(alice_token)).get_json()
    assert [s["id"] for s in market] == [s2]
    assert market[0]["owner"]["name"] == "Bob"

    resp = client.post("/api/swap-request", headers=_auth(alice_token), json={"my_slot_id": s1, "their_slot_id": s2})
    assert resp.status_code == 201
    swap = resp.get_json()["swap_request"]
    assert swap["status"] == "PENDING"
    assert swap["requester_slot"]["status"] == "SWAP_PENDING"

    # pending slots are locked for their owners
    resp = client.delete(f"/api/events/{s1}", headers=_auth(alice_token))
    assert resp.status_code == 409
    assert resp.get_json()["code"] == "INVALID_STATE"

    incoming = client.get("/api/swap-requests/incoming", headers=_auth(bob_token)).get_json()
    assert [r["id"] for r in incoming] == [swap["id"]]
    assert incoming[0]["requester"]["name"] == "Alice"
    outgoing = client.get("/api/swap-requests/outgoing", headers=_auth(alice_token)).get_json()
    assert [r["id"] for r in outgoing] == [swap["id"]]

    resp = client.post(f"/api/swap-response/{swap['id']}", headers=_auth(alice_token), json={"accepted": True})
    assert resp.status_code == 403

    resp = client.post(f"/api/swap-response/{swap['id']}", headers=_auth(bob_token), json={"accepted": True})
    assert resp.status_code == 200
    assert resp.get_json()["swap_request"]["status"] == "ACCEPTED"

    bob_events = client.get("/api/events", headers=_auth(bob_token)).get_json()
    assert [(e["id"], e["status"]) for e in bob_events] == [(s1, "BUSY")]

    resp = client.post(f"/api/swap-response/{swap['id']}", headers=_auth(bob_token), json={"accepted": False})
    assert resp.status_code == 409
    assert resp.get_json()["code"] == "ALREADY_RESOLVED"

    history = client.get("/api/swap-requests/history", headers=_auth(alice_token)).get_json()
    assert [h["status"] for h in history] == ["ACCEPTED"]

    actions = [row.action for row in AuditLog.query.filter_by(entity="swap_request").all()]
    assert actions == ["SWAP_PROPOSE", "SWAP_ACCEPT"]
    meta = json.loads(AuditLog.query.filter_by(action="SWAP_ACCEPT").one().metadata_json)
    assert meta["status"] == "ACCEPTED"


def test_swap_reject_flow(client, alice_token, bob_token):
    s1 = _create_event(client, alice_token, "A", "2030-01-20T09:00:00", "2030-01-20T10:00:00")
    s2 = _create_event(client, bob_token, "B", "2030-01-21T09:00:00", "2030-01-21T10:00:00")
    swap_id = client.post(
        "/api/swap-request", headers=_auth(alice_token), json={"my_slot_id": s1, "their_slot_id": s2},
    ).get_json()["swap_request"]["id"]

    resp = client.post(f"/api/swap-response/{swap_id}", headers=_auth(bob_token), json={"accepted": False})
    assert resp.status_code == 200
    assert resp.get_json()["message"] == "Swap rejected."
    assert fresh(Slot, s1).status == "SWAPPABLE"
    assert fresh(Slot, s2).status == "SWAPPABLE"


def test_swap_request_errors(client, alice_token, bob_token):
    s1 = _create_event(client, alice_token, "A", "2030-01-20T09:00:00", "2030-01-20T10:00:00")
    busy = _create_event(client, bob_token, "B", "2030-01-21T09:00:00", "2030-01-21T10:00:00", "BUSY")

    resp = client.post("/api/swap-request", headers=_auth(alice_token), json={"my_slot_id": s1})
    assert resp.status_code == 400
    assert resp.get_json()["details"]["fields"] == ["their_slot_id"]

    resp = client.post("/api/swap-request", headers=_auth(alice_token), json={"my_slot_id": s1, "their_slot_id": busy})
    assert resp.status_code == 409
    assert resp.get_json()["code"] == "INVALID_STATE"

    resp = client.post("/api/swap-request", headers=_auth(alice_token), json={"my_slot_id": s1, "their_slot_id": s1})
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "INVALID_OPERATION"

    resp = client.post("/api/swap-response/999", headers=_auth(bob_token), json={"accepted": "yes"})
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "MISSING_FIELD"

    resp = client.post("/api/swap-response/999", headers=_auth(bob_token), json={"accepted": True})
    assert resp.status_code == 404


@pytest.mark.parametrize("path,body", [
    ("/api/events", [1]),
    ("/api/events", "x"),
    ("/api/swap-request", [1, 2]),
    ("/api/swap-response/1", "x"),
    ("/api/auth/login", 5),
])
def test_non_object_json_body(client, alice_token, path, body):
    resp = client.post(path, headers=_auth(alice_token), json=body)
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "INVALID_OPERATION"
    assert resp.get_json()["details"]["type"] == type(body).__name__


def test_non_object_json_body_on_update(client, alice_token):
    s1 = _create_event(client, alice_token, "A", "2030-01-20T09:00:00", "2030-01-20T10:00:00")
    resp = client.put(f"/api/events/{s1}", headers=_auth(alice_token), json=["title"])
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "INVALID_OPERATION"
    assert fresh(Slot, s1).title == "A"
