"""
HTTP-level tests against the in-memory store and recording SMS sender.
"""
from datetime import datetime, timedelta, timezone

import pytest

from app.auth import create_session_token
from app.models.domain import Host

BASE = "/api/v1/meetups"


def _future(days=10):
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


@pytest.fixture
def meetup(client):
    response = client.post(BASE, json={
        "host_name": "Jin",
        "host_phone": "010-9999-0000",
        "title": "Sunday Hike",
        "date": _future(),
        "location": "Bukhansan Gate",
        "max_participants": 2,
        "max_waitlist": 1,
        "fee_display": "15000",
    })
    assert response.status_code == 201
    return response.json()


def _register(client, meetup, name, phone):
    response = client.post(f"{BASE}/{meetup['id']}/participants", json={"name": name, "phone": phone})
    assert response.status_code == 201, response.text
    return response.json()


def _host(meetup):
    return {"X-Host-Code": meetup["host_code"]}


def test_health(client):
    response = client.get(f"{BASE}/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_create_meetup_formats_fee_and_returns_host_code(meetup):
    assert meetup["fee_display"] == "15,000원"
    assert len(meetup["host_code"]) == 8
    assert meetup["status"] == "open"


def test_create_meetup_rejects_bad_phone(client):
    response = client.post(BASE, json={
        "host_name": "Jin",
        "host_phone": "02-123-4567",
        "title": "Sunday Hike",
        "date": _future(),
        "location": "Bukhansan Gate",
    })
    assert response.status_code == 422


def test_public_view_hides_host_code(client, meetup):
    _register(client, meetup, "Alice", "010-1111-0001")

    response = client.get(f"{BASE}/{meetup['id']}")

    assert response.status_code == 200
    body = response.json()
    assert "host_code" not in body
    assert body["registered_count"] == 1
    assert body["waitlist_count"] == 0


def test_unknown_meetup_is_404(client):
    response = client.get(f"{BASE}/00000000-0000-0000-0000-000000000000")

    assert response.status_code == 404
    assert response.json()["code"] == "MEETUP_NOT_FOUND"
    assert response.json()["kind"] == "not_found"


def test_registration_flow_and_waitlist(client, meetup):
    _register(client, meetup, "Alice", "010-1111-0001")
    _register(client, meetup, "Bob", "010-1111-0002")

    carol = _register(client, meetup, "Carol", "010-1111-0003")
    assert carol["status"] == "waitlisted"
    assert carol["waitlist_position"] == 1

    response = client.post(f"{BASE}/{meetup['id']}/participants", json={"name": "Dave", "phone": "010-1111-0004"})
    assert response.status_code == 409
    assert response.json()["code"] == "WAITLIST_FULL"


def test_duplicate_registration_is_409(client, meetup):
    _register(client, meetup, "Alice", "010-1111-0001")

    response = client.post(f"{BASE}/{meetup['id']}/participants", json={"name": "Alice", "phone": "010-1111-0001"})

    assert response.status_code == 409
    assert response.json()["code"] == "DUPLICATE_REGISTRATION"


def test_cancel_promotes_and_token_lookup_reflects_it(client, meetup):
    alice = _register(client, meetup, "Alice", "010-1111-0001")
    _register(client, meetup, "Bob", "010-1111-0002")
    carol = _register(client, meetup, "Carol", "010-1111-0003")

    response = client.post(f"{BASE}/participants/cancel", json={"token": alice["token"]})
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    assert response.json()["promoted"]["participant_id"] == carol["participant_id"]

    lookup = client.get(f"{BASE}/participants/by-token/{carol['token']}").json()
    assert lookup["status"] == "registered"
    assert lookup["is_waitlisted"] is False
    assert lookup["waitlist_position"] is None

    again = client.post(f"{BASE}/participants/cancel", json={"token": alice["token"]})
    assert again.status_code == 409
    assert again.json()["code"] == "ALREADY_PROCESSED"


def test_cancel_inside_cutoff_is_rejected(client):
    created = client.post(BASE, json={
        "host_name": "Jin",
        "host_phone": "010-9999-0000",
        "title": "Tonight",
        "date": (datetime.now(timezone.utc) + timedelta(hours=3)).isoformat(),
        "location": "Cafe",
    }).json()
    alice = _register(client, created, "Alice", "010-1111-0001")

    response = client.post(f"{BASE}/participants/cancel", json={"token": alice["token"]})

    assert response.status_code == 400
    assert response.json()["code"] == "TOO_CLOSE_TO_EVENT"


def test_respond_confirm(client, meetup):
    alice = _register(client, meetup, "Alice", "010-1111-0001")

    response = client.post(f"{BASE}/participants/respond", json={"token": alice["token"], "action": "confirm"})

    assert response.status_code == 200
    assert response.json()["status"] == "confirmed"


def test_respond_rejects_unknown_action(client, meetup):
    alice = _register(client, meetup, "Alice", "010-1111-0001")

    response = client.post(f"{BASE}/participants/respond", json={"token": alice["token"], "action": "maybe"})

    assert response.status_code == 422


def test_waitlist_offer_pass_cascades(client, meetup):
    alice = _register(client, meetup, "Alice", "010-1111-0001")
    _register(client, meetup, "Bob", "010-1111-0002")
    carol = _register(client, meetup, "Carol", "010-1111-0003")
    client.post(f"{BASE}/participants/cancel", json={"token": alice["token"]})

    # Waitlist has room again after the promotion
    dave = _register(client, meetup, "Dave", "010-1111-0004")

    response = client.post(f"{BASE}/participants/waitlist-response", json={"token": carol["token"], "action": "pass"})
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    assert response.json()["promoted"]["participant_id"] == dave["participant_id"]

    response = client.post(f"{BASE}/participants/waitlist-response", json={"token": dave["token"], "action": "accept"})
    assert response.status_code == 200
    assert response.json()["status"] == "confirmed"


def test_host_views_require_credential(client, meetup):
    _register(client, meetup, "Alice", "010-1111-0001")

    assert client.get(f"{BASE}/{meetup['id']}/participants").status_code == 403
    assert client.get(f"{BASE}/{meetup['id']}/participants", headers={"X-Host-Code": "nope"}).status_code == 403

    response = client.get(f"{BASE}/{meetup['id']}/participants", headers=_host(meetup))
    assert response.status_code == 200
    assert response.json()["total_count"] == 1
    assert response.json()["participants"][0]["name"] == "Alice"


def test_waitlist_view(client, meetup):
    _register(client, meetup, "Alice", "010-1111-0001")
    _register(client, meetup, "Bob", "010-1111-0002")
    _register(client, meetup, "Carol", "010-1111-0003")

    response = client.get(f"{BASE}/{meetup['id']}/waitlist", headers=_host(meetup))

    assert response.status_code == 200
    assert [p["name"] for p in response.json()["participants"]] == ["Carol"]


def test_edit_meetup(client, meetup):
    response = client.put(f"{BASE}/{meetup['id']}", json={"host_code": meetup["host_code"], "title": "Monday Hike"})
    assert response.status_code == 200
    assert response.json()["title"] == "Monday Hike"

    response = client.put(f"{BASE}/{meetup['id']}", json={"host_code": meetup["host_code"]})
    assert response.status_code == 400
    assert response.json()["code"] == "NO_CHANGES"

    response = client.put(f"{BASE}/{meetup['id']}", json={"host_code": "wrong", "title": "Hijack"})
    assert response.status_code == 403


def test_attendance_and_self_check_in(client, meetup):
    alice = _register(client, meetup, "Alice", "010-1111-0001")
    _register(client, meetup, "Bob", "010-1111-0002")

    response = client.post(
        f"{BASE}/{meetup['id']}/attendance",
        json={"participant_id": alice["participant_id"], "action": "checkin"},
        headers=_host(meetup),
    )
    assert response.status_code == 409
    assert response.json()["code"] == "INVALID_TRANSITION"

    client.post(f"{BASE}/participants/respond", json={"token": alice["token"], "action": "confirm"})
    response = client.post(
        f"{BASE}/{meetup['id']}/attendance",
        json={"participant_id": alice["participant_id"], "action": "noshow", "host_code": meetup["host_code"]},
    )
    assert response.status_code == 200
    assert response.json()["status"] == "noshow"

    response = client.post(f"{BASE}/{meetup['id']}/self-checkin", json={"name": "Bob", "phone": "01011110002"})
    assert response.status_code == 200
    assert response.json()["status"] == "attended"
    assert response.json()["meetup_title"] == "Sunday Hike"

    response = client.post(f"{BASE}/{meetup['id']}/self-checkin", json={"name": "Bob", "phone": "010-1111-0002"})
    assert response.status_code == 409


def test_confirmation_request_lists_pending(client, meetup):
    alice = _register(client, meetup, "Alice", "010-1111-0001")
    bob = _register(client, meetup, "Bob", "010-1111-0002")
    client.post(f"{BASE}/participants/respond", json={"token": bob["token"], "action": "confirm"})

    response = client.post(f"{BASE}/{meetup['id']}/confirmation-request", json={"host_code": meetup["host_code"]})

    assert response.status_code == 200
    body = response.json()
    assert body["confirmation_sent"] is True
    assert [p["participant_id"] for p in body["participants"]] == [alice["participant_id"]]
    assert body["participants"][0]["confirm_link"].endswith(f"token={alice['token']}")


def test_reminders_mark_and_schedule(client, meetup):
    response = client.post(
        f"{BASE}/{meetup['id']}/reminders",
        json={"type": "d3", "sent_by": "Jin", "host_code": meetup["host_code"]},
    )
    assert response.status_code == 200
    assert response.json()["type"] == "d3"

    response = client.post(
        f"{BASE}/{meetup['id']}/reminders",
        json={"type": "d5", "host_code": meetup["host_code"]},
    )
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_REMINDER_TYPE"

    schedule = client.get(f"{BASE}/{meetup['id']}/reminders", headers=_host(meetup)).json()["reminders"]
    assert [r["type"] for r in schedule] == ["d7", "d3", "d1", "dday"]
    d3 = next(r for r in schedule if r["type"] == "d3")
    assert d3["sent_by"] == "Jin"
    assert d3["is_due"] is False


def test_dispatch_notification(client, meetup, sender):
    _register(client, meetup, "Alice", "010-1111-0001")
    _register(client, meetup, "Bob", "010-1111-0002")

    response = client.post(
        f"{BASE}/{meetup['id']}/notifications",
        json={"type": "d7", "host_code": meetup["host_code"]},
    )

    assert response.status_code == 200
    assert response.json()["count"] == 2
    assert {m["to"] for m in sender.sent} == {"01011110001", "01011110002"}


def test_dispatch_transport_failure_is_502(client, meetup, sender):
    _register(client, meetup, "Alice", "010-1111-0001")
    sender.fail = True

    response = client.post(
        f"{BASE}/{meetup['id']}/notifications",
        json={"type": "registration", "host_code": meetup["host_code"]},
    )

    assert response.status_code == 502
    assert response.json()["code"] == "SMS_FAILED"


def test_host_signup_login_and_owned_meetups(client):
    response = client.post(f"{BASE}/hosts/signup", json={
        "username": "jinhost",
        "password": "hunter22",
        "name": "Jin",
        "email": "jin@example.com",
        "phone": "010-9999-0000",
    })
    assert response.status_code == 201

    duplicate = client.post(f"{BASE}/hosts/signup", json={
        "username": "jinhost",
        "password": "another1",
        "name": "Jin",
        "email": "jin@example.com",
        "phone": "010-9999-0000",
    })
    assert duplicate.status_code == 409

    bad = client.post(f"{BASE}/hosts/login", json={"username": "jinhost", "password": "wrong"})
    assert bad.status_code == 403
    assert bad.json()["code"] == "INVALID_CREDENTIALS"

    token = client.post(f"{BASE}/hosts/login", json={"username": "jinhost", "password": "hunter22"}).json()["access_token"]
    auth = {"Authorization": f"Bearer {token}"}

    created = client.post(BASE, headers=auth, json={
        "host_name": "Jin",
        "host_phone": "010-9999-0000",
        "title": "Owned Hike",
        "date": _future(),
        "location": "Gate",
    }).json()

    # Session ownership is enough, no access code needed
    assert client.get(f"{BASE}/{created['id']}/participants", headers=auth).status_code == 200

    mine = client.get(f"{BASE}/hosts/me/meetups", headers=auth).json()
    assert mine["total_count"] == 1
    assert mine["meetups"][0]["title"] == "Owned Hike"


def test_session_of_other_host_is_not_enough(client, meetup):
    stranger = Host(
        id="00000000-0000-0000-0000-0000000000aa",
        username="stranger",
        name="Stranger",
        email="s@example.com",
        phone="010-0000-0000",
        password_hash="x",
        created_at=datetime.now(timezone.utc),
    )
    auth = {"Authorization": f"Bearer {create_session_token(stranger)}"}

    response = client.get(f"{BASE}/{meetup['id']}/participants", headers=auth)

    assert response.status_code == 403
    assert response.json()["code"] == "NOT_HOST"


def test_garbage_session_token(client):
    response = client.get(f"{BASE}/hosts/me/meetups", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 403
    assert response.json()["code"] == "INVALID_SESSION"
