"""
End-to-end tests for /api/v1/pdi-requests.

Walks the client → admin lifecycle over HTTP and checks the error payload
and status code for each kind of failure.
"""
import uuid

from sqlmodel import Session, select

from app.core.config import settings
from app.db.core import engine
from app.db.schema import AuditLog, PDIInspection, PDIRequest, Role

from conftest import make_user

URL = "/api/v1/pdi-requests"

SCENARIO_A = {
    "vehicleMake": "Honda",
    "vehicleModel": "City",
    "location": "Pune",
    "mobile": "9999999999",
}


def _setup_users(session):
    return (
        make_user(session, "u1@example.com"),
        make_user(session, "u2@example.com"),
        make_user(session, "a1@example.com", role=Role.ADMIN),
        make_user(session, "dealer@example.com", role=Role.DEALER),
    )


def _create(client, headers, payload=None):
    res = client.post(URL, json=payload or SCENARIO_A, headers=headers)
    assert res.status_code == 201, res.text
    return res.json()


def test_scenario_a_client_creates_request(client, session, auth_headers, notifier):
    u1, _, _, _ = _setup_users(session)

    data = _create(client, auth_headers(u1))

    assert data["success"] is True
    assert data["request"]["status"] == "PENDING"
    assert data["request"]["user_id"] == str(u1.id)
    assert data["request"]["vehicle_name"] == "Honda"
    assert data["request_id"] == data["request"]["id"]
    assert data["notification_sent"] is True
    assert len(notifier.admin_calls) == 1


def test_scenario_b_admin_completes_request(client, session, auth_headers, notifier):
    u1, _, a1, _ = _setup_users(session)
    request_id = _create(client, auth_headers(u1))["request_id"]

    res = client.put(f"{URL}/{request_id}", json={"status": "COMPLETED"},
                     headers=auth_headers(a1))

    assert res.status_code == 200
    body = res.json()
    assert body["request"]["status"] == "COMPLETED"
    assert body["notification_sent"] is True
    assert notifier.requester_calls[0][0] == uuid.UUID(request_id)


def test_scenario_c_stranger_cannot_read_request(client, session, auth_headers):
    u1, u2, _, _ = _setup_users(session)
    request_id = _create(client, auth_headers(u1))["request_id"]

    res = client.get(f"{URL}/{request_id}", headers=auth_headers(u2))

    assert res.status_code == 403
    assert "error" in res.json()


def test_scenario_d_dealer_cannot_update(client, session, auth_headers, notifier):
    u1, _, _, dealer = _setup_users(session)
    request_id = _create(client, auth_headers(u1))["request_id"]

    res = client.patch(f"{URL}/{request_id}", json={"status": "COMPLETED"},
                       headers=auth_headers(dealer))

    assert res.status_code == 403
    owner_view = client.get(f"{URL}/{request_id}", headers=auth_headers(u1)).json()
    assert owner_view["request"]["status"] == "PENDING"
    assert notifier.requester_calls == []


def test_scenario_e_missing_location_is_rejected(client, session, auth_headers):
    u1, _, _, _ = _setup_users(session)
    payload = {k: v for k, v in SCENARIO_A.items() if k != "location"}

    res = client.post(URL, json=payload, headers=auth_headers(u1))

    assert res.status_code == 400
    assert res.json() == {"error": "Please fill in all required fields."}
    with Session(engine) as s:
        assert s.exec(select(PDIRequest)).all() == []


def test_anonymous_create_is_unauthenticated(client):
    res = client.post(URL, json=SCENARIO_A)
    assert res.status_code == 401
    assert "error" in res.json()


def test_invalid_token_is_treated_as_anonymous(client):
    res = client.get(URL, headers={"Authorization": "Bearer garbage.token.value"})
    assert res.status_code == 401


def test_unknown_status_is_bad_request(client, session, auth_headers):
    u1, _, a1, _ = _setup_users(session)
    request_id = _create(client, auth_headers(u1))["request_id"]

    res = client.put(f"{URL}/{request_id}", json={"status": "SHIPPED"},
                     headers=auth_headers(a1))

    assert res.status_code == 400
    assert res.json() == {"error": "Invalid status"}


def test_update_missing_request_is_not_found(client, session, auth_headers):
    _, _, a1, _ = _setup_users(session)
    res = client.put(f"{URL}/{uuid.uuid4()}", json={"status": "IN_PROGRESS"},
                     headers=auth_headers(a1))
    assert res.status_code == 404


def test_listing_scoped_per_role(client, session, auth_headers):
    u1, u2, a1, _ = _setup_users(session)
    _create(client, auth_headers(u1))
    _create(client, auth_headers(u2))

    own = client.get(URL, headers=auth_headers(u1)).json()["requests"]
    everything = client.get(URL, headers=auth_headers(a1)).json()["requests"]

    assert [r["user_id"] for r in own] == [str(u1.id)]
    assert len(everything) == 2
    assert {r["user"]["email"] for r in everything} == {u1.email, u2.email}


def test_latest_request_for_client(client, session, auth_headers):
    u1, u2, _, _ = _setup_users(session)
    created = _create(client, auth_headers(u1))

    mine = client.get(f"{URL}/latest", headers=auth_headers(u1)).json()
    none = client.get(f"{URL}/latest", headers=auth_headers(u2)).json()

    assert mine["request"]["id"] == created["request_id"]
    assert none["request"] is None


def test_link_inspection_over_http(client, session, auth_headers):
    u1, _, a1, _ = _setup_users(session)
    request_id = _create(client, auth_headers(u1))["request_id"]
    inspection = PDIInspection(vehicle_name="Honda", vehicle_model="City")
    session.add(inspection)
    session.commit()

    res = client.post(f"{URL}/{request_id}/inspection",
                      json={"inspectionId": str(inspection.id)},
                      headers=auth_headers(a1))

    assert res.status_code == 200
    assert res.json()["request"]["status"] == "COMPLETED"
    assert res.json()["request"]["pdi_inspection_id"] == str(inspection.id)


def test_mutations_are_audited(client, session, auth_headers):
    u1, _, a1, _ = _setup_users(session)
    request_id = _create(client, auth_headers(u1))["request_id"]
    client.put(f"{URL}/{request_id}", json={"status": "IN_PROGRESS"},
               headers=auth_headers(a1))

    with Session(engine) as s:
        entries = {e.action.value: e for e in s.exec(select(AuditLog)).all()}

    assert set(entries) == {"CREATE", "UPDATE"}
    assert entries["CREATE"].actor_user_id == u1.id
    assert entries["UPDATE"].actor_user_id == a1.id
    assert entries["UPDATE"].changes["status"] == {"old": "PENDING", "new": "IN_PROGRESS"}


def test_stale_cookie_does_not_hide_bearer_token(client, session, auth_headers):
    u1, _, _, _ = _setup_users(session)
    _create(client, auth_headers(u1))

    client.cookies.set(settings.auth_cookie_name, "stale.garbage.token")
    res = client.get(URL, headers=auth_headers(u1))

    assert res.status_code == 200
    assert len(res.json()["requests"]) == 1


def test_stale_cookie_alone_is_unauthenticated(client, session):
    _setup_users(session)
    client.cookies.set(settings.auth_cookie_name, "stale.garbage.token")

    res = client.get(URL)
    assert res.status_code == 401
    assert res.json() == {"error": "Not authenticated"}
