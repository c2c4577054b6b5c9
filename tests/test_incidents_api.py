from datetime import datetime, timedelta, timezone

import jwt

from jwt_auth import JWT_ALGORITHM, JWT_SECRET
from models import Incident, IncidentResponse
from services.dispatch.notifier import Notifier
from tests.helpers import auth_headers, make_area, make_group, make_incident, make_responder, seed_incidents

INCIDENT = {
    "title": "Barn fire",
    "location": "Old Mill Rd",
    "emergencyType": "fire",
    "severity": "high",
}


def _org(db):
    make_group(db, "G1", name="North Squad")
    make_group(db, "G2", name="South Squad")
    make_area(db, "A1", group_id="G1", name="Riverside")
    make_responder(db, "R1", group_id="G1")
    make_responder(db, "R2", group_id="G1")
    make_responder(db, "R3", group_id="G2")


# =============================================================================
# CREATE
# =============================================================================

def test_create_incident_resolves_group_from_area(client, db, notifier) -> None:
    _org(db)

    response = client.post("/api/incidents", json={**INCIDENT, "targetAreaId": "A1"})

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    incident = body["incident"]
    assert incident["status"] == "active"
    assert incident["targetAreaId"] == "A1"
    assert incident["targetGroupId"] == "G1"
    assert incident["targetGroup"]["memberCount"] == 2

    assert len(notifier.callouts) == 1
    callout = notifier.callouts[0]
    assert callout.incident_id == incident["id"]
    assert callout.group_id == "G1"
    assert callout.member_ids == ["R1", "R2"]


def test_explicit_group_overrides_area(client, db, notifier) -> None:
    _org(db)

    response = client.post("/api/incidents", json={**INCIDENT, "targetAreaId": "A1", "targetGroupId": "G2"})

    assert response.status_code == 201
    assert response.json()["incident"]["targetGroupId"] == "G2"
    assert notifier.callouts[0].member_ids == ["R3"]


def test_unknown_area_creates_untargeted_incident(client, db, notifier) -> None:
    _org(db)

    response = client.post("/api/incidents", json={**INCIDENT, "targetAreaId": "nowhere"})

    assert response.status_code == 201
    incident = response.json()["incident"]
    assert incident["targetGroupId"] is None
    assert incident["targetAreaId"] is None
    assert notifier.callouts == []


def test_unknown_explicit_group_is_not_found(client, db, notifier) -> None:
    response = client.post("/api/incidents", json={**INCIDENT, "targetGroupId": "G9"})

    assert response.status_code == 404
    assert response.json()["error"] == "NotFound"
    assert db.query(Incident).count() == 0


def test_notifier_failure_does_not_fail_creation(client, db) -> None:
    from main import app
    from routers.incidents import get_notifier

    class BrokenNotifier(Notifier):
        def notify(self, callout):
            raise RuntimeError("pager offline")

    _org(db)
    app.dependency_overrides[get_notifier] = lambda: BrokenNotifier()

    response = client.post("/api/incidents", json={**INCIDENT, "targetGroupId": "G1"})

    assert response.status_code == 201
    db.expire_all()
    assert db.query(Incident).count() == 1


def test_create_rejects_blank_title(client, db) -> None:
    response = client.post("/api/incidents", json={**INCIDENT, "title": "   "})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "ValidationError"
    assert db.query(Incident).count() == 0


def test_create_rejects_unknown_emergency_type(client) -> None:
    response = client.post("/api/incidents", json={**INCIDENT, "emergencyType": "alien"})

    assert response.status_code == 400
    assert any("emergencyType" in d["loc"] for d in response.json()["details"])


def test_create_rejects_unknown_severity(client) -> None:
    assert client.post("/api/incidents", json={**INCIDENT, "severity": "apocalyptic"}).status_code == 400


def test_create_rejects_out_of_range_coordinates(client) -> None:
    assert client.post("/api/incidents", json={**INCIDENT, "latitude": 91}).status_code == 400


# =============================================================================
# LIST / GET
# =============================================================================

def test_list_pagination(client, db) -> None:
    seed_incidents(db, 120)

    body = client.get("/api/incidents", params={"limit": 50, "offset": 100}).json()

    assert body["success"] is True
    assert len(body["items"]) == 20
    assert body["pagination"] == {"total": 120, "limit": 50, "offset": 100, "hasMore": False}


def test_list_defaults(client, db) -> None:
    seed_incidents(db, 3)

    body = client.get("/api/incidents").json()

    assert body["pagination"] == {"total": 3, "limit": 50, "offset": 0, "hasMore": False}
    assert [i["id"] for i in body["items"]] == ["INC-0002", "INC-0001", "INC-0000"]


def test_list_filters_by_status_and_group(client, db) -> None:
    make_group(db, "G1")
    seed_incidents(db, 2, status="active", target_group_id="G1", prefix="A")
    seed_incidents(db, 3, status="cancelled", target_group_id="G1", prefix="C")
    seed_incidents(db, 4, status="active", prefix="U")

    body = client.get("/api/incidents", params={"status": "active", "groupId": "G1"}).json()

    assert body["pagination"]["total"] == 2


def test_list_rejects_non_numeric_limit(client) -> None:
    response = client.get("/api/incidents", params={"limit": "abc"})

    assert response.status_code == 400
    assert response.json()["error"] == "ValidationError"


def test_list_treats_empty_window_params_as_unset(client, db) -> None:
    seed_incidents(db, 3)

    response = client.get("/api/incidents?limit=&offset=")

    assert response.status_code == 200
    assert response.json()["pagination"] == {"total": 3, "limit": 50, "offset": 0, "hasMore": False}


def test_list_rejects_limit_over_maximum(client) -> None:
    assert client.get("/api/incidents", params={"limit": 51}).status_code == 400


def test_list_rejects_negative_offset(client) -> None:
    assert client.get("/api/incidents", params={"offset": -1}).status_code == 400


def test_list_rejects_unknown_status(client) -> None:
    assert client.get("/api/incidents", params={"status": "archived"}).status_code == 400


def test_get_incident(client, db) -> None:
    make_incident(db, "I1")

    response = client.get("/api/incidents/I1")

    assert response.status_code == 200
    assert response.json()["incident"]["id"] == "I1"


def test_get_missing_incident(client) -> None:
    response = client.get("/api/incidents/missing")

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "NotFound", "detail": "Incident not found"}


# =============================================================================
# RESPONSES
# =============================================================================

def _respond(client, incident_id="I1", responder_id="R1", headers=None, **body):
    payload = {"responseType": "station", **body}
    return client.post(
        f"/api/incidents/{incident_id}/response",
        json=payload,
        headers=headers if headers is not None else auth_headers(responder_id),
    )


def _response_rows(db):
    db.expire_all()
    return db.query(IncidentResponse).all()


def test_member_can_respond(client, db) -> None:
    _org(db)
    make_incident(db, "I1", target_group_id="G1")

    response = _respond(client, responseType="direct", estimatedArrival="2025-06-01T10:30:00Z", notes="10 min")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Response recorded"
    assert body["response"]["responseType"] == "direct"
    assert body["response"]["status"] == "enroute"
    assert body["response"]["responderId"] == "R1"
    assert body["response"]["estimatedArrival"].startswith("2025-06-01T10:30:00")


def test_response_requires_token(client, db) -> None:
    _org(db)
    make_incident(db, "I1", target_group_id="G1")

    response = _respond(client, headers={})

    assert response.status_code == 401
    assert response.json()["detail"] == "Authentication required"
    assert _response_rows(db) == []


def test_response_rejects_tampered_token(client, db) -> None:
    _org(db)
    make_incident(db, "I1", target_group_id="G1")

    response = _respond(client, headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid or expired token"


def test_response_rejects_expired_token(client, db) -> None:
    _org(db)
    make_incident(db, "I1", target_group_id="G1")
    past = datetime.now(timezone.utc) - timedelta(days=1)
    token = jwt.encode({"sub": "R1", "role": "MEMBER", "exp": past}, JWT_SECRET, algorithm=JWT_ALGORITHM)

    response = _respond(client, headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_response_to_unknown_incident(client, db) -> None:
    _org(db)

    assert _respond(client, incident_id="missing").status_code == 404


def test_response_from_unknown_responder(client, db) -> None:
    _org(db)
    make_incident(db, "I1", target_group_id="G1")

    response = _respond(client, responder_id="ghost")

    assert response.status_code == 404
    assert response.json()["detail"] == "Responder not found"


def test_non_member_is_forbidden(client, db) -> None:
    _org(db)
    make_incident(db, "I1", target_group_id="G1")

    response = _respond(client, responder_id="R3")

    assert response.status_code == 403
    assert response.json()["error"] == "Forbidden"
    assert _response_rows(db) == []


def test_responder_without_group_is_forbidden(client, db) -> None:
    _org(db)
    make_responder(db, "R9")
    make_incident(db, "I1", target_group_id="G1")

    assert _respond(client, responder_id="R9").status_code == 403


def test_untargeted_incident_accepts_any_responder(client, db) -> None:
    _org(db)
    make_incident(db, "I1")

    assert _respond(client, responder_id="R3").status_code == 200


def test_double_submit_keeps_one_row(client, db) -> None:
    _org(db)
    make_incident(db, "I1", target_group_id="G1")

    first = _respond(client, notes="first").json()["response"]
    second = _respond(client, responseType="direct", notes="second").json()["response"]

    rows = _response_rows(db)
    assert len(rows) == 1
    assert first["id"] == second["id"]
    assert rows[0].response_type == "direct"
    assert rows[0].notes == "second"


def test_unknown_response_type_writes_nothing(client, db) -> None:
    _org(db)
    make_incident(db, "I1", target_group_id="G1")

    response = _respond(client, responseType="teleport")

    assert response.status_code == 400
    assert _response_rows(db) == []


def test_unparseable_arrival_is_rejected(client, db) -> None:
    _org(db)
    make_incident(db, "I1", target_group_id="G1")

    response = _respond(client, estimatedArrival="half past never")

    assert response.status_code == 400
    assert _response_rows(db) == []


def test_responses_appear_on_incident(client, db) -> None:
    _org(db)
    make_incident(db, "I1", target_group_id="G1")
    _respond(client, responder_id="R1")
    _respond(client, responder_id="R2", responseType="direct")

    incident = client.get("/api/incidents/I1").json()["incident"]

    assert incident["responseCount"] == 2
    assert {r["responderId"] for r in incident["responses"]} == {"R1", "R2"}
