"""
HTTP surface — request validation and error-to-status mapping.

Participant routes:  404 missing, 409 foreign date, 410 locked/inactive/expired,
                     403 undo by someone else, 400 missing fields.
Owner routes:        404 for missing plan or non-owner, 400 for wrong state.
"""

from datetime import timedelta

from dateplan.models import db
from dateplan.services import event_log_service


def _toggle(client, participant_id, plan_date_id):
    return client.post(
        "/api/v1/availability/toggle",
        json={"participantId": participant_id, "planDateId": plan_date_id},
    )


def _undo(client, participant_id, event_log_id):
    return client.post(
        "/api/v1/availability/undo",
        json={"participantId": participant_id, "eventLogId": event_log_id},
    )


# ═════════════════════════════════════════════════════════════════════════════
# Availability
# ═════════════════════════════════════════════════════════════════════════════


def test_toggle_and_undo_roundtrip(client, plan, plan_dates, make_participant):
    ana = make_participant(plan, "Ana")

    res = _toggle(client, ana.id, plan_dates[0].id)
    assert res.status_code == 200
    body = res.get_json()
    assert body["dateStatus"] == "eliminated"
    assert body["eventLogId"]
    assert body["undoDeadline"]

    res = _undo(client, ana.id, body["eventLogId"])
    assert res.status_code == 200
    assert res.get_json() == {"dateStatus": "viable"}


def test_toggle_missing_fields(client):
    res = client.post("/api/v1/availability/toggle", json={"participantId": "p"})
    assert res.status_code == 400
    assert res.get_json()["code"] == "ERR_VALIDATION_REQUIRED"
    assert res.get_json()["error"] == "Missing planDateId"


def test_toggle_without_body(client):
    res = client.post("/api/v1/availability/toggle")
    assert res.status_code == 400
    assert res.get_json()["error"] == "Missing participantId or planDateId"


def test_toggle_with_non_object_body(client):
    res = client.post("/api/v1/availability/toggle", json=[1])
    assert res.status_code == 400
    assert res.get_json()["code"] == "ERR_VALIDATION_REQUIRED"


def test_owner_route_with_non_object_body(client, plan):
    res = client.patch(f"/api/v1/plans/{plan.id}/status", json="locked")
    assert res.status_code == 400


def test_toggle_unknown_participant(client, plan, plan_dates):
    res = _toggle(client, "ghost", plan_dates[0].id)
    assert res.status_code == 404
    assert res.get_json()["error"] == "Participant not found"


def test_toggle_unknown_date(client, plan, make_participant):
    ana = make_participant(plan, "Ana")
    res = _toggle(client, ana.id, "no-such-date")
    assert res.status_code == 404
    assert res.get_json()["error"] == "Date not found"


def test_toggle_foreign_date(client, plan, other_plan, make_participant):
    ana = make_participant(plan, "Ana")
    res = _toggle(client, ana.id, other_plan.dates.first().id)
    assert res.status_code == 409


def test_toggle_locked_date(client, plan, plan_dates, make_participant):
    ana = make_participant(plan, "Ana")
    plan_dates[0].status = "locked"
    db.session.commit()

    res = _toggle(client, ana.id, plan_dates[0].id)
    assert res.status_code == 410
    assert res.get_json()["code"] == "ERR_GONE"


def test_toggle_on_deleted_plan(client, plan, plan_dates, make_participant):
    ana = make_participant(plan, "Ana")
    plan.status = "deleted"
    db.session.commit()

    assert _toggle(client, ana.id, plan_dates[0].id).status_code == 410


def test_undo_by_other_participant(client, plan, plan_dates, make_participant):
    ana = make_participant(plan, "Ana")
    ben = make_participant(plan, "Ben")
    token = _toggle(client, ana.id, plan_dates[0].id).get_json()["eventLogId"]

    res = _undo(client, ben.id, token)
    assert res.status_code == 403
    assert res.get_json()["code"] == "ERR_FORBIDDEN"


def test_undo_expired(client, monkeypatch, plan, plan_dates, make_participant):
    ana = make_participant(plan, "Ana")
    token = _toggle(client, ana.id, plan_dates[0].id).get_json()["eventLogId"]

    later = event_log_service.utcnow() + timedelta(seconds=31)
    monkeypatch.setattr(event_log_service, "utcnow", lambda: later)

    res = _undo(client, ana.id, token)
    assert res.status_code == 410
    assert res.get_json()["code"] == "ERR_EXPIRED"


def test_undo_unknown_token(client, plan, make_participant):
    ana = make_participant(plan, "Ana")
    assert _undo(client, ana.id, "no-such-entry").status_code == 404


def test_undo_missing_fields(client):
    res = client.post("/api/v1/availability/undo", json={"eventLogId": "x"})
    assert res.status_code == 400


def test_plan_summary(client, plan, plan_dates, make_participant):
    ana = make_participant(plan, "Ana")
    _toggle(client, ana.id, plan_dates[1].id)

    res = client.get(f"/api/v1/plans/{plan.id}/availability")
    assert res.status_code == 200
    dates = res.get_json()["dates"]
    assert [d["status"] for d in dates] == ["viable", "eliminated", "viable"]
    assert dates[1]["unavailableBy"] == [{"participantId": ana.id, "displayName": "Ana"}]


def test_plan_summary_unknown_plan(client):
    assert client.get("/api/v1/plans/no-such-plan/availability").status_code == 404


# ═════════════════════════════════════════════════════════════════════════════
# Participants
# ═════════════════════════════════════════════════════════════════════════════


def test_done_toggle(client, plan, plan_dates, make_participant):
    ana = make_participant(plan, "Ana")
    _toggle(client, ana.id, plan_dates[0].id)

    res = client.post("/api/v1/participants/done", json={"participantId": ana.id})
    assert res.status_code == 200
    assert res.get_json() == {"isDone": True, "sweptUndoWindows": 1}


def test_done_toggle_missing_participant_id(client):
    assert client.post("/api/v1/participants/done", json={}).status_code == 400


def test_done_toggle_on_locked_plan(client, plan, make_participant):
    ana = make_participant(plan, "Ana")
    plan.status = "locked"
    db.session.commit()

    assert client.post("/api/v1/participants/done", json={"participantId": ana.id}).status_code == 410


def test_review_acknowledge(client, plan, make_participant):
    ana = make_participant(plan, "Ana")
    res = client.post("/api/v1/participants/review", json={"participantId": ana.id})
    assert res.status_code == 200
    assert res.get_json() == {"needsReview": False}


def test_participant_availability(client, plan, plan_dates, make_participant):
    ana = make_participant(plan, "Ana")
    _toggle(client, ana.id, plan_dates[2].id)

    res = client.get(f"/api/v1/participants/{ana.id}/availability")
    assert res.status_code == 200
    [mark] = res.get_json()["availability"]
    assert mark["plan_date_id"] == plan_dates[2].id
    assert mark["status"] == "unavailable"


def test_participant_availability_unknown(client):
    assert client.get("/api/v1/participants/ghost/availability").status_code == 404


# ═════════════════════════════════════════════════════════════════════════════
# Owner routes
# ═════════════════════════════════════════════════════════════════════════════


def _reopen(client, owner_id, plan_id, plan_date_id):
    return client.post(
        "/api/v1/plans/force-reopen",
        json={"ownerId": owner_id, "planId": plan_id, "planDateId": plan_date_id},
    )


def test_force_reopen(client, plan, plan_dates, make_participant):
    ana = make_participant(plan, "Ana", is_done=True)
    _toggle(client, ana.id, plan_dates[0].id)

    res = _reopen(client, plan.owner_id, plan.id, plan_dates[0].id)
    assert res.status_code == 200
    body = res.get_json()
    assert body["reopenVersion"] == 1
    assert body["reviewFlaggedCount"] == 1
    assert body["date"]["status"] == "reopened"


def test_force_reopen_by_non_owner_looks_like_missing_plan(client, plan, plan_dates, make_participant):
    ana = make_participant(plan, "Ana")
    _toggle(client, ana.id, plan_dates[0].id)

    res = _reopen(client, "intruder", plan.id, plan_dates[0].id)
    assert res.status_code == 404
    assert res.get_json()["error"] == "Plan not found"


def test_force_reopen_unknown_plan(client, plan, plan_dates):
    res = _reopen(client, plan.owner_id, "no-such-plan", plan_dates[0].id)
    assert res.status_code == 404
    assert res.get_json()["error"] == "Plan not found"


def test_force_reopen_viable_date(client, plan, plan_dates):
    res = _reopen(client, plan.owner_id, plan.id, plan_dates[0].id)
    assert res.status_code == 400
    assert res.get_json()["code"] == "ERR_CONFLICT_STATE"


def test_force_reopen_missing_fields(client, plan):
    res = client.post("/api/v1/plans/force-reopen", json={"ownerId": plan.owner_id})
    assert res.status_code == 400
    assert res.get_json()["details"]["missing"] == ["planId", "planDateId"]


def test_lock_plan_then_toggle_is_gone(client, plan, plan_dates, make_participant):
    ana = make_participant(plan, "Ana")

    res = client.patch(
        f"/api/v1/plans/{plan.id}/status",
        json={"ownerId": plan.owner_id, "status": "locked"},
    )
    assert res.status_code == 200
    assert res.get_json()["lockedDates"] == 3

    assert _toggle(client, ana.id, plan_dates[0].id).status_code == 410


def test_set_status_invalid_value(client, plan):
    res = client.patch(
        f"/api/v1/plans/{plan.id}/status",
        json={"ownerId": plan.owner_id, "status": "archived"},
    )
    assert res.status_code == 400
    assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"


def test_set_status_twice(client, plan):
    url = f"/api/v1/plans/{plan.id}/status"
    assert client.patch(url, json={"ownerId": plan.owner_id, "status": "deleted"}).status_code == 200
    assert client.patch(url, json={"ownerId": plan.owner_id, "status": "locked"}).status_code == 400


def test_events_for_owner(client, plan, plan_dates, make_participant):
    ana = make_participant(plan, "Ana")
    _toggle(client, ana.id, plan_dates[0].id)

    res = client.get(f"/api/v1/plans/{plan.id}/events?ownerId={plan.owner_id}")
    assert res.status_code == 200
    [event] = res.get_json()["events"]
    assert event["event_type"] == "date_marked_unavailable"


def test_events_require_owner(client, plan):
    assert client.get(f"/api/v1/plans/{plan.id}/events").status_code == 400
    assert client.get(f"/api/v1/plans/{plan.id}/events?ownerId=intruder").status_code == 404


# ═════════════════════════════════════════════════════════════════════════════
# App-level
# ═════════════════════════════════════════════════════════════════════════════


def test_health(client):
    res = client.get("/api/v1/health")
    assert res.status_code == 200
    assert res.get_json()["status"] == "ok"


def test_health_live(client):
    res = client.get("/api/v1/health/live")
    assert res.status_code == 200
    assert res.get_json()["checks"]["database"]["status"] == "ok"


def test_request_id_header(client):
    res = client.get("/api/v1/health", headers={"X-Request-ID": "abc-123"})
    assert res.headers["X-Request-ID"] == "abc-123"


def test_unknown_route_is_json_404(client):
    res = client.get("/api/v1/nothing-here")
    assert res.status_code == 404
    assert res.get_json()["error"] == "Not found"
