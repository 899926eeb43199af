"""
Undo window — reversing an elimination with the ledger token.

Scenarios:
    - single elimination undone in time returns the date to viable
    - two eliminations: one undo leaves the date eliminated
    - undo after the window, or twice, is rejected as expired
    - only the actor can undo their own elimination
"""

import re
from datetime import timedelta

import pytest
from sqlalchemy import event
from sqlalchemy.dialects import postgresql

from dateplan.core.exceptions import (
    EventNotFoundError,
    UndoExpiredError,
    UndoNotAllowedError,
)
from dateplan.models import db
from dateplan.models.availability import AvailabilityMark
from dateplan.models.event_log import EventLogEntry
from dateplan.services import (
    availability_service,
    date_state_machine,
    event_log_service,
    participant_service,
    reopen_service,
    undo_service,
)


def _mark_status(participant, plan_date):
    mark = db.session.query(AvailabilityMark).filter_by(
        participant_id=participant.id, plan_date_id=plan_date.id,
    ).one()
    return mark.status


def _shift_clock(monkeypatch, seconds):
    real_now = event_log_service.utcnow()
    monkeypatch.setattr(
        event_log_service, "utcnow", lambda: real_now + timedelta(seconds=seconds),
    )


# ── Happy path ───────────────────────────────────────────────────────────────


def test_single_elimination_undone(plan, plan_dates, make_participant):
    ana = make_participant(plan, "Ana")
    token = availability_service.toggle_unavailable(ana.id, plan_dates[0].id)["eventLogId"]

    result = undo_service.undo(ana.id, token)

    assert result == {"dateStatus": "viable"}
    assert plan_dates[0].status == "viable"
    assert _mark_status(ana, plan_dates[0]) == "available"


def test_undo_with_remaining_elimination_keeps_date_eliminated(plan, plan_dates, make_participant):
    ana = make_participant(plan, "Ana")
    ben = make_participant(plan, "Ben")
    ana_token = availability_service.toggle_unavailable(ana.id, plan_dates[0].id)["eventLogId"]
    availability_service.toggle_unavailable(ben.id, plan_dates[0].id)

    result = undo_service.undo(ana.id, ana_token)

    assert result == {"dateStatus": "eliminated"}
    assert _mark_status(ana, plan_dates[0]) == "available"
    assert _mark_status(ben, plan_dates[0]) == "unavailable"


def test_undo_writes_restore_entry_and_consumes_token(plan, plan_dates, make_participant):
    ana = make_participant(plan, "Ana")
    token = availability_service.toggle_unavailable(ana.id, plan_dates[0].id)["eventLogId"]
    undo_service.undo(ana.id, token)

    original = db.session.get(EventLogEntry, token)
    assert original.undo_deadline is None

    restore = db.session.query(EventLogEntry).filter_by(event_type="date_marked_available").one()
    assert restore.participant_id == ana.id
    assert restore.payload.undone_event_id == token
    assert restore.undo_deadline is None


def test_undo_just_before_deadline(monkeypatch, plan, plan_dates, make_participant):
    ana = make_participant(plan, "Ana")
    token = availability_service.toggle_unavailable(ana.id, plan_dates[0].id)["eventLogId"]
    _shift_clock(monkeypatch, 29)

    assert undo_service.undo(ana.id, token)["dateStatus"] == "viable"


# ── Expiry ───────────────────────────────────────────────────────────────────


def test_undo_after_window_is_rejected(monkeypatch, plan, plan_dates, make_participant):
    ana = make_participant(plan, "Ana")
    token = availability_service.toggle_unavailable(ana.id, plan_dates[0].id)["eventLogId"]
    _shift_clock(monkeypatch, 31)

    with pytest.raises(UndoExpiredError):
        undo_service.undo(ana.id, token)

    assert plan_dates[0].status == "eliminated"
    assert _mark_status(ana, plan_dates[0]) == "unavailable"


def test_undo_twice_is_rejected(plan, plan_dates, make_participant):
    ana = make_participant(plan, "Ana")
    token = availability_service.toggle_unavailable(ana.id, plan_dates[0].id)["eventLogId"]
    undo_service.undo(ana.id, token)

    with pytest.raises(UndoExpiredError):
        undo_service.undo(ana.id, token)
    assert db.session.query(EventLogEntry).filter_by(event_type="date_marked_available").count() == 1


def test_superseded_token_is_expired(plan, plan_dates, make_participant):
    ana = make_participant(plan, "Ana")
    old_token = availability_service.toggle_unavailable(ana.id, plan_dates[0].id)["eventLogId"]
    availability_service.toggle_unavailable(ana.id, plan_dates[0].id)

    with pytest.raises(UndoExpiredError):
        undo_service.undo(ana.id, old_token)
    assert _mark_status(ana, plan_dates[0]) == "unavailable"


def test_undo_after_done_sweep_is_expired(plan, plan_dates, make_participant):
    ana = make_participant(plan, "Ana")
    token = availability_service.toggle_unavailable(ana.id, plan_dates[0].id)["eventLogId"]
    participant_service.toggle_done(ana.id)

    with pytest.raises(UndoExpiredError):
        undo_service.undo(ana.id, token)


def test_undo_after_force_reopen_is_expired(plan, plan_dates, make_participant):
    ana = make_participant(plan, "Ana")
    token = availability_service.toggle_unavailable(ana.id, plan_dates[0].id)["eventLogId"]
    reopen_service.force_reopen(plan.owner_id, plan.id, plan_dates[0].id)

    with pytest.raises(UndoExpiredError):
        undo_service.undo(ana.id, token)
    assert plan_dates[0].status == "reopened"


# ── Authorization ────────────────────────────────────────────────────────────


def test_other_participant_cannot_undo(plan, plan_dates, make_participant):
    ana = make_participant(plan, "Ana")
    ben = make_participant(plan, "Ben")
    token = availability_service.toggle_unavailable(ana.id, plan_dates[0].id)["eventLogId"]

    with pytest.raises(UndoNotAllowedError):
        undo_service.undo(ben.id, token)

    # token stays usable by its owner
    assert undo_service.undo(ana.id, token)["dateStatus"] == "viable"


def test_non_elimination_entry_cannot_be_undone(plan, make_participant):
    ana = make_participant(plan, "Ana")
    participant_service.toggle_done(ana.id)
    entry = db.session.query(EventLogEntry).filter_by(event_type="participant_done_toggled").one()

    with pytest.raises(UndoNotAllowedError):
        undo_service.undo(ana.id, entry.id)


def test_unknown_token():
    with pytest.raises(EventNotFoundError):
        undo_service.undo("anyone", "no-such-entry")


# ── Locking ──────────────────────────────────────────────────────────────────


def _record_row_access(session, seen):
    """Collect 'lock <table>' / 'update <table>' as PostgreSQL would see them."""

    def _on_execute(orm_execute_state):
        sql = str(orm_execute_state.statement.compile(dialect=postgresql.dialect()))
        if orm_execute_state.is_select and "FOR UPDATE" in sql:
            seen.append("lock " + re.search(r"FROM (\w+)", sql).group(1))
        elif orm_execute_state.is_update:
            seen.append("update " + re.search(r"UPDATE (\w+)", sql).group(1))

    event.listen(session, "do_orm_execute", _on_execute)
    return _on_execute


def test_undo_locks_date_before_touching_ledger(plan, plan_dates, make_participant):
    ana = make_participant(plan, "Ana")
    token = availability_service.toggle_unavailable(ana.id, plan_dates[0].id)["eventLogId"]

    seen = []
    session = db.session()
    listener = _record_row_access(session, seen)
    try:
        undo_service.undo(ana.id, token)
    finally:
        event.remove(session, "do_orm_execute", listener)

    assert seen[0] == "lock plan_dates"
    assert "lock event_log" not in seen
    assert seen.index("lock plan_dates") < seen.index("update event_log")


def test_lease_closed_while_waiting_for_date_lock(monkeypatch, plan, plan_dates, make_participant):
    ana = make_participant(plan, "Ana")
    token = availability_service.toggle_unavailable(ana.id, plan_dates[0].id)["eventLogId"]

    real_lock = date_state_machine.lock_date_for_update

    def _close_lease_then_lock(plan_date_id):
        event_log_service.close_undo_windows(plan_date_id=plan_date_id)
        return real_lock(plan_date_id)

    monkeypatch.setattr(date_state_machine, "lock_date_for_update", _close_lease_then_lock)

    with pytest.raises(UndoExpiredError):
        undo_service.undo(ana.id, token)
    assert _mark_status(ana, plan_dates[0]) == "unavailable"
    assert plan_dates[0].status == "eliminated"
