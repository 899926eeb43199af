"""
Undo window — reverse one elimination while its ledger lease is open.

A participant who marks a date unavailable receives the ledger entry id as
an undo token.  Presenting it before ``undo_deadline`` flips their mark back
to available and lets the date state machine recompute from what is left.

Checks, in order:
    1. entry exists                          → EventNotFoundError
    2. entry is an elimination by the caller → UndoNotAllowedError
    3. lease open (deadline set, now < it)   → UndoExpiredError

The PlanDate row lock is taken before the ledger row is touched, the same
order toggle, reopen and plan lock use, and the lease is re-read under that
lock.  It is consumed in the same transaction as the mark change.  If a
concurrent request consumed it first the whole undo rolls back with
UndoExpiredError and the mark stays as it was.

This is the only path that moves a date from ``eliminated`` back to ``viable``.
"""

from __future__ import annotations

import logging

from sqlalchemy import select

from dateplan.core.exceptions import UndoExpiredError, UndoNotAllowedError
from dateplan.models import db
from dateplan.models.availability import AvailabilityMark
from dateplan.models.event_log import DateMarkedAvailable
from dateplan.services import date_state_machine, event_log_service

logger = logging.getLogger(__name__)


def undo(participant_id: str, event_log_id: str) -> dict:
    """Reverse the caller's elimination recorded in ``event_log_id``.

    Returns:
        {"dateStatus": "viable" | "eliminated"}

    Raises:
        EventNotFoundError, UndoNotAllowedError, UndoExpiredError
    """
    try:
        entry = event_log_service.get_entry(event_log_id)

        if entry.participant_id != participant_id or not entry.is_undoable:
            raise UndoNotAllowedError()
        if not entry.undo_open_at(event_log_service.utcnow()):
            raise UndoExpiredError()

        plan_date_id = entry.payload.plan_date_id
        plan_date = date_state_machine.lock_date_for_update(plan_date_id)

        # lease may have been closed while waiting for the date lock
        db.session.refresh(entry)
        if not entry.undo_open_at(event_log_service.utcnow()):
            raise UndoExpiredError()

        mark = db.session.execute(
            select(AvailabilityMark).where(
                AvailabilityMark.participant_id == participant_id,
                AvailabilityMark.plan_date_id == plan_date_id,
            )
        ).scalar_one_or_none()
        if mark is not None:
            mark.status = "available"

        date_status = date_state_machine.recompute(plan_date)

        if not event_log_service.consume_undo(entry):
            raise UndoExpiredError()

        event_log_service.append(
            entry.plan_id,
            DateMarkedAvailable(plan_date_id=plan_date_id, undone_event_id=entry.id),
            participant_id=participant_id,
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        "Elimination undone",
        extra={
            "plan_id": entry.plan_id,
            "plan_date_id": plan_date_id,
            "participant_id": participant_id,
            "event_log_id": event_log_id,
        },
    )
    return {"dateStatus": date_status}
