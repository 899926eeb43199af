"""
Availability ledger — participants marking dates they cannot attend.

Business logic for:
    - toggle_unavailable:               upsert an unavailable mark, eliminate the
                                        date, mint an undo token
    - get_participant_availability:     one participant's marks on their plan
    - get_plan_availability_summary:    per-date counts and who eliminated what

Rules:
  - db.session.commit() happens only in service modules.
  - toggle runs as one transaction under the PlanDate row lock: mark upsert,
    status write and ledger insert commit together or not at all.
  - Re-toggling a date that is already unavailable is accepted.  It writes a
    fresh ledger entry and closes the undo windows of older entries for the
    same (participant, date) pair, so a stale token can never revert a mark
    that was re-asserted later.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select

from dateplan.core.exceptions import (
    DateBelongsToOtherPlanError,
    DateLockedError,
    ParticipantNotFoundError,
    PlanNotActiveError,
    PlanNotFoundError,
)
from dateplan.models import db
from dateplan.models.availability import AvailabilityMark
from dateplan.models.event_log import DateMarkedUnavailable
from dateplan.models.plan import Participant, Plan, PlanDate
from dateplan.services import date_state_machine, event_log_service

logger = logging.getLogger(__name__)


def _get_participant(participant_id: str) -> Participant:
    participant = db.session.get(Participant, participant_id)
    if participant is None:
        raise ParticipantNotFoundError(participant_id)
    return participant


def _upsert_mark(participant_id: str, plan_date_id: str, status: str) -> AvailabilityMark:
    mark = db.session.execute(
        select(AvailabilityMark).where(
            AvailabilityMark.participant_id == participant_id,
            AvailabilityMark.plan_date_id == plan_date_id,
        )
    ).scalar_one_or_none()
    if mark is None:
        mark = AvailabilityMark(
            participant_id=participant_id,
            plan_date_id=plan_date_id,
            status=status,
        )
        db.session.add(mark)
    else:
        mark.status = status
    return mark


# ── Toggle ───────────────────────────────────────────────────────────────────


def toggle_unavailable(participant_id: str, plan_date_id: str) -> dict:
    """Mark a date unavailable for a participant and eliminate it.

    Checks run in this order: participant exists, date exists, date is in
    the participant's plan, date not locked, plan active.

    Returns:
        {"dateStatus": "eliminated", "eventLogId": str, "undoDeadline": ISO str}

    Raises:
        ParticipantNotFoundError, DateNotFoundError,
        DateBelongsToOtherPlanError, DateLockedError, PlanNotActiveError
    """
    try:
        participant = _get_participant(participant_id)
        plan_date = date_state_machine.lock_date_for_update(plan_date_id)

        if plan_date.plan_id != participant.plan_id:
            raise DateBelongsToOtherPlanError(plan_date_id, participant.plan_id)
        if plan_date.status == "locked":
            raise DateLockedError()

        plan = db.session.get(Plan, participant.plan_id)
        if plan is None:
            raise PlanNotFoundError(participant.plan_id)
        if not plan.is_active:
            raise PlanNotActiveError(plan.status)

        _upsert_mark(participant_id, plan_date_id, "unavailable")
        date_status = date_state_machine.mark_eliminated(plan_date)

        superseded = event_log_service.close_undo_windows(
            participant_id=participant_id, plan_date_id=plan_date_id,
        )
        deadline = event_log_service.utcnow() + event_log_service.undo_window()
        entry = event_log_service.append(
            plan.id,
            DateMarkedUnavailable(plan_date_id=plan_date_id),
            participant_id=participant_id,
            undo_deadline=deadline,
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        "Date marked unavailable",
        extra={
            "plan_id": plan.id,
            "plan_date_id": plan_date_id,
            "participant_id": participant_id,
            "event_log_id": entry.id,
            "superseded_windows": superseded,
        },
    )
    return {
        "dateStatus": date_status,
        "eventLogId": entry.id,
        "undoDeadline": deadline.isoformat(),
    }


# ── Read views ───────────────────────────────────────────────────────────────


def get_participant_availability(participant_id: str) -> list[dict]:
    """Return the participant's marks on their own plan's dates."""
    participant = _get_participant(participant_id)
    marks = db.session.execute(
        select(AvailabilityMark)
        .join(PlanDate, AvailabilityMark.plan_date_id == PlanDate.id)
        .where(
            AvailabilityMark.participant_id == participant.id,
            PlanDate.plan_id == participant.plan_id,
        )
        .order_by(PlanDate.date)
    ).scalars().all()
    return [m.to_dict() for m in marks]


def get_plan_availability_summary(plan_id: str) -> dict:
    """Per-date elimination summary for a plan, dates in calendar order.

    Returns:
        {
          "planId": str,
          "doneCount": int,
          "dates": [{planDateId, date, status, reopenVersion,
                     unavailableCount, unavailableBy: [{participantId, displayName}]}]
        }
    """
    plan = db.session.get(Plan, plan_id)
    if plan is None:
        raise PlanNotFoundError(plan_id)

    dates = db.session.execute(
        select(PlanDate).where(PlanDate.plan_id == plan_id).order_by(PlanDate.date)
    ).scalars().all()

    rows = db.session.execute(
        select(AvailabilityMark.plan_date_id, Participant.id, Participant.display_name)
        .join(Participant, AvailabilityMark.participant_id == Participant.id)
        .join(PlanDate, AvailabilityMark.plan_date_id == PlanDate.id)
        .where(
            PlanDate.plan_id == plan_id,
            AvailabilityMark.status == "unavailable",
        )
        .order_by(Participant.created_at)
    ).all()

    by_date: dict[str, list[dict]] = {}
    for plan_date_id, pid, display_name in rows:
        by_date.setdefault(plan_date_id, []).append(
            {"participantId": pid, "displayName": display_name}
        )

    done_count = db.session.execute(
        select(func.count(Participant.id)).where(
            Participant.plan_id == plan_id,
            Participant.is_done.is_(True),
        )
    ).scalar() or 0

    return {
        "planId": plan_id,
        "doneCount": done_count,
        "dates": [
            {
                "planDateId": d.id,
                "date": d.date.isoformat(),
                "status": d.status,
                "reopenVersion": d.reopen_version,
                "unavailableCount": len(by_date.get(d.id, [])),
                "unavailableBy": by_date.get(d.id, []),
            }
            for d in dates
        ],
    }
