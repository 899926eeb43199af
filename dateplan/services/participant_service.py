"""
Participant hooks — done toggle and review acknowledgement.

toggle_done flips a participant's "done" flag.  Turning it on also sweeps
the participant's own open undo leases: eliminations still inside their
window become permanent before the participant finishes reviewing.  Other
participants' leases are never touched.

The sweep is housekeeping.  It runs after the done flag is committed, and a
failure there is logged and rolled back on its own without reverting the
flag.
"""

from __future__ import annotations

import logging

from dateplan.core.exceptions import ParticipantNotFoundError, PlanNotActiveError
from dateplan.models import db
from dateplan.models.event_log import ParticipantDoneToggled, ReviewAcknowledged
from dateplan.models.plan import Participant, Plan
from dateplan.services import event_log_service

logger = logging.getLogger(__name__)


def _get_participant(participant_id: str) -> Participant:
    participant = db.session.get(Participant, participant_id)
    if participant is None:
        raise ParticipantNotFoundError(participant_id)
    return participant


def sweep_undo_deadlines(participant_id: str) -> int:
    """Close every open undo lease owned by ``participant_id``.

    Returns:
        Number of leases closed.  Does not commit.
    """
    return event_log_service.close_undo_windows(participant_id=participant_id)


def toggle_done(participant_id: str) -> dict:
    """Flip the participant's done flag.

    Returns:
        {"isDone": bool, "sweptUndoWindows": int}

    Raises:
        ParticipantNotFoundError, PlanNotActiveError
    """
    try:
        participant = _get_participant(participant_id)
        plan = db.session.get(Plan, participant.plan_id)
        if plan is None or not plan.is_active:
            raise PlanNotActiveError(plan.status if plan else None)

        participant.is_done = not participant.is_done
        is_done = participant.is_done
        event_log_service.append(
            plan.id,
            ParticipantDoneToggled(is_done=is_done),
            participant_id=participant_id,
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        "Participant done=%s", is_done,
        extra={"plan_id": participant.plan_id, "participant_id": participant_id},
    )

    swept = 0
    if is_done:
        try:
            swept = sweep_undo_deadlines(participant_id)
            db.session.commit()
        except Exception:
            db.session.rollback()
            swept = 0
            logger.exception(
                "Undo sweep failed after done toggle",
                extra={"participant_id": participant_id},
            )

    return {"isDone": is_done, "sweptUndoWindows": swept}


def acknowledge_review(participant_id: str) -> dict:
    """Clear ``needs_review`` after the participant re-checked the reopened dates.

    Raises:
        ParticipantNotFoundError
    """
    try:
        participant = _get_participant(participant_id)
        was_flagged = participant.needs_review
        participant.needs_review = False
        if was_flagged:
            event_log_service.append(
                participant.plan_id,
                ReviewAcknowledged(),
                participant_id=participant_id,
            )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return {"needsReview": False}
