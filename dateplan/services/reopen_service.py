"""
Owner reopen — put an eliminated date back into consideration.

Reopening bypasses the mark aggregate: it deletes every mark on the date so
it starts from a clean slate, forces the status to ``reopened`` and bumps
``reopen_version``.  Participants who had already marked themselves done
get ``needs_review`` so their earlier sign-off is not silently carried
forward.  Any undo lease still open on the date is closed; there is no mark
left for it to reverse.
"""

from __future__ import annotations

import logging

from sqlalchemy import delete, select, update

from dateplan.core.exceptions import (
    DateNotEliminatedError,
    DateNotFoundError,
    NotOwnerError,
    PlanNotActiveError,
    PlanNotFoundError,
)
from dateplan.models import db
from dateplan.models.availability import AvailabilityMark
from dateplan.models.event_log import DateForceReopened
from dateplan.models.plan import Participant, Plan
from dateplan.services import date_state_machine, event_log_service

logger = logging.getLogger(__name__)


def force_reopen(owner_id: str, plan_id: str, plan_date_id: str) -> dict:
    """Reset an eliminated date of the owner's plan.

    Returns:
        {"date": PlanDate dict, "reopenVersion": int, "reviewFlaggedCount": int}

    Raises:
        PlanNotFoundError, NotOwnerError, PlanNotActiveError,
        DateNotFoundError, DateNotEliminatedError
    """
    try:
        plan = db.session.execute(
            select(Plan).where(Plan.id == plan_id)
        ).scalar_one_or_none()
        if plan is None:
            raise PlanNotFoundError(plan_id)
        if plan.owner_id != owner_id:
            raise NotOwnerError(plan_id)
        if not plan.is_active:
            raise PlanNotActiveError(plan.status)

        plan_date = date_state_machine.lock_date_for_update(plan_date_id)
        if plan_date.plan_id != plan.id:
            # Same answer as a missing date; the caller learns nothing about other plans
            raise DateNotFoundError(plan_date_id)
        if plan_date.status != "eliminated":
            raise DateNotEliminatedError(plan_date.status)

        cleared = db.session.execute(
            delete(AvailabilityMark)
            .where(AvailabilityMark.plan_date_id == plan_date_id)
            .execution_options(synchronize_session="fetch")
        ).rowcount or 0

        new_version = date_state_machine.force_reopen(plan_date)

        event_log_service.close_undo_windows(plan_date_id=plan_date_id)

        flagged = db.session.execute(
            update(Participant)
            .where(Participant.plan_id == plan.id, Participant.is_done.is_(True))
            .values(needs_review=True)
            .execution_options(synchronize_session="fetch")
        ).rowcount or 0

        event_log_service.append(
            plan.id,
            DateForceReopened(
                plan_date_id=plan_date_id,
                reopen_version=new_version,
                cleared_marks=cleared,
            ),
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        "Date force-reopened v%d (%d marks cleared, %d participants flagged)",
        new_version, cleared, flagged,
        extra={"plan_id": plan_id, "plan_date_id": plan_date_id},
    )
    return {
        "date": plan_date.to_dict(),
        "reopenVersion": new_version,
        "reviewFlaggedCount": flagged,
    }
