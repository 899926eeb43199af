"""
Plan status changes made by the owner.

Locking a plan freezes it: every date moves to the terminal ``locked``
status and open undo leases on the plan close, so no elimination can be
reversed after the owner has settled the plan.  Deleting a plan leaves
its dates as they are but closes the open undo leases too.
"""

from __future__ import annotations

import logging

from dateplan.core.exceptions import (
    NotOwnerError,
    PlanNotActiveError,
    PlanNotFoundError,
    ValidationError,
)
from dateplan.models import db
from dateplan.models.event_log import PlanStatusChanged
from dateplan.models.plan import Plan, validate_plan_transition
from dateplan.services import date_state_machine, event_log_service

logger = logging.getLogger(__name__)


def get_plan(plan_id: str) -> Plan:
    plan = db.session.get(Plan, plan_id)
    if plan is None:
        raise PlanNotFoundError(plan_id)
    return plan


def get_owned_plan(owner_id: str, plan_id: str) -> Plan:
    plan = get_plan(plan_id)
    if plan.owner_id != owner_id:
        raise NotOwnerError(plan_id)
    return plan


def set_plan_status(owner_id: str, plan_id: str, status: str) -> dict:
    """Lock or delete an active plan.

    Returns:
        Plan dict plus "lockedDates" (dates moved to locked).

    Raises:
        ValidationError, PlanNotFoundError, NotOwnerError, PlanNotActiveError
    """
    if status not in ("locked", "deleted"):
        raise ValidationError(
            'Status must be "locked" or "deleted"',
            details={"status": status},
        )
    try:
        plan = get_owned_plan(owner_id, plan_id)
        old = plan.status
        if not validate_plan_transition(old, status):
            raise PlanNotActiveError(old)

        plan.status = status
        locked_dates = 0
        if status == "locked":
            locked_dates = date_state_machine.lock_plan_dates(plan.id)
        event_log_service.close_undo_windows(plan_id=plan.id)

        event_log_service.append(
            plan.id, PlanStatusChanged(old_status=old, new_status=status),
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        "Plan %s: %s → %s", plan_id, old, status,
        extra={"plan_id": plan_id},
    )
    result = plan.to_dict()
    result["lockedDates"] = locked_dates
    return result


def list_plan_events(owner_id: str, plan_id: str) -> list[dict]:
    """Audit trail of an owner's plan."""
    get_owned_plan(owner_id, plan_id)
    return event_log_service.list_plan_events(plan_id)
