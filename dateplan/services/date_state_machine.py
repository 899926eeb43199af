"""
PlanDate state machine — recompute a date's status from its marks.

States (see DATE_TRANSITIONS in dateplan.models.plan):

    viable ──mark──▶ eliminated ──undo, count 0──▶ viable
                         │
                         └──owner reopen──▶ reopened ──mark──▶ eliminated

    any ──plan locked──▶ locked (terminal)

The status written by ``recompute`` depends only on the number of
unavailable marks that exist *now*, never on the event that triggered the
recomputation.  Whichever of two racing writers commits last therefore
recomputes from the full aggregate.  That only holds when the mark mutation,
the count and the status write share one transaction under the per-date
row lock taken by ``lock_date_for_update``; every caller in this package
does that.

Nothing in this module commits.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select

from dateplan.core.exceptions import DateNotFoundError, InvalidTransitionError
from dateplan.models import db
from dateplan.models.availability import AvailabilityMark
from dateplan.models.plan import PlanDate, validate_date_transition

logger = logging.getLogger(__name__)


def status_for_count(current_status: str, unavailable_count: int) -> str:
    """Pure transition rule: the status a date should hold for a mark count.

    - ``locked`` never changes.
    - One or more unavailable marks always means ``eliminated``.
    - Zero marks returns an ``eliminated`` date to ``viable``; ``viable`` and
      ``reopened`` dates keep their status.
    """
    if current_status == "locked":
        return "locked"
    if unavailable_count > 0:
        return "eliminated"
    if current_status == "eliminated":
        return "viable"
    return current_status


def lock_date_for_update(plan_date_id: str) -> PlanDate:
    """Load the PlanDate row with ``SELECT … FOR UPDATE``.

    Serializes all mark mutations on one date until the caller's
    transaction ends.  SQLite ignores the clause and serializes writers at
    the database level instead.

    Raises:
        DateNotFoundError: No such date.
    """
    plan_date = db.session.execute(
        select(PlanDate)
        .where(PlanDate.id == plan_date_id)
        .with_for_update()
    ).scalar_one_or_none()
    if plan_date is None:
        raise DateNotFoundError(plan_date_id)
    return plan_date


def count_unavailable(plan_date_id: str) -> int:
    db.session.flush()
    return db.session.execute(
        select(func.count(AvailabilityMark.id)).where(
            AvailabilityMark.plan_date_id == plan_date_id,
            AvailabilityMark.status == "unavailable",
        )
    ).scalar() or 0


def _transition(plan_date: PlanDate, new_status: str) -> str:
    old = plan_date.status
    if not validate_date_transition(old, new_status):
        raise InvalidTransitionError(old, new_status)
    if old != new_status:
        plan_date.status = new_status
        logger.info(
            "PlanDate %s: %s → %s",
            plan_date.id, old, new_status,
            extra={"plan_id": plan_date.plan_id, "plan_date_id": plan_date.id},
        )
    return new_status


def recompute(plan_date: PlanDate) -> str:
    """Write the status implied by the current aggregate and return it."""
    count = count_unavailable(plan_date.id)
    return _transition(plan_date, status_for_count(plan_date.status, count))


def mark_eliminated(plan_date: PlanDate) -> str:
    """Unconditional elimination after a new unavailable mark.

    Valid from viable, eliminated and reopened; a locked date raises
    InvalidTransitionError (callers reject locked dates before mutating).
    """
    return _transition(plan_date, "eliminated")


def force_reopen(plan_date: PlanDate) -> int:
    """Move an eliminated date to ``reopened`` and bump its version.

    The caller clears the date's marks in the same transaction.

    Returns:
        The new reopen_version.
    """
    if plan_date.status != "eliminated":
        raise InvalidTransitionError(plan_date.status, "reopened")
    _transition(plan_date, "reopened")
    plan_date.reopen_version = (plan_date.reopen_version or 0) + 1
    return plan_date.reopen_version


def lock_plan_dates(plan_id: str) -> int:
    """Lock every date of a plan that is not locked yet.

    Returns:
        Number of dates that moved to ``locked``.
    """
    dates = db.session.execute(
        select(PlanDate)
        .where(PlanDate.plan_id == plan_id, PlanDate.status != "locked")
        .with_for_update()
    ).scalars().all()
    for plan_date in dates:
        _transition(plan_date, "locked")
    return len(dates)
