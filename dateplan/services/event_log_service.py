"""
Event ledger service — append, look up and close undo leases.

The ledger is both the audit trail and the undo capability store: the id of
a ``date_marked_unavailable`` entry is the token a participant presents to
undo, and ``undo_deadline`` is the lease on that token.  Leases are checked
lazily when someone tries to use them; nothing sweeps expired ones.

Rules:
  - Entries are only ever inserted.  The single permitted mutation is
    ``undo_deadline -> NULL``, done through ``consume_undo`` (one entry) or
    ``close_undo_windows`` (bulk).
  - Nothing in this module commits.  Callers own the transaction so the
    ledger write lands atomically with the state change it records.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from flask import current_app
from sqlalchemy import select, update

from dateplan.core.exceptions import EventNotFoundError
from dateplan.models import db
from dateplan.models.event_log import EventLogEntry, EventPayload

logger = logging.getLogger(__name__)

DEFAULT_UNDO_WINDOW_SECONDS = 30


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def undo_window() -> timedelta:
    """Configured undo lease length (UNDO_WINDOW_SECONDS, default 30s)."""
    seconds = current_app.config.get("UNDO_WINDOW_SECONDS", DEFAULT_UNDO_WINDOW_SECONDS)
    return timedelta(seconds=seconds)


def append(
    plan_id: str,
    payload: EventPayload,
    participant_id: str | None = None,
    undo_deadline: datetime | None = None,
) -> EventLogEntry:
    """Insert a ledger row and flush so its id is available as a token."""
    entry = EventLogEntry.from_payload(
        plan_id,
        payload,
        participant_id=participant_id,
        undo_deadline=undo_deadline,
    )
    db.session.add(entry)
    db.session.flush()
    logger.debug(
        "Ledger append %s",
        entry.event_type,
        extra={
            "event_type": entry.event_type,
            "event_log_id": entry.id,
            "plan_id": plan_id,
            "participant_id": participant_id,
        },
    )
    return entry


def get_entry(event_log_id: str) -> EventLogEntry:
    """Return the entry or raise EventNotFoundError.

    Does not lock the row.  Callers that change ledger rows hold the
    PlanDate lock first.
    """
    entry = db.session.execute(
        select(EventLogEntry).where(EventLogEntry.id == event_log_id)
    ).scalar_one_or_none()
    if entry is None:
        raise EventNotFoundError(event_log_id)
    return entry


def consume_undo(entry: EventLogEntry) -> bool:
    """Close the entry's undo lease exactly once.

    The UPDATE only matches while ``undo_deadline`` is still set, so of two
    concurrent consumers only one sees a row change.

    Returns:
        True if this call closed the lease, False if it was already closed.
    """
    result = db.session.execute(
        update(EventLogEntry)
        .where(
            EventLogEntry.id == entry.id,
            EventLogEntry.undo_deadline.is_not(None),
        )
        .values(undo_deadline=None)
        .execution_options(synchronize_session=False)
    )
    consumed = result.rowcount == 1
    if consumed:
        entry.undo_deadline = None
    return consumed


def close_undo_windows(
    *,
    participant_id: str | None = None,
    plan_date_id: str | None = None,
    plan_id: str | None = None,
) -> int:
    """Null every open undo lease matching the given filters.

    At least one filter is required; an unfiltered call would close every
    lease in the system.

    Returns:
        Number of leases closed.
    """
    filters = [EventLogEntry.undo_deadline.is_not(None)]
    if participant_id is not None:
        filters.append(EventLogEntry.participant_id == participant_id)
    if plan_date_id is not None:
        filters.append(EventLogEntry.plan_date_id == plan_date_id)
    if plan_id is not None:
        filters.append(EventLogEntry.plan_id == plan_id)
    if len(filters) == 1:
        raise ValueError("close_undo_windows requires at least one filter")

    result = db.session.execute(
        update(EventLogEntry)
        .where(*filters)
        .values(undo_deadline=None)
        .execution_options(synchronize_session="fetch")
    )
    return result.rowcount or 0


def list_plan_events(plan_id: str) -> list[dict]:
    """Chronological audit trail for a plan."""
    rows = db.session.execute(
        select(EventLogEntry)
        .where(EventLogEntry.plan_id == plan_id)
        .order_by(EventLogEntry.created_at, EventLogEntry.id)
    ).scalars().all()
    return [r.to_dict() for r in rows]
