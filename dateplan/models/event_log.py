"""
Event ledger model — append-only record of state-changing actions.

Models:
    - EventLogEntry: one row per action.  The row id doubles as the undo
      token handed to the client; ``undo_deadline`` is the lease on that
      token and is nulled (never deleted) once it can no longer be used.

Payloads:
    ``metadata_json`` holds one of the typed payload variants below, keyed
    by ``event_type``.  Use ``entry.payload`` to decode and
    ``encode_payload`` / ``EventLogEntry.from_payload`` to write.
"""

import json
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import ClassVar

from dateplan.models import db


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from SQLite."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


# ── Payload variants ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class DateMarkedUnavailable:
    event_type: ClassVar[str] = "date_marked_unavailable"
    plan_date_id: str


@dataclass(frozen=True)
class DateMarkedAvailable:
    event_type: ClassVar[str] = "date_marked_available"
    plan_date_id: str
    undone_event_id: str


@dataclass(frozen=True)
class DateForceReopened:
    event_type: ClassVar[str] = "date_force_reopened"
    plan_date_id: str
    reopen_version: int
    cleared_marks: int = 0


@dataclass(frozen=True)
class ParticipantDoneToggled:
    event_type: ClassVar[str] = "participant_done_toggled"
    is_done: bool


@dataclass(frozen=True)
class ReviewAcknowledged:
    event_type: ClassVar[str] = "review_acknowledged"


@dataclass(frozen=True)
class PlanStatusChanged:
    event_type: ClassVar[str] = "plan_status_changed"
    old_status: str
    new_status: str


EventPayload = (
    DateMarkedUnavailable
    | DateMarkedAvailable
    | DateForceReopened
    | ParticipantDoneToggled
    | ReviewAcknowledged
    | PlanStatusChanged
)

PAYLOAD_TYPES: dict[str, type] = {
    cls.event_type: cls
    for cls in (
        DateMarkedUnavailable,
        DateMarkedAvailable,
        DateForceReopened,
        ParticipantDoneToggled,
        ReviewAcknowledged,
        PlanStatusChanged,
    )
}

# Only eliminations carry an undo lease
UNDOABLE_EVENT_TYPES = frozenset({DateMarkedUnavailable.event_type})


def encode_payload(payload: EventPayload) -> str:
    return json.dumps(asdict(payload), sort_keys=True)


def decode_payload(event_type: str, raw: str | None) -> EventPayload:
    """Rebuild the typed payload for ``event_type``.

    Raises:
        ValueError: unknown event type or metadata that does not fit the variant.
    """
    cls = PAYLOAD_TYPES.get(event_type)
    if cls is None:
        raise ValueError(f"Unknown event_type {event_type!r}")
    try:
        data = json.loads(raw or "{}")
        return cls(**data)
    except (json.JSONDecodeError, TypeError) as exc:
        raise ValueError(f"Malformed metadata for {event_type}: {exc}") from exc


class EventLogEntry(db.Model):
    """
    Ledger row.  Append-only: rows are never updated except for
    ``undo_deadline`` moving from a timestamp to NULL, and never deleted.

    ``plan_date_id`` duplicates the payload's date reference as a real column
    so open undo windows can be closed per date without parsing JSON.
    """

    __tablename__ = "event_log"
    __table_args__ = (
        db.Index("idx_event_plan_created", "plan_id", "created_at"),
        db.Index("idx_event_participant_open", "participant_id", "undo_deadline"),
        db.Index("idx_event_date", "plan_date_id"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    plan_id = db.Column(
        db.String(36),
        db.ForeignKey("plans.id", ondelete="CASCADE"),
        nullable=False,
    )
    participant_id = db.Column(
        db.String(36),
        db.ForeignKey("participants.id", ondelete="SET NULL"),
        nullable=True,
    )
    plan_date_id = db.Column(
        db.String(36),
        db.ForeignKey("plan_dates.id", ondelete="SET NULL"),
        nullable=True,
    )
    event_type = db.Column(
        db.String(40), nullable=False,
        comment="date_marked_unavailable | date_marked_available | date_force_reopened | …",
    )
    metadata_json = db.Column(db.Text, nullable=False, default="{}")
    undo_deadline = db.Column(
        db.DateTime(timezone=True), nullable=True,
        comment="Lease on the undo token; NULL once consumed, swept or superseded",
    )
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    @classmethod
    def from_payload(
        cls,
        plan_id: str,
        payload: EventPayload,
        participant_id: str | None = None,
        undo_deadline: datetime | None = None,
    ) -> "EventLogEntry":
        return cls(
            plan_id=plan_id,
            participant_id=participant_id,
            plan_date_id=getattr(payload, "plan_date_id", None),
            event_type=payload.event_type,
            metadata_json=encode_payload(payload),
            undo_deadline=undo_deadline,
        )

    @property
    def payload(self) -> EventPayload:
        return decode_payload(self.event_type, self.metadata_json)

    @property
    def is_undoable(self) -> bool:
        return self.event_type in UNDOABLE_EVENT_TYPES

    def undo_open_at(self, now: datetime) -> bool:
        """True while the lease is held and ``now`` is strictly before it."""
        deadline = as_utc(self.undo_deadline)
        return deadline is not None and now < deadline

    def to_dict(self) -> dict:
        deadline = as_utc(self.undo_deadline)
        created = as_utc(self.created_at)
        try:
            metadata = json.loads(self.metadata_json or "{}")
        except (json.JSONDecodeError, TypeError):
            metadata = {}
        return {
            "id": self.id,
            "plan_id": self.plan_id,
            "participant_id": self.participant_id,
            "plan_date_id": self.plan_date_id,
            "event_type": self.event_type,
            "metadata": metadata,
            "undo_deadline": deadline.isoformat() if deadline else None,
            "created_at": created.isoformat() if created else None,
        }

    def __repr__(self) -> str:
        return f"<EventLogEntry {self.id} {self.event_type}>"
