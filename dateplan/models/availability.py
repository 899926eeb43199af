"""
AvailabilityMark model — one participant's stated availability for one date.

At most one row exists per (participant_id, plan_date_id); the service layer
upserts into it and the unique constraint backs that up at the DB level.
"""

import uuid
from datetime import datetime, timezone

from dateplan.models import db


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


class AvailabilityMark(db.Model):
    __tablename__ = "availability_marks"
    __table_args__ = (
        db.UniqueConstraint("participant_id", "plan_date_id", name="uq_mark_participant_date"),
        db.Index("idx_mark_date_status", "plan_date_id", "status"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    participant_id = db.Column(
        db.String(36),
        db.ForeignKey("participants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    plan_date_id = db.Column(
        db.String(36),
        db.ForeignKey("plan_dates.id", ondelete="CASCADE"),
        nullable=False,
    )
    status = db.Column(
        db.String(20), nullable=False, default="unavailable",
        comment="available | unavailable",
    )
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "participant_id": self.participant_id,
            "plan_date_id": self.plan_date_id,
            "status": self.status,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<AvailabilityMark {self.participant_id}/{self.plan_date_id} {self.status}>"
