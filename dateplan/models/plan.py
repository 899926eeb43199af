"""
Plan domain models.

Models:
    - Plan:        top-level scheduling unit owned by one user.
    - PlanDate:    one candidate date with an elimination status and reopen version.
    - Participant: a person voting on the plan's dates.

The PlanDate status machine is declared here (DATE_TRANSITIONS) so both the
service layer and tests read the same table; the recomputation logic lives in
dateplan.services.date_state_machine.
"""

import uuid
from datetime import datetime, timezone

from dateplan.models import db


# ── Helpers ──────────────────────────────────────────────────────────────────

def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


# ── Constants ────────────────────────────────────────────────────────────────

DATE_STATUSES = frozenset({"viable", "eliminated", "locked", "reopened"})

# Owner-initiated plan status changes (active is the only source state)
PLAN_TRANSITIONS = {
    "active":  ["locked", "deleted"],
    "locked":  [],
    "deleted": [],
}

DATE_TRANSITIONS = {
    "viable":     ["eliminated", "locked"],
    "eliminated": ["viable", "reopened", "locked"],
    "reopened":   ["eliminated", "locked"],
    "locked":     [],                    # terminal, follows the plan lock
}


def validate_plan_transition(old_status, new_status):
    """Return True if Plan status transition is valid."""
    return new_status in PLAN_TRANSITIONS.get(old_status, [])


def validate_date_transition(old_status, new_status):
    """Return True if PlanDate status transition is valid.

    Staying in the same known status is always allowed, ``locked`` included;
    no other transition leaves ``locked``.
    """
    if old_status == new_status:
        return old_status in DATE_STATUSES
    return new_status in DATE_TRANSITIONS.get(old_status, [])


class Plan(db.Model):
    """
    A plan lists candidate dates that participants eliminate.

    Only an ``active`` plan accepts new availability marks, undo of marks
    and reopen requests.  ``owner_id`` is the externally authenticated user
    id of the creator; it is trusted as already validated.
    """

    __tablename__ = "plans"
    __table_args__ = (
        db.Index("idx_plan_owner_status", "owner_id", "status"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    owner_id = db.Column(db.String(64), nullable=False)
    title = db.Column(db.String(100), nullable=False, default="")
    status = db.Column(
        db.String(20), nullable=False, default="active",
        comment="active | locked | deleted",
    )
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    dates = db.relationship(
        "PlanDate", backref="plan", lazy="dynamic",
        cascade="all, delete-orphan", order_by="PlanDate.date",
    )
    participants = db.relationship(
        "Participant", backref="plan", lazy="dynamic",
        cascade="all, delete-orphan", order_by="Participant.created_at",
    )

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "title": self.title,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<Plan {self.id} {self.status}>"


class PlanDate(db.Model):
    """
    One candidate date of a plan.

    Identity (plan_id, date) never changes after creation; only ``status``
    and ``reopen_version`` mutate.  ``reopen_version`` starts at 0 and moves
    up by exactly one per successful owner reopen.
    """

    __tablename__ = "plan_dates"
    __table_args__ = (
        db.UniqueConstraint("plan_id", "date", name="uq_plan_date"),
        db.Index("idx_plan_date_status", "plan_id", "status"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    plan_id = db.Column(
        db.String(36),
        db.ForeignKey("plans.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    date = db.Column(db.Date, nullable=False)
    status = db.Column(
        db.String(20), nullable=False, default="viable",
        comment="viable | eliminated | locked | reopened",
    )
    reopen_version = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "plan_id": self.plan_id,
            "date": self.date.isoformat() if self.date else None,
            "status": self.status,
            "reopen_version": self.reopen_version,
        }

    def __repr__(self) -> str:
        return f"<PlanDate {self.date} {self.status} v{self.reopen_version}>"


class Participant(db.Model):
    """
    A person taking part in a plan.

    ``needs_review`` is raised by an owner reopen when the participant had
    already marked themselves done; only the participant's own
    acknowledgement lowers it again.
    """

    __tablename__ = "participants"
    __table_args__ = (
        db.UniqueConstraint("plan_id", "display_name", name="uq_participant_plan_name"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    plan_id = db.Column(
        db.String(36),
        db.ForeignKey("plans.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    display_name = db.Column(db.String(50), nullable=False)
    is_done = db.Column(db.Boolean, nullable=False, default=False)
    needs_review = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "plan_id": self.plan_id,
            "display_name": self.display_name,
            "is_done": self.is_done,
            "needs_review": self.needs_review,
        }

    def __repr__(self) -> str:
        return f"<Participant {self.display_name!r} done={self.is_done}>"
