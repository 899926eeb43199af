"""
Shared pytest fixtures for the date elimination test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - plan: Active plan owned by OWNER_ID with three candidate dates
    - make_participant: factory for participants on a plan
"""

from datetime import date

import pytest

from dateplan import create_app
from dateplan.models import db as _db
from dateplan.models.plan import Participant, Plan, PlanDate

OWNER_ID = "owner-1"

PLAN_DATES = (date(2026, 11, 6), date(2026, 11, 7), date(2026, 11, 8))


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Domain fixtures ──────────────────────────────────────────────────────


def _make_plan(owner_id: str = OWNER_ID, status: str = "active") -> Plan:
    plan = Plan(owner_id=owner_id, title="Team dinner", status=status)
    _db.session.add(plan)
    _db.session.flush()
    for d in PLAN_DATES:
        _db.session.add(PlanDate(plan_id=plan.id, date=d))
    _db.session.commit()
    return plan


@pytest.fixture()
def plan():
    """Active plan with three viable dates, owned by OWNER_ID."""
    return _make_plan()


@pytest.fixture()
def other_plan():
    """A second active plan with a different owner."""
    return _make_plan(owner_id="owner-2")


@pytest.fixture()
def plan_dates(plan):
    """The plan's dates in calendar order."""
    return plan.dates.all()


@pytest.fixture()
def make_participant():
    """Factory: make_participant(plan, "Ana", is_done=False) -> Participant."""

    def _make(plan: Plan, display_name: str, is_done: bool = False) -> Participant:
        p = Participant(plan_id=plan.id, display_name=display_name, is_done=is_done)
        _db.session.add(p)
        _db.session.commit()
        return p

    return _make
