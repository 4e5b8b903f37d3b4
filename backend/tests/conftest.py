"""
Pytest fixtures for the club booking backend tests.

Provides an app on in-memory SQLite with a pinned club clock, a per-test
table wipe, and member / facility factories.
"""

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest
from clubhouse import create_app
from clubhouse.extensions import db
from clubhouse.services import facility_service, member_service
from clubhouse.services.document_service import ensure_sequences
from clubhouse.time_utils import ClubClock

CLUB_TZ = "Asia/Karachi"

# "Today" for every test unless a test moves the clock
DEFAULT_NOW = datetime(2025, 5, 20, 10, 0, tzinfo=ZoneInfo(CLUB_TZ))


class _Now:
    """Mutable instant behind the test clock."""

    def __init__(self):
        self.value = DEFAULT_NOW

    def __call__(self):
        return self.value


_now = _Now()


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(
        {
            'TESTING': True,
            'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
            'SQLALCHEMY_TRACK_MODIFICATIONS': False,
            'CLUB_TIMEZONE': CLUB_TZ,
        },
        clock=ClubClock(CLUB_TZ, now_fn=_now),
    )

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Fresh tables and the default clock for each test."""
    _now.value = DEFAULT_NOW
    with app.app_context():
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        ensure_sequences()

        yield db.session

        db.session.rollback()
        db.session.remove()


@pytest.fixture(scope='function')
def set_now():
    """Move the club clock: set_now(datetime(..., tzinfo=...))."""
    def _set(value: datetime):
        _now.value = value
    yield _set
    _now.value = DEFAULT_NOW


@pytest.fixture(scope='function')
def make_member(db_session):
    def _make(membership_no="M-1001", name="Test Member", **kwargs):
        return member_service.create_member(membership_no, name, **kwargs)
    return _make


@pytest.fixture(scope='function')
def make_facility(db_session):
    def _make(facility_type, name, **data):
        return facility_service.create_facility(facility_type, name, **data)
    return _make


@pytest.fixture(scope='function')
def member(make_member):
    return make_member("M1", "Member One")


@pytest.fixture(scope='function')
def room(make_facility):
    return make_facility("ROOM", "R1", rate_member=5000, rate_guest=8000, rate_forces=4000)


@pytest.fixture(scope='function')
def hall(make_facility):
    return make_facility("HALL", "H1", rate_member=50000, rate_guest=70000, rate_corporate=90000,
                         min_guests=50, capacity=300)


@pytest.fixture(scope='function')
def lawn(make_facility):
    return make_facility("LAWN", "L1", rate_member=30000, rate_guest=45000, capacity=500)


@pytest.fixture(scope='function')
def studio(make_facility):
    return make_facility("PHOTOSHOOT", "Studio", rate_member=3000, rate_guest=5000)

