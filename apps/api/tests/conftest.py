"""
Shared fixtures: database session mocks, actors and polygon builders.
"""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from app.core.auth import ROLE_ADMIN, ROLE_APPLICANT, Actor
from app.modules.applications.models import Application, ApplicationStatus, PermitType
from app.modules.coordinates.validator import CoordinatePoint


def _square(lat: float, lng: float, size: float = 0.01) -> tuple[CoordinatePoint, ...]:
    """Axis-aligned square with its south-west corner at (lat, lng)."""
    return (
        CoordinatePoint(lat=lat, lng=lng),
        CoordinatePoint(lat=lat, lng=lng + size),
        CoordinatePoint(lat=lat + size, lng=lng + size),
        CoordinatePoint(lat=lat + size, lng=lng),
    )


def _make_application(status: ApplicationStatus, user_id=None, **fields) -> MagicMock:
    application = MagicMock(spec=Application)
    application.id = uuid4()
    application.user_id = user_id or uuid4()
    application.application_no = f"ISAG-2026-{uuid4().int % 10000:04d}"
    application.applicant_email = "applicant@test.com"
    application.permit_type = PermitType.ISAG
    application.status = status
    application.project_coordinates = None
    application.coordinate_review_deadline = None
    application.coordinate_revision_deadline = None
    application.coordinate_approved_at = None
    application.current_acceptance_requirement_id = None
    for key, value in fields.items():
        setattr(application, key, value)
    return application


def _transition(db, application, new_status, **kwargs):
    """Stand-in for applications.repository.transition_status."""
    application.status = new_status
    for key in ("changed_by", "changed_by_role", "remarks"):
        kwargs.pop(key, None)
    for key, value in kwargs.items():
        setattr(application, key, value)
    return application


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    db.flush = AsyncMock()
    db.get = AsyncMock()
    db.execute = AsyncMock(return_value=MagicMock(rowcount=1))
    db.add = MagicMock()
    db.add_all = MagicMock()
    return db


@pytest.fixture
def applicant():
    return Actor(id=uuid4(), role=ROLE_APPLICANT, email="applicant@test.com")


@pytest.fixture
def admin():
    return Actor(id=uuid4(), role=ROLE_ADMIN, email="admin@test.com")


@pytest.fixture
def mock_storage():
    from app.core.storage import StoredFile

    storage = AsyncMock()
    storage.store = AsyncMock(
        return_value=StoredFile(url="/storage/documents/abc.pdf", size=12, sha256="abc")
    )
    storage.delete = AsyncMock()
    return storage


@pytest.fixture
def pdf_bytes():
    return b"%PDF-1.4 test document"


@pytest.fixture
def square():
    """Factory: square(lat, lng, size=0.01) -> polygon."""
    return _square


@pytest.fixture
def application_factory():
    """Factory: application_factory(status, user_id=None, **fields) -> mock Application."""
    return _make_application


@pytest.fixture
def fake_transition():
    """Side effect for a patched transition_status that applies the new status and fields."""
    return _transition
