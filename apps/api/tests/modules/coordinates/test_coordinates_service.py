"""
Tests for the coordinates service.

Covers:
- Validation preview (including DMS input)
- Submission with and without overlaps
- Admin review and the consent gate
- System auto-approval after the review deadline
"""

from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from app.core.errors import AuthorizationError, StateConflictError, ValidationError
from app.modules.applications.models import ApplicationStatus, ChangedByRole
from app.modules.consents.models import ConsentStatus, OverlapConsent
from app.modules.consents.summary import ConsentsNotVerifiedError
from app.modules.coordinates.geometry import bounding_box
from app.modules.coordinates.models import CoordinateHistory
from app.modules.coordinates.overlap import ReferencePolygon
from app.modules.coordinates.schemas import ReviewDecision
from app.modules.coordinates.service import (
    auto_approve_expired_review,
    review_coordinates,
    submit_coordinates,
    validate_coordinates,
)
from app.modules.coordinates.validator import CoordinateValidationError, polygon_to_json

SERVICE = "app.modules.coordinates.service"


def _consent(status):
    consent = MagicMock(spec=OverlapConsent)
    consent.consent_status = status
    return consent


@pytest.fixture
def deps(fake_transition):
    """Patch every collaborator of the coordinates service."""
    history = MagicMock(spec=CoordinateHistory)
    history.id = uuid4()

    with (
        patch(f"{SERVICE}.get_owned_application", new_callable=AsyncMock) as get_owned,
        patch(f"{SERVICE}.get_application", new_callable=AsyncMock) as get_application,
        patch(f"{SERVICE}.ledger") as ledger,
        patch(f"{SERVICE}.application_repository") as application_repository,
        patch(f"{SERVICE}.consent_repository") as consent_repository,
        patch(f"{SERVICE}.notify_applicant", new_callable=AsyncMock) as notify_applicant,
        patch(f"{SERVICE}.notify_admins", new_callable=AsyncMock) as notify_admins,
        patch(f"{SERVICE}.deliver_emails", new_callable=AsyncMock) as deliver_emails,
    ):
        ledger.active_set = AsyncMock(return_value=[])
        ledger.get_active = AsyncMock(return_value=None)
        ledger.approve = AsyncMock(return_value=history)
        application_repository.transition_status = AsyncMock(side_effect=fake_transition)
        consent_repository.mark_not_required = AsyncMock(return_value=0)
        consent_repository.upsert_required = AsyncMock()
        consent_repository.list_for_application = AsyncMock(return_value=[])
        consent_repository.link_coordinate_history = AsyncMock()
        notify_applicant.return_value = MagicMock()

        yield SimpleNamespace(
            get_owned=get_owned,
            get_application=get_application,
            ledger=ledger,
            application_repository=application_repository,
            consent_repository=consent_repository,
            notify_applicant=notify_applicant,
            notify_admins=notify_admins,
            deliver_emails=deliver_emails,
            history=history,
        )


# ============================================
# Test validate_coordinates
# ============================================


def test_validate_coordinates_valid(square):
    """A valid polygon previews with bounds, centroid and GeoJSON."""
    raw = [p.as_dict() for p in square(14.0, 121.0, 0.02)]

    result = validate_coordinates(raw)

    assert result["valid"] is True
    assert result["point_count"] == 4
    assert result["bounds"]["max_lat"] == pytest.approx(14.02)
    assert result["centroid"]["lat"] == pytest.approx(14.01)
    assert result["centroid"]["lat_dms"] == "14°00'36.00\""
    assert result["geojson"]["type"] == "Feature"


def test_validate_coordinates_invalid_does_not_raise():
    """Invalid input is reported, not raised."""
    result = validate_coordinates([{"lat": 14.0, "lng": 121.0}])

    assert result["valid"] is False
    assert result["errors"]
    assert result["centroid"] is None
    assert result["geojson"] is None


def test_validate_coordinates_accepts_dms():
    """DMS strings are converted to decimal degrees."""
    raw = {
        "point1": {"lat": "14°00'00\"N", "lng": "121°00'00\"E"},
        "point2": {"lat": "14°00'00\"N", "lng": "121°00'36\"E"},
        "point3": {"lat": "14°00'36\"N", "lng": "121°00'36\"E"},
    }

    result = validate_coordinates(raw)

    assert result["valid"] is True
    assert result["bounds"]["max_lng"] == pytest.approx(121.01)


def test_validate_coordinates_bad_dms_reported():
    """A malformed DMS string surfaces as a field error."""
    result = validate_coordinates([{"lat": "14°99'00\"N", "lng": 121.0}] * 3)

    assert result["valid"] is False
    assert result["errors"][0]["field"] == "point1.lat"


# ============================================
# Test submit_coordinates
# ============================================


@pytest.mark.asyncio
async def test_submit_without_overlap_auto_approves(
    mock_db, deps, applicant, application_factory, square
):
    """No overlaps: coordinates are approved into the ledger at once."""
    application = application_factory(ApplicationStatus.DRAFT, user_id=applicant.id)
    deps.get_owned.return_value = application
    raw = [p.as_dict() for p in square(14.0, 121.0)]

    with patch(f"{SERVICE}.settings.auto_approve_clear_coordinates", True):
        result = await submit_coordinates(mock_db, application.id, raw, applicant)

    assert result["status"] == ApplicationStatus.COORDINATE_AUTO_APPROVED
    assert result["overlaps"] == []
    assert application.project_coordinates == polygon_to_json(square(14.0, 121.0))
    assert application.coordinate_approved_at is not None
    deps.ledger.approve.assert_awaited_once()
    assert deps.ledger.approve.call_args.kwargs["approved_by"] is None
    deps.consent_repository.mark_not_required.assert_awaited_once_with(
        mock_db, application.id, set()
    )
    deps.notify_admins.assert_awaited_once()
    mock_db.commit.assert_awaited_once()
    deps.deliver_emails.assert_awaited_once()


@pytest.mark.asyncio
async def test_submit_without_overlap_waits_for_review(
    mock_db, deps, applicant, application_factory, square
):
    """With auto-approval off, a review deadline is set instead."""
    application = application_factory(ApplicationStatus.DRAFT, user_id=applicant.id)
    deps.get_owned.return_value = application

    with patch(f"{SERVICE}.settings.auto_approve_clear_coordinates", False):
        result = await submit_coordinates(
            mock_db, application.id, [p.as_dict() for p in square(14.0, 121.0)], applicant
        )

    assert result["status"] == ApplicationStatus.PENDING_COORDINATE_APPROVAL
    assert result["review_deadline"] is not None
    assert application.coordinate_review_deadline == result["review_deadline"]
    deps.ledger.approve.assert_not_awaited()


@pytest.mark.asyncio
async def test_submit_with_overlap_records_consents(
    mock_db, deps, applicant, application_factory, square
):
    """Overlaps move the application to OVERLAP_DETECTED_PENDING_CONSENT."""
    application = application_factory(ApplicationStatus.DRAFT, user_id=applicant.id)
    deps.get_owned.return_value = application
    approved = square(14.0, 121.006)
    reference = ReferencePolygon(
        history_id=uuid4(),
        application_id=uuid4(),
        application_no="ISAG-2026-0001",
        polygon=approved,
        bounding_box=bounding_box(approved),
    )
    deps.ledger.active_set.return_value = [reference]

    result = await submit_coordinates(
        mock_db, application.id, [p.as_dict() for p in square(14.0, 121.0)], applicant
    )

    assert result["status"] == ApplicationStatus.OVERLAP_DETECTED_PENDING_CONSENT
    assert len(result["overlaps"]) == 1
    deps.ledger.active_set.assert_awaited_once_with(
        mock_db, exclude_application_id=application.id
    )
    upsert = deps.consent_repository.upsert_required.call_args.kwargs
    assert upsert["affected_application_id"] == reference.application_id
    assert upsert["affected_coordinate_history_id"] == reference.history_id
    assert upsert["overlap_percentage"] == pytest.approx(40.0, abs=0.1)
    deps.consent_repository.mark_not_required.assert_awaited_once_with(
        mock_db, application.id, {reference.application_id}
    )
    deps.ledger.approve.assert_not_awaited()
    mock_db.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_overlap_consents_not_linked_to_previous_polygon(
    mock_db, deps, applicant, application_factory, square
):
    """A resubmitted boundary is only linked to the ledger once it is approved."""
    application = application_factory(
        ApplicationStatus.COORDINATE_REVISION_REQUIRED, user_id=applicant.id
    )
    deps.get_owned.return_value = application
    deps.ledger.get_active.return_value = MagicMock(id=uuid4())
    approved = square(14.0, 121.006)
    deps.ledger.active_set.return_value = [
        ReferencePolygon(
            history_id=uuid4(),
            application_id=uuid4(),
            application_no="ISAG-2026-0001",
            polygon=approved,
            bounding_box=bounding_box(approved),
        )
    ]

    await submit_coordinates(
        mock_db, application.id, [p.as_dict() for p in square(14.0, 121.0)], applicant
    )

    upsert = deps.consent_repository.upsert_required.call_args.kwargs
    assert upsert["new_coordinate_history_id"] is None


@pytest.mark.asyncio
async def test_submit_invalid_polygon(mock_db, deps, applicant, application_factory):
    """Invalid polygons are rejected before anything is written."""
    application = application_factory(ApplicationStatus.DRAFT, user_id=applicant.id)
    deps.get_owned.return_value = application

    with pytest.raises(CoordinateValidationError):
        await submit_coordinates(mock_db, application.id, [[14.0, 121.0]], applicant)

    deps.application_repository.transition_status.assert_not_awaited()
    mock_db.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_submit_wrong_status(mock_db, deps, applicant, application_factory, square):
    """Coordinates can't be resubmitted while under review."""
    application = application_factory(
        ApplicationStatus.PENDING_COORDINATE_APPROVAL, user_id=applicant.id
    )
    deps.get_owned.return_value = application

    with pytest.raises(StateConflictError) as exc_info:
        await submit_coordinates(
            mock_db, application.id, [p.as_dict() for p in square(14.0, 121.0)], applicant
        )

    assert exc_info.value.current_status == "pending_coordinate_approval"


@pytest.mark.asyncio
async def test_submit_requires_applicant_ownership(mock_db, deps, admin, square):
    """Admins may not submit on behalf of an applicant."""
    application_id = uuid4()
    deps.get_owned.side_effect = AuthorizationError("You do not own this application.")

    with pytest.raises(AuthorizationError):
        await submit_coordinates(
            mock_db, application_id, [p.as_dict() for p in square(14.0, 121.0)], admin
        )

    deps.get_owned.assert_awaited_once_with(mock_db, application_id, admin, allow_admin=False)


# ============================================
# Test review_coordinates
# ============================================


@pytest.mark.asyncio
async def test_review_approve(mock_db, deps, admin, application_factory, square):
    """Approval writes the ledger and links consents to the new record."""
    application = application_factory(
        ApplicationStatus.PENDING_COORDINATE_APPROVAL,
        project_coordinates=polygon_to_json(square(14.0, 121.0)),
        coordinate_review_deadline=datetime(2026, 11, 5, tzinfo=UTC),
    )
    deps.get_application.return_value = application

    result = await review_coordinates(
        mock_db, application.id, ReviewDecision.APPROVED, None, admin
    )

    assert result.status == ApplicationStatus.COORDINATE_APPROVED
    assert result.coordinate_review_deadline is None
    assert deps.ledger.approve.call_args.kwargs["approved_by"] == admin.id
    deps.consent_repository.link_coordinate_history.assert_awaited_once_with(
        mock_db, application.id, deps.history.id
    )
    mock_db.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_review_approve_after_consents_verified(
    mock_db, deps, admin, application_factory, square
):
    """Overlapping applications can be approved once every consent is verified."""
    application = application_factory(
        ApplicationStatus.OVERLAP_DETECTED_PENDING_CONSENT,
        project_coordinates=polygon_to_json(square(14.0, 121.0)),
    )
    deps.get_application.return_value = application
    deps.consent_repository.list_for_application.return_value = [
        _consent(ConsentStatus.VERIFIED),
        _consent(ConsentStatus.NOT_REQUIRED),
    ]

    result = await review_coordinates(
        mock_db, application.id, ReviewDecision.APPROVED, "ok", admin
    )

    assert result.status == ApplicationStatus.COORDINATE_APPROVED


@pytest.mark.asyncio
async def test_review_approve_blocked_by_pending_consent(
    mock_db, deps, admin, application_factory
):
    """Outstanding consents block approval and nothing is committed."""
    application = application_factory(ApplicationStatus.OVERLAP_DETECTED_PENDING_CONSENT)
    deps.get_application.return_value = application
    deps.consent_repository.list_for_application.return_value = [
        _consent(ConsentStatus.VERIFIED),
        _consent(ConsentStatus.UPLOADED),
    ]

    with pytest.raises(ConsentsNotVerifiedError) as exc_info:
        await review_coordinates(mock_db, application.id, ReviewDecision.APPROVED, None, admin)

    assert exc_info.value.summary.pending_count == 1
    assert application.status == ApplicationStatus.OVERLAP_DETECTED_PENDING_CONSENT
    deps.ledger.approve.assert_not_awaited()
    mock_db.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_review_reject_opens_revision_window(mock_db, deps, admin, application_factory):
    """Rejection sets the revision deadline and clears the review deadline."""
    application = application_factory(
        ApplicationStatus.PENDING_COORDINATE_APPROVAL,
        coordinate_review_deadline=datetime(2026, 11, 5, tzinfo=UTC),
    )
    deps.get_application.return_value = application

    result = await review_coordinates(
        mock_db, application.id, ReviewDecision.REJECTED, "Boundary crosses a river", admin
    )

    assert result.status == ApplicationStatus.COORDINATE_REVISION_REQUIRED
    assert result.coordinate_review_deadline is None
    assert result.coordinate_revision_deadline is not None
    assert result.coordinate_review_remarks == "Boundary crosses a river"
    deps.ledger.approve.assert_not_awaited()


@pytest.mark.asyncio
async def test_review_reject_requires_remarks(mock_db, deps, admin, application_factory):
    """Rejecting without remarks is a validation error."""
    deps.get_application.return_value = application_factory(
        ApplicationStatus.PENDING_COORDINATE_APPROVAL
    )

    with pytest.raises(ValidationError):
        await review_coordinates(mock_db, uuid4(), ReviewDecision.REJECTED, "  ", admin)

    mock_db.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_review_requires_admin(mock_db, deps, applicant):
    """Applicants can't review coordinates."""
    with pytest.raises(AuthorizationError):
        await review_coordinates(mock_db, uuid4(), ReviewDecision.APPROVED, None, applicant)

    deps.get_application.assert_not_awaited()


@pytest.mark.asyncio
async def test_review_wrong_status(mock_db, deps, admin, application_factory):
    """Only applications awaiting review can be reviewed."""
    deps.get_application.return_value = application_factory(ApplicationStatus.DRAFT)

    with pytest.raises(StateConflictError):
        await review_coordinates(mock_db, uuid4(), ReviewDecision.APPROVED, None, admin)


# ============================================
# Test auto_approve_expired_review
# ============================================


@pytest.mark.asyncio
async def test_auto_approve_expired_review(mock_db, deps, application_factory, square):
    """The system approval records no approver and leaves the commit to the caller."""
    now = datetime(2026, 11, 6, 2, 0, tzinfo=UTC)
    application = application_factory(
        ApplicationStatus.PENDING_COORDINATE_APPROVAL,
        project_coordinates=polygon_to_json(square(14.0, 121.0)),
        coordinate_review_deadline=datetime(2026, 11, 5, tzinfo=UTC),
    )

    notification = await auto_approve_expired_review(mock_db, application, now)

    assert application.status == ApplicationStatus.COORDINATE_AUTO_APPROVED
    assert application.coordinate_approved_at == now
    assert application.coordinate_review_deadline is None
    transition = deps.application_repository.transition_status.call_args.kwargs
    assert transition["changed_by"] is None
    assert transition["changed_by_role"] == ChangedByRole.SYSTEM
    assert deps.ledger.approve.call_args.kwargs["approved_by"] is None
    assert notification is deps.notify_applicant.return_value
    mock_db.commit.assert_not_awaited()
