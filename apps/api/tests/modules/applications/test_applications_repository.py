"""
Unit tests for the application status machine and the guarded transition.
"""

from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from app.modules.applications.models import (
    ApplicationStatus,
    ApplicationStatusHistory,
    ChangedByRole,
)
from app.modules.applications.repository import (
    VALID_STATUS_TRANSITIONS,
    ConcurrentStatusChangeError,
    InvalidStatusTransitionError,
    transition_status,
)


class TestStatusTransitions:
    """Tests for the status transition map."""

    def test_draft_submission_outcomes(self):
        """A draft can only leave through coordinate submission."""
        valid = VALID_STATUS_TRANSITIONS[ApplicationStatus.DRAFT]
        assert valid == {
            ApplicationStatus.PENDING_COORDINATE_APPROVAL,
            ApplicationStatus.OVERLAP_DETECTED_PENDING_CONSENT,
            ApplicationStatus.COORDINATE_AUTO_APPROVED,
        }

    def test_pending_review_outcomes(self):
        valid = VALID_STATUS_TRANSITIONS[ApplicationStatus.PENDING_COORDINATE_APPROVAL]
        assert ApplicationStatus.COORDINATE_APPROVED in valid
        assert ApplicationStatus.COORDINATE_AUTO_APPROVED in valid
        assert ApplicationStatus.COORDINATE_REVISION_REQUIRED in valid
        # Voiding happens only after a revision window
        assert ApplicationStatus.VOIDED not in valid

    def test_revision_window_can_expire(self):
        assert ApplicationStatus.VOIDED in VALID_STATUS_TRANSITIONS[
            ApplicationStatus.COORDINATE_REVISION_REQUIRED
        ]

    def test_approved_coordinates_lead_to_acceptance(self):
        for status in (
            ApplicationStatus.COORDINATE_APPROVED,
            ApplicationStatus.COORDINATE_AUTO_APPROVED,
        ):
            assert VALID_STATUS_TRANSITIONS[status] == {ApplicationStatus.ACCEPTANCE_IN_PROGRESS}

    def test_terminal_states_have_no_transitions(self):
        assert VALID_STATUS_TRANSITIONS[ApplicationStatus.UNDER_REVIEW] == set()
        assert VALID_STATUS_TRANSITIONS[ApplicationStatus.VOIDED] == set()

    def test_all_statuses_are_in_transition_map(self):
        for status in ApplicationStatus:
            assert status in VALID_STATUS_TRANSITIONS


class TestTransitionStatus:
    """Tests for transition_status."""

    @pytest.mark.asyncio
    async def test_applies_status_fields_and_history(self, mock_db, application_factory):
        application = application_factory(ApplicationStatus.DRAFT)
        user_id = uuid4()

        result = await transition_status(
            mock_db,
            application,
            ApplicationStatus.PENDING_COORDINATE_APPROVAL,
            changed_by=user_id,
            changed_by_role=ChangedByRole.APPLICANT,
            remarks="Submitted",
            coordinate_review_remarks=None,
        )

        assert result.status == ApplicationStatus.PENDING_COORDINATE_APPROVAL
        assert result.coordinate_review_remarks is None
        mock_db.execute.assert_awaited_once()
        history = mock_db.add.call_args.args[0]
        assert isinstance(history, ApplicationStatusHistory)
        assert history.from_status == ApplicationStatus.DRAFT
        assert history.to_status == ApplicationStatus.PENDING_COORDINATE_APPROVAL
        assert history.changed_by == user_id

    @pytest.mark.asyncio
    async def test_invalid_transition(self, mock_db, application_factory):
        application = application_factory(ApplicationStatus.DRAFT)

        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            await transition_status(
                mock_db,
                application,
                ApplicationStatus.UNDER_REVIEW,
                changed_by=None,
                changed_by_role=ChangedByRole.SYSTEM,
            )

        assert exc_info.value.current_status == "draft"
        assert application.status == ApplicationStatus.DRAFT
        mock_db.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_concurrent_change_detected(self, mock_db, application_factory):
        """A row that moved since it was read matches no rows."""
        application = application_factory(ApplicationStatus.PENDING_COORDINATE_APPROVAL)
        mock_db.execute.return_value = MagicMock(rowcount=0)

        with pytest.raises(ConcurrentStatusChangeError):
            await transition_status(
                mock_db,
                application,
                ApplicationStatus.COORDINATE_AUTO_APPROVED,
                changed_by=None,
                changed_by_role=ChangedByRole.SYSTEM,
            )

        assert application.status == ApplicationStatus.PENDING_COORDINATE_APPROVAL
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_same_status_updates_fields_without_history(
        self, mock_db, application_factory
    ):
        application = application_factory(ApplicationStatus.ACCEPTANCE_IN_PROGRESS)
        pointer = uuid4()

        await transition_status(
            mock_db,
            application,
            ApplicationStatus.ACCEPTANCE_IN_PROGRESS,
            changed_by=None,
            changed_by_role=ChangedByRole.SYSTEM,
            current_acceptance_requirement_id=pointer,
        )

        assert application.current_acceptance_requirement_id == pointer
        mock_db.add.assert_not_called()


class TestInvalidStatusTransitionError:
    def test_message_lists_valid_targets(self):
        error = InvalidStatusTransitionError(
            ApplicationStatus.COORDINATE_APPROVED, ApplicationStatus.VOIDED
        )
        assert "coordinate_approved -> voided" in error.message
        assert "acceptance_in_progress" in error.message
        assert error.error_code == "INVALID_STATUS_TRANSITION"
