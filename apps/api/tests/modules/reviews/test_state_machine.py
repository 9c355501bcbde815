"""
Unit tests for the reviewable item state machine.
"""

from datetime import UTC, datetime
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from app.core.errors import StateConflictError, ValidationError
from app.modules.reviews.models import AcceptanceRequirement, ItemStatus
from app.modules.reviews.state_machine import (
    AUTO_ACCEPT_REMARKS,
    REVISION_EXPIRED_REASON,
    all_accepted,
    apply_accept,
    apply_reject,
    apply_submit,
    apply_void,
    ensure_submittable,
)

# Friday
NOW = datetime(2026, 10, 16, 9, 0, tzinfo=UTC)


def _item(status, is_voided=False):
    item = MagicMock(spec=AcceptanceRequirement)
    item.item_type = "SURVEY_PLAN"
    item.status = status
    item.is_voided = is_voided
    return item


class TestAllAccepted:
    def test_empty_set_is_not_complete(self):
        assert not all_accepted([])

    def test_all_accepted(self):
        assert all_accepted([_item(ItemStatus.ACCEPTED), _item(ItemStatus.ACCEPTED)])

    def test_one_pending(self):
        assert not all_accepted([_item(ItemStatus.ACCEPTED), _item(ItemStatus.PENDING_REVIEW)])

    def test_voided_item_never_counts(self):
        assert not all_accepted([_item(ItemStatus.ACCEPTED, is_voided=True)])


class TestSubmit:
    @pytest.mark.parametrize(
        "status", [ItemStatus.PENDING_SUBMISSION, ItemStatus.REVISION_REQUIRED]
    )
    def test_submittable(self, status):
        user_id = uuid4()
        changes = apply_submit(
            _item(status),
            submitted_by=user_id,
            now=NOW,
            auto_accept_days=14,
            file_url="/storage/x.pdf",
            file_name="x.pdf",
        )

        assert changes["status"] == ItemStatus.PENDING_REVIEW
        assert changes["submitted_by"] == user_id
        assert changes["auto_accept_deadline"] == datetime(2026, 11, 5, 9, 0, tzinfo=UTC)
        assert changes["revision_deadline"] is None

    def test_inline_data_is_enough(self):
        changes = apply_submit(
            _item(ItemStatus.PENDING_SUBMISSION),
            submitted_by=uuid4(),
            now=NOW,
            auto_accept_days=14,
            data={"work_program": []},
        )
        assert changes["submitted_data"] == {"work_program": []}
        assert changes["submitted_file_url"] is None

    def test_requires_file_or_data(self):
        with pytest.raises(ValidationError):
            apply_submit(
                _item(ItemStatus.PENDING_SUBMISSION),
                submitted_by=uuid4(),
                now=NOW,
                auto_accept_days=14,
            )

    @pytest.mark.parametrize("status", [ItemStatus.PENDING_REVIEW, ItemStatus.ACCEPTED])
    def test_not_submittable(self, status):
        with pytest.raises(StateConflictError) as exc_info:
            ensure_submittable(_item(status))
        assert exc_info.value.current_status == status.value

    def test_voided_not_submittable(self):
        with pytest.raises(StateConflictError) as exc_info:
            ensure_submittable(_item(ItemStatus.REVISION_REQUIRED, is_voided=True))
        assert exc_info.value.current_status == "voided"


class TestAccept:
    def test_manual_accept(self):
        admin_id = uuid4()
        changes = apply_accept(
            _item(ItemStatus.PENDING_REVIEW), reviewed_by=admin_id, now=NOW, remarks="Complete"
        )

        assert changes["status"] == ItemStatus.ACCEPTED
        assert changes["reviewed_by"] == admin_id
        assert changes["admin_remarks"] == "Complete"
        assert changes["is_auto_accepted"] is False
        assert changes["auto_accept_deadline"] is None

    def test_auto_accept(self):
        changes = apply_accept(_item(ItemStatus.PENDING_REVIEW), reviewed_by=None, now=NOW, auto=True)

        assert changes["is_auto_accepted"] is True
        assert changes["reviewed_by"] is None
        assert changes["admin_remarks"] == AUTO_ACCEPT_REMARKS

    @pytest.mark.parametrize(
        "status",
        [ItemStatus.PENDING_SUBMISSION, ItemStatus.ACCEPTED, ItemStatus.REVISION_REQUIRED],
    )
    def test_only_pending_review(self, status):
        with pytest.raises(StateConflictError):
            apply_accept(_item(status), reviewed_by=uuid4(), now=NOW)


class TestReject:
    def test_sets_revision_deadline(self):
        changes = apply_reject(
            _item(ItemStatus.PENDING_REVIEW),
            reviewed_by=uuid4(),
            now=NOW,
            remarks="Unsigned",
            revision_days=14,
        )

        assert changes["status"] == ItemStatus.REVISION_REQUIRED
        assert changes["revision_deadline"] == datetime(2026, 11, 5, 9, 0, tzinfo=UTC)
        assert changes["auto_accept_deadline"] is None
        assert changes["is_compliant"] is False

    @pytest.mark.parametrize("remarks", [None, "", "   "])
    def test_requires_remarks(self, remarks):
        with pytest.raises(ValidationError):
            apply_reject(
                _item(ItemStatus.PENDING_REVIEW),
                reviewed_by=uuid4(),
                now=NOW,
                remarks=remarks,
                revision_days=14,
            )

    def test_accepted_item_cannot_be_rejected(self):
        with pytest.raises(StateConflictError):
            apply_reject(
                _item(ItemStatus.ACCEPTED),
                reviewed_by=uuid4(),
                now=NOW,
                remarks="Too late",
                revision_days=14,
            )


class TestVoid:
    def test_void_keeps_status(self):
        changes = apply_void(_item(ItemStatus.REVISION_REQUIRED), now=NOW)

        assert changes["is_voided"] is True
        assert changes["void_reason"] == REVISION_EXPIRED_REASON
        assert "status" not in changes

    def test_accepted_item_cannot_be_voided(self):
        with pytest.raises(StateConflictError):
            apply_void(_item(ItemStatus.ACCEPTED), now=NOW)

    def test_already_voided(self):
        with pytest.raises(StateConflictError):
            apply_void(_item(ItemStatus.REVISION_REQUIRED, is_voided=True), now=NOW)
