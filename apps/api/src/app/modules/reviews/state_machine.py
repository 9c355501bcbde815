"""
Review State Machine

Pure transition rules for reviewable items:

    PENDING_SUBMISSION -> PENDING_REVIEW -> ACCEPTED
                                         -> REVISION_REQUIRED -> PENDING_REVIEW

ACCEPTED and voided items accept no further transitions.

Each `apply_*` function checks the transition and returns the column
changes to write; it never touches the database. The repository applies
the changes with an UPDATE guarded by the expected status.
"""

from collections.abc import Iterable
from datetime import datetime
from typing import Any
from uuid import UUID

from app.core.errors import StateConflictError, ValidationError
from app.core.working_days import add_working_days

from .models import ItemStatus, ReviewableItemMixin

SUBMITTABLE = {ItemStatus.PENDING_SUBMISSION, ItemStatus.REVISION_REQUIRED}

AUTO_ACCEPT_REMARKS = "Auto-accepted due to deadline expiration"
REVISION_EXPIRED_REASON = "Revision deadline expired"


def _conflict(item: ReviewableItemMixin, action: str) -> StateConflictError:
    state = "voided" if item.is_voided else item.status.value
    return StateConflictError(
        f"Cannot {action} {item.item_type} while it is {state}",
        current_status=state,
        error_code="INVALID_ITEM_TRANSITION",
    )


def all_accepted(items: Iterable[ReviewableItemMixin]) -> bool:
    """True when there is at least one item and every item is ACCEPTED and not voided."""
    items = list(items)
    return bool(items) and all(
        item.status == ItemStatus.ACCEPTED and not item.is_voided for item in items
    )


def ensure_submittable(item: ReviewableItemMixin) -> None:
    """
    Raises:
        StateConflictError: If the item is voided or not awaiting submission
    """
    if item.is_voided or item.status not in SUBMITTABLE:
        raise _conflict(item, "submit")


def apply_submit(
    item: ReviewableItemMixin,
    *,
    submitted_by: UUID,
    now: datetime,
    auto_accept_days: int,
    file_url: str | None = None,
    file_name: str | None = None,
    data: Any = None,
) -> dict[str, Any]:
    """
    Raises:
        StateConflictError: If the item is voided or not awaiting submission
        ValidationError: If neither a file nor inline data is given
    """
    ensure_submittable(item)

    if not file_url and data is None:
        raise ValidationError(
            "A file or inline data is required.",
            details=[{"field": "file", "message": "Provide a file or data"}],
        )

    return {
        "status": ItemStatus.PENDING_REVIEW,
        "submitted_at": now,
        "submitted_by": submitted_by,
        "submitted_file_url": file_url,
        "submitted_file_name": file_name,
        "submitted_data": data,
        "auto_accept_deadline": add_working_days(now, auto_accept_days),
        "revision_deadline": None,
    }


def apply_accept(
    item: ReviewableItemMixin,
    *,
    reviewed_by: UUID | None,
    now: datetime,
    remarks: str | None = None,
    auto: bool = False,
) -> dict[str, Any]:
    """
    Raises:
        StateConflictError: If the item is not PENDING_REVIEW (or is voided)
    """
    if item.is_voided or item.status != ItemStatus.PENDING_REVIEW:
        raise _conflict(item, "accept")

    return {
        "status": ItemStatus.ACCEPTED,
        "reviewed_at": now,
        "reviewed_by": reviewed_by,
        "admin_remarks": AUTO_ACCEPT_REMARKS if auto else remarks,
        "is_auto_accepted": auto,
        "is_compliant": True,
        "auto_accept_deadline": None,
        "revision_deadline": None,
    }


def apply_reject(
    item: ReviewableItemMixin,
    *,
    reviewed_by: UUID,
    now: datetime,
    remarks: str | None,
    revision_days: int,
    remark_file_url: str | None = None,
    remark_file_name: str | None = None,
) -> dict[str, Any]:
    """
    Raises:
        StateConflictError: If the item is not PENDING_REVIEW (or is voided)
        ValidationError: If no remarks are given
    """
    if item.is_voided or item.status != ItemStatus.PENDING_REVIEW:
        raise _conflict(item, "reject")

    if not remarks or not remarks.strip():
        raise ValidationError(
            "Remarks are required when requesting a revision.",
            details=[{"field": "remarks", "message": "Required when rejecting"}],
        )

    return {
        "status": ItemStatus.REVISION_REQUIRED,
        "reviewed_at": now,
        "reviewed_by": reviewed_by,
        "admin_remarks": remarks,
        "admin_remark_file_url": remark_file_url,
        "admin_remark_file_name": remark_file_name,
        "is_compliant": False,
        "revision_deadline": add_working_days(now, revision_days),
        "auto_accept_deadline": None,
    }


def apply_void(
    item: ReviewableItemMixin,
    *,
    now: datetime,
    reason: str = REVISION_EXPIRED_REASON,
) -> dict[str, Any]:
    """
    Void an open item. Status is kept for the record.

    Raises:
        StateConflictError: If the item is already voided or ACCEPTED
    """
    if item.is_voided or item.status == ItemStatus.ACCEPTED:
        raise _conflict(item, "void")

    return {
        "is_voided": True,
        "voided_at": now,
        "void_reason": reason,
        "auto_accept_deadline": None,
        "revision_deadline": None,
    }
