"""
Reviews Repository

Database operations shared by acceptance requirements and other documents.
Every function takes the model class, so both tables go through the same
code. Nothing here commits.
"""

from datetime import datetime
from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import StateConflictError

from .models import AcceptanceRequirement, ItemStatus, ReviewableItemMixin

ItemT = TypeVar("ItemT", bound=ReviewableItemMixin)


class ConcurrentItemChangeError(StateConflictError):
    """Raised when an item no longer holds the status the caller read."""

    def __init__(self, item: ReviewableItemMixin, expected: ItemStatus):
        super().__init__(
            f"{item.item_type} {item.id} is no longer {expected.value}",
            current_status=None,
            error_code="CONCURRENT_ITEM_CHANGE",
        )


def _ordering(model: type[ReviewableItemMixin]):
    if model is AcceptanceRequirement:
        return AcceptanceRequirement.order
    return model.created_at


async def get_by_id(db: AsyncSession, model: type[ItemT], id: UUID) -> ItemT | None:
    return await db.get(model, id)


async def list_for_application(
    db: AsyncSession,
    model: type[ItemT],
    application_id: UUID,
) -> list[ItemT]:
    result = await db.execute(
        select(model).where(model.application_id == application_id).order_by(_ordering(model))
    )
    return list(result.scalars().all())


async def exists_for_application(
    db: AsyncSession,
    model: type[ReviewableItemMixin],
    application_id: UUID,
) -> bool:
    result = await db.execute(
        select(model.id).where(model.application_id == application_id).limit(1)
    )
    return result.scalar_one_or_none() is not None


async def create_many(db: AsyncSession, items: list[ItemT]) -> list[ItemT]:
    db.add_all(items)
    await db.flush()
    return items


async def apply_changes(
    db: AsyncSession,
    item: ItemT,
    expected_status: ItemStatus,
    changes: dict[str, Any],
) -> ItemT:
    """
    Write state-machine changes with an optimistic guard.

    The UPDATE only matches while the row still has `expected_status` and
    is not voided.

    Raises:
        ConcurrentItemChangeError: If no row matched
    """
    model = type(item)
    result = await db.execute(
        update(model)
        .where(
            model.id == item.id,
            model.status == expected_status,
            model.is_voided.is_(False),
        )
        .values(**changes)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise ConcurrentItemChangeError(item, expected_status)

    for key, value in changes.items():
        setattr(item, key, value)
    return item


# ============================================
# Queues and deadline queries
# ============================================


async def list_pending_review(db: AsyncSession, model: type[ItemT]) -> list[ItemT]:
    """Items awaiting an admin decision, oldest deadline first."""
    result = await db.execute(
        select(model)
        .where(model.status == ItemStatus.PENDING_REVIEW, model.is_voided.is_(False))
        .order_by(model.auto_accept_deadline.asc())
    )
    return list(result.scalars().all())


async def get_expired_pending_review(
    db: AsyncSession,
    model: type[ItemT],
    now: datetime,
) -> list[ItemT]:
    result = await db.execute(
        select(model).where(
            model.status == ItemStatus.PENDING_REVIEW,
            model.auto_accept_deadline.is_not(None),
            model.auto_accept_deadline < now,
            model.is_auto_accepted.is_(False),
            model.is_voided.is_(False),
        )
    )
    return list(result.scalars().all())


async def get_expired_revisions(
    db: AsyncSession,
    model: type[ItemT],
    now: datetime,
) -> list[ItemT]:
    result = await db.execute(
        select(model).where(
            model.status == ItemStatus.REVISION_REQUIRED,
            model.revision_deadline.is_not(None),
            model.revision_deadline < now,
            model.is_voided.is_(False),
        )
    )
    return list(result.scalars().all())


async def void_open_items(
    db: AsyncSession,
    model: type[ReviewableItemMixin],
    application_id: UUID,
    now: datetime,
    reason: str,
) -> int:
    """Void every item of an application that is neither ACCEPTED nor voided."""
    result = await db.execute(
        update(model)
        .where(
            model.application_id == application_id,
            model.status != ItemStatus.ACCEPTED,
            model.is_voided.is_(False),
        )
        .values(
            is_voided=True,
            voided_at=now,
            void_reason=reason,
            auto_accept_deadline=None,
            revision_deadline=None,
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount
