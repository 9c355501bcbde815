"""
Deadline Sweeper

Daily batch that enforces the working-day deadlines of the pipeline:
1. Auto-accept pass
   - items PENDING_REVIEW past their auto_accept_deadline
   - applications PENDING_COORDINATE_APPROVAL past their review deadline
2. Auto-void pass
   - items REVISION_REQUIRED past their revision_deadline
   - applications COORDINATE_REVISION_REQUIRED past their revision deadline

Design Principles:
- `now` is injected so a run is reproducible
- Each record is re-read and processed in its own session and transaction
- Status guards make the sweep idempotent: a second run right after the
  first finds nothing to do
- A failing record is reported and never stops the batch
- Emails go out after each record's commit

Schedule:
- Daily CronTrigger (DEADLINE_SWEEP_HOUR/MINUTE, UTC)
- Can also be triggered via POST /api/v1/cron/deadline-sweep, the debug
  job endpoints or scripts/run_deadline_sweep.py
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from apscheduler.triggers.cron import CronTrigger

from app.core.config import settings
from app.core.database import async_session_maker
from app.core.errors import PartialBatchError
from app.core.redis import acquire_lock, release_lock
from app.core.scheduler import register_job
from app.modules.applications import repository as application_repository
from app.modules.applications.models import ApplicationStatus
from app.modules.applications.service import void_application
from app.modules.coordinates.service import auto_approve_expired_review
from app.modules.notifications.service import deliver_emails
from app.modules.reviews import repository as review_repository
from app.modules.reviews import service as review_service
from app.modules.reviews.models import ItemStatus, ReviewableItemMixin

logger = logging.getLogger(__name__)

JOB_ID_DEADLINE_SWEEP = "deadline_sweep"
SWEEP_LOCK_KEY = "locks:deadline_sweep"

COORDINATE_REVISION_EXPIRED = "Coordinate revision deadline expired"


# ============================================
# Per-record processors
# ============================================


async def _auto_accept_item(
    model: type[ReviewableItemMixin],
    item_id: UUID,
    now: datetime,
) -> bool:
    async with async_session_maker() as db:
        item = await review_repository.get_by_id(db, model, item_id)
        if (
            item is None
            or item.status != ItemStatus.PENDING_REVIEW
            or item.is_auto_accepted
            or item.is_voided
        ):
            return False

        application, notifications = await review_service.auto_accept_item(db, item, now)
        await db.commit()

    await deliver_emails(application, notifications)
    logger.info(f"Auto-accepted {item.item_type} {item_id} of {application.application_no}")
    return True


async def _auto_void_item(
    model: type[ReviewableItemMixin],
    item_id: UUID,
    now: datetime,
) -> bool:
    async with async_session_maker() as db:
        item = await review_repository.get_by_id(db, model, item_id)
        if item is None or item.status != ItemStatus.REVISION_REQUIRED or item.is_voided:
            return False

        application, notifications = await review_service.auto_void_item(db, item, now)
        await db.commit()

    await deliver_emails(application, notifications)
    logger.info(f"Voided {item.item_type} {item_id} of {application.application_no}")
    return True


async def _auto_approve_coordinates(application_id: UUID, now: datetime) -> bool:
    async with async_session_maker() as db:
        application = await application_repository.get_by_id(db, application_id)
        if (
            application is None
            or application.status != ApplicationStatus.PENDING_COORDINATE_APPROVAL
            or application.coordinate_review_deadline is None
            or application.coordinate_review_deadline >= now
        ):
            return False

        notification = await auto_approve_expired_review(db, application, now)
        await db.commit()

    await deliver_emails(application, [notification])
    logger.info(f"Auto-approved coordinates of {application.application_no}")
    return True


async def _void_expired_revision(application_id: UUID, now: datetime) -> bool:
    async with async_session_maker() as db:
        application = await application_repository.get_by_id(db, application_id)
        if (
            application is None
            or application.status != ApplicationStatus.COORDINATE_REVISION_REQUIRED
            or application.coordinate_revision_deadline is None
            or application.coordinate_revision_deadline >= now
        ):
            return False

        notification = await void_application(db, application, COORDINATE_REVISION_EXPIRED, now)
        await db.commit()

    await deliver_emails(application, [notification])
    return True


# ============================================
# Batch
# ============================================


async def _run_pass(
    record_kind: str,
    record_ids: list[UUID],
    process: Callable[[UUID], Awaitable[bool]],
    results: dict[str, Any],
    counter: str,
) -> None:
    for record_id in record_ids:
        results["checked"] += 1
        try:
            if await process(record_id):
                results[counter] += 1
        except Exception as e:
            error = PartialBatchError(record_kind, record_id, e)
            logger.error(f"Deadline sweep failed for {error}", exc_info=True)
            results["errors"].append(str(error))


async def _collect_candidates(now: datetime) -> dict[str, list[UUID]]:
    candidates: dict[str, list[UUID]] = {}
    async with async_session_maker() as db:
        for kind, model in review_service.ITEM_MODELS.items():
            expired_reviews = await review_repository.get_expired_pending_review(db, model, now)
            candidates[f"accept:{kind.value}"] = [item.id for item in expired_reviews]

            expired_revisions = await review_repository.get_expired_revisions(db, model, now)
            candidates[f"void:{kind.value}"] = [item.id for item in expired_revisions]

        reviews = await application_repository.get_expired_coordinate_reviews(db, now)
        candidates["accept:coordinates"] = [a.id for a in reviews]

        revisions = await application_repository.get_expired_coordinate_revisions(db, now)
        candidates["void:coordinates"] = [a.id for a in revisions]
    return candidates


async def run_deadline_sweep(now: datetime | None = None) -> dict[str, Any]:
    """
    Run both sweep passes once.

    Args:
        now: Reference time (defaults to the current UTC time)

    Returns:
        Dict with executed_at, auto_accepted, voided, checked, errors and
        skipped (True when another worker holds the sweep lock)
    """
    now = now or datetime.now(UTC)
    results: dict[str, Any] = {
        "executed_at": now.isoformat(),
        "auto_accepted": 0,
        "voided": 0,
        "checked": 0,
        "errors": [],
        "skipped": False,
    }

    locked = await acquire_lock(SWEEP_LOCK_KEY, settings.deadline_sweep_lock_seconds)
    if locked is False:
        logger.info("Deadline sweep already running on another worker, skipping")
        results["skipped"] = True
        return results
    if locked is None:
        logger.warning("Redis unavailable, running deadline sweep without lock")

    logger.info(f"Starting deadline sweep at {now.isoformat()}")

    try:
        candidates = await _collect_candidates(now)

        # Pass 1: auto-accept
        for kind, model in review_service.ITEM_MODELS.items():
            await _run_pass(
                kind.value,
                candidates[f"accept:{kind.value}"],
                lambda item_id, model=model: _auto_accept_item(model, item_id, now),
                results,
                "auto_accepted",
            )
        await _run_pass(
            "application",
            candidates["accept:coordinates"],
            lambda application_id: _auto_approve_coordinates(application_id, now),
            results,
            "auto_accepted",
        )

        # Pass 2: auto-void
        for kind, model in review_service.ITEM_MODELS.items():
            await _run_pass(
                kind.value,
                candidates[f"void:{kind.value}"],
                lambda item_id, model=model: _auto_void_item(model, item_id, now),
                results,
                "voided",
            )
        await _run_pass(
            "application",
            candidates["void:coordinates"],
            lambda application_id: _void_expired_revision(application_id, now),
            results,
            "voided",
        )
    finally:
        if locked:
            await release_lock(SWEEP_LOCK_KEY)

    logger.info(
        f"Deadline sweep completed. Checked: {results['checked']}, "
        f"auto-accepted: {results['auto_accepted']}, voided: {results['voided']}, "
        f"errors: {len(results['errors'])}"
    )
    return results


def register_deadline_jobs() -> None:
    """
    Register the daily deadline sweep with the scheduler.

    Call during application startup, before the scheduler is started.
    """
    register_job(
        job_id=JOB_ID_DEADLINE_SWEEP,
        func=run_deadline_sweep,
        trigger=CronTrigger(
            hour=settings.deadline_sweep_hour,
            minute=settings.deadline_sweep_minute,
            timezone="UTC",
        ),
    )
    logger.info(
        f"Registered job: {JOB_ID_DEADLINE_SWEEP} "
        f"(daily at {settings.deadline_sweep_hour:02d}:{settings.deadline_sweep_minute:02d} UTC)"
    )
