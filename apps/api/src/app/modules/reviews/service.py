"""
Reviews Service Layer

Business logic for the two document phases of an application:
1. Acceptance requirements (ISAG/CSAG checklist, ordered)
2. Other documents (created once every acceptance requirement is accepted)

Both phases share one review lifecycle (see state_machine.py). After every
accept the sibling set is re-read and `all_accepted` decides whether the
application advances to the next phase.

The `auto_*` functions are the sweeper's entry points; they never commit.
"""

import logging
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Actor
from app.core.config import settings
from app.core.errors import (
    AuthorizationError,
    DependencyError,
    NotFoundError,
    StateConflictError,
)
from app.core.storage import FileMetadata, FileStorage, validate_document
from app.modules.applications import repository as application_repository
from app.modules.applications.models import Application, ApplicationStatus, ChangedByRole
from app.modules.applications.service import (
    actor_role,
    get_application,
    get_owned_application,
    void_application,
)
from app.modules.coordinates import ledger
from app.modules.notifications.models import Notification, NotificationType
from app.modules.notifications.service import deliver_emails, notify_admins, notify_applicant

from . import repository
from .checklists import OTHER_DOCUMENTS, PROJECT_COORDINATES, acceptance_checklist
from .models import AcceptanceRequirement, ItemStatus, OtherDocument, ReviewableItemMixin
from .schemas import ItemDecision, ItemKind
from .state_machine import (
    REVISION_EXPIRED_REASON,
    all_accepted,
    apply_accept,
    apply_reject,
    apply_submit,
    apply_void,
    ensure_submittable,
)

logger = logging.getLogger(__name__)

ITEM_MODELS: dict[ItemKind, type[ReviewableItemMixin]] = {
    ItemKind.ACCEPTANCE_REQUIREMENT: AcceptanceRequirement,
    ItemKind.OTHER_DOCUMENT: OtherDocument,
}

# Application status in which each kind of item can be submitted and reviewed
PHASE_STATUS: dict[ItemKind, ApplicationStatus] = {
    ItemKind.ACCEPTANCE_REQUIREMENT: ApplicationStatus.ACCEPTANCE_IN_PROGRESS,
    ItemKind.OTHER_DOCUMENT: ApplicationStatus.PENDING_OTHER_DOCUMENTS,
}

INITIALIZABLE_STATUSES = {
    ApplicationStatus.COORDINATE_APPROVED,
    ApplicationStatus.COORDINATE_AUTO_APPROVED,
}


def _now() -> datetime:
    return datetime.now(UTC)


def kind_of(item: ReviewableItemMixin) -> ItemKind:
    return (
        ItemKind.ACCEPTANCE_REQUIREMENT
        if isinstance(item, AcceptanceRequirement)
        else ItemKind.OTHER_DOCUMENT
    )


async def _get_item(db: AsyncSession, kind: ItemKind, item_id: UUID) -> ReviewableItemMixin:
    item = await repository.get_by_id(db, ITEM_MODELS[kind], item_id)
    if not item:
        raise NotFoundError(kind.label, item_id)
    return item


def _ensure_phase(application: Application, kind: ItemKind) -> None:
    expected = PHASE_STATUS[kind]
    if application.status != expected:
        raise StateConflictError(
            f"{kind.label} items cannot change while the application is "
            f"{application.status.value}",
            current_status=application.status.value,
        )


# ============================================
# Initialization
# ============================================


async def initialize_acceptance_requirements(
    db: AsyncSession,
    application_id: UUID,
    actor: Actor,
) -> list[AcceptanceRequirement]:
    """
    Create the acceptance checklist for an application with approved coordinates.

    PROJECT_COORDINATES is created ACCEPTED with the approved polygon as its
    data. The current-requirement pointer starts at the next item.

    Raises:
        NotFoundError: If the application doesn't exist
        AuthorizationError: If the actor may not access it
        StateConflictError: If coordinates are not approved or requirements exist
        DependencyError: If the approved polygon is missing from the ledger
    """
    application = await get_owned_application(db, application_id, actor)

    if application.status not in INITIALIZABLE_STATUSES:
        raise StateConflictError(
            "Acceptance requirements can only be started once coordinates are approved",
            current_status=application.status.value,
        )

    if await repository.exists_for_application(db, AcceptanceRequirement, application.id):
        raise StateConflictError(
            "Acceptance requirements already exist for this application",
            current_status=application.status.value,
            error_code="ACCEPTANCE_REQUIREMENTS_EXIST",
        )

    if not await ledger.has_approved_coordinates(db, application.id):
        raise DependencyError(
            f"Application {application.application_no} has no approved coordinate record",
            missing="coordinate_history",
        )

    now = _now()
    items = []
    for order, entry in enumerate(acceptance_checklist(application.permit_type), start=1):
        item = AcceptanceRequirement(
            application_id=application.id,
            item_type=entry.item_type,
            name=entry.name,
            description=entry.description,
            order=order,
            status=ItemStatus.PENDING_SUBMISSION,
        )
        if entry.item_type == PROJECT_COORDINATES:
            item.status = ItemStatus.ACCEPTED
            item.submitted_data = application.project_coordinates
            item.submitted_at = application.coordinate_approved_at or now
            item.reviewed_at = application.coordinate_approved_at or now
            item.is_compliant = True
            item.admin_remarks = "Accepted with the approved project coordinates"
        items.append(item)

    await repository.create_many(db, items)

    current = next((i for i in items if i.status != ItemStatus.ACCEPTED), None)
    await application_repository.transition_status(
        db,
        application,
        ApplicationStatus.ACCEPTANCE_IN_PROGRESS,
        changed_by=actor.id,
        changed_by_role=actor_role(actor),
        remarks="Acceptance requirements started",
        acceptance_requirements_started_at=now,
        current_acceptance_requirement_id=current.id if current else None,
    )
    await db.commit()

    logger.info(
        f"Initialized {len(items)} acceptance requirements for {application.application_no}"
    )
    return items


async def _create_other_documents(db: AsyncSession, application: Application) -> None:
    if await repository.exists_for_application(db, OtherDocument, application.id):
        return
    await repository.create_many(
        db,
        [
            OtherDocument(
                application_id=application.id,
                item_type=entry.item_type,
                name=entry.name,
                description=entry.description,
                status=ItemStatus.PENDING_SUBMISSION,
            )
            for entry in OTHER_DOCUMENTS
        ],
    )


# ============================================
# Submission
# ============================================


async def submit_item(
    db: AsyncSession,
    storage: FileStorage,
    kind: ItemKind,
    item_id: UUID,
    actor: Actor,
    file_data: bytes | None = None,
    filename: str | None = None,
    content_type: str | None = None,
    data: Any = None,
) -> ReviewableItemMixin:
    """
    Submit (or resubmit) an item for review.

    Raises:
        NotFoundError: If the item doesn't exist
        AuthorizationError: If the actor doesn't own the application
        StateConflictError: If the item or application is not in a submittable state
        ValidationError: If neither a valid file nor inline data is given
    """
    item = await _get_item(db, kind, item_id)
    application = await get_owned_application(db, item.application_id, actor, allow_admin=False)
    _ensure_phase(application, kind)

    ensure_submittable(item)
    now = _now()

    file_url = None
    if file_data:
        name = filename or item.item_type.lower()
        validate_document(file_data, name, content_type, settings.max_upload_file_size)
        stored = await storage.store(
            file_data,
            FileMetadata(
                filename=name,
                content_type=(content_type or "").lower(),
                folder=f"{kind.value}s/{application.id}",
            ),
        )
        file_url = stored.url

    changes = apply_submit(
        item,
        submitted_by=actor.id,
        now=now,
        auto_accept_days=settings.admin_review_deadline_days,
        file_url=file_url,
        file_name=filename if file_url else None,
        data=data,
    )
    expected = item.status
    try:
        await repository.apply_changes(db, item, expected, changes)

        await notify_admins(
            db,
            application,
            NotificationType.REQUIREMENT_PENDING_REVIEW,
            f"{item.name} submitted",
            f"{application.application_no} submitted {item.name} for review.",
        )
        await db.commit()
    except Exception:
        await db.rollback()
        if file_url:
            await storage.delete(file_url)
        raise

    logger.info(f"{kind.label} {item.item_type} submitted for {application.application_no}")
    return item


# ============================================
# Review
# ============================================


async def _advance_phase(
    db: AsyncSession,
    kind: ItemKind,
    item: ReviewableItemMixin,
    application: Application,
    changed_by: UUID | None,
    changed_by_role: ChangedByRole,
    now: datetime,
    auto: bool,
) -> list[Notification]:
    """Re-evaluate the phase after an accept and move the application on when complete."""
    siblings = await repository.list_for_application(db, ITEM_MODELS[kind], application.id)
    notifications: list[Notification] = []

    if auto:
        notifications.append(
            await notify_applicant(
                db,
                application,
                NotificationType.REQUIREMENT_AUTO_ACCEPTED,
                f"{item.name} auto-accepted",
                f"{item.name} was accepted automatically because the review period ended.",
            )
        )

    if all_accepted(siblings):
        if kind == ItemKind.ACCEPTANCE_REQUIREMENT:
            await application_repository.transition_status(
                db,
                application,
                ApplicationStatus.PENDING_OTHER_DOCUMENTS,
                changed_by=changed_by,
                changed_by_role=changed_by_role,
                remarks="All acceptance requirements accepted",
                current_acceptance_requirement_id=None,
                other_documents_started_at=now,
            )
            await _create_other_documents(db, application)
            notifications.append(
                await notify_applicant(
                    db,
                    application,
                    NotificationType.ACCEPTANCE_REQUIREMENTS_COMPLETED,
                    "Acceptance requirements completed",
                    "All acceptance requirements were accepted. Please submit the other "
                    "documents.",
                )
            )
        else:
            await application_repository.transition_status(
                db,
                application,
                ApplicationStatus.UNDER_REVIEW,
                changed_by=changed_by,
                changed_by_role=changed_by_role,
                remarks="All other documents accepted",
            )
            notifications.append(
                await notify_applicant(
                    db,
                    application,
                    NotificationType.OTHER_DOCUMENTS_COMPLETED,
                    "Other documents completed",
                    "All other documents were accepted. Your application is now under review.",
                )
            )
        logger.info(f"{application.application_no} completed the {kind.label} phase")
        return notifications

    if kind == ItemKind.ACCEPTANCE_REQUIREMENT:
        current = next((s for s in siblings if s.status != ItemStatus.ACCEPTED), None)
        application.current_acceptance_requirement_id = current.id if current else None

    if not auto:
        notifications.append(
            await notify_applicant(
                db,
                application,
                NotificationType.REQUIREMENT_ACCEPTED,
                f"{item.name} accepted",
                f"{item.name} was accepted.",
            )
        )
    return notifications


async def review_item(
    db: AsyncSession,
    kind: ItemKind,
    item_id: UUID,
    decision: ItemDecision,
    remarks: str | None,
    actor: Actor,
) -> ReviewableItemMixin:
    """
    Accept or request revision of a submitted item.

    Raises:
        AuthorizationError: If the actor is not an admin
        NotFoundError: If the item doesn't exist
        StateConflictError: If the item is not PENDING_REVIEW; the item is left unchanged
        ValidationError: If requesting revision without remarks
    """
    if not actor.is_admin:
        raise AuthorizationError("Only admins can review documents.")

    item = await _get_item(db, kind, item_id)
    application = await get_application(db, item.application_id)
    _ensure_phase(application, kind)

    now = _now()
    if decision == ItemDecision.ACCEPTED:
        changes = apply_accept(item, reviewed_by=actor.id, now=now, remarks=remarks)
        await repository.apply_changes(db, item, ItemStatus.PENDING_REVIEW, changes)
        notifications = await _advance_phase(
            db, kind, item, application, actor.id, ChangedByRole.ADMIN, now, auto=False
        )
    else:
        changes = apply_reject(
            item,
            reviewed_by=actor.id,
            now=now,
            remarks=remarks,
            revision_days=settings.revision_deadline_days,
        )
        await repository.apply_changes(db, item, ItemStatus.PENDING_REVIEW, changes)
        notifications = [
            await notify_applicant(
                db,
                application,
                NotificationType.REQUIREMENT_REVISION_NEEDED,
                f"{item.name} needs revision",
                f"{item.name} needs revision: {remarks}. Resubmit before "
                f"{item.revision_deadline:%B %d, %Y}.",
            )
        ]

    await db.commit()
    await deliver_emails(application, notifications)

    logger.info(
        f"Admin {actor.id} reviewed {kind.label} {item.item_type} of "
        f"{application.application_no}: {decision.value}"
    )
    return item


# ============================================
# Sweeper entry points (no commit)
# ============================================


async def auto_accept_item(
    db: AsyncSession,
    item: ReviewableItemMixin,
    now: datetime,
) -> tuple[Application, list[Notification]]:
    """
    Accept an item whose auto-accept deadline passed, as the system.

    Raises:
        StateConflictError: If the item or application moved meanwhile
    """
    kind = kind_of(item)
    application = await get_application(db, item.application_id)
    _ensure_phase(application, kind)

    changes = apply_accept(item, reviewed_by=None, now=now, auto=True)
    await repository.apply_changes(db, item, ItemStatus.PENDING_REVIEW, changes)
    notifications = await _advance_phase(
        db, kind, item, application, None, ChangedByRole.SYSTEM, now, auto=True
    )
    return application, notifications


async def auto_void_item(
    db: AsyncSession,
    item: ReviewableItemMixin,
    now: datetime,
) -> tuple[Application, list[Notification]]:
    """
    Void an item whose revision deadline passed, and void its application.

    Every other open item of the application is voided with it so later
    sweeps have nothing left to act on.

    Raises:
        StateConflictError: If the item or application moved meanwhile
    """
    application = await get_application(db, item.application_id)

    changes = apply_void(item, now=now, reason=REVISION_EXPIRED_REASON)
    await repository.apply_changes(db, item, item.status, changes)
    for model in ITEM_MODELS.values():
        await repository.void_open_items(db, model, application.id, now, REVISION_EXPIRED_REASON)

    notifications: list[Notification] = []
    if application.status != ApplicationStatus.VOIDED:
        notifications.append(
            await void_application(
                db,
                application,
                f"{item.name}: {REVISION_EXPIRED_REASON.lower()}",
                now,
            )
        )
    return application, notifications


# ============================================
# Queries
# ============================================


async def list_items(
    db: AsyncSession,
    kind: ItemKind,
    application_id: UUID,
    actor: Actor,
) -> list[ReviewableItemMixin]:
    await get_owned_application(db, application_id, actor)
    return await repository.list_for_application(db, ITEM_MODELS[kind], application_id)


async def list_pending(db: AsyncSession, kind: ItemKind) -> list[ReviewableItemMixin]:
    return await repository.list_pending_review(db, ITEM_MODELS[kind])
