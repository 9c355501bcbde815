"""
Reviews Admin Router

Endpoints:
- GET /admin/acceptance-requirements/pending - Requirements awaiting review
- POST /admin/acceptance-requirements/{item_id}/review - Accept or request revision
- GET /admin/other-documents/pending - Other documents awaiting review
- POST /admin/other-documents/{item_id}/review - Accept or request revision
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Actor, get_current_admin
from app.core.database import get_db
from app.core.errors import PermitServiceError, http_error
from app.modules.reviews import service
from app.modules.reviews.schemas import ItemKind, ItemResponse, ItemReviewRequest

logger = logging.getLogger(__name__)

router = APIRouter()


async def _review(
    kind: ItemKind,
    item_id: UUID,
    data: ItemReviewRequest,
    db: AsyncSession,
    admin: Actor,
) -> ItemResponse:
    try:
        item = await service.review_item(db, kind, item_id, data.decision, data.remarks, admin)
    except PermitServiceError as e:
        raise http_error(e) from e
    return ItemResponse.model_validate(item)


@router.get(
    "/acceptance-requirements/pending",
    response_model=list[ItemResponse],
    summary="List Pending Acceptance Requirements",
)
async def list_pending_acceptance_requirements(
    db: AsyncSession = Depends(get_db),
    admin: Actor = Depends(get_current_admin),
) -> list[ItemResponse]:
    items = await service.list_pending(db, ItemKind.ACCEPTANCE_REQUIREMENT)
    return [ItemResponse.model_validate(i) for i in items]


@router.post(
    "/acceptance-requirements/{item_id}/review",
    response_model=ItemResponse,
    summary="Review Acceptance Requirement",
)
async def review_acceptance_requirement(
    item_id: UUID,
    data: ItemReviewRequest,
    db: AsyncSession = Depends(get_db),
    admin: Actor = Depends(get_current_admin),
) -> ItemResponse:
    """
    Accept or request revision of a submitted requirement.

    Returns 409 if the requirement is not pending review.
    """
    return await _review(ItemKind.ACCEPTANCE_REQUIREMENT, item_id, data, db, admin)


@router.get(
    "/other-documents/pending",
    response_model=list[ItemResponse],
    summary="List Pending Other Documents",
)
async def list_pending_other_documents(
    db: AsyncSession = Depends(get_db),
    admin: Actor = Depends(get_current_admin),
) -> list[ItemResponse]:
    items = await service.list_pending(db, ItemKind.OTHER_DOCUMENT)
    return [ItemResponse.model_validate(i) for i in items]


@router.post(
    "/other-documents/{item_id}/review",
    response_model=ItemResponse,
    summary="Review Other Document",
)
async def review_other_document(
    item_id: UUID,
    data: ItemReviewRequest,
    db: AsyncSession = Depends(get_db),
    admin: Actor = Depends(get_current_admin),
) -> ItemResponse:
    return await _review(ItemKind.OTHER_DOCUMENT, item_id, data, db, admin)
