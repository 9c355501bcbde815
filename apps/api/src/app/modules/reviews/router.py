"""
Reviews Router (applicant)

Endpoints:
- POST /applications/{id}/acceptance-requirements/initialize - Create the checklist
- GET /applications/{id}/acceptance-requirements - List acceptance requirements
- POST /acceptance-requirements/{item_id}/submit - Submit a requirement
- GET /applications/{id}/other-documents - List other documents
- POST /other-documents/{item_id}/submit - Submit an other document
"""

import json
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Actor, get_current_actor
from app.core.database import get_db
from app.core.errors import PermitServiceError, ValidationError, http_error
from app.core.storage import FileStorage, get_storage
from app.modules.reviews import service
from app.modules.reviews.schemas import ItemKind, ItemResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def _parse_inline_data(data: str | None):
    if data is None or not data.strip():
        return None
    try:
        return json.loads(data)
    except json.JSONDecodeError as e:
        raise http_error(
            ValidationError(
                "Inline data must be valid JSON.",
                details=[{"field": "data", "message": str(e)}],
            )
        ) from e


async def _submit(
    kind: ItemKind,
    item_id: UUID,
    file: UploadFile | None,
    data: str | None,
    db: AsyncSession,
    storage: FileStorage,
    actor: Actor,
) -> ItemResponse:
    inline = _parse_inline_data(data)
    file_data = await file.read() if file is not None else None
    try:
        item = await service.submit_item(
            db,
            storage,
            kind,
            item_id,
            actor,
            file_data=file_data,
            filename=file.filename if file is not None else None,
            content_type=file.content_type if file is not None else None,
            data=inline,
        )
    except PermitServiceError as e:
        raise http_error(e) from e
    return ItemResponse.model_validate(item)


# ============================================
# Acceptance requirements
# ============================================


@router.post(
    "/applications/{application_id}/acceptance-requirements/initialize",
    response_model=list[ItemResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Initialize Acceptance Requirements",
)
async def initialize_acceptance_requirements(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> list[ItemResponse]:
    try:
        items = await service.initialize_acceptance_requirements(db, application_id, actor)
    except PermitServiceError as e:
        raise http_error(e) from e
    return [ItemResponse.model_validate(i) for i in items]


@router.get(
    "/applications/{application_id}/acceptance-requirements",
    response_model=list[ItemResponse],
    summary="List Acceptance Requirements",
)
async def list_acceptance_requirements(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> list[ItemResponse]:
    try:
        items = await service.list_items(
            db, ItemKind.ACCEPTANCE_REQUIREMENT, application_id, actor
        )
    except PermitServiceError as e:
        raise http_error(e) from e
    return [ItemResponse.model_validate(i) for i in items]


@router.post(
    "/acceptance-requirements/{item_id}/submit",
    response_model=ItemResponse,
    summary="Submit Acceptance Requirement",
)
async def submit_acceptance_requirement(
    item_id: UUID,
    file: UploadFile | None = File(None),
    data: str | None = Form(None),
    db: AsyncSession = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    actor: Actor = Depends(get_current_actor),
) -> ItemResponse:
    """Submit a file (PDF, PNG, JPEG) and/or inline JSON data for review."""
    return await _submit(ItemKind.ACCEPTANCE_REQUIREMENT, item_id, file, data, db, storage, actor)


# ============================================
# Other documents
# ============================================


@router.get(
    "/applications/{application_id}/other-documents",
    response_model=list[ItemResponse],
    summary="List Other Documents",
)
async def list_other_documents(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> list[ItemResponse]:
    try:
        items = await service.list_items(db, ItemKind.OTHER_DOCUMENT, application_id, actor)
    except PermitServiceError as e:
        raise http_error(e) from e
    return [ItemResponse.model_validate(i) for i in items]


@router.post(
    "/other-documents/{item_id}/submit",
    response_model=ItemResponse,
    summary="Submit Other Document",
)
async def submit_other_document(
    item_id: UUID,
    file: UploadFile | None = File(None),
    data: str | None = Form(None),
    db: AsyncSession = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    actor: Actor = Depends(get_current_actor),
) -> ItemResponse:
    return await _submit(ItemKind.OTHER_DOCUMENT, item_id, file, data, db, storage, actor)
