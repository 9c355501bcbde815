"""
Consents Router (applicant)

Endpoints:
- POST /applications/{id}/consents - Upload a consent document (multipart)
- GET /applications/{id}/consents - List consents with their summary
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Actor, get_current_actor
from app.core.database import get_db
from app.core.errors import PermitServiceError, http_error
from app.core.storage import FileStorage, get_storage
from app.modules.consents import service
from app.modules.consents.schemas import (
    ConsentListResponse,
    ConsentResponse,
    ConsentSummaryResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/{application_id}/consents",
    response_model=ConsentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload Overlap Consent",
)
async def upload_consent(
    application_id: UUID,
    affected_application_id: UUID = Form(...),
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    actor: Actor = Depends(get_current_actor),
) -> ConsentResponse:
    """
    Upload the signed consent of an affected area holder.

    Accepts PDF, PNG or JPEG up to 10 MB.
    """
    data = await file.read()
    try:
        consent = await service.upload_consent(
            db,
            storage,
            new_application_id=application_id,
            affected_application_id=affected_application_id,
            data=data,
            filename=file.filename or "consent",
            content_type=file.content_type,
            actor=actor,
        )
    except PermitServiceError as e:
        raise http_error(e) from e
    return ConsentResponse.model_validate(consent)


@router.get(
    "/{application_id}/consents",
    response_model=ConsentListResponse,
    summary="List Overlap Consents",
)
async def list_consents(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> ConsentListResponse:
    try:
        result = await service.list_consents(db, application_id, actor)
    except PermitServiceError as e:
        raise http_error(e) from e
    return ConsentListResponse(
        items=[ConsentResponse.model_validate(c) for c in result["items"]],
        summary=ConsentSummaryResponse.model_validate(result["summary"]),
    )
