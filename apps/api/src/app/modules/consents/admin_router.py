"""
Consents Admin Router

Endpoints:
- POST /admin/consents/{id}/verify - Verify or reject an uploaded consent
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Actor, get_current_admin
from app.core.database import get_db
from app.core.errors import PermitServiceError, http_error
from app.modules.consents import service
from app.modules.consents.schemas import (
    ConsentResponse,
    ConsentSummaryResponse,
    ConsentVerifyRequest,
    ConsentVerifyResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/consents/{consent_id}/verify",
    response_model=ConsentVerifyResponse,
    summary="Verify Overlap Consent",
)
async def verify_consent(
    consent_id: UUID,
    data: ConsentVerifyRequest,
    db: AsyncSession = Depends(get_db),
    admin: Actor = Depends(get_current_admin),
) -> ConsentVerifyResponse:
    try:
        consent, summary = await service.verify_consent(
            db, consent_id, data.decision, data.remarks, admin
        )
    except PermitServiceError as e:
        raise http_error(e) from e
    return ConsentVerifyResponse(
        consent=ConsentResponse.model_validate(consent),
        summary=ConsentSummaryResponse.model_validate(summary),
    )
