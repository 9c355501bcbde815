"""
Applications Router

Endpoints:
- POST /applications - Create a draft application
- GET /applications - List the current user's applications
- GET /applications/{id} - Get an application
- GET /applications/{id}/history - Status history (audit trail)
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Actor, get_current_actor
from app.core.database import get_db
from app.core.errors import PermitServiceError, http_error
from app.modules.applications import service
from app.modules.applications.schemas import (
    ApplicationCreate,
    ApplicationResponse,
    StatusHistoryItem,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Draft Application",
)
async def create_application(
    data: ApplicationCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> ApplicationResponse:
    application = await service.create_application(db, data, actor)
    return ApplicationResponse.model_validate(application)


@router.get("", response_model=list[ApplicationResponse], summary="List My Applications")
async def list_applications(
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> list[ApplicationResponse]:
    applications = await service.list_applications(db, actor)
    return [ApplicationResponse.model_validate(a) for a in applications]


@router.get("/{application_id}", response_model=ApplicationResponse, summary="Get Application")
async def get_application(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> ApplicationResponse:
    try:
        application = await service.get_owned_application(db, application_id, actor)
    except PermitServiceError as e:
        raise http_error(e) from e
    return ApplicationResponse.model_validate(application)


@router.get(
    "/{application_id}/history",
    response_model=list[StatusHistoryItem],
    summary="Get Status History",
)
async def get_status_history(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> list[StatusHistoryItem]:
    try:
        history = await service.get_status_history(db, application_id, actor)
    except PermitServiceError as e:
        raise http_error(e) from e
    return [StatusHistoryItem.model_validate(entry) for entry in history]
