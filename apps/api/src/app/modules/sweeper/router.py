"""
Cron Router

Endpoints:
- POST /cron/deadline-sweep - Run the deadline sweep (Authorization: Bearer <CRON_SECRET>)
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends

from app.core.auth import verify_cron_secret
from app.modules.sweeper.jobs import run_deadline_sweep

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/deadline-sweep",
    summary="Run Deadline Sweep",
    dependencies=[Depends(verify_cron_secret)],
)
async def deadline_sweep() -> dict[str, Any]:
    """
    Auto-accept and auto-void everything past its deadline.

    Meant for an external scheduler; safe to call repeatedly.
    """
    logger.info("Deadline sweep triggered via cron endpoint")
    return await run_deadline_sweep()
