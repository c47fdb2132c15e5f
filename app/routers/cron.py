# =============================================================================
# app/routers/cron.py - Scheduled Job Endpoints
# =============================================================================
# HTTP trigger for the daily digest, for hosts that schedule jobs with HTTP
# calls. The Celery beat schedule runs the same job in workers/.
# =============================================================================

import logging
from typing import Optional

from fastapi import APIRouter, Header

from app.config import settings
from app.routers.admin import require_bearer_secret
from core.services.digest_service import DigestService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/daily-digest")
async def daily_digest(authorization: Optional[str] = Header(default=None)):
    """
    Email admins today's pending submissions, and platform admins today's
    feature requests.

    In production the request must carry `Authorization: Bearer <CRON_SECRET>`.
    """
    if settings.is_production:
        require_bearer_secret(authorization, settings.CRON_SECRET)

    result = DigestService.run()
    if result.message:
        return {"ok": result.ok, "message": result.message}
    return {"ok": result.ok, "sent": result.sent, "total": result.total}
