# =============================================================================
# workers/tasks.py - Celery Task Definitions
# =============================================================================
# Tasks:
# - send_daily_digest: Email admins today's pending submissions
# =============================================================================

import logging
from typing import Any

from celery import shared_task

from core.services.digest_service import DigestService

logger = logging.getLogger(__name__)


@shared_task(name="workers.tasks.send_daily_digest")
def send_daily_digest() -> dict[str, Any]:
    """
    Run the daily digest.

    Returns:
        Dict with ok, sent, total and, when nothing was pending, message

    Not retried. A run that fails part-way may already have emailed some
    admins, and a later run would fall after midnight and cover the next
    day. Individual email failures are counted in the result instead.
    """
    try:
        result = DigestService.run()
    except Exception as e:
        logger.error(f"Daily digest failed: {e}")
        raise

    logger.info(f"Daily digest: sent {result.sent} of {result.total}")
    return result.model_dump(exclude_none=True)
