# =============================================================================
# workers/ - Celery Background Task Workers
# =============================================================================
# This package contains the Celery configuration and task definitions for
# scheduled jobs, chiefly the daily digest email.
#
# Components:
# - celery_app.py: Celery application configuration
# - tasks.py: Task definitions (daily digest)
# - config.py: Worker settings and the beat schedule
#
# Usage:
#   # Start worker with the embedded beat scheduler
#   celery -A workers.celery_app worker --beat --loglevel=info
#
#   # Run the digest once by hand (from API code or a shell)
#   from workers.tasks import send_daily_digest
#   result = send_daily_digest.delay()
# =============================================================================

from .celery_app import celery_app
from . import tasks

__all__ = [
    "celery_app",
    "tasks",
]
