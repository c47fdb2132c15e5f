# =============================================================================
# app/routers/ - API Route Definitions
# =============================================================================
# This package contains FastAPI routers organized by feature:
# - health.py: Health check endpoints
# - maps.py: Maps, page payload, nodes/connections, export/import
# - submissions.py: Anonymous public submissions
# - featured.py: Featured maps showcase
# - account.py: Account deletion and notification preferences
# - admin.py: Platform admin queue and legacy user migration
# - cron.py: Daily digest trigger
# - contact.py: Contact form
# - qr.py: QR code proxy
#
# Each router is mounted in main.py with a URL prefix.
# =============================================================================

from . import health
from . import maps
from . import submissions
from . import featured
from . import account
from . import admin
from . import cron
from . import contact
from . import qr

__all__ = [
    "health",
    "maps",
    "submissions",
    "featured",
    "account",
    "admin",
    "cron",
    "contact",
    "qr",
]
