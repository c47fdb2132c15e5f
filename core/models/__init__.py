# =============================================================================
# core/models/ - Pydantic Data Models
# =============================================================================
# This package contains Pydantic schemas for data validation:
# - map.py: SceneMap, MapNode, MapConnection and their row conversion
# - account.py: Notification prefs, delete preview, auth payloads
# - digest.py: Daily digest entries
# - transfer.py: Spreadsheet import results
#
# These models define the "contract" between API and clients.
# =============================================================================

# -----------------------------------------------------------------------------
# Map Models - Maps, nodes and connections
# -----------------------------------------------------------------------------
from .map import (
    ALL_NODE_TYPES,
    DEFAULT_THEME,
    PUBLIC_COLLABORATOR_ID,
    CamelModel,
    ItemStatus,
    MapConnection,
    MapNode,
    MapPage,
    MapTheme,
    NodeType,
    SceneMap,
)

# -----------------------------------------------------------------------------
# Account Models - The signed-in user's own data
# -----------------------------------------------------------------------------
from .account import (
    DeletePreview,
    ForgotPasswordRequest,
    LoginRequest,
    NotificationPref,
    NotificationPrefUpdate,
    SessionUser,
    SignupRequest,
)

# -----------------------------------------------------------------------------
# Digest Models - Daily notification emails
# -----------------------------------------------------------------------------
from .digest import (
    DigestMapEntry,
    DigestResult,
    FeatureRequestEntry,
)

# -----------------------------------------------------------------------------
# Transfer Models - Spreadsheet import
# -----------------------------------------------------------------------------
from .transfer import ImportResult

# -----------------------------------------------------------------------------
# __all__ - Explicit public API
# -----------------------------------------------------------------------------
__all__ = [
    # Map
    "ALL_NODE_TYPES",
    "DEFAULT_THEME",
    "PUBLIC_COLLABORATOR_ID",
    "CamelModel",
    "ItemStatus",
    "MapConnection",
    "MapNode",
    "MapPage",
    "MapTheme",
    "NodeType",
    "SceneMap",
    # Account
    "DeletePreview",
    "ForgotPasswordRequest",
    "LoginRequest",
    "NotificationPref",
    "NotificationPrefUpdate",
    "SessionUser",
    "SignupRequest",
    # Digest
    "DigestMapEntry",
    "DigestResult",
    "FeatureRequestEntry",
    # Transfer
    "ImportResult",
]
