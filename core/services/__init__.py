# =============================================================================
# core/services/__init__.py - Service Layer Exports
# =============================================================================

from .map_service import MapService
from .node_service import NodeService
from .submission_service import SubmissionService
from .invitation_service import InvitationService
from .account_service import AccountService
from .auth_service import AuthService
from .digest_service import DigestService
from .migration_service import UserMigrationService
from .storage_service import StorageService
from .transfer_service import TransferService
from .contact_service import ContactService

__all__ = [
    "MapService",
    "NodeService",
    "SubmissionService",
    "InvitationService",
    "AccountService",
    "AuthService",
    "DigestService",
    "UserMigrationService",
    "StorageService",
    "TransferService",
    "ContactService",
]
