# =============================================================================
# app/routers/account.py - Account Endpoints
# =============================================================================
# The signed-in user's own account: deletion (with a preview of what goes
# with it) and per-map digest notification preferences.
# =============================================================================

import logging

from fastapi import APIRouter, Depends

from app.auth import AuthUser, get_current_user
from core.models.account import NotificationPrefUpdate
from core.services.account_service import AccountService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/delete-preview")
async def delete_preview(user: AuthUser = Depends(get_current_user)):
    """How many maps would be deleted along with the account."""
    return AccountService.delete_preview(user.user_id).to_api()


@router.post("/delete")
async def delete_account(user: AuthUser = Depends(get_current_user)):
    """
    Delete the caller's account.

    Maps where the caller is the only admin are deleted; on all other maps
    the caller is removed from the admin and collaborator lists.
    """
    logger.info(f"Account deletion requested by {user.user_id}")
    return AccountService.delete_account(user.user_id)


@router.get("/notification-prefs")
async def get_notification_prefs(user: AuthUser = Depends(get_current_user)):
    """Digest preference for every map the caller administers."""
    prefs = AccountService.get_notification_prefs(user.user_id)
    return [p.to_api() for p in prefs]


@router.put("/notification-prefs")
async def set_notification_pref(
    request: NotificationPrefUpdate,
    user: AuthUser = Depends(get_current_user),
):
    """Turn the daily digest for one map on or off."""
    return AccountService.set_notification_pref(user.user_id, request.map_id, request.enabled)
