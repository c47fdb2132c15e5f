# =============================================================================
# core/services/invitation_service.py - Map Invitations
# =============================================================================
# Handles invitation emails for map admins and collaborators:
# - Default templates with {Map title}, {origin} and {slug} placeholders
# - Diffing invited email lists so only new invitees get an email
# - Resolving pending invitations into admin_ids / collaborator_ids when
#   the invited person signs up or logs in
# =============================================================================

import logging
import re
from typing import Any, Literal

from app.config import settings
from core.models.map import SceneMap
from lib.email_client import EmailClient
from lib.supabase_client import SupabaseClient
from lib.utils import normalize_email, strip_markdown_bold

logger = logging.getLogger(__name__)

InvitationRole = Literal["admin", "collaborator"]


# =============================================================================
# Default Templates
# =============================================================================

DEFAULT_ADMIN_SUBJECT = "You're invited as an admin of **{Map title}**"
DEFAULT_ADMIN_BODY = """Hi,

You've been invited to help manage the map "{Map title}" on Scene Mapper.

As an admin you can:
• Add new people, spaces, events, and communities
• Approve or deny submissions
• Move, edit and delete elements
• Change map settings

Open the map: {origin}/maps/{slug}

If you don't have an account yet, sign up at {origin}/dashboard — then use the link above to open the map.

— Scene Mapper"""

DEFAULT_COLLABORATOR_SUBJECT = "You're invited to collaborate on **{Map title}**"
DEFAULT_COLLABORATOR_BODY = """Hi,

You've been invited to add and edit entries on the map "{Map title}" on Scene Mapper.

As a collaborator you can:
• Add new people, spaces, events, and communities
• Move your nodes on the map
• Edit your own entries

Open the map: {origin}/maps/{slug}

If you don't have an account yet, sign up at {origin}/dashboard — then open the map and, if needed, use "Join as collaborator" with the password shared by the map owner.

— Scene Mapper"""

_MAP_TITLE_RE = re.compile(r"\{Map title\}")
_ORIGIN_RE = re.compile(r"\{\s*origin\s*\}")
_SLUG_RE = re.compile(r"\{\s*slug\s*\}")


def substitute(template: str, map_title: str, origin: str, slug: str) -> str:
    """
    Fill the placeholders of an invitation template.

    Example:
        substitute("Open {origin}/maps/{ slug }", "T", "https://x.y", "t")
        # "Open https://x.y/maps/t"
    """
    result = _MAP_TITLE_RE.sub(lambda _: map_title, template)
    result = _ORIGIN_RE.sub(lambda _: origin, result)
    return _SLUG_RE.sub(lambda _: slug, result)


def diff_new_invites(new_emails: list[str] | None, old_emails: list[str] | None) -> list[str]:
    """
    Emails present in the new list but not in the old one.

    Comparison is case-insensitive and blank entries are ignored. The result
    keeps the first spelling of each address and has no duplicates.
    """
    previous = {normalize_email(e) for e in (old_emails or []) if e and e.strip()}
    seen: set[str] = set()
    result: list[str] = []
    for email in new_emails or []:
        if not email or not email.strip():
            continue
        key = normalize_email(email)
        if key in previous or key in seen:
            continue
        seen.add(key)
        result.append(email.strip())
    return result


class InvitationService:
    """Compose, send and resolve map invitations."""

    @staticmethod
    def get_subject(scene_map: SceneMap, role: InvitationRole) -> str:
        """Subject line with placeholders filled. Markdown bold is kept here."""
        if role == "admin":
            raw = scene_map.invitation_email_subject_admin or DEFAULT_ADMIN_SUBJECT
        else:
            raw = scene_map.invitation_email_subject_collaborator or DEFAULT_COLLABORATOR_SUBJECT
        return substitute(raw, scene_map.title, settings.app_origin, scene_map.slug)

    @staticmethod
    def get_body(scene_map: SceneMap, role: InvitationRole) -> str:
        if role == "admin":
            raw = scene_map.invitation_email_body_admin or DEFAULT_ADMIN_BODY
        else:
            raw = scene_map.invitation_email_body_collaborator or DEFAULT_COLLABORATOR_BODY
        return substitute(raw, scene_map.title, settings.app_origin, scene_map.slug)

    @staticmethod
    def send_invitation(scene_map: SceneMap, to: str, role: InvitationRole) -> bool:
        """
        Send one invitation email.

        Returns:
            True if the provider accepted the email
        """
        result = EmailClient.send(
            to=to,
            subject=strip_markdown_bold(InvitationService.get_subject(scene_map, role)),
            text=InvitationService.get_body(scene_map, role),
            sender_name=scene_map.invitation_sender_name,
        )
        if not result.sent:
            logger.error(f"Invitation ({role}) to {to} for map {scene_map.slug} failed: {result.error}")
        return result.sent

    @staticmethod
    def send_new_invitations(
        scene_map: SceneMap,
        previous_row: dict[str, Any] | None,
    ) -> int:
        """
        Email everyone newly added to the map's invited lists.

        Args:
            scene_map: The map as just saved
            previous_row: The stored row before the save (None for new maps)

        Returns:
            Number of invitations the provider accepted
        """
        previous_row = previous_row or {}
        pending: list[tuple[str, InvitationRole]] = [
            (email, "admin")
            for email in diff_new_invites(
                scene_map.invited_admin_emails, previous_row.get("invited_admin_emails")
            )
        ] + [
            (email, "collaborator")
            for email in diff_new_invites(
                scene_map.invited_collaborator_emails, previous_row.get("invited_collaborator_emails")
            )
        ]

        if not pending:
            return 0
        if not settings.email_enabled:
            logger.warning(
                f"Skipping {len(pending)} invitation(s) for map {scene_map.slug}: RESEND_API_KEY not configured"
            )
            return 0

        sent = 0
        for email, role in pending:
            if InvitationService.send_invitation(scene_map, email, role):
                sent += 1

        logger.info(f"Sent {sent}/{len(pending)} invitation(s) for map {scene_map.slug}")
        return sent

    @staticmethod
    def resolve_invited_emails(user_id: str, email: str | None) -> int:
        """
        Turn pending invitations for this email into map roles.

        Called at signup and login so invitations work whether or not the
        person already had an account when invited.

        Returns:
            Number of maps updated
        """
        if not email:
            return 0
        email_lower = normalize_email(email)

        rows = SupabaseClient.fetch_maps(
            columns="id, admin_ids, collaborator_ids, invited_admin_emails, invited_collaborator_emails"
        )

        updated = 0
        for row in rows:
            invited_admins = [normalize_email(e) for e in row.get("invited_admin_emails") or []]
            invited_collabs = [normalize_email(e) for e in row.get("invited_collaborator_emails") or []]
            admin_ids = list(row.get("admin_ids") or [])
            collaborator_ids = list(row.get("collaborator_ids") or [])
            updates: dict[str, list[str]] = {}

            if email_lower in invited_admins and user_id not in admin_ids:
                updates["admin_ids"] = admin_ids + [user_id]
            if email_lower in invited_collabs and user_id not in collaborator_ids:
                updates["collaborator_ids"] = collaborator_ids + [user_id]

            if updates:
                SupabaseClient.update_map(row["id"], updates)
                updated += 1

        if updated:
            logger.info(f"Resolved invitations for user {user_id} on {updated} map(s)")
        return updated
