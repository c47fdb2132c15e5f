# =============================================================================
# core/services/digest_service.py - Daily Digest
# =============================================================================
# Once a day (Celery beat, or the cron endpoint) map admins get one email
# listing today's pending public submissions across all their maps, and
# platform admins get the list of new feature requests.
#
# "Today" is the calendar day in DIGEST_TIMEZONE (America/New_York by
# default), so the digest window follows daylight saving time.
# =============================================================================

import logging
from collections import defaultdict
from datetime import datetime, timezone
from urllib.parse import quote
from zoneinfo import ZoneInfo

from app.config import settings
from core.models.digest import DigestMapEntry, DigestResult, FeatureRequestEntry
from lib.email_client import EmailClient
from lib.supabase_client import SupabaseClient
from lib.utils import strip_markdown_bold

logger = logging.getLogger(__name__)

SUBMISSIONS_SUBJECT = "Scene Mapper: New submissions for review"
FEATURE_REQUESTS_SUBJECT = "Scene Mapper: New feature requests"
MAX_NODE_TITLES = 10
NO_SUBMISSIONS_MESSAGE = "No pending submissions today"


def start_of_day(now: datetime | None = None) -> str:
    """
    ISO timestamp (UTC) of local midnight today in the digest timezone.

    Example:
        start_of_day(datetime(2025, 7, 1, 12, tzinfo=timezone.utc))
        # "2025-07-01T04:00:00+00:00"
    """
    tz = ZoneInfo(settings.DIGEST_TIMEZONE)
    local = (now or datetime.now(timezone.utc)).astimezone(tz)
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight.astimezone(timezone.utc).isoformat()


# =============================================================================
# Email Bodies
# =============================================================================

def build_submissions_body(entries: list[DigestMapEntry], origin: str) -> str:
    """Plain-text digest for one admin (markdown bold already stripped)."""
    lines = [
        "Hi,",
        "",
        "Here are the new submissions from public users that need your review:",
        "",
    ]
    for entry in entries:
        lines.append(f"**{entry.map_title}** ({entry.total} new):")
        lines.append(f"Open map: {origin}/maps/{entry.map_slug}")
        if entry.node_titles:
            more = "…" if len(entry.node_titles) > MAX_NODE_TITLES else ""
            lines.append("  Nodes: " + ", ".join(entry.node_titles[:MAX_NODE_TITLES]) + more)
        if entry.connection_descriptions:
            lines.append(f"  Connections: {entry.connection_count} new")
        lines.append("")
    lines.append("— Scene Mapper")
    return strip_markdown_bold("\n".join(lines))


def build_feature_requests_body(entries: list[FeatureRequestEntry], origin: str) -> str:
    lines = [
        "Hi,",
        "",
        "The following maps have requested to be featured on the home page:",
        "",
    ]
    for entry in entries:
        lines.append(f"• **{entry.map_title}** — {origin}/dashboard?edit={quote(entry.map_slug, safe='')}")
    lines += ["", "Open the Dashboard to approve or deny.", "", "— Scene Mapper"]
    return strip_markdown_bold("\n".join(lines))


class DigestService:
    """Aggregate pending submissions and send the daily emails."""

    @staticmethod
    def collect_entries(since: str) -> dict[str, list[DigestMapEntry]]:
        """
        Group today's pending submissions by recipient admin.

        Admins who turned the digest off for a map don't get that map;
        a missing preference counts as on.

        Returns:
            {admin user id: [entries]} in map order
        """
        client = SupabaseClient.get_client()

        pending_nodes = (
            client.table("nodes")
            .select("id, map_id, title, created_at")
            .eq("status", "pending")
            .gte("created_at", since)
            .execute()
        ).data or []
        pending_connections = (
            client.table("connections")
            .select("id, map_id, description, created_at")
            .eq("status", "pending")
            .gte("created_at", since)
            .execute()
        ).data or []

        titles_by_map: dict[str, list[str]] = defaultdict(list)
        for node in pending_nodes:
            titles_by_map[node["map_id"]].append(node.get("title") or "Untitled")
        descriptions_by_map: dict[str, list[str]] = defaultdict(list)
        for connection in pending_connections:
            descriptions_by_map[connection["map_id"]].append(connection.get("description") or "")

        map_ids = list(dict.fromkeys([*titles_by_map, *descriptions_by_map]))
        if not map_ids:
            return {}

        maps = SupabaseClient.fetch_maps(columns="id, title, slug, admin_ids", map_ids=map_ids)
        prefs = (
            client.table("user_map_notification_prefs")
            .select("user_id, map_id, enabled")
            .in_("map_id", map_ids)
            .execute()
        ).data or []
        enabled = {(p["user_id"], p["map_id"]): p["enabled"] for p in prefs}

        by_user: dict[str, list[DigestMapEntry]] = defaultdict(list)
        for row in maps:
            entry = DigestMapEntry(
                map_id=row["id"],
                map_title=row.get("title") or row["slug"],
                map_slug=row["slug"],
                node_titles=titles_by_map.get(row["id"], []),
                connection_descriptions=descriptions_by_map.get(row["id"], []),
            )
            if entry.total == 0:
                continue
            for user_id in row.get("admin_ids") or []:
                if enabled.get((user_id, row["id"]), True):
                    by_user[user_id].append(entry)

        return dict(by_user)

    @staticmethod
    def collect_feature_requests(since: str) -> list[FeatureRequestEntry]:
        """Maps that asked to be featured since `since` and are not yet placed."""
        client = SupabaseClient.get_client()
        rows = (
            client.table("maps")
            .select("id, title, slug, feature_requested_at, featured_order")
            .not_.is_("feature_requested_at", "null")
            .is_("featured_order", "null")
            .gte("feature_requested_at", since)
            .execute()
        ).data or []
        return [
            FeatureRequestEntry(map_title=row.get("title") or row["slug"], map_slug=row["slug"])
            for row in rows
        ]

    @staticmethod
    def run(now: datetime | None = None) -> DigestResult:
        """
        Send today's digests.

        Args:
            now: Override the current time (tests)

        Returns:
            DigestResult with the number of emails sent and of admins with
            something to review
        """
        since = start_of_day(now)
        origin = settings.app_origin

        by_user = DigestService.collect_entries(since)
        if not by_user:
            logger.info("Daily digest: no pending submissions today")
            return DigestResult(message=NO_SUBMISSIONS_MESSAGE)

        sent = 0
        for user_id, entries in by_user.items():
            email = SupabaseClient.fetch_user_email(user_id)
            if not email:
                continue
            result = EmailClient.send(
                to=email,
                subject=SUBMISSIONS_SUBJECT,
                text=build_submissions_body(entries, origin),
            )
            if result.sent:
                sent += 1
            else:
                logger.error(f"Daily digest send failed for {email}: {result.error}")

        feature_requests = DigestService.collect_feature_requests(since)
        if feature_requests:
            body = build_feature_requests_body(feature_requests, origin)
            for admin_email in settings.platform_admin_emails_list:
                result = EmailClient.send(to=admin_email, subject=FEATURE_REQUESTS_SUBJECT, text=body)
                if result.sent:
                    sent += 1
                else:
                    logger.error(f"Feature-request digest failed for {admin_email}: {result.error}")

        logger.info(f"Daily digest: sent {sent} email(s) for {len(by_user)} admin(s)")
        return DigestResult(sent=sent, total=len(by_user))
