# =============================================================================
# tests/test_digest.py - Daily Digest Tests
# =============================================================================

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from app.config import settings
from core.models.digest import DigestMapEntry, FeatureRequestEntry
from core.services.digest_service import (
    FEATURE_REQUESTS_SUBJECT,
    NO_SUBMISSIONS_MESSAGE,
    SUBMISSIONS_SUBJECT,
    DigestService,
    build_feature_requests_body,
    build_submissions_body,
    start_of_day,
)
from tests.fakes import make_auth_user, make_connection_row, make_map_row, make_node_row

# 16:00 in Toronto, the day after DST started
NOW = datetime(2025, 3, 10, 20, 0, tzinfo=timezone.utc)
TODAY = "2025-03-10T15:00:00+00:00"
YESTERDAY = "2025-03-09T15:00:00+00:00"


class TestStartOfDay:

    def test_local_midnight_in_utc(self):
        assert start_of_day(NOW) == "2025-03-10T04:00:00+00:00"

    def test_winter_offset(self):
        assert start_of_day(datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)) == "2025-01-15T05:00:00+00:00"

    def test_late_evening_utc_is_still_previous_local_day(self):
        # 02:00 UTC on the 11th is 22:00 on the 10th in Toronto
        assert start_of_day(datetime(2025, 3, 11, 2, 0, tzinfo=timezone.utc)) == "2025-03-10T04:00:00+00:00"


class TestEmailBodies:

    def test_submissions_body_truncates_titles(self):
        entry = DigestMapEntry(
            map_id="m1",
            map_title="Toronto Scene",
            map_slug="toronto-scene",
            node_titles=[f"Node {i}" for i in range(12)],
            connection_descriptions=["a", "b"],
        )

        body = build_submissions_body([entry], "https://scenemapper.ca")

        assert "Toronto Scene (14 new):" in body
        assert "**" not in body
        assert "Open map: https://scenemapper.ca/maps/toronto-scene" in body
        assert "Node 9…" in body
        assert "Node 10" not in body
        assert "Connections: 2 new" in body

    def test_feature_request_body_links_dashboard(self):
        body = build_feature_requests_body(
            [FeatureRequestEntry(map_title="Jazz & Co", map_slug="jazz co")],
            "https://scenemapper.ca",
        )

        assert "https://scenemapper.ca/dashboard?edit=jazz%20co" in body
        assert "**" not in body


class TestDigestRun:
    """Tests for DigestService.run."""

    @pytest.fixture
    def digest_db(self, fake_db):
        first = make_map_row(slug="first", title="First Map", admin_ids=["a1", "a2"])
        second = make_map_row(slug="second", title="", admin_ids=["a2"])
        quiet = make_map_row(slug="quiet", admin_ids=["a3"])
        node = make_node_row(first["id"], title="New Gig", status="pending", created_at=TODAY)
        fake_db.tables["maps"] = [first, second, quiet]
        fake_db.tables["nodes"] = [
            node,
            make_node_row(first["id"], title="Old Gig", status="pending", created_at=YESTERDAY),
            make_node_row(quiet["id"], title="Approved", status="approved", created_at=TODAY),
        ]
        fake_db.tables["connections"] = [
            make_connection_row(second["id"], node["id"], node["id"], status="pending", created_at=TODAY),
        ]
        users = {
            "a1": make_auth_user("a1", "a1@example.com"),
            "a2": make_auth_user("a2", "a2@example.com"),
        }
        fake_db.auth.admin.get_user_by_id.side_effect = lambda uid: SimpleNamespace(user=users.get(uid))
        return fake_db

    def test_groups_today_pending_by_admin(self, digest_db):
        entries = DigestService.collect_entries(start_of_day(NOW))

        assert set(entries) == {"a1", "a2"}
        assert [e.map_slug for e in entries["a1"]] == ["first"]
        assert entries["a1"][0].node_titles == ["New Gig"]
        assert sorted(e.map_slug for e in entries["a2"]) == ["first", "second"]

    def test_untitled_map_uses_slug(self, digest_db):
        entries = DigestService.collect_entries(start_of_day(NOW))

        second = next(e for e in entries["a2"] if e.map_slug == "second")
        assert second.map_title == "second"

    def test_disabled_preference_skips_map(self, digest_db):
        first_id = next(m["id"] for m in digest_db.rows("maps") if m["slug"] == "first")
        digest_db.tables["user_map_notification_prefs"] = [
            {"user_id": "a1", "map_id": first_id, "enabled": False},
        ]

        entries = DigestService.collect_entries(start_of_day(NOW))

        assert "a1" not in entries

    def test_run_sends_one_email_per_admin(self, digest_db, sent_emails):
        result = DigestService.run(NOW)

        assert result.sent == 2
        assert result.total == 2
        assert {e["to"] for e in sent_emails} == {"a1@example.com", "a2@example.com"}
        assert all(e["subject"] == SUBMISSIONS_SUBJECT for e in sent_emails)

    def test_run_emails_platform_admins_about_feature_requests(self, digest_db, sent_emails, monkeypatch):
        monkeypatch.setattr(settings, "PLATFORM_ADMIN_EMAILS", "boss@example.com")
        digest_db.tables["maps"][2]["feature_requested_at"] = TODAY

        result = DigestService.run(NOW)

        feature_mail = [e for e in sent_emails if e["subject"] == FEATURE_REQUESTS_SUBJECT]
        assert [e["to"] for e in feature_mail] == ["boss@example.com"]
        assert "quiet" in feature_mail[0]["text"]
        assert result.sent == 3

    def test_nothing_pending(self, fake_db, sent_emails):
        result = DigestService.run(NOW)

        assert result.message == NO_SUBMISSIONS_MESSAGE
        assert sent_emails == []
