# =============================================================================
# tests/test_account.py - Account Service Tests
# =============================================================================

import pytest

from app.exceptions import AccountDeletionError
from core.services.account_service import AccountService
from tests.fakes import make_map_row, make_node_row


@pytest.fixture
def member_maps(fake_db):
    """u1 is sole admin of one map, co-admin of one, collaborator on one."""
    maps = {
        "solo": make_map_row(slug="solo", admin_ids=["u1"]),
        "shared": make_map_row(slug="shared", admin_ids=["u1", "u2"], collaborator_ids=["u1", "u3"]),
        "helper": make_map_row(slug="helper", admin_ids=["u2"], collaborator_ids=["u1"]),
        "other": make_map_row(slug="other", admin_ids=["u2"]),
    }
    fake_db.tables["maps"] = list(maps.values())
    fake_db.tables["nodes"] = [make_node_row(maps["solo"]["id"])]
    return maps


class TestDeletePreview:

    def test_counts_sole_admin_maps(self, member_maps):
        assert AccountService.delete_preview("u1").sole_admin_map_count == 1
        assert AccountService.delete_preview("u2").sole_admin_map_count == 2

    def test_camel_case_output(self, fake_db):
        assert AccountService.delete_preview("nobody").to_api() == {"soleAdminMapCount": 0}


class TestDeleteAccount:

    def test_cascade(self, fake_db, member_maps):
        assert AccountService.delete_account("u1") == {"ok": True}

        by_slug = {m["slug"]: m for m in fake_db.rows("maps")}
        assert set(by_slug) == {"shared", "helper", "other"}
        assert fake_db.rows("nodes") == []
        assert by_slug["shared"]["admin_ids"] == ["u2"]
        assert by_slug["shared"]["collaborator_ids"] == ["u3"]
        assert by_slug["helper"]["collaborator_ids"] == []
        fake_db.auth.admin.delete_user.assert_called_once_with("u1")

    def test_auth_failure(self, fake_db, member_maps):
        fake_db.auth.admin.delete_user.side_effect = RuntimeError("user not found")

        with pytest.raises(AccountDeletionError) as exc_info:
            AccountService.delete_account("u1")

        assert exc_info.value.details == {"error": "user not found"}


class TestNotificationPrefs:

    def test_default_enabled(self, member_maps):
        prefs = AccountService.get_notification_prefs("u1")

        assert sorted(p.map_slug for p in prefs) == ["shared", "solo"]
        assert all(p.enabled for p in prefs)

    def test_set_and_overwrite(self, fake_db, member_maps):
        map_id = member_maps["solo"]["id"]

        AccountService.set_notification_pref("u1", map_id, False)
        AccountService.set_notification_pref("u1", map_id, False)

        assert len(fake_db.rows("user_map_notification_prefs")) == 1
        solo = next(p for p in AccountService.get_notification_prefs("u1") if p.map_id == map_id)
        assert solo.enabled is False

        AccountService.set_notification_pref("u1", map_id, True)
        solo = next(p for p in AccountService.get_notification_prefs("u1") if p.map_id == map_id)
        assert solo.enabled is True
