# =============================================================================
# tests/test_map_service.py - Map and Node Service Tests
# =============================================================================
# Password hashes, access rules, map saving (passwords, featured fields, invitations,
# background cleanup), joining, deletion and node/connection replacement.
# =============================================================================

import hashlib

import pytest

from app.exceptions import (
    AuthenticationRequiredError,
    IncorrectCollaboratorPasswordError,
    MapNotFoundError,
    MapPermissionError,
    ValidationFailedError,
)
from core.models.map import ItemStatus, MapConnection, MapNode, NodeType, SceneMap
from core.services.map_service import MapService, can_access_map
from core.services.node_service import NodeService
from core.services.storage_service import StorageService
from lib.passwords import hash_password, verify_password
from tests.fakes import make_map_row, make_node_row


def scrypt_hex(password: str, salt: str = "scene-mapper-dev-salt") -> str:
    """Collaborator password hash in the pre-bcrypt format."""
    return hashlib.scrypt(password.encode(), salt=salt.encode(), n=16384, r=8, p=1, dklen=64).hex()


# =============================================================================
# Password Hashes
# =============================================================================

class TestPasswords:

    def test_bcrypt_round_trip(self):
        stored = hash_password("open sesame")

        assert stored.startswith("$2")
        assert verify_password("open sesame", stored)
        assert not verify_password("open says me", stored)

    def test_legacy_scrypt_hash(self):
        stored = scrypt_hex("secret")

        assert verify_password("secret", stored)
        assert verify_password("secret", stored.upper())
        assert not verify_password("Secret", stored)

    def test_legacy_hash_uses_configured_salt(self, monkeypatch):
        monkeypatch.setattr("app.config.settings.PASSWORD_SALT", "prod-salt")

        assert verify_password("secret", scrypt_hex("secret", salt="prod-salt"))
        assert not verify_password("secret", scrypt_hex("secret"))

    @pytest.mark.parametrize("stored", ["", "not-a-hash", "$2b$12$short", "é" * 128])
    def test_malformed_hash_never_matches(self, stored):
        assert not verify_password("secret", stored)


# =============================================================================
# Access Rules
# =============================================================================

class TestAccess:
    """Private maps are only visible to members."""

    def test_public_map_visible_to_anyone(self):
        assert can_access_map({"public_view": True}, None)

    def test_private_map_members_only(self):
        row = {"public_view": False, "admin_ids": ["a"], "collaborator_ids": ["c"]}

        assert can_access_map(row, "a")
        assert can_access_map(row, "c")
        assert not can_access_map(row, "someone")
        assert not can_access_map(row, None)

    def test_private_map_is_404_for_outsiders(self, fake_db):
        fake_db.tables["maps"] = [make_map_row(public_view=False)]

        with pytest.raises(MapNotFoundError):
            MapService.get_map("toronto-scene", "stranger")

        assert MapService.get_map("toronto-scene", "admin-1").slug == "toronto-scene"

    def test_page_includes_nodes_and_connections(self, fake_db, sample_map):
        page, is_public = MapService.get_page("toronto-scene")

        data = page.to_api()
        assert is_public is True
        assert [n["title"] for n in data["nodes"]] == ["The Tranzac", "Friday Jazz"]
        assert len(data["connections"]) == 1


# =============================================================================
# Saving Maps
# =============================================================================

class TestSaveMaps:
    """Tests for MapService.save_maps."""

    def test_requires_user(self, fake_db):
        with pytest.raises(AuthenticationRequiredError):
            MapService.save_maps([SceneMap(slug="x")], None)

    def test_requires_maps(self, fake_db):
        with pytest.raises(ValidationFailedError):
            MapService.save_maps([], "u1")

    def test_new_map_gets_creator_as_admin(self, fake_db, email_disabled):
        result = MapService.save_maps([SceneMap(slug="new-map", title="New")], "u1")

        assert result == {"ok": True, "count": 1, "invitationsSent": 0}
        stored = fake_db.rows("maps")[0]
        assert stored["admin_ids"] == ["u1"]
        assert stored["id"]

    def test_non_admin_cannot_replace(self, fake_db):
        row = make_map_row(admin_ids=["owner"])
        fake_db.tables["maps"] = [row]

        with pytest.raises(MapPermissionError):
            MapService.save_maps([SceneMap(id=row["id"], slug=row["slug"])], "intruder")

        assert fake_db.rows("maps")[0]["admin_ids"] == ["owner"]

    def test_password_hashed_and_kept(self, fake_db, email_disabled):
        row = make_map_row(admin_ids=["u1"])
        fake_db.tables["maps"] = [row]

        MapService.save_maps(
            [SceneMap(id=row["id"], slug=row["slug"], admin_ids=["u1"], collaborator_password="open sesame")],
            "u1",
        )
        stored_hash = fake_db.rows("maps")[0]["collaborator_password_hash"]
        assert stored_hash != "open sesame"
        assert verify_password("open sesame", stored_hash)

        # No password in the body keeps the stored hash
        MapService.save_maps([SceneMap(id=row["id"], slug=row["slug"], admin_ids=["u1"])], "u1")
        assert fake_db.rows("maps")[0]["collaborator_password_hash"] == stored_hash

    def test_featured_fields_need_platform_admin(self, fake_db, email_disabled):
        row = make_map_row(admin_ids=["u1"], featured_order=3, featured_active=True)
        fake_db.tables["maps"] = [row]
        body = SceneMap(id=row["id"], slug=row["slug"], admin_ids=["u1"], featured_order=1, featured_active=False)

        MapService.save_maps([body], "u1")
        assert fake_db.rows("maps")[0]["featured_order"] == 3

        MapService.save_maps([body], "u1", is_platform_admin=True)
        assert fake_db.rows("maps")[0]["featured_order"] == 1
        assert fake_db.rows("maps")[0]["featured_active"] is False

    def test_invites_only_new_emails(self, fake_db, sent_emails):
        row = make_map_row(admin_ids=["u1"], invited_admin_emails=["old@example.com"])
        fake_db.tables["maps"] = [row]

        result = MapService.save_maps([SceneMap(
            id=row["id"],
            slug=row["slug"],
            title="Toronto Scene",
            admin_ids=["u1"],
            invited_admin_emails=["OLD@example.com", "new@example.com"],
            invited_collaborator_emails=["friend@example.com"],
        )], "u1")

        assert result["invitationsSent"] == 2
        assert sorted(e["to"] for e in sent_emails) == ["friend@example.com", "new@example.com"]

    def test_changed_background_removes_old_object(self, fake_db, email_disabled):
        old_url = f"{StorageService.public_url_prefix()}u1/map-1-abc.png"
        row = make_map_row(admin_ids=["u1"], background_image_url=old_url)
        fake_db.tables["maps"] = [row]

        MapService.save_maps([SceneMap(id=row["id"], slug=row["slug"], admin_ids=["u1"])], "u1")

        fake_db.storage.from_.return_value.remove.assert_called_once_with(["u1/map-1-abc.png"])


# =============================================================================
# Membership and Deletion
# =============================================================================

class TestJoinMap:
    """Tests for joining with the collaborator password."""

    @pytest.fixture
    def protected_map(self, fake_db):
        row = make_map_row(collaborator_password_hash=hash_password("letmein"))
        fake_db.tables["maps"] = [row]
        return row

    def test_join_adds_collaborator_once(self, fake_db, protected_map):
        assert MapService.join_map("toronto-scene", "u2", "letmein") == {"ok": True}
        assert MapService.join_map("toronto-scene", "u2", "letmein")["message"] == "Already a collaborator"
        assert fake_db.rows("maps")[0]["collaborator_ids"] == ["u2"]

    def test_wrong_password(self, fake_db, protected_map):
        with pytest.raises(IncorrectCollaboratorPasswordError):
            MapService.join_map("toronto-scene", "u2", "nope")

    def test_requires_login(self, fake_db, protected_map):
        with pytest.raises(AuthenticationRequiredError):
            MapService.join_map("toronto-scene", None, "letmein")

    def test_join_with_legacy_scrypt_hash(self, fake_db):
        fake_db.tables["maps"] = [make_map_row(collaborator_password_hash=scrypt_hex("letmein"))]

        assert MapService.join_map("toronto-scene", "u2", "letmein") == {"ok": True}
        with pytest.raises(IncorrectCollaboratorPasswordError):
            MapService.join_map("toronto-scene", "u3", "letmeout")

    def test_map_without_password(self, fake_db):
        fake_db.tables["maps"] = [make_map_row()]

        with pytest.raises(ValidationFailedError) as exc_info:
            MapService.join_map("toronto-scene", "u2", "letmein")

        assert exc_info.value.message == "This map does not require a collaborator password."


class TestDeleteMap:

    def test_admin_deletes_with_content(self, fake_db, sample_map):
        MapService.delete_map("toronto-scene", "admin-1")

        assert fake_db.rows("maps") == []
        assert fake_db.rows("nodes") == []
        assert fake_db.rows("connections") == []

    def test_collaborator_cannot_delete(self, fake_db, sample_map):
        with pytest.raises(MapPermissionError):
            MapService.delete_map("toronto-scene", "collab-1")

    def test_unknown_map(self, fake_db):
        with pytest.raises(MapNotFoundError):
            MapService.delete_map("missing", "admin-1")


class TestRecordView:

    def test_upserts_view(self, fake_db, sample_map):
        MapService.record_view("toronto-scene", "u9")
        MapService.record_view("toronto-scene", "u9")

        assert len(fake_db.rows("user_map_views")) == 1

    def test_failures_are_ignored(self, fake_db, sample_map):
        fake_db.failing_tables.add("user_map_views")
        MapService.record_view("toronto-scene", "u9")


class TestFeatured:

    def test_featured_ordering(self, fake_db):
        fake_db.tables["maps"] = [
            make_map_row(slug="b", featured_order=2),
            make_map_row(slug="a", featured_order=1),
            make_map_row(slug="c"),
        ]

        assert [m.slug for m in MapService.list_featured()] == ["a", "b"]

    def test_update_feature_clears_request(self, fake_db):
        fake_db.tables["maps"] = [make_map_row(feature_requested_at="2025-02-01T10:00:00+00:00")]

        MapService.update_feature("toronto-scene", {"featured_order": 4}, clear_feature_request=True)

        stored = fake_db.rows("maps")[0]
        assert stored["featured_order"] == 4
        assert stored["feature_requested_at"] is None


# =============================================================================
# Nodes and Connections
# =============================================================================

class TestReplaceNodes:
    """Tests for NodeService.replace_nodes / replace_connections."""

    def test_missing_nodes_deleted_with_their_connections(self, fake_db, sample_map):
        kept = MapNode.from_row(fake_db.rows("nodes")[0])

        result = NodeService.replace_nodes("toronto-scene", "collab-1", [kept])

        assert result == {"ok": True, "count": 1}
        assert [n["id"] for n in fake_db.rows("nodes")] == [kept.id]
        assert fake_db.rows("connections") == []

    def test_approving_pending_node(self, fake_db, sample_map):
        pending = make_node_row(sample_map["id"], status="pending", collaborator_id="Public")
        fake_db.tables["nodes"].append(pending)
        nodes = [MapNode.from_row(n) for n in fake_db.rows("nodes")]
        nodes[-1] = nodes[-1].model_copy(update={"status": ItemStatus.APPROVED})

        NodeService.replace_nodes("toronto-scene", "admin-1", nodes)

        stored = next(n for n in fake_db.rows("nodes") if n["id"] == pending["id"])
        assert stored["status"] == "approved"

    def test_rejects_nodes_of_other_maps(self, fake_db, sample_map):
        other = make_map_row(slug="other")
        foreign = make_node_row(other["id"])
        fake_db.tables["maps"].append(other)
        fake_db.tables["nodes"].append(foreign)

        with pytest.raises(ValidationFailedError):
            NodeService.replace_nodes("toronto-scene", "admin-1", [MapNode.from_row(foreign)])

    def test_rejects_malformed_ids(self, fake_db, sample_map):
        node = MapNode(id="not-a-uuid", type=NodeType.EVENT, title="X")

        with pytest.raises(ValidationFailedError) as exc_info:
            NodeService.replace_nodes("toronto-scene", "admin-1", [node])

        assert exc_info.value.details == {"ids": ["not-a-uuid"]}
        assert len(fake_db.rows("nodes")) == 2

    def test_outsider_cannot_edit(self, fake_db, sample_map):
        with pytest.raises(MapPermissionError):
            NodeService.replace_nodes("toronto-scene", "stranger", [])

    def test_replace_connections(self, fake_db, sample_map):
        first, second = fake_db.rows("nodes")
        connections = [
            MapConnection(from_node_id=second["id"], to_node_id=first["id"], curve_offset_x=30, curve_offset_y=70),
        ]

        result = NodeService.replace_connections("toronto-scene", "admin-1", connections)

        assert result["count"] == 1
        stored = fake_db.rows("connections")
        assert len(stored) == 1
        assert stored[0]["curve_offset_x"] == 30

    def test_connections_of_unknown_map_empty(self, fake_db):
        assert NodeService.list_connections("missing") == []

    def test_nodes_of_unknown_map_404(self, fake_db):
        with pytest.raises(MapNotFoundError):
            NodeService.list_nodes("missing")

    def test_node_types(self, fake_db, sample_map):
        types = {n.type for n in NodeService.list_nodes("toronto-scene")}
        assert types == {NodeType.SPACE, NodeType.EVENT}
