# =============================================================================
# tests/fakes.py - In-Memory Supabase Double
# =============================================================================
# Mimics the subset of the supabase-py query builder the services use:
#
#   client.table("maps").select("*").eq("slug", "x").maybe_single().execute()
#
# Rows live in plain dicts. Auth and storage are MagicMocks so tests can
# configure return values and assert calls.
#
# Usage:
#   fake = FakeSupabase({"maps": [make_map_row(...)]})
#   with patch.object(SupabaseClient, "get_client", return_value=fake):
#       ...
# =============================================================================

import copy
from datetime import datetime, timedelta, timezone
from itertools import count
from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock
from uuid import uuid4

# Unique keys used by upsert(on_conflict=...) when none is given
DEFAULT_CONFLICT_KEYS = {
    "user_map_notification_prefs": "user_id,map_id",
    "user_map_views": "user_id,map_id",
}

_clock = count()
_EPOCH = datetime(2025, 1, 1, tzinfo=timezone.utc)


def next_timestamp() -> str:
    """Strictly increasing created_at values, so ordering is deterministic."""
    return (_EPOCH + timedelta(seconds=next(_clock))).isoformat()


class FakeResponse:
    def __init__(self, data: Any):
        self.data = data


class FakeQuery:
    """One chained query against a FakeSupabase table."""

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self.action = "select"
        self.payload: Any = None
        self.conflict_keys: list[str] = ["id"]
        self.filters: list[tuple[bool, Any]] = []
        self.order_by: list[tuple[str, bool]] = []
        self.limit_count: int | None = None
        self.single = False
        self._negate = False

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    def select(self, columns: str = "*", **kwargs) -> "FakeQuery":
        self.action = "select"
        return self

    def insert(self, rows: Any, **kwargs) -> "FakeQuery":
        self.action = "insert"
        self.payload = rows
        return self

    def upsert(self, rows: Any, on_conflict: str = "", **kwargs) -> "FakeQuery":
        self.action = "upsert"
        self.payload = rows
        keys = on_conflict or DEFAULT_CONFLICT_KEYS.get(self.table_name, "id")
        self.conflict_keys = [k.strip() for k in keys.split(",")]
        return self

    def update(self, data: dict[str, Any], **kwargs) -> "FakeQuery":
        self.action = "update"
        self.payload = data
        return self

    def delete(self, **kwargs) -> "FakeQuery":
        self.action = "delete"
        return self

    # -------------------------------------------------------------------------
    # Filters
    # -------------------------------------------------------------------------

    @property
    def not_(self) -> "FakeQuery":
        self._negate = True
        return self

    def _filter(self, predicate) -> "FakeQuery":
        self.filters.append((self._negate, predicate))
        self._negate = False
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        return self._filter(lambda row: row.get(column) == value)

    def neq(self, column: str, value: Any) -> "FakeQuery":
        return self._filter(lambda row: row.get(column) != value)

    def in_(self, column: str, values: list[Any]) -> "FakeQuery":
        values = list(values)
        return self._filter(lambda row: row.get(column) in values)

    def contains(self, column: str, values: list[Any]) -> "FakeQuery":
        return self._filter(lambda row: all(v in (row.get(column) or []) for v in values))

    def gte(self, column: str, value: Any) -> "FakeQuery":
        return self._filter(lambda row: row.get(column) is not None and row[column] >= value)

    def is_(self, column: str, value: str) -> "FakeQuery":
        if value != "null":
            raise ValueError(f"FakeQuery.is_ only supports 'null', got {value!r}")
        return self._filter(lambda row: row.get(column) is None)

    def order(self, column: str, desc: bool = False, **kwargs) -> "FakeQuery":
        self.order_by.append((column, desc))
        return self

    def limit(self, size: int) -> "FakeQuery":
        self.limit_count = size
        return self

    def maybe_single(self) -> "FakeQuery":
        self.single = True
        return self

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def _matches(self, row: dict[str, Any]) -> bool:
        return all(predicate(row) != negate for negate, predicate in self.filters)

    def execute(self) -> FakeResponse:
        if self.table_name in self.db.failing_tables:
            raise RuntimeError(f"{self.table_name} is unavailable")

        self.db.calls.append((self.table_name, self.action))
        rows = self.db.tables.setdefault(self.table_name, [])

        if self.action == "select":
            result = [copy.deepcopy(r) for r in rows if self._matches(r)]
            for column, desc in reversed(self.order_by):
                present = [r for r in result if r.get(column) is not None]
                missing = [r for r in result if r.get(column) is None]
                present.sort(key=lambda r: r[column], reverse=desc)
                # Postgres puts NULLs last ascending and first descending
                result = missing + present if desc else present + missing
            if self.limit_count is not None:
                result = result[: self.limit_count]
            if self.single:
                return FakeResponse(result[0] if result else None)
            return FakeResponse(result)

        if self.action in ("insert", "upsert"):
            payload = self.payload if isinstance(self.payload, list) else [self.payload]
            written = []
            for new in payload:
                new = copy.deepcopy(new)
                existing = None
                if self.action == "upsert":
                    existing = next(
                        (r for r in rows if all(r.get(k) == new.get(k) for k in self.conflict_keys)),
                        None,
                    )
                if existing is not None:
                    existing.update(new)
                    written.append(copy.deepcopy(existing))
                    continue
                new.setdefault("id", str(uuid4()))
                new.setdefault("created_at", next_timestamp())
                rows.append(new)
                written.append(copy.deepcopy(new))
            return FakeResponse(written)

        if self.action == "update":
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(copy.deepcopy(self.payload))
                    updated.append(copy.deepcopy(row))
            return FakeResponse(updated)

        if self.action == "delete":
            removed = [r for r in rows if self._matches(r)]
            self.db.tables[self.table_name] = [r for r in rows if not self._matches(r)]
            self.db.cascade(self.table_name, removed)
            return FakeResponse(removed)

        raise ValueError(f"Unknown action {self.action}")


class FakeSupabase:
    """
    In-memory stand-in for a supabase Client.

    Attributes:
        tables: table name -> list of row dicts
        calls: (table, action) for every executed query
        failing_tables: tables whose queries raise
        auth: MagicMock for client.auth (admin API included)
        storage: MagicMock for client.storage
    """

    def __init__(self, tables: dict[str, list[dict[str, Any]]] | None = None):
        self.tables: dict[str, list[dict[str, Any]]] = {
            name: [copy.deepcopy(r) for r in rows] for name, rows in (tables or {}).items()
        }
        self.calls: list[tuple[str, str]] = []
        self.failing_tables: set[str] = set()
        self.auth = MagicMock()
        self.storage = MagicMock()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rows(self, name: str) -> list[dict[str, Any]]:
        return self.tables.get(name, [])

    def cascade(self, table: str, removed: list[dict[str, Any]]) -> None:
        """ON DELETE CASCADE for the foreign keys the schema declares."""
        ids = {r.get("id") for r in removed}
        if not ids:
            return
        if table == "maps":
            for child in ("nodes", "connections", "user_map_notification_prefs", "user_map_views"):
                self.tables[child] = [r for r in self.rows(child) if r.get("map_id") not in ids]
        elif table == "nodes":
            self.tables["connections"] = [
                c for c in self.rows("connections")
                if c.get("from_node_id") not in ids and c.get("to_node_id") not in ids
            ]


def make_auth_user(user_id: str, email: str, name: str | None = None) -> SimpleNamespace:
    """Object shaped like gotrue's User."""
    return SimpleNamespace(
        id=user_id,
        email=email,
        user_metadata={"name": name} if name else {},
    )


def make_map_row(**overrides: Any) -> dict[str, Any]:
    """A maps row with sensible defaults."""
    row = {
        "id": str(uuid4()),
        "slug": "toronto-scene",
        "title": "Toronto Scene",
        "description": "Who's who in the scene",
        "admin_ids": ["admin-1"],
        "collaborator_ids": [],
        "public_view": True,
        "collaborator_password_hash": None,
        "invited_admin_emails": [],
        "invited_collaborator_emails": [],
        "enabled_node_types": None,
        "connections_enabled": True,
        "background_image_url": None,
        "featured_order": None,
        "featured_active": None,
        "feature_requested_at": None,
        "created_at": next_timestamp(),
    }
    row.update(overrides)
    return row


def make_node_row(map_id: str, **overrides: Any) -> dict[str, Any]:
    row = {
        "id": str(uuid4()),
        "map_id": map_id,
        "type": "EVENT",
        "title": "Friday Jazz",
        "description": "",
        "x": 50,
        "y": 50,
        "tags": [],
        "primary_tag": "music",
        "collaborator_id": "admin-1",
        "status": "approved",
        "created_at": next_timestamp(),
    }
    row.update(overrides)
    return row


def make_connection_row(map_id: str, from_id: str, to_id: str, **overrides: Any) -> dict[str, Any]:
    row = {
        "id": str(uuid4()),
        "map_id": map_id,
        "from_node_id": from_id,
        "to_node_id": to_id,
        "description": "",
        "collaborator_id": "admin-1",
        "status": "approved",
        "created_at": next_timestamp(),
    }
    row.update(overrides)
    return row
