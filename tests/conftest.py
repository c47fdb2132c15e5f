# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# This module provides pytest fixtures and configuration for all tests.
#
# Key features:
# - Sets up mock environment variables before any imports
# - Swaps the Supabase singleton for an in-memory double (tests/fakes.py)
# - Captures outgoing email instead of calling Resend
# =============================================================================

import os

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================
# This must happen before importing app.config which loads settings immediately

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret-with-enough-length-for-hs256")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DEBUG", "true")

from unittest.mock import patch

import pytest

from app.config import settings
from lib.email_client import EmailClient, EmailResult
from lib.supabase_client import SupabaseClient
from tests.fakes import FakeSupabase, make_connection_row, make_map_row, make_node_row


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def fake_db():
    """
    Empty in-memory database used by every SupabaseClient call.

    Tests seed it through `fake_db.tables[...]`.
    """
    fake = FakeSupabase()
    with patch.object(SupabaseClient, "get_client", return_value=fake), \
         patch.object(SupabaseClient, "create_auth_client", return_value=fake):
        yield fake


@pytest.fixture
def sample_map(fake_db):
    """A public map with two approved nodes and one connection."""
    row = make_map_row(admin_ids=["admin-1"], collaborator_ids=["collab-1"])
    first = make_node_row(row["id"], title="The Tranzac", type="SPACE")
    second = make_node_row(row["id"], title="Friday Jazz", type="EVENT")
    fake_db.tables["maps"] = [row]
    fake_db.tables["nodes"] = [first, second]
    fake_db.tables["connections"] = [make_connection_row(row["id"], first["id"], second["id"])]
    return row


@pytest.fixture
def sent_emails(monkeypatch):
    """
    Enable email and record every message instead of sending it.

    Each entry is the kwargs EmailClient.send was called with.
    """
    monkeypatch.setattr(settings, "RESEND_API_KEY", "re_test_key")
    outbox: list[dict] = []

    def fake_send(**kwargs):
        outbox.append(kwargs)
        return EmailResult(sent=True)

    monkeypatch.setattr(EmailClient, "send", staticmethod(fake_send))
    return outbox


@pytest.fixture
def email_disabled(monkeypatch):
    monkeypatch.setattr(settings, "RESEND_API_KEY", "")
