# =============================================================================
# core/ - Business Logic Package
# =============================================================================
# This package contains framework-agnostic business logic:
# - models/: Pydantic schemas for maps, nodes, connections and accounts
# - services/: Map editing, submissions, digests, import/export, accounts
#
# Services raise app.exceptions errors and never build HTTP responses.
# This keeps the logic testable and reusable from Celery tasks.
# =============================================================================
