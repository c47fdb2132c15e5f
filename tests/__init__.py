# =============================================================================
# tests/ - Test Suite
# =============================================================================
# This package contains all tests for the SceneMapper API:
# - fakes.py: In-memory Supabase double used by every service test
# - test_models.py: Pydantic model validation and row conversion
# - test_*_service.py / test_*.py: Service behavior against the fake database
# - test_routes.py: HTTP endpoints through the real app and auth dependencies
#
# Run tests with: poetry run pytest
# =============================================================================
