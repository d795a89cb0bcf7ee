# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# This module provides pytest fixtures and configuration for all tests.
#
# Key features:
# - Sets up environment variables before any imports
# - Wires the FastAPI app to in-memory fakes of the hosted services
# =============================================================================

import os

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================
# marketplace.config loads settings immediately on import

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["USERNAME_CHECK_DEBOUNCE_MS"] = "20"
os.environ["STORAGE_BACKEND"] = "supabase"

import pytest
from fastapi.testclient import TestClient

from marketplace.core.dependencies import get_public_resolver
from marketplace.core.profile_resolver import ProfileResolver
from marketplace.main import create_app
from tests.fakes import FakeBackend, FakeDataService, make_context_factory


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def backend():
    """Fresh in-memory stand-in for Supabase."""
    return FakeBackend()


@pytest.fixture
def app(backend):
    application = create_app(context_factory=make_context_factory(backend))
    application.dependency_overrides[get_public_resolver] = lambda: ProfileResolver(FakeDataService(backend))
    return application


@pytest.fixture
def client(app):
    with TestClient(app, follow_redirects=False) as test_client:
        yield test_client


@pytest.fixture
def complete_user(backend):
    """A confirmed user with a complete profile."""
    user_id = backend.add_user("alice@example.com", "password123", username="alice")
    return {"id": user_id, "email": "alice@example.com", "password": "password123"}


@pytest.fixture
def incomplete_user(backend):
    """A confirmed user with no profile row."""
    user_id = backend.add_user("bob@example.com", "password123", metadata={"full_name": "Bob Builder"})
    return {"id": user_id, "email": "bob@example.com", "password": "password123"}


def sign_in(client, user, redirect_to=None):
    params = {"redirectTo": redirect_to} if redirect_to else None
    return client.post(
        "/auth/signin",
        data={"email": user["email"], "password": user["password"]},
        params=params,
    )
