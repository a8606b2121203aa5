"""Shared fixtures for API route tests."""

# pylint: disable=redefined-outer-name

from collections.abc import Iterator
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from keygate.apps.api.app import create_app
from keygate.services import ServiceContainer, build_default_services


@pytest.fixture
def services(store) -> ServiceContainer:
    """Create a service container over a temporary key store."""
    return build_default_services(store=store)


@pytest.fixture
def client(services) -> TestClient:
    """Create a test client with the app."""
    return TestClient(create_app(services))


@pytest.fixture
def admin_auth() -> Iterator[None]:
    """Set up admin authentication for tests."""
    with patch("keygate.apps.api.dependencies.config") as mock_config:
        mock_config.ENABLE_ADMIN_AUTH = True
        mock_config.ADMIN_API_TOKEN = "test-admin-token"
        mock_config.HEALTHCHECK_API_TOKEN = "test-health-token"
        yield


@pytest.fixture
def admin_headers() -> dict:
    """Return headers with valid admin token."""
    return {"Authorization": "Bearer test-admin-token"}
