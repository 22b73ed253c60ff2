"""Shared fixtures: a clean environment, the mock Square API and the adapter app."""

import pytest
from fastapi.testclient import TestClient

from mock_services import mock_square_api
from square_checkout.main import app
from square_checkout.models import GatewaySettings

SQUARE_KEYS = (
    "SQUARE_ACCESS_TOKEN",
    "SQUARE_LOCATION_ID",
    "SQUARE_ENVIRONMENT",
    "SQUARE_APP_ID",
    "PUBLIC_SQUARE_APP_ID",
    "SQUARE_TIMEOUT_SECONDS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in SQUARE_KEYS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def square_api():
    """An httpx-compatible client that routes every request to the mock Square API."""
    mock_square_api.reset_state()
    with TestClient(mock_square_api.app) as client:
        yield client
    mock_square_api.reset_state()


@pytest.fixture
def settings():
    return GatewaySettings(access_token="EAAA-test-token")


@pytest.fixture
def adapter(square_api):
    """TestClient for the adapter, wired to the mock Square API."""
    app.state.runtime_env = {"SQUARE_ACCESS_TOKEN": "EAAA-test-token"}
    app.state.http_client = square_api
    with TestClient(app) as client:
        yield client
    app.state.runtime_env = None
    app.state.http_client = None
