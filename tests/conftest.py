"""
Pytest configuration and shared fixtures for the OAuth App middleware tests.

The OAuth App collaborator is always mocked: the middleware is glue between
HTTP and that object, so the tests check what gets called and what the HTTP
client sees back.
"""

import pytest
from typing import Dict, Any
from unittest.mock import MagicMock, AsyncMock

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from fastapi.testclient import TestClient

from src.oauth_middleware.middleware import OAuthAppMiddleware
from src.oauth_middleware.options import DEFAULT_PATH_PREFIX

AUTHORIZATION_URL = "https://github.com/login/oauth/authorize?client_id=0123&state=state123"


@pytest.fixture
def prefix() -> str:
    return DEFAULT_PATH_PREFIX


@pytest.fixture
def check_token_result() -> Dict[str, Any]:
    return {"id": 1, "token": "token123", "scopes": []}


@pytest.fixture
def reset_token_result() -> Dict[str, Any]:
    return {"id": 2, "token": "token456", "scopes": ["repo"]}


@pytest.fixture
def oauth_app(check_token_result, reset_token_result) -> MagicMock:
    """Mocked OAuth App with the six collaborator methods."""
    app = MagicMock(name="oauth_app")
    app.get_authorization_url = MagicMock(return_value=AUTHORIZATION_URL)
    app.create_token = AsyncMock(return_value={"token": "token123", "scopes": []})
    app.check_token = AsyncMock(return_value=check_token_result)
    app.reset_token = AsyncMock(return_value=reset_token_result)
    app.delete_token = AsyncMock(return_value=None)
    app.delete_authorization = AsyncMock(return_value=None)
    return app


def build_app(oauth_app, **middleware_kwargs) -> FastAPI:
    """FastAPI app wrapped by the middleware, with one route of its own."""
    app = FastAPI()

    @app.get("/unrelated")
    async def unrelated():
        return PlainTextResponse("handled by wrapped app")

    app.add_middleware(OAuthAppMiddleware, oauth_app=oauth_app, **middleware_kwargs)
    return app


@pytest.fixture
def client(oauth_app) -> TestClient:
    """Test client for the middleware with default options."""
    return TestClient(build_app(oauth_app))


@pytest.fixture
def make_client(oauth_app):
    """Factory for test clients with custom middleware options or collaborator."""
    def _make(app_under_test=None, **middleware_kwargs) -> TestClient:
        return TestClient(build_app(app_under_test or oauth_app, **middleware_kwargs))
    return _make


@pytest.fixture(autouse=True)
def disable_logging():
    """Disable logging during tests to reduce noise."""
    import logging
    logging.disable(logging.CRITICAL)
    yield
    logging.disable(logging.NOTSET)


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )


def assert_error_response(response, status_code: int = 400, message: str = None):
    """Assert that a response carries the middleware's JSON error body."""
    assert response.status_code == status_code
    assert response.headers["content-type"].startswith("application/json")
    data = response.json()
    assert isinstance(data, dict)
    assert set(data.keys()) == {"error"}
    if message is not None:
        assert data["error"] == message


pytest.assert_error_response = assert_error_response
