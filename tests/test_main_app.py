"""
Integration tests for the standalone middleware server.

Exercises the application factory end to end (middleware, CORS, security
headers, unknown-route handling) and the OAuth App loader.
"""

import sys
import types

import pytest
from fastapi.testclient import TestClient

from src.oauth_middleware.main import create_app, load_oauth_app
from src.oauth_middleware.options import MiddlewareOptions


class DemoOAuthApp:
    """Minimal synchronous OAuth App used by the loader tests."""

    def get_authorization_url(self, *, state=None, scopes=None, allow_signup=None, redirect_url=None):
        return "https://github.com/login/oauth/authorize?client_id=demo"

    def create_token(self, *, state, code):
        return {"token": "demo-token", "scopes": []}

    def check_token(self, *, token):
        return {"token": token}

    def reset_token(self, *, token):
        return {"token": token + "-reset"}

    def delete_token(self, *, token):
        return None

    def delete_authorization(self, *, token):
        return None


@pytest.fixture
def demo_module(monkeypatch):
    """Register an importable module holding OAuth App objects."""
    module = types.ModuleType("demo_oauth_module")
    module.DemoOAuthApp = DemoOAuthApp
    module.instance = DemoOAuthApp()
    module.factory = lambda: DemoOAuthApp()
    module.not_an_app = object()
    monkeypatch.setitem(sys.modules, "demo_oauth_module", module)
    return module


class TestCreateApp:
    """Test cases for the application factory."""

    @pytest.fixture
    def server(self, oauth_app):
        return TestClient(create_app(oauth_app, MiddlewareOptions()))

    def test_health_endpoint(self, server):
        response = server.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["path_prefix"] == "/api/github/oauth"

    def test_unknown_route(self, server):
        response = server.get("/does/not/exist")

        assert response.status_code == 404
        assert response.json() == {"error": "Unknown route: GET /does/not/exist"}

    def test_unknown_method_on_oauth_path(self, server, oauth_app, prefix):
        response = server.put(f"{prefix}/grant")

        assert response.status_code == 404
        assert response.json() == {"error": f"Unknown route: PUT {prefix}/grant"}
        oauth_app.delete_authorization.assert_not_called()

    def test_wrong_method_on_known_path(self, server):
        response = server.post("/health")

        assert response.status_code == 404
        assert response.json() == {"error": "Unknown route: POST /health"}

    def test_oauth_routes_mounted(self, server, oauth_app, prefix):
        response = server.post(f"{prefix}/token", json={"code": "012345", "state": "state123"})

        assert response.status_code == 201
        oauth_app.create_token.assert_awaited_once_with(state="state123", code="012345")

    def test_security_headers_applied(self, server, prefix):
        for response in (
            server.get("/health"),
            server.get(f"{prefix}/token"),
            server.get(f"{prefix}/login", follow_redirects=False),
        ):
            assert response.headers["x-content-type-options"] == "nosniff"
            assert response.headers["x-frame-options"] == "DENY"

    def test_cors_preflight_allows_patch_and_delete(self, server, prefix):
        response = server.options(
            f"{prefix}/token",
            headers={
                "Origin": "http://localhost:8080",
                "Access-Control-Request-Method": "PATCH",
                "Access-Control-Request-Headers": "Authorization",
            }
        )

        assert response.status_code == 200
        allowed = response.headers["access-control-allow-methods"]
        assert "PATCH" in allowed
        assert "DELETE" in allowed

    def test_options_from_environment(self, oauth_app, monkeypatch):
        monkeypatch.setenv("OAUTH_MIDDLEWARE_PATH_PREFIX", "/env-oauth")
        server = TestClient(create_app(oauth_app))

        response = server.get("/env-oauth/login", follow_redirects=False)

        assert response.status_code == 302


class TestLoadOAuthApp:
    """Test cases for loading the OAuth App from a target string."""

    def test_load_instance(self, demo_module):
        assert load_oauth_app("demo_oauth_module:instance") is demo_module.instance

    def test_load_class(self, demo_module):
        assert isinstance(load_oauth_app("demo_oauth_module:DemoOAuthApp"), DemoOAuthApp)

    def test_load_factory(self, demo_module):
        assert isinstance(load_oauth_app("demo_oauth_module:factory"), DemoOAuthApp)

    @pytest.mark.parametrize("target", [None, "", "demo_oauth_module", ":instance", "demo_oauth_module:"])
    def test_malformed_target(self, target):
        with pytest.raises(ValueError):
            load_oauth_app(target)

    def test_not_an_oauth_app(self, demo_module):
        with pytest.raises(TypeError):
            load_oauth_app("demo_oauth_module:not_an_app")

    def test_missing_attribute(self, demo_module):
        with pytest.raises(AttributeError):
            load_oauth_app("demo_oauth_module:missing")

    def test_loaded_app_serves_routes(self, demo_module, prefix):
        server = TestClient(create_app(load_oauth_app("demo_oauth_module:instance"), MiddlewareOptions()))

        response = server.patch(f"{prefix}/token", headers={"Authorization": "token abc"})

        assert response.status_code == 200
        assert response.json() == {"token": "abc-reset"}
