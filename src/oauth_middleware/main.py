"""
OAuth App Middleware - Standalone Server

This FastAPI application mounts :class:`OAuthAppMiddleware` in front of a
small service that only knows its health check. Requests that match no OAuth
route and no service route get the original adapter's default answer:
``404 {"error": "Unknown route: METHOD PATH"}``.

Configuration (environment):
- OAUTH_APP: "module:attribute" of the OAuth App collaborator or its factory
- OAUTH_MIDDLEWARE_PATH_PREFIX: route prefix (default /api/github/oauth)
- OAUTH_MIDDLEWARE_HOST / OAUTH_MIDDLEWARE_PORT: bind address
- OAUTH_MIDDLEWARE_ALLOWED_ORIGINS: comma separated CORS origins
"""

import importlib
import os
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..shared.logging_utils import ComponentType, create_logger
from ..shared.oauth_models import UnknownRouteResponse
from ..shared.security import SecurityHeaders
from .middleware import OAuthAppMiddleware
from .oauth_app import OAuthApp
from .options import MiddlewareOptions

logger = create_logger(ComponentType.MIDDLEWARE.value)

SERVER_CONFIG = {
    "host": os.getenv("OAUTH_MIDDLEWARE_HOST", "0.0.0.0"),
    "port": int(os.getenv("OAUTH_MIDDLEWARE_PORT", "8083")),
    "oauth_app": os.getenv("OAUTH_APP"),
    "allowed_origins": [
        origin.strip()
        for origin in os.getenv(
            "OAUTH_MIDDLEWARE_ALLOWED_ORIGINS",
            "http://localhost:8080,http://127.0.0.1:8080"
        ).split(",")
        if origin.strip()
    ],
}


def load_oauth_app(target: Optional[str]) -> OAuthApp:
    """
    Import the OAuth App collaborator from a "module:attribute" string.

    Classes and other factories are called without arguments; objects that
    already implement the OAuth App interface are used as they are.

    Raises:
        ValueError: If the target is malformed
        TypeError: If the loaded object does not implement the interface
    """
    if not target or ":" not in target:
        raise ValueError(f"OAuth App target must look like 'module:attribute', got {target!r}")

    module_name, _, attribute = target.partition(":")
    if not module_name or not attribute:
        raise ValueError(f"OAuth App target must look like 'module:attribute', got {target!r}")

    module = importlib.import_module(module_name)
    oauth_app = getattr(module, attribute)

    if isinstance(oauth_app, type) or (callable(oauth_app) and not isinstance(oauth_app, OAuthApp)):
        oauth_app = oauth_app()

    if not isinstance(oauth_app, OAuthApp):
        raise TypeError(f"{target} does not implement the OAuth App interface")

    logger.log_info("OAuth App Loaded", {"target": target, "type": type(oauth_app).__name__})
    return oauth_app


async def unknown_route(request: Request, exc: Exception) -> JSONResponse:
    """Default answer for requests no route claims."""
    body = UnknownRouteResponse.for_route(request.method, request.url.path)
    logger.log_error("unknown_route", body.error)
    return JSONResponse(status_code=404, content=body.model_dump())


def create_app(oauth_app: OAuthApp, options: Optional[MiddlewareOptions] = None) -> FastAPI:
    """
    Build the standalone middleware server around an OAuth App.

    Args:
        oauth_app: Collaborator implementing the OAuth App interface
        options: Middleware options (defaults to the environment)

    Returns:
        FastAPI: Application ready to be served by uvicorn
    """
    if options is None:
        options = MiddlewareOptions.from_env()

    app = FastAPI(
        title="OAuth App Middleware",
        description=f"""
        HTTP surface for an OAuth App.

        **Routes (prefix `{options.path_prefix}`):**
        - `GET /login` - redirect to the authorization URL
        - `GET /callback` - exchange code & state, show the token
        - `POST /token` - exchange code & state, return the token
        - `GET /token` - check a token
        - `PATCH /token` - reset a token
        - `DELETE /token` - delete a token
        - `DELETE /grant` - delete the authorization grant

        Token routes require `Authorization: token <token>`.
        """,
        version="1.0.0",
    )

    app.add_exception_handler(404, unknown_route)
    app.add_exception_handler(405, unknown_route)

    # Middleware added last runs first: CORS, security headers, OAuth routes
    app.add_middleware(OAuthAppMiddleware, oauth_app=oauth_app, options=options)

    @app.middleware("http")
    async def add_security_headers(request, call_next):
        """Add security headers to all HTTP responses."""
        response = await call_next(request)

        for header_name, header_value in SecurityHeaders.get_oauth_security_headers().items():
            response.headers[header_name] = header_value

        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=SERVER_CONFIG["allowed_origins"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    )

    @app.get("/health")
    async def health_check():
        """Health check endpoint for monitoring."""
        return JSONResponse(
            status_code=200,
            content={
                "status": "healthy",
                "service": "oauth-app-middleware",
                "version": "1.0.0",
                "path_prefix": options.path_prefix,
                "oauth_app": type(oauth_app).__name__
            }
        )

    return app


if __name__ == "__main__":
    import uvicorn

    server_app = create_app(load_oauth_app(SERVER_CONFIG["oauth_app"]))

    logger.log_startup(
        SERVER_CONFIG["port"],
        {
            "host": SERVER_CONFIG["host"],
            "oauth_app": SERVER_CONFIG["oauth_app"],
            "docs_url": f"http://localhost:{SERVER_CONFIG['port']}/docs"
        }
    )

    uvicorn.run(
        server_app,
        host=SERVER_CONFIG["host"],
        port=SERVER_CONFIG["port"],
        log_level="info"
    )
