"""
OAuth App Middleware

Maps a fixed set of routes onto calls against an OAuth App collaborator:

    GET    {prefix}/login     -> get_authorization_url, 302 redirect
    GET    {prefix}/callback  -> create_token, HTML page with the token
    POST   {prefix}/token     -> create_token, 201 JSON
    GET    {prefix}/token     -> check_token, 200 JSON
    PATCH  {prefix}/token     -> reset_token, 200 JSON
    DELETE {prefix}/token     -> delete_token, 204
    DELETE {prefix}/grant     -> delete_authorization, 204

Routes are matched on the exact "METHOD path" string, query excluded. Any
error raised while handling a matched route becomes a 400 JSON response.
Everything else is handed to ``on_unhandled_request`` or, by default, to the
wrapped application.
"""

from pathlib import Path
from typing import Any, Dict, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response
from fastapi.templating import Jinja2Templates
from pydantic import ValidationError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.types import ASGIApp

from ..shared.logging_utils import OAuthLogger, ComponentType, MessageType
from ..shared.oauth_models import CreateTokenRequest, ErrorResponse
from .errors import ERROR_PREFIX, MiddlewareError, RequestParseError, missing_code_or_state
from .oauth_app import OAuthApp, read_field, resolve
from .options import MiddlewareOptions
from .parse_request import ParsedRequest, parse_authorization_header, parse_request

logger = OAuthLogger(ComponentType.MIDDLEWARE.value)

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))

FALSE_VALUES = ("false", "0")


def build_routes(path_prefix: str) -> Dict[str, str]:
    """Route name -> "METHOD path" for the given prefix."""
    return {
        "get_login": f"GET {path_prefix}/login",
        "get_callback": f"GET {path_prefix}/callback",
        "create_token": f"POST {path_prefix}/token",
        "get_token": f"GET {path_prefix}/token",
        "patch_token": f"PATCH {path_prefix}/token",
        "delete_token": f"DELETE {path_prefix}/token",
        "delete_grant": f"DELETE {path_prefix}/grant",
    }


def error_response(message: str, status_code: int = 400) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump()
    )


def raw_request_path(request: Request) -> str:
    """Path as sent by the client, percent-escapes kept and query excluded."""
    raw_path = request.scope.get("raw_path")
    if not raw_path:
        return request.url.path
    return raw_path.split(b"?", 1)[0].decode("latin-1")


def parse_allow_signup(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    return value.strip().lower() not in FALSE_VALUES


class OAuthAppMiddleware(BaseHTTPMiddleware):
    """
    Starlette middleware exposing an OAuth App over HTTP.

    Args:
        app: Wrapped ASGI application, used for unhandled requests
        oauth_app: Collaborator implementing :class:`OAuthApp`
        options: Middleware options; keyword overrides are applied on top
    """

    def __init__(
        self,
        app: ASGIApp,
        oauth_app: OAuthApp,
        options: Optional[MiddlewareOptions] = None,
        **option_overrides: Any,
    ):
        super().__init__(app)
        if options is None:
            options = MiddlewareOptions(**option_overrides)
        elif option_overrides:
            options = MiddlewareOptions(**{**options.model_dump(), **option_overrides})

        self.oauth_app = oauth_app
        self.options = options
        self.routes = build_routes(options.path_prefix)
        self.handlers = {
            self.routes["get_login"]: self.handle_get_login,
            self.routes["get_callback"]: self.handle_get_callback,
            self.routes["create_token"]: self.handle_create_token,
            self.routes["get_token"]: self.handle_get_token,
            self.routes["patch_token"]: self.handle_patch_token,
            self.routes["delete_token"]: self.handle_delete_token,
            self.routes["delete_grant"]: self.handle_delete_grant,
        }

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        route = f"{request.method} {raw_request_path(request)}"
        handler = self.handlers.get(route)

        if handler is None:
            return await self.handle_unhandled_request(request, call_next)

        logger.log_http_request(
            request.method,
            request.url.path,
            params=dict(request.query_params),
            headers=dict(request.headers)
        )

        try:
            parsed = await parse_request(request)
        except RequestParseError as e:
            logger.log_error("request_error", e.description, {"route": route, "cause": e.cause})
            return self._finish(request, error_response(e.description, e.status_code))

        try:
            response = await handler(request, parsed)
        except MiddlewareError as e:
            logger.log_error("invalid_request", e.description, {"route": route})
            response = error_response(e.description, e.status_code)
        except Exception as e:
            logger.log_error("oauth_app_error", str(e), {"route": route, "exception": type(e).__name__})
            response = error_response(str(e))

        return self._finish(request, response)

    async def handle_unhandled_request(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        logger.log_oauth_message(
            ComponentType.MIDDLEWARE.value, ComponentType.MIDDLEWARE.value,
            MessageType.ROUTE_UNHANDLED.value,
            {
                "method": request.method,
                "path": request.url.path,
                "custom_handler": self.options.on_unhandled_request is not None
            }
        )

        if self.options.on_unhandled_request is not None:
            return await resolve(self.options.on_unhandled_request(request))
        return await call_next(request)

    def _finish(self, request: Request, response: Response) -> Response:
        logger.log_http_response(request.method, request.url.path, response.status_code)
        return response

    async def handle_get_login(self, request: Request, parsed: ParsedRequest) -> Response:
        query = parsed.query
        scopes = query.get("scopes")

        kwargs = {
            "state": query.get("state"),
            "scopes": scopes.split(",") if scopes is not None else None,
            "allow_signup": parse_allow_signup(query.get("allowSignup")),
            "redirect_url": query.get("redirectUrl"),
        }
        logger.log_app_call("get_authorization_url", kwargs)

        url = await resolve(self.oauth_app.get_authorization_url(**kwargs))

        logger.log_oauth_message(
            ComponentType.MIDDLEWARE.value, ComponentType.CLIENT.value,
            MessageType.REDIRECT.value,
            {"location": url}
        )
        return Response(status_code=302, headers={"location": str(url)})

    async def handle_get_callback(self, request: Request, parsed: ParsedRequest) -> Response:
        query = parsed.query

        if query.get("error"):
            description = query.get("error_description", "")
            raise MiddlewareError(f"{ERROR_PREFIX} {query['error']} {description}".rstrip())

        state = query.get("state")
        code = query.get("code")
        if not state or not code:
            raise missing_code_or_state()

        result = await self._create_token(state, code)

        return templates.TemplateResponse(
            request,
            "token_created.html",
            {"token": read_field(result, "token")},
            status_code=200
        )

    async def handle_create_token(self, request: Request, parsed: ParsedRequest) -> Response:
        if not isinstance(parsed.body, dict):
            raise missing_code_or_state()

        try:
            body = CreateTokenRequest.model_validate(parsed.body)
        except ValidationError as e:
            raise missing_code_or_state() from e

        if not body.state or not body.code:
            raise missing_code_or_state()

        result = await self._create_token(body.state, body.code)

        created = {
            "token": read_field(result, "token"),
            "scopes": read_field(result, "scopes") or []
        }
        return JSONResponse(status_code=201, content=jsonable_encoder(created))

    async def handle_get_token(self, request: Request, parsed: ParsedRequest) -> Response:
        token = parse_authorization_header(parsed.headers.get("authorization"))

        logger.log_app_call("check_token", {"token": token})
        result = await resolve(self.oauth_app.check_token(token=token))

        return JSONResponse(status_code=200, content=jsonable_encoder(result))

    async def handle_patch_token(self, request: Request, parsed: ParsedRequest) -> Response:
        token = parse_authorization_header(parsed.headers.get("authorization"))

        logger.log_app_call("reset_token", {"token": token})
        result = await resolve(self.oauth_app.reset_token(token=token))

        return JSONResponse(status_code=200, content=jsonable_encoder(result))

    async def handle_delete_token(self, request: Request, parsed: ParsedRequest) -> Response:
        token = parse_authorization_header(parsed.headers.get("authorization"))

        logger.log_app_call("delete_token", {"token": token})
        await resolve(self.oauth_app.delete_token(token=token))

        return Response(status_code=204)

    async def handle_delete_grant(self, request: Request, parsed: ParsedRequest) -> Response:
        token = parse_authorization_header(parsed.headers.get("authorization"))

        logger.log_app_call("delete_authorization", {"token": token})
        await resolve(self.oauth_app.delete_authorization(token=token))

        return Response(status_code=204)

    async def _create_token(self, state: str, code: str) -> Any:
        logger.log_app_call("create_token", {"state": state, "code": code})
        result = await resolve(self.oauth_app.create_token(state=state, code=code))
        logger.log_app_call("create_token", {"token": read_field(result, "token")})
        return result
