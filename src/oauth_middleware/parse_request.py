"""
Request parsing for the OAuth App middleware.

Splits a Starlette request into headers, a flat query dictionary and, for
methods that carry one, a JSON body.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from starlette.datastructures import Headers
from starlette.requests import Request

from ..shared.security import extract_token
from .errors import RequestParseError, missing_authorization

BODY_METHODS = ("POST", "PATCH")


@dataclass
class ParsedRequest:
    """Parsed view of an incoming request."""
    headers: Headers
    query: Dict[str, str] = field(default_factory=dict)
    body: Optional[Any] = None


async def parse_request(request: Request) -> ParsedRequest:
    """
    Parse headers, query string and JSON body of a request.

    Args:
        request: Incoming Starlette request

    Returns:
        ParsedRequest: Headers, query and body (None when there is no body)

    Raises:
        RequestParseError: If the body cannot be read or is not valid JSON
    """
    query = dict(request.query_params)

    if request.method not in BODY_METHODS:
        return ParsedRequest(headers=request.headers, query=query)

    try:
        raw_body = await request.body()
        body_text = raw_body.decode("utf-8")
    except Exception as e:
        raise RequestParseError(str(e)) from e

    if not body_text.strip():
        return ParsedRequest(headers=request.headers, query=query)

    try:
        body = json.loads(body_text)
    except ValueError as e:
        raise RequestParseError(str(e)) from e

    return ParsedRequest(headers=request.headers, query=query, body=body)


def parse_authorization_header(authorization: Optional[str]) -> str:
    """
    Return the token from an ``Authorization: token <t>`` header.

    Raises:
        MiddlewareError: If the header is missing or malformed
    """
    token = extract_token(authorization)
    if not token:
        raise missing_authorization()
    return token
