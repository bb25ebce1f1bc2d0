"""
Pydantic models for middleware request/response validation.

This module defines the bodies the middleware accepts and returns: the token
creation request and the error envelopes.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class CreateTokenRequest(BaseModel):
    """
    Body of ``POST {prefix}/token``.

    Both fields are optional at the model level so that the route can report
    the missing parameters with its own error message.
    """
    state: Optional[str] = Field(default=None, description="OAuth state parameter")
    code: Optional[str] = Field(default=None, description="Authorization code")

    model_config = ConfigDict(extra="ignore")


class ErrorResponse(BaseModel):
    """Error body returned for every failed middleware route."""
    error: str = Field(..., description="Human-readable error message")


class UnknownRouteResponse(ErrorResponse):
    """Error body returned for requests that match no route at all."""

    @classmethod
    def for_route(cls, method: str, path: str) -> "UnknownRouteResponse":
        return cls(error=f"Unknown route: {method} {path}")
