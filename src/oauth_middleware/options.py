"""
Middleware options.

Options are validated with pydantic and can be read from the environment so
that the standalone server and embedding applications share one source of
configuration.
"""

import os
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_PATH_PREFIX = "/api/github/oauth"

PATH_PREFIX_ENV = "OAUTH_MIDDLEWARE_PATH_PREFIX"


class MiddlewareOptions(BaseModel):
    """
    Options for :class:`OAuthAppMiddleware`.

    ``on_unhandled_request`` receives the Starlette request of any route the
    middleware does not own and returns the response to send. Without it the
    request is passed on to the wrapped application.
    """
    path_prefix: str = Field(
        default=DEFAULT_PATH_PREFIX,
        description="Path under which the OAuth routes are mounted"
    )
    on_unhandled_request: Optional[Callable[..., Any]] = Field(
        default=None,
        description="Handler for requests that match no OAuth route"
    )

    model_config = ConfigDict(arbitrary_types_allowed=True, validate_assignment=True)

    @field_validator('path_prefix')
    @classmethod
    def validate_path_prefix(cls, v):
        """Path prefix must be empty or absolute, without a trailing slash."""
        v = v.strip()
        if v and not v.startswith('/'):
            raise ValueError("Path prefix must start with '/'")
        if any(char in v for char in ['?', '#', ' ']):
            raise ValueError("Path prefix must not contain '?', '#' or spaces")
        return v.rstrip('/')

    @classmethod
    def from_env(cls, **overrides: Any) -> "MiddlewareOptions":
        """Build options from the environment; keyword overrides take precedence."""
        values = {}
        path_prefix = os.getenv(PATH_PREFIX_ENV)
        if path_prefix is not None:
            values["path_prefix"] = path_prefix
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)
