"""
OAuth App collaborator interface.

The middleware never talks to an OAuth provider itself. Every route is
forwarded to an object implementing this protocol, which owns authorization
URL construction, code exchange and the token lifecycle.
"""

import inspect
from typing import Any, List, Optional, Protocol, runtime_checkable


@runtime_checkable
class OAuthApp(Protocol):
    """
    Structural interface of the OAuth App collaborator.

    Each method may be a plain function or a coroutine function; the
    middleware awaits whatever comes back when it is awaitable.
    """

    def get_authorization_url(
        self,
        *,
        state: Optional[str] = None,
        scopes: Optional[List[str]] = None,
        allow_signup: Optional[bool] = None,
        redirect_url: Optional[str] = None,
    ) -> Any:
        ...

    def create_token(self, *, state: str, code: str) -> Any:
        ...

    def check_token(self, *, token: str) -> Any:
        ...

    def reset_token(self, *, token: str) -> Any:
        ...

    def delete_token(self, *, token: str) -> Any:
        ...

    def delete_authorization(self, *, token: str) -> Any:
        ...


async def resolve(result: Any) -> Any:
    """Await ``result`` if the collaborator handed back an awaitable."""
    if inspect.isawaitable(result):
        return await result
    return result


def read_field(result: Any, name: str, default: Any = None) -> Any:
    """Read ``name`` from a mapping or an attribute-style result object."""
    if isinstance(result, dict):
        return result.get(name, default)
    return getattr(result, name, default)
