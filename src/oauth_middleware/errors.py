"""Exceptions raised while handling middleware routes."""

ERROR_PREFIX = "[oauth-app-middleware]"


class MiddlewareError(Exception):
    """Error turned into an HTTP error response by the middleware."""

    def __init__(self, description: str, status_code: int = 400):
        self.description = description
        self.status_code = status_code
        super().__init__(description)


class RequestParseError(MiddlewareError):
    """The incoming request body could not be parsed."""

    def __init__(self, cause: str = ""):
        self.cause = cause
        super().__init__(f"{ERROR_PREFIX} request error")


def missing_code_or_state() -> MiddlewareError:
    return MiddlewareError(f'{ERROR_PREFIX} Both "code" & "state" parameters are required')


def missing_authorization() -> MiddlewareError:
    return MiddlewareError(f'{ERROR_PREFIX} "Authorization" header is required')
