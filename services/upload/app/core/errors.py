"""HTTP-aware exceptions raised by routes, dependencies and services."""

from typing import Any

from fastapi import status


class ResponseError(Exception):
    """Base class for errors that map directly onto an HTTP response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "an internal error occurred"

    def __init__(self, message: str | None = None, errors: Any = None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class BadRequest(ResponseError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "bad request"


class Unauthorized(ResponseError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "unauthorized"


class Forbidden(ResponseError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "you are not allowed to access this resource"


class NotFound(ResponseError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "data not found"


class EntityTooLarge(ResponseError):
    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    default_message = "request entity too large"


class InternalServer(ResponseError):
    pass
