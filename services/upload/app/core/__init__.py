"""Core helpers for the upload service."""

from services.upload.app.core.errors import (
    BadRequest,
    EntityTooLarge,
    Forbidden,
    InternalServer,
    NotFound,
    ResponseError,
    Unauthorized,
)
from services.upload.app.core.formatters import array_formatter

__all__ = [
    "BadRequest",
    "EntityTooLarge",
    "Forbidden",
    "InternalServer",
    "NotFound",
    "ResponseError",
    "Unauthorized",
    "array_formatter",
]
