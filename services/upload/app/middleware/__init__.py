"""Middleware components for the upload service."""

from services.upload.app.middleware.auth import (
    get_current_user,
    require_roles,
)
from services.upload.app.middleware.correlation import CorrelationMiddleware
from services.upload.app.middleware.logging import RequestLoggingMiddleware

__all__ = [
    "get_current_user",
    "require_roles",
    "CorrelationMiddleware",
    "RequestLoggingMiddleware",
]
