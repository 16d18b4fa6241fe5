"""Shared Pydantic schemas for upload services."""

from shared.schemas.api_responses import (
    APIResponse,
    ErrorResponse,
    HttpResponse,
)

__all__ = [
    "APIResponse",
    "ErrorResponse",
    "HttpResponse",
]
