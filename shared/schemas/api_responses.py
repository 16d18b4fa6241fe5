"""Standard API response envelopes."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

MESSAGE_RECEIVED = "data has been received!"
MESSAGE_CREATED = "data has been added!"
MESSAGE_UPDATED = "the data has been updated!"
MESSAGE_DELETED = "data has been deleted!"


class APIResponse(BaseModel):
    """Success envelope: ``code`` and ``message`` plus any payload keys."""

    model_config = ConfigDict(extra="allow")

    code: int = 200
    message: str = MESSAGE_RECEIVED


class ErrorResponse(BaseModel):
    """Standard error response."""

    code: int
    message: str
    errors: Optional[Any] = None
    correlation_id: Optional[str] = None


class HttpResponse:
    """Builders for the success envelope, keyed by the kind of operation."""

    @staticmethod
    def _build(code: int, message: str, payload: dict[str, Any]) -> dict[str, Any]:
        # Payload may override the defaults, e.g. a custom message
        fields = {"code": code, "message": message, **payload}
        return APIResponse(**fields).model_dump()

    @classmethod
    def get(cls, payload: dict[str, Any] | None = None) -> dict[str, Any]:
        """Envelope for reads."""
        return cls._build(200, MESSAGE_RECEIVED, payload or {})

    @classmethod
    def created(cls, payload: dict[str, Any] | None = None) -> dict[str, Any]:
        """Envelope for creates."""
        return cls._build(201, MESSAGE_CREATED, payload or {})

    @classmethod
    def updated(cls, payload: dict[str, Any] | None = None) -> dict[str, Any]:
        """Envelope for updates and restores."""
        return cls._build(200, MESSAGE_UPDATED, payload or {})

    @classmethod
    def deleted(cls, payload: dict[str, Any] | None = None) -> dict[str, Any]:
        """Envelope for soft and hard deletes."""
        return cls._build(200, MESSAGE_DELETED, payload or {})
