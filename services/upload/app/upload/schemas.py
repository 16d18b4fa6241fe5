"""Upload request/response schemas."""

from datetime import datetime
from typing import Any, Literal, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from services.upload.app.core.formatters import array_formatter
from shared.utils.storage import PROVIDERS

MAX_PAGE_SIZE = 100


class UploadResponse(BaseModel):
    """Upload record as returned to clients."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    keyfile: str
    filename: str
    mimetype: str
    size: int
    provider: str
    signed_url: str
    expiry_date_url: datetime
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None


class ListParams(BaseModel):
    """Query parameters for listing uploads."""

    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1)
    provider: Optional[str] = None
    keyword: Optional[str] = Field(default=None, max_length=255)
    order: Literal["asc", "desc"] = "desc"

    @field_validator("page_size")
    @classmethod
    def cap_page_size(cls, v: int) -> int:
        return min(v, MAX_PAGE_SIZE)

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        v = v.lower()
        if v not in PROVIDERS:
            raise ValueError(f"provider must be one of: {', '.join(PROVIDERS)}")
        return v

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


class SignedUrlRequest(BaseModel):
    """Body of the presign endpoints."""

    key_file: str = Field(
        ...,
        min_length=1,
        max_length=500,
        validation_alias=AliasChoices("keyFile", "key_file", "keyfile"),
    )


class BulkIdsRequest(BaseModel):
    """Body of the bulk endpoints.

    ``ids`` may be a list, a JSON-encoded list or a comma-separated string.
    """

    ids: list[str] = Field(default_factory=list)

    @field_validator("ids", mode="before")
    @classmethod
    def parse_ids(cls, v: Any) -> list[str]:
        return array_formatter(v)

