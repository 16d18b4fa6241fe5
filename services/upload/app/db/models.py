"""SQLAlchemy models for the upload service."""

from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, DateTime, Index, String, Text, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""

    pass


class UploadModel(Base):
    """SQLAlchemy model for uploads table.

    Rows with ``deleted_at`` set are soft-deleted: hidden from reads but
    restorable until force-deleted.
    """

    __tablename__ = "uploads"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Object location
    keyfile: Mapped[str] = mapped_column(String(500), nullable=False)
    provider: Mapped[str] = mapped_column(String(10), nullable=False)

    # File details
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    mimetype: Mapped[str] = mapped_column(String(100), nullable=False)
    size: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # Download link
    signed_url: Mapped[str] = mapped_column(Text, nullable=False)
    expiry_date_url: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_uploads_keyfile", "keyfile"),
        Index("idx_uploads_provider", "provider"),
        Index("idx_uploads_deleted_at", "deleted_at"),
        Index("idx_uploads_expiry_date_url", "expiry_date_url"),
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
