"""Database repository for upload records."""

from datetime import datetime
from typing import Any, Iterable
from uuid import UUID

from sqlalchemy import Select, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from services.upload.app.db.models import UploadModel, utc_now


def _escape_like(value: str) -> str:
    """Escape LIKE wildcards so ``value`` matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class UploadRepository:
    """Repository for upload database operations.

    Reads exclude soft-deleted rows unless ``include_deleted`` is passed.
    """

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    @staticmethod
    def _live(query: Select, include_deleted: bool) -> Select:
        if include_deleted:
            return query
        return query.where(UploadModel.deleted_at.is_(None))

    @staticmethod
    def _filtered(
        query: Select,
        provider: str | None = None,
        keyword: str | None = None,
    ) -> Select:
        if provider:
            query = query.where(UploadModel.provider == provider)
        if keyword:
            pattern = f"%{_escape_like(keyword)}%"
            query = query.where(
                or_(
                    UploadModel.filename.ilike(pattern, escape="\\"),
                    UploadModel.keyfile.ilike(pattern, escape="\\"),
                )
            )
        return query

    async def get_by_id(
        self,
        upload_id: UUID,
        include_deleted: bool = False,
    ) -> UploadModel | None:
        """Get upload by ID.

        Args:
            upload_id: Upload UUID
            include_deleted: Whether soft-deleted rows are visible

        Returns:
            Upload model or None if not found
        """
        query = self._live(select(UploadModel).where(UploadModel.id == upload_id), include_deleted)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_by_ids(
        self,
        upload_ids: Iterable[UUID],
        include_deleted: bool = False,
    ) -> list[UploadModel]:
        """Get every upload whose id is in ``upload_ids``."""
        query = self._live(
            select(UploadModel).where(UploadModel.id.in_(list(upload_ids))),
            include_deleted,
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_uploads(
        self,
        provider: str | None = None,
        keyword: str | None = None,
        limit: int = 10,
        offset: int = 0,
        newest_first: bool = True,
    ) -> list[UploadModel]:
        """List live uploads with filtering and pagination.

        Args:
            provider: Only uploads stored with this provider
            keyword: Case-insensitive substring of filename or keyfile
            limit: Maximum results
            offset: Pagination offset
            newest_first: Order by created_at descending when True

        Returns:
            List of upload models
        """
        order = UploadModel.created_at.desc() if newest_first else UploadModel.created_at.asc()
        query = self._filtered(
            self._live(select(UploadModel), include_deleted=False),
            provider=provider,
            keyword=keyword,
        )
        query = query.order_by(order, UploadModel.id).limit(limit).offset(offset)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count_uploads(
        self,
        provider: str | None = None,
        keyword: str | None = None,
    ) -> int:
        """Count live uploads matching the same filters as list_uploads."""
        query = self._filtered(
            self._live(select(func.count()).select_from(UploadModel), include_deleted=False),
            provider=provider,
            keyword=keyword,
        )
        result = await self.session.execute(query)
        return result.scalar_one()

    async def list_expired_signed_urls(
        self,
        now: datetime | None = None,
        limit: int = 100,
    ) -> list[UploadModel]:
        """List live uploads whose signed URL expired before ``now``."""
        query = (
            select(UploadModel)
            .where(
                UploadModel.deleted_at.is_(None),
                UploadModel.expiry_date_url < (now or utc_now()),
            )
            .order_by(UploadModel.expiry_date_url.asc())
            .limit(limit)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def create(
        self,
        keyfile: str,
        provider: str,
        filename: str,
        mimetype: str,
        size: int,
        signed_url: str,
        expiry_date_url: datetime,
    ) -> UploadModel:
        """Create a new upload record.

        Returns:
            Created upload model
        """
        now = utc_now()
        upload = UploadModel(
            keyfile=keyfile,
            provider=provider,
            filename=filename,
            mimetype=mimetype,
            size=size,
            signed_url=signed_url,
            expiry_date_url=expiry_date_url,
            created_at=now,
            updated_at=now,
        )
        self.session.add(upload)
        await self.session.flush()
        return upload

    async def update(self, upload: UploadModel, **values: Any) -> UploadModel:
        """Apply ``values`` to an already loaded upload and flush."""
        for field, value in values.items():
            setattr(upload, field, value)
        upload.updated_at = utc_now()
        await self.session.flush()
        return upload

    async def postpone_refresh(self, upload: UploadModel, until: datetime) -> UploadModel:
        """Move ``expiry_date_url`` to ``until``; ``updated_at`` is left alone."""
        upload.expiry_date_url = until
        await self.session.flush()
        return upload

    async def soft_delete(self, upload: UploadModel) -> UploadModel:
        """Mark an upload deleted."""
        upload.deleted_at = utc_now()
        await self.session.flush()
        return upload

    async def restore(self, upload: UploadModel) -> UploadModel:
        """Clear the deleted marker of an upload."""
        upload.deleted_at = None
        await self.session.flush()
        return upload

    async def delete(self, upload: UploadModel) -> None:
        """Permanently delete an upload row."""
        await self.session.delete(upload)
        await self.session.flush()

    async def soft_delete_many(self, upload_ids: Iterable[UUID]) -> int:
        """Mark every live upload in ``upload_ids`` deleted.

        Returns:
            Number of rows affected
        """
        stmt = (
            update(UploadModel)
            .where(
                UploadModel.id.in_(list(upload_ids)),
                UploadModel.deleted_at.is_(None),
            )
            .values(deleted_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def restore_many(self, upload_ids: Iterable[UUID]) -> int:
        """Restore every soft-deleted upload in ``upload_ids``.

        Returns:
            Number of rows affected
        """
        stmt = (
            update(UploadModel)
            .where(
                UploadModel.id.in_(list(upload_ids)),
                UploadModel.deleted_at.is_not(None),
            )
            .values(deleted_at=None)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def delete_many(self, upload_ids: Iterable[UUID]) -> int:
        """Permanently delete every upload in ``upload_ids``, live or not.

        Returns:
            Number of rows affected
        """
        stmt = (
            delete(UploadModel)
            .where(UploadModel.id.in_(list(upload_ids)))
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0
