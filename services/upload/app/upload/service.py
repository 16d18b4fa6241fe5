"""Upload service: storage provider calls plus upload record bookkeeping."""

import time
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from services.upload.app.config import Settings, get_settings
from services.upload.app.core.errors import BadRequest, NotFound
from services.upload.app.db.models import UploadModel
from services.upload.app.db.repository import UploadRepository
from services.upload.app.upload.files import TempFile, safe_filename
from services.upload.app.upload.schemas import ListParams
from shared.utils.logging import get_logger
from shared.utils.metrics import create_counter, create_histogram
from shared.utils.storage import PROVIDER_GCS, PROVIDER_S3, StorageClient

logger = get_logger(__name__)

UPLOAD_FILES = create_counter(
    "upload_files_total",
    "Files pushed to a storage provider",
    ["provider", "status"],
)
UPLOAD_DURATION = create_histogram(
    "upload_provider_duration_seconds",
    "Time spent pushing a file and signing its download URL",
    ["provider"],
)
SIGNED_URLS_REFRESHED = create_counter(
    "upload_signed_urls_refreshed_total",
    "Expired download URLs regenerated",
    ["provider", "status"],
)

NOT_FOUND_MESSAGE = "upload data not found or has been deleted"


def object_key(directory: str, filename: str, now: float | None = None) -> str:
    """Build ``<directory>/<ms-timestamp>-<filename>`` with every segment sanitized.

    >>> object_key("avatars/../users", "me.png", now=1700000000.0)
    'avatars/users/1700000000000-me.png'
    """
    parts = [
        safe_filename(part)
        for part in directory.replace("\\", "/").split("/")
        if part not in ("", ".", "..")
    ]
    millis = int((now if now is not None else time.time()) * 1000)
    return "/".join([*parts, f"{millis}-{safe_filename(filename)}"])


class UploadService:
    """Service for upload CRUD and provider uploads."""

    def __init__(
        self,
        session: AsyncSession,
        s3_client: StorageClient,
        gcs_client: StorageClient,
        settings: Settings | None = None,
    ):
        """Initialize upload service.

        Args:
            session: Database session
            s3_client: Client for the 's3' provider
            gcs_client: Client for the 'gcs' provider
            settings: Service settings, defaults to the cached instance
        """
        self.repository = UploadRepository(session)
        self.clients: dict[str, StorageClient] = {
            PROVIDER_S3: s3_client,
            PROVIDER_GCS: gcs_client,
        }
        self.settings = settings or get_settings()

    def _client(self, provider: str) -> StorageClient:
        client = self.clients.get(provider)
        if client is None:
            raise BadRequest(f"unsupported upload provider: {provider}")
        return client

    @staticmethod
    def _parse_ids(ids: Iterable[str | UUID]) -> list[UUID]:
        ids = list(ids)
        if not ids:
            raise BadRequest("ids cannot be empty")

        parsed = []
        invalid = []
        for value in ids:
            if isinstance(value, UUID):
                parsed.append(value)
                continue
            try:
                parsed.append(UUID(str(value)))
            except ValueError:
                invalid.append(str(value))

        if invalid:
            raise BadRequest("ids must be valid UUIDs", errors={"invalid_ids": invalid})
        return parsed

    # Reads

    async def find_all(self, params: ListParams) -> tuple[list[UploadModel], int]:
        """List live uploads.

        Returns:
            Tuple of (page of uploads, total matching uploads)
        """
        items = await self.repository.list_uploads(
            provider=params.provider,
            keyword=params.keyword,
            limit=params.page_size,
            offset=params.offset,
            newest_first=params.order == "desc",
        )
        total = await self.repository.count_uploads(
            provider=params.provider,
            keyword=params.keyword,
        )
        return items, total

    async def find_by_id(self, upload_id: UUID, include_deleted: bool = False) -> UploadModel:
        """Get an upload or raise NotFound."""
        upload = await self.repository.get_by_id(upload_id, include_deleted=include_deleted)
        if upload is None:
            raise NotFound(NOT_FOUND_MESSAGE)
        return upload

    # Signed URLs

    async def _signed_url(self, provider: str, keyfile: str) -> dict[str, Any]:
        return await self._client(provider).generate_presigned_download_url(
            keyfile,
            expires_in=self.settings.signed_url_expiry_seconds,
        )

    async def get_signed_url_s3(self, keyfile: str) -> str:
        """Download URL for an S3 object."""
        result = await self._signed_url(PROVIDER_S3, keyfile)
        return result["presigned_url"]

    async def get_signed_url_gcs(self, keyfile: str) -> str:
        """Download URL for a GCS object."""
        result = await self._signed_url(PROVIDER_GCS, keyfile)
        return result["presigned_url"]

    # Provider uploads

    async def _upload_with_signed_url(
        self,
        provider: str,
        file: TempFile,
        directory: str,
        upload_id: UUID | None = None,
    ) -> dict[str, Any]:
        client = self._client(provider)

        # Unknown upload_id is a 404 before anything reaches the provider
        existing = await self.find_by_id(upload_id) if upload_id else None

        keyfile = object_key(directory, file.filename)
        start_time = time.perf_counter()
        try:
            provider_data = await client.upload_file(file.path, keyfile, content_type=file.mimetype)
            signed = await self._signed_url(provider, keyfile)
        except Exception as e:
            UPLOAD_FILES.labels(provider=provider, status="failed").inc()
            logger.error(
                "provider_upload_failed",
                provider=provider,
                keyfile=keyfile,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise
        UPLOAD_DURATION.labels(provider=provider).observe(time.perf_counter() - start_time)
        UPLOAD_FILES.labels(provider=provider, status="success").inc()

        values = {
            "keyfile": keyfile,
            "provider": provider,
            "filename": file.filename,
            "mimetype": file.mimetype,
            "size": file.size,
            "signed_url": signed["presigned_url"],
            "expiry_date_url": signed["expires_at"],
        }
        if existing is None:
            upload = await self.repository.create(**values)
            logger.info("upload_created", upload_id=str(upload.id), provider=provider, keyfile=keyfile)
        else:
            upload = await self.repository.update(existing, **values)
            logger.info("upload_updated", upload_id=str(upload.id), provider=provider, keyfile=keyfile)

        return {"provider_data": provider_data, "upload_data": upload}

    async def upload_file_s3_with_signed_url(
        self,
        file: TempFile,
        directory: str,
        upload_id: UUID | None = None,
    ) -> dict[str, Any]:
        """Push ``file`` to S3 and create (or rewrite ``upload_id``) its record.

        Returns:
            Dict with provider_data (S3 put result) and upload_data (record)
        """
        return await self._upload_with_signed_url(PROVIDER_S3, file, directory, upload_id)

    async def upload_file_gcs_with_signed_url(
        self,
        file: TempFile,
        directory: str,
        upload_id: UUID | None = None,
    ) -> dict[str, Any]:
        """Push ``file`` to GCS and create (or rewrite ``upload_id``) its record.

        Returns:
            Dict with provider_data (GCS blob description) and upload_data (record)
        """
        return await self._upload_with_signed_url(PROVIDER_GCS, file, directory, upload_id)

    # Lifecycle

    async def restore(self, upload_id: UUID) -> UploadModel:
        """Clear the soft-delete marker of an upload."""
        upload = await self.find_by_id(upload_id, include_deleted=True)
        await self.repository.restore(upload)
        logger.info("upload_restored", upload_id=str(upload_id))
        return upload

    async def soft_delete(self, upload_id: UUID) -> UploadModel:
        """Hide a live upload from reads."""
        upload = await self.find_by_id(upload_id)
        await self.repository.soft_delete(upload)
        logger.info("upload_soft_deleted", upload_id=str(upload_id))
        return upload

    async def _delete_stored_object(self, upload: UploadModel) -> None:
        client = self.clients.get(upload.provider)
        if client is None:
            logger.warning("unknown_provider_on_delete", upload_id=str(upload.id), provider=upload.provider)
            return
        try:
            await client.delete_object(upload.keyfile)
        except Exception as e:
            logger.warning(
                "stored_object_delete_failed",
                upload_id=str(upload.id),
                provider=upload.provider,
                keyfile=upload.keyfile,
                error=str(e),
            )

    async def force_delete(self, upload_id: UUID) -> None:
        """Permanently remove an upload, live or soft-deleted, and its object."""
        upload = await self.find_by_id(upload_id, include_deleted=True)
        await self._delete_stored_object(upload)
        await self.repository.delete(upload)
        logger.info("upload_force_deleted", upload_id=str(upload_id), keyfile=upload.keyfile)

    async def multiple_restore(self, ids: Iterable[str | UUID]) -> int:
        """Restore every soft-deleted upload in ``ids``; returns the count."""
        upload_ids = self._parse_ids(ids)
        count = await self.repository.restore_many(upload_ids)
        logger.info("uploads_restored", requested=len(upload_ids), restored=count)
        return count

    async def multiple_soft_delete(self, ids: Iterable[str | UUID]) -> int:
        """Soft-delete every live upload in ``ids``; returns the count."""
        upload_ids = self._parse_ids(ids)
        count = await self.repository.soft_delete_many(upload_ids)
        logger.info("uploads_soft_deleted", requested=len(upload_ids), deleted=count)
        return count

    async def multiple_force_delete(self, ids: Iterable[str | UUID]) -> int:
        """Permanently remove every upload in ``ids``; returns the count."""
        upload_ids = self._parse_ids(ids)
        for upload in await self.repository.list_by_ids(upload_ids, include_deleted=True):
            await self._delete_stored_object(upload)
        count = await self.repository.delete_many(upload_ids)
        logger.info("uploads_force_deleted", requested=len(upload_ids), deleted=count)
        return count

    # Maintenance

    async def refresh_expired_signed_urls(
        self,
        now: datetime | None = None,
        limit: int | None = None,
    ) -> int:
        """Regenerate the download URL of live uploads whose URL has expired.

        An upload whose provider call fails has ``expiry_date_url`` moved to
        ``now + signed_url_refresh_retry_seconds`` and is picked up again then.

        Args:
            now: Reference time, defaults to the current UTC time
            limit: Maximum uploads handled in one call

        Returns:
            Number of uploads refreshed
        """
        now = now or datetime.now(timezone.utc)
        retry_at = now + timedelta(seconds=self.settings.signed_url_refresh_retry_seconds)
        expired = await self.repository.list_expired_signed_urls(
            now=now,
            limit=limit or self.settings.signed_url_refresh_batch_size,
        )

        refreshed = 0
        for upload in expired:
            try:
                signed = await self._signed_url(upload.provider, upload.keyfile)
            except Exception as e:
                SIGNED_URLS_REFRESHED.labels(provider=upload.provider, status="failed").inc()
                logger.warning(
                    "signed_url_refresh_failed",
                    upload_id=str(upload.id),
                    provider=upload.provider,
                    error=str(e),
                )
                # Requeue behind the rest of the backlog
                await self.repository.postpone_refresh(upload, retry_at)
                continue
            await self.repository.update(
                upload,
                signed_url=signed["presigned_url"],
                expiry_date_url=signed["expires_at"],
            )
            SIGNED_URLS_REFRESHED.labels(provider=upload.provider, status="success").inc()
            refreshed += 1

        if expired:
            logger.info("signed_urls_refreshed", expired=len(expired), refreshed=refreshed)
        return refreshed
