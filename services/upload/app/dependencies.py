"""FastAPI dependency injection."""

from functools import lru_cache
from typing import Annotated, AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from services.upload.app.config import Settings, get_settings
from services.upload.app.upload.service import UploadService
from shared.utils.db import get_db_session
from shared.utils.storage import PROVIDER_GCS, PROVIDER_S3, StorageClient, get_storage_client


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async with get_db_session() as session:
        yield session


def build_s3_client(settings: Settings) -> StorageClient:
    """S3 client for the configured bucket."""
    return get_storage_client(
        PROVIDER_S3,
        bucket=settings.s3_bucket,
        region=settings.s3_region,
        endpoint_url=settings.s3_endpoint_url,
        public_endpoint_url=settings.s3_public_endpoint_url,
        access_key=settings.s3_access_key,
        secret_key=settings.s3_secret_key,
    )


def build_gcs_client(settings: Settings) -> StorageClient:
    """GCS client for the configured bucket."""
    return get_storage_client(
        PROVIDER_GCS,
        bucket=settings.gcs_bucket,
        project_id=settings.gcs_project_id,
        credentials_file=settings.gcs_credentials_file,
    )


@lru_cache
def get_s3_client() -> StorageClient:
    """Get the process-wide S3 client."""
    return build_s3_client(get_settings())


@lru_cache
def get_gcs_client() -> StorageClient:
    """Get the process-wide GCS client."""
    return build_gcs_client(get_settings())


def get_upload_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    s3_client: Annotated[StorageClient, Depends(get_s3_client)],
    gcs_client: Annotated[StorageClient, Depends(get_gcs_client)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> UploadService:
    """Get upload service dependency."""
    return UploadService(db, s3_client, gcs_client, settings)


# Type aliases for cleaner function signatures
DBSession = Annotated[AsyncSession, Depends(get_db)]
Uploads = Annotated[UploadService, Depends(get_upload_service)]
AppSettings = Annotated[Settings, Depends(get_settings)]
