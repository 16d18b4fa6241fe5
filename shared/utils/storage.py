"""Storage client wrappers for AWS S3 and Google Cloud Storage."""

import asyncio
import threading
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from functools import partial
from pathlib import Path
from typing import Any, AsyncIterator, Callable

import aiofiles
from aiobotocore.session import get_session
from google.api_core.exceptions import NotFound as GCSNotFound
from google.cloud import storage as gcs

from shared.utils.logging import get_logger

logger = get_logger(__name__)

PROVIDER_S3 = "s3"
PROVIDER_GCS = "gcs"
PROVIDERS = (PROVIDER_S3, PROVIDER_GCS)

# SigV4 (S3) and V4 (GCS) signatures both cap out at seven days
MAX_SIGNED_URL_SECONDS = 7 * 24 * 60 * 60


def _expires_at(expires_in: int) -> datetime:
    return datetime.now(timezone.utc) + timedelta(seconds=expires_in)


class StorageClient(ABC):
    """Abstract base class for storage clients."""

    provider: str
    bucket: str

    @abstractmethod
    async def generate_presigned_download_url(
        self,
        key: str,
        expires_in: int = 3600,
    ) -> dict[str, Any]:
        """Generate a URL for downloading directly from the bucket."""

    @abstractmethod
    async def upload_file(
        self,
        path: str | Path,
        key: str,
        content_type: str = "application/octet-stream",
        metadata: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Upload a local file and return the provider's object description."""

    @abstractmethod
    async def delete_object(self, key: str) -> None:
        """Delete an object. Deleting a missing object is not an error."""

    @abstractmethod
    async def check_object_exists(self, key: str) -> bool:
        """Check if an object exists."""


class S3Client(StorageClient):
    """Async S3 client wrapper."""

    provider = PROVIDER_S3

    def __init__(
        self,
        bucket: str,
        region: str = "us-east-1",
        endpoint_url: str | None = None,
        public_endpoint_url: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
    ):
        """Initialize S3 client.

        Args:
            bucket: S3 bucket name
            region: AWS region
            endpoint_url: Custom endpoint (for LocalStack/MinIO)
            public_endpoint_url: Endpoint browsers should use in presigned URLs
            access_key: AWS access key (or fake for LocalStack)
            secret_key: AWS secret key (or fake for LocalStack)
        """
        self.bucket = bucket
        self.region = region
        self.endpoint_url = endpoint_url
        self.public_endpoint_url = public_endpoint_url
        # LocalStack accepts any credentials but botocore still needs some
        self.access_key = access_key or ("test" if endpoint_url else None)
        self.secret_key = secret_key or ("test" if endpoint_url else None)
        self._session = get_session()

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[Any]:
        async with self._session.create_client(
            "s3",
            region_name=self.region,
            endpoint_url=self.endpoint_url,
            aws_access_key_id=self.access_key,
            aws_secret_access_key=self.secret_key,
        ) as client:
            yield client

    def _publicize(self, url: str) -> str:
        """Rewrite an internal endpoint to the browser-reachable one."""
        if self.endpoint_url and self.public_endpoint_url:
            return url.replace(self.endpoint_url, self.public_endpoint_url, 1)
        return url

    async def generate_presigned_download_url(
        self,
        key: str,
        expires_in: int = 3600,
    ) -> dict[str, Any]:
        """Generate a pre-signed GET URL.

        Args:
            key: S3 object key
            expires_in: URL expiration time in seconds

        Returns:
            Dict with presigned_url and expires_at
        """
        async with self._client() as client:
            url = await client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=expires_in,
            )

        return {"presigned_url": self._publicize(url), "expires_at": _expires_at(expires_in)}

    async def upload_file(
        self,
        path: str | Path,
        key: str,
        content_type: str = "application/octet-stream",
        metadata: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Upload a local file to S3.

        Args:
            path: Local file path
            key: S3 object key
            content_type: MIME type of the content
            metadata: Optional metadata to store with the object

        Returns:
            Dict with bucket, key, etag and version_id
        """
        async with aiofiles.open(path, "rb") as f:
            data = await f.read()

        put_params: dict[str, Any] = {
            "Bucket": self.bucket,
            "Key": key,
            "Body": data,
            "ContentType": content_type,
        }
        if metadata:
            put_params["Metadata"] = metadata

        async with self._client() as client:
            response = await client.put_object(**put_params)

        logger.info("s3_upload_complete", bucket=self.bucket, key=key, size=len(data))
        return {
            "bucket": self.bucket,
            "key": key,
            "etag": response.get("ETag"),
            "version_id": response.get("VersionId"),
        }

    async def delete_object(self, key: str) -> None:
        """Delete an object from S3."""
        async with self._client() as client:
            await client.delete_object(Bucket=self.bucket, Key=key)
        logger.info("s3_object_deleted", bucket=self.bucket, key=key)

    async def check_object_exists(self, key: str) -> bool:
        """Check if an object exists in S3.

        Args:
            key: S3 object key

        Returns:
            True if object exists, False otherwise
        """
        async with self._client() as client:
            try:
                await client.head_object(Bucket=self.bucket, Key=key)
                return True
            except client.exceptions.ClientError as e:
                if e.response["Error"]["Code"] == "404":
                    return False
                raise


class GCSClient(StorageClient):
    """Google Cloud Storage client wrapper.

    The google-cloud-storage SDK is blocking, so every SDK call, including
    building the client itself, runs in the event loop's default executor.
    """

    provider = PROVIDER_GCS

    def __init__(
        self,
        bucket: str,
        project_id: str | None = None,
        credentials_file: str | None = None,
    ):
        """Initialize GCS client.

        Args:
            bucket: GCS bucket name
            project_id: Google Cloud project; falls back to the environment default
            credentials_file: Service account JSON; falls back to
                GOOGLE_APPLICATION_CREDENTIALS / workload identity
        """
        self.bucket = bucket
        self.project_id = project_id
        self.credentials_file = credentials_file
        self._client: gcs.Client | None = None
        self._client_lock = threading.Lock()

    @property
    def client(self) -> gcs.Client:
        """SDK client, built once on first use. Blocking: call it from the executor."""
        with self._client_lock:
            if self._client is None:
                if self.credentials_file:
                    self._client = gcs.Client.from_service_account_json(
                        self.credentials_file, project=self.project_id
                    )
                else:
                    self._client = gcs.Client(project=self.project_id)
            return self._client

    def _blob(self, key: str) -> gcs.Blob:
        return self.client.bucket(self.bucket).blob(key)

    async def _run(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(func, *args, **kwargs))

    async def _call_blob(self, key: str, method: str, /, *args: Any, **kwargs: Any) -> Any:
        def call() -> Any:
            return getattr(self._blob(key), method)(*args, **kwargs)

        return await self._run(call)

    async def generate_presigned_download_url(
        self,
        key: str,
        expires_in: int = 3600,
    ) -> dict[str, Any]:
        """Generate a V4 signed GET URL."""
        url = await self._call_blob(
            key,
            "generate_signed_url",
            version="v4",
            method="GET",
            expiration=timedelta(seconds=expires_in),
        )
        return {"presigned_url": url, "expires_at": _expires_at(expires_in)}

    def _upload_sync(
        self,
        path: str,
        key: str,
        content_type: str,
        metadata: dict[str, str] | None,
    ) -> dict[str, Any]:
        blob = self._blob(key)
        if metadata:
            blob.metadata = metadata
        blob.upload_from_filename(path, content_type=content_type)
        return {
            "bucket": self.bucket,
            "key": key,
            "generation": blob.generation,
            "md5_hash": blob.md5_hash,
            "size": blob.size,
            "content_type": blob.content_type,
        }

    async def upload_file(
        self,
        path: str | Path,
        key: str,
        content_type: str = "application/octet-stream",
        metadata: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Upload a local file to GCS.

        Returns:
            Dict with bucket, key, generation, md5_hash, size and content_type
        """
        result = await self._run(self._upload_sync, str(path), key, content_type, metadata)
        logger.info("gcs_upload_complete", bucket=self.bucket, key=key, size=result["size"])
        return result

    async def delete_object(self, key: str) -> None:
        """Delete an object from GCS."""
        try:
            await self._call_blob(key, "delete")
        except GCSNotFound:
            logger.info("gcs_object_already_deleted", bucket=self.bucket, key=key)
            return
        logger.info("gcs_object_deleted", bucket=self.bucket, key=key)

    async def check_object_exists(self, key: str) -> bool:
        """Check if an object exists in GCS."""
        return await self._call_blob(key, "exists")


def get_storage_client(
    provider: str = PROVIDER_S3,
    bucket: str = "uploads",
    region: str = "us-east-1",
    endpoint_url: str | None = None,
    public_endpoint_url: str | None = None,
    access_key: str | None = None,
    secret_key: str | None = None,
    project_id: str | None = None,
    credentials_file: str | None = None,
) -> StorageClient:
    """Factory function to create the storage client for a provider.

    Args:
        provider: 's3' or 'gcs' (case insensitive)
        bucket: Bucket name
        region: AWS region (S3 only)
        endpoint_url: Custom endpoint URL (S3 only, for LocalStack/MinIO)
        public_endpoint_url: Browser-facing endpoint (S3 only)
        access_key: AWS access key (S3 only)
        secret_key: AWS secret key (S3 only)
        project_id: Google Cloud project (GCS only)
        credentials_file: Service account JSON path (GCS only)

    Returns:
        StorageClient instance (either S3Client or GCSClient)

    Raises:
        ValueError: If provider is not supported
    """
    provider = provider.lower()

    if provider == PROVIDER_S3:
        logger.debug(
            "creating_storage_client",
            provider=provider,
            bucket=bucket,
            endpoint_url=endpoint_url,
        )
        return S3Client(
            bucket=bucket,
            region=region,
            endpoint_url=endpoint_url,
            public_endpoint_url=public_endpoint_url,
            access_key=access_key,
            secret_key=secret_key,
        )
    if provider == PROVIDER_GCS:
        logger.debug("creating_storage_client", provider=provider, bucket=bucket, project_id=project_id)
        return GCSClient(
            bucket=bucket,
            project_id=project_id,
            credentials_file=credentials_file,
        )
    raise ValueError(f"Invalid provider: {provider}. Use 's3' or 'gcs'")
