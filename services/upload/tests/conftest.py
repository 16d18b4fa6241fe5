"""Pytest fixtures for Upload service tests."""

from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from services.upload.app.auth.jwt import create_access_token
from services.upload.app.auth.roles import ROLE_ADMIN_NAME, ROLE_SUPER_ADMIN, ROLE_USER
from services.upload.app.config import Settings, get_settings
from services.upload.app.db.models import Base, UploadModel
from services.upload.app.dependencies import get_db, get_gcs_client, get_s3_client
from services.upload.app.main import app
from services.upload.app.upload.files import TempFile
from services.upload.app.upload.service import UploadService

SIGNED_URL_LIFETIME = timedelta(days=7)


@pytest.fixture
async def db_engine():
    """Create in-memory SQLite database engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for testing."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def session_scope(session_factory):
    """Committing session context, shaped like ``get_db_session``."""

    @asynccontextmanager
    async def scope():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    return scope


def _mock_storage_client(provider: str, bucket: str) -> MagicMock:
    mock = MagicMock()
    mock.provider = provider
    mock.bucket = bucket

    async def download_url(key: str, expires_in: int = 3600):
        return {
            "presigned_url": f"https://{provider}.example.com/{bucket}/{key}?signature=test",
            "expires_at": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
        }

    mock.generate_presigned_download_url = AsyncMock(side_effect=download_url)
    mock.upload_file = AsyncMock(
        side_effect=lambda path, key, content_type="application/octet-stream", metadata=None: {
            "bucket": bucket,
            "key": key,
        }
    )
    mock.delete_object = AsyncMock(return_value=None)
    mock.check_object_exists = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def mock_s3_client():
    """Create mock S3 client for testing."""
    return _mock_storage_client("s3", "test-bucket")


@pytest.fixture
def mock_gcs_client():
    """Create mock GCS client for testing."""
    return _mock_storage_client("gcs", "test-gcs-bucket")


@pytest.fixture
def test_settings(tmp_path):
    """Create test settings."""
    return Settings(
        environment="test",
        database_url="sqlite+aiosqlite:///:memory:",
        upload_temp_dir=str(tmp_path / "temp"),
        max_upload_size_mb=1,
    )


@pytest.fixture
def upload_service(db_session, mock_s3_client, mock_gcs_client, test_settings) -> UploadService:
    """Upload service over the test session and mocked providers."""
    return UploadService(db_session, mock_s3_client, mock_gcs_client, test_settings)


@pytest.fixture
async def test_client(
    session_scope,
    mock_s3_client,
    mock_gcs_client,
    test_settings,
) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with mocked dependencies."""

    async def override_get_db():
        async with session_scope() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_s3_client] = lambda: mock_s3_client
    app.dependency_overrides[get_gcs_client] = lambda: mock_gcs_client
    app.dependency_overrides[get_settings] = lambda: test_settings

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()


def _auth_header(role: str) -> dict[str, str]:
    token = create_access_token(uuid4(), email=f"{role}@example.com", role=role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_headers() -> dict[str, str]:
    """Bearer header for a regular user."""
    return _auth_header(ROLE_USER)


@pytest.fixture
def admin_headers() -> dict[str, str]:
    """Bearer header for an admin."""
    return _auth_header(ROLE_ADMIN_NAME)


@pytest.fixture
def super_admin_headers() -> dict[str, str]:
    """Bearer header for a super admin."""
    return _auth_header(ROLE_SUPER_ADMIN)


@pytest.fixture
def temp_file(tmp_path) -> TempFile:
    """A spooled file as produced by save_temp_file."""
    path = tmp_path / "spooled-report.pdf"
    path.write_bytes(b"%PDF-1.4 test content")
    return TempFile(path=path, filename="report.pdf", mimetype="application/pdf", size=21)


def _make_upload(**overrides) -> UploadModel:
    now = datetime.now(timezone.utc)
    values = {
        "id": uuid4(),
        "keyfile": f"uploads/{int(now.timestamp() * 1000)}-report.pdf",
        "provider": "s3",
        "filename": "report.pdf",
        "mimetype": "application/pdf",
        "size": 1024,
        "signed_url": "https://s3.example.com/test-bucket/report.pdf?signature=old",
        "expiry_date_url": now + SIGNED_URL_LIFETIME,
        "created_at": now,
        "updated_at": now,
        "deleted_at": None,
    }
    values.update(overrides)
    return UploadModel(**values)


@pytest.fixture
def make_upload():
    """Factory for upload rows with sensible defaults."""
    return _make_upload


@pytest.fixture
async def existing_upload(session_factory) -> UploadModel:
    """A committed live upload."""
    upload = _make_upload()
    async with session_factory() as session:
        session.add(upload)
        await session.commit()
    return upload


@pytest.fixture
async def deleted_upload(session_factory) -> UploadModel:
    """A committed soft-deleted upload."""
    upload = _make_upload(
        keyfile="uploads/1700000000000-old.pdf",
        filename="old.pdf",
        deleted_at=datetime.now(timezone.utc),
    )
    async with session_factory() as session:
        session.add(upload)
        await session.commit()
    return upload
