"""Background task that keeps stored download URLs from going stale."""

import asyncio
import uuid
from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from services.upload.app.config import Settings
from services.upload.app.upload.service import UploadService
from shared.utils.db import get_db_session
from shared.utils.logging import get_logger
from shared.utils.storage import StorageClient

logger = get_logger(__name__)


class SignedUrlRefresher:
    """Periodically regenerates expired signed URLs of live uploads."""

    def __init__(
        self,
        settings: Settings,
        s3_client: StorageClient,
        gcs_client: StorageClient,
        session_scope: Callable[[], AbstractAsyncContextManager[AsyncSession]] = get_db_session,
    ):
        """Initialize refresher.

        Args:
            settings: Service settings (interval and batch size)
            s3_client: Client for the 's3' provider
            gcs_client: Client for the 'gcs' provider
            session_scope: Factory for a committing session context
        """
        self.settings = settings
        self.s3_client = s3_client
        self.gcs_client = gcs_client
        self.session_scope = session_scope
        self.interval = settings.signed_url_refresh_interval_seconds
        self.refresher_id = f"refresher-{uuid.uuid4().hex[:8]}"
        self.running = False
        self._task: asyncio.Task | None = None

    async def run_once(self, now: datetime | None = None) -> int:
        """Refresh one batch of expired URLs; returns how many were refreshed."""
        async with self.session_scope() as session:
            service = UploadService(session, self.s3_client, self.gcs_client, self.settings)
            return await service.refresh_expired_signed_urls(now=now)

    def start(self) -> None:
        """Start the refresh loop on the running event loop."""
        if self._task is not None:
            return
        logger.info("refresher_starting", refresher_id=self.refresher_id, interval=self.interval)
        self.running = True
        self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        """Stop the loop and wait for the current batch to unwind."""
        logger.info("refresher_stopping", refresher_id=self.refresher_id)
        self.running = False
        if self._task is not None:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None
        logger.info("refresher_stopped", refresher_id=self.refresher_id)

    async def _loop(self) -> None:
        while self.running:
            try:
                await self.run_once()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("refresh_error", refresher_id=self.refresher_id, error=str(e))

            try:
                await asyncio.sleep(self.interval)
            except asyncio.CancelledError:
                break
