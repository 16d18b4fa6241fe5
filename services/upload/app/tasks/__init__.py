"""Background tasks run inside the service process."""

from services.upload.app.tasks.refresher import SignedUrlRefresher

__all__ = ["SignedUrlRefresher"]
