"""File upload handling."""

from services.upload.app.upload.service import UploadService

__all__ = ["UploadService"]
