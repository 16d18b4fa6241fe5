"""Database models and repository."""

from services.upload.app.db.models import Base, UploadModel
from services.upload.app.db.repository import UploadRepository

__all__ = [
    "Base",
    "UploadModel",
    "UploadRepository",
]
