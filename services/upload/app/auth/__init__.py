"""Token verification and role names."""

from services.upload.app.auth.jwt import TokenData, create_access_token, verify_token
from services.upload.app.auth.roles import (
    ROLE_ADMIN,
    ROLE_ADMIN_NAME,
    ROLE_SUPER_ADMIN,
    ROLE_USER,
)

__all__ = [
    "TokenData",
    "create_access_token",
    "verify_token",
    "ROLE_ADMIN",
    "ROLE_ADMIN_NAME",
    "ROLE_SUPER_ADMIN",
    "ROLE_USER",
]
