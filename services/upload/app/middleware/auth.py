"""Authentication and permission dependencies."""

from typing import Annotated, Callable

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from services.upload.app.auth.jwt import TokenData, verify_token
from services.upload.app.core.errors import Forbidden, Unauthorized
from shared.utils.logging import get_logger

logger = get_logger(__name__)

# Security scheme
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)] = None,
) -> TokenData:
    """Dependency to get the caller identified by the bearer token.

    Raises:
        Unauthorized: If the token is missing, malformed or expired
    """
    # Check if already authenticated earlier in the request
    if hasattr(request.state, "user"):
        return request.state.user

    if not credentials:
        raise Unauthorized("missing bearer token")

    token_data = verify_token(credentials.credentials)
    if not token_data:
        logger.debug("token_rejected", path=request.url.path)
        raise Unauthorized("invalid or expired token")

    request.state.user = token_data
    logger.debug("user_authenticated", user_id=token_data.sub, role=token_data.role)
    return token_data


def require_roles(*allowed_roles: str) -> Callable:
    """Dependency factory to require one of ``allowed_roles``.

    Args:
        allowed_roles: Role names accepted by the route

    Returns:
        Dependency function
    """

    async def check_role(
        user: Annotated[TokenData, Depends(get_current_user)],
    ) -> TokenData:
        if user.role not in allowed_roles:
            logger.warning(
                "permission_denied",
                user_id=user.sub,
                role=user.role,
                required=list(allowed_roles),
            )
            raise Forbidden()
        return user

    return check_role

