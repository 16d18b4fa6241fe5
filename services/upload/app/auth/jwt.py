"""JWT token handling."""

from datetime import datetime, timedelta, timezone
from uuid import UUID

from jose import JWTError, jwt
from pydantic import BaseModel

from services.upload.app.auth.roles import ROLE_USER
from services.upload.app.config import get_settings


class TokenData(BaseModel):
    """Token payload data."""

    sub: str  # Subject (user_id)
    email: str | None = None
    role: str = ROLE_USER
    token_type: str = "access"
    exp: datetime | None = None
    iat: datetime | None = None


def create_access_token(
    user_id: UUID | str,
    email: str | None = None,
    role: str = ROLE_USER,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT access token.

    The upload service only verifies tokens; this is used by tooling and
    tests that need a token signed with the service's key.

    Args:
        user_id: User UUID
        email: User email
        role: Role name, see ``auth.roles``
        expires_delta: Custom expiration time

    Returns:
        Encoded JWT token
    """
    settings = get_settings()

    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.jwt_access_token_expire_minutes)

    now = datetime.now(timezone.utc)
    expire = now + expires_delta

    payload = {
        "sub": str(user_id),
        "email": email,
        "role": role,
        "token_type": "access",
        "exp": expire,
        "iat": now,
    }

    return jwt.encode(
        payload,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


def verify_token(token: str, expected_type: str = "access") -> TokenData | None:
    """Verify and decode a JWT token.

    Args:
        token: JWT token string
        expected_type: Expected token type

    Returns:
        TokenData if valid, None if invalid or expired
    """
    settings = get_settings()

    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        return None

    if payload.get("token_type") != expected_type or "sub" not in payload:
        return None

    return TokenData(
        sub=payload["sub"],
        email=payload.get("email"),
        role=payload.get("role") or ROLE_USER,
        token_type=payload["token_type"],
        exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc) if "exp" in payload else None,
        iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc) if "iat" in payload else None,
    )
