"""Authentication module for HS256 bearer token validation."""
import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.config import Settings, get_settings

# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)

JWT_ALGORITHM = "HS256"


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_jwt(token: str, settings: Settings) -> dict:
    """
    Decode and validate an HS256 token signed with the shared secret.

    Raises:
        HTTPException: If the token is invalid, expired, or has the wrong issuer.
    """
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[JWT_ALGORITHM],
            issuer=settings.jwt_issuer,
        )
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidIssuerError:
        raise _unauthorized("Invalid issuer")
    except jwt.PyJWTError:
        raise _unauthorized("Invalid token")


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    settings: Settings = Depends(get_settings),
) -> str:
    """
    Dependency that validates the bearer token and returns the caller's user id.

    The id comes from the `user_id` claim, falling back to `sub`.
    In DEV_MODE, bypasses auth and returns the configured dev user id.
    """
    if settings.dev_mode:
        return settings.dev_user_id

    if credentials is None:
        raise _unauthorized("Not authenticated")

    payload = decode_jwt(credentials.credentials, settings)

    user_id = payload.get("user_id") or payload.get("sub")
    if not user_id:
        raise _unauthorized("Invalid token: missing user_id claim")
    return str(user_id)
