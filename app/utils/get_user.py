from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.core.db import get_db
from app.core.exceptions import AppException, AuthenticationException
from app.core.security import decode_access_token
from app.constants.error_codes import ErrorCode
from app.models.users.user_models import User
from app.utils.logger import get_logger

logger = get_logger("auth.guard")

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the bearer token to an active user whose sessions are still valid."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        logger.warning("Missing bearer token", extra={"path": request.url.path})
        raise AuthenticationException("Authentication required")

    payload = decode_access_token(credentials.credentials)

    user = (
        await db.execute(select(User).where(User.username == payload["sub"]))
    ).scalar_one_or_none()
    if user is None:
        logger.warning("Token user not found", extra={"username": payload["sub"]})
        raise AuthenticationException("Invalid access token", ErrorCode.TOKEN_INVALID)

    if not user.is_active:
        logger.warning("Inactive user access blocked", extra={"user_id": user.id})
        raise AppException(403, "User account is inactive", ErrorCode.ACCOUNT_INACTIVE)

    # Logout, password reset and role changes bump token_version
    if user.token_version != payload.get("token_version"):
        logger.warning("Token version mismatch", extra={"user_id": user.id})
        raise AuthenticationException("Session has been revoked", ErrorCode.SESSION_REVOKED)

    request.state.user = user
    request.state.user_id = user.id
    return user
