from datetime import datetime, timedelta, timezone

from sqlalchemy import select, update, delete, or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.users.user_models import User, RefreshToken
from app.core.security import (
    verify_password,
    create_access_token,
    access_token_lifetime,
    new_refresh_token,
    hash_refresh_token,
)
from app.core.config import REFRESH_TOKEN_EXPIRE_DAYS
from app.core.exceptions import AppException, AuthenticationException
from app.constants.error_codes import ErrorCode
from app.constants.activity_codes import ActivityCode
from app.middleware.request_logging import request_client
from app.schemas.auth.auth_schemas import LoginResponse, RefreshResponse, TokenPair, AuthUser, SessionOut
from app.utils.activity_helpers import emit_activity
from app.utils.logger import get_logger

logger = get_logger("auth.service")


def _actor(user: User) -> dict:
    return dict(
        user_id=user.id,
        username=user.username,
        actor_role=user.role.capitalize(),
        actor_email=user.username,
    )


def _issue_tokens(db: AsyncSession, user: User) -> TokenPair:
    value, digest = new_refresh_token()
    db.add(
        RefreshToken(
            user_id=user.id,
            token_hash=digest,
            user_agent=(request_client.get().get("user_agent") or "")[:255] or None,
            expires_at=datetime.now(timezone.utc) + timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS),
        )
    )
    lifetime = access_token_lifetime(user.role)
    access = create_access_token(
        subject=user.username,
        token_version=user.token_version,
        role=user.role,
        expires_delta=lifetime,
    )
    return TokenPair(
        access_token=access,
        refresh_token=value,
        expires_in=int(lifetime.total_seconds()),
    )


# =====================================================
# LOGIN
# =====================================================
async def login_user(db: AsyncSession, email: str, password: str) -> LoginResponse:
    user = (
        await db.execute(select(User).where(User.username == email.lower()))
    ).scalar_one_or_none()

    if not user or not verify_password(password, user.password_hash):
        logger.warning("Invalid credentials", extra={"email": email})
        await emit_activity(
            db,
            user_id=user.id if user else None,
            username=email,
            code=ActivityCode.LOGIN_FAILED,
            entity_type="USER",
            entity_id=user.id if user else None,
            target_email=email,
        )
        await db.commit()
        raise AuthenticationException("Invalid credentials", ErrorCode.INVALID_CREDENTIALS)

    if not user.is_active:
        logger.warning("Inactive user login blocked", extra={"user_id": user.id})
        raise AppException(403, "User account is inactive", ErrorCode.ACCOUNT_INACTIVE)

    user.last_login = datetime.now(timezone.utc)
    user.is_online = True
    tokens = _issue_tokens(db, user)

    await emit_activity(
        db,
        code=ActivityCode.LOGIN,
        entity_type="USER",
        entity_id=user.id,
        **_actor(user),
    )
    await db.commit()

    logger.info("Login successful", extra={"user_id": user.id, "role": user.role})
    return LoginResponse(
        auth=tokens,
        user=AuthUser(id=user.id, username=user.username, full_name=user.full_name, role=user.role),
    )


# =====================================================
# REFRESH (ROTATING)
# =====================================================
async def refresh_tokens(db: AsyncSession, refresh_token_value: str) -> RefreshResponse:
    stored = (
        await db.execute(
            select(RefreshToken)
            .where(RefreshToken.token_hash == hash_refresh_token(refresh_token_value))
            .with_for_update()
        )
    ).scalar_one_or_none()

    if stored is None:
        raise AuthenticationException("Invalid refresh token", ErrorCode.TOKEN_INVALID)

    if stored.revoked:
        # A rotated token came back: treat the whole session family as leaked
        logger.warning("Revoked refresh token reused", extra={"user_id": stored.user_id})
        await db.execute(
            update(RefreshToken).where(RefreshToken.user_id == stored.user_id).values(revoked=True)
        )
        await db.commit()
        raise AuthenticationException("Refresh token has been revoked", ErrorCode.SESSION_REVOKED)

    expires_at = stored.expires_at
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    if expires_at <= datetime.now(timezone.utc):
        raise AuthenticationException("Refresh token has expired", ErrorCode.TOKEN_EXPIRED)

    user = await db.get(User, stored.user_id)
    if not user or not user.is_active:
        logger.warning("Refresh blocked for inactive user", extra={"user_id": stored.user_id})
        raise AppException(403, "User account is inactive", ErrorCode.ACCOUNT_INACTIVE)

    stored.revoked = True
    tokens = _issue_tokens(db, user)
    await db.commit()

    logger.info("Token refreshed", extra={"user_id": user.id})
    return RefreshResponse(**tokens.model_dump(), role=user.role)


# =====================================================
# LOGOUT
# =====================================================
async def logout_user(db: AsyncSession, user: User) -> None:
    user.token_version += 1
    user.is_online = False

    await db.execute(
        update(RefreshToken)
        .where(RefreshToken.user_id == user.id, RefreshToken.revoked.is_(False))
        .values(revoked=True)
    )

    await emit_activity(
        db,
        code=ActivityCode.LOGOUT,
        entity_type="USER",
        entity_id=user.id,
        **_actor(user),
    )
    await db.commit()

    logger.info("Logout successful", extra={"user_id": user.id})


# =====================================================
# SESSIONS
# =====================================================
async def list_sessions(db: AsyncSession, user: User) -> list[SessionOut]:
    rows = (
        await db.execute(
            select(RefreshToken)
            .where(
                RefreshToken.user_id == user.id,
                RefreshToken.revoked.is_(False),
                RefreshToken.expires_at > datetime.now(timezone.utc),
            )
            .order_by(RefreshToken.created_at.desc())
        )
    ).scalars().all()
    return [SessionOut.model_validate(r) for r in rows]


async def purge_stale_refresh_tokens(db: AsyncSession, retain_days: int = 7) -> int:
    """Delete refresh tokens that expired or were revoked more than `retain_days` ago."""
    cutoff = datetime.now(timezone.utc) - timedelta(days=retain_days)
    result = await db.execute(
        delete(RefreshToken).where(
            or_(
                RefreshToken.expires_at < cutoff,
                (RefreshToken.revoked.is_(True)) & (RefreshToken.created_at < cutoff),
            )
        )
    )
    return result.rowcount or 0
