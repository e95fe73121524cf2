# app/services/mail/mail_oauth_service.py

import secrets
from datetime import timedelta
from urllib.parse import urlencode

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import (
    APP_BASE_URL,
    MICROSOFT_GRAPH_AUTH_URL,
    MICROSOFT_GRAPH_CLIENT_ID,
    MICROSOFT_GRAPH_SCOPE,
    MAIL_OAUTH_STATE_TTL_MINUTES,
    MAIL_OAUTH_REDIRECT_PATH,
)
from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.constants.activity_codes import ActivityCode
from app.models.mail.mail_models import MailOAuth2Config, MailOAuth2State
from app.models.users.user_models import User
from app.models.base.mixins import utcnow
from app.schemas.mail.mail_schemas import MailStatusOut, AuthorizationUrlOut
from app.services.mail.graph_client import (
    is_microsoft_configured,
    load_config,
    request_token,
    fetch_sender_email,
)
from app.utils.activity_helpers import emit_activity
from app.utils.logger import get_logger

logger = get_logger(__name__)


def redirect_uri() -> str:
    return f"{APP_BASE_URL}{MAIL_OAUTH_REDIRECT_PATH}"


def _ensure_microsoft_configured() -> None:
    if not is_microsoft_configured():
        raise AppException(
            400,
            "Microsoft Graph is not configured. Set MICROSOFT_GRAPH_CLIENT_ID and MICROSOFT_GRAPH_CLIENT_SECRET.",
            ErrorCode.MAIL_NOT_CONFIGURED,
        )


# =====================================================
# STATUS
# =====================================================
async def get_mail_status(db: AsyncSession) -> MailStatusOut:
    config = await load_config(db)
    if config is None:
        return MailStatusOut(connected=False, microsoft_configured=is_microsoft_configured())
    return MailStatusOut(
        connected=True,
        microsoft_configured=is_microsoft_configured(),
        sender_email=config.sender_email,
        connected_at=config.connected_at,
        connected_by_id=config.connected_by_id,
    )


# =====================================================
# AUTHORIZATION
# =====================================================
async def purge_expired_states(db: AsyncSession) -> int:
    result = await db.execute(
        delete(MailOAuth2State).where(MailOAuth2State.expires_at < utcnow())
    )
    return result.rowcount or 0


async def create_authorization_url(db: AsyncSession, admin: User) -> AuthorizationUrlOut:
    _ensure_microsoft_configured()
    await purge_expired_states(db)

    state = MailOAuth2State(
        state=secrets.token_urlsafe(32),
        created_by_id=admin.id,
        expires_at=utcnow() + timedelta(minutes=MAIL_OAUTH_STATE_TTL_MINUTES),
    )
    db.add(state)
    await db.commit()

    query = urlencode(
        {
            "client_id": MICROSOFT_GRAPH_CLIENT_ID,
            "response_type": "code",
            "redirect_uri": redirect_uri(),
            "response_mode": "query",
            "scope": MICROSOFT_GRAPH_SCOPE,
            "state": state.state,
        }
    )
    logger.info("Mail authorization started", extra={"user_id": admin.id})
    return AuthorizationUrlOut(
        authorization_url=f"{MICROSOFT_GRAPH_AUTH_URL}?{query}",
        expires_at=state.expires_at,
    )


async def handle_callback(db: AsyncSession, code: str, state_value: str) -> MailOAuth2Config:
    """
    Exchange an authorization code for a refresh token and store it as the
    single mail configuration. The state row is consumed.
    """
    _ensure_microsoft_configured()

    state = (
        await db.execute(select(MailOAuth2State).where(MailOAuth2State.state == state_value))
    ).scalar_one_or_none()
    if state is None:
        raise AppException(400, "Invalid OAuth2 state parameter", ErrorCode.MAIL_OAUTH_STATE_INVALID)

    expires_at = state.expires_at
    now = utcnow()
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=now.tzinfo)
    if expires_at < now:
        await db.delete(state)
        await db.commit()
        raise AppException(
            400,
            "OAuth2 state has expired. Please try again.",
            ErrorCode.MAIL_OAUTH_STATE_EXPIRED,
        )

    token = await request_token(
        {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri(),
        }
    )
    refresh_token = token.get("refresh_token")
    if not refresh_token:
        raise AppException(
            400,
            "No refresh token received from Microsoft",
            ErrorCode.MAIL_OAUTH_EXCHANGE_FAILED,
        )

    sender_email = None
    access_token = token.get("access_token")
    if access_token:
        sender_email = await fetch_sender_email(access_token)

    await db.execute(delete(MailOAuth2Config))

    config = MailOAuth2Config(
        sender_email=sender_email,
        refresh_token=refresh_token,
        access_token=access_token,
        access_token_expires_at=(
            now + timedelta(seconds=int(token.get("expires_in", 3600))) if access_token else None
        ),
        connected_by_id=state.created_by_id,
        connected_at=now,
        last_refreshed_at=now,
    )
    db.add(config)
    await db.delete(state)

    connector = await db.get(User, state.created_by_id)
    if connector is not None:
        await emit_activity(
            db,
            user_id=connector.id,
            username=connector.username,
            code=ActivityCode.CONNECT_MAIL,
            entity_type="MAIL_CONFIG",
            actor_role=connector.role.capitalize(),
            actor_email=connector.username,
            sender_email=sender_email or "(unknown)",
        )

    await db.commit()
    logger.info("Mail OAuth2 configured", extra={"user_id": state.created_by_id})
    return config


# =====================================================
# DISCONNECT
# =====================================================
async def disconnect_mail(db: AsyncSession, admin: User) -> None:
    await db.execute(delete(MailOAuth2Config))

    await emit_activity(
        db,
        user_id=admin.id,
        username=admin.username,
        code=ActivityCode.DISCONNECT_MAIL,
        entity_type="MAIL_CONFIG",
        actor_role=admin.role.capitalize(),
        actor_email=admin.username,
    )

    await db.commit()
    logger.info("Mail OAuth2 disconnected", extra={"user_id": admin.id})
