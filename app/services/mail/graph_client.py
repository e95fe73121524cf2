# app/services/mail/graph_client.py

import base64
from dataclasses import dataclass, field
from datetime import timedelta

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import (
    MICROSOFT_GRAPH_CLIENT_ID,
    MICROSOFT_GRAPH_CLIENT_SECRET,
    MICROSOFT_GRAPH_TOKEN_URL,
    MICROSOFT_GRAPH_API_URL,
    MICROSOFT_GRAPH_SCOPE,
    MAIL_HTTP_TIMEOUT_SECONDS,
)
from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.models.mail.mail_models import MailOAuth2Config
from app.models.base.mixins import utcnow
from app.utils.logger import get_logger

logger = get_logger(__name__)

# Refresh a cached access token this long before Microsoft expires it
TOKEN_EXPIRY_MARGIN = timedelta(minutes=2)


@dataclass
class MailAttachment:
    filename: str
    content: bytes
    content_type: str = "application/pdf"


@dataclass
class MailMessage:
    to: str
    subject: str
    body: str
    cc: list[str] = field(default_factory=list)
    html: bool = True
    attachments: list[MailAttachment] = field(default_factory=list)


def http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=MAIL_HTTP_TIMEOUT_SECONDS)


def is_microsoft_configured() -> bool:
    return bool(MICROSOFT_GRAPH_CLIENT_ID and MICROSOFT_GRAPH_CLIENT_SECRET)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    return body.get("error_description") or body.get("error") or f"HTTP {response.status_code}"


async def request_token(form: dict) -> dict:
    """POST to the Microsoft identity token endpoint and return the JSON body."""
    data = {
        "client_id": MICROSOFT_GRAPH_CLIENT_ID,
        "client_secret": MICROSOFT_GRAPH_CLIENT_SECRET,
        "scope": MICROSOFT_GRAPH_SCOPE,
        **form,
    }
    async with http_client() as client:
        try:
            response = await client.post(MICROSOFT_GRAPH_TOKEN_URL, data=data)
        except httpx.HTTPError as e:
            logger.error("Token endpoint unreachable", extra={"error": str(e)})
            raise AppException(
                502,
                "Microsoft token endpoint is unreachable",
                ErrorCode.MAIL_OAUTH_EXCHANGE_FAILED,
            ) from e

    if response.status_code != 200:
        message = _error_message(response)
        logger.error("Token request failed", extra={"status_code": response.status_code, "error": message})
        raise AppException(
            400,
            f"Microsoft token request failed: {message}",
            ErrorCode.MAIL_OAUTH_EXCHANGE_FAILED,
        )
    return response.json()


async def fetch_sender_email(access_token: str) -> str | None:
    async with http_client() as client:
        try:
            response = await client.get(
                f"{MICROSOFT_GRAPH_API_URL}/me",
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as e:
            logger.warning("Mailbox profile request failed", extra={"error": str(e)})
            return None
    if response.status_code != 200:
        logger.warning("Could not read mailbox profile", extra={"status_code": response.status_code})
        return None
    profile = response.json()
    return profile.get("mail") or profile.get("userPrincipalName")


async def load_config(db: AsyncSession, *, for_update: bool = False) -> MailOAuth2Config | None:
    stmt = select(MailOAuth2Config).order_by(MailOAuth2Config.connected_at.desc()).limit(1)
    if for_update:
        stmt = stmt.with_for_update()
    return (await db.execute(stmt)).scalar_one_or_none()


async def _valid_access_token(db: AsyncSession) -> str:
    config = await load_config(db, for_update=True)
    if config is None or not is_microsoft_configured():
        raise AppException(
            400,
            "Mail is not configured. Connect a mailbox in admin settings.",
            ErrorCode.MAIL_NOT_CONFIGURED,
        )

    now = utcnow()
    expires_at = config.access_token_expires_at
    if expires_at is not None and expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=now.tzinfo)

    if config.access_token and expires_at and expires_at - TOKEN_EXPIRY_MARGIN > now:
        return config.access_token

    token = await request_token(
        {"grant_type": "refresh_token", "refresh_token": config.refresh_token}
    )
    access_token = token.get("access_token")
    if not access_token:
        raise AppException(
            502,
            "No access token in refresh response",
            ErrorCode.MAIL_SEND_FAILED,
        )

    config.access_token = access_token
    config.access_token_expires_at = now + timedelta(seconds=int(token.get("expires_in", 3600)))
    config.last_refreshed_at = now
    if token.get("refresh_token"):
        config.refresh_token = token["refresh_token"]
    await db.flush()

    logger.info("Graph access token refreshed")
    return access_token


def build_graph_message(message: MailMessage) -> dict:
    graph_message = {
        "subject": message.subject,
        "body": {"contentType": "HTML" if message.html else "Text", "content": message.body},
        "toRecipients": [{"emailAddress": {"address": message.to}}],
    }
    if message.cc:
        graph_message["ccRecipients"] = [{"emailAddress": {"address": a}} for a in message.cc]
    if message.attachments:
        graph_message["attachments"] = [
            {
                "@odata.type": "#microsoft.graph.fileAttachment",
                "name": a.filename,
                "contentType": a.content_type,
                "contentBytes": base64.b64encode(a.content).decode("ascii"),
            }
            for a in message.attachments
        ]
    return {"message": graph_message, "saveToSentItems": True}


async def send_mail(db: AsyncSession, message: MailMessage) -> None:
    """Send a message through Graph `sendMail` as the connected mailbox."""
    access_token = await _valid_access_token(db)

    async with http_client() as client:
        try:
            response = await client.post(
                f"{MICROSOFT_GRAPH_API_URL}/me/sendMail",
                headers={"Authorization": f"Bearer {access_token}"},
                json=build_graph_message(message),
            )
        except httpx.HTTPError as e:
            raise AppException(
                502,
                "Failed to reach Microsoft Graph",
                ErrorCode.MAIL_SEND_FAILED,
            ) from e

    if response.status_code >= 400:
        logger.error(
            "Graph sendMail failed",
            extra={"status_code": response.status_code, "error": _error_message(response)},
        )
        raise AppException(
            502,
            f"Microsoft Graph returned status {response.status_code}",
            ErrorCode.MAIL_SEND_FAILED,
        )

    logger.info(
        "Mail sent",
        extra={"to": message.to, "cc_count": len(message.cc), "subject": message.subject},
    )
