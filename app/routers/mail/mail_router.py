# app/routers/mail/mail_router.py

from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.config import FRONTEND_URL, MAIL_SETTINGS_PAGE_PATH
from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.schemas.mail.mail_schemas import MailStatusOut, AuthorizationUrlOut
from app.services.mail.mail_oauth_service import (
    get_mail_status,
    create_authorization_url,
    handle_callback,
    disconnect_mail,
)
from app.utils.check_roles import require_role
from app.constants.roles import Role
from app.utils.response import APIResponse, success_response
from app.utils.logger import get_logger

router = APIRouter(prefix="/admin/mail", tags=["Mail"])
logger = get_logger(__name__)


def _settings_redirect(**params) -> RedirectResponse:
    return RedirectResponse(
        f"{FRONTEND_URL}{MAIL_SETTINGS_PAGE_PATH}?{urlencode(params)}",
        status_code=302,
    )


@router.get("/status", response_model=APIResponse[MailStatusOut])
async def mail_status_api(
    db: AsyncSession = Depends(get_db),
    admin=Depends(require_role([Role.ADMIN])),
):
    return success_response("Mail status fetched", await get_mail_status(db))


@router.get("/oauth2/authorize", response_model=APIResponse[AuthorizationUrlOut])
async def authorize_api(
    db: AsyncSession = Depends(get_db),
    admin=Depends(require_role([Role.ADMIN])),
):
    data = await create_authorization_url(db, admin)
    return success_response("Authorization URL generated", data)


@router.get("/oauth2/callback", include_in_schema=False)
async def oauth2_callback_api(
    code: str | None = Query(None),
    state: str | None = Query(None),
    error: str | None = Query(None),
    error_description: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    if error:
        logger.warning("Microsoft returned an OAuth2 error", extra={"error": error, "error_description": error_description})
        return _settings_redirect(error=ErrorCode.MAIL_OAUTH_EXCHANGE_FAILED.value)

    if not code or not state:
        return _settings_redirect(error=ErrorCode.MAIL_OAUTH_STATE_INVALID.value)

    try:
        await handle_callback(db, code, state)
    except AppException as e:
        logger.warning("OAuth2 callback rejected", extra={"error_code": e.error_code.value})
        return _settings_redirect(error=e.error_code.value)
    except Exception:
        logger.exception("OAuth2 callback failed")
        return _settings_redirect(error=ErrorCode.INTERNAL_ERROR.value)

    return _settings_redirect(success="true")


@router.delete("", response_model=APIResponse[None])
async def disconnect_mail_api(
    db: AsyncSession = Depends(get_db),
    admin=Depends(require_role([Role.ADMIN])),
):
    await disconnect_mail(db, admin)
    return success_response("Mail disconnected")
