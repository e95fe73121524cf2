from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.auth.auth_schemas import (
    LoginRequest,
    RefreshRequest,
    LoginResponse,
    RefreshResponse,
    SessionOut,
)
from app.services.auth.auth_service import login_user, refresh_tokens, logout_user, list_sessions
from app.utils.get_user import get_current_user
from app.utils.response import APIResponse, success_response

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/login", response_model=APIResponse[LoginResponse])
async def login_api(payload: LoginRequest, db: AsyncSession = Depends(get_db)):
    result = await login_user(db, payload.email, payload.password)
    return success_response("Login successful", result)


@router.post("/refresh", response_model=APIResponse[RefreshResponse])
async def refresh_api(payload: RefreshRequest, db: AsyncSession = Depends(get_db)):
    result = await refresh_tokens(db, payload.refresh_token)
    return success_response("Token refreshed", result)


@router.post("/logout", response_model=APIResponse[None])
async def logout_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
):
    await logout_user(db, user)
    return success_response("Logged out from all sessions")


@router.get("/sessions", response_model=APIResponse[list[SessionOut]])
async def sessions_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
):
    return success_response("Active sessions fetched", await list_sessions(db, user))
