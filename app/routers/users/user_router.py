from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.constants.roles import Role, ALL_ROLES
from app.schemas.users.user_schemas import (
    UserCreateSchema,
    UserUpdateSchema,
    UserListFilters,
    UserVersion,
    UserDetailSchema,
    UserListResponseSchema,
)
from app.services.users.user_services import (
    create_user,
    list_users,
    get_user,
    update_user,
    set_user_active,
)
from app.utils.check_roles import require_role
from app.utils.response import APIResponse, success_response, page_metadata
from app.utils.logger import get_logger

router = APIRouter(prefix="/users", tags=["Users"])
logger = get_logger("users.api")

admin_only = require_role([Role.ADMIN])


@router.post("", response_model=APIResponse[UserDetailSchema], status_code=201)
async def create_user_api(
    payload: UserCreateSchema,
    db: AsyncSession = Depends(get_db),
    admin=Depends(admin_only),
):
    user = await create_user(db, payload, admin)
    return success_response("User created successfully", user)


@router.get("", response_model=APIResponse[UserListResponseSchema])
async def list_users_api(
    filters: UserListFilters = Depends(),
    db: AsyncSession = Depends(get_db),
    _=Depends(admin_only),
):
    result = await list_users(db, filters)
    return success_response(
        "Users fetched",
        result,
        page_metadata(filters.page, filters.page_size, result.total),
    )


@router.get("/me", response_model=APIResponse[UserDetailSchema])
async def me_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(ALL_ROLES)),
):
    return success_response("Current user fetched", await get_user(db, user.id))


@router.get("/{user_id}", response_model=APIResponse[UserDetailSchema])
async def get_user_api(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    _=Depends(admin_only),
):
    return success_response("User fetched", await get_user(db, user_id))


@router.patch("/{user_id}", response_model=APIResponse[UserDetailSchema])
async def update_user_api(
    user_id: int,
    payload: UserUpdateSchema,
    db: AsyncSession = Depends(get_db),
    admin=Depends(admin_only),
):
    logger.info("Update user", extra={"target_user_id": user_id})
    user = await update_user(db, user_id, payload, admin)
    return success_response("User updated successfully", user)


@router.post("/{user_id}/deactivate", response_model=APIResponse[UserDetailSchema])
async def deactivate_user_api(
    user_id: int,
    payload: UserVersion,
    db: AsyncSession = Depends(get_db),
    admin=Depends(admin_only),
):
    user = await set_user_active(db, user_id, payload.version, admin, active=False)
    return success_response("User deactivated successfully", user)


@router.post("/{user_id}/activate", response_model=APIResponse[UserDetailSchema])
async def activate_user_api(
    user_id: int,
    payload: UserVersion,
    db: AsyncSession = Depends(get_db),
    admin=Depends(admin_only),
):
    user = await set_user_active(db, user_id, payload.version, admin, active=True)
    return success_response("User reactivated successfully", user)
