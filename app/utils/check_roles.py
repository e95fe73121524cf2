from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.constants.activity_codes import ActivityCode
from app.utils.activity_helpers import emit_activity
from app.utils.get_user import get_current_user
from app.models.users.user_models import User
from app.utils.logger import get_logger

logger = get_logger("auth.roles")


def require_role(roles: list[str]):
    allowed = {r.lower() for r in roles}

    async def role_checker(
        request: Request,
        user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
    ):
        if user.role.lower() not in allowed:
            logger.warning(
                "Role check failed",
                extra={"user_id": user.id, "role": user.role, "path": request.url.path},
            )
            await emit_activity(
                db,
                user_id=user.id,
                username=user.username,
                code=ActivityCode.ACCESS_DENIED,
                metadata={"method": request.method, "required_roles": sorted(allowed)},
                actor_role=user.role.capitalize(),
                actor_email=user.username,
                path=request.url.path,
            )
            await db.commit()
            raise AppException(
                403,
                "Permission denied",
                ErrorCode.PERMISSION_DENIED,
            )
        return user
    return role_checker
