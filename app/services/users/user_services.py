from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func

from app.models.users.user_models import User, RefreshToken
from app.models.approval.approval_models import ApprovalChainLevel, ApprovalChainTemplate
from app.schemas.users.user_schemas import (
    UserCreateSchema,
    UserUpdateSchema,
    UserListFilters,
    UserListItemSchema,
    UserDetailSchema,
    UserListResponseSchema,
)
from app.core.security import hash_password
from app.utils.activity_helpers import emit_activity
from app.constants.activity_codes import ActivityCode
from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.utils.logger import get_logger

logger = get_logger("users.service")

SORTABLE = {
    "created_at": User.created_at,
    "username": User.username,
    "full_name": User.full_name,
    "role": User.role,
    "last_login": User.last_login,
}


def _actor(admin: User) -> dict:
    return dict(
        user_id=admin.id,
        username=admin.username,
        actor_role=admin.role.capitalize(),
        actor_email=admin.username,
    )


async def _get_user_or_404(db: AsyncSession, user_id: int, for_update: bool = False) -> User:
    stmt = select(User).where(User.id == user_id)
    if for_update:
        stmt = stmt.with_for_update()
    user = (await db.execute(stmt)).scalar_one_or_none()
    if not user:
        raise AppException(404, "User not found", ErrorCode.USER_NOT_FOUND)
    return user


async def _ensure_email_free(db: AsyncSession, email: str, exclude_id: int | None = None):
    stmt = select(User.id).where(func.lower(User.username) == email)
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    if await db.scalar(stmt):
        raise AppException(409, "Email already in use", ErrorCode.USER_EMAIL_EXISTS)


async def _approver_assignments(db: AsyncSession, user_id: int) -> list[str]:
    rows = await db.execute(
        select(ApprovalChainTemplate.entity_type, ApprovalChainLevel.level_name)
        .join(ApprovalChainLevel, ApprovalChainLevel.template_id == ApprovalChainTemplate.id)
        .where(
            ApprovalChainLevel.approver_user_id == user_id,
            ApprovalChainTemplate.is_active.is_(True),
        )
        .order_by(ApprovalChainTemplate.entity_type, ApprovalChainLevel.level_order)
    )
    return [f"{entity_type.value}:{level_name}" for entity_type, level_name in rows.all()]


async def _revoke_sessions(db: AsyncSession, user: User):
    user.token_version += 1
    user.is_online = False
    await db.execute(
        update(RefreshToken)
        .where(RefreshToken.user_id == user.id, RefreshToken.revoked.is_(False))
        .values(revoked=True)
    )


def _check_version(user: User, version: int):
    if user.version != version:
        raise AppException(
            409,
            "User was modified by another process",
            ErrorCode.USER_VERSION_CONFLICT,
        )


# =====================================================
# CREATE
# =====================================================
async def create_user(db: AsyncSession, payload: UserCreateSchema, admin: User) -> UserDetailSchema:
    await _ensure_email_free(db, payload.email)

    user = User(
        username=payload.email,
        full_name=payload.full_name,
        password_hash=hash_password(payload.password),
        role=payload.role,
        created_by_admin_id=admin.id,
    )
    db.add(user)
    await db.flush()

    await emit_activity(
        db,
        code=ActivityCode.CREATE_USER,
        entity_type="USER",
        entity_id=user.id,
        target_email=user.username,
        target_role=user.role.capitalize(),
        **_actor(admin),
    )
    await db.commit()

    logger.info("User created", extra={"user_id": user.id, "role": user.role})
    return UserDetailSchema.model_validate(user)


# =====================================================
# LIST / GET
# =====================================================
async def list_users(db: AsyncSession, filters: UserListFilters) -> UserListResponseSchema:
    stmt = select(User)

    if filters.search:
        term = f"%{filters.search.strip()}%"
        stmt = stmt.where(User.username.ilike(term) | User.full_name.ilike(term))
    if filters.role:
        stmt = stmt.where(User.role == filters.role)
    if filters.is_active is not None:
        stmt = stmt.where(User.is_active.is_(filters.is_active))

    total = await db.scalar(select(func.count()).select_from(stmt.subquery()))

    column = SORTABLE.get(filters.sort_by)
    if column is None:
        raise AppException(
            400,
            f"Cannot sort by '{filters.sort_by}'",
            ErrorCode.VALIDATION_ERROR,
            {"allowed": sorted(SORTABLE)},
        )
    order = column.asc() if filters.sort_order == "asc" else column.desc()

    rows = (
        await db.execute(
            stmt.order_by(order, User.id)
            .limit(filters.page_size)
            .offset((filters.page - 1) * filters.page_size)
        )
    ).scalars().all()

    return UserListResponseSchema(
        total=total or 0,
        items=[UserListItemSchema.model_validate(u) for u in rows],
    )


async def get_user(db: AsyncSession, user_id: int) -> UserDetailSchema:
    user = await _get_user_or_404(db, user_id)
    detail = UserDetailSchema.model_validate(user)
    detail.approver_for = await _approver_assignments(db, user_id)
    return detail


# =====================================================
# UPDATE
# =====================================================
async def update_user(
    db: AsyncSession,
    user_id: int,
    payload: UserUpdateSchema,
    admin: User,
) -> UserDetailSchema:
    user = await _get_user_or_404(db, user_id, for_update=True)
    _check_version(user, payload.version)

    events: list[tuple[ActivityCode, dict]] = []
    revoke = False
    renamed = False

    if payload.email and payload.email != user.username:
        await _ensure_email_free(db, payload.email, exclude_id=user.id)
        events.append(
            (
                ActivityCode.UPDATE_USER_EMAIL,
                dict(
                    target_email=user.username,
                    new_email=payload.email,
                    changes={"username": [user.username, payload.email]},
                ),
            )
        )
        user.username = payload.email
        revoke = True

    if payload.full_name is not None and payload.full_name != user.full_name:
        user.full_name = payload.full_name
        renamed = True

    if payload.password:
        user.password_hash = hash_password(payload.password)
        events.append((ActivityCode.UPDATE_USER_PASSWORD, dict(target_email=user.username)))
        revoke = True

    if payload.role and payload.role != user.role:
        if user.id == admin.id:
            raise AppException(
                400,
                "You cannot change your own role",
                ErrorCode.BUSINESS_RULE_VIOLATION,
            )
        events.append(
            (
                ActivityCode.UPDATE_USER_ROLE,
                dict(
                    target_email=user.username,
                    old_role=user.role,
                    new_role=payload.role,
                    changes={"role": [user.role, payload.role]},
                ),
            )
        )
        user.role = payload.role
        revoke = True

    if not events and not renamed:
        raise AppException(400, "No changes provided", ErrorCode.VALIDATION_ERROR)

    if revoke:
        await _revoke_sessions(db, user)
    user.version += 1

    for code, context in events:
        await emit_activity(
            db,
            code=code,
            entity_type="USER",
            entity_id=user.id,
            **context,
            **_actor(admin),
        )
    await db.commit()

    logger.info(
        "User updated",
        extra={"target_user_id": user.id, "sessions_revoked": revoke, "new_version": user.version},
    )
    return UserDetailSchema.model_validate(user)


# =====================================================
# DEACTIVATE / REACTIVATE
# =====================================================
async def set_user_active(
    db: AsyncSession,
    user_id: int,
    version: int,
    admin: User,
    active: bool,
) -> UserDetailSchema:
    user = await _get_user_or_404(db, user_id, for_update=True)
    _check_version(user, version)

    if user.is_active == active:
        raise AppException(
            400,
            "User is already active" if active else "User is already inactive",
            ErrorCode.BUSINESS_RULE_VIOLATION,
        )

    if not active:
        if user.id == admin.id:
            raise AppException(
                400,
                "You cannot deactivate your own account",
                ErrorCode.BUSINESS_RULE_VIOLATION,
            )

        assignments = await _approver_assignments(db, user.id)
        if assignments:
            raise AppException(
                400,
                "User is an approver in an active approval chain",
                ErrorCode.USER_IS_APPROVER,
                {"approver_for": assignments},
            )
        await _revoke_sessions(db, user)

    user.is_active = active
    user.version += 1

    await emit_activity(
        db,
        code=ActivityCode.REACTIVATE_USER if active else ActivityCode.DEACTIVATE_USER,
        entity_type="USER",
        entity_id=user.id,
        target_email=user.username,
        **_actor(admin),
    )
    await db.commit()

    logger.info(
        "User active flag changed",
        extra={"target_user_id": user.id, "active": active, "new_version": user.version},
    )
    return UserDetailSchema.model_validate(user)
