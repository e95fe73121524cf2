# app/services/catalog/service_category_service.py

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from app.models.catalog.catalog_models import ServiceCategory, VendorOffering
from app.schemas.catalog.catalog_schemas import (
    CategoryCreate,
    CategoryUpdate,
    CategoryListFilters,
    ServiceCategoryOut,
    ServiceCategoryListData,
)
from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.constants.activity_codes import ActivityCode
from app.utils.activity_helpers import emit_activity
from app.utils.logger import get_logger

logger = get_logger("catalog.services")


def _actor(user) -> dict:
    return dict(
        user_id=user.id,
        username=user.username,
        actor_role=user.role.capitalize(),
        actor_email=user.username,
    )


async def get_service_category_or_404(
    db: AsyncSession,
    category_id: int,
    for_update: bool = False,
) -> ServiceCategory:
    stmt = select(ServiceCategory).where(ServiceCategory.id == category_id)
    if for_update:
        stmt = stmt.with_for_update()
    category = (await db.execute(stmt)).scalar_one_or_none()
    if not category:
        raise AppException(
            404,
            f"Service category {category_id} not found",
            ErrorCode.SERVICE_CATEGORY_NOT_FOUND,
        )
    return category


async def get_active_service_category(db: AsyncSession, category_id: int) -> ServiceCategory:
    category = await get_service_category_or_404(db, category_id)
    if not category.is_active:
        raise AppException(
            400,
            f"Service category {category.name} is not active",
            ErrorCode.CATALOG_ITEM_INACTIVE,
        )
    return category


async def _ensure_name_free(db: AsyncSession, name: str, exclude_id: int | None = None):
    stmt = select(ServiceCategory.id).where(func.lower(ServiceCategory.name) == name.lower())
    if exclude_id is not None:
        stmt = stmt.where(ServiceCategory.id != exclude_id)
    if await db.scalar(stmt):
        raise AppException(
            409,
            f"Service category '{name}' already exists",
            ErrorCode.CATEGORY_NAME_EXISTS,
        )


async def _category_out(db: AsyncSession, category: ServiceCategory) -> ServiceCategoryOut:
    vendors = await db.scalar(
        select(func.count(func.distinct(VendorOffering.vendor_company_id))).where(
            VendorOffering.service_category_id == category.id
        )
    )
    out = ServiceCategoryOut.model_validate(category)
    out.vendor_count = vendors or 0
    return out


# =====================================================
# CRUD
# =====================================================
async def create_service_category(db: AsyncSession, payload: CategoryCreate, user) -> ServiceCategoryOut:
    await _ensure_name_free(db, payload.name)

    category = ServiceCategory(
        name=payload.name,
        description=payload.description,
        is_active=True,
        created_by_id=user.id,
        updated_by_id=user.id,
    )
    db.add(category)
    await db.flush()

    await emit_activity(
        db,
        code=ActivityCode.CREATE_SERVICE_CATEGORY,
        entity_type="SERVICE_CATEGORY",
        entity_id=category.id,
        target_name=category.name,
        **_actor(user),
    )
    await db.commit()

    logger.info("Service category created", extra={"service_category_id": category.id})
    return await _category_out(db, category)


async def list_service_categories(db: AsyncSession, filters: CategoryListFilters) -> ServiceCategoryListData:
    stmt = select(ServiceCategory)
    if filters.active_only:
        stmt = stmt.where(ServiceCategory.is_active.is_(True))
    if filters.search:
        stmt = stmt.where(ServiceCategory.name.ilike(f"%{filters.search.strip()}%"))

    total = await db.scalar(select(func.count()).select_from(stmt.subquery()))
    rows = (
        await db.execute(
            stmt.order_by(ServiceCategory.name)
            .offset((filters.page - 1) * filters.page_size)
            .limit(filters.page_size)
        )
    ).scalars().all()

    return ServiceCategoryListData(
        total=total or 0,
        items=[await _category_out(db, c) for c in rows],
    )


async def get_service_category(db: AsyncSession, category_id: int) -> ServiceCategoryOut:
    return await _category_out(db, await get_service_category_or_404(db, category_id))


async def update_service_category(
    db: AsyncSession,
    category_id: int,
    payload: CategoryUpdate,
    user,
) -> ServiceCategoryOut:
    category = await get_service_category_or_404(db, category_id, for_update=True)

    requested = {
        field: value
        for field, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or field == "description"
    }
    if requested.get("name") and requested["name"] != category.name:
        await _ensure_name_free(db, requested["name"], exclude_id=category.id)

    changes = {
        field: [getattr(category, field), value]
        for field, value in requested.items()
        if getattr(category, field) != value
    }
    if not changes:
        raise AppException(400, "No changes detected", ErrorCode.VALIDATION_ERROR)

    for field in changes:
        setattr(category, field, requested[field])
    category.updated_by_id = user.id

    await emit_activity(
        db,
        code=ActivityCode.UPDATE_SERVICE_CATEGORY,
        entity_type="SERVICE_CATEGORY",
        entity_id=category.id,
        changes=changes,
        target_name=category.name,
        summary=", ".join(sorted(changes)),
        **_actor(user),
    )
    await db.commit()
    return await _category_out(db, category)


async def deactivate_service_category(db: AsyncSession, category_id: int, user) -> ServiceCategoryOut:
    category = await get_service_category_or_404(db, category_id, for_update=True)
    if not category.is_active:
        raise AppException(404, f"Service category {category_id} not found", ErrorCode.SERVICE_CATEGORY_NOT_FOUND)

    category.is_active = False
    category.updated_by_id = user.id

    await emit_activity(
        db,
        code=ActivityCode.DEACTIVATE_SERVICE_CATEGORY,
        entity_type="SERVICE_CATEGORY",
        entity_id=category.id,
        target_name=category.name,
        **_actor(user),
    )
    await db.commit()
    return await _category_out(db, category)
