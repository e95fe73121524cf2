# app/services/catalog/material_service.py

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_

from app.models.catalog.catalog_models import MaterialCategory, Material
from app.models.enums.company_role_type import CompanyRoleType
from app.schemas.catalog.catalog_schemas import (
    CategoryCreate,
    CategoryUpdate,
    CategoryListFilters,
    MaterialCategoryOut,
    MaterialCategoryListData,
    MaterialCreate,
    MaterialUpdate,
    MaterialListFilters,
    MaterialOut,
    MaterialListData,
)
from app.services.masters.company_service import get_company_with_any_role
from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.constants.activity_codes import ActivityCode
from app.utils.activity_helpers import emit_activity
from app.utils.logger import get_logger

logger = get_logger("catalog.materials")


def _actor(user) -> dict:
    return dict(
        user_id=user.id,
        username=user.username,
        actor_role=user.role.capitalize(),
        actor_email=user.username,
    )


def _map_material(m: Material) -> MaterialOut:
    return MaterialOut(
        id=m.id,
        sku=m.sku,
        name=m.name,
        description=m.description,
        category_id=m.category_id,
        category_name=m.category.name if m.category else None,
        unit=m.unit,
        standard_price=m.standard_price,
        preferred_vendor_id=m.preferred_vendor_id,
        preferred_vendor_name=m.preferred_vendor.name if m.preferred_vendor else None,
        is_active=m.is_active,
        created_at=m.created_at,
        updated_at=m.updated_at,
    )


def _diff(obj, requested: dict) -> dict:
    return {
        field: [None if getattr(obj, field) is None else str(getattr(obj, field)),
                None if value is None else str(value)]
        for field, value in requested.items()
        if getattr(obj, field) != value
    }


# =====================================================
# MATERIAL CATEGORIES
# =====================================================
async def get_material_category_or_404(
    db: AsyncSession,
    category_id: int,
    for_update: bool = False,
) -> MaterialCategory:
    stmt = select(MaterialCategory).where(MaterialCategory.id == category_id)
    if for_update:
        stmt = stmt.with_for_update()
    category = (await db.execute(stmt)).scalar_one_or_none()
    if not category:
        raise AppException(
            404,
            f"Material category {category_id} not found",
            ErrorCode.MATERIAL_CATEGORY_NOT_FOUND,
        )
    return category


async def _ensure_category_name_free(db: AsyncSession, name: str, exclude_id: int | None = None):
    stmt = select(MaterialCategory.id).where(func.lower(MaterialCategory.name) == name.lower())
    if exclude_id is not None:
        stmt = stmt.where(MaterialCategory.id != exclude_id)
    if await db.scalar(stmt):
        raise AppException(
            409,
            f"Material category '{name}' already exists",
            ErrorCode.CATEGORY_NAME_EXISTS,
        )


async def _category_out(db: AsyncSession, category: MaterialCategory) -> MaterialCategoryOut:
    count = await db.scalar(
        select(func.count(Material.id)).where(
            Material.category_id == category.id,
            Material.is_active.is_(True),
        )
    )
    out = MaterialCategoryOut.model_validate(category)
    out.material_count = count or 0
    return out


async def create_material_category(db: AsyncSession, payload: CategoryCreate, user) -> MaterialCategoryOut:
    await _ensure_category_name_free(db, payload.name)

    category = MaterialCategory(
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
        code=ActivityCode.CREATE_MATERIAL_CATEGORY,
        entity_type="MATERIAL_CATEGORY",
        entity_id=category.id,
        target_name=category.name,
        **_actor(user),
    )
    await db.commit()
    return await _category_out(db, category)


async def list_material_categories(db: AsyncSession, filters: CategoryListFilters) -> MaterialCategoryListData:
    stmt = select(MaterialCategory)
    if filters.active_only:
        stmt = stmt.where(MaterialCategory.is_active.is_(True))
    if filters.search:
        stmt = stmt.where(MaterialCategory.name.ilike(f"%{filters.search.strip()}%"))

    total = await db.scalar(select(func.count()).select_from(stmt.subquery()))
    rows = (
        await db.execute(
            stmt.order_by(MaterialCategory.name)
            .offset((filters.page - 1) * filters.page_size)
            .limit(filters.page_size)
        )
    ).scalars().all()

    return MaterialCategoryListData(
        total=total or 0,
        items=[await _category_out(db, c) for c in rows],
    )


async def get_material_category(db: AsyncSession, category_id: int) -> MaterialCategoryOut:
    return await _category_out(db, await get_material_category_or_404(db, category_id))


async def update_material_category(
    db: AsyncSession,
    category_id: int,
    payload: CategoryUpdate,
    user,
) -> MaterialCategoryOut:
    category = await get_material_category_or_404(db, category_id, for_update=True)

    requested = {
        field: value
        for field, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or field == "description"
    }
    if requested.get("name") and requested["name"] != category.name:
        await _ensure_category_name_free(db, requested["name"], exclude_id=category.id)

    changes = _diff(category, requested)
    if not changes:
        raise AppException(400, "No changes detected", ErrorCode.VALIDATION_ERROR)

    for field in changes:
        setattr(category, field, requested[field])
    category.updated_by_id = user.id

    await emit_activity(
        db,
        code=ActivityCode.UPDATE_MATERIAL_CATEGORY,
        entity_type="MATERIAL_CATEGORY",
        entity_id=category.id,
        changes=changes,
        target_name=category.name,
        summary=", ".join(sorted(changes)),
        **_actor(user),
    )
    await db.commit()
    return await _category_out(db, category)


async def deactivate_material_category(db: AsyncSession, category_id: int, user) -> MaterialCategoryOut:
    return await update_material_category(db, category_id, CategoryUpdate(is_active=False), user)


# =====================================================
# MATERIALS
# =====================================================
async def get_material_or_404(db: AsyncSession, material_id: int, for_update: bool = False) -> Material:
    stmt = (
        select(Material)
        .where(Material.id == material_id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        stmt = stmt.with_for_update()
    material = (await db.execute(stmt)).scalar_one_or_none()
    if not material:
        raise AppException(404, f"Material {material_id} not found", ErrorCode.MATERIAL_NOT_FOUND)
    return material


async def get_active_material(db: AsyncSession, material_id: int) -> Material:
    material = await get_material_or_404(db, material_id)
    if not material.is_active:
        raise AppException(
            400,
            f"Material {material.sku} is not active",
            ErrorCode.CATALOG_ITEM_INACTIVE,
        )
    return material


async def _active_category(db: AsyncSession, category_id: int) -> MaterialCategory:
    category = await get_material_category_or_404(db, category_id)
    if not category.is_active:
        raise AppException(
            400,
            f"Material category {category.name} is not active",
            ErrorCode.CATALOG_ITEM_INACTIVE,
        )
    return category


async def create_material(db: AsyncSession, payload: MaterialCreate, user) -> MaterialOut:
    if await db.scalar(select(Material.id).where(Material.sku == payload.sku)):
        raise AppException(
            409,
            f"Material with SKU {payload.sku} already exists",
            ErrorCode.MATERIAL_SKU_EXISTS,
        )
    await _active_category(db, payload.category_id)
    if payload.preferred_vendor_id is not None:
        await get_company_with_any_role(db, payload.preferred_vendor_id, (CompanyRoleType.vendor,))

    material = Material(
        **payload.model_dump(),
        is_active=True,
        created_by_id=user.id,
        updated_by_id=user.id,
    )
    db.add(material)
    await db.flush()

    await emit_activity(
        db,
        code=ActivityCode.CREATE_MATERIAL,
        entity_type="MATERIAL",
        entity_id=material.id,
        target_name=material.name,
        sku=material.sku,
        **_actor(user),
    )
    await db.commit()

    logger.info("Material created", extra={"material_id": material.id, "sku": material.sku})
    return _map_material(await get_material_or_404(db, material.id))


async def list_materials(db: AsyncSession, filters: MaterialListFilters) -> MaterialListData:
    stmt = select(Material)
    if filters.active_only:
        stmt = stmt.where(Material.is_active.is_(True))
    if filters.category_id:
        stmt = stmt.where(Material.category_id == filters.category_id)
    if filters.search:
        term = f"%{filters.search.strip()}%"
        stmt = stmt.where(or_(Material.name.ilike(term), Material.sku.ilike(term)))

    total = await db.scalar(select(func.count()).select_from(stmt.subquery()))
    rows = (
        await db.execute(
            stmt.order_by(Material.name, Material.id)
            .offset((filters.page - 1) * filters.page_size)
            .limit(filters.page_size)
        )
    ).scalars().all()

    return MaterialListData(total=total or 0, items=[_map_material(m) for m in rows])


async def get_material(db: AsyncSession, material_id: int) -> MaterialOut:
    return _map_material(await get_material_or_404(db, material_id))


async def update_material(db: AsyncSession, material_id: int, payload: MaterialUpdate, user) -> MaterialOut:
    material = await get_material_or_404(db, material_id, for_update=True)

    clearable = {"description", "standard_price", "preferred_vendor_id"}
    requested = {
        field: value
        for field, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or field in clearable
    }
    if requested.get("category_id") and requested["category_id"] != material.category_id:
        await _active_category(db, requested["category_id"])
    if requested.get("preferred_vendor_id") and requested["preferred_vendor_id"] != material.preferred_vendor_id:
        await get_company_with_any_role(db, requested["preferred_vendor_id"], (CompanyRoleType.vendor,))

    changes = _diff(material, requested)
    if not changes:
        raise AppException(400, "No changes detected", ErrorCode.VALIDATION_ERROR)

    for field in changes:
        setattr(material, field, requested[field])
    material.updated_by_id = user.id

    await emit_activity(
        db,
        code=ActivityCode.UPDATE_MATERIAL,
        entity_type="MATERIAL",
        entity_id=material.id,
        changes=changes,
        target_name=material.name,
        summary=", ".join(sorted(changes)),
        **_actor(user),
    )
    await db.commit()
    return _map_material(await get_material_or_404(db, material_id))


async def deactivate_material(db: AsyncSession, material_id: int, user) -> MaterialOut:
    material = await get_material_or_404(db, material_id, for_update=True)
    if not material.is_active:
        raise AppException(
            400,
            f"Material {material.sku} is already inactive",
            ErrorCode.CATALOG_ITEM_INACTIVE,
        )

    material.is_active = False
    material.updated_by_id = user.id

    await emit_activity(
        db,
        code=ActivityCode.DEACTIVATE_MATERIAL,
        entity_type="MATERIAL",
        entity_id=material.id,
        target_name=material.name,
        sku=material.sku,
        **_actor(user),
    )
    await db.commit()

    logger.info("Material deactivated", extra={"material_id": material.id})
    return _map_material(await get_material_or_404(db, material_id))
