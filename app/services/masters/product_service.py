# app/services/masters/product_service.py

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_

from app.models.masters.product_models import Product
from app.models.billing.quotation_models import Quotation, QuotationItem
from app.models.enums.quotation_status import QuotationStatus
from app.schemas.masters.product_schemas import (
    ProductCreate,
    ProductUpdate,
    ProductOut,
    ProductListData,
    ProductListFilters,
)
from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.constants.activity_codes import ActivityCode
from app.utils.activity_helpers import emit_activity
from app.utils.logger import get_logger

logger = get_logger("masters.products")

SORTABLE = {
    "name": Product.name,
    "sku": Product.sku,
    "category": Product.category,
    "base_unit_price": Product.base_unit_price,
    "created_at": Product.created_at,
}

# Quotations still being edited or approved pull the live product row
OPEN_QUOTATION_STATUSES = (QuotationStatus.draft, QuotationStatus.pending)


def _actor(user) -> dict:
    return dict(
        user_id=user.id,
        username=user.username,
        actor_role=user.role.capitalize(),
        actor_email=user.username,
    )


def _map_product(product: Product) -> ProductOut:
    return ProductOut(
        id=product.id,
        sku=product.sku,
        name=product.name,
        category=product.category,
        description=product.description,
        unit=product.unit,
        base_unit_price=product.base_unit_price,
        is_active=not product.is_deleted,
        version=product.version,
        created_by=product.created_by_id,
        updated_by=product.updated_by_id,
        created_at=product.created_at,
        updated_at=product.updated_at,
        deleted_at=product.deleted_at,
    )


async def get_active_product(db: AsyncSession, product_id: int, for_update: bool = False) -> Product:
    stmt = select(Product).where(Product.id == product_id, Product.is_deleted.is_(False))
    if for_update:
        stmt = stmt.with_for_update()
    product = (await db.execute(stmt)).scalar_one_or_none()
    if not product:
        raise AppException(404, f"Product {product_id} not found", ErrorCode.PRODUCT_NOT_FOUND)
    return product


async def _ensure_sku_free(db: AsyncSession, sku: str, exclude_id: int | None = None):
    stmt = select(Product.id).where(Product.sku == sku, Product.is_deleted.is_(False))
    if exclude_id is not None:
        stmt = stmt.where(Product.id != exclude_id)
    if await db.scalar(stmt):
        raise AppException(
            409,
            f"An active product already uses SKU {sku}",
            ErrorCode.PRODUCT_SKU_EXISTS,
        )


def _check_version(product: Product, version: int):
    if product.version != version:
        raise AppException(
            409,
            "Product was modified by another process",
            ErrorCode.PRODUCT_VERSION_CONFLICT,
        )


# =====================================================
# CREATE
# =====================================================
async def create_product(db: AsyncSession, payload: ProductCreate, user) -> ProductOut:
    await _ensure_sku_free(db, payload.sku)

    product = Product(
        **payload.model_dump(),
        created_by_id=user.id,
        updated_by_id=user.id,
    )
    db.add(product)
    await db.flush()

    await emit_activity(
        db,
        code=ActivityCode.CREATE_PRODUCT,
        entity_type="PRODUCT",
        entity_id=product.id,
        target_name=product.name,
        sku=product.sku,
        **_actor(user),
    )
    await db.commit()

    logger.info("Product created", extra={"product_id": product.id, "sku": product.sku})
    return _map_product(product)


# =====================================================
# LIST / GET
# =====================================================
async def list_products(db: AsyncSession, filters: ProductListFilters) -> ProductListData:
    stmt = select(Product)

    if not filters.include_inactive:
        stmt = stmt.where(Product.is_deleted.is_(False))
    if filters.search:
        term = f"%{filters.search.strip()}%"
        stmt = stmt.where(or_(Product.name.ilike(term), Product.sku.ilike(term)))
    if filters.category:
        stmt = stmt.where(Product.category == filters.category)

    column = SORTABLE.get(filters.sort_by)
    if column is None:
        raise AppException(
            400,
            f"Cannot sort by '{filters.sort_by}'",
            ErrorCode.VALIDATION_ERROR,
            {"allowed": sorted(SORTABLE)},
        )

    total = await db.scalar(select(func.count()).select_from(stmt.subquery()))
    rows = (
        await db.execute(
            stmt.order_by(column.desc() if filters.order == "desc" else column.asc(), Product.id)
            .offset((filters.page - 1) * filters.page_size)
            .limit(filters.page_size)
        )
    ).scalars().all()

    return ProductListData(total=total or 0, items=[_map_product(p) for p in rows])


async def get_product(db: AsyncSession, product_id: int) -> ProductOut:
    return _map_product(await get_active_product(db, product_id))


# =====================================================
# UPDATE
# =====================================================
async def update_product(db: AsyncSession, product_id: int, payload: ProductUpdate, user) -> ProductOut:
    product = await get_active_product(db, product_id, for_update=True)
    _check_version(product, payload.version)

    # nullable columns may be cleared explicitly; the rest ignore null
    clearable = {"category", "description", "base_unit_price"}
    requested = {
        field: value
        for field, value in payload.model_dump(exclude_unset=True, exclude={"version"}).items()
        if value is not None or field in clearable
    }

    if requested.get("sku") and requested["sku"] != product.sku:
        await _ensure_sku_free(db, requested["sku"], exclude_id=product.id)

    changes = {
        field: [None if getattr(product, field) is None else str(getattr(product, field)),
                None if value is None else str(value)]
        for field, value in requested.items()
        if getattr(product, field) != value
    }
    if not changes:
        raise AppException(400, "No changes detected", ErrorCode.VALIDATION_ERROR)

    for field in changes:
        setattr(product, field, requested[field])
    product.updated_by_id = user.id
    product.bump_version()

    await emit_activity(
        db,
        code=ActivityCode.UPDATE_PRODUCT,
        entity_type="PRODUCT",
        entity_id=product.id,
        changes=changes,
        target_name=product.name,
        summary=", ".join(sorted(changes)),
        **_actor(user),
    )
    await db.commit()

    logger.info("Product updated", extra={"product_id": product.id, "fields": sorted(changes)})
    return _map_product(product)


# =====================================================
# DEACTIVATE
# =====================================================
async def deactivate_product(db: AsyncSession, product_id: int, version: int, user) -> ProductOut:
    product = await get_active_product(db, product_id, for_update=True)
    _check_version(product, version)

    open_quotations = (
        await db.execute(
            select(Quotation.id)
            .join(QuotationItem, QuotationItem.quotation_id == Quotation.id)
            .where(
                QuotationItem.product_id == product.id,
                Quotation.status.in_(OPEN_QUOTATION_STATUSES),
                Quotation.is_deleted.is_(False),
            )
            .distinct()
            .order_by(Quotation.id)
        )
    ).scalars().all()
    if open_quotations:
        raise AppException(
            400,
            "Product is used by quotations that are still open",
            ErrorCode.PRODUCT_IN_USE,
            {"quotation_ids": list(open_quotations)},
        )

    product.mark_deleted()
    product.updated_by_id = user.id
    product.bump_version()

    await emit_activity(
        db,
        code=ActivityCode.DEACTIVATE_PRODUCT,
        entity_type="PRODUCT",
        entity_id=product.id,
        target_name=product.name,
        sku=product.sku,
        **_actor(user),
    )
    await db.commit()

    logger.info("Product deactivated", extra={"product_id": product.id})
    return _map_product(product)
