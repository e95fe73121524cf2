# app/services/catalog/vendor_offering_service.py

from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, update, or_

from app.core.config import DEFAULT_CURRENCY
from app.models.catalog.catalog_models import VendorOffering
from app.models.enums.company_role_type import CompanyRoleType
from app.schemas.catalog.catalog_schemas import (
    VendorOfferingCreate,
    VendorOfferingUpdate,
    VendorOfferingFilters,
    VendorOfferingOut,
    VendorOfferingListData,
)
from app.services.catalog.material_service import get_material_or_404
from app.services.catalog.service_category_service import get_service_category_or_404
from app.services.masters.company_service import get_company_with_any_role
from app.utils.decimal_utils import to_decimal
from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.constants.activity_codes import ActivityCode
from app.utils.activity_helpers import emit_activity
from app.utils.logger import get_logger

logger = get_logger("catalog.offerings")

# Materials are bought from vendors; services may also go to outsourcing partners
MATERIAL_VENDOR_ROLES = (CompanyRoleType.vendor,)
SERVICE_VENDOR_ROLES = (CompanyRoleType.vendor, CompanyRoleType.outsource)


def _actor(user) -> dict:
    return dict(
        user_id=user.id,
        username=user.username,
        actor_role=user.role.capitalize(),
        actor_email=user.username,
    )


def _map_offering(o: VendorOffering) -> VendorOfferingOut:
    return VendorOfferingOut(
        id=o.id,
        vendor_company_id=o.vendor_company_id,
        vendor_name=o.vendor.name if o.vendor else None,
        material_id=o.material_id,
        service_category_id=o.service_category_id,
        vendor_code=o.vendor_code,
        vendor_item_name=o.vendor_item_name,
        unit_price=o.unit_price,
        currency=o.currency,
        lead_time_days=o.lead_time_days,
        min_order_quantity=o.min_order_quantity,
        effective_from=o.effective_from,
        effective_to=o.effective_to,
        is_preferred=o.is_preferred,
        notes=o.notes,
        created_at=o.created_at,
        updated_at=o.updated_at,
    )


async def _get_offering(db: AsyncSession, offering_id: int, for_update: bool = False) -> VendorOffering:
    stmt = (
        select(VendorOffering)
        .where(VendorOffering.id == offering_id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        stmt = stmt.with_for_update()
    offering = (await db.execute(stmt)).scalar_one_or_none()
    if not offering:
        raise AppException(404, "Vendor offering not found", ErrorCode.VENDOR_OFFERING_NOT_FOUND)
    return offering


async def _target_name(db: AsyncSession, offering: VendorOffering) -> str:
    if offering.material_id is not None:
        return (await get_material_or_404(db, offering.material_id)).name
    return (await get_service_category_or_404(db, offering.service_category_id)).name


def _same_target(vendor_company_id: int, material_id: int | None, service_category_id: int | None):
    clauses = [VendorOffering.vendor_company_id == vendor_company_id]
    if material_id is not None:
        clauses.append(VendorOffering.material_id == material_id)
    else:
        clauses.append(VendorOffering.service_category_id == service_category_id)
    return clauses


async def _ensure_unique(
    db: AsyncSession,
    vendor_company_id: int,
    material_id: int | None,
    service_category_id: int | None,
    effective_from: date | None,
    exclude_id: int | None = None,
):
    stmt = select(VendorOffering.id).where(
        *_same_target(vendor_company_id, material_id, service_category_id),
        VendorOffering.effective_from.is_(None) if effective_from is None
        else VendorOffering.effective_from == effective_from,
    )
    if exclude_id is not None:
        stmt = stmt.where(VendorOffering.id != exclude_id)
    if await db.scalar(stmt):
        raise AppException(
            409,
            "An offering from this vendor with the same effective date already exists",
            ErrorCode.VENDOR_OFFERING_EXISTS,
        )


async def _clear_preferred(db: AsyncSession, offering: VendorOffering):
    """A material or service has at most one preferred offering."""
    target = (
        VendorOffering.material_id == offering.material_id
        if offering.material_id is not None
        else VendorOffering.service_category_id == offering.service_category_id
    )
    stmt = update(VendorOffering).where(target, VendorOffering.is_preferred.is_(True))
    if offering.id is not None:
        stmt = stmt.where(VendorOffering.id != offering.id)
    await db.execute(stmt.values(is_preferred=False).execution_options(synchronize_session="fetch"))


# =====================================================
# CREATE / UPDATE / DELETE
# =====================================================
async def create_vendor_offering(db: AsyncSession, payload: VendorOfferingCreate, user) -> VendorOfferingOut:
    if payload.material_id is not None:
        target = await get_material_or_404(db, payload.material_id)
        roles = MATERIAL_VENDOR_ROLES
    else:
        target = await get_service_category_or_404(db, payload.service_category_id)
        roles = SERVICE_VENDOR_ROLES
    vendor = await get_company_with_any_role(db, payload.vendor_company_id, roles)

    await _ensure_unique(
        db,
        vendor.id,
        payload.material_id,
        payload.service_category_id,
        payload.effective_from,
    )

    data = payload.model_dump()
    data["currency"] = (payload.currency or DEFAULT_CURRENCY).upper()
    offering = VendorOffering(**data, created_by_id=user.id, updated_by_id=user.id)

    if offering.is_preferred:
        await _clear_preferred(db, offering)
    db.add(offering)
    await db.flush()

    await emit_activity(
        db,
        code=ActivityCode.CREATE_VENDOR_OFFERING,
        entity_type="VENDOR_OFFERING",
        entity_id=offering.id,
        target_name=target.name,
        vendor_name=vendor.name,
        **_actor(user),
    )
    await db.commit()

    logger.info(
        "Vendor offering created",
        extra={"offering_id": offering.id, "vendor_company_id": vendor.id},
    )
    return _map_offering(await _get_offering(db, offering.id))


async def update_vendor_offering(
    db: AsyncSession,
    offering_id: int,
    payload: VendorOfferingUpdate,
    user,
) -> VendorOfferingOut:
    offering = await _get_offering(db, offering_id, for_update=True)

    clearable = {"vendor_code", "vendor_item_name", "unit_price", "lead_time_days",
                 "min_order_quantity", "effective_to", "notes"}
    requested = {
        field: value
        for field, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or field in clearable
    }
    if requested.get("currency"):
        requested["currency"] = requested["currency"].upper()
    for field in ("unit_price", "min_order_quantity"):
        if requested.get(field) is not None:
            requested[field] = to_decimal(requested[field])

    starts = requested.get("effective_from", offering.effective_from)
    ends = requested.get("effective_to", offering.effective_to)
    if starts and ends and ends < starts:
        raise AppException(
            400,
            "Effective end date must be on or after start date",
            ErrorCode.VALIDATION_ERROR,
        )
    if "effective_from" in requested and requested["effective_from"] != offering.effective_from:
        await _ensure_unique(
            db,
            offering.vendor_company_id,
            offering.material_id,
            offering.service_category_id,
            requested["effective_from"],
            exclude_id=offering.id,
        )

    changes = {
        field: [None if getattr(offering, field) is None else str(getattr(offering, field)),
                None if value is None else str(value)]
        for field, value in requested.items()
        if getattr(offering, field) != value
    }
    if not changes:
        raise AppException(400, "No changes detected", ErrorCode.VALIDATION_ERROR)

    if requested.get("is_preferred") and not offering.is_preferred:
        await _clear_preferred(db, offering)
    for field in changes:
        setattr(offering, field, requested[field])
    offering.updated_by_id = user.id

    await emit_activity(
        db,
        code=ActivityCode.UPDATE_VENDOR_OFFERING,
        entity_type="VENDOR_OFFERING",
        entity_id=offering.id,
        changes=changes,
        target_name=await _target_name(db, offering),
        vendor_name=offering.vendor.name if offering.vendor else offering.vendor_company_id,
        summary=", ".join(sorted(changes)),
        **_actor(user),
    )
    await db.commit()
    return _map_offering(await _get_offering(db, offering_id))


async def set_preferred_offering(db: AsyncSession, offering_id: int, user) -> VendorOfferingOut:
    offering = await _get_offering(db, offering_id)
    if offering.is_preferred:
        return _map_offering(offering)
    return await update_vendor_offering(db, offering_id, VendorOfferingUpdate(is_preferred=True), user)


async def delete_vendor_offering(db: AsyncSession, offering_id: int, user) -> None:
    offering = await _get_offering(db, offering_id, for_update=True)

    await emit_activity(
        db,
        code=ActivityCode.DELETE_VENDOR_OFFERING,
        entity_type="VENDOR_OFFERING",
        entity_id=offering.id,
        target_name=await _target_name(db, offering),
        vendor_name=offering.vendor.name if offering.vendor else offering.vendor_company_id,
        **_actor(user),
    )
    await db.delete(offering)
    await db.commit()


# =====================================================
# QUERIES
# =====================================================
async def get_vendor_offering(db: AsyncSession, offering_id: int) -> VendorOfferingOut:
    return _map_offering(await _get_offering(db, offering_id))


async def _list(db: AsyncSession, condition, filters: VendorOfferingFilters) -> VendorOfferingListData:
    stmt = select(VendorOffering).where(condition)
    if filters.current_only:
        today = date.today()
        stmt = stmt.where(
            or_(VendorOffering.effective_from.is_(None), VendorOffering.effective_from <= today),
            or_(VendorOffering.effective_to.is_(None), VendorOffering.effective_to >= today),
        )

    total = await db.scalar(select(func.count()).select_from(stmt.subquery()))
    rows = (
        await db.execute(
            stmt.order_by(
                VendorOffering.is_preferred.desc(),
                VendorOffering.unit_price.asc(),
                VendorOffering.id,
            )
            .offset((filters.page - 1) * filters.page_size)
            .limit(filters.page_size)
        )
    ).scalars().all()

    return VendorOfferingListData(total=total or 0, items=[_map_offering(o) for o in rows])


async def list_material_offerings(
    db: AsyncSession,
    material_id: int,
    filters: VendorOfferingFilters,
) -> VendorOfferingListData:
    await get_material_or_404(db, material_id)
    return await _list(db, VendorOffering.material_id == material_id, filters)


async def list_service_offerings(
    db: AsyncSession,
    category_id: int,
    filters: VendorOfferingFilters,
) -> VendorOfferingListData:
    await get_service_category_or_404(db, category_id)
    return await _list(db, VendorOffering.service_category_id == category_id, filters)
