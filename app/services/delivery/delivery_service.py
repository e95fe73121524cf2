# app/services/delivery/delivery_service.py

from datetime import date

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.locks import project_lock
from app.models.delivery.delivery_models import Delivery, DeliveryLineItem
from app.models.users.user_models import User
from app.models.base.mixins import utcnow
from app.models.enums.delivery_status import DeliveryStatus
from app.models.enums.project_status import ProjectStatus
from app.schemas.delivery.delivery_schemas import (
    DeliveryCreate,
    DeliveryListFilters,
    DeliveryOut,
    DeliveryListData,
)
from app.services.projects.project_service import get_project_or_404
from app.services.billing.invoice_guard_service import (
    validate_delivery_lines,
    delivered_quantities,
    invoiced_quantities,
)
from app.utils.decimal_utils import to_decimal, ZERO
from app.utils.pdf_generators.delivery_note_pdf import render_delivery_note_pdf
from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.constants.activity_codes import ActivityCode
from app.utils.activity_helpers import emit_activity
from app.utils.logger import get_logger

logger = get_logger(__name__)


def _actor(user: User) -> dict:
    return dict(
        user_id=user.id,
        username=user.username,
        actor_role=user.role.capitalize(),
        actor_email=user.username,
    )


async def _get_delivery(db: AsyncSession, delivery_id: int, *, for_update: bool = False) -> Delivery:
    stmt = (
        select(Delivery)
        .where(Delivery.id == delivery_id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        stmt = stmt.with_for_update()
    delivery = (await db.execute(stmt)).scalar_one_or_none()
    if not delivery:
        raise AppException(404, "Delivery not found", ErrorCode.DELIVERY_NOT_FOUND)
    return delivery


# =====================================================
# CREATE (UNDER PROJECT LOCK)
# =====================================================
async def create_delivery(db: AsyncSession, payload: DeliveryCreate, user: User) -> DeliveryOut:
    project = await get_project_or_404(db, payload.project_id)
    if project.status == ProjectStatus.archived:
        raise AppException(
            400,
            "Cannot deliver against an archived project",
            ErrorCode.PROJECT_INVALID_STATE,
        )

    async with project_lock(db, project.id):
        quotation = await validate_delivery_lines(db, project.id, payload.items)
        names = {i.product_id: i.product_name for i in quotation.items}

        delivery = Delivery(
            project_id=project.id,
            quotation_id=quotation.id,
            delivery_date=payload.delivery_date or date.today(),
            status=DeliveryStatus.pending,
            notes=payload.notes,
            items=[
                DeliveryLineItem(
                    product_id=line.product_id,
                    product_name=names[line.product_id],
                    quantity_delivered=to_decimal(line.quantity),
                )
                for line in payload.items
            ],
            created_by_id=user.id,
            updated_by_id=user.id,
        )
        db.add(delivery)
        await db.flush()

        await emit_activity(
            db,
            code=ActivityCode.CREATE_DELIVERY,
            entity_type="DELIVERY",
            entity_id=delivery.id,
            target_id=delivery.id,
            job_code=project.job_code,
            **_actor(user),
        )

        await db.commit()

    logger.info("Delivery created", extra={"delivery_id": delivery.id, "project_id": project.id})
    return DeliveryOut.model_validate(await _get_delivery(db, delivery.id))


# =====================================================
# STATUS
# =====================================================
async def mark_delivered(db: AsyncSession, delivery_id: int, user: User) -> DeliveryOut:
    delivery = await _get_delivery(db, delivery_id, for_update=True)
    if delivery.status != DeliveryStatus.pending:
        raise AppException(
            400,
            f"Cannot mark a {delivery.status.value} delivery as delivered",
            ErrorCode.DELIVERY_INVALID_STATE,
        )

    delivery.status = DeliveryStatus.delivered
    delivery.delivered_at = utcnow()
    delivery.updated_by_id = user.id

    await emit_activity(
        db,
        code=ActivityCode.MARK_DELIVERED,
        entity_type="DELIVERY",
        entity_id=delivery.id,
        target_id=delivery.id,
        **_actor(user),
    )

    await db.commit()
    return DeliveryOut.model_validate(await _get_delivery(db, delivery_id))


async def mark_returned(db: AsyncSession, delivery_id: int, user: User) -> DeliveryOut:
    delivery = await _get_delivery(db, delivery_id)
    if delivery.status == DeliveryStatus.returned:
        raise AppException(
            400,
            "Delivery is already returned",
            ErrorCode.DELIVERY_INVALID_STATE,
        )

    async with project_lock(db, delivery.project_id):
        delivery = await _get_delivery(db, delivery_id, for_update=True)
        if delivery.status == DeliveryStatus.returned:
            raise AppException(400, "Delivery is already returned", ErrorCode.DELIVERY_INVALID_STATE)

        delivered = await delivered_quantities(db, delivery.project_id)
        invoiced = await invoiced_quantities(db, delivery.project_id)
        for line in delivery.items:
            remaining = delivered.get(line.product_id, ZERO) - to_decimal(line.quantity_delivered)
            already = invoiced.get(line.product_id, ZERO)
            if remaining < already:
                raise AppException(
                    400,
                    f"Cannot return delivery: product ID {line.product_id} is already invoiced "
                    f"({already}) beyond the quantity that would remain delivered ({remaining})",
                    ErrorCode.DELIVERY_INVALID_STATE,
                    {"product_id": line.product_id},
                )

        delivery.status = DeliveryStatus.returned
        delivery.returned_at = utcnow()
        delivery.updated_by_id = user.id

        await emit_activity(
            db,
            code=ActivityCode.RETURN_DELIVERY,
            entity_type="DELIVERY",
            entity_id=delivery.id,
            target_id=delivery.id,
            **_actor(user),
        )

        await db.commit()

    return DeliveryOut.model_validate(await _get_delivery(db, delivery_id))


# =====================================================
# LIST / GET
# =====================================================
async def list_deliveries(db: AsyncSession, filters: DeliveryListFilters) -> DeliveryListData:
    stmt = select(Delivery)
    if filters.project_id:
        stmt = stmt.where(Delivery.project_id == filters.project_id)
    if filters.status:
        stmt = stmt.where(Delivery.status == filters.status)

    total = await db.scalar(select(func.count()).select_from(stmt.subquery()))
    rows = (
        await db.execute(
            stmt.order_by(Delivery.delivery_date.desc(), Delivery.id.desc())
            .limit(filters.page_size)
            .offset((filters.page - 1) * filters.page_size)
        )
    ).scalars().all()

    return DeliveryListData(total=total or 0, items=[DeliveryOut.model_validate(d) for d in rows])


async def get_delivery(db: AsyncSession, delivery_id: int) -> DeliveryOut:
    return DeliveryOut.model_validate(await _get_delivery(db, delivery_id))


async def download_delivery_note(db: AsyncSession, delivery_id: int, user: User) -> tuple[bytes, str]:
    delivery = await _get_delivery(db, delivery_id)
    project = await get_project_or_404(db, delivery.project_id)
    content = render_delivery_note_pdf(delivery, project)

    await emit_activity(
        db,
        code=ActivityCode.DOWNLOAD_DELIVERY_NOTE,
        entity_type="DELIVERY",
        entity_id=delivery.id,
        target_id=delivery.id,
        **_actor(user),
    )
    await db.commit()

    return content, f"{project.job_code}-DN-{delivery.id}.pdf"
