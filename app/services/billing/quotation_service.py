from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, List

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from app.core.config import DEFAULT_QUOTATION_VALIDITY_DAYS
from app.models.billing.quotation_models import Quotation, QuotationItem
from app.models.masters.product_models import Product
from app.models.projects.project_models import Project
from app.models.users.user_models import User
from app.models.base.mixins import utcnow
from app.models.enums.quotation_status import QuotationStatus, APPROVED_QUOTATION_STATUSES
from app.models.enums.project_status import ProjectStatus
from app.models.enums.approval_status import ApprovalEntityType

from app.schemas.billing.quotation_schemas import (
    QuotationCreate,
    QuotationUpdate,
    QuotationItemIn,
    QuotationEmailIn,
    QuotationListFilters,
    QuotationItemOut,
    QuotationOut,
    QuotationListData,
)

from app.services.projects.project_service import get_project_or_404, transition_project
from app.services.approval.approval_service import create_approval_request
from app.services.mail.graph_client import MailMessage, MailAttachment, send_mail
from app.utils.pdf_generators.quotation_pdf import render_quotation_pdf
from app.utils.decimal_utils import to_decimal, line_total, sum_money

from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.constants.activity_codes import ActivityCode
from app.utils.activity_helpers import emit_activity
from app.utils.logger import get_logger

logger = get_logger(__name__)

NEW_VERSION_SOURCE_STATUSES = (
    QuotationStatus.approved,
    QuotationStatus.rejected,
    QuotationStatus.sent,
    QuotationStatus.accepted,
)
SENDABLE_STATUSES = (QuotationStatus.approved, QuotationStatus.sent)


# =====================================================
# HELPERS
# =====================================================
def _map_quotation(q: Quotation) -> QuotationOut:
    return QuotationOut(
        id=q.id,
        project_id=q.project_id,
        job_code=q.project.job_code if q.project else None,
        version=q.version,
        status=q.status,
        quotation_date=q.quotation_date,
        validity_days=q.validity_days,
        valid_until=q.quotation_date + timedelta(days=q.validity_days),
        total_amount=q.total_amount,
        notes=q.notes,
        submitted_at=q.submitted_at,
        approved_at=q.approved_at,
        approved_by_id=q.approved_by_id,
        rejection_reason=q.rejection_reason,
        sent_at=q.sent_at,
        accepted_at=q.accepted_at,
        items=[QuotationItemOut.model_validate(i) for i in q.items],
        created_by=q.created_by_id,
        created_at=q.created_at,
        updated_at=q.updated_at,
    )


def _actor(user: User) -> dict:
    return dict(
        user_id=user.id,
        username=user.username,
        actor_role=user.role.capitalize(),
        actor_email=user.username,
    )


async def _get_quotation(
    db: AsyncSession,
    quotation_id: int,
    *,
    for_update: bool = False,
) -> Quotation:
    stmt = (
        select(Quotation)
        .where(Quotation.id == quotation_id, Quotation.is_deleted.is_(False))
        .execution_options(populate_existing=True)
    )
    if for_update:
        stmt = stmt.with_for_update()

    q = (await db.execute(stmt)).scalar_one_or_none()
    if not q:
        raise AppException(404, "Quotation not found", ErrorCode.QUOTATION_NOT_FOUND)
    return q


def _ensure_status(q: Quotation, allowed, action: str) -> None:
    if q.status not in allowed:
        raise AppException(
            400,
            f"Cannot {action} a quotation in {q.status.value} status",
            ErrorCode.QUOTATION_INVALID_STATE,
            {"current_status": q.status.value},
        )


async def get_latest_approved_quotation(db: AsyncSession, project_id: int) -> Quotation | None:
    """Highest version of the project's quotations that has passed approval."""
    return (
        await db.execute(
            select(Quotation)
            .where(
                Quotation.project_id == project_id,
                Quotation.is_deleted.is_(False),
                Quotation.status.in_(APPROVED_QUOTATION_STATUSES),
            )
            .order_by(Quotation.version.desc())
            .limit(1)
        )
    ).scalar_one_or_none()


async def _fetch_products_map(db: AsyncSession, items: List[QuotationItemIn]) -> Dict[int, Product]:
    product_ids = [i.product_id for i in items]
    if len(set(product_ids)) != len(product_ids):
        raise AppException(
            400,
            "Duplicate products in quotation",
            ErrorCode.VALIDATION_ERROR,
        )

    products = (
        await db.execute(
            select(Product).where(Product.id.in_(product_ids), Product.is_deleted.is_(False))
        )
    ).scalars().all()
    products_map = {p.id: p for p in products}

    missing = [pid for pid in product_ids if pid not in products_map]
    if missing:
        raise AppException(
            404,
            "One or more products not found",
            ErrorCode.PRODUCT_NOT_FOUND,
            {"product_ids": missing},
        )
    return products_map


async def _build_items(db: AsyncSession, items: List[QuotationItemIn]) -> List[QuotationItem]:
    products_map = await _fetch_products_map(db, items)

    built = []
    for seq, item in enumerate(items, start=1):
        product = products_map[item.product_id]
        unit_price = item.unit_price if item.unit_price is not None else product.base_unit_price
        if unit_price is None:
            raise AppException(
                400,
                f"Unit price required for product {product.sku}",
                ErrorCode.VALIDATION_ERROR,
                {"product_id": product.id},
            )

        quantity = to_decimal(item.quantity)
        unit_price = to_decimal(unit_price)
        built.append(
            QuotationItem(
                product_id=product.id,
                product_name=product.name,
                sequence=seq,
                quantity=quantity,
                unit_price=unit_price,
                line_total=line_total(quantity, unit_price),
                notes=item.notes,
            )
        )
    return built


def _recalculate_total(q: Quotation) -> None:
    q.total_amount = sum_money(i.line_total for i in q.items)


# =====================================================
# CREATE
# =====================================================
async def create_quotation(db: AsyncSession, payload: QuotationCreate, user: User) -> QuotationOut:
    project = await get_project_or_404(db, payload.project_id, for_update=True)
    if project.status in (ProjectStatus.completed, ProjectStatus.archived):
        raise AppException(
            400,
            f"Cannot quote a project in {project.status.value} status",
            ErrorCode.PROJECT_INVALID_STATE,
        )

    latest_version = await db.scalar(
        select(func.max(Quotation.version)).where(Quotation.project_id == project.id)
    )

    items = await _build_items(db, payload.items)

    quotation = Quotation(
        project=project,
        version=(latest_version or 0) + 1,
        status=QuotationStatus.draft,
        quotation_date=payload.quotation_date or date.today(),
        validity_days=payload.validity_days or DEFAULT_QUOTATION_VALIDITY_DAYS,
        notes=payload.notes,
        items=items,
        created_by_id=user.id,
        updated_by_id=user.id,
    )
    _recalculate_total(quotation)

    db.add(quotation)
    await db.flush()

    await emit_activity(
        db,
        code=ActivityCode.CREATE_QUOTATION,
        entity_type="QUOTATION",
        entity_id=quotation.id,
        target_name=quotation.reference,
        **_actor(user),
    )

    await db.commit()
    logger.info("Quotation created", extra={"quotation_id": quotation.id, "version": quotation.version})

    return _map_quotation(await _get_quotation(db, quotation.id))


# =====================================================
# UPDATE (DRAFT ONLY)
# =====================================================
async def update_quotation(
    db: AsyncSession,
    quotation_id: int,
    payload: QuotationUpdate,
    user: User,
) -> QuotationOut:
    q = await _get_quotation(db, quotation_id, for_update=True)
    _ensure_status(q, (QuotationStatus.draft,), "edit")

    data = payload.model_dump(exclude_unset=True, exclude={"items"})
    changed = []
    for field, value in data.items():
        if value is not None and getattr(q, field) != value:
            setattr(q, field, value)
            changed.append(field)

    if payload.items is not None:
        new_items = await _build_items(db, payload.items)
        q.items.clear()
        await db.flush()
        q.items.extend(new_items)
        _recalculate_total(q)
        changed.append("items")

    if not changed:
        raise AppException(400, "No changes provided", ErrorCode.VALIDATION_ERROR)

    q.updated_by_id = user.id
    await db.flush()

    await emit_activity(
        db,
        code=ActivityCode.UPDATE_QUOTATION,
        entity_type="QUOTATION",
        entity_id=q.id,
        target_name=q.reference,
        summary=", ".join(changed),
        **_actor(user),
    )

    await db.commit()
    return _map_quotation(await _get_quotation(db, quotation_id))


# =====================================================
# SUBMIT FOR APPROVAL
# =====================================================
async def submit_quotation(db: AsyncSession, quotation_id: int, user: User) -> QuotationOut:
    q = await _get_quotation(db, quotation_id, for_update=True)
    _ensure_status(q, (QuotationStatus.draft,), "submit")

    if not q.items:
        raise AppException(
            400,
            "Cannot submit a quotation without line items",
            ErrorCode.BUSINESS_RULE_VIOLATION,
        )

    q.status = QuotationStatus.pending
    q.submitted_at = utcnow()
    q.updated_by_id = user.id

    await create_approval_request(
        db,
        entity_type=ApprovalEntityType.quotation,
        entity_id=q.id,
        entity_description=f"Quotation {q.reference}",
        user=user,
    )

    await emit_activity(
        db,
        code=ActivityCode.SUBMIT_QUOTATION,
        entity_type="QUOTATION",
        entity_id=q.id,
        target_name=q.reference,
        **_actor(user),
    )

    await db.commit()
    logger.info("Quotation submitted", extra={"quotation_id": q.id})
    return _map_quotation(await _get_quotation(db, quotation_id))


# =====================================================
# NEW VERSION
# =====================================================
async def create_new_version(db: AsyncSession, quotation_id: int, user: User) -> QuotationOut:
    source = await _get_quotation(db, quotation_id)
    _ensure_status(source, NEW_VERSION_SOURCE_STATUSES, "create a new version from")

    project = await get_project_or_404(db, source.project_id, for_update=True)
    latest_version = await db.scalar(
        select(func.max(Quotation.version)).where(Quotation.project_id == project.id)
    )

    quotation = Quotation(
        project=project,
        version=(latest_version or 0) + 1,
        status=QuotationStatus.draft,
        quotation_date=date.today(),
        validity_days=source.validity_days,
        notes=source.notes,
        items=[
            QuotationItem(
                product_id=i.product_id,
                product_name=i.product_name,
                sequence=i.sequence,
                quantity=i.quantity,
                unit_price=i.unit_price,
                line_total=i.line_total,
                notes=i.notes,
            )
            for i in source.items
        ],
        created_by_id=user.id,
        updated_by_id=user.id,
    )
    _recalculate_total(quotation)

    db.add(quotation)
    await db.flush()

    await emit_activity(
        db,
        code=ActivityCode.CREATE_QUOTATION,
        entity_type="QUOTATION",
        entity_id=quotation.id,
        metadata={"source_quotation_id": source.id},
        target_name=quotation.reference,
        **_actor(user),
    )

    await db.commit()
    return _map_quotation(await _get_quotation(db, quotation.id))


# =====================================================
# CUSTOMER LIFECYCLE
# =====================================================
async def _mark_sent(db: AsyncSession, q: Quotation, user: User) -> None:
    q.status = QuotationStatus.sent
    q.sent_at = utcnow()
    q.updated_by_id = user.id

    await emit_activity(
        db,
        code=ActivityCode.SEND_QUOTATION,
        entity_type="QUOTATION",
        entity_id=q.id,
        target_name=q.reference,
        **_actor(user),
    )


async def mark_quotation_sent(db: AsyncSession, quotation_id: int, user: User) -> QuotationOut:
    q = await _get_quotation(db, quotation_id, for_update=True)
    _ensure_status(q, SENDABLE_STATUSES, "send")

    await _mark_sent(db, q, user)
    await db.commit()
    return _map_quotation(await _get_quotation(db, quotation_id))


async def accept_quotation(db: AsyncSession, quotation_id: int, user: User) -> QuotationOut:
    q = await _get_quotation(db, quotation_id, for_update=True)
    _ensure_status(q, SENDABLE_STATUSES, "accept")

    q.status = QuotationStatus.accepted
    q.accepted_at = utcnow()
    q.updated_by_id = user.id

    await emit_activity(
        db,
        code=ActivityCode.ACCEPT_QUOTATION,
        entity_type="QUOTATION",
        entity_id=q.id,
        target_name=q.reference,
        **_actor(user),
    )

    project = await get_project_or_404(db, q.project_id, for_update=True)
    if project.status == ProjectStatus.draft:
        await transition_project(db, project, ProjectStatus.active, user)

    await db.commit()
    logger.info("Quotation accepted", extra={"quotation_id": q.id})
    return _map_quotation(await _get_quotation(db, quotation_id))


# =====================================================
# LIST / GET
# =====================================================
async def list_quotations(db: AsyncSession, filters: QuotationListFilters) -> QuotationListData:
    stmt = select(Quotation).where(Quotation.is_deleted.is_(False))
    if filters.project_id:
        stmt = stmt.where(Quotation.project_id == filters.project_id)
    if filters.status:
        stmt = stmt.where(Quotation.status == filters.status)

    total = await db.scalar(select(func.count()).select_from(stmt.subquery()))
    rows = (
        await db.execute(
            stmt.order_by(Quotation.project_id.desc(), Quotation.version.desc())
            .limit(filters.page_size)
            .offset((filters.page - 1) * filters.page_size)
        )
    ).scalars().all()

    return QuotationListData(total=total or 0, items=[_map_quotation(q) for q in rows])


async def get_quotation(db: AsyncSession, quotation_id: int) -> QuotationOut:
    return _map_quotation(await _get_quotation(db, quotation_id))


# =====================================================
# PDF / EMAIL
# =====================================================
def _pdf_filename(q: Quotation) -> str:
    return f"quotation_{q.project.job_code}_v{q.version}.pdf"


async def download_quotation_pdf(db: AsyncSession, quotation_id: int, user: User) -> tuple[bytes, str]:
    q = await _get_quotation(db, quotation_id)
    content = render_quotation_pdf(q)

    await emit_activity(
        db,
        code=ActivityCode.DOWNLOAD_QUOTATION,
        entity_type="QUOTATION",
        entity_id=q.id,
        target_name=q.reference,
        **_actor(user),
    )
    await db.commit()

    return content, _pdf_filename(q)


async def email_quotation(
    db: AsyncSession,
    quotation_id: int,
    payload: QuotationEmailIn,
    user: User,
) -> QuotationOut:
    q = await _get_quotation(db, quotation_id, for_update=True)
    _ensure_status(q, SENDABLE_STATUSES, "email")

    customer = q.project.customer
    recipient = payload.to or (customer.email if customer else None)
    if not recipient:
        raise AppException(
            400,
            "No recipient e-mail address; the customer has no e-mail on file",
            ErrorCode.VALIDATION_ERROR,
        )

    subject = payload.subject or f"Quotation {q.reference} - {q.project.project_name}"
    body = payload.body or (
        f"<p>Dear {customer.contact_person or customer.name if customer else 'Customer'},</p>"
        f"<p>Please find attached our quotation {q.reference} "
        f"for {q.project.project_name}.</p>"
        f"<p>Total amount: {q.total_amount:,}</p>"
    )

    await send_mail(
        db,
        MailMessage(
            to=recipient,
            cc=list(payload.cc),
            subject=subject,
            body=body,
            attachments=[MailAttachment(filename=_pdf_filename(q), content=render_quotation_pdf(q))],
        ),
    )

    await _mark_sent(db, q, user)
    await db.commit()
    return _map_quotation(await _get_quotation(db, quotation_id))
