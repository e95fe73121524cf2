# app/services/purchasing/purchase_request_service.py

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.purchasing.purchase_models import PurchaseRequest, RfqItem, PurchaseOrder
from app.models.users.user_models import User
from app.models.base.mixins import utcnow
from app.models.enums.company_role_type import CompanyRoleType
from app.models.enums.purchase_status import (
    PurchaseRequestStatus,
    RfqItemStatus,
    PurchaseOrderStatus,
)
from app.schemas.purchasing.purchase_schemas import (
    PurchaseRequestCreate,
    PurchaseRequestUpdate,
    PurchaseRequestListFilters,
    PurchaseRequestOut,
    PurchaseRequestListData,
    RfqItemOut,
    RfqSend,
    RfqReply,
    DocumentEmailIn,
)
from app.services.projects.project_service import get_project_or_404
from app.services.masters.company_service import get_company_with_any_role
from app.services.catalog.material_service import get_active_material
from app.services.catalog.service_category_service import get_active_service_category
from app.services.mail.graph_client import MailMessage, MailAttachment, send_mail
from app.services.support.numbering_service import next_document_number, PURCHASE_REQUEST_PREFIX
from app.utils.decimal_utils import to_decimal
from app.utils.pdf_generators.rfq_pdf import render_rfq_pdf

from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.constants.activity_codes import ActivityCode
from app.utils.activity_helpers import emit_activity
from app.utils.logger import get_logger

logger = get_logger(__name__)

VENDOR_ROLES = (CompanyRoleType.vendor, CompanyRoleType.outsource)


# =====================================================
# HELPERS
# =====================================================
def _map_rfq(item: RfqItem) -> RfqItemOut:
    return RfqItemOut(
        id=item.id,
        vendor_company_id=item.vendor_company_id,
        vendor_name=item.vendor.name if item.vendor else None,
        status=item.status,
        quoted_price=item.quoted_price,
        lead_time_days=item.lead_time_days,
        notes=item.notes,
        sent_at=item.sent_at,
        replied_at=item.replied_at,
        emailed_at=item.emailed_at,
    )


def _map_request(pr: PurchaseRequest) -> PurchaseRequestOut:
    return PurchaseRequestOut(
        id=pr.id,
        request_number=pr.request_number,
        project_id=pr.project_id,
        project_name=pr.project.project_name if pr.project else None,
        material_id=pr.material_id,
        material_sku=pr.material.sku if pr.material else None,
        service_category_id=pr.service_category_id,
        service_category_name=pr.service_category.name if pr.service_category else None,
        description=pr.description,
        quantity=pr.quantity,
        uom=pr.uom,
        required_date=pr.required_date,
        status=pr.status,
        version=pr.version,
        rfq_items=[_map_rfq(i) for i in pr.rfq_items],
        created_by_id=pr.created_by_id,
        created_at=pr.created_at,
        updated_at=pr.updated_at,
    )


def _actor(user: User) -> dict:
    return dict(
        user_id=user.id,
        username=user.username,
        actor_role=user.role.capitalize(),
        actor_email=user.username,
    )


async def get_purchase_request_or_404(
    db: AsyncSession,
    request_id: int,
    *,
    for_update: bool = False,
) -> PurchaseRequest:
    stmt = (
        select(PurchaseRequest)
        .where(PurchaseRequest.id == request_id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        stmt = stmt.with_for_update()
    pr = (await db.execute(stmt)).scalar_one_or_none()
    if not pr:
        raise AppException(404, "Purchase request not found", ErrorCode.PURCHASE_REQUEST_NOT_FOUND)
    return pr


def _ensure_status(pr: PurchaseRequest, allowed, action: str) -> None:
    if pr.status not in allowed:
        raise AppException(
            400,
            f"Cannot {action} a purchase request in {pr.status.value} status",
            ErrorCode.PURCHASE_REQUEST_INVALID_STATE,
            {"status": pr.status.value},
        )


def _find_rfq(pr: PurchaseRequest, rfq_item_id: int) -> RfqItem:
    for item in pr.rfq_items:
        if item.id == rfq_item_id:
            return item
    raise AppException(404, "RFQ item not found", ErrorCode.RFQ_NOT_FOUND)


def _ensure_rfq_status(item: RfqItem, allowed, action: str) -> None:
    if item.status not in allowed:
        raise AppException(
            400,
            f"Cannot {action} an RFQ in {item.status.value} status",
            ErrorCode.RFQ_INVALID_STATE,
            {"status": item.status.value},
        )


# =====================================================
# PURCHASE REQUEST CRUD
# =====================================================
async def create_purchase_request(
    db: AsyncSession,
    payload: PurchaseRequestCreate,
    user: User,
) -> PurchaseRequestOut:
    if payload.project_id is not None:
        await get_project_or_404(db, payload.project_id)

    material = None
    if payload.material_id is not None:
        material = await get_active_material(db, payload.material_id)
    elif payload.service_category_id is not None:
        await get_active_service_category(db, payload.service_category_id)

    pr = PurchaseRequest(
        request_number=await next_document_number(db, PURCHASE_REQUEST_PREFIX),
        project_id=payload.project_id,
        material_id=payload.material_id,
        service_category_id=payload.service_category_id,
        description=payload.description.strip(),
        quantity=to_decimal(payload.quantity),
        uom=payload.uom or (material.unit if material else None) or "EA",
        required_date=payload.required_date,
        status=PurchaseRequestStatus.draft,
        rfq_items=[],
        created_by_id=user.id,
        updated_by_id=user.id,
    )
    db.add(pr)
    await db.flush()

    await emit_activity(
        db,
        code=ActivityCode.CREATE_PURCHASE_REQUEST,
        entity_type="PURCHASE_REQUEST",
        entity_id=pr.id,
        target_name=pr.request_number,
        **_actor(user),
    )

    await db.commit()
    logger.info("Purchase request created", extra={"request_number": pr.request_number})
    return _map_request(await get_purchase_request_or_404(db, pr.id))


async def update_purchase_request(
    db: AsyncSession,
    request_id: int,
    payload: PurchaseRequestUpdate,
    user: User,
) -> PurchaseRequestOut:
    pr = await get_purchase_request_or_404(db, request_id, for_update=True)
    if pr.version != payload.version:
        raise AppException(
            409,
            "Purchase request was modified by another user",
            ErrorCode.PURCHASE_REQUEST_VERSION_CONFLICT,
            {"current_version": pr.version},
        )
    _ensure_status(pr, (PurchaseRequestStatus.draft,), "update")

    changes = {}
    for field, value in payload.model_dump(exclude_unset=True, exclude={"version"}).items():
        if value is None:
            continue
        if field == "quantity":
            value = to_decimal(value)
        old = getattr(pr, field)
        if old != value:
            changes[field] = {"from": str(old), "to": str(value)}
            setattr(pr, field, value)

    if not changes:
        return _map_request(pr)

    pr.bump_version()
    pr.updated_by_id = user.id

    await emit_activity(
        db,
        code=ActivityCode.UPDATE_PURCHASE_REQUEST,
        entity_type="PURCHASE_REQUEST",
        entity_id=pr.id,
        target_name=pr.request_number,
        summary=", ".join(changes),
        changes=changes,
        **_actor(user),
    )

    await db.commit()
    return _map_request(await get_purchase_request_or_404(db, request_id))


async def cancel_purchase_request(db: AsyncSession, request_id: int, user: User) -> PurchaseRequestOut:
    pr = await get_purchase_request_or_404(db, request_id, for_update=True)
    _ensure_status(
        pr,
        (
            PurchaseRequestStatus.draft,
            PurchaseRequestStatus.rfq_sent,
            PurchaseRequestStatus.vendor_selected,
        ),
        "cancel",
    )

    open_po = await db.scalar(
        select(PurchaseOrder.po_number).where(
            PurchaseOrder.purchase_request_id == pr.id,
            PurchaseOrder.status != PurchaseOrderStatus.canceled,
        )
    )
    if open_po:
        raise AppException(
            400,
            f"Purchase request has an active purchase order ({open_po})",
            ErrorCode.PURCHASE_REQUEST_INVALID_STATE,
        )

    pr.status = PurchaseRequestStatus.canceled
    pr.bump_version()
    pr.updated_by_id = user.id

    await emit_activity(
        db,
        code=ActivityCode.CANCEL_PURCHASE_REQUEST,
        entity_type="PURCHASE_REQUEST",
        entity_id=pr.id,
        target_name=pr.request_number,
        **_actor(user),
    )

    await db.commit()
    return _map_request(await get_purchase_request_or_404(db, request_id))


async def list_purchase_requests(
    db: AsyncSession,
    filters: PurchaseRequestListFilters,
) -> PurchaseRequestListData:
    stmt = select(PurchaseRequest)
    if filters.project_id:
        stmt = stmt.where(PurchaseRequest.project_id == filters.project_id)
    if filters.status:
        stmt = stmt.where(PurchaseRequest.status == filters.status)
    if filters.search:
        term = f"%{filters.search.strip()}%"
        stmt = stmt.where(
            or_(
                PurchaseRequest.request_number.ilike(term),
                PurchaseRequest.description.ilike(term),
            )
        )

    total = await db.scalar(select(func.count()).select_from(stmt.subquery()))
    rows = (
        await db.execute(
            stmt.order_by(PurchaseRequest.id.desc())
            .limit(filters.page_size)
            .offset((filters.page - 1) * filters.page_size)
        )
    ).scalars().all()

    return PurchaseRequestListData(total=total or 0, items=[_map_request(r) for r in rows])


async def get_purchase_request(db: AsyncSession, request_id: int) -> PurchaseRequestOut:
    return _map_request(await get_purchase_request_or_404(db, request_id))


# =====================================================
# RFQ
# =====================================================
async def send_rfq(
    db: AsyncSession,
    request_id: int,
    payload: RfqSend,
    user: User,
) -> PurchaseRequestOut:
    pr = await get_purchase_request_or_404(db, request_id, for_update=True)
    _ensure_status(
        pr,
        (PurchaseRequestStatus.draft, PurchaseRequestStatus.rfq_sent),
        "send an RFQ for",
    )
    vendor = await get_company_with_any_role(db, payload.vendor_company_id, VENDOR_ROLES)

    if any(i.vendor_company_id == vendor.id for i in pr.rfq_items):
        raise AppException(
            409,
            f"An RFQ was already sent to {vendor.name} for this request",
            ErrorCode.DUPLICATE_RESOURCE,
        )

    item = RfqItem(
        vendor_company_id=vendor.id,
        status=RfqItemStatus.sent,
        notes=payload.notes,
        sent_at=utcnow(),
    )
    item.vendor = vendor
    pr.rfq_items.append(item)
    if pr.status == PurchaseRequestStatus.draft:
        pr.status = PurchaseRequestStatus.rfq_sent
    pr.bump_version()
    pr.updated_by_id = user.id

    await emit_activity(
        db,
        code=ActivityCode.SEND_RFQ,
        entity_type="PURCHASE_REQUEST",
        entity_id=pr.id,
        target_name=pr.request_number,
        vendor_name=vendor.name,
        **_actor(user),
    )

    if payload.send_email:
        await db.flush()
        await _email_rfq_item(
            db,
            pr,
            item,
            DocumentEmailIn(to=payload.to, cc=payload.cc),
            user,
        )

    await db.commit()
    return _map_request(await get_purchase_request_or_404(db, request_id))


def _rfq_filename(pr: PurchaseRequest) -> str:
    return f"{pr.request_number}-RFQ.pdf"


async def _email_rfq_item(
    db: AsyncSession,
    pr: PurchaseRequest,
    item: RfqItem,
    payload: DocumentEmailIn,
    user: User,
) -> None:
    vendor = item.vendor
    recipient = payload.to or (vendor.email if vendor else None)
    if not recipient:
        raise AppException(
            400,
            "No recipient e-mail address; the vendor has no e-mail on file",
            ErrorCode.VALIDATION_ERROR,
        )

    subject = payload.subject or f"Request for Quotation {pr.request_number}"
    body = payload.body or (
        f"<p>Dear {vendor.contact_person or vendor.name if vendor else 'Supplier'},</p>"
        f"<p>Please find attached our request for quotation {pr.request_number}.</p>"
        f"<p>Required by: {pr.required_date:%Y-%m-%d}</p>"
    )

    await send_mail(
        db,
        MailMessage(
            to=recipient,
            cc=list(payload.cc),
            subject=subject,
            body=body,
            attachments=[MailAttachment(filename=_rfq_filename(pr), content=render_rfq_pdf(pr, item))],
        ),
    )
    item.emailed_at = utcnow()

    await emit_activity(
        db,
        code=ActivityCode.EMAIL_RFQ,
        entity_type="PURCHASE_REQUEST",
        entity_id=pr.id,
        target_name=pr.request_number,
        vendor_name=vendor.name if vendor else item.vendor_company_id,
        recipient=recipient,
        metadata={"rfq_item_id": item.id},
        **_actor(user),
    )
    logger.info(
        "RFQ e-mailed",
        extra={"request_number": pr.request_number, "rfq_item_id": item.id},
    )


async def email_rfq(
    db: AsyncSession,
    request_id: int,
    rfq_item_id: int,
    payload: DocumentEmailIn,
    user: User,
) -> PurchaseRequestOut:
    pr = await get_purchase_request_or_404(db, request_id, for_update=True)
    _ensure_status(pr, (PurchaseRequestStatus.rfq_sent,), "e-mail an RFQ for")
    item = _find_rfq(pr, rfq_item_id)
    _ensure_rfq_status(item, (RfqItemStatus.sent, RfqItemStatus.no_response), "e-mail")

    await _email_rfq_item(db, pr, item, payload, user)
    await db.commit()
    return _map_request(await get_purchase_request_or_404(db, request_id))


async def download_rfq_pdf(
    db: AsyncSession,
    request_id: int,
    rfq_item_id: int | None = None,
) -> tuple[bytes, str]:
    pr = await get_purchase_request_or_404(db, request_id)
    item = _find_rfq(pr, rfq_item_id) if rfq_item_id is not None else None
    return render_rfq_pdf(pr, item), _rfq_filename(pr)


async def record_rfq_reply(
    db: AsyncSession,
    request_id: int,
    rfq_item_id: int,
    payload: RfqReply,
    user: User,
) -> PurchaseRequestOut:
    pr = await get_purchase_request_or_404(db, request_id, for_update=True)
    _ensure_status(pr, (PurchaseRequestStatus.rfq_sent,), "record an RFQ reply for")
    item = _find_rfq(pr, rfq_item_id)
    _ensure_rfq_status(item, (RfqItemStatus.sent, RfqItemStatus.no_response), "record a reply on")

    item.status = RfqItemStatus.replied
    item.quoted_price = to_decimal(payload.quoted_price)
    item.lead_time_days = payload.lead_time_days
    if payload.notes is not None:
        item.notes = payload.notes
    item.replied_at = utcnow()
    pr.bump_version()
    pr.updated_by_id = user.id

    await emit_activity(
        db,
        code=ActivityCode.RECORD_RFQ_REPLY,
        entity_type="PURCHASE_REQUEST",
        entity_id=pr.id,
        target_name=pr.request_number,
        vendor_name=item.vendor.name if item.vendor else item.vendor_company_id,
        metadata={"rfq_item_id": item.id, "quoted_price": str(item.quoted_price)},
        **_actor(user),
    )

    await db.commit()
    return _map_request(await get_purchase_request_or_404(db, request_id))


async def mark_rfq_no_response(
    db: AsyncSession,
    request_id: int,
    rfq_item_id: int,
    user: User,
) -> PurchaseRequestOut:
    pr = await get_purchase_request_or_404(db, request_id, for_update=True)
    item = _find_rfq(pr, rfq_item_id)
    _ensure_rfq_status(item, (RfqItemStatus.sent,), "mark no-response on")

    item.status = RfqItemStatus.no_response
    pr.bump_version()
    pr.updated_by_id = user.id

    await db.commit()
    return _map_request(await get_purchase_request_or_404(db, request_id))


async def select_vendor(
    db: AsyncSession,
    request_id: int,
    rfq_item_id: int,
    user: User,
) -> PurchaseRequestOut:
    pr = await get_purchase_request_or_404(db, request_id, for_update=True)
    _ensure_status(pr, (PurchaseRequestStatus.rfq_sent,), "select a vendor for")
    item = _find_rfq(pr, rfq_item_id)
    _ensure_rfq_status(item, (RfqItemStatus.replied,), "select")

    item.status = RfqItemStatus.selected
    for other in pr.rfq_items:
        if other.id != item.id and other.status == RfqItemStatus.replied:
            other.status = RfqItemStatus.rejected

    pr.status = PurchaseRequestStatus.vendor_selected
    pr.bump_version()
    pr.updated_by_id = user.id

    await emit_activity(
        db,
        code=ActivityCode.SELECT_VENDOR,
        entity_type="PURCHASE_REQUEST",
        entity_id=pr.id,
        target_name=pr.request_number,
        vendor_name=item.vendor.name if item.vendor else item.vendor_company_id,
        metadata={"rfq_item_id": item.id},
        **_actor(user),
    )

    await db.commit()
    logger.info("Vendor selected", extra={"request_number": pr.request_number, "rfq_item_id": item.id})
    return _map_request(await get_purchase_request_or_404(db, request_id))
