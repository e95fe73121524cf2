# app/services/purchasing/purchase_order_service.py

from datetime import date

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import DEFAULT_CURRENCY
from app.models.purchasing.purchase_models import PurchaseOrder, RfqItem
from app.models.users.user_models import User
from app.models.enums.approval_status import ApprovalEntityType
from app.models.enums.purchase_status import (
    PurchaseOrderStatus,
    PurchaseRequestStatus,
    RfqItemStatus,
)
from app.schemas.purchasing.purchase_schemas import (
    PurchaseOrderCreate,
    PurchaseOrderUpdate,
    PurchaseOrderStatusChange,
    PurchaseOrderListFilters,
    PurchaseOrderOut,
    PurchaseOrderListData,
    DocumentEmailIn,
)
from app.services.approval.approval_service import has_active_chain, create_approval_request
from app.services.finance.payable_service import (
    create_payable_for_purchase_order,
    cancel_payable_for_purchase_order,
)
from app.services.purchasing.purchase_request_service import get_purchase_request_or_404
from app.services.mail.graph_client import MailMessage, MailAttachment, send_mail
from app.services.support.numbering_service import next_document_number, PURCHASE_ORDER_PREFIX
from app.utils.decimal_utils import to_decimal
from app.utils.pdf_generators.purchase_order_pdf import render_purchase_order_pdf

from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.constants.activity_codes import ActivityCode
from app.utils.activity_helpers import emit_activity
from app.utils.logger import get_logger

logger = get_logger(__name__)

PO_TRANSITIONS = {
    PurchaseOrderStatus.draft: {PurchaseOrderStatus.sent, PurchaseOrderStatus.canceled},
    PurchaseOrderStatus.sent: {PurchaseOrderStatus.confirmed, PurchaseOrderStatus.canceled},
    PurchaseOrderStatus.confirmed: {PurchaseOrderStatus.received, PurchaseOrderStatus.canceled},
    PurchaseOrderStatus.received: set(),
    PurchaseOrderStatus.canceled: set(),
}


# =====================================================
# HELPERS
# =====================================================
def _map_po(po: PurchaseOrder) -> PurchaseOrderOut:
    return PurchaseOrderOut(
        id=po.id,
        po_number=po.po_number,
        purchase_request_id=po.purchase_request_id,
        rfq_item_id=po.rfq_item_id,
        vendor_company_id=po.vendor_company_id,
        vendor_name=po.vendor.name if po.vendor else None,
        project_id=po.project_id,
        order_date=po.order_date,
        expected_delivery_date=po.expected_delivery_date,
        total_amount=po.total_amount,
        currency=po.currency,
        status=po.status,
        notes=po.notes,
        requires_approval=po.requires_approval,
        approved_at=po.approved_at,
        is_sendable=po.is_sendable,
        version=po.version,
        created_by_id=po.created_by_id,
        created_at=po.created_at,
        updated_at=po.updated_at,
    )


def _actor(user: User) -> dict:
    return dict(
        user_id=user.id,
        username=user.username,
        actor_role=user.role.capitalize(),
        actor_email=user.username,
    )


async def _get_po(db: AsyncSession, po_id: int, *, for_update: bool = False) -> PurchaseOrder:
    stmt = (
        select(PurchaseOrder)
        .where(PurchaseOrder.id == po_id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        stmt = stmt.with_for_update()
    po = (await db.execute(stmt)).scalar_one_or_none()
    if not po:
        raise AppException(404, "Purchase order not found", ErrorCode.PURCHASE_ORDER_NOT_FOUND)
    return po


def _check_version(po: PurchaseOrder, version: int) -> None:
    if po.version != version:
        raise AppException(
            409,
            "Purchase order was modified by another user",
            ErrorCode.PURCHASE_ORDER_VERSION_CONFLICT,
            {"current_version": po.version},
        )


# =====================================================
# CREATE
# =====================================================
async def create_purchase_order(
    db: AsyncSession,
    payload: PurchaseOrderCreate,
    user: User,
) -> PurchaseOrderOut:
    rfq = await db.get(RfqItem, payload.rfq_item_id)
    if not rfq:
        raise AppException(404, "RFQ item not found", ErrorCode.RFQ_NOT_FOUND)
    if rfq.status != RfqItemStatus.selected:
        raise AppException(
            400,
            "Purchase orders can only be created from the selected vendor reply",
            ErrorCode.RFQ_INVALID_STATE,
            {"status": rfq.status.value},
        )

    pr = await get_purchase_request_or_404(db, rfq.purchase_request_id, for_update=True)
    if pr.status != PurchaseRequestStatus.vendor_selected:
        raise AppException(
            400,
            f"Cannot create a purchase order for a request in {pr.status.value} status",
            ErrorCode.PURCHASE_REQUEST_INVALID_STATE,
        )

    existing = await db.scalar(select(PurchaseOrder.po_number).where(PurchaseOrder.rfq_item_id == rfq.id))
    if existing:
        raise AppException(
            409,
            f"Purchase order {existing} already exists for this RFQ",
            ErrorCode.DUPLICATE_RESOURCE,
        )

    order_date = payload.order_date or date.today()
    if payload.expected_delivery_date and payload.expected_delivery_date < order_date:
        raise AppException(
            400,
            "Expected delivery date cannot be before order date",
            ErrorCode.VALIDATION_ERROR,
        )

    requires_approval = await has_active_chain(db, ApprovalEntityType.purchase_order)

    po = PurchaseOrder(
        po_number=await next_document_number(db, PURCHASE_ORDER_PREFIX, order_date),
        purchase_request_id=pr.id,
        rfq_item_id=rfq.id,
        vendor_company_id=rfq.vendor_company_id,
        project_id=pr.project_id,
        order_date=order_date,
        expected_delivery_date=payload.expected_delivery_date,
        total_amount=to_decimal(to_decimal(rfq.quoted_price) * to_decimal(pr.quantity)),
        currency=(payload.currency or DEFAULT_CURRENCY).upper(),
        status=PurchaseOrderStatus.draft,
        notes=payload.notes,
        requires_approval=requires_approval,
        created_by_id=user.id,
        updated_by_id=user.id,
    )
    db.add(po)
    await db.flush()

    if requires_approval:
        await create_approval_request(
            db,
            entity_type=ApprovalEntityType.purchase_order,
            entity_id=po.id,
            entity_description=f"Purchase order {po.po_number} ({po.total_amount} {po.currency})",
            user=user,
        )

    await emit_activity(
        db,
        code=ActivityCode.CREATE_PURCHASE_ORDER,
        entity_type="PURCHASE_ORDER",
        entity_id=po.id,
        target_name=po.po_number,
        metadata={"purchase_request": pr.request_number, "requires_approval": requires_approval},
        **_actor(user),
    )

    await db.commit()
    logger.info(
        "Purchase order created",
        extra={"po_number": po.po_number, "requires_approval": requires_approval},
    )
    return _map_po(await _get_po(db, po.id))


# =====================================================
# UPDATE
# =====================================================
async def update_purchase_order(
    db: AsyncSession,
    po_id: int,
    payload: PurchaseOrderUpdate,
    user: User,
) -> PurchaseOrderOut:
    po = await _get_po(db, po_id, for_update=True)
    _check_version(po, payload.version)
    if po.status != PurchaseOrderStatus.draft:
        raise AppException(
            400,
            f"Cannot update purchase order in {po.status.value} status",
            ErrorCode.PURCHASE_ORDER_INVALID_STATE,
        )

    data = payload.model_dump(exclude_unset=True, exclude={"version"})
    if data.get("expected_delivery_date") and data["expected_delivery_date"] < po.order_date:
        raise AppException(
            400,
            "Expected delivery date cannot be before order date",
            ErrorCode.VALIDATION_ERROR,
        )
    for field, value in data.items():
        setattr(po, field, value)

    po.bump_version()
    po.updated_by_id = user.id
    await db.commit()
    return _map_po(await _get_po(db, po_id))


# =====================================================
# STATUS
# =====================================================
async def change_purchase_order_status(
    db: AsyncSession,
    po_id: int,
    payload: PurchaseOrderStatusChange,
    user: User,
) -> PurchaseOrderOut:
    po = await _get_po(db, po_id, for_update=True)
    _check_version(po, payload.version)
    await _apply_transition(db, po, payload.status, user)
    await db.commit()
    return _map_po(await _get_po(db, po_id))


async def _apply_transition(
    db: AsyncSession,
    po: PurchaseOrder,
    new_status: PurchaseOrderStatus,
    user: User,
) -> None:
    old_status = po.status
    if new_status not in PO_TRANSITIONS[old_status]:
        raise AppException(
            400,
            f"Cannot change purchase order from {old_status.value} to {new_status.value}",
            ErrorCode.PURCHASE_ORDER_INVALID_STATE,
            {"from": old_status.value, "to": new_status.value},
        )

    if new_status == PurchaseOrderStatus.sent and not po.is_sendable:
        raise AppException(
            400,
            "Purchase order must be approved before it can be sent",
            ErrorCode.PURCHASE_ORDER_INVALID_STATE,
        )

    if new_status == PurchaseOrderStatus.confirmed:
        await create_payable_for_purchase_order(db, po, user)
    elif new_status == PurchaseOrderStatus.received:
        pr = await get_purchase_request_or_404(db, po.purchase_request_id, for_update=True)
        pr.status = PurchaseRequestStatus.closed
        pr.bump_version()
        pr.updated_by_id = user.id
    elif new_status == PurchaseOrderStatus.canceled and old_status == PurchaseOrderStatus.confirmed:
        await cancel_payable_for_purchase_order(db, po, user)

    po.status = new_status
    po.bump_version()
    po.updated_by_id = user.id

    await emit_activity(
        db,
        code=ActivityCode.CHANGE_PURCHASE_ORDER_STATUS,
        entity_type="PURCHASE_ORDER",
        entity_id=po.id,
        changes={"status": [old_status.value, new_status.value]},
        target_name=po.po_number,
        old_status=old_status.value,
        new_status=new_status.value,
        **_actor(user),
    )

    logger.info(
        "Purchase order status changed",
        extra={"po_number": po.po_number, "from_status": old_status.value, "to_status": new_status.value},
    )


# =====================================================
# DOCUMENT (PDF / E-MAIL)
# =====================================================
EMAILABLE_STATUSES = (
    PurchaseOrderStatus.draft,
    PurchaseOrderStatus.sent,
    PurchaseOrderStatus.confirmed,
)


def _pdf_filename(po: PurchaseOrder) -> str:
    return f"{po.po_number}.pdf"


async def download_purchase_order_pdf(db: AsyncSession, po_id: int, user: User) -> tuple[bytes, str]:
    po = await _get_po(db, po_id)
    pr = await get_purchase_request_or_404(db, po.purchase_request_id)
    content = render_purchase_order_pdf(po, pr)

    await emit_activity(
        db,
        code=ActivityCode.DOWNLOAD_PURCHASE_ORDER,
        entity_type="PURCHASE_ORDER",
        entity_id=po.id,
        target_name=po.po_number,
        **_actor(user),
    )
    await db.commit()

    return content, _pdf_filename(po)


async def email_purchase_order(
    db: AsyncSession,
    po_id: int,
    payload: DocumentEmailIn,
    user: User,
) -> PurchaseOrderOut:
    """
    E-mail the purchase order PDF to the vendor.

    A draft order must be sendable and moves to SENT once the mail is
    accepted; sent and confirmed orders can be re-sent unchanged.
    """
    po = await _get_po(db, po_id, for_update=True)
    if po.status not in EMAILABLE_STATUSES:
        raise AppException(
            400,
            f"Cannot e-mail a purchase order in {po.status.value} status",
            ErrorCode.PURCHASE_ORDER_INVALID_STATE,
            {"status": po.status.value},
        )
    if po.status == PurchaseOrderStatus.draft and not po.is_sendable:
        raise AppException(
            400,
            "Purchase order must be approved before it can be sent",
            ErrorCode.PURCHASE_ORDER_INVALID_STATE,
        )

    vendor = po.vendor
    recipient = payload.to or (vendor.email if vendor else None)
    if not recipient:
        raise AppException(
            400,
            "No recipient e-mail address; the vendor has no e-mail on file",
            ErrorCode.VALIDATION_ERROR,
        )

    pr = await get_purchase_request_or_404(db, po.purchase_request_id)
    subject = payload.subject or f"Purchase Order {po.po_number}"
    body = payload.body or (
        f"<p>Dear {vendor.contact_person or vendor.name if vendor else 'Supplier'},</p>"
        f"<p>Please find attached our purchase order {po.po_number}.</p>"
        f"<p>Total amount: {po.currency} {po.total_amount:,}</p>"
    )

    await send_mail(
        db,
        MailMessage(
            to=recipient,
            cc=list(payload.cc),
            subject=subject,
            body=body,
            attachments=[MailAttachment(filename=_pdf_filename(po), content=render_purchase_order_pdf(po, pr))],
        ),
    )

    if po.status == PurchaseOrderStatus.draft:
        await _apply_transition(db, po, PurchaseOrderStatus.sent, user)

    await emit_activity(
        db,
        code=ActivityCode.EMAIL_PURCHASE_ORDER,
        entity_type="PURCHASE_ORDER",
        entity_id=po.id,
        target_name=po.po_number,
        vendor_name=vendor.name if vendor else po.vendor_company_id,
        recipient=recipient,
        **_actor(user),
    )
    await db.commit()

    logger.info("Purchase order e-mailed", extra={"po_number": po.po_number})
    return _map_po(await _get_po(db, po_id))


# =====================================================
# LIST / GET
# =====================================================
async def list_purchase_orders(db: AsyncSession, filters: PurchaseOrderListFilters) -> PurchaseOrderListData:
    stmt = select(PurchaseOrder)
    if filters.vendor_company_id:
        stmt = stmt.where(PurchaseOrder.vendor_company_id == filters.vendor_company_id)
    if filters.project_id:
        stmt = stmt.where(PurchaseOrder.project_id == filters.project_id)
    if filters.status:
        stmt = stmt.where(PurchaseOrder.status == filters.status)

    total = await db.scalar(select(func.count()).select_from(stmt.subquery()))
    rows = (
        await db.execute(
            stmt.order_by(PurchaseOrder.order_date.desc(), PurchaseOrder.id.desc())
            .limit(filters.page_size)
            .offset((filters.page - 1) * filters.page_size)
        )
    ).scalars().all()

    return PurchaseOrderListData(total=total or 0, items=[_map_po(po) for po in rows])


async def get_purchase_order(db: AsyncSession, po_id: int) -> PurchaseOrderOut:
    return _map_po(await _get_po(db, po_id))
