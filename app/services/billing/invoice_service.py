# app/services/billing/invoice_service.py

from datetime import date, timedelta

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import DEFAULT_TAX_RATE, DEFAULT_INVOICE_DUE_DAYS
from app.core.locks import project_lock
from app.models.billing.invoice_models import TaxInvoice, InvoiceLineItem
from app.models.billing.payment_models import Payment
from app.models.masters.product_models import Product
from app.models.users.user_models import User
from app.models.base.mixins import utcnow
from app.models.enums.invoice_status import InvoiceStatus, PAYABLE_INVOICE_STATUSES
from app.models.enums.project_status import ProjectStatus
from app.schemas.billing.invoice_schemas import (
    InvoiceCreate,
    InvoiceUpdate,
    PaymentCreate,
    InvoiceListFilters,
    InvoiceOut,
    InvoiceItemOut,
    PaymentOut,
    InvoiceListData,
)
from app.services.projects.project_service import get_project_or_404
from app.services.billing.invoice_guard_service import validate_invoice_lines
from app.services.support.numbering_service import next_document_number, INVOICE_PREFIX
from app.utils.pdf_generators.invoice_pdf import render_invoice_pdf
from app.utils.decimal_utils import to_decimal, line_total, sum_money, compute_tax, compute_balance, ZERO

from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.constants.activity_codes import ActivityCode
from app.utils.activity_helpers import emit_activity
from app.utils.logger import get_logger

logger = get_logger(__name__)

SYSTEM_USERNAME = "system"


# =====================================================
# HELPERS
# =====================================================
def _map_invoice(inv: TaxInvoice) -> InvoiceOut:
    return InvoiceOut(
        id=inv.id,
        invoice_number=inv.invoice_number,
        project_id=inv.project_id,
        job_code=inv.project.job_code if inv.project else None,
        quotation_id=inv.quotation_id,
        customer_id=inv.customer_id,
        customer_name=inv.customer.name if inv.customer else None,
        issue_date=inv.issue_date,
        due_date=inv.due_date,
        status=inv.status,
        total_before_tax=inv.total_before_tax,
        tax_rate=inv.tax_rate,
        total_tax=inv.total_tax,
        total_amount=inv.total_amount,
        total_paid=inv.total_paid,
        remaining_balance=compute_balance(inv.total_amount, inv.total_paid),
        notes=inv.notes,
        issued_at=inv.issued_at,
        cancelled_at=inv.cancelled_at,
        version=inv.version,
        items=[InvoiceItemOut.model_validate(i) for i in inv.items],
        payments=[PaymentOut.model_validate(p) for p in inv.payments],
        created_by_id=inv.created_by_id,
        created_at=inv.created_at,
        updated_at=inv.updated_at,
    )


def _actor(user: User) -> dict:
    return dict(
        user_id=user.id,
        username=user.username,
        actor_role=user.role.capitalize(),
        actor_email=user.username,
    )


async def _get_invoice(db: AsyncSession, invoice_id: int, *, for_update: bool = False) -> TaxInvoice:
    stmt = (
        select(TaxInvoice)
        .where(TaxInvoice.id == invoice_id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        stmt = stmt.with_for_update()
    inv = (await db.execute(stmt)).scalar_one_or_none()
    if not inv:
        raise AppException(404, "Invoice not found", ErrorCode.INVOICE_NOT_FOUND)
    return inv


def _ensure_status(inv: TaxInvoice, allowed, action: str) -> None:
    if inv.status not in allowed:
        raise AppException(
            400,
            f"Cannot {action} an invoice in {inv.status.value} status",
            ErrorCode.INVOICE_INVALID_STATE,
            {"status": inv.status.value},
        )


# =====================================================
# CREATE (UNDER PROJECT LOCK)
# =====================================================
async def create_invoice(db: AsyncSession, payload: InvoiceCreate, user: User) -> InvoiceOut:
    project = await get_project_or_404(db, payload.project_id)
    if project.status == ProjectStatus.archived:
        raise AppException(
            400,
            "Cannot invoice an archived project",
            ErrorCode.PROJECT_INVALID_STATE,
        )

    issue_date = payload.issue_date or date.today()
    due_date = payload.due_date or issue_date + timedelta(days=DEFAULT_INVOICE_DUE_DAYS)
    if due_date < issue_date:
        raise AppException(
            400,
            "Due date cannot be before the issue date",
            ErrorCode.VALIDATION_ERROR,
            {"issue_date": str(issue_date), "due_date": str(due_date)},
        )
    tax_rate = DEFAULT_TAX_RATE if payload.tax_rate is None else payload.tax_rate

    async with project_lock(db, project.id):
        quotation = await validate_invoice_lines(db, project.id, payload.items)
        quoted = {i.product_id: i for i in quotation.items}
        skus = dict(
            (await db.execute(
                select(Product.id, Product.sku).where(Product.id.in_(list(quoted)))
            )).all()
        )

        items = []
        for line in payload.items:
            source = quoted[line.product_id]
            unit_price = to_decimal(source.unit_price if line.unit_price is None else line.unit_price)
            quantity = to_decimal(line.quantity)
            items.append(
                InvoiceLineItem(
                    product_id=line.product_id,
                    product_name=source.product_name,
                    product_sku=skus.get(line.product_id),
                    quantity_invoiced=quantity,
                    unit_price=unit_price,
                    line_total=line_total(quantity, unit_price),
                )
            )

        subtotal = sum_money(i.line_total for i in items)
        tax = compute_tax(subtotal, tax_rate)

        inv = TaxInvoice(
            invoice_number=await next_document_number(db, INVOICE_PREFIX, issue_date),
            project_id=project.id,
            quotation_id=quotation.id,
            customer_id=project.customer_id,
            issue_date=issue_date,
            due_date=due_date,
            status=InvoiceStatus.draft,
            tax_rate=to_decimal(tax_rate),
            total_before_tax=subtotal,
            total_tax=tax,
            total_amount=to_decimal(subtotal + tax),
            total_paid=ZERO,
            notes=payload.notes,
            items=items,
            payments=[],
            created_by_id=user.id,
            updated_by_id=user.id,
        )
        db.add(inv)
        await db.flush()

        await emit_activity(
            db,
            code=ActivityCode.CREATE_INVOICE,
            entity_type="INVOICE",
            entity_id=inv.id,
            target_name=inv.invoice_number,
            job_code=project.job_code,
            metadata={"total_amount": str(inv.total_amount)},
            **_actor(user),
        )

        await db.commit()

    logger.info(
        "Invoice created",
        extra={"invoice_number": inv.invoice_number, "project_id": project.id},
    )
    return _map_invoice(await _get_invoice(db, inv.id))


# =====================================================
# UPDATE
# =====================================================
async def update_invoice(
    db: AsyncSession,
    invoice_id: int,
    payload: InvoiceUpdate,
    user: User,
) -> InvoiceOut:
    inv = await _get_invoice(db, invoice_id, for_update=True)
    if inv.version != payload.version:
        raise AppException(
            409,
            "Invoice was modified by another user",
            ErrorCode.INVOICE_VERSION_CONFLICT,
            {"current_version": inv.version},
        )
    _ensure_status(
        inv,
        (InvoiceStatus.draft, InvoiceStatus.issued, InvoiceStatus.partially_paid, InvoiceStatus.overdue),
        "update",
    )

    changes = {}
    data = payload.model_dump(exclude_unset=True, exclude={"version"})

    if "due_date" in data and data["due_date"] != inv.due_date:
        _ensure_status(inv, (InvoiceStatus.draft,), "change the due date of")
        if data["due_date"] is None or data["due_date"] < inv.issue_date:
            raise AppException(
                400,
                "Due date cannot be before the issue date",
                ErrorCode.VALIDATION_ERROR,
            )
        changes["due_date"] = {"from": str(inv.due_date), "to": str(data["due_date"])}
        inv.due_date = data["due_date"]

    if "notes" in data and data["notes"] != inv.notes:
        changes["notes"] = {"from": inv.notes, "to": data["notes"]}
        inv.notes = data["notes"]

    if not changes:
        return _map_invoice(inv)

    inv.bump_version()
    inv.updated_by_id = user.id

    await emit_activity(
        db,
        code=ActivityCode.UPDATE_INVOICE,
        entity_type="INVOICE",
        entity_id=inv.id,
        target_name=inv.invoice_number,
        summary=", ".join(changes),
        changes=changes,
        **_actor(user),
    )

    await db.commit()
    return _map_invoice(await _get_invoice(db, invoice_id))


# =====================================================
# STATUS
# =====================================================
async def issue_invoice(db: AsyncSession, invoice_id: int, user: User) -> InvoiceOut:
    inv = await _get_invoice(db, invoice_id, for_update=True)
    _ensure_status(inv, (InvoiceStatus.draft,), "issue")

    inv.status = InvoiceStatus.issued
    inv.issued_at = utcnow()
    inv.bump_version()
    inv.updated_by_id = user.id

    await emit_activity(
        db,
        code=ActivityCode.ISSUE_INVOICE,
        entity_type="INVOICE",
        entity_id=inv.id,
        target_name=inv.invoice_number,
        **_actor(user),
    )

    await db.commit()
    return _map_invoice(await _get_invoice(db, invoice_id))


async def cancel_invoice(db: AsyncSession, invoice_id: int, user: User) -> InvoiceOut:
    inv = await _get_invoice(db, invoice_id, for_update=True)
    if inv.payments or to_decimal(inv.total_paid) > ZERO:
        raise AppException(
            400,
            "Cannot cancel an invoice that has recorded payments",
            ErrorCode.INVOICE_INVALID_STATE,
            {"total_paid": str(inv.total_paid)},
        )
    _ensure_status(
        inv,
        (InvoiceStatus.draft, InvoiceStatus.issued, InvoiceStatus.overdue),
        "cancel",
    )

    inv.status = InvoiceStatus.cancelled
    inv.cancelled_at = utcnow()
    inv.bump_version()
    inv.updated_by_id = user.id

    await emit_activity(
        db,
        code=ActivityCode.CANCEL_INVOICE,
        entity_type="INVOICE",
        entity_id=inv.id,
        target_name=inv.invoice_number,
        **_actor(user),
    )

    await db.commit()
    return _map_invoice(await _get_invoice(db, invoice_id))


# =====================================================
# PAYMENTS
# =====================================================
async def record_payment(
    db: AsyncSession,
    invoice_id: int,
    payload: PaymentCreate,
    user: User,
) -> InvoiceOut:
    inv = await _get_invoice(db, invoice_id, for_update=True)
    _ensure_status(inv, PAYABLE_INVOICE_STATUSES, "record a payment on")

    amount = to_decimal(payload.amount)
    balance = compute_balance(inv.total_amount, inv.total_paid)
    if amount > balance:
        raise AppException(
            400,
            f"Payment amount ({amount}) exceeds remaining balance ({balance})",
            ErrorCode.PAYMENT_EXCEEDS_BALANCE,
            {"amount": str(amount), "remaining_balance": str(balance)},
        )

    db.add(
        Payment(
            invoice_id=inv.id,
            payment_date=payload.payment_date or date.today(),
            amount=amount,
            payment_method=payload.payment_method,
            reference_number=payload.reference_number,
            notes=payload.notes,
            created_by_id=user.id,
            updated_by_id=user.id,
        )
    )

    inv.total_paid = to_decimal(inv.total_paid) + amount
    if compute_balance(inv.total_amount, inv.total_paid) == ZERO:
        inv.status = InvoiceStatus.paid
    elif inv.status != InvoiceStatus.overdue:
        inv.status = InvoiceStatus.partially_paid
    inv.bump_version()
    inv.updated_by_id = user.id

    await emit_activity(
        db,
        code=ActivityCode.ADD_PAYMENT,
        entity_type="INVOICE",
        entity_id=inv.id,
        target_name=inv.invoice_number,
        amount=amount,
        metadata={"payment_method": payload.payment_method.value},
        **_actor(user),
    )

    await db.commit()

    logger.info(
        "Payment recorded",
        extra={"invoice_id": inv.id, "amount": str(amount), "invoice_status": inv.status.value},
    )
    return _map_invoice(await _get_invoice(db, invoice_id))


# =====================================================
# OVERDUE JOB
# =====================================================
async def mark_overdue_invoices(db: AsyncSession, today: date | None = None) -> int:
    today = today or date.today()
    rows = (
        await db.execute(
            select(TaxInvoice)
            .where(
                TaxInvoice.status.in_((InvoiceStatus.issued, InvoiceStatus.partially_paid)),
                TaxInvoice.due_date < today,
            )
            .with_for_update()
        )
    ).scalars().all()

    for inv in rows:
        inv.status = InvoiceStatus.overdue
        inv.bump_version()
        await emit_activity(
            db,
            user_id=None,
            username=SYSTEM_USERNAME,
            code=ActivityCode.MARK_OVERDUE,
            entity_type="INVOICE",
            entity_id=inv.id,
            target_name=inv.invoice_number,
            due_date=inv.due_date,
        )

    await db.commit()
    if rows:
        logger.info("Invoices marked overdue", extra={"count": len(rows)})
    return len(rows)


# =====================================================
# LIST / GET / PDF
# =====================================================
async def list_invoices(db: AsyncSession, filters: InvoiceListFilters) -> InvoiceListData:
    stmt = select(TaxInvoice)
    if filters.project_id:
        stmt = stmt.where(TaxInvoice.project_id == filters.project_id)
    if filters.customer_id:
        stmt = stmt.where(TaxInvoice.customer_id == filters.customer_id)
    if filters.status:
        stmt = stmt.where(TaxInvoice.status == filters.status)

    total = await db.scalar(select(func.count()).select_from(stmt.subquery()))
    rows = (
        await db.execute(
            stmt.order_by(TaxInvoice.issue_date.desc(), TaxInvoice.id.desc())
            .limit(filters.page_size)
            .offset((filters.page - 1) * filters.page_size)
        )
    ).scalars().all()

    return InvoiceListData(total=total or 0, items=[_map_invoice(i) for i in rows])


async def get_invoice(db: AsyncSession, invoice_id: int) -> InvoiceOut:
    return _map_invoice(await _get_invoice(db, invoice_id))


async def download_invoice_pdf(db: AsyncSession, invoice_id: int, user: User) -> tuple[bytes, str]:
    inv = await _get_invoice(db, invoice_id)
    content = render_invoice_pdf(inv)

    await emit_activity(
        db,
        code=ActivityCode.DOWNLOAD_INVOICE,
        entity_type="INVOICE",
        entity_id=inv.id,
        target_name=inv.invoice_number,
        **_actor(user),
    )
    await db.commit()

    return content, f"invoice_{inv.invoice_number}.pdf"
