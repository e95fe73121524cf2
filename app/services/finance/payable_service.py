# app/services/finance/payable_service.py

import re
from datetime import date, timedelta

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.finance.payable_models import AccountsPayable, VendorPayment
from app.models.purchasing.purchase_models import PurchaseOrder
from app.models.users.user_models import User
from app.models.enums.payable_status import PayableStatus, DisbursementCauseType
from app.schemas.finance.payable_schemas import (
    VendorPaymentCreate,
    PayableListFilters,
    PayableOut,
    VendorPaymentOut,
    PayableListData,
)
from app.utils.aging import aging_bucket
from app.utils.decimal_utils import to_decimal, compute_balance, ZERO

from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.constants.activity_codes import ActivityCode
from app.utils.activity_helpers import emit_activity
from app.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TERM_DAYS = 30
IMMEDIATE_TERMS = {"COD", "CIA", "PREPAID", "IMMEDIATE", "DUE_ON_RECEIPT"}
OPEN_PAYABLE_STATUSES = (PayableStatus.pending, PayableStatus.partially_paid)


def payment_terms_days(terms: str | None) -> int:
    """Days until payment is due for terms such as NET30, NET 45 or COD."""
    if not terms:
        return DEFAULT_TERM_DAYS
    normalized = terms.strip().upper()
    if normalized in IMMEDIATE_TERMS:
        return 0
    match = re.search(r"(\d+)", normalized)
    return int(match.group(1)) if match else DEFAULT_TERM_DAYS


# =====================================================
# HELPERS
# =====================================================
def _map_payable(ap: AccountsPayable, today: date | None = None) -> PayableOut:
    open_ = ap.status in OPEN_PAYABLE_STATUSES
    return PayableOut(
        id=ap.id,
        cause_type=ap.cause_type,
        cause_id=ap.cause_id,
        cause_reference_number=ap.cause_reference_number,
        vendor_company_id=ap.vendor_company_id,
        vendor_name=ap.vendor.name if ap.vendor else None,
        total_amount=ap.total_amount,
        total_paid=ap.total_paid,
        remaining_balance=compute_balance(ap.total_amount, ap.total_paid),
        currency=ap.currency,
        due_date=ap.due_date,
        status=ap.status,
        aging_bucket=aging_bucket(ap.due_date if open_ else None, today),
        notes=ap.notes,
        version=ap.version,
        payments=[VendorPaymentOut.model_validate(p) for p in ap.payments],
        created_at=ap.created_at,
        updated_at=ap.updated_at,
    )


def _actor(user: User) -> dict:
    return dict(
        user_id=user.id,
        username=user.username,
        actor_role=user.role.capitalize(),
        actor_email=user.username,
    )


async def _get_payable(db: AsyncSession, payable_id: int, *, for_update: bool = False) -> AccountsPayable:
    stmt = (
        select(AccountsPayable)
        .where(AccountsPayable.id == payable_id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        stmt = stmt.with_for_update()
    ap = (await db.execute(stmt)).scalar_one_or_none()
    if not ap:
        raise AppException(404, "Accounts payable not found", ErrorCode.PAYABLE_NOT_FOUND)
    return ap


async def _payable_for_purchase_order(db: AsyncSession, po_id: int) -> AccountsPayable | None:
    return (
        await db.execute(
            select(AccountsPayable)
            .where(
                AccountsPayable.cause_type == DisbursementCauseType.purchase_order,
                AccountsPayable.cause_id == po_id,
            )
            .with_for_update()
        )
    ).scalar_one_or_none()


def _ensure_cancellable(ap: AccountsPayable) -> None:
    if ap.status == PayableStatus.cancelled:
        raise AppException(400, "Accounts payable is already cancelled", ErrorCode.PAYABLE_INVALID_STATE)
    if ap.status == PayableStatus.paid:
        raise AppException(400, "Cannot cancel a fully paid accounts payable", ErrorCode.PAYABLE_INVALID_STATE)
    if ap.payments or to_decimal(ap.total_paid) > ZERO:
        raise AppException(
            400,
            "Cannot cancel accounts payable with existing payments",
            ErrorCode.PAYABLE_INVALID_STATE,
        )


# =====================================================
# PURCHASE ORDER HOOKS (CALLER COMMITS)
# =====================================================
async def create_payable_for_purchase_order(
    db: AsyncSession,
    po: PurchaseOrder,
    user: User,
) -> AccountsPayable:
    """Create the payable for a confirmed PO; returns the existing one if already created."""
    existing = await _payable_for_purchase_order(db, po.id)
    if existing:
        logger.info("Payable already exists for purchase order", extra={"po_id": po.id})
        return existing

    terms = po.vendor.payment_terms if po.vendor else None
    due_date = date.today() + timedelta(days=payment_terms_days(terms))

    ap = AccountsPayable(
        cause_type=DisbursementCauseType.purchase_order,
        cause_id=po.id,
        cause_reference_number=po.po_number,
        vendor_company_id=po.vendor_company_id,
        total_amount=to_decimal(po.total_amount),
        total_paid=ZERO,
        currency=po.currency,
        due_date=due_date,
        status=PayableStatus.pending,
        payments=[],
        created_by_id=user.id,
        updated_by_id=user.id,
    )
    db.add(ap)
    await db.flush()

    await emit_activity(
        db,
        user_id=user.id,
        username=user.username,
        code=ActivityCode.CREATE_PAYABLE,
        entity_type="ACCOUNTS_PAYABLE",
        entity_id=ap.id,
        target_name=po.po_number,
        amount=ap.total_amount,
        currency=ap.currency,
        due_date=due_date,
    )
    return ap


async def cancel_payable_for_purchase_order(
    db: AsyncSession,
    po: PurchaseOrder,
    user: User,
) -> None:
    ap = await _payable_for_purchase_order(db, po.id)
    if ap is None or ap.status == PayableStatus.cancelled:
        return
    _ensure_cancellable(ap)
    await _cancel(db, ap, user)


async def _cancel(db: AsyncSession, ap: AccountsPayable, user: User) -> None:
    ap.status = PayableStatus.cancelled
    ap.bump_version()
    ap.updated_by_id = user.id

    await emit_activity(
        db,
        code=ActivityCode.CANCEL_PAYABLE,
        entity_type="ACCOUNTS_PAYABLE",
        entity_id=ap.id,
        target_name=ap.cause_reference_number,
        **_actor(user),
    )


# =====================================================
# PAYMENTS
# =====================================================
async def record_vendor_payment(
    db: AsyncSession,
    payable_id: int,
    payload: VendorPaymentCreate,
    user: User,
) -> PayableOut:
    ap = await _get_payable(db, payable_id, for_update=True)
    if ap.status not in OPEN_PAYABLE_STATUSES:
        raise AppException(
            400,
            f"Cannot record a payment on accounts payable in {ap.status.value} status",
            ErrorCode.PAYABLE_INVALID_STATE,
            {"status": ap.status.value},
        )

    amount = to_decimal(payload.amount)
    balance = compute_balance(ap.total_amount, ap.total_paid)
    if amount > balance:
        raise AppException(
            400,
            f"Payment amount ({amount}) exceeds remaining balance ({balance})",
            ErrorCode.PAYMENT_EXCEEDS_BALANCE,
            {"amount": str(amount), "remaining_balance": str(balance)},
        )

    db.add(
        VendorPayment(
            payable_id=ap.id,
            payment_date=payload.payment_date or date.today(),
            amount=amount,
            payment_method=payload.payment_method,
            reference_number=payload.reference_number,
            notes=payload.notes,
            created_by_id=user.id,
            updated_by_id=user.id,
        )
    )

    ap.total_paid = to_decimal(ap.total_paid) + amount
    if compute_balance(ap.total_amount, ap.total_paid) == ZERO:
        ap.status = PayableStatus.paid
    else:
        ap.status = PayableStatus.partially_paid
    ap.bump_version()
    ap.updated_by_id = user.id

    await emit_activity(
        db,
        code=ActivityCode.ADD_VENDOR_PAYMENT,
        entity_type="ACCOUNTS_PAYABLE",
        entity_id=ap.id,
        target_name=ap.cause_reference_number,
        amount=amount,
        metadata={"payment_method": payload.payment_method.value},
        **_actor(user),
    )

    await db.commit()
    return _map_payable(await _get_payable(db, payable_id))


async def cancel_payable(db: AsyncSession, payable_id: int, user: User) -> PayableOut:
    ap = await _get_payable(db, payable_id, for_update=True)
    _ensure_cancellable(ap)
    await _cancel(db, ap, user)
    await db.commit()
    return _map_payable(await _get_payable(db, payable_id))


# =====================================================
# LIST / GET
# =====================================================
async def list_payables(db: AsyncSession, filters: PayableListFilters) -> PayableListData:
    stmt = select(AccountsPayable)
    if filters.vendor_company_id:
        stmt = stmt.where(AccountsPayable.vendor_company_id == filters.vendor_company_id)
    if filters.status:
        stmt = stmt.where(AccountsPayable.status == filters.status)
    if filters.overdue_only:
        stmt = stmt.where(
            AccountsPayable.status.in_(OPEN_PAYABLE_STATUSES),
            AccountsPayable.due_date < date.today(),
        )

    total = await db.scalar(select(func.count()).select_from(stmt.subquery()))
    rows = (
        await db.execute(
            stmt.order_by(AccountsPayable.due_date.asc(), AccountsPayable.id.asc())
            .limit(filters.page_size)
            .offset((filters.page - 1) * filters.page_size)
        )
    ).scalars().all()

    return PayableListData(total=total or 0, items=[_map_payable(ap) for ap in rows])


async def get_payable(db: AsyncSession, payable_id: int) -> PayableOut:
    return _map_payable(await _get_payable(db, payable_id))
