# app/services/billing/invoice_guard_service.py

from decimal import Decimal
from typing import Dict, Iterable, Protocol

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.billing.invoice_models import TaxInvoice, InvoiceLineItem
from app.models.billing.quotation_models import Quotation
from app.models.delivery.delivery_models import Delivery, DeliveryLineItem
from app.models.enums.delivery_status import DeliveryStatus
from app.models.enums.invoice_status import InvoiceStatus
from app.services.billing.quotation_service import get_latest_approved_quotation
from app.utils.decimal_utils import to_decimal, ZERO
from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode


class RequestedLine(Protocol):
    product_id: int
    quantity: Decimal


# =====================================================
# QUANTITY SUMMARIES
# =====================================================
async def delivered_quantities(db: AsyncSession, project_id: int) -> Dict[int, Decimal]:
    """Delivered quantity per product, ignoring RETURNED deliveries."""
    rows = await db.execute(
        select(DeliveryLineItem.product_id, func.sum(DeliveryLineItem.quantity_delivered))
        .join(Delivery, Delivery.id == DeliveryLineItem.delivery_id)
        .where(
            Delivery.project_id == project_id,
            Delivery.status != DeliveryStatus.returned,
        )
        .group_by(DeliveryLineItem.product_id)
    )
    return {product_id: to_decimal(qty) for product_id, qty in rows.all()}


async def invoiced_quantities(db: AsyncSession, project_id: int) -> Dict[int, Decimal]:
    """Invoiced quantity per product, ignoring CANCELLED invoices."""
    rows = await db.execute(
        select(InvoiceLineItem.product_id, func.sum(InvoiceLineItem.quantity_invoiced))
        .join(TaxInvoice, TaxInvoice.id == InvoiceLineItem.invoice_id)
        .where(
            TaxInvoice.project_id == project_id,
            TaxInvoice.status != InvoiceStatus.cancelled,
        )
        .group_by(InvoiceLineItem.product_id)
    )
    return {product_id: to_decimal(qty) for product_id, qty in rows.all()}


def quoted_quantities(quotation: Quotation) -> Dict[int, Decimal]:
    quantities: Dict[int, Decimal] = {}
    for item in quotation.items:
        quantities[item.product_id] = quantities.get(item.product_id, ZERO) + to_decimal(item.quantity)
    return quantities


# =====================================================
# SHARED LINE CHECKS
# =====================================================
def _check_lines(lines: list, document: str) -> None:
    if not lines:
        raise AppException(
            400,
            f"{document} must have at least one line item",
            ErrorCode.VALIDATION_ERROR,
        )

    seen = set()
    for line in lines:
        if line.product_id in seen:
            raise AppException(
                400,
                f"Duplicate product ID {line.product_id} in {document.lower()} lines",
                ErrorCode.VALIDATION_ERROR,
                {"product_id": line.product_id},
            )
        seen.add(line.product_id)

    for line in lines:
        if line.quantity is None or line.quantity <= 0:
            raise AppException(
                400,
                f"Quantity must be positive for product ID {line.product_id}",
                ErrorCode.VALIDATION_ERROR,
                {"product_id": line.product_id},
            )


async def _approved_quotation(db: AsyncSession, project_id: int) -> Quotation:
    quotation = await get_latest_approved_quotation(db, project_id)
    if quotation is None:
        raise AppException(
            400,
            "Project has no approved quotation",
            ErrorCode.QUOTATION_NOT_APPROVED,
        )
    return quotation


def _check_quoted(lines: Iterable[RequestedLine], quoted: Dict[int, Decimal], quotation: Quotation) -> None:
    for line in lines:
        if line.product_id not in quoted:
            raise AppException(
                400,
                f"Product ID {line.product_id} is not in quotation {quotation.reference}",
                ErrorCode.BUSINESS_RULE_VIOLATION,
                {"product_id": line.product_id, "quotation_id": quotation.id},
            )


# =====================================================
# GUARDS
# =====================================================
async def validate_delivery_lines(
    db: AsyncSession,
    project_id: int,
    lines: list,
) -> Quotation:
    """
    Check a delivery against the latest approved quotation: delivered
    (non-RETURNED) plus requested must stay within the quoted quantity.
    Call while holding the project lock.
    """
    _check_lines(lines, "Delivery")
    quotation = await _approved_quotation(db, project_id)
    quoted = quoted_quantities(quotation)
    _check_quoted(lines, quoted, quotation)

    delivered = await delivered_quantities(db, project_id)
    for line in lines:
        requested = to_decimal(line.quantity)
        quoted_qty = quoted[line.product_id]
        already = delivered.get(line.product_id, ZERO)
        remaining = quoted_qty - already
        if requested > remaining:
            raise AppException(
                400,
                f"Delivery quantity ({requested}) exceeds remaining deliverable quantity ({remaining}) "
                f"for product ID {line.product_id}. Quotation quantity: {quoted_qty}, Already delivered: {already}",
                ErrorCode.DELIVERY_EXCEEDS_QUOTED,
                {
                    "product_id": line.product_id,
                    "requested": str(requested),
                    "remaining": str(remaining),
                },
            )
    return quotation


async def validate_invoice_lines(
    db: AsyncSession,
    project_id: int,
    lines: list,
) -> Quotation:
    """
    Check invoice lines, in order: at least one line, no duplicate products,
    positive quantities, every product in the latest approved quotation, and
    requested <= delivered (non-RETURNED) - invoiced (non-CANCELLED).
    Call while holding the project lock.
    """
    _check_lines(lines, "Invoice")
    quotation = await _approved_quotation(db, project_id)
    _check_quoted(lines, quoted_quantities(quotation), quotation)

    delivered = await delivered_quantities(db, project_id)
    invoiced = await invoiced_quantities(db, project_id)
    for line in lines:
        requested = to_decimal(line.quantity)
        delivered_qty = delivered.get(line.product_id, ZERO)
        already = invoiced.get(line.product_id, ZERO)
        invoiceable = delivered_qty - already
        if requested > invoiceable:
            raise AppException(
                400,
                f"Invoice quantity ({requested}) exceeds invoiceable quantity ({invoiceable}) "
                f"for product ID {line.product_id}. Delivered: {delivered_qty}, Already invoiced: {already}",
                ErrorCode.INVOICE_EXCEEDS_DELIVERED,
                {
                    "product_id": line.product_id,
                    "requested": str(requested),
                    "invoiceable": str(invoiceable),
                },
            )
    return quotation
