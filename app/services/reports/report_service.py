# app/services/reports/report_service.py

from datetime import date
from decimal import Decimal
from typing import Iterable, List

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.billing.invoice_models import TaxInvoice
from app.models.finance.payable_models import AccountsPayable
from app.models.purchasing.purchase_models import PurchaseOrder
from app.models.enums.invoice_status import InvoiceStatus, PAYABLE_INVOICE_STATUSES
from app.models.enums.payable_status import DisbursementCauseType
from app.models.enums.purchase_status import PurchaseOrderStatus
from app.schemas.reports.report_schemas import (
    AgingFilters,
    AgingBucketTotal,
    AgingEntry,
    AgingReport,
    ProductProgress,
    ProjectFinancialSummary,
)
from app.services.projects.project_service import get_project_or_404
from app.services.billing.quotation_service import get_latest_approved_quotation
from app.services.billing.invoice_guard_service import (
    delivered_quantities,
    invoiced_quantities,
    quoted_quantities,
)
from app.services.finance.payable_service import OPEN_PAYABLE_STATUSES
from app.utils.aging import AGING_BUCKETS, aging_bucket, days_overdue
from app.utils.decimal_utils import to_decimal, sum_money, compute_balance, ZERO


def _summarize(as_of: date, entries: List[AgingEntry]) -> AgingReport:
    totals = {b: [0, ZERO] for b in AGING_BUCKETS}
    for e in entries:
        totals[e.bucket][0] += 1
        totals[e.bucket][1] += e.outstanding

    return AgingReport(
        as_of=as_of,
        total_outstanding=sum_money(e.outstanding for e in entries),
        buckets=[
            AgingBucketTotal(bucket=b, count=totals[b][0], amount=to_decimal(totals[b][1]))
            for b in AGING_BUCKETS
        ],
        entries=entries,
    )


def _entries(rows: Iterable, as_of: date, number_attr: str, party_attr: str) -> List[AgingEntry]:
    entries = []
    for row in rows:
        party = getattr(row, party_attr)
        entries.append(
            AgingEntry(
                document_id=row.id,
                document_number=getattr(row, number_attr),
                counterparty_id=party.id if party else 0,
                counterparty_name=party.name if party else None,
                due_date=row.due_date,
                days_overdue=days_overdue(row.due_date, as_of),
                bucket=aging_bucket(row.due_date, as_of),
                total_amount=to_decimal(row.total_amount),
                outstanding=compute_balance(row.total_amount, row.total_paid),
            )
        )
    entries.sort(key=lambda e: (-e.days_overdue, e.document_number))
    return entries


# =====================================================
# AGING
# =====================================================
async def accounts_receivable_aging(db: AsyncSession, filters: AgingFilters) -> AgingReport:
    as_of = filters.as_of or date.today()
    stmt = select(TaxInvoice).where(TaxInvoice.status.in_(PAYABLE_INVOICE_STATUSES))
    if filters.counterparty_id:
        stmt = stmt.where(TaxInvoice.customer_id == filters.counterparty_id)

    rows = (await db.execute(stmt)).scalars().all()
    return _summarize(as_of, _entries(rows, as_of, "invoice_number", "customer"))


async def accounts_payable_aging(db: AsyncSession, filters: AgingFilters) -> AgingReport:
    as_of = filters.as_of or date.today()
    stmt = select(AccountsPayable).where(AccountsPayable.status.in_(OPEN_PAYABLE_STATUSES))
    if filters.counterparty_id:
        stmt = stmt.where(AccountsPayable.vendor_company_id == filters.counterparty_id)

    rows = (await db.execute(stmt)).scalars().all()
    return _summarize(as_of, _entries(rows, as_of, "cause_reference_number", "vendor"))


# =====================================================
# PROJECT SUMMARY
# =====================================================
async def project_financial_summary(db: AsyncSession, project_id: int) -> ProjectFinancialSummary:
    project = await get_project_or_404(db, project_id)
    quotation = await get_latest_approved_quotation(db, project.id)

    delivered = await delivered_quantities(db, project.id)
    invoiced = await invoiced_quantities(db, project.id)
    quoted = quoted_quantities(quotation) if quotation else {}
    names = {i.product_id: i.product_name for i in quotation.items} if quotation else {}

    products = []
    for product_id in sorted(set(quoted) | set(delivered) | set(invoiced)):
        q = quoted.get(product_id, ZERO)
        d = delivered.get(product_id, ZERO)
        inv = invoiced.get(product_id, ZERO)
        products.append(
            ProductProgress(
                product_id=product_id,
                product_name=names.get(product_id, f"Product {product_id}"),
                quoted=q,
                delivered=d,
                invoiced=inv,
                remaining_to_deliver=max(q - d, ZERO),
                remaining_to_invoice=max(d - inv, ZERO),
            )
        )

    invoiced_amount, paid_amount = (
        await db.execute(
            select(
                func.coalesce(func.sum(TaxInvoice.total_amount), 0),
                func.coalesce(func.sum(TaxInvoice.total_paid), 0),
            ).where(
                TaxInvoice.project_id == project.id,
                TaxInvoice.status != InvoiceStatus.cancelled,
            )
        )
    ).one()

    po_amount = await db.scalar(
        select(func.coalesce(func.sum(PurchaseOrder.total_amount), 0)).where(
            PurchaseOrder.project_id == project.id,
            PurchaseOrder.status != PurchaseOrderStatus.canceled,
        )
    )

    payable_outstanding = await db.scalar(
        select(func.coalesce(func.sum(AccountsPayable.total_amount - AccountsPayable.total_paid), 0))
        .join(PurchaseOrder, PurchaseOrder.id == AccountsPayable.cause_id)
        .where(
            AccountsPayable.cause_type == DisbursementCauseType.purchase_order,
            PurchaseOrder.project_id == project.id,
            AccountsPayable.status.in_(OPEN_PAYABLE_STATUSES),
        )
    )

    return ProjectFinancialSummary(
        project_id=project.id,
        job_code=project.job_code,
        project_name=project.project_name,
        customer_name=project.customer.name if project.customer else None,
        quotation_id=quotation.id if quotation else None,
        quotation_version=quotation.version if quotation else None,
        quoted_amount=to_decimal(quotation.total_amount if quotation else ZERO),
        invoiced_amount=to_decimal(invoiced_amount),
        paid_amount=to_decimal(paid_amount),
        outstanding_amount=compute_balance(Decimal(str(invoiced_amount)), Decimal(str(paid_amount))),
        purchase_order_amount=to_decimal(po_amount),
        payable_outstanding=to_decimal(payable_outstanding),
        products=products,
    )
