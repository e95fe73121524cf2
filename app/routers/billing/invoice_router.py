from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.utils.check_roles import require_role
from app.constants.roles import Role, FINANCE_ROLES
from app.utils.response import success_response, APIResponse, page_metadata
from app.utils.logger import get_logger

from app.schemas.billing.invoice_schemas import (
    InvoiceCreate,
    InvoiceUpdate,
    InvoiceListFilters,
    InvoiceOut,
    InvoiceListData,
    PaymentCreate,
)

from app.services.billing.invoice_service import (
    create_invoice,
    update_invoice,
    issue_invoice,
    cancel_invoice,
    record_payment,
    list_invoices,
    get_invoice,
    download_invoice_pdf,
)

router = APIRouter(
    prefix="/invoices",
    tags=["Invoices"],
)
logger = get_logger(__name__)

READ_ROLES = [Role.ADMIN, Role.FINANCE, Role.SALES]
WRITE_ROLES = FINANCE_ROLES


@router.post(
    "",
    response_model=APIResponse[InvoiceOut],
    status_code=201,
)
async def create_invoice_api(
    payload: InvoiceCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    logger.info("Create invoice", extra={"project_id": payload.project_id})
    invoice = await create_invoice(db, payload, user)
    return success_response("Invoice created successfully", invoice)


@router.get(
    "",
    response_model=APIResponse[InvoiceListData],
)
async def list_invoices_api(
    filters: InvoiceListFilters = Depends(),
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
):
    data = await list_invoices(db, filters)
    return success_response(
        "Invoices fetched successfully",
        data,
        page_metadata(filters.page, filters.page_size, data.total),
    )


@router.get(
    "/{invoice_id}",
    response_model=APIResponse[InvoiceOut],
)
async def get_invoice_api(
    invoice_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
):
    invoice = await get_invoice(db, invoice_id)
    return success_response("Invoice fetched successfully", invoice)


@router.patch(
    "/{invoice_id}",
    response_model=APIResponse[InvoiceOut],
)
async def update_invoice_api(
    invoice_id: int,
    payload: InvoiceUpdate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    invoice = await update_invoice(db, invoice_id, payload, user)
    return success_response("Invoice updated successfully", invoice)


@router.post(
    "/{invoice_id}/issue",
    response_model=APIResponse[InvoiceOut],
)
async def issue_invoice_api(
    invoice_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    invoice = await issue_invoice(db, invoice_id, user)
    return success_response("Invoice issued successfully", invoice)


@router.post(
    "/{invoice_id}/cancel",
    response_model=APIResponse[InvoiceOut],
)
async def cancel_invoice_api(
    invoice_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    invoice = await cancel_invoice(db, invoice_id, user)
    return success_response("Invoice cancelled successfully", invoice)


@router.post(
    "/{invoice_id}/payments",
    response_model=APIResponse[InvoiceOut],
    status_code=201,
)
async def record_payment_api(
    invoice_id: int,
    payload: PaymentCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    invoice = await record_payment(db, invoice_id, payload, user)
    return success_response("Payment recorded successfully", invoice)


@router.get("/{invoice_id}/pdf")
async def download_invoice_pdf_api(
    invoice_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
):
    content, filename = await download_invoice_pdf(db, invoice_id, user)
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
