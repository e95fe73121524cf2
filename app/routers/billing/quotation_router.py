from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.utils.check_roles import require_role
from app.constants.roles import Role
from app.utils.response import success_response, APIResponse, page_metadata
from app.utils.logger import get_logger

from app.schemas.billing.quotation_schemas import (
    QuotationCreate,
    QuotationUpdate,
    QuotationEmailIn,
    QuotationListFilters,
    QuotationOut,
    QuotationListData,
)

from app.services.billing.quotation_service import (
    create_quotation,
    update_quotation,
    submit_quotation,
    create_new_version,
    mark_quotation_sent,
    accept_quotation,
    list_quotations,
    get_quotation,
    download_quotation_pdf,
    email_quotation,
)

router = APIRouter(
    prefix="/quotations",
    tags=["Quotations"],
)
logger = get_logger(__name__)

QUOTATION_ROLES = [Role.ADMIN, Role.FINANCE, Role.SALES]


@router.post("", response_model=APIResponse[QuotationOut], status_code=201)
async def create_quotation_api(
    payload: QuotationCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(QUOTATION_ROLES)),
):
    quotation = await create_quotation(db, payload, user)
    return success_response("Quotation created successfully", quotation)


@router.get("", response_model=APIResponse[QuotationListData])
async def list_quotations_api(
    filters: QuotationListFilters = Depends(),
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(QUOTATION_ROLES)),
):
    data = await list_quotations(db, filters)
    return success_response(
        "Quotations retrieved successfully",
        data,
        page_metadata(filters.page, filters.page_size, data.total),
    )


@router.get("/{quotation_id}", response_model=APIResponse[QuotationOut])
async def get_quotation_api(
    quotation_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(QUOTATION_ROLES)),
):
    quotation = await get_quotation(db, quotation_id)
    return success_response("Quotation retrieved successfully", quotation)


@router.patch("/{quotation_id}", response_model=APIResponse[QuotationOut])
async def update_quotation_api(
    quotation_id: int,
    payload: QuotationUpdate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(QUOTATION_ROLES)),
):
    quotation = await update_quotation(db, quotation_id, payload, user)
    return success_response("Quotation updated successfully", quotation)


@router.post("/{quotation_id}/submit", response_model=APIResponse[QuotationOut])
async def submit_quotation_api(
    quotation_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(QUOTATION_ROLES)),
):
    logger.info("Submit quotation", extra={"quotation_id": quotation_id})
    quotation = await submit_quotation(db, quotation_id, user)
    return success_response("Quotation submitted for approval", quotation)


@router.post("/{quotation_id}/versions", response_model=APIResponse[QuotationOut], status_code=201)
async def create_new_version_api(
    quotation_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(QUOTATION_ROLES)),
):
    quotation = await create_new_version(db, quotation_id, user)
    return success_response("New quotation version created", quotation)


@router.post("/{quotation_id}/send", response_model=APIResponse[QuotationOut])
async def mark_quotation_sent_api(
    quotation_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(QUOTATION_ROLES)),
):
    quotation = await mark_quotation_sent(db, quotation_id, user)
    return success_response("Quotation marked as sent", quotation)


@router.post("/{quotation_id}/accept", response_model=APIResponse[QuotationOut])
async def accept_quotation_api(
    quotation_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(QUOTATION_ROLES)),
):
    quotation = await accept_quotation(db, quotation_id, user)
    return success_response("Quotation accepted", quotation)


@router.post("/{quotation_id}/email", response_model=APIResponse[QuotationOut])
async def email_quotation_api(
    quotation_id: int,
    payload: QuotationEmailIn,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(QUOTATION_ROLES)),
):
    logger.info("Email quotation", extra={"quotation_id": quotation_id})
    quotation = await email_quotation(db, quotation_id, payload, user)
    return success_response("Quotation e-mailed to customer", quotation)


@router.get("/{quotation_id}/pdf")
async def download_quotation_pdf_api(
    quotation_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(QUOTATION_ROLES)),
):
    content, filename = await download_quotation_pdf(db, quotation_id, user)
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
