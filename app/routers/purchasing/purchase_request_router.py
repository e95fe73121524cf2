# app/routers/purchasing/purchase_request_router.py

from fastapi import APIRouter, Depends, Query, Response
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.purchasing.purchase_schemas import (
    PurchaseRequestCreate,
    PurchaseRequestUpdate,
    PurchaseRequestListFilters,
    PurchaseRequestOut,
    PurchaseRequestListData,
    RfqSend,
    RfqReply,
    DocumentEmailIn,
)
from app.services.purchasing.purchase_request_service import (
    create_purchase_request,
    update_purchase_request,
    cancel_purchase_request,
    list_purchase_requests,
    get_purchase_request,
    send_rfq,
    record_rfq_reply,
    mark_rfq_no_response,
    select_vendor,
    email_rfq,
    download_rfq_pdf,
)
from app.utils.check_roles import require_role
from app.constants.roles import Role
from app.utils.response import APIResponse, success_response, page_metadata
from app.utils.logger import get_logger

router = APIRouter(prefix="/purchase-requests", tags=["Purchasing"])
logger = get_logger(__name__)

PURCHASING_ROLES = [Role.ADMIN, Role.FINANCE, Role.PRODUCTION]


@router.post("", response_model=APIResponse[PurchaseRequestOut], status_code=201)
async def create_purchase_request_api(
    payload: PurchaseRequestCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(PURCHASING_ROLES)),
):
    pr = await create_purchase_request(db, payload, user)
    return success_response("Purchase request created successfully", pr)


@router.get("", response_model=APIResponse[PurchaseRequestListData])
async def list_purchase_requests_api(
    filters: PurchaseRequestListFilters = Depends(),
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(PURCHASING_ROLES)),
):
    data = await list_purchase_requests(db, filters)
    return success_response(
        "Purchase requests fetched successfully",
        data,
        page_metadata(filters.page, filters.page_size, data.total),
    )


@router.get("/{request_id}", response_model=APIResponse[PurchaseRequestOut])
async def get_purchase_request_api(
    request_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(PURCHASING_ROLES)),
):
    pr = await get_purchase_request(db, request_id)
    return success_response("Purchase request fetched successfully", pr)


@router.patch("/{request_id}", response_model=APIResponse[PurchaseRequestOut])
async def update_purchase_request_api(
    request_id: int,
    payload: PurchaseRequestUpdate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(PURCHASING_ROLES)),
):
    pr = await update_purchase_request(db, request_id, payload, user)
    return success_response("Purchase request updated successfully", pr)


@router.post("/{request_id}/cancel", response_model=APIResponse[PurchaseRequestOut])
async def cancel_purchase_request_api(
    request_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(PURCHASING_ROLES)),
):
    pr = await cancel_purchase_request(db, request_id, user)
    return success_response("Purchase request cancelled", pr)


# -----------------------------------------------------
# RFQ
# -----------------------------------------------------
@router.post("/{request_id}/rfqs", response_model=APIResponse[PurchaseRequestOut], status_code=201)
async def send_rfq_api(
    request_id: int,
    payload: RfqSend,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(PURCHASING_ROLES)),
):
    logger.info("Send RFQ", extra={"request_id": request_id, "vendor_company_id": payload.vendor_company_id})
    pr = await send_rfq(db, request_id, payload, user)
    return success_response("RFQ sent", pr)


@router.post("/{request_id}/rfqs/{rfq_item_id}/reply", response_model=APIResponse[PurchaseRequestOut])
async def record_rfq_reply_api(
    request_id: int,
    rfq_item_id: int,
    payload: RfqReply,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(PURCHASING_ROLES)),
):
    pr = await record_rfq_reply(db, request_id, rfq_item_id, payload, user)
    return success_response("RFQ reply recorded", pr)


@router.post("/{request_id}/rfqs/{rfq_item_id}/no-response", response_model=APIResponse[PurchaseRequestOut])
async def mark_rfq_no_response_api(
    request_id: int,
    rfq_item_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(PURCHASING_ROLES)),
):
    pr = await mark_rfq_no_response(db, request_id, rfq_item_id, user)
    return success_response("RFQ marked as no response", pr)


@router.post("/{request_id}/rfqs/{rfq_item_id}/select", response_model=APIResponse[PurchaseRequestOut])
async def select_vendor_api(
    request_id: int,
    rfq_item_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(PURCHASING_ROLES)),
):
    pr = await select_vendor(db, request_id, rfq_item_id, user)
    return success_response("Vendor selected", pr)


@router.post("/{request_id}/rfqs/{rfq_item_id}/email", response_model=APIResponse[PurchaseRequestOut])
async def email_rfq_api(
    request_id: int,
    rfq_item_id: int,
    payload: DocumentEmailIn,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(PURCHASING_ROLES)),
):
    pr = await email_rfq(db, request_id, rfq_item_id, payload, user)
    return success_response("RFQ e-mailed to vendor", pr)


@router.get("/{request_id}/rfq-pdf")
async def download_rfq_pdf_api(
    request_id: int,
    rfq_item_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(PURCHASING_ROLES)),
):
    content, filename = await download_rfq_pdf(db, request_id, rfq_item_id)
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
