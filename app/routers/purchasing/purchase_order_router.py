# app/routers/purchasing/purchase_order_router.py

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.purchasing.purchase_schemas import (
    PurchaseOrderCreate,
    PurchaseOrderUpdate,
    PurchaseOrderStatusChange,
    PurchaseOrderListFilters,
    PurchaseOrderOut,
    PurchaseOrderListData,
    DocumentEmailIn,
)
from app.services.purchasing.purchase_order_service import (
    create_purchase_order,
    update_purchase_order,
    change_purchase_order_status,
    list_purchase_orders,
    get_purchase_order,
    download_purchase_order_pdf,
    email_purchase_order,
)
from app.utils.check_roles import require_role
from app.constants.roles import Role
from app.utils.response import APIResponse, success_response, page_metadata

router = APIRouter(prefix="/purchase-orders", tags=["Purchasing"])

PURCHASING_ROLES = [Role.ADMIN, Role.FINANCE, Role.PRODUCTION]


@router.post("", response_model=APIResponse[PurchaseOrderOut], status_code=201)
async def create_purchase_order_api(
    payload: PurchaseOrderCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(PURCHASING_ROLES)),
):
    po = await create_purchase_order(db, payload, user)
    return success_response("Purchase order created successfully", po)


@router.get("", response_model=APIResponse[PurchaseOrderListData])
async def list_purchase_orders_api(
    filters: PurchaseOrderListFilters = Depends(),
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(PURCHASING_ROLES)),
):
    data = await list_purchase_orders(db, filters)
    return success_response(
        "Purchase orders fetched successfully",
        data,
        page_metadata(filters.page, filters.page_size, data.total),
    )


@router.get("/{po_id}", response_model=APIResponse[PurchaseOrderOut])
async def get_purchase_order_api(
    po_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(PURCHASING_ROLES)),
):
    po = await get_purchase_order(db, po_id)
    return success_response("Purchase order fetched successfully", po)


@router.patch("/{po_id}", response_model=APIResponse[PurchaseOrderOut])
async def update_purchase_order_api(
    po_id: int,
    payload: PurchaseOrderUpdate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(PURCHASING_ROLES)),
):
    po = await update_purchase_order(db, po_id, payload, user)
    return success_response("Purchase order updated successfully", po)


@router.post("/{po_id}/status", response_model=APIResponse[PurchaseOrderOut])
async def change_purchase_order_status_api(
    po_id: int,
    payload: PurchaseOrderStatusChange,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(PURCHASING_ROLES)),
):
    po = await change_purchase_order_status(db, po_id, payload, user)
    return success_response(f"Purchase order moved to {po.status.value}", po)


@router.post("/{po_id}/email", response_model=APIResponse[PurchaseOrderOut])
async def email_purchase_order_api(
    po_id: int,
    payload: DocumentEmailIn,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(PURCHASING_ROLES)),
):
    po = await email_purchase_order(db, po_id, payload, user)
    return success_response("Purchase order e-mailed to vendor", po)


@router.get("/{po_id}/pdf")
async def download_purchase_order_pdf_api(
    po_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(PURCHASING_ROLES)),
):
    content, filename = await download_purchase_order_pdf(db, po_id, user)
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
