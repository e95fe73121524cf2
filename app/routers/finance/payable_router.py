# app/routers/finance/payable_router.py

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.finance.payable_schemas import (
    VendorPaymentCreate,
    PayableListFilters,
    PayableOut,
    PayableListData,
)
from app.services.finance.payable_service import (
    record_vendor_payment,
    cancel_payable,
    list_payables,
    get_payable,
)
from app.utils.check_roles import require_role
from app.constants.roles import Role, FINANCE_ROLES
from app.utils.response import APIResponse, success_response, page_metadata

router = APIRouter(prefix="/accounts-payable", tags=["Accounts Payable"])

READ_ROLES = [Role.ADMIN, Role.FINANCE, Role.SALES]
WRITE_ROLES = FINANCE_ROLES


@router.get("", response_model=APIResponse[PayableListData])
async def list_payables_api(
    filters: PayableListFilters = Depends(),
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
):
    data = await list_payables(db, filters)
    return success_response(
        "Accounts payable fetched successfully",
        data,
        page_metadata(filters.page, filters.page_size, data.total),
    )


@router.get("/{payable_id}", response_model=APIResponse[PayableOut])
async def get_payable_api(
    payable_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
):
    ap = await get_payable(db, payable_id)
    return success_response("Accounts payable fetched successfully", ap)


@router.post("/{payable_id}/payments", response_model=APIResponse[PayableOut], status_code=201)
async def record_vendor_payment_api(
    payable_id: int,
    payload: VendorPaymentCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    ap = await record_vendor_payment(db, payable_id, payload, user)
    return success_response("Vendor payment recorded", ap)


@router.post("/{payable_id}/cancel", response_model=APIResponse[PayableOut])
async def cancel_payable_api(
    payable_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    ap = await cancel_payable(db, payable_id, user)
    return success_response("Accounts payable cancelled", ap)
