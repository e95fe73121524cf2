# app/routers/catalog/vendor_offering_router.py

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.catalog.catalog_schemas import (
    VendorOfferingCreate,
    VendorOfferingUpdate,
    VendorOfferingOut,
)
from app.services.catalog.vendor_offering_service import (
    create_vendor_offering,
    get_vendor_offering,
    update_vendor_offering,
    set_preferred_offering,
    delete_vendor_offering,
)
from app.utils.check_roles import require_role
from app.constants.roles import ALL_ROLES, FINANCE_ROLES
from app.utils.response import APIResponse, success_response

router = APIRouter(prefix="/vendor-offerings", tags=["Catalog"])


@router.post("", response_model=APIResponse[VendorOfferingOut], status_code=201)
async def create_vendor_offering_api(
    payload: VendorOfferingCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(FINANCE_ROLES)),
):
    offering = await create_vendor_offering(db, payload, user)
    return success_response("Vendor offering created successfully", offering)


@router.get("/{offering_id}", response_model=APIResponse[VendorOfferingOut])
async def get_vendor_offering_api(
    offering_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(ALL_ROLES)),
):
    return success_response("Vendor offering fetched successfully", await get_vendor_offering(db, offering_id))


@router.patch("/{offering_id}", response_model=APIResponse[VendorOfferingOut])
async def update_vendor_offering_api(
    offering_id: int,
    payload: VendorOfferingUpdate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(FINANCE_ROLES)),
):
    offering = await update_vendor_offering(db, offering_id, payload, user)
    return success_response("Vendor offering updated successfully", offering)


@router.post("/{offering_id}/preferred", response_model=APIResponse[VendorOfferingOut])
async def set_preferred_offering_api(
    offering_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(FINANCE_ROLES)),
):
    offering = await set_preferred_offering(db, offering_id, user)
    return success_response("Preferred vendor offering set", offering)


@router.delete("/{offering_id}", response_model=APIResponse[None])
async def delete_vendor_offering_api(
    offering_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(FINANCE_ROLES)),
):
    await delete_vendor_offering(db, offering_id, user)
    return success_response("Vendor offering deleted successfully")
