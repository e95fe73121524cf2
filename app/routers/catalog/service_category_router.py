# app/routers/catalog/service_category_router.py

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.catalog.catalog_schemas import (
    CategoryCreate,
    CategoryUpdate,
    CategoryListFilters,
    ServiceCategoryOut,
    ServiceCategoryListData,
    VendorOfferingFilters,
    VendorOfferingListData,
)
from app.services.catalog.service_category_service import (
    create_service_category,
    list_service_categories,
    get_service_category,
    update_service_category,
    deactivate_service_category,
)
from app.services.catalog.vendor_offering_service import list_service_offerings
from app.utils.check_roles import require_role
from app.constants.roles import Role, ALL_ROLES, FINANCE_ROLES
from app.utils.response import APIResponse, success_response, page_metadata

router = APIRouter(prefix="/service-categories", tags=["Catalog"])


@router.post("", response_model=APIResponse[ServiceCategoryOut], status_code=201)
async def create_service_category_api(
    payload: CategoryCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(FINANCE_ROLES)),
):
    category = await create_service_category(db, payload, user)
    return success_response("Service category created successfully", category)


@router.get("", response_model=APIResponse[ServiceCategoryListData])
async def list_service_categories_api(
    filters: CategoryListFilters = Depends(),
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(ALL_ROLES)),
):
    data = await list_service_categories(db, filters)
    return success_response(
        "Service categories fetched successfully",
        data,
        page_metadata(filters.page, filters.page_size, data.total),
    )


@router.get("/{category_id}", response_model=APIResponse[ServiceCategoryOut])
async def get_service_category_api(
    category_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(ALL_ROLES)),
):
    return success_response("Service category fetched successfully", await get_service_category(db, category_id))


@router.patch("/{category_id}", response_model=APIResponse[ServiceCategoryOut])
async def update_service_category_api(
    category_id: int,
    payload: CategoryUpdate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(FINANCE_ROLES)),
):
    category = await update_service_category(db, category_id, payload, user)
    return success_response("Service category updated successfully", category)


@router.post("/{category_id}/deactivate", response_model=APIResponse[ServiceCategoryOut])
async def deactivate_service_category_api(
    category_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role([Role.ADMIN])),
):
    category = await deactivate_service_category(db, category_id, user)
    return success_response("Service category deactivated successfully", category)


@router.get("/{category_id}/offerings", response_model=APIResponse[VendorOfferingListData])
async def list_service_offerings_api(
    category_id: int,
    filters: VendorOfferingFilters = Depends(),
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(ALL_ROLES)),
):
    data = await list_service_offerings(db, category_id, filters)
    return success_response(
        "Vendor offerings fetched successfully",
        data,
        page_metadata(filters.page, filters.page_size, data.total),
    )
