# app/routers/catalog/material_router.py

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.catalog.catalog_schemas import (
    CategoryCreate,
    CategoryUpdate,
    CategoryListFilters,
    MaterialCategoryOut,
    MaterialCategoryListData,
    MaterialCreate,
    MaterialUpdate,
    MaterialListFilters,
    MaterialOut,
    MaterialListData,
    VendorOfferingFilters,
    VendorOfferingListData,
)
from app.services.catalog.material_service import (
    create_material_category,
    list_material_categories,
    get_material_category,
    update_material_category,
    deactivate_material_category,
    create_material,
    list_materials,
    get_material,
    update_material,
    deactivate_material,
)
from app.services.catalog.vendor_offering_service import list_material_offerings
from app.utils.check_roles import require_role
from app.constants.roles import Role, ALL_ROLES, FINANCE_ROLES
from app.utils.response import APIResponse, success_response, page_metadata

router = APIRouter(prefix="/materials", tags=["Catalog"])

READ_ROLES = ALL_ROLES
WRITE_ROLES = FINANCE_ROLES
DEACTIVATE_ROLES = [Role.ADMIN]


# =====================================================
# CATEGORIES
# =====================================================
@router.post("/categories", response_model=APIResponse[MaterialCategoryOut], status_code=201)
async def create_material_category_api(
    payload: CategoryCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    category = await create_material_category(db, payload, user)
    return success_response("Material category created successfully", category)


@router.get("/categories", response_model=APIResponse[MaterialCategoryListData])
async def list_material_categories_api(
    filters: CategoryListFilters = Depends(),
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
):
    data = await list_material_categories(db, filters)
    return success_response(
        "Material categories fetched successfully",
        data,
        page_metadata(filters.page, filters.page_size, data.total),
    )


@router.get("/categories/{category_id}", response_model=APIResponse[MaterialCategoryOut])
async def get_material_category_api(
    category_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
):
    return success_response("Material category fetched successfully", await get_material_category(db, category_id))


@router.patch("/categories/{category_id}", response_model=APIResponse[MaterialCategoryOut])
async def update_material_category_api(
    category_id: int,
    payload: CategoryUpdate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    category = await update_material_category(db, category_id, payload, user)
    return success_response("Material category updated successfully", category)


@router.post("/categories/{category_id}/deactivate", response_model=APIResponse[MaterialCategoryOut])
async def deactivate_material_category_api(
    category_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(DEACTIVATE_ROLES)),
):
    category = await deactivate_material_category(db, category_id, user)
    return success_response("Material category deactivated successfully", category)


# =====================================================
# MATERIALS
# =====================================================
@router.post("", response_model=APIResponse[MaterialOut], status_code=201)
async def create_material_api(
    payload: MaterialCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    material = await create_material(db, payload, user)
    return success_response("Material created successfully", material)


@router.get("", response_model=APIResponse[MaterialListData])
async def list_materials_api(
    filters: MaterialListFilters = Depends(),
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
):
    data = await list_materials(db, filters)
    return success_response(
        "Materials fetched successfully",
        data,
        page_metadata(filters.page, filters.page_size, data.total),
    )


@router.get("/{material_id}", response_model=APIResponse[MaterialOut])
async def get_material_api(
    material_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
):
    return success_response("Material fetched successfully", await get_material(db, material_id))


@router.patch("/{material_id}", response_model=APIResponse[MaterialOut])
async def update_material_api(
    material_id: int,
    payload: MaterialUpdate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    material = await update_material(db, material_id, payload, user)
    return success_response("Material updated successfully", material)


@router.post("/{material_id}/deactivate", response_model=APIResponse[MaterialOut])
async def deactivate_material_api(
    material_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(DEACTIVATE_ROLES)),
):
    material = await deactivate_material(db, material_id, user)
    return success_response("Material deactivated successfully", material)


@router.get("/{material_id}/offerings", response_model=APIResponse[VendorOfferingListData])
async def list_material_offerings_api(
    material_id: int,
    filters: VendorOfferingFilters = Depends(),
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
):
    data = await list_material_offerings(db, material_id, filters)
    return success_response(
        "Vendor offerings fetched successfully",
        data,
        page_metadata(filters.page, filters.page_size, data.total),
    )
