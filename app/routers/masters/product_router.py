# app/routers/masters/product_router.py

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.masters.product_schemas import (
    ProductCreate,
    ProductUpdate,
    ProductOut,
    ProductListData,
    ProductListFilters,
    ProductVersion,
)
from app.services.masters.product_service import (
    create_product,
    list_products,
    get_product,
    update_product,
    deactivate_product,
)
from app.utils.check_roles import require_role
from app.constants.roles import ALL_ROLES, FINANCE_ROLES
from app.utils.response import APIResponse, success_response, page_metadata
from app.utils.logger import get_logger

router = APIRouter(prefix="/products", tags=["Products"])
logger = get_logger("masters.products.api")

READ_ROLES = ALL_ROLES
WRITE_ROLES = FINANCE_ROLES


@router.post("", response_model=APIResponse[ProductOut], status_code=201)
async def create_product_api(
    payload: ProductCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    logger.info("Create product", extra={"sku": payload.sku})
    product = await create_product(db, payload, user)
    return success_response("Product created successfully", product)


@router.get("", response_model=APIResponse[ProductListData])
async def list_products_api(
    filters: ProductListFilters = Depends(),
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
):
    data = await list_products(db, filters)
    return success_response(
        "Products fetched successfully",
        data,
        page_metadata(filters.page, filters.page_size, data.total),
    )


@router.get("/{product_id}", response_model=APIResponse[ProductOut])
async def get_product_api(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
):
    product = await get_product(db, product_id)
    return success_response("Product fetched successfully", product)


@router.patch("/{product_id}", response_model=APIResponse[ProductOut])
async def update_product_api(
    product_id: int,
    payload: ProductUpdate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    product = await update_product(db, product_id, payload, user)
    return success_response("Product updated successfully", product)


@router.post("/{product_id}/deactivate", response_model=APIResponse[ProductOut])
async def deactivate_product_api(
    product_id: int,
    payload: ProductVersion,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    product = await deactivate_product(db, product_id, payload.version, user)
    return success_response("Product deactivated successfully", product)
