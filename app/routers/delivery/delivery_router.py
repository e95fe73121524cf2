# app/routers/delivery/delivery_router.py

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.delivery.delivery_schemas import (
    DeliveryCreate,
    DeliveryListFilters,
    DeliveryOut,
    DeliveryListData,
)
from app.services.delivery.delivery_service import (
    create_delivery,
    mark_delivered,
    mark_returned,
    list_deliveries,
    get_delivery,
    download_delivery_note,
)
from app.utils.check_roles import require_role
from app.constants.roles import Role, ALL_ROLES
from app.utils.response import APIResponse, success_response, page_metadata
from app.utils.logger import get_logger

router = APIRouter(prefix="/deliveries", tags=["Deliveries"])
logger = get_logger(__name__)

READ_ROLES = ALL_ROLES
WRITE_ROLES = [Role.ADMIN, Role.FINANCE, Role.SALES]


@router.post("", response_model=APIResponse[DeliveryOut], status_code=201)
async def create_delivery_api(
    payload: DeliveryCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    logger.info("Create delivery request", extra={"project_id": payload.project_id})
    delivery = await create_delivery(db, payload, user)
    return success_response("Delivery recorded", delivery)


@router.get("", response_model=APIResponse[DeliveryListData])
async def list_deliveries_api(
    filters: DeliveryListFilters = Depends(),
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
):
    data = await list_deliveries(db, filters)
    return success_response(
        "Deliveries fetched",
        data,
        page_metadata(filters.page, filters.page_size, data.total),
    )


@router.get("/{delivery_id}", response_model=APIResponse[DeliveryOut])
async def get_delivery_api(
    delivery_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
):
    return success_response("Delivery fetched", await get_delivery(db, delivery_id))


@router.post("/{delivery_id}/delivered", response_model=APIResponse[DeliveryOut])
async def mark_delivered_api(
    delivery_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    return success_response("Delivery marked as delivered", await mark_delivered(db, delivery_id, user))


@router.post("/{delivery_id}/return", response_model=APIResponse[DeliveryOut])
async def mark_returned_api(
    delivery_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    return success_response("Delivery marked as returned", await mark_returned(db, delivery_id, user))


@router.get("/{delivery_id}/pdf")
async def download_delivery_note_api(
    delivery_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
):
    content, filename = await download_delivery_note(db, delivery_id, user)
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
