# app/routers/masters/company_router.py

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.models.enums.company_role_type import CompanyRoleType
from app.schemas.masters.company_schemas import (
    CompanyCreate,
    CompanyUpdate,
    CompanyRoleCreate,
    CompanyVersion,
    CompanyOut,
    CompanyListData,
    CompanyListFilters,
)
from app.services.masters.company_service import (
    create_company,
    list_companies,
    get_company,
    update_company,
    add_company_role,
    remove_company_role,
    deactivate_company,
)
from app.utils.check_roles import require_role
from app.constants.roles import Role, ALL_ROLES
from app.utils.response import APIResponse, success_response, page_metadata
from app.utils.logger import get_logger

router = APIRouter(prefix="/companies", tags=["Companies"])
logger = get_logger(__name__)

READ_ROLES = ALL_ROLES
WRITE_ROLES = [Role.ADMIN, Role.FINANCE, Role.SALES]


@router.post("", response_model=APIResponse[CompanyOut], status_code=201)
async def create_company_api(
    payload: CompanyCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    logger.info("Create company request", extra={"company_name": payload.name})
    company = await create_company(db, payload, user)
    return success_response("Company created successfully", company)


@router.get("", response_model=APIResponse[CompanyListData])
async def list_companies_api(
    filters: CompanyListFilters = Depends(),
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
):
    data = await list_companies(db, filters)
    return success_response(
        "Companies fetched",
        data,
        page_metadata(filters.page, filters.page_size, data.total),
    )


@router.get("/{company_id}", response_model=APIResponse[CompanyOut])
async def get_company_api(
    company_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
):
    return success_response("Company fetched", await get_company(db, company_id))


@router.patch("/{company_id}", response_model=APIResponse[CompanyOut])
async def update_company_api(
    company_id: int,
    payload: CompanyUpdate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    company = await update_company(db, company_id, payload, user)
    return success_response("Company updated successfully", company)


@router.post("/{company_id}/roles", response_model=APIResponse[CompanyOut], status_code=201)
async def add_company_role_api(
    company_id: int,
    payload: CompanyRoleCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    company = await add_company_role(db, company_id, payload, user)
    return success_response("Company role added", company)


@router.delete("/{company_id}/roles/{role_type}", response_model=APIResponse[CompanyOut])
async def remove_company_role_api(
    company_id: int,
    role_type: CompanyRoleType,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    company = await remove_company_role(db, company_id, role_type, user)
    return success_response("Company role removed", company)


@router.post("/{company_id}/deactivate", response_model=APIResponse[CompanyOut])
async def deactivate_company_api(
    company_id: int,
    payload: CompanyVersion,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role([Role.ADMIN])),
):
    logger.info("Deactivate company", extra={"company_id": company_id})
    company = await deactivate_company(db, company_id, payload.version, user)
    return success_response("Company deactivated successfully", company)
