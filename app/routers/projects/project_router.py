# app/routers/projects/project_router.py

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.projects.project_schemas import (
    ProjectCreate,
    ProjectUpdate,
    ProjectStatusChange,
    ProjectListFilters,
    ProjectOut,
    ProjectListData,
)
from app.services.projects.project_service import (
    create_project,
    list_projects,
    get_project,
    get_project_by_job_code,
    update_project,
    change_project_status,
    delete_project,
)
from app.utils.check_roles import require_role
from app.constants.roles import Role, ALL_ROLES
from app.utils.response import APIResponse, success_response, page_metadata
from app.utils.logger import get_logger

router = APIRouter(prefix="/projects", tags=["Projects"])
logger = get_logger(__name__)

READ_ROLES = ALL_ROLES
WRITE_ROLES = [Role.ADMIN, Role.FINANCE, Role.SALES]


@router.post("", response_model=APIResponse[ProjectOut], status_code=201)
async def create_project_api(
    payload: ProjectCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    logger.info("Create project request", extra={"customer_id": payload.customer_id})
    project = await create_project(db, payload, user)
    return success_response("Project created successfully", project)


@router.get("", response_model=APIResponse[ProjectListData])
async def list_projects_api(
    filters: ProjectListFilters = Depends(),
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
):
    data = await list_projects(db, filters)
    return success_response(
        "Projects fetched",
        data,
        page_metadata(filters.page, filters.page_size, data.total),
    )


@router.get("/job-code/{job_code}", response_model=APIResponse[ProjectOut])
async def get_project_by_job_code_api(
    job_code: str,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
):
    return success_response("Project fetched", await get_project_by_job_code(db, job_code))


@router.get("/{project_id}", response_model=APIResponse[ProjectOut])
async def get_project_api(
    project_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
):
    return success_response("Project fetched", await get_project(db, project_id))


@router.patch("/{project_id}", response_model=APIResponse[ProjectOut])
async def update_project_api(
    project_id: int,
    payload: ProjectUpdate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    project = await update_project(db, project_id, payload, user)
    return success_response("Project updated successfully", project)


@router.post("/{project_id}/status", response_model=APIResponse[ProjectOut])
async def change_project_status_api(
    project_id: int,
    payload: ProjectStatusChange,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    project = await change_project_status(db, project_id, payload, user)
    return success_response("Project status updated", project)


@router.delete("/{project_id}", response_model=APIResponse[None])
async def delete_project_api(
    project_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role([Role.ADMIN])),
):
    await delete_project(db, project_id, user)
    return success_response("Project deleted successfully")
