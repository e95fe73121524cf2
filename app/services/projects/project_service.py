# app/services/projects/project_service.py

from sqlalchemy import select, update, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.projects.project_models import Project
from app.models.users.user_models import User
from app.models.enums.company_role_type import CompanyRoleType
from app.models.enums.project_status import ProjectStatus, PROJECT_TRANSITIONS
from app.schemas.projects.project_schemas import (
    ProjectCreate,
    ProjectUpdate,
    ProjectStatusChange,
    ProjectListFilters,
    ProjectOut,
    ProjectListData,
)
from app.services.projects.jobcode_service import generate_job_code
from app.services.masters.company_service import get_company_with_role
from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.constants.activity_codes import ActivityCode
from app.utils.activity_helpers import emit_activity
from app.utils.logger import get_logger

logger = get_logger(__name__)


# =====================================================
# HELPERS
# =====================================================
def _map_project(project: Project) -> ProjectOut:
    return ProjectOut(
        id=project.id,
        job_code=project.job_code,
        project_name=project.project_name,
        customer_id=project.customer_id,
        customer_name=project.customer.name if project.customer else None,
        requester_name=project.requester_name,
        internal_owner_id=project.internal_owner_id,
        due_date=project.due_date,
        status=project.status,
        note=project.note,
        version=project.version,
        created_by=project.created_by_id,
        created_at=project.created_at,
        updated_at=project.updated_at,
    )


def _actor(user: User) -> dict:
    return dict(
        user_id=user.id,
        username=user.username,
        actor_role=user.role.capitalize(),
        actor_email=user.username,
    )


async def get_project_or_404(
    db: AsyncSession,
    project_id: int,
    *,
    for_update: bool = False,
) -> Project:
    stmt = (
        select(Project)
        .where(Project.id == project_id, Project.is_deleted.is_(False))
        .execution_options(populate_existing=True)
    )
    if for_update:
        stmt = stmt.with_for_update()

    project = (await db.execute(stmt)).scalar_one_or_none()
    if not project:
        raise AppException(404, "Project not found", ErrorCode.PROJECT_NOT_FOUND)
    return project


async def _ensure_owner(db: AsyncSession, owner_id: int) -> None:
    owner = await db.get(User, owner_id)
    if not owner or not owner.is_active:
        raise AppException(
            400,
            "Internal owner must be an active user",
            ErrorCode.VALIDATION_ERROR,
        )


# =====================================================
# CREATE
# =====================================================
async def create_project(db: AsyncSession, payload: ProjectCreate, user: User) -> ProjectOut:
    await get_company_with_role(db, payload.customer_id, CompanyRoleType.customer)

    owner_id = payload.internal_owner_id or user.id
    await _ensure_owner(db, owner_id)

    job_code = await generate_job_code(db)

    project = Project(
        job_code=job_code,
        project_name=payload.project_name.strip(),
        customer_id=payload.customer_id,
        requester_name=payload.requester_name,
        internal_owner_id=owner_id,
        due_date=payload.due_date,
        note=payload.note,
        status=ProjectStatus.draft,
        created_by_id=user.id,
        updated_by_id=user.id,
    )
    db.add(project)
    await db.flush()

    await emit_activity(
        db,
        code=ActivityCode.CREATE_PROJECT,
        entity_type="PROJECT",
        entity_id=project.id,
        target_name=job_code,
        **_actor(user),
    )

    await db.commit()
    logger.info("Project created", extra={"project_id": project.id, "job_code": job_code})

    return _map_project(await get_project_or_404(db, project.id))


# =====================================================
# LIST / GET
# =====================================================
async def list_projects(db: AsyncSession, filters: ProjectListFilters) -> ProjectListData:
    stmt = select(Project).where(Project.is_deleted.is_(False))

    if filters.search:
        term = f"%{filters.search}%"
        stmt = stmt.where(or_(Project.job_code.ilike(term), Project.project_name.ilike(term)))

    if filters.status:
        stmt = stmt.where(Project.status == filters.status)

    if filters.customer_id:
        stmt = stmt.where(Project.customer_id == filters.customer_id)

    if filters.internal_owner_id:
        stmt = stmt.where(Project.internal_owner_id == filters.internal_owner_id)

    total = await db.scalar(select(func.count()).select_from(stmt.subquery()))

    projects = (
        await db.execute(
            stmt.order_by(Project.created_at.desc(), Project.id.desc())
            .limit(filters.page_size)
            .offset((filters.page - 1) * filters.page_size)
        )
    ).scalars().all()

    return ProjectListData(total=total or 0, items=[_map_project(p) for p in projects])


async def get_project(db: AsyncSession, project_id: int) -> ProjectOut:
    return _map_project(await get_project_or_404(db, project_id))


async def get_project_by_job_code(db: AsyncSession, job_code: str) -> ProjectOut:
    project = (
        await db.execute(
            select(Project).where(Project.job_code == job_code, Project.is_deleted.is_(False))
        )
    ).scalar_one_or_none()
    if not project:
        raise AppException(404, "Project not found", ErrorCode.PROJECT_NOT_FOUND)
    return _map_project(project)


# =====================================================
# UPDATE (OPTIMISTIC)
# =====================================================
async def update_project(
    db: AsyncSession,
    project_id: int,
    payload: ProjectUpdate,
    user: User,
) -> ProjectOut:
    project = await get_project_or_404(db, project_id)

    if project.status == ProjectStatus.archived:
        raise AppException(400, "Archived projects cannot be edited", ErrorCode.PROJECT_INVALID_STATE)

    data = payload.model_dump(exclude_unset=True, exclude={"version"})
    changes = {
        field: [str(getattr(project, field)), str(value)]
        for field, value in data.items()
        if value is not None and getattr(project, field) != value
    }
    if not changes:
        raise AppException(400, "No changes provided", ErrorCode.VALIDATION_ERROR)

    if "customer_id" in changes:
        await get_company_with_role(db, data["customer_id"], CompanyRoleType.customer)
    if "internal_owner_id" in changes:
        await _ensure_owner(db, data["internal_owner_id"])

    result = await db.execute(
        update(Project)
        .where(Project.id == project_id, Project.version == payload.version)
        .values(
            **{k: data[k] for k in changes},
            version=Project.version + 1,
            updated_by_id=user.id,
        )
        .returning(Project.id)
    )
    if result.scalar_one_or_none() is None:
        raise AppException(
            409,
            "Project was modified by another process",
            ErrorCode.PROJECT_VERSION_CONFLICT,
        )

    await emit_activity(
        db,
        code=ActivityCode.UPDATE_PROJECT,
        entity_type="PROJECT",
        entity_id=project_id,
        changes=changes,
        target_name=project.job_code,
        summary=", ".join(changes.keys()),
        **_actor(user),
    )

    await db.commit()
    return _map_project(await get_project_or_404(db, project_id))


# =====================================================
# STATUS
# =====================================================
async def transition_project(
    db: AsyncSession,
    project: Project,
    new_status: ProjectStatus,
    user: User,
) -> None:
    """Move a loaded project to a new status without committing."""
    old_status = project.status
    if new_status not in PROJECT_TRANSITIONS[old_status]:
        raise AppException(
            400,
            f"Cannot move project from {old_status.value} to {new_status.value}",
            ErrorCode.PROJECT_INVALID_STATE,
            {"current_status": old_status.value, "requested_status": new_status.value},
        )

    project.status = new_status
    project.bump_version()
    project.updated_by_id = user.id

    await emit_activity(
        db,
        code=ActivityCode.CHANGE_PROJECT_STATUS,
        entity_type="PROJECT",
        entity_id=project.id,
        changes={"status": [old_status.value, new_status.value]},
        target_name=project.job_code,
        old_status=old_status.value,
        new_status=new_status.value,
        **_actor(user),
    )


async def change_project_status(
    db: AsyncSession,
    project_id: int,
    payload: ProjectStatusChange,
    user: User,
) -> ProjectOut:
    project = await get_project_or_404(db, project_id, for_update=True)

    if project.version != payload.version:
        raise AppException(
            409,
            "Project was modified by another process",
            ErrorCode.PROJECT_VERSION_CONFLICT,
        )

    await transition_project(db, project, payload.status, user)
    await db.commit()

    logger.info(
        "Project status changed",
        extra={"project_id": project_id, "status": payload.status.value},
    )
    return _map_project(await get_project_or_404(db, project_id))


# =====================================================
# DELETE (SOFT)
# =====================================================
async def delete_project(db: AsyncSession, project_id: int, user: User) -> None:
    project = await get_project_or_404(db, project_id, for_update=True)

    if project.status != ProjectStatus.draft:
        raise AppException(
            400,
            "Only DRAFT projects can be deleted",
            ErrorCode.PROJECT_INVALID_STATE,
        )

    project.mark_deleted()
    project.bump_version()
    project.updated_by_id = user.id

    await emit_activity(
        db,
        code=ActivityCode.DELETE_PROJECT,
        entity_type="PROJECT",
        entity_id=project.id,
        target_name=project.job_code,
        **_actor(user),
    )

    await db.commit()
    logger.info("Project deleted", extra={"project_id": project_id})
