from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.audit.audit_schemas import AuditLogFilters, AuditLogListData, AuditLogOut
from app.services.audit.audit_service import list_audit_logs, get_entity_history
from app.utils.check_roles import require_role
from app.constants.roles import Role
from app.utils.response import APIResponse, success_response, page_metadata
from app.utils.logger import get_logger

router = APIRouter(prefix="/audit", tags=["Audit Log"])
logger = get_logger(__name__)


@router.get("", response_model=APIResponse[AuditLogListData])
async def list_audit_logs_api(
    filters: AuditLogFilters = Depends(),
    db: AsyncSession = Depends(get_db),
    admin=Depends(require_role([Role.ADMIN])),
):
    logger.info(
        "List audit logs requested",
        extra=filters.model_dump(exclude_none=True),
    )

    result = await list_audit_logs(db=db, filters=filters)

    return success_response(
        "Audit logs fetched successfully",
        result,
        page_metadata(filters.page, filters.page_size, result.total),
    )


@router.get("/{entity_type}/{entity_id}", response_model=APIResponse[list[AuditLogOut]])
async def entity_history_api(
    entity_type: str,
    entity_id: int,
    db: AsyncSession = Depends(get_db),
    admin=Depends(require_role([Role.ADMIN])),
):
    history = await get_entity_history(db, entity_type, entity_id)
    return success_response("Entity history fetched successfully", history)
