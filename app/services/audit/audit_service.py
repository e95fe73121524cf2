# app/services/audit/audit_service.py

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, desc, asc

from app.models.audit.audit_models import AuditLog
from app.schemas.audit.audit_schemas import (
    AuditLogOut,
    AuditLogFilters,
    AuditLogListData,
)
from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.utils.logger import get_logger

logger = get_logger(__name__)

ALLOWED_SORT_FIELDS = {
    "created_at": AuditLog.created_at,
    "username": AuditLog.username_snapshot,
    "action": AuditLog.action,
}


def _map_audit_log(log: AuditLog) -> AuditLogOut:
    return AuditLogOut(
        id=log.id,
        user_id=log.user_id,
        username_snapshot=log.username_snapshot,
        entity_type=log.entity_type,
        entity_id=log.entity_id,
        action=log.action,
        activity_code=log.activity_code,
        message=log.message,
        changes=log.changes,
        metadata=log.extra_metadata,
        ip_address=log.ip_address,
        user_agent=log.user_agent,
        created_at=log.created_at,
    )


async def list_audit_logs(
    *,
    db: AsyncSession,
    filters: AuditLogFilters,
) -> AuditLogListData:
    conditions = []

    if filters.user_id:
        conditions.append(AuditLog.user_id == filters.user_id)

    if filters.username:
        conditions.append(AuditLog.username_snapshot.ilike(f"%{filters.username}%"))

    if filters.entity_type:
        conditions.append(AuditLog.entity_type == filters.entity_type.upper())

    if filters.entity_id:
        conditions.append(AuditLog.entity_id == filters.entity_id)

    if filters.action:
        conditions.append(AuditLog.action == filters.action)

    if filters.date_from:
        conditions.append(AuditLog.created_at >= filters.date_from)

    if filters.date_to:
        conditions.append(AuditLog.created_at <= filters.date_to)

    sort_column = ALLOWED_SORT_FIELDS.get(filters.sort_by)
    if sort_column is None:
        raise AppException(
            400,
            "Invalid sort field",
            ErrorCode.VALIDATION_ERROR,
        )

    order_fn = desc if filters.sort_order == "desc" else asc

    query = (
        select(AuditLog)
        .where(*conditions)
        .order_by(order_fn(sort_column), order_fn(AuditLog.id))
        .limit(filters.page_size)
        .offset((filters.page - 1) * filters.page_size)
    )

    total = await db.scalar(select(func.count(AuditLog.id)).where(*conditions))
    logs = (await db.execute(query)).scalars().all()

    logger.info(
        "Audit logs fetched",
        extra={
            "total": total,
            "page": filters.page,
            "page_size": filters.page_size,
        },
    )

    return AuditLogListData(
        total=total or 0,
        items=[_map_audit_log(a) for a in logs],
    )


async def get_entity_history(
    db: AsyncSession,
    entity_type: str,
    entity_id: int,
) -> list[AuditLogOut]:
    result = await db.execute(
        select(AuditLog)
        .where(
            AuditLog.entity_type == entity_type.upper(),
            AuditLog.entity_id == entity_id,
        )
        .order_by(AuditLog.created_at, AuditLog.id)
    )
    return [_map_audit_log(a) for a in result.scalars().all()]
