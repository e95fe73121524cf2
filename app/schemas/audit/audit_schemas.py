# app/schemas/audit/audit_schemas.py

from pydantic import BaseModel
from typing import Optional, Any, List
from datetime import datetime
from fastapi import Query

from app.models.enums.audit_action import AuditAction


class AuditLogFilters(BaseModel):
    user_id: Optional[int] = Query(None)
    username: Optional[str] = Query(None)
    entity_type: Optional[str] = Query(None)
    entity_id: Optional[int] = Query(None)
    action: Optional[AuditAction] = Query(None)
    date_from: Optional[datetime] = Query(None)
    date_to: Optional[datetime] = Query(None)

    page: int = Query(1, ge=1)
    page_size: int = Query(20, ge=1, le=100)

    sort_by: str = Query("created_at")
    sort_order: str = Query("desc")


class AuditLogOut(BaseModel):
    id: int
    user_id: Optional[int]
    username_snapshot: str
    entity_type: Optional[str]
    entity_id: Optional[int]
    action: AuditAction
    activity_code: str
    message: str
    changes: Optional[Any]
    metadata: Optional[Any] = None
    ip_address: Optional[str]
    user_agent: Optional[str]
    created_at: datetime


class AuditLogListData(BaseModel):
    total: int
    items: List[AuditLogOut]
