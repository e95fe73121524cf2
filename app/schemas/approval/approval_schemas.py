# app/schemas/approval/approval_schemas.py

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime
from fastapi import Query

from app.models.enums.approval_status import (
    ApprovalEntityType,
    ApprovalStatus,
    ApprovalHistoryAction,
    ApprovalCommentType,
)


# =====================================================
# CHAIN CONFIGURATION
# =====================================================
class ChainLevelIn(BaseModel):
    level_order: int = Field(ge=1)
    level_name: str = Field(min_length=1, max_length=100)
    approver_user_id: int
    is_required: bool = True


class ChainLevelsUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = None
    levels: List[ChainLevelIn] = Field(min_length=1)

    @field_validator("levels")
    @classmethod
    def levels_contiguous(cls, v):
        orders = sorted(level.level_order for level in v)
        if orders != list(range(1, len(v) + 1)):
            raise ValueError("Level orders must run 1..n without gaps or duplicates")
        return v


class ChainLevelOut(BaseModel):
    level_order: int
    level_name: str
    approver_user_id: int
    is_required: bool

    class Config:
        from_attributes = True


class ChainTemplateOut(BaseModel):
    id: int
    entity_type: ApprovalEntityType
    name: str
    description: Optional[str]
    is_active: bool
    levels: List[ChainLevelOut]

    class Config:
        from_attributes = True


# =====================================================
# REQUEST ACTIONS
# =====================================================
class ApproveIn(BaseModel):
    comments: Optional[str] = None


class RejectIn(BaseModel):
    reason: str = Field(min_length=1)

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, v):
        if not v.strip():
            raise ValueError("Rejection reason is required")
        return v.strip()


class CommentIn(BaseModel):
    body: str = Field(min_length=1)


class ApprovalListFilters(BaseModel):
    status: Optional[ApprovalStatus] = Query(None)
    entity_type: Optional[ApprovalEntityType] = Query(None)
    page: int = Query(1, ge=1)
    page_size: int = Query(20, ge=1, le=100)


# =====================================================
# RESPONSES
# =====================================================
class LevelDecisionOut(BaseModel):
    level_order: int
    level_name: str
    expected_approver_id: int
    decision: ApprovalStatus
    decided_by_id: Optional[int]
    decided_at: Optional[datetime]
    comments: Optional[str]

    class Config:
        from_attributes = True


class HistoryOut(BaseModel):
    level_order: Optional[int]
    action: ApprovalHistoryAction
    actor_id: Optional[int]
    comments: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class CommentOut(BaseModel):
    id: int
    author_id: Optional[int]
    comment_type: ApprovalCommentType
    body: str
    created_at: datetime

    class Config:
        from_attributes = True


class ApprovalRequestOut(BaseModel):
    id: int
    entity_type: ApprovalEntityType
    entity_id: int
    entity_description: Optional[str]
    current_level: int
    total_levels: int
    status: ApprovalStatus
    submitted_by_id: int
    submitted_at: datetime
    completed_at: Optional[datetime]
    decisions: List[LevelDecisionOut]
    history: List[HistoryOut]
    comments: List[CommentOut]

    class Config:
        from_attributes = True


class ApprovalListData(BaseModel):
    total: int
    items: List[ApprovalRequestOut]
