# app/schemas/projects/project_schemas.py

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import date, datetime
from fastapi import Query

from app.models.enums.project_status import ProjectStatus


class ProjectCreate(BaseModel):
    project_name: str = Field(min_length=1, max_length=255)
    customer_id: int
    requester_name: Optional[str] = Field(default=None, max_length=100)
    internal_owner_id: Optional[int] = None
    due_date: date
    note: Optional[str] = None


class ProjectUpdate(BaseModel):
    project_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    customer_id: Optional[int] = None
    requester_name: Optional[str] = None
    internal_owner_id: Optional[int] = None
    due_date: Optional[date] = None
    note: Optional[str] = None

    version: int


class ProjectStatusChange(BaseModel):
    status: ProjectStatus
    version: int


class ProjectListFilters(BaseModel):
    search: Optional[str] = Query(None, description="Search by job code or project name")
    status: Optional[ProjectStatus] = Query(None)
    customer_id: Optional[int] = Query(None)
    internal_owner_id: Optional[int] = Query(None)
    page: int = Query(1, ge=1)
    page_size: int = Query(20, ge=1, le=100)


class ProjectOut(BaseModel):
    id: int
    job_code: str
    project_name: str
    customer_id: int
    customer_name: Optional[str]
    requester_name: Optional[str]
    internal_owner_id: int
    due_date: date
    status: ProjectStatus
    note: Optional[str]
    version: int

    created_by: Optional[int]
    created_at: datetime
    updated_at: Optional[datetime]


class ProjectListData(BaseModel):
    total: int
    items: List[ProjectOut]
