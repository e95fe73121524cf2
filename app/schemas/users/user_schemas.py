# app/schemas/users/user_schemas.py

from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List, Literal
from datetime import datetime
from fastapi import Query

UserRole = Literal["admin", "finance", "sales", "production"]


def _normalize_email(v):
    return v.strip().lower() if isinstance(v, str) else v


class UserCreateSchema(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    full_name: Optional[str] = Field(default=None, max_length=150)
    role: UserRole

    _email = field_validator("email", mode="before")(_normalize_email)


class UserUpdateSchema(BaseModel):
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=8, max_length=128)
    full_name: Optional[str] = Field(default=None, max_length=150)
    role: Optional[UserRole] = None
    version: int

    _email = field_validator("email", mode="before")(_normalize_email)


class UserVersion(BaseModel):
    version: int


class UserListFilters(BaseModel):
    search: Optional[str] = Query(None)
    role: Optional[UserRole] = Query(None)
    is_active: Optional[bool] = Query(None)
    sort_by: str = Query("created_at")
    sort_order: Literal["asc", "desc"] = Query("desc")
    page: int = Query(1, ge=1)
    page_size: int = Query(20, ge=1, le=100)


class UserListItemSchema(BaseModel):
    id: int
    username: str
    full_name: Optional[str]
    role: str
    is_active: bool
    is_online: bool
    last_login: Optional[datetime]
    version: int

    class Config:
        from_attributes = True


class UserDetailSchema(UserListItemSchema):
    created_at: datetime
    updated_at: Optional[datetime]
    created_by_admin_id: Optional[int]
    # "<ENTITY_TYPE>:<level name>" for each approval chain level the user sits on
    approver_for: List[str] = []


class UserListResponseSchema(BaseModel):
    total: int
    items: List[UserListItemSchema]
