# app/schemas/masters/company_schemas.py

from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List
from datetime import datetime
from fastapi import Query

from app.models.enums.company_role_type import CompanyRoleType


class CompanyCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    registration_number: Optional[str] = Field(default=None, max_length=50)
    representative: Optional[str] = None
    business_type: Optional[str] = None
    business_category: Optional[str] = None
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    bank_account: Optional[str] = None
    payment_terms: str = "NET30"
    roles: List[CompanyRoleType] = Field(min_length=1)

    @field_validator("roles")
    @classmethod
    def roles_unique(cls, v):
        if len(set(v)) != len(v):
            raise ValueError("Duplicate company roles")
        return v


class CompanyUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    registration_number: Optional[str] = None
    representative: Optional[str] = None
    business_type: Optional[str] = None
    business_category: Optional[str] = None
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    bank_account: Optional[str] = None
    payment_terms: Optional[str] = None

    version: int


class CompanyRoleCreate(BaseModel):
    role_type: CompanyRoleType
    credit_limit: Optional[str] = None
    default_payment_days: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = None


class CompanyRoleOut(BaseModel):
    id: int
    role_type: CompanyRoleType
    credit_limit: Optional[str]
    default_payment_days: Optional[int]
    notes: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class CompanyOut(BaseModel):
    id: int
    name: str
    registration_number: Optional[str]
    representative: Optional[str]
    business_type: Optional[str]
    business_category: Optional[str]
    contact_person: Optional[str]
    phone: Optional[str]
    email: Optional[str]
    address: Optional[str]
    bank_account: Optional[str]
    payment_terms: str
    is_active: bool
    version: int
    roles: List[CompanyRoleOut]

    created_at: datetime
    updated_at: Optional[datetime]


class CompanyListData(BaseModel):
    total: int
    items: List[CompanyOut]


class CompanyVersion(BaseModel):
    version: int


class CompanyListFilters(BaseModel):
    search: Optional[str] = Query(None)
    role_type: Optional[CompanyRoleType] = Query(None)
    is_active: Optional[bool] = Query(None)
    page: int = Query(1, ge=1)
    page_size: int = Query(20, ge=1, le=100)
