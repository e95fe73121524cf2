from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional
from decimal import Decimal
from datetime import datetime, date
from fastapi import Query

from app.models.enums.quotation_status import QuotationStatus

# =====================================================
# ITEM PAYLOADS
# =====================================================

class QuotationItemIn(BaseModel):
    product_id: int
    quantity: Decimal = Field(gt=0)
    unit_price: Optional[Decimal] = Field(default=None, ge=0)
    notes: Optional[str] = None


# =====================================================
# QUOTATION CREATE / UPDATE
# =====================================================

class QuotationCreate(BaseModel):
    project_id: int
    quotation_date: Optional[date] = None
    validity_days: Optional[int] = Field(default=None, gt=0)
    notes: Optional[str] = None
    items: List[QuotationItemIn] = Field(default_factory=list)


class QuotationUpdate(BaseModel):
    quotation_date: Optional[date] = None
    validity_days: Optional[int] = Field(default=None, gt=0)
    notes: Optional[str] = None
    items: Optional[List[QuotationItemIn]] = None


class QuotationEmailIn(BaseModel):
    to: Optional[EmailStr] = None
    cc: List[EmailStr] = Field(default_factory=list)
    subject: Optional[str] = None
    body: Optional[str] = None


class QuotationListFilters(BaseModel):
    project_id: Optional[int] = Query(None)
    status: Optional[QuotationStatus] = Query(None)
    page: int = Query(1, ge=1)
    page_size: int = Query(20, ge=1, le=100)


# =====================================================
# RESPONSES
# =====================================================

class QuotationItemOut(BaseModel):
    id: int
    product_id: int
    product_name: str
    sequence: int
    quantity: Decimal
    unit_price: Decimal
    line_total: Decimal
    notes: Optional[str]

    class Config:
        from_attributes = True


class QuotationOut(BaseModel):
    id: int
    project_id: int
    job_code: Optional[str]
    version: int
    status: QuotationStatus
    quotation_date: date
    validity_days: int
    valid_until: date
    total_amount: Decimal
    notes: Optional[str]

    submitted_at: Optional[datetime]
    approved_at: Optional[datetime]
    approved_by_id: Optional[int]
    rejection_reason: Optional[str]
    sent_at: Optional[datetime]
    accepted_at: Optional[datetime]

    items: List[QuotationItemOut]

    created_by: Optional[int]
    created_at: datetime
    updated_at: Optional[datetime]


class QuotationListData(BaseModel):
    total: int
    items: List[QuotationOut]
