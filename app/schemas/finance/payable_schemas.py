# app/schemas/finance/payable_schemas.py

from pydantic import BaseModel, Field
from typing import Optional, List
from decimal import Decimal
from datetime import date, datetime
from fastapi import Query

from app.models.enums.payable_status import PayableStatus, DisbursementCauseType
from app.models.enums.invoice_status import PaymentMethod


class VendorPaymentCreate(BaseModel):
    payment_date: Optional[date] = None
    amount: Decimal = Field(gt=0)
    payment_method: PaymentMethod
    reference_number: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = None


class PayableListFilters(BaseModel):
    vendor_company_id: Optional[int] = Query(None)
    status: Optional[PayableStatus] = Query(None)
    overdue_only: bool = Query(False)
    page: int = Query(1, ge=1)
    page_size: int = Query(20, ge=1, le=100)


class VendorPaymentOut(BaseModel):
    id: int
    payment_date: date
    amount: Decimal
    payment_method: PaymentMethod
    reference_number: Optional[str]
    notes: Optional[str]
    created_by_id: Optional[int]
    created_at: datetime

    class Config:
        from_attributes = True


class PayableOut(BaseModel):
    id: int
    cause_type: DisbursementCauseType
    cause_id: int
    cause_reference_number: str
    vendor_company_id: int
    vendor_name: Optional[str] = None
    total_amount: Decimal
    total_paid: Decimal
    remaining_balance: Decimal
    currency: str
    due_date: Optional[date]
    status: PayableStatus
    aging_bucket: str
    notes: Optional[str]
    version: int
    payments: List[VendorPaymentOut]
    created_at: datetime
    updated_at: Optional[datetime]


class PayableListData(BaseModel):
    total: int
    items: List[PayableOut]
