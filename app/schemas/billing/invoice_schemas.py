from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional
from decimal import Decimal
from datetime import datetime, date
from fastapi import Query

from app.models.enums.invoice_status import InvoiceStatus, PaymentMethod


# =====================================================
# BASE
# =====================================================
class ORMBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# =====================================================
# INPUTS
# =====================================================
class InvoiceLineIn(BaseModel):
    product_id: int
    quantity: Decimal
    unit_price: Optional[Decimal] = Field(default=None, ge=0)


class InvoiceCreate(BaseModel):
    project_id: int
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    tax_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)
    notes: Optional[str] = None
    items: List[InvoiceLineIn] = Field(default_factory=list)


class InvoiceUpdate(BaseModel):
    version: int
    notes: Optional[str] = None
    due_date: Optional[date] = None


class PaymentCreate(BaseModel):
    payment_date: Optional[date] = None
    amount: Decimal = Field(gt=0)
    payment_method: PaymentMethod
    reference_number: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = None


class InvoiceListFilters(BaseModel):
    project_id: Optional[int] = Query(None)
    customer_id: Optional[int] = Query(None)
    status: Optional[InvoiceStatus] = Query(None)
    page: int = Query(1, ge=1)
    page_size: int = Query(20, ge=1, le=100)


# =====================================================
# OUTPUTS
# =====================================================
class InvoiceItemOut(ORMBase):
    id: int
    product_id: int
    product_name: str
    product_sku: Optional[str]
    quantity_invoiced: Decimal
    unit_price: Decimal
    line_total: Decimal


class PaymentOut(ORMBase):
    id: int
    payment_date: date
    amount: Decimal
    payment_method: PaymentMethod
    reference_number: Optional[str]
    notes: Optional[str]
    created_by_id: Optional[int]
    created_at: datetime


class InvoiceOut(ORMBase):
    id: int
    invoice_number: str
    project_id: int
    job_code: Optional[str] = None
    quotation_id: Optional[int]
    customer_id: int
    customer_name: Optional[str] = None

    issue_date: date
    due_date: date
    status: InvoiceStatus

    total_before_tax: Decimal
    tax_rate: Decimal
    total_tax: Decimal
    total_amount: Decimal
    total_paid: Decimal
    remaining_balance: Decimal

    notes: Optional[str]
    issued_at: Optional[datetime]
    cancelled_at: Optional[datetime]
    version: int

    items: List[InvoiceItemOut]
    payments: List[PaymentOut]

    created_by_id: Optional[int]
    created_at: datetime
    updated_at: Optional[datetime]


class InvoiceListData(BaseModel):
    total: int
    items: List[InvoiceOut]
