# app/schemas/purchasing/purchase_schemas.py

from pydantic import BaseModel, Field, EmailStr, model_validator
from typing import Optional, List
from decimal import Decimal
from datetime import date, datetime
from fastapi import Query

from app.models.enums.purchase_status import (
    PurchaseRequestStatus,
    RfqItemStatus,
    PurchaseOrderStatus,
)


# =====================================================
# PURCHASE REQUESTS
# =====================================================
class PurchaseRequestCreate(BaseModel):
    project_id: Optional[int] = None
    description: str = Field(min_length=1)
    quantity: Decimal = Field(gt=0)
    uom: Optional[str] = Field(default=None, max_length=20)
    required_date: date
    material_id: Optional[int] = None
    service_category_id: Optional[int] = None

    @model_validator(mode="after")
    def single_catalog_item(self):
        if self.material_id is not None and self.service_category_id is not None:
            raise ValueError("A purchase request references a material or a service category, not both")
        return self


class PurchaseRequestUpdate(BaseModel):
    version: int
    description: Optional[str] = Field(default=None, min_length=1)
    quantity: Optional[Decimal] = Field(default=None, gt=0)
    uom: Optional[str] = Field(default=None, max_length=20)
    required_date: Optional[date] = None


class PurchaseRequestListFilters(BaseModel):
    project_id: Optional[int] = Query(None)
    status: Optional[PurchaseRequestStatus] = Query(None)
    search: Optional[str] = Query(None)
    page: int = Query(1, ge=1)
    page_size: int = Query(20, ge=1, le=100)


class RfqItemOut(BaseModel):
    id: int
    vendor_company_id: int
    vendor_name: Optional[str] = None
    status: RfqItemStatus
    quoted_price: Optional[Decimal]
    lead_time_days: Optional[int]
    notes: Optional[str]
    sent_at: datetime
    replied_at: Optional[datetime]
    emailed_at: Optional[datetime] = None


class PurchaseRequestOut(BaseModel):
    id: int
    request_number: str
    project_id: Optional[int]
    project_name: Optional[str] = None
    material_id: Optional[int] = None
    material_sku: Optional[str] = None
    service_category_id: Optional[int] = None
    service_category_name: Optional[str] = None
    description: str
    quantity: Decimal
    uom: str
    required_date: date
    status: PurchaseRequestStatus
    version: int
    rfq_items: List[RfqItemOut]
    created_by_id: Optional[int]
    created_at: datetime
    updated_at: Optional[datetime]


class PurchaseRequestListData(BaseModel):
    total: int
    items: List[PurchaseRequestOut]


# =====================================================
# RFQ
# =====================================================
class RfqSend(BaseModel):
    vendor_company_id: int
    notes: Optional[str] = None
    send_email: bool = False
    to: Optional[EmailStr] = None
    cc: List[EmailStr] = Field(default_factory=list)


class DocumentEmailIn(BaseModel):
    to: Optional[EmailStr] = None
    cc: List[EmailStr] = Field(default_factory=list)
    subject: Optional[str] = None
    body: Optional[str] = None


class RfqReply(BaseModel):
    quoted_price: Decimal = Field(ge=0)
    lead_time_days: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = None


# =====================================================
# PURCHASE ORDERS
# =====================================================
class PurchaseOrderCreate(BaseModel):
    rfq_item_id: int
    order_date: Optional[date] = None
    expected_delivery_date: Optional[date] = None
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    notes: Optional[str] = None


class PurchaseOrderStatusChange(BaseModel):
    status: PurchaseOrderStatus
    version: int


class PurchaseOrderListFilters(BaseModel):
    vendor_company_id: Optional[int] = Query(None)
    project_id: Optional[int] = Query(None)
    status: Optional[PurchaseOrderStatus] = Query(None)
    page: int = Query(1, ge=1)
    page_size: int = Query(20, ge=1, le=100)


class PurchaseOrderOut(BaseModel):
    id: int
    po_number: str
    purchase_request_id: int
    rfq_item_id: int
    vendor_company_id: int
    vendor_name: Optional[str] = None
    project_id: Optional[int]
    order_date: date
    expected_delivery_date: Optional[date]
    total_amount: Decimal
    currency: str
    status: PurchaseOrderStatus
    notes: Optional[str]
    requires_approval: bool
    approved_at: Optional[datetime]
    is_sendable: bool
    version: int
    created_by_id: Optional[int]
    created_at: datetime
    updated_at: Optional[datetime]


class PurchaseOrderListData(BaseModel):
    total: int
    items: List[PurchaseOrderOut]


class PurchaseOrderUpdate(BaseModel):
    version: int
    expected_delivery_date: Optional[date] = None
    notes: Optional[str] = None
