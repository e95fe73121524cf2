# app/schemas/delivery/delivery_schemas.py

from pydantic import BaseModel, Field
from typing import Optional, List
from decimal import Decimal
from datetime import date, datetime
from fastapi import Query

from app.models.enums.delivery_status import DeliveryStatus


class DeliveryLineIn(BaseModel):
    product_id: int
    quantity: Decimal


class DeliveryCreate(BaseModel):
    project_id: int
    delivery_date: Optional[date] = None
    notes: Optional[str] = None
    items: List[DeliveryLineIn] = Field(default_factory=list)


class DeliveryListFilters(BaseModel):
    project_id: Optional[int] = Query(None)
    status: Optional[DeliveryStatus] = Query(None)
    page: int = Query(1, ge=1)
    page_size: int = Query(20, ge=1, le=100)


class DeliveryLineOut(BaseModel):
    id: int
    product_id: int
    product_name: str
    quantity_delivered: Decimal

    class Config:
        from_attributes = True


class DeliveryOut(BaseModel):
    id: int
    project_id: int
    quotation_id: Optional[int]
    delivery_date: date
    status: DeliveryStatus
    delivered_at: Optional[datetime]
    returned_at: Optional[datetime]
    notes: Optional[str]
    items: List[DeliveryLineOut]
    created_by_id: Optional[int]
    created_at: datetime

    class Config:
        from_attributes = True


class DeliveryListData(BaseModel):
    total: int
    items: List[DeliveryOut]
