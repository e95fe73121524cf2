# app/schemas/masters/product_schemas.py

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Literal
from decimal import Decimal
from datetime import datetime
from fastapi import Query


def _normalize_sku(v):
    return v.strip().upper() if isinstance(v, str) else v


class ProductCreate(BaseModel):
    sku: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=255)
    category: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    unit: str = Field(default="EA", min_length=1, max_length=20)
    base_unit_price: Optional[Decimal] = Field(default=None, ge=0, max_digits=15, decimal_places=2)

    _sku = field_validator("sku", mode="before")(_normalize_sku)


class ProductUpdate(BaseModel):
    sku: Optional[str] = Field(default=None, min_length=1, max_length=50)
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    category: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    unit: Optional[str] = Field(default=None, min_length=1, max_length=20)
    base_unit_price: Optional[Decimal] = Field(default=None, ge=0, max_digits=15, decimal_places=2)

    version: int

    _sku = field_validator("sku", mode="before")(_normalize_sku)


class ProductVersion(BaseModel):
    version: int


class ProductListFilters(BaseModel):
    search: Optional[str] = Query(None, description="Matches name or SKU")
    category: Optional[str] = Query(None)
    include_inactive: bool = Query(False)
    sort_by: str = Query("name")
    order: Literal["asc", "desc"] = Query("asc")
    page: int = Query(1, ge=1)
    page_size: int = Query(20, ge=1, le=100)


class ProductOut(BaseModel):
    id: int
    sku: str
    name: str
    category: Optional[str]
    description: Optional[str]
    unit: str
    base_unit_price: Optional[Decimal]
    is_active: bool
    version: int
    created_by: Optional[int]
    updated_by: Optional[int]
    created_at: datetime
    updated_at: Optional[datetime]
    deleted_at: Optional[datetime] = None


class ProductListData(BaseModel):
    total: int
    items: List[ProductOut]
