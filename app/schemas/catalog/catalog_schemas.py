# app/schemas/catalog/catalog_schemas.py

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
from decimal import Decimal
from datetime import date, datetime
from fastapi import Query


def _strip(v):
    return v.strip() if isinstance(v, str) else v


def _normalize_sku(v):
    return v.strip().upper() if isinstance(v, str) else v


# =====================================================
# CATEGORIES (MATERIAL AND SERVICE)
# =====================================================
class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)

    _name = field_validator("name", mode="before")(_strip)


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    is_active: Optional[bool] = None

    _name = field_validator("name", mode="before")(_strip)


class CategoryListFilters(BaseModel):
    search: Optional[str] = Query(None)
    active_only: bool = Query(True)
    page: int = Query(1, ge=1)
    page_size: int = Query(20, ge=1, le=100)


class CategoryOut(BaseModel):
    id: int
    name: str
    description: Optional[str]
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class MaterialCategoryOut(CategoryOut):
    material_count: int = 0


class ServiceCategoryOut(CategoryOut):
    vendor_count: int = 0


class MaterialCategoryListData(BaseModel):
    total: int
    items: List[MaterialCategoryOut]


class ServiceCategoryListData(BaseModel):
    total: int
    items: List[ServiceCategoryOut]


# =====================================================
# MATERIALS
# =====================================================
class MaterialCreate(BaseModel):
    sku: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=500)
    category_id: int
    unit: str = Field(default="EA", min_length=1, max_length=20)
    standard_price: Optional[Decimal] = Field(default=None, ge=0, max_digits=15, decimal_places=2)
    preferred_vendor_id: Optional[int] = None

    _sku = field_validator("sku", mode="before")(_normalize_sku)


class MaterialUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=500)
    category_id: Optional[int] = None
    unit: Optional[str] = Field(default=None, min_length=1, max_length=20)
    standard_price: Optional[Decimal] = Field(default=None, ge=0, max_digits=15, decimal_places=2)
    preferred_vendor_id: Optional[int] = None
    is_active: Optional[bool] = None


class MaterialListFilters(BaseModel):
    category_id: Optional[int] = Query(None)
    search: Optional[str] = Query(None, description="Matches name or SKU")
    active_only: bool = Query(True)
    page: int = Query(1, ge=1)
    page_size: int = Query(20, ge=1, le=100)


class MaterialOut(BaseModel):
    id: int
    sku: str
    name: str
    description: Optional[str]
    category_id: int
    category_name: Optional[str]
    unit: str
    standard_price: Optional[Decimal]
    preferred_vendor_id: Optional[int]
    preferred_vendor_name: Optional[str]
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime]


class MaterialListData(BaseModel):
    total: int
    items: List[MaterialOut]


# =====================================================
# VENDOR OFFERINGS
# =====================================================
class VendorOfferingCreate(BaseModel):
    vendor_company_id: int
    material_id: Optional[int] = None
    service_category_id: Optional[int] = None
    vendor_code: Optional[str] = Field(default=None, max_length=50)
    vendor_item_name: Optional[str] = Field(default=None, max_length=255)
    unit_price: Optional[Decimal] = Field(default=None, ge=0, max_digits=15, decimal_places=2)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    lead_time_days: Optional[int] = Field(default=None, ge=0)
    min_order_quantity: Optional[Decimal] = Field(default=None, gt=0)
    effective_from: Optional[date] = None
    effective_to: Optional[date] = None
    is_preferred: bool = False
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _one_target(self):
        if (self.material_id is None) == (self.service_category_id is None):
            raise ValueError("Provide exactly one of material_id or service_category_id")
        if self.effective_from and self.effective_to and self.effective_to < self.effective_from:
            raise ValueError("effective_to must be on or after effective_from")
        return self


class VendorOfferingUpdate(BaseModel):
    vendor_code: Optional[str] = Field(default=None, max_length=50)
    vendor_item_name: Optional[str] = Field(default=None, max_length=255)
    unit_price: Optional[Decimal] = Field(default=None, ge=0, max_digits=15, decimal_places=2)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    lead_time_days: Optional[int] = Field(default=None, ge=0)
    min_order_quantity: Optional[Decimal] = Field(default=None, gt=0)
    effective_from: Optional[date] = None
    effective_to: Optional[date] = None
    is_preferred: Optional[bool] = None
    notes: Optional[str] = None


class VendorOfferingFilters(BaseModel):
    current_only: bool = Query(False, description="Only offerings effective today")
    page: int = Query(1, ge=1)
    page_size: int = Query(20, ge=1, le=100)


class VendorOfferingOut(BaseModel):
    id: int
    vendor_company_id: int
    vendor_name: Optional[str]
    material_id: Optional[int]
    service_category_id: Optional[int]
    vendor_code: Optional[str]
    vendor_item_name: Optional[str]
    unit_price: Optional[Decimal]
    currency: str
    lead_time_days: Optional[int]
    min_order_quantity: Optional[Decimal]
    effective_from: Optional[date]
    effective_to: Optional[date]
    is_preferred: bool
    notes: Optional[str]
    created_at: datetime
    updated_at: Optional[datetime]


class VendorOfferingListData(BaseModel):
    total: int
    items: List[VendorOfferingOut]
