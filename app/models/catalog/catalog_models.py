from datetime import date

from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, Date, Text, Boolean, CheckConstraint, Index
from sqlalchemy.orm import relationship
from app.core.db import Base
from app.models.base.mixins import TimestampMixin, AuditMixin


class MaterialCategory(Base, TimestampMixin, AuditMixin):
    __tablename__ = "material_categories"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(String(500), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    def __repr__(self):
        return f"<MaterialCategory id={self.id} name={self.name}>"


class Material(Base, TimestampMixin, AuditMixin):
    __tablename__ = "materials"

    id = Column(Integer, primary_key=True)
    sku = Column(String(50), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(String(500), nullable=True)
    category_id = Column(Integer, ForeignKey("material_categories.id", ondelete="RESTRICT"), nullable=False, index=True)
    unit = Column(String(20), nullable=False, default="EA")
    standard_price = Column(Numeric(15, 2), nullable=True)
    preferred_vendor_id = Column(Integer, ForeignKey("companies.id", ondelete="SET NULL"), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    category = relationship("MaterialCategory", lazy="selectin")
    preferred_vendor = relationship("Company", lazy="selectin")

    __table_args__ = (
        CheckConstraint("standard_price IS NULL OR standard_price >= 0", name="ck_materials_price_non_negative"),
    )

    def __repr__(self):
        return f"<Material id={self.id} sku={self.sku} active={self.is_active}>"


class ServiceCategory(Base, TimestampMixin, AuditMixin):
    """Outsourced work a vendor can be asked to quote, such as laser cutting or painting."""

    __tablename__ = "service_categories"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(String(500), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    def __repr__(self):
        return f"<ServiceCategory id={self.id} name={self.name}>"


class VendorOffering(Base, TimestampMixin, AuditMixin):
    """A vendor's price for one material or one service category over a date range."""

    __tablename__ = "vendor_offerings"

    id = Column(Integer, primary_key=True)
    vendor_company_id = Column(Integer, ForeignKey("companies.id", ondelete="RESTRICT"), nullable=False, index=True)
    material_id = Column(Integer, ForeignKey("materials.id", ondelete="CASCADE"), nullable=True, index=True)
    service_category_id = Column(Integer, ForeignKey("service_categories.id", ondelete="CASCADE"), nullable=True, index=True)

    vendor_code = Column(String(50), nullable=True)
    vendor_item_name = Column(String(255), nullable=True)
    unit_price = Column(Numeric(15, 2), nullable=True)
    currency = Column(String(3), nullable=False, default="KRW")
    lead_time_days = Column(Integer, nullable=True)
    min_order_quantity = Column(Numeric(15, 2), nullable=True)
    effective_from = Column(Date, nullable=True)
    effective_to = Column(Date, nullable=True)
    is_preferred = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)

    vendor = relationship("Company", lazy="selectin")

    __table_args__ = (
        CheckConstraint(
            "(material_id IS NULL) <> (service_category_id IS NULL)",
            name="ck_vendor_offering_single_target",
        ),
        CheckConstraint(
            "effective_from IS NULL OR effective_to IS NULL OR effective_to >= effective_from",
            name="ck_vendor_offering_date_range",
        ),
        CheckConstraint("unit_price IS NULL OR unit_price >= 0", name="ck_vendor_offering_price_non_negative"),
        Index("ix_vendor_offering_vendor_material", "vendor_company_id", "material_id"),
        Index("ix_vendor_offering_vendor_service", "vendor_company_id", "service_category_id"),
    )

    def is_current(self, on: date) -> bool:
        if self.effective_from and on < self.effective_from:
            return False
        if self.effective_to and on > self.effective_to:
            return False
        return True

    def __repr__(self):
        return f"<VendorOffering id={self.id} vendor={self.vendor_company_id} preferred={self.is_preferred}>"
