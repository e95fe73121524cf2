from decimal import Decimal

from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, Enum, Date, DateTime, Text, Boolean, CheckConstraint, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from app.core.db import Base
from app.models.base.mixins import TimestampMixin, VersionMixin, AuditMixin
from app.models.enums.purchase_status import (
    PurchaseRequestStatus,
    RfqItemStatus,
    PurchaseOrderStatus,
)


class PurchaseRequest(Base, TimestampMixin, VersionMixin, AuditMixin):
    __tablename__ = "purchase_requests"

    id = Column(Integer, primary_key=True)
    request_number = Column(String(30), nullable=False, unique=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="RESTRICT"), nullable=True, index=True)
    description = Column(Text, nullable=False)
    material_id = Column(Integer, ForeignKey("materials.id", ondelete="RESTRICT"), nullable=True, index=True)
    service_category_id = Column(Integer, ForeignKey("service_categories.id", ondelete="RESTRICT"), nullable=True, index=True)
    quantity = Column(Numeric(15, 2), nullable=False)
    uom = Column(String(20), nullable=False, default="EA")
    required_date = Column(Date, nullable=False)
    status = Column(Enum(PurchaseRequestStatus), nullable=False, default=PurchaseRequestStatus.draft, index=True)

    project = relationship("Project", lazy="selectin")
    material = relationship("Material", lazy="selectin")
    service_category = relationship("ServiceCategory", lazy="selectin")
    rfq_items = relationship(
        "RfqItem",
        back_populates="purchase_request",
        cascade="all, delete-orphan",
        order_by="RfqItem.id",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_purchase_request_quantity_positive"),
        CheckConstraint(
            "material_id IS NULL OR service_category_id IS NULL",
            name="ck_purchase_request_single_catalog_item",
        ),
    )

    def __repr__(self):
        return f"<PurchaseRequest {self.request_number} status={self.status}>"


class RfqItem(Base, TimestampMixin):
    __tablename__ = "rfq_items"

    id = Column(Integer, primary_key=True)
    purchase_request_id = Column(Integer, ForeignKey("purchase_requests.id", ondelete="CASCADE"), nullable=False, index=True)
    vendor_company_id = Column(Integer, ForeignKey("companies.id", ondelete="RESTRICT"), nullable=False, index=True)
    status = Column(Enum(RfqItemStatus), nullable=False, default=RfqItemStatus.sent)
    quoted_price = Column(Numeric(15, 2), nullable=True)
    lead_time_days = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=False)
    replied_at = Column(DateTime(timezone=True), nullable=True)
    emailed_at = Column(DateTime(timezone=True), nullable=True)

    purchase_request = relationship("PurchaseRequest", back_populates="rfq_items", lazy="raise_on_sql")
    vendor = relationship("Company", lazy="selectin")

    __table_args__ = (
        UniqueConstraint("purchase_request_id", "vendor_company_id", name="uq_rfq_request_vendor"),
        CheckConstraint("quoted_price IS NULL OR quoted_price >= 0", name="ck_rfq_price_non_negative"),
    )


class PurchaseOrder(Base, TimestampMixin, VersionMixin, AuditMixin):
    __tablename__ = "purchase_orders"

    id = Column(Integer, primary_key=True)
    po_number = Column(String(30), nullable=False, unique=True, index=True)
    purchase_request_id = Column(Integer, ForeignKey("purchase_requests.id", ondelete="RESTRICT"), nullable=False, index=True)
    rfq_item_id = Column(Integer, ForeignKey("rfq_items.id", ondelete="RESTRICT"), nullable=False, unique=True)
    vendor_company_id = Column(Integer, ForeignKey("companies.id", ondelete="RESTRICT"), nullable=False, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="RESTRICT"), nullable=True, index=True)

    order_date = Column(Date, nullable=False)
    expected_delivery_date = Column(Date, nullable=True)
    total_amount = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    currency = Column(String(3), nullable=False, default="KRW")
    status = Column(Enum(PurchaseOrderStatus), nullable=False, default=PurchaseOrderStatus.draft, index=True)
    notes = Column(Text, nullable=True)

    requires_approval = Column(Boolean, nullable=False, default=False)
    approved_at = Column(DateTime(timezone=True), nullable=True)

    vendor = relationship("Company", lazy="selectin")

    __table_args__ = (
        Index("ix_purchase_order_vendor_status", "vendor_company_id", "status"),
        CheckConstraint("total_amount >= 0", name="ck_purchase_order_total_non_negative"),
    )

    @property
    def is_sendable(self) -> bool:
        return self.status == PurchaseOrderStatus.draft and (
            not self.requires_approval or self.approved_at is not None
        )

    def __repr__(self):
        return f"<PurchaseOrder {self.po_number} status={self.status}>"
