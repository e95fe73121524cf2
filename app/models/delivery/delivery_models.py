from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, Enum, Date, DateTime, Text, CheckConstraint, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from app.core.db import Base
from app.models.base.mixins import TimestampMixin, AuditMixin
from app.models.enums.delivery_status import DeliveryStatus


class Delivery(Base, TimestampMixin, AuditMixin):
    __tablename__ = "deliveries"

    id = Column(Integer, primary_key=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="RESTRICT"), nullable=False, index=True)
    quotation_id = Column(Integer, ForeignKey("quotations.id", ondelete="RESTRICT"), nullable=True, index=True)
    delivery_date = Column(Date, nullable=False)
    status = Column(Enum(DeliveryStatus), nullable=False, default=DeliveryStatus.pending, index=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    returned_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)

    items = relationship("DeliveryLineItem", back_populates="delivery", cascade="all, delete-orphan", lazy="selectin")

    __table_args__ = (Index("ix_delivery_project_status", "project_id", "status"),)

    def __repr__(self):
        return f"<Delivery id={self.id} project_id={self.project_id} status={self.status}>"


class DeliveryLineItem(Base, TimestampMixin):
    __tablename__ = "delivery_line_items"

    id = Column(Integer, primary_key=True)
    delivery_id = Column(Integer, ForeignKey("deliveries.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True)
    product_name = Column(String(255), nullable=False)
    quantity_delivered = Column(Numeric(15, 2), nullable=False)

    delivery = relationship("Delivery", back_populates="items", lazy="raise_on_sql")

    __table_args__ = (
        UniqueConstraint("delivery_id", "product_id", name="uq_delivery_line_product"),
        CheckConstraint("quantity_delivered > 0", name="ck_delivery_line_quantity_positive"),
    )

    def __repr__(self):
        return f"<DeliveryLineItem id={self.id} product_id={self.product_id} qty={self.quantity_delivered}>"
