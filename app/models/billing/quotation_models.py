from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, Enum, Index, CheckConstraint, UniqueConstraint, Date, DateTime, Text
from sqlalchemy.orm import relationship
from decimal import Decimal
from app.core.db import Base
from app.models.base.mixins import TimestampMixin, SoftDeleteMixin, AuditMixin
from app.models.enums.quotation_status import QuotationStatus


class Quotation(Base, TimestampMixin, SoftDeleteMixin, AuditMixin):
    __tablename__ = "quotations"

    id = Column(Integer, primary_key=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="RESTRICT"), nullable=False, index=True)
    version = Column(Integer, nullable=False, default=1)
    status = Column(Enum(QuotationStatus), nullable=False, default=QuotationStatus.draft, index=True)
    quotation_date = Column(Date, nullable=False)
    validity_days = Column(Integer, nullable=False, default=30)
    total_amount = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    notes = Column(Text, nullable=True)

    submitted_at = Column(DateTime(timezone=True), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    approved_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    accepted_at = Column(DateTime(timezone=True), nullable=True)

    project = relationship("Project", lazy="selectin")
    items = relationship(
        "QuotationItem",
        back_populates="quotation",
        cascade="all, delete-orphan",
        order_by="QuotationItem.sequence",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("project_id", "version", name="uq_quotation_project_version"),
        Index("ix_quotation_project_status", "project_id", "status"),
        CheckConstraint("total_amount >= 0", name="ck_quotation_total_non_negative"),
        CheckConstraint("validity_days > 0", name="ck_quotation_validity_positive"),
    )

    @property
    def reference(self) -> str:
        return f"{self.project.job_code} v{self.version}" if self.project else f"Q-{self.id} v{self.version}"

    def __repr__(self):
        return f"<Quotation id={self.id} project_id={self.project_id} v{self.version} status={self.status}>"


class QuotationItem(Base, TimestampMixin):
    __tablename__ = "quotation_items"

    id = Column(Integer, primary_key=True)
    quotation_id = Column(Integer, ForeignKey("quotations.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True)
    product_name = Column(String(255), nullable=False)
    sequence = Column(Integer, nullable=False, default=1)
    quantity = Column(Numeric(15, 2), nullable=False)
    unit_price = Column(Numeric(15, 2), nullable=False)
    line_total = Column(Numeric(15, 2), nullable=False)
    notes = Column(Text, nullable=True)

    quotation = relationship("Quotation", back_populates="items", lazy="raise_on_sql")

    __table_args__ = (
        UniqueConstraint("quotation_id", "product_id", name="uq_quotation_item_product"),
        CheckConstraint("quantity > 0", name="ck_quotation_item_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="ck_quotation_item_price_non_negative"),
        CheckConstraint("line_total >= 0", name="ck_quotation_item_total_non_negative"),
    )

    def __repr__(self):
        return f"<QuotationItem id={self.id} product_id={self.product_id} qty={self.quantity}>"
