from decimal import Decimal

from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, Enum, Date, DateTime, Text, Index, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import relationship
from app.core.db import Base
from app.models.base.mixins import TimestampMixin, VersionMixin, AuditMixin
from app.models.enums.invoice_status import InvoiceStatus


class TaxInvoice(Base, TimestampMixin, VersionMixin, AuditMixin):
    __tablename__ = "tax_invoices"

    id = Column(Integer, primary_key=True)
    invoice_number = Column(String(30), nullable=False, unique=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="RESTRICT"), nullable=False, index=True)
    quotation_id = Column(Integer, ForeignKey("quotations.id", ondelete="RESTRICT"), nullable=True, index=True)
    customer_id = Column(Integer, ForeignKey("companies.id", ondelete="RESTRICT"), nullable=False, index=True)

    issue_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    status = Column(Enum(InvoiceStatus), nullable=False, default=InvoiceStatus.draft, index=True)

    total_before_tax = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    tax_rate = Column(Numeric(5, 2), nullable=False, default=Decimal("10.00"))
    total_tax = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    total_amount = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    total_paid = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))

    notes = Column(Text, nullable=True)
    issued_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    project = relationship("Project", lazy="selectin")
    customer = relationship("Company", lazy="selectin")
    items = relationship("InvoiceLineItem", back_populates="invoice", cascade="all, delete-orphan", lazy="selectin")
    payments = relationship("Payment", back_populates="invoice", cascade="all, delete-orphan", order_by="Payment.payment_date", lazy="selectin")

    __table_args__ = (
        Index("ix_tax_invoice_project_status", "project_id", "status"),
        CheckConstraint("due_date >= issue_date", name="ck_tax_invoice_due_after_issue"),
        CheckConstraint("tax_rate >= 0 AND tax_rate <= 100", name="ck_tax_invoice_tax_rate_range"),
        CheckConstraint("total_paid >= 0 AND total_paid <= total_amount", name="ck_tax_invoice_paid_within_total"),
    )

    @property
    def remaining_balance(self) -> Decimal:
        return (self.total_amount or Decimal("0.00")) - (self.total_paid or Decimal("0.00"))

    def __repr__(self):
        return f"<TaxInvoice {self.invoice_number} status={self.status}>"


class InvoiceLineItem(Base, TimestampMixin):
    __tablename__ = "invoice_line_items"

    id = Column(Integer, primary_key=True)
    invoice_id = Column(Integer, ForeignKey("tax_invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True)
    product_name = Column(String(255), nullable=False)
    product_sku = Column(String(50), nullable=True)
    quantity_invoiced = Column(Numeric(15, 2), nullable=False)
    unit_price = Column(Numeric(15, 2), nullable=False)
    line_total = Column(Numeric(15, 2), nullable=False)

    invoice = relationship("TaxInvoice", back_populates="items", lazy="raise_on_sql")

    __table_args__ = (
        UniqueConstraint("invoice_id", "product_id", name="uq_invoice_line_product"),
        CheckConstraint("quantity_invoiced > 0", name="ck_invoice_line_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="ck_invoice_line_price_non_negative"),
    )

    def __repr__(self):
        return f"<InvoiceLineItem id={self.id} product_id={self.product_id} qty={self.quantity_invoiced}>"
