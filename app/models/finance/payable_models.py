from decimal import Decimal

from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, Enum, Date, Text, CheckConstraint, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from app.core.db import Base
from app.models.base.mixins import TimestampMixin, VersionMixin, AuditMixin
from app.models.enums.payable_status import PayableStatus, DisbursementCauseType
from app.models.enums.invoice_status import PaymentMethod


class AccountsPayable(Base, TimestampMixin, VersionMixin, AuditMixin):
    __tablename__ = "accounts_payable"

    id = Column(Integer, primary_key=True)
    cause_type = Column(Enum(DisbursementCauseType), nullable=False)
    cause_id = Column(Integer, nullable=False)
    cause_reference_number = Column(String(50), nullable=False, index=True)
    vendor_company_id = Column(Integer, ForeignKey("companies.id", ondelete="RESTRICT"), nullable=False, index=True)

    total_amount = Column(Numeric(15, 2), nullable=False)
    total_paid = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    currency = Column(String(3), nullable=False, default="KRW")
    due_date = Column(Date, nullable=True)
    status = Column(Enum(PayableStatus), nullable=False, default=PayableStatus.pending, index=True)
    notes = Column(Text, nullable=True)

    vendor = relationship("Company", lazy="selectin")
    payments = relationship(
        "VendorPayment",
        back_populates="payable",
        cascade="all, delete-orphan",
        order_by="VendorPayment.payment_date",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("cause_type", "cause_id", name="uq_payable_cause"),
        Index("ix_payable_vendor_status", "vendor_company_id", "status"),
        CheckConstraint("total_amount >= 0", name="ck_payable_total_non_negative"),
        CheckConstraint("total_paid >= 0 AND total_paid <= total_amount", name="ck_payable_paid_within_total"),
    )

    @property
    def remaining_balance(self) -> Decimal:
        return (self.total_amount or Decimal("0.00")) - (self.total_paid or Decimal("0.00"))

    def __repr__(self):
        return f"<AccountsPayable {self.cause_reference_number} status={self.status}>"


class VendorPayment(Base, TimestampMixin, AuditMixin):
    __tablename__ = "vendor_payments"

    id = Column(Integer, primary_key=True)
    payable_id = Column(Integer, ForeignKey("accounts_payable.id", ondelete="CASCADE"), nullable=False, index=True)
    payment_date = Column(Date, nullable=False)
    amount = Column(Numeric(15, 2), nullable=False)
    payment_method = Column(Enum(PaymentMethod), nullable=False)
    reference_number = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)

    payable = relationship("AccountsPayable", back_populates="payments", lazy="raise_on_sql")

    __table_args__ = (CheckConstraint("amount > 0", name="ck_vendor_payment_amount_positive"),)
