from sqlalchemy import Column, Integer, Numeric, String, Date, Enum, Text, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from app.core.db import Base
from app.models.base.mixins import TimestampMixin, AuditMixin
from app.models.enums.invoice_status import PaymentMethod


class Payment(Base, TimestampMixin, AuditMixin):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True)
    invoice_id = Column(Integer, ForeignKey("tax_invoices.id", ondelete="CASCADE"), nullable=False, index=True)

    payment_date = Column(Date, nullable=False)
    amount = Column(Numeric(15, 2), nullable=False)
    payment_method = Column(Enum(PaymentMethod), nullable=False)
    reference_number = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)

    invoice = relationship("TaxInvoice", back_populates="payments", lazy="raise_on_sql")

    __table_args__ = (CheckConstraint("amount > 0", name="ck_payment_amount_positive"),)

    def __repr__(self):
        return f"<Payment id={self.id} amount={self.amount}>"
