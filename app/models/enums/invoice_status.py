from enum import Enum

class InvoiceStatus(str, Enum):
    draft = "DRAFT"
    issued = "ISSUED"
    partially_paid = "PARTIALLY_PAID"
    paid = "PAID"
    overdue = "OVERDUE"
    cancelled = "CANCELLED"


PAYABLE_INVOICE_STATUSES = (
    InvoiceStatus.issued,
    InvoiceStatus.partially_paid,
    InvoiceStatus.overdue,
)


class PaymentMethod(str, Enum):
    bank_transfer = "BANK_TRANSFER"
    credit_card = "CREDIT_CARD"
    check = "CHECK"
    cash = "CASH"
    other = "OTHER"
