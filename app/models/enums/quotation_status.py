# app/models/enums/quotation_status.py
import enum


class QuotationStatus(str, enum.Enum):
    draft = "DRAFT"
    pending = "PENDING"
    approved = "APPROVED"
    rejected = "REJECTED"
    sent = "SENT"
    accepted = "ACCEPTED"


# Statuses whose line items can be delivered and invoiced against
APPROVED_QUOTATION_STATUSES = (
    QuotationStatus.approved,
    QuotationStatus.sent,
    QuotationStatus.accepted,
)
