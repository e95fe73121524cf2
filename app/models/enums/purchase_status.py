# app/models/enums/purchase_status.py
import enum


class PurchaseRequestStatus(str, enum.Enum):
    draft = "DRAFT"
    rfq_sent = "RFQ_SENT"
    vendor_selected = "VENDOR_SELECTED"
    closed = "CLOSED"
    canceled = "CANCELED"


class RfqItemStatus(str, enum.Enum):
    sent = "SENT"
    replied = "REPLIED"
    no_response = "NO_RESPONSE"
    selected = "SELECTED"
    rejected = "REJECTED"


class PurchaseOrderStatus(str, enum.Enum):
    draft = "DRAFT"
    sent = "SENT"
    confirmed = "CONFIRMED"
    received = "RECEIVED"
    canceled = "CANCELED"
