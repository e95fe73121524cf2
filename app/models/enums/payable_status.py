# app/models/enums/payable_status.py
import enum


class PayableStatus(str, enum.Enum):
    pending = "PENDING"
    partially_paid = "PARTIALLY_PAID"
    paid = "PAID"
    cancelled = "CANCELLED"


class DisbursementCauseType(str, enum.Enum):
    purchase_order = "PURCHASE_ORDER"
    expense = "EXPENSE"
