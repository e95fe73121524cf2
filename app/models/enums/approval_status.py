# app/models/enums/approval_status.py
import enum


class ApprovalEntityType(str, enum.Enum):
    quotation = "QUOTATION"
    purchase_order = "PURCHASE_ORDER"


class ApprovalStatus(str, enum.Enum):
    pending = "PENDING"
    approved = "APPROVED"
    rejected = "REJECTED"


class ApprovalHistoryAction(str, enum.Enum):
    submitted = "SUBMITTED"
    approved = "APPROVED"
    rejected = "REJECTED"


class ApprovalCommentType(str, enum.Enum):
    comment = "COMMENT"
    rejection = "REJECTION"
