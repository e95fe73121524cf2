from enum import Enum


class ErrorCode(str, Enum):
    # ---------------- GENERIC ----------------
    VALIDATION_ERROR = "VALIDATION_ERROR"
    BUSINESS_RULE_VIOLATION = "BUSINESS_RULE_VIOLATION"
    UNAUTHORIZED = "UNAUTHORIZED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    DUPLICATE_RESOURCE = "DUPLICATE_RESOURCE"
    DATABASE_ERROR = "DATABASE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    LOCK_ACQUISITION_FAILED = "LOCK_ACQUISITION_FAILED"

    # ---------------- AUTH ----------------
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    TOKEN_INVALID = "TOKEN_INVALID"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    SESSION_REVOKED = "SESSION_REVOKED"
    ACCOUNT_INACTIVE = "ACCOUNT_INACTIVE"

    # ---------------- USERS ----------------
    USER_NOT_FOUND = "USER_NOT_FOUND"
    USER_EMAIL_EXISTS = "USER_EMAIL_EXISTS"
    USER_ROLE_INVALID = "USER_ROLE_INVALID"
    USER_VERSION_CONFLICT = "USER_VERSION_CONFLICT"
    USER_IS_APPROVER = "USER_IS_APPROVER"

    # ---------------- COMPANIES ----------------
    COMPANY_NOT_FOUND = "COMPANY_NOT_FOUND"
    COMPANY_NAME_EXISTS = "COMPANY_NAME_EXISTS"
    COMPANY_ROLE_INVALID = "COMPANY_ROLE_INVALID"
    COMPANY_VERSION_CONFLICT = "COMPANY_VERSION_CONFLICT"

    # ---------------- PRODUCTS ----------------
    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
    PRODUCT_SKU_EXISTS = "PRODUCT_SKU_EXISTS"
    PRODUCT_VERSION_CONFLICT = "PRODUCT_VERSION_CONFLICT"
    PRODUCT_IN_USE = "PRODUCT_IN_USE"

    # ---------------- CATALOG ----------------
    MATERIAL_NOT_FOUND = "MATERIAL_NOT_FOUND"
    MATERIAL_SKU_EXISTS = "MATERIAL_SKU_EXISTS"
    MATERIAL_CATEGORY_NOT_FOUND = "MATERIAL_CATEGORY_NOT_FOUND"
    SERVICE_CATEGORY_NOT_FOUND = "SERVICE_CATEGORY_NOT_FOUND"
    CATEGORY_NAME_EXISTS = "CATEGORY_NAME_EXISTS"
    CATALOG_ITEM_INACTIVE = "CATALOG_ITEM_INACTIVE"
    VENDOR_OFFERING_NOT_FOUND = "VENDOR_OFFERING_NOT_FOUND"
    VENDOR_OFFERING_EXISTS = "VENDOR_OFFERING_EXISTS"

    # ---------------- PROJECTS ----------------
    PROJECT_NOT_FOUND = "PROJECT_NOT_FOUND"
    PROJECT_INVALID_STATE = "PROJECT_INVALID_STATE"
    PROJECT_VERSION_CONFLICT = "PROJECT_VERSION_CONFLICT"

    # ---------------- QUOTATIONS ----------------
    QUOTATION_NOT_FOUND = "QUOTATION_NOT_FOUND"
    QUOTATION_INVALID_STATE = "QUOTATION_INVALID_STATE"
    QUOTATION_NOT_APPROVED = "QUOTATION_NOT_APPROVED"

    # ---------------- DELIVERIES ----------------
    DELIVERY_NOT_FOUND = "DELIVERY_NOT_FOUND"
    DELIVERY_INVALID_STATE = "DELIVERY_INVALID_STATE"
    DELIVERY_EXCEEDS_QUOTED = "DELIVERY_EXCEEDS_QUOTED"

    # ---------------- INVOICES ----------------
    INVOICE_NOT_FOUND = "INVOICE_NOT_FOUND"
    INVOICE_INVALID_STATE = "INVOICE_INVALID_STATE"
    INVOICE_VERSION_CONFLICT = "INVOICE_VERSION_CONFLICT"
    INVOICE_EXCEEDS_DELIVERED = "INVOICE_EXCEEDS_DELIVERED"
    PAYMENT_EXCEEDS_BALANCE = "PAYMENT_EXCEEDS_BALANCE"

    # ---------------- APPROVALS ----------------
    APPROVAL_CHAIN_NOT_FOUND = "APPROVAL_CHAIN_NOT_FOUND"
    APPROVAL_REQUEST_NOT_FOUND = "APPROVAL_REQUEST_NOT_FOUND"
    APPROVAL_ALREADY_EXISTS = "APPROVAL_ALREADY_EXISTS"
    APPROVAL_ALREADY_COMPLETED = "APPROVAL_ALREADY_COMPLETED"
    APPROVAL_OUT_OF_ORDER = "APPROVAL_OUT_OF_ORDER"
    APPROVAL_NOT_APPROVER = "APPROVAL_NOT_APPROVER"

    # ---------------- PURCHASING ----------------
    PURCHASE_REQUEST_NOT_FOUND = "PURCHASE_REQUEST_NOT_FOUND"
    PURCHASE_REQUEST_INVALID_STATE = "PURCHASE_REQUEST_INVALID_STATE"
    PURCHASE_REQUEST_VERSION_CONFLICT = "PURCHASE_REQUEST_VERSION_CONFLICT"
    RFQ_NOT_FOUND = "RFQ_NOT_FOUND"
    RFQ_INVALID_STATE = "RFQ_INVALID_STATE"
    PURCHASE_ORDER_NOT_FOUND = "PURCHASE_ORDER_NOT_FOUND"
    PURCHASE_ORDER_INVALID_STATE = "PURCHASE_ORDER_INVALID_STATE"
    PURCHASE_ORDER_VERSION_CONFLICT = "PURCHASE_ORDER_VERSION_CONFLICT"

    # ---------------- PAYABLES ----------------
    PAYABLE_NOT_FOUND = "PAYABLE_NOT_FOUND"
    PAYABLE_INVALID_STATE = "PAYABLE_INVALID_STATE"

    # ---------------- MAIL ----------------
    MAIL_NOT_CONFIGURED = "MAIL_NOT_CONFIGURED"
    MAIL_OAUTH_STATE_INVALID = "MAIL_OAUTH_STATE_INVALID"
    MAIL_OAUTH_STATE_EXPIRED = "MAIL_OAUTH_STATE_EXPIRED"
    MAIL_OAUTH_EXCHANGE_FAILED = "MAIL_OAUTH_EXCHANGE_FAILED"
    MAIL_SEND_FAILED = "MAIL_SEND_FAILED"
