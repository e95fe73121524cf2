from enum import Enum


class ActivityCode(str, Enum):
    # AUTH
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    LOGIN_FAILED = "LOGIN_FAILED"
    ACCESS_DENIED = "ACCESS_DENIED"

    # USERS
    CREATE_USER = "CREATE_USER"
    UPDATE_USER_ROLE = "UPDATE_USER_ROLE"
    UPDATE_USER_EMAIL = "UPDATE_USER_EMAIL"
    UPDATE_USER_PASSWORD = "UPDATE_USER_PASSWORD"
    DEACTIVATE_USER = "DEACTIVATE_USER"
    REACTIVATE_USER = "REACTIVATE_USER"

    # COMPANIES
    CREATE_COMPANY = "CREATE_COMPANY"
    UPDATE_COMPANY = "UPDATE_COMPANY"
    ADD_COMPANY_ROLE = "ADD_COMPANY_ROLE"
    REMOVE_COMPANY_ROLE = "REMOVE_COMPANY_ROLE"
    DEACTIVATE_COMPANY = "DEACTIVATE_COMPANY"

    # PRODUCTS
    CREATE_PRODUCT = "CREATE_PRODUCT"
    UPDATE_PRODUCT = "UPDATE_PRODUCT"
    DEACTIVATE_PRODUCT = "DEACTIVATE_PRODUCT"

    # CATALOG
    CREATE_MATERIAL_CATEGORY = "CREATE_MATERIAL_CATEGORY"
    UPDATE_MATERIAL_CATEGORY = "UPDATE_MATERIAL_CATEGORY"
    CREATE_MATERIAL = "CREATE_MATERIAL"
    UPDATE_MATERIAL = "UPDATE_MATERIAL"
    DEACTIVATE_MATERIAL = "DEACTIVATE_MATERIAL"
    CREATE_SERVICE_CATEGORY = "CREATE_SERVICE_CATEGORY"
    UPDATE_SERVICE_CATEGORY = "UPDATE_SERVICE_CATEGORY"
    DEACTIVATE_SERVICE_CATEGORY = "DEACTIVATE_SERVICE_CATEGORY"
    CREATE_VENDOR_OFFERING = "CREATE_VENDOR_OFFERING"
    UPDATE_VENDOR_OFFERING = "UPDATE_VENDOR_OFFERING"
    DELETE_VENDOR_OFFERING = "DELETE_VENDOR_OFFERING"

    # PROJECTS
    CREATE_PROJECT = "CREATE_PROJECT"
    UPDATE_PROJECT = "UPDATE_PROJECT"
    CHANGE_PROJECT_STATUS = "CHANGE_PROJECT_STATUS"
    DELETE_PROJECT = "DELETE_PROJECT"

    # QUOTATIONS
    CREATE_QUOTATION = "CREATE_QUOTATION"
    UPDATE_QUOTATION = "UPDATE_QUOTATION"
    SUBMIT_QUOTATION = "SUBMIT_QUOTATION"
    APPROVE_QUOTATION = "APPROVE_QUOTATION"
    REJECT_QUOTATION = "REJECT_QUOTATION"
    SEND_QUOTATION = "SEND_QUOTATION"
    ACCEPT_QUOTATION = "ACCEPT_QUOTATION"
    DOWNLOAD_QUOTATION = "DOWNLOAD_QUOTATION"

    # DELIVERIES
    CREATE_DELIVERY = "CREATE_DELIVERY"
    MARK_DELIVERED = "MARK_DELIVERED"
    RETURN_DELIVERY = "RETURN_DELIVERY"
    DOWNLOAD_DELIVERY_NOTE = "DOWNLOAD_DELIVERY_NOTE"

    # INVOICES
    CREATE_INVOICE = "CREATE_INVOICE"
    UPDATE_INVOICE = "UPDATE_INVOICE"
    ISSUE_INVOICE = "ISSUE_INVOICE"
    CANCEL_INVOICE = "CANCEL_INVOICE"
    ADD_PAYMENT = "ADD_PAYMENT"
    MARK_OVERDUE = "MARK_OVERDUE"
    DOWNLOAD_INVOICE = "DOWNLOAD_INVOICE"

    # APPROVALS
    UPDATE_APPROVAL_CHAIN = "UPDATE_APPROVAL_CHAIN"
    SUBMIT_APPROVAL = "SUBMIT_APPROVAL"
    APPROVE_LEVEL = "APPROVE_LEVEL"
    REJECT_APPROVAL = "REJECT_APPROVAL"

    # PURCHASING
    CREATE_PURCHASE_REQUEST = "CREATE_PURCHASE_REQUEST"
    UPDATE_PURCHASE_REQUEST = "UPDATE_PURCHASE_REQUEST"
    CANCEL_PURCHASE_REQUEST = "CANCEL_PURCHASE_REQUEST"
    SEND_RFQ = "SEND_RFQ"
    RECORD_RFQ_REPLY = "RECORD_RFQ_REPLY"
    SELECT_VENDOR = "SELECT_VENDOR"
    CREATE_PURCHASE_ORDER = "CREATE_PURCHASE_ORDER"
    CHANGE_PURCHASE_ORDER_STATUS = "CHANGE_PURCHASE_ORDER_STATUS"
    EMAIL_RFQ = "EMAIL_RFQ"
    EMAIL_PURCHASE_ORDER = "EMAIL_PURCHASE_ORDER"
    DOWNLOAD_PURCHASE_ORDER = "DOWNLOAD_PURCHASE_ORDER"

    # PAYABLES
    CREATE_PAYABLE = "CREATE_PAYABLE"
    ADD_VENDOR_PAYMENT = "ADD_VENDOR_PAYMENT"
    CANCEL_PAYABLE = "CANCEL_PAYABLE"

    # MAIL
    CONNECT_MAIL = "CONNECT_MAIL"
    DISCONNECT_MAIL = "DISCONNECT_MAIL"
