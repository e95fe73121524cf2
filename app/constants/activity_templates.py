from app.constants.activity_codes import ActivityCode


ACTIVITY_TEMPLATES = {
    # ---------------- AUTH ----------------
    ActivityCode.LOGIN:
        "{actor_role} ({actor_email}) logged in",

    ActivityCode.LOGOUT:
        "{actor_role} ({actor_email}) logged out",

    ActivityCode.LOGIN_FAILED:
        "Failed login attempt for {target_email}",

    ActivityCode.ACCESS_DENIED:
        "{actor_role} ({actor_email}) was denied access to {path}",

    # ---------------- USERS ----------------
    ActivityCode.CREATE_USER:
        "{actor_role} ({actor_email}) created user {target_email} with role {target_role}",

    ActivityCode.UPDATE_USER_ROLE:
        "{actor_role} ({actor_email}) changed role of {target_email} from {old_role} to {new_role}",

    ActivityCode.UPDATE_USER_EMAIL:
        "{actor_role} ({actor_email}) changed email of {target_email} to {new_email}",

    ActivityCode.UPDATE_USER_PASSWORD:
        "{actor_role} ({actor_email}) reset password for user {target_email}",

    ActivityCode.DEACTIVATE_USER:
        "{actor_role} ({actor_email}) deactivated user {target_email}",

    ActivityCode.REACTIVATE_USER:
        "{actor_role} ({actor_email}) reactivated user {target_email}",

    # ---------------- COMPANIES ----------------
    ActivityCode.CREATE_COMPANY:
        "{actor_role} ({actor_email}) created company {target_name} as {roles}",

    ActivityCode.UPDATE_COMPANY:
        "{actor_role} ({actor_email}) updated company {target_name}: {summary}",

    ActivityCode.ADD_COMPANY_ROLE:
        "{actor_role} ({actor_email}) added role {role_type} to company {target_name}",

    ActivityCode.REMOVE_COMPANY_ROLE:
        "{actor_role} ({actor_email}) removed role {role_type} from company {target_name}",

    ActivityCode.DEACTIVATE_COMPANY:
        "{actor_role} ({actor_email}) deactivated company {target_name}",

    # ---------------- PRODUCTS ----------------
    ActivityCode.CREATE_PRODUCT:
        "{actor_role} ({actor_email}) created product {target_name} ({sku})",

    ActivityCode.UPDATE_PRODUCT:
        "{actor_role} ({actor_email}) updated product {target_name}: {summary}",

    ActivityCode.DEACTIVATE_PRODUCT:
        "{actor_role} ({actor_email}) deactivated product {target_name} ({sku})",

    # ---------------- CATALOG ----------------
    ActivityCode.CREATE_MATERIAL_CATEGORY:
        "{actor_role} ({actor_email}) created material category {target_name}",

    ActivityCode.UPDATE_MATERIAL_CATEGORY:
        "{actor_role} ({actor_email}) updated material category {target_name}: {summary}",

    ActivityCode.CREATE_MATERIAL:
        "{actor_role} ({actor_email}) created material {target_name} ({sku})",

    ActivityCode.UPDATE_MATERIAL:
        "{actor_role} ({actor_email}) updated material {target_name}: {summary}",

    ActivityCode.DEACTIVATE_MATERIAL:
        "{actor_role} ({actor_email}) deactivated material {target_name} ({sku})",

    ActivityCode.CREATE_SERVICE_CATEGORY:
        "{actor_role} ({actor_email}) created service category {target_name}",

    ActivityCode.UPDATE_SERVICE_CATEGORY:
        "{actor_role} ({actor_email}) updated service category {target_name}: {summary}",

    ActivityCode.DEACTIVATE_SERVICE_CATEGORY:
        "{actor_role} ({actor_email}) deactivated service category {target_name}",

    ActivityCode.CREATE_VENDOR_OFFERING:
        "{actor_role} ({actor_email}) added {vendor_name} offering for {target_name}",

    ActivityCode.UPDATE_VENDOR_OFFERING:
        "{actor_role} ({actor_email}) updated {vendor_name} offering for {target_name}: {summary}",

    ActivityCode.DELETE_VENDOR_OFFERING:
        "{actor_role} ({actor_email}) removed {vendor_name} offering for {target_name}",

    # ---------------- PROJECTS ----------------
    ActivityCode.CREATE_PROJECT:
        "{actor_role} ({actor_email}) created project {target_name}",

    ActivityCode.UPDATE_PROJECT:
        "{actor_role} ({actor_email}) updated project {target_name}: {summary}",

    ActivityCode.CHANGE_PROJECT_STATUS:
        "{actor_role} ({actor_email}) moved project {target_name} from {old_status} to {new_status}",

    ActivityCode.DELETE_PROJECT:
        "{actor_role} ({actor_email}) deleted project {target_name}",

    # ---------------- QUOTATIONS ----------------
    ActivityCode.CREATE_QUOTATION:
        "{actor_role} ({actor_email}) created quotation {target_name}",

    ActivityCode.UPDATE_QUOTATION:
        "{actor_role} ({actor_email}) updated quotation {target_name}: {summary}",

    ActivityCode.SUBMIT_QUOTATION:
        "{actor_role} ({actor_email}) submitted quotation {target_name} for approval",

    ActivityCode.APPROVE_QUOTATION:
        "Quotation {target_name} approved after final approval by {actor_email}",

    ActivityCode.REJECT_QUOTATION:
        "Quotation {target_name} rejected by {actor_email}: {reason}",

    ActivityCode.SEND_QUOTATION:
        "{actor_role} ({actor_email}) sent quotation {target_name} to customer",

    ActivityCode.ACCEPT_QUOTATION:
        "{actor_role} ({actor_email}) recorded customer acceptance of quotation {target_name}",

    ActivityCode.DOWNLOAD_QUOTATION:
        "{actor_role} ({actor_email}) downloaded quotation {target_name}",

    # ---------------- DELIVERIES ----------------
    ActivityCode.CREATE_DELIVERY:
        "{actor_role} ({actor_email}) recorded delivery #{target_id} for project {job_code}",

    ActivityCode.MARK_DELIVERED:
        "{actor_role} ({actor_email}) marked delivery #{target_id} as delivered",

    ActivityCode.RETURN_DELIVERY:
        "{actor_role} ({actor_email}) marked delivery #{target_id} as returned",

    ActivityCode.DOWNLOAD_DELIVERY_NOTE:
        "{actor_role} ({actor_email}) downloaded the delivery note for delivery #{target_id}",

    # ---------------- INVOICES ----------------
    ActivityCode.CREATE_INVOICE:
        "{actor_role} ({actor_email}) created invoice {target_name} for project {job_code}",

    ActivityCode.UPDATE_INVOICE:
        "{actor_role} ({actor_email}) updated invoice {target_name}: {summary}",

    ActivityCode.ISSUE_INVOICE:
        "{actor_role} ({actor_email}) issued invoice {target_name}",

    ActivityCode.CANCEL_INVOICE:
        "{actor_role} ({actor_email}) cancelled invoice {target_name}",

    ActivityCode.ADD_PAYMENT:
        "{actor_role} ({actor_email}) recorded payment of {amount} on invoice {target_name}",

    ActivityCode.MARK_OVERDUE:
        "Invoice {target_name} marked overdue (due {due_date})",

    ActivityCode.DOWNLOAD_INVOICE:
        "{actor_role} ({actor_email}) downloaded invoice {target_name}",

    # ---------------- APPROVALS ----------------
    ActivityCode.UPDATE_APPROVAL_CHAIN:
        "{actor_role} ({actor_email}) configured {levels} approval level(s) for {target_type}",

    ActivityCode.SUBMIT_APPROVAL:
        "{actor_role} ({actor_email}) opened approval request #{target_id} for {target_type} {entity_ref}",

    ActivityCode.APPROVE_LEVEL:
        "{actor_role} ({actor_email}) approved level {level} of approval request #{target_id}",

    ActivityCode.REJECT_APPROVAL:
        "{actor_role} ({actor_email}) rejected approval request #{target_id} at level {level}",

    # ---------------- PURCHASING ----------------
    ActivityCode.CREATE_PURCHASE_REQUEST:
        "{actor_role} ({actor_email}) created purchase request {target_name}",

    ActivityCode.UPDATE_PURCHASE_REQUEST:
        "{actor_role} ({actor_email}) updated purchase request {target_name}: {summary}",

    ActivityCode.CANCEL_PURCHASE_REQUEST:
        "{actor_role} ({actor_email}) cancelled purchase request {target_name}",

    ActivityCode.SEND_RFQ:
        "{actor_role} ({actor_email}) sent RFQ for {target_name} to {vendor_name}",

    ActivityCode.RECORD_RFQ_REPLY:
        "{actor_role} ({actor_email}) recorded {vendor_name} reply for {target_name}",

    ActivityCode.SELECT_VENDOR:
        "{actor_role} ({actor_email}) selected {vendor_name} for {target_name}",

    ActivityCode.CREATE_PURCHASE_ORDER:
        "{actor_role} ({actor_email}) created purchase order {target_name}",

    ActivityCode.CHANGE_PURCHASE_ORDER_STATUS:
        "{actor_role} ({actor_email}) moved purchase order {target_name} from {old_status} to {new_status}",

    ActivityCode.EMAIL_RFQ:
        "{actor_role} ({actor_email}) e-mailed the RFQ for {target_name} to {vendor_name} <{recipient}>",

    ActivityCode.EMAIL_PURCHASE_ORDER:
        "{actor_role} ({actor_email}) e-mailed purchase order {target_name} to {vendor_name} <{recipient}>",

    ActivityCode.DOWNLOAD_PURCHASE_ORDER:
        "{actor_role} ({actor_email}) downloaded purchase order {target_name}",

    # ---------------- PAYABLES ----------------
    ActivityCode.CREATE_PAYABLE:
        "Payable for {target_name} created: {amount} {currency} due {due_date}",

    ActivityCode.ADD_VENDOR_PAYMENT:
        "{actor_role} ({actor_email}) paid {amount} against payable {target_name}",

    ActivityCode.CANCEL_PAYABLE:
        "{actor_role} ({actor_email}) cancelled payable {target_name}",

    # ---------------- MAIL ----------------
    ActivityCode.CONNECT_MAIL:
        "{actor_role} ({actor_email}) connected mailbox {sender_email}",

    ActivityCode.DISCONNECT_MAIL:
        "{actor_role} ({actor_email}) disconnected the mail integration",
}
