# app/routers/__init__.py

from .users.user_router import router as user_router

from .auth.auth_router import router as auth_router
from .audit.audit_router import router as audit_router

from .masters.company_router import router as company_router
from .masters.product_router import router as product_router

from .catalog.material_router import router as material_router
from .catalog.service_category_router import router as service_category_router
from .catalog.vendor_offering_router import router as vendor_offering_router

from .projects.project_router import router as project_router

from .billing.quotation_router import router as quotation_router
from .billing.invoice_router import router as invoice_router
from .delivery.delivery_router import router as delivery_router

from .approval.approval_router import router as approval_router
from .approval.approval_router import chain_router as approval_chain_router

from .purchasing.purchase_request_router import router as purchase_request_router
from .purchasing.purchase_order_router import router as purchase_order_router
from .finance.payable_router import router as payable_router
from .reports.report_router import router as report_router

from .mail.mail_router import router as mail_router


__all__ = [
"user_router",

"auth_router",
"audit_router",

"company_router",
"product_router",

"material_router",
"service_category_router",
"vendor_offering_router",

"project_router",

"quotation_router",
"invoice_router",
"delivery_router",

"approval_router",
"approval_chain_router",

"purchase_request_router",
"purchase_order_router",
"payable_router",
"report_router",

"mail_router",
]
