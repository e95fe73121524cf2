#users and auth
from app.models.users.user_models import User, RefreshToken
from app.models.audit.audit_models import AuditLog

# Masters
from app.models.masters.company_models import Company, CompanyRole
from app.models.masters.product_models import Product

# Catalog
from app.models.catalog.catalog_models import MaterialCategory, Material, ServiceCategory, VendorOffering

# Projects
from app.models.projects.project_models import Project, JobCodeSequence
from app.models.support.sequence_models import DocumentSequence

# Billing
from app.models.billing.quotation_models import Quotation, QuotationItem
from app.models.billing.invoice_models import TaxInvoice, InvoiceLineItem
from app.models.billing.payment_models import Payment

# Delivery
from app.models.delivery.delivery_models import Delivery, DeliveryLineItem

# Approval
from app.models.approval.approval_models import (
    ApprovalChainTemplate,
    ApprovalChainLevel,
    ApprovalRequest,
    ApprovalLevelDecision,
    ApprovalHistory,
    ApprovalComment,
)

# Purchasing / finance
from app.models.purchasing.purchase_models import PurchaseRequest, RfqItem, PurchaseOrder
from app.models.finance.payable_models import AccountsPayable, VendorPayment

# Mail
from app.models.mail.mail_models import MailOAuth2Config, MailOAuth2State
