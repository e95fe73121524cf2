class Role:
    ADMIN = "admin"
    FINANCE = "finance"
    SALES = "sales"
    PRODUCTION = "production"


ALL_ROLES = [Role.ADMIN, Role.FINANCE, Role.SALES, Role.PRODUCTION]

# Roles allowed to book money: invoices, payments, payables and reports
FINANCE_ROLES = [Role.ADMIN, Role.FINANCE]
