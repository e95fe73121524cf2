# app/models/enums/company_role_type.py
import enum


class CompanyRoleType(str, enum.Enum):
    customer = "CUSTOMER"
    vendor = "VENDOR"
    outsource = "OUTSOURCE"
