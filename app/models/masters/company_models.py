from sqlalchemy import Column, Integer, String, Text, Boolean, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from app.core.db import Base
from app.models.base.mixins import TimestampMixin, VersionMixin, AuditMixin
from app.models.enums.company_role_type import CompanyRoleType


class Company(Base, TimestampMixin, VersionMixin, AuditMixin):
    __tablename__ = "companies"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False, unique=True, index=True)
    registration_number = Column(String(50), nullable=True, index=True)
    representative = Column(String(100), nullable=True)
    business_type = Column(String(100), nullable=True)
    business_category = Column(String(100), nullable=True)
    contact_person = Column(String(100), nullable=True)
    phone = Column(String(30), nullable=True)
    email = Column(String(255), nullable=True, index=True)
    address = Column(Text, nullable=True)
    bank_account = Column(String(100), nullable=True)
    payment_terms = Column(String(20), nullable=False, default="NET30")
    is_active = Column(Boolean, nullable=False, default=True)

    roles = relationship("CompanyRole", back_populates="company", cascade="all, delete-orphan", lazy="selectin")

    def has_role(self, role_type: CompanyRoleType) -> bool:
        return any(r.role_type == role_type for r in self.roles)

    def __repr__(self):
        return f"<Company id={self.id} name={self.name}>"


class CompanyRole(Base, TimestampMixin):
    __tablename__ = "company_roles"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    role_type = Column(Enum(CompanyRoleType), nullable=False)
    credit_limit = Column(String(50), nullable=True)
    default_payment_days = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)

    company = relationship("Company", back_populates="roles", lazy="raise_on_sql")

    __table_args__ = (UniqueConstraint("company_id", "role_type", name="uq_company_role"),)

    def __repr__(self):
        return f"<CompanyRole company_id={self.company_id} role={self.role_type}>"
