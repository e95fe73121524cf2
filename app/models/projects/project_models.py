from sqlalchemy import Column, Integer, String, Text, Date, Enum, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from app.core.db import Base
from app.models.base.mixins import TimestampMixin, VersionMixin, SoftDeleteMixin, AuditMixin
from app.models.enums.project_status import ProjectStatus


class JobCodeSequence(Base):
    """Per-year counter behind job code numbering. One row per 2-digit year."""

    __tablename__ = "job_code_sequences"

    id = Column(Integer, primary_key=True)
    year = Column(String(2), nullable=False, unique=True)
    last_sequence = Column(Integer, nullable=False, default=0)

    __table_args__ = (CheckConstraint("last_sequence >= 0", name="ck_job_code_sequence_non_negative"),)

    def __repr__(self):
        return f"<JobCodeSequence year={self.year} last={self.last_sequence}>"


class Project(Base, TimestampMixin, VersionMixin, SoftDeleteMixin, AuditMixin):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True)
    job_code = Column(String(20), nullable=False, unique=True, index=True)
    project_name = Column(String(255), nullable=False)
    customer_id = Column(Integer, ForeignKey("companies.id", ondelete="RESTRICT"), nullable=False, index=True)
    requester_name = Column(String(100), nullable=True)
    internal_owner_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    due_date = Column(Date, nullable=False)
    status = Column(Enum(ProjectStatus), nullable=False, default=ProjectStatus.draft, index=True)
    note = Column(Text, nullable=True)

    customer = relationship("Company", lazy="selectin")

    def __repr__(self):
        return f"<Project {self.job_code} status={self.status}>"
