from datetime import datetime, timezone

from sqlalchemy import Column, Integer, Boolean, DateTime, ForeignKey, false
from sqlalchemy.orm import declared_attr
from sqlalchemy.sql import func


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)


class VersionMixin:
    """Optimistic concurrency counter; writers compare then bump it."""

    version = Column(Integer, nullable=False, default=1, server_default="1")

    def bump_version(self) -> int:
        self.version = (self.version or 1) + 1
        return self.version


class SoftDeleteMixin:
    is_deleted = Column(Boolean, default=False, server_default=false(), nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    def mark_deleted(self):
        self.is_deleted = True
        self.deleted_at = utcnow()


class AuditMixin:
    @declared_attr
    def created_by_id(cls):
        return Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    @declared_attr
    def updated_by_id(cls):
        return Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
