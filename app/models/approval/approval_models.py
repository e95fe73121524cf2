from sqlalchemy import Column, Integer, String, Text, Boolean, Enum, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from app.core.db import Base
from app.models.base.mixins import TimestampMixin
from app.models.enums.approval_status import (
    ApprovalEntityType,
    ApprovalStatus,
    ApprovalHistoryAction,
    ApprovalCommentType,
)


# =====================================================
# CHAIN CONFIGURATION
# =====================================================
class ApprovalChainTemplate(Base, TimestampMixin):
    __tablename__ = "approval_chain_templates"

    id = Column(Integer, primary_key=True)
    entity_type = Column(Enum(ApprovalEntityType), nullable=False, unique=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    levels = relationship(
        "ApprovalChainLevel",
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="ApprovalChainLevel.level_order",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<ApprovalChainTemplate {self.entity_type} levels={len(self.levels)}>"


class ApprovalChainLevel(Base):
    __tablename__ = "approval_chain_levels"

    id = Column(Integer, primary_key=True)
    template_id = Column(Integer, ForeignKey("approval_chain_templates.id", ondelete="CASCADE"), nullable=False, index=True)
    level_order = Column(Integer, nullable=False)
    level_name = Column(String(100), nullable=False)
    approver_user_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    is_required = Column(Boolean, nullable=False, default=True)

    template = relationship("ApprovalChainTemplate", back_populates="levels", lazy="raise_on_sql")

    __table_args__ = (UniqueConstraint("template_id", "level_order", name="uq_chain_level_order"),)


# =====================================================
# REQUESTS
# =====================================================
class ApprovalRequest(Base, TimestampMixin):
    __tablename__ = "approval_requests"

    id = Column(Integer, primary_key=True)
    entity_type = Column(Enum(ApprovalEntityType), nullable=False)
    entity_id = Column(Integer, nullable=False)
    entity_description = Column(String(255), nullable=True)
    current_level = Column(Integer, nullable=False, default=1)
    total_levels = Column(Integer, nullable=False)
    status = Column(Enum(ApprovalStatus), nullable=False, default=ApprovalStatus.pending, index=True)
    submitted_by_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    submitted_at = Column(DateTime(timezone=True), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    decisions = relationship(
        "ApprovalLevelDecision",
        back_populates="request",
        cascade="all, delete-orphan",
        order_by="ApprovalLevelDecision.level_order",
        lazy="selectin",
    )
    history = relationship(
        "ApprovalHistory",
        back_populates="request",
        cascade="all, delete-orphan",
        order_by="ApprovalHistory.id",
        lazy="selectin",
    )
    comments = relationship(
        "ApprovalComment",
        back_populates="request",
        cascade="all, delete-orphan",
        order_by="ApprovalComment.id",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("entity_type", "entity_id", name="uq_approval_request_entity"),
        Index("ix_approval_request_status_level", "status", "current_level"),
    )

    def decision_for_level(self, level_order: int):
        return next((d for d in self.decisions if d.level_order == level_order), None)

    def __repr__(self):
        return f"<ApprovalRequest id={self.id} {self.entity_type}:{self.entity_id} status={self.status}>"


class ApprovalLevelDecision(Base):
    __tablename__ = "approval_level_decisions"

    id = Column(Integer, primary_key=True)
    request_id = Column(Integer, ForeignKey("approval_requests.id", ondelete="CASCADE"), nullable=False, index=True)
    level_order = Column(Integer, nullable=False)
    level_name = Column(String(100), nullable=False)
    expected_approver_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    decision = Column(Enum(ApprovalStatus), nullable=False, default=ApprovalStatus.pending)
    decided_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    decided_at = Column(DateTime(timezone=True), nullable=True)
    comments = Column(Text, nullable=True)

    request = relationship("ApprovalRequest", back_populates="decisions", lazy="raise_on_sql")

    __table_args__ = (UniqueConstraint("request_id", "level_order", name="uq_decision_level"),)


class ApprovalHistory(Base, TimestampMixin):
    __tablename__ = "approval_history"

    id = Column(Integer, primary_key=True)
    request_id = Column(Integer, ForeignKey("approval_requests.id", ondelete="CASCADE"), nullable=False, index=True)
    level_order = Column(Integer, nullable=True)
    action = Column(Enum(ApprovalHistoryAction), nullable=False)
    actor_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    comments = Column(Text, nullable=True)

    request = relationship("ApprovalRequest", back_populates="history", lazy="raise_on_sql")


class ApprovalComment(Base, TimestampMixin):
    __tablename__ = "approval_comments"

    id = Column(Integer, primary_key=True)
    request_id = Column(Integer, ForeignKey("approval_requests.id", ondelete="CASCADE"), nullable=False, index=True)
    author_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    comment_type = Column(Enum(ApprovalCommentType), nullable=False, default=ApprovalCommentType.comment)
    body = Column(Text, nullable=False)

    request = relationship("ApprovalRequest", back_populates="comments", lazy="raise_on_sql")
