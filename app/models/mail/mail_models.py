from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from app.core.db import Base
from app.models.base.mixins import TimestampMixin


class MailOAuth2Config(Base, TimestampMixin):
    """Singleton row holding the connected Microsoft mailbox."""

    __tablename__ = "mail_oauth2_config"

    id = Column(Integer, primary_key=True)
    sender_email = Column(String(255), nullable=True)
    refresh_token = Column(Text, nullable=False)
    connected_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    connected_at = Column(DateTime(timezone=True), nullable=False)
    access_token = Column(Text, nullable=True)
    access_token_expires_at = Column(DateTime(timezone=True), nullable=True)
    last_refreshed_at = Column(DateTime(timezone=True), nullable=True)


class MailOAuth2State(Base, TimestampMixin):
    __tablename__ = "mail_oauth2_states"

    id = Column(Integer, primary_key=True)
    state = Column(String(128), nullable=False, unique=True, index=True)
    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
