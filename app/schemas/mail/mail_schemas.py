# app/schemas/mail/mail_schemas.py

from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class MailStatusOut(BaseModel):
    connected: bool
    microsoft_configured: bool
    sender_email: Optional[str] = None
    connected_at: Optional[datetime] = None
    connected_by_id: Optional[int] = None


class AuthorizationUrlOut(BaseModel):
    authorization_url: str
    expires_at: datetime
