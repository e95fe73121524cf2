from pydantic import BaseModel, EmailStr, Field
from typing import Optional, Literal
from datetime import datetime


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)


class RefreshRequest(BaseModel):
    refresh_token: str = Field(min_length=16)


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: Literal["bearer"] = "bearer"
    expires_in: int


class AuthUser(BaseModel):
    id: int
    username: str
    full_name: Optional[str] = None
    role: str


class LoginResponse(BaseModel):
    auth: TokenPair
    user: AuthUser


class RefreshResponse(TokenPair):
    role: str


class SessionOut(BaseModel):
    id: int
    user_agent: Optional[str]
    created_at: datetime
    expires_at: datetime

    class Config:
        from_attributes = True
