# app/core/security.py

import hashlib
import secrets
from datetime import datetime, timedelta, timezone

from passlib.context import CryptContext
from jose import jwt, JWTError, ExpiredSignatureError

from app.core.config import (
    JWT_ACCESS_SECRET_KEY,
    JWT_ALGORITHM,
    ACCESS_TOKEN_EXPIRE_MINUTES,
    ADMIN_ACCESS_TOKEN_EXPIRE_MINUTES,
)
from app.core.exceptions import AuthenticationException
from app.constants.error_codes import ErrorCode
from app.constants.roles import Role

ACCESS_TOKEN_TYPE = "access"

# =====================================================
# PASSWORD HASHING
# =====================================================
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


# =====================================================
# REFRESH TOKENS
# =====================================================
def new_refresh_token() -> tuple[str, str]:
    """Return (value handed to the client, digest stored in the database)."""
    value = secrets.token_urlsafe(48)
    return value, hash_refresh_token(value)


def hash_refresh_token(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


# =====================================================
# ACCESS TOKEN
# =====================================================
def access_token_lifetime(role: str) -> timedelta:
    minutes = ADMIN_ACCESS_TOKEN_EXPIRE_MINUTES if role == Role.ADMIN else ACCESS_TOKEN_EXPIRE_MINUTES
    return timedelta(minutes=minutes)


def create_access_token(
    subject: str,
    token_version: int,
    role: str,
    expires_delta: timedelta | None = None,
) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "role": role,
        "token_version": token_version,
        "type": ACCESS_TOKEN_TYPE,
        "iat": now,
        "exp": now + (expires_delta or access_token_lifetime(role)),
    }
    return jwt.encode(payload, JWT_ACCESS_SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    try:
        payload = jwt.decode(token, JWT_ACCESS_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise AuthenticationException("Access token has expired", ErrorCode.TOKEN_EXPIRED)
    except JWTError:
        raise AuthenticationException("Invalid access token", ErrorCode.TOKEN_INVALID)

    if payload.get("type") != ACCESS_TOKEN_TYPE or not payload.get("sub"):
        raise AuthenticationException("Invalid token type", ErrorCode.TOKEN_INVALID)

    return payload
