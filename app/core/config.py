# app/core/config.py

import os
from decimal import Decimal

from dotenv import load_dotenv
from app.utils.logger import get_logger

logger = get_logger(__name__)

load_dotenv()

# =====================================================
# APPLICATION
# =====================================================
APP_ENV = os.getenv("APP_ENV")
if APP_ENV not in {"development", "staging", "production"}:
    raise ValueError("APP_ENV must be development | staging | production")

IS_PRODUCTION = APP_ENV == "production"

APP_BASE_URL = os.getenv("APP_BASE_URL", "http://localhost:8000").rstrip("/")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]
ENABLE_SCHEDULER = os.getenv("ENABLE_SCHEDULER", "false").lower() == "true"

# =====================================================
# DATABASE
# =====================================================
DB_TYPE = os.getenv("DB_TYPE")
if DB_TYPE not in {"postgres", "sqlite"}:
    raise ValueError("DB_TYPE must be postgres | sqlite")

if DB_TYPE == "postgres":
    DATABASE_URL = os.getenv("DATABASE_URL")
    if not DATABASE_URL:
        raise ValueError("DATABASE_URL is required for Postgres")

elif DB_TYPE == "sqlite":
    if IS_PRODUCTION:
        raise ValueError("SQLite is NOT allowed in production")
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./erp.db")

# ---- Pool tuning (safe defaults) ----
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", 10))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", 20))
DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", 30))
DB_ECHO_POOL = os.getenv("DB_ECHO_POOL", "false").lower() == "true"

# ---- SSL ----
# MUST be true in production
DB_SSL_VERIFY = os.getenv("DB_SSL_VERIFY", "true").lower() == "true"
DB_SSL_ENABLED = os.getenv("DB_SSL_ENABLED", "true").lower() == "true"
if IS_PRODUCTION and not DB_SSL_VERIFY:
    logger.warning("Running in production with relaxed SSL verification")

# ---- Project lock ----
PROJECT_LOCK_TIMEOUT_SECONDS = float(os.getenv("PROJECT_LOCK_TIMEOUT_SECONDS", 5))
if PROJECT_LOCK_TIMEOUT_SECONDS <= 0:
    raise ValueError("PROJECT_LOCK_TIMEOUT_SECONDS must be positive")

# =====================================================
# JWT / AUTH
# =====================================================
JWT_ACCESS_SECRET_KEY = os.getenv("JWT_ACCESS_SECRET_KEY")
if not JWT_ACCESS_SECRET_KEY:
    raise ValueError("JWT_ACCESS_SECRET_KEY must be set")

JWT_ALGORITHM = "HS256"

ACCESS_TOKEN_EXPIRE_MINUTES = int(
    os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 15)
)
ADMIN_ACCESS_TOKEN_EXPIRE_MINUTES = int(
    os.getenv("ADMIN_ACCESS_TOKEN_EXPIRE_MINUTES", 60)
)
REFRESH_TOKEN_EXPIRE_DAYS = int(
    os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", 7)
)

# =====================================================
# BILLING
# =====================================================
# Percentage, e.g. 10 means 10% VAT
DEFAULT_TAX_RATE = Decimal(os.getenv("DEFAULT_TAX_RATE", "10.00"))
DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "KRW")
DEFAULT_QUOTATION_VALIDITY_DAYS = int(os.getenv("DEFAULT_QUOTATION_VALIDITY_DAYS", 30))
DEFAULT_INVOICE_DUE_DAYS = int(os.getenv("DEFAULT_INVOICE_DUE_DAYS", 30))

# =====================================================
# MICROSOFT GRAPH MAIL
# =====================================================
MICROSOFT_GRAPH_CLIENT_ID = os.getenv("MICROSOFT_GRAPH_CLIENT_ID", "")
MICROSOFT_GRAPH_CLIENT_SECRET = os.getenv("MICROSOFT_GRAPH_CLIENT_SECRET", "")
MICROSOFT_GRAPH_AUTH_URL = os.getenv(
    "MICROSOFT_GRAPH_AUTH_URL",
    "https://login.microsoftonline.com/consumers/oauth2/v2.0/authorize",
)
MICROSOFT_GRAPH_TOKEN_URL = os.getenv(
    "MICROSOFT_GRAPH_TOKEN_URL",
    "https://login.microsoftonline.com/consumers/oauth2/v2.0/token",
)
MICROSOFT_GRAPH_API_URL = os.getenv("MICROSOFT_GRAPH_API_URL", "https://graph.microsoft.com/v1.0")
MICROSOFT_GRAPH_SCOPE = "offline_access Mail.Send User.Read"
MAIL_OAUTH_STATE_TTL_MINUTES = int(os.getenv("MAIL_OAUTH_STATE_TTL_MINUTES", 10))
MAIL_OAUTH_REDIRECT_PATH = "/api/admin/mail/oauth2/callback"
MAIL_HTTP_TIMEOUT_SECONDS = float(os.getenv("MAIL_HTTP_TIMEOUT_SECONDS", 15))
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173").rstrip("/")
MAIL_SETTINGS_PAGE_PATH = "/admin/settings/mail"

# =====================================================
# DOCUMENTS
# =====================================================
COMPANY_DISPLAY_NAME = os.getenv("COMPANY_DISPLAY_NAME", "Job-code ERP")
COMPANY_CONTACT_LINE = os.getenv("COMPANY_CONTACT_LINE", "")
