from datetime import datetime, timezone

from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.constants.error_codes import ErrorCode
from app.core.exceptions import AppException
import logging

logger = logging.getLogger(__name__)


def _error_body(message, error_code, details=None) -> dict:
    return {
        "success": False,
        "message": message,
        "error_code": error_code,
        "details": jsonable_encoder(details),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# -------------------------
# APP EXCEPTIONS
# -------------------------
async def app_exception_handler(request: Request, exc: AppException):
    if exc.status_code >= 500:
        logger.error("Application error: %s", exc.detail)

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.detail, exc.error_code, exc.details),
        headers=getattr(exc, "headers", None),
    )


# -------------------------
# FASTAPI VALIDATION
# -------------------------
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
):
    field_errors = {}
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        field_errors[".".join(loc) or "request"] = err.get("msg")

    return JSONResponse(
        status_code=422,
        content=_error_body(
            "Invalid request data",
            ErrorCode.VALIDATION_ERROR,
            field_errors,
        ),
    )


# -------------------------
# HTTP EXCEPTIONS (mapped)
# -------------------------
HTTP_STATUS_TO_ERROR_CODE = {
    400: ErrorCode.VALIDATION_ERROR,
    401: ErrorCode.UNAUTHORIZED,
    403: ErrorCode.PERMISSION_DENIED,
    404: ErrorCode.NOT_FOUND,
    409: ErrorCode.CONFLICT,
    422: ErrorCode.VALIDATION_ERROR,
}


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
):
    error_code = HTTP_STATUS_TO_ERROR_CODE.get(
        exc.status_code,
        ErrorCode.INTERNAL_ERROR,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.detail, error_code),
        headers=getattr(exc, "headers", None),
    )


# -------------------------
# DB INTEGRITY ERRORS
# -------------------------
def translate_integrity_error(exc: IntegrityError) -> tuple[int, str, ErrorCode]:
    raw = str(exc.orig if exc.orig is not None else exc).lower()

    if "unique" in raw or "duplicate key" in raw:
        return 409, "A record with the same unique value already exists", ErrorCode.DUPLICATE_RESOURCE

    if "foreign key" in raw:
        return 409, "The record is linked to a missing or dependent record", ErrorCode.CONFLICT

    if "not null" in raw or "null value" in raw:
        return 400, "A required field is missing", ErrorCode.VALIDATION_ERROR

    if "check constraint" in raw:
        return 400, "A value violates a data constraint", ErrorCode.VALIDATION_ERROR

    return 409, "Database constraint violation", ErrorCode.CONFLICT


async def integrity_error_handler(
    request: Request, exc: IntegrityError
):
    logger.warning("DB integrity error on %s %s: %s", request.method, request.url.path, exc.orig)

    status_code, message, error_code = translate_integrity_error(exc)

    return JSONResponse(
        status_code=status_code,
        content=_error_body(message, error_code),
    )


async def database_error_handler(
    request: Request, exc: SQLAlchemyError
):
    logger.exception(
        "Database error",
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )

    return JSONResponse(
        status_code=500,
        content=_error_body(
            "A database error occurred. Please try again.",
            ErrorCode.DATABASE_ERROR,
        ),
    )


# -------------------------
# LAST RESORT
# -------------------------
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(
        "Unhandled exception",
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )

    return JSONResponse(
        status_code=500,
        content=_error_body(
            "Something went wrong. Please try again.",
            ErrorCode.INTERNAL_ERROR,
        ),
    )
