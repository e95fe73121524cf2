from fastapi import HTTPException
from app.constants.error_codes import ErrorCode


class AppException(HTTPException):
    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: ErrorCode,
        details: dict | None = None,
    ):
        super().__init__(status_code=status_code, detail=message)
        self.error_code = error_code
        self.details = details


class LockAcquisitionException(AppException):
    """Raised when a project-scoped lock cannot be taken within the timeout."""

    def __init__(self, lock_key: str, timeout_seconds: float):
        super().__init__(
            409,
            "Another operation is in progress for this project. Please try again.",
            ErrorCode.LOCK_ACQUISITION_FAILED,
            {"lock_key": lock_key, "timeout_seconds": timeout_seconds},
        )
        self.lock_key = lock_key


class AuthenticationException(AppException):
    """401 carrying the bearer challenge header."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.UNAUTHORIZED):
        super().__init__(401, message, error_code)
        self.headers = {"WWW-Authenticate": "Bearer"}
