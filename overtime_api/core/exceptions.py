from typing import Any, Dict, Optional


class AppException(Exception):
    def __init__(
        self,
        message: str,
        status_code: int = 400,
        error_code: str = "BUSINESS_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)


class AuthenticationError(AppException):
    def __init__(self, message: str = "Invalid or expired session"):
        super().__init__(
            message=message,
            status_code=401,
            error_code="AUTH_FAILED"
        )


class AccessDeniedError(AppException):
    """Custom permission error. Named AccessDeniedError to avoid shadowing Python's built-in PermissionError."""
    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(
            message=message,
            status_code=403,
            error_code="PERMISSION_DENIED"
        )


class NotFoundError(AppException):
    def __init__(self, message: str = "Resource not found"):
        super().__init__(
            message=message,
            status_code=404,
            error_code="NOT_FOUND"
        )


class RequestAlreadyResolvedError(AppException):
    def __init__(self, request_id: int):
        super().__init__(
            message=f"Request {request_id} has already been processed",
            status_code=400,
            error_code="REQUEST_ALREADY_RESOLVED",
            details={"request_id": request_id}
        )


class UpstreamServiceError(AppException):
    """Failure talking to the workflow relay, ERPNext or another integration."""
    def __init__(self, message: str, status_code: int = 502, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status_code,
            error_code="UPSTREAM_SERVICE_ERROR",
            details=details
        )


class StorageError(AppException):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=500,
            error_code="STORAGE_ERROR",
            details=details
        )


class LoginRejectedError(AppException):
    """Google sign-in succeeded but the account may not use this tool."""
    def __init__(self, reason: str, message: str):
        super().__init__(
            message=message,
            status_code=403,
            error_code=reason.upper()
        )
        self.reason = reason
