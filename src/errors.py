# src/errors.py
"""
DesignDesk error taxonomy.

Every domain failure is a MarketplaceError carrying an error code, the HTTP
status it maps to, and a context dict. The API layer renders them through a
single exception handler into the standard error envelope:

    {"error": {"error_code": "...", "message": "...", "context": {...}}}
"""

from typing import Optional, Dict, Any


class MarketplaceError(Exception):
    """Base error with a standardized envelope"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        error_code: str = "INTERNAL_ERROR",
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        self.message = message
        self.error_code = error_code
        if status_code is not None:
            self.status_code = status_code
        self.context = context or {}
        self.original_error = original_error
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to standardized error dict for API responses"""
        return {
            "error": {
                "error_code": self.error_code,
                "message": self.message,
                "context": self.context
            }
        }


class ValidationError(MarketplaceError):
    """Malformed request rejected before any transaction opens"""

    status_code = 422

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            context={"field": field, "value": value} if field else {}
        )


class UnauthorizedError(MarketplaceError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message=message, error_code="UNAUTHORIZED")


class ForbiddenError(MarketplaceError):
    status_code = 403

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message=message, error_code="FORBIDDEN")


class NotFoundError(MarketplaceError):
    status_code = 404

    def __init__(self, resource: str, identifier: Optional[str] = None):
        message = f"{resource} not found" if identifier is None else f"{resource} {identifier} not found"
        super().__init__(
            message=message,
            error_code="NOT_FOUND",
            context={"resource": resource, "id": identifier}
        )


class UserNotFoundError(NotFoundError):
    """The client's user row vanished mid-request"""

    def __init__(self, user_id: str):
        super().__init__("User", user_id)
        self.error_code = "USER_NOT_FOUND"


class InsufficientCreditsError(MarketplaceError):
    """Client balance does not cover the task cost"""

    status_code = 400

    def __init__(self, required: int, available: int):
        super().__init__(
            message="Insufficient credits. Please purchase more credits to create this task",
            error_code="INSUFFICIENT_CREDITS",
            context={"required": required, "available": available}
        )
        self.required = required
        self.available = available


class ConfigValidationError(MarketplaceError):
    """Algorithm configuration draft rejected"""

    status_code = 400

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, error_code="INVALID_ALGORITHM_CONFIG", context=context)


class ReassignmentError(MarketplaceError):
    """Admin reassignment rejected"""

    status_code = 400

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, error_code="REASSIGNMENT_REJECTED", context=context)


class NotificationDeliveryError(MarketplaceError):
    """A notification channel failed to deliver. Never surfaces over HTTP."""

    def __init__(
        self,
        message: str,
        channel: str,
        error_code: str = "DELIVERY_FAILED",
        original_error: Optional[Exception] = None
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            context={"channel": channel},
            original_error=original_error
        )
        self.channel = channel
