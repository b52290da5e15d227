from dataclasses import dataclass

from fastapi import status


class ErrorCategory:
    VALIDATION = "VALIDATION"
    CONFLICT = "CONFLICT"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    INTERNAL = "INTERNAL"


@dataclass(frozen=True)
class ErrorDefinition:
    code: str
    message: str
    status_code: int
    category: str


class ErrorCatalog:
    INVALID_TOKEN = ErrorDefinition(
        "INVALID_TOKEN",
        "Invalid token",
        status.HTTP_401_UNAUTHORIZED,
        ErrorCategory.UNAUTHORIZED,
    )
    USER_INACTIVE = ErrorDefinition(
        "USER_INACTIVE",
        "User is inactive",
        status.HTTP_403_FORBIDDEN,
        ErrorCategory.FORBIDDEN,
    )
    PERMISSION_DENIED = ErrorDefinition(
        "PERMISSION_DENIED",
        "Permission denied",
        status.HTTP_403_FORBIDDEN,
        ErrorCategory.FORBIDDEN,
    )
    NOT_SHIFT_OWNER = ErrorDefinition(
        "NOT_SHIFT_OWNER",
        "Only the operator who opened the shift can do this",
        status.HTTP_403_FORBIDDEN,
        ErrorCategory.FORBIDDEN,
    )
    MODULE_DISABLED = ErrorDefinition(
        "MODULE_DISABLED",
        "Feature disabled for current subscription",
        status.HTTP_403_FORBIDDEN,
        ErrorCategory.FORBIDDEN,
    )
    TENANT_SCOPE_REQUIRED = ErrorDefinition(
        "TENANT_SCOPE_REQUIRED",
        "Tenant scope is required",
        status.HTTP_403_FORBIDDEN,
        ErrorCategory.FORBIDDEN,
    )
    CROSS_TENANT_ACCESS_DENIED = ErrorDefinition(
        "CROSS_TENANT_ACCESS_DENIED",
        "Cross-tenant access denied",
        status.HTTP_403_FORBIDDEN,
        ErrorCategory.FORBIDDEN,
    )
    VALIDATION_ERROR = ErrorDefinition(
        "VALIDATION_ERROR",
        "Validation error",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        ErrorCategory.VALIDATION,
    )
    SHIFT_ALREADY_OPEN = ErrorDefinition(
        "SHIFT_ALREADY_OPEN",
        "You already have an open shift; close it first",
        status.HTTP_409_CONFLICT,
        ErrorCategory.CONFLICT,
    )
    SHIFT_NOT_OPEN = ErrorDefinition(
        "SHIFT_NOT_OPEN",
        "Shift is not open",
        status.HTTP_409_CONFLICT,
        ErrorCategory.CONFLICT,
    )
    SHIFT_NOT_FOUND = ErrorDefinition(
        "SHIFT_NOT_FOUND",
        "Shift not found",
        status.HTTP_404_NOT_FOUND,
        ErrorCategory.NOT_FOUND,
    )
    PRODUCT_NOT_FOUND = ErrorDefinition(
        "PRODUCT_NOT_FOUND",
        "Product not found",
        status.HTTP_404_NOT_FOUND,
        ErrorCategory.NOT_FOUND,
    )
    USER_NOT_FOUND = ErrorDefinition(
        "USER_NOT_FOUND",
        "User not found",
        status.HTTP_404_NOT_FOUND,
        ErrorCategory.NOT_FOUND,
    )
    TENANT_NOT_FOUND = ErrorDefinition(
        "TENANT_NOT_FOUND",
        "Gym not found",
        status.HTTP_404_NOT_FOUND,
        ErrorCategory.NOT_FOUND,
    )
    INSUFFICIENT_STOCK = ErrorDefinition(
        "INSUFFICIENT_STOCK",
        "Not enough stock for the requested quantity",
        status.HTTP_409_CONFLICT,
        ErrorCategory.INSUFFICIENT_STOCK,
    )
    DB_UNAVAILABLE = ErrorDefinition(
        "DB_UNAVAILABLE",
        "Database unavailable",
        status.HTTP_503_SERVICE_UNAVAILABLE,
        ErrorCategory.INTERNAL,
    )
    LOCK_TIMEOUT = ErrorDefinition(
        "LOCK_TIMEOUT",
        "Lock wait timeout",
        status.HTTP_409_CONFLICT,
        ErrorCategory.CONFLICT,
    )
    INTERNAL_ERROR = ErrorDefinition(
        "INTERNAL_ERROR",
        "Internal server error",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        ErrorCategory.INTERNAL,
    )
    IDEMPOTENCY_KEY_REUSED_WITH_DIFFERENT_PAYLOAD = ErrorDefinition(
        "IDEMPOTENCY_KEY_REUSED_WITH_DIFFERENT_PAYLOAD",
        "Idempotency key reused with different payload",
        status.HTTP_409_CONFLICT,
        ErrorCategory.CONFLICT,
    )
    IDEMPOTENCY_REQUEST_IN_PROGRESS = ErrorDefinition(
        "IDEMPOTENCY_REQUEST_IN_PROGRESS",
        "Idempotency request already in progress",
        status.HTTP_409_CONFLICT,
        ErrorCategory.CONFLICT,
    )
    IDEMPOTENCY_REPLAY = ErrorDefinition(
        "IDEMPOTENCY_REPLAY",
        "Idempotent replay",
        status.HTTP_200_OK,
        ErrorCategory.CONFLICT,
    )


class AppError(Exception):
    def __init__(self, error: ErrorDefinition, details: object | None = None):
        self.error = error
        self.details = details
        super().__init__(error.message)
