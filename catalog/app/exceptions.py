"""Custom exceptions for the catalog application."""


class CatalogException(Exception):
    """Base class for catalog exceptions with HTTP status code.

    All custom exceptions should inherit from this class and define
    their specific status_code for consistent HTTP response handling.
    """
    status_code: int = 500
    kind: str = "CatalogError"

    def __init__(self, message: str = "Catalog error"):
        self.message = message
        super().__init__(message)


class ValidationError(CatalogException):
    """Raised when request parameters fail validation.

    Maps to HTTP 400 Bad Request.
    """
    status_code = 400
    kind = "ValidationError"

    def __init__(
        self,
        errors: dict[str, list[str]],
        message: str = "Invalid request parameters",
    ):
        self.errors = errors
        super().__init__(message)


class Unauthenticated(CatalogException):
    """Raised when no authenticated subject is present.

    Maps to HTTP 401 Unauthorized.
    """
    status_code = 401
    kind = "Unauthenticated"

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class AuthorizationError(CatalogException):
    """Base class for authorization denials. Maps to HTTP 403 Forbidden."""
    status_code = 403
    kind = "AuthorizationError"
    default_message = "Forbidden"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)


class InsufficientRole(AuthorizationError):
    kind = "InsufficientRole"
    default_message = "Insufficient role permissions"


class DepartmentMismatch(AuthorizationError):
    kind = "DepartmentMismatch"
    default_message = "Access denied based on department"


class NotOwner(AuthorizationError):
    kind = "NotOwner"
    default_message = "You do not own this resource"


class OutsideBusinessHours(AuthorizationError):
    kind = "OutsideBusinessHours"
    default_message = "Access restricted to business hours"


class ResourceNotFound(CatalogException):
    """Raised when the target resource of a gated request does not exist.

    Maps to HTTP 404 Not Found.
    """
    status_code = 404
    kind = "ResourceNotFound"

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message)


class RateLimited(CatalogException):
    """Raised when a caller exceeds the ceiling of a rate limit policy.

    Maps to HTTP 429 Too Many Requests.
    """
    status_code = 429
    kind = "RateLimited"

    def __init__(
        self,
        policy: str,
        limit: int,
        retry_after: int,
        reset_time: int,
        message: str = "Too many requests. Please try again later.",
    ):
        self.policy = policy
        self.limit = limit
        self.retry_after = retry_after
        self.reset_time = reset_time
        super().__init__(message)

    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": str(self.reset_time),
            "Retry-After": str(self.retry_after),
        }
