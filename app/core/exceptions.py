from typing import Optional, Any

class ShopError(Exception):
    """
    Base exception for the shop backend.
    """
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500, details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)

class ResourceNotFoundError(ShopError):
    """
    Raised when a requested resource is not found.
    """
    def __init__(self, message: str = "Resource not found", details: Optional[Any] = None):
        super().__init__(message, code="NOT_FOUND", status_code=404, details=details)

class AuthenticationError(ShopError):
    """
    Raised when authentication fails.
    """
    def __init__(self, message: str = "Authentication failed", details: Optional[Any] = None):
        super().__init__(message, code="AUTHENTICATION_FAILED", status_code=401, details=details)

class ValidationError(ShopError):
    """
    Raised when input validation fails.
    """
    def __init__(self, message: str = "Validation error", details: Optional[Any] = None):
        super().__init__(message, code="VALIDATION_ERROR", status_code=422, details=details)

class ExternalServiceError(ShopError):
    """
    Raised when an external service (JSONBin, Bot API) fails.
    """
    def __init__(self, message: str = "External service error", details: Optional[Any] = None):
        super().__init__(message, code="EXTERNAL_SERVICE_ERROR", status_code=502, details=details)

class StorageError(ExternalServiceError):
    """
    Raised when the document store answers with a non-success status
    or cannot be reached. `status` is None for transport failures.
    """
    def __init__(self, message: str = "Document store error", status: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message, details={"status": status})
        self.code = "STORAGE_ERROR"
        self.status = status
        self.body = body

class WriteConflictError(ShopError):
    """
    Raised when a collection changed between read and write.
    """
    def __init__(self, message: str = "Collection was modified concurrently", details: Optional[Any] = None):
        super().__init__(message, code="WRITE_CONFLICT", status_code=409, details=details)

class DocumentValidationError(ShopError):
    """
    Raised when a stored collection document does not match its schema.
    """
    def __init__(self, message: str = "Stored document is malformed", details: Optional[Any] = None):
        super().__init__(message, code="CORRUPT_DOCUMENT", status_code=500, details=details)

class InvalidStateTransitionError(ShopError):
    """
    Raised when an order or top-up is moved out of a terminal state.
    """
    def __init__(self, message: str = "Invalid status transition", details: Optional[Any] = None):
        super().__init__(message, code="INVALID_TRANSITION", status_code=409, details=details)

class InsufficientBalanceError(ShopError):
    """
    Raised when a purchase exceeds the wallet balance.
    """
    def __init__(self, message: str = "Insufficient balance", details: Optional[Any] = None):
        super().__init__(message, code="INSUFFICIENT_BALANCE", status_code=402, details=details)

class UserBannedError(ShopError):
    """
    Raised when a banned user calls the storefront.
    """
    def __init__(self, message: str = "User is banned", details: Optional[Any] = None):
        super().__init__(message, code="USER_BANNED", status_code=403, details=details)
