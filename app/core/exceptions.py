from typing import Optional, Any


class HubError(Exception):
    """
    Base exception for the tenant hub.
    """
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500, details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class ResourceNotFoundError(HubError):
    """
    Raised when a requested resource (order, catalog item) is not found.
    """
    def __init__(self, message: str = "Resource not found", details: Optional[Any] = None):
        super().__init__(message, code="NOT_FOUND", status_code=404, details=details)


class TenantNotFoundError(HubError):
    """
    Raised when no tenant owns the given session, phone or id.
    """
    def __init__(self, message: str = "Tenant not found", details: Optional[Any] = None):
        super().__init__(message, code="TENANT_NOT_FOUND", status_code=404, details=details)


class TenantInactiveError(HubError):
    """
    Raised when a tenant exists but is suspended or cancelled.
    """
    def __init__(self, message: str = "Tenant inactive", details: Optional[Any] = None):
        super().__init__(message, code="TENANT_INACTIVE", status_code=403, details=details)


class ConfigurationError(HubError):
    """
    Raised when a tenant is misconfigured, e.g. an unknown business type.
    """
    def __init__(self, message: str = "Configuration error", details: Optional[Any] = None):
        super().__init__(message, code="CONFIGURATION_ERROR", status_code=500, details=details)


class ValidationError(HubError):
    """
    Raised when input validation fails.
    """
    def __init__(self, message: str = "Validation error", details: Optional[Any] = None):
        super().__init__(message, code="VALIDATION_ERROR", status_code=422, details=details)


class PersistenceError(HubError):
    """
    Raised when the data store fails or times out.
    """
    def __init__(self, message: str = "Persistence error", details: Optional[Any] = None):
        super().__init__(message, code="PERSISTENCE_ERROR", status_code=503, details=details)


class DispatchError(HubError):
    """
    Raised when the WhatsApp gateway rejects or times out a send.
    """
    def __init__(self, message: str = "Message dispatch failed", details: Optional[Any] = None):
        super().__init__(message, code="DISPATCH_ERROR", status_code=502, details=details)
