"""
Custom Exceptions for FMP Eventos
=================================

Workflow operations raise these instead of generic Exception so the API layer
can turn them into structured responses with the right status code.

Usage:
    from eventos.core.exceptions import EventNotFoundError, StatePreconditionError

    if not event:
        raise EventNotFoundError(event_id)

    if event.status != EventStatus.EN_REVISION:
        raise StatePreconditionError("Event is not awaiting review", ...)
"""

from typing import Optional, Any, Dict, List


class PortalError(Exception):
    """Base exception for all portal errors"""

    http_status: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Authentication & Authorization Errors
# ============================================

class AuthenticationError(PortalError):
    """User authentication failed"""

    http_status = 401

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, code="AUTH_FAILED")


class AuthorizationError(PortalError):
    """User not authorized for this action"""

    http_status = 403

    def __init__(self, message: str = "Not authorized", action: Optional[str] = None):
        details = {"action": action} if action else {}
        super().__init__(message, code="NOT_AUTHORIZED", details=details)


# ============================================
# Resource Errors (404-type)
# ============================================

class ResourceNotFoundError(PortalError):
    """Base class for not found errors"""

    http_status = 404

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} with ID '{resource_id}' not found",
            code=f"{resource_type.upper()}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )


class EventNotFoundError(ResourceNotFoundError):
    """Event not found"""

    def __init__(self, event_id: str):
        super().__init__("Event", event_id)


class CertificateRequestNotFoundError(ResourceNotFoundError):
    """Certificate request not found"""

    def __init__(self, request_id: str):
        super().__init__("Certificate_Request", request_id)


class EventFileNotFoundError(ResourceNotFoundError):
    """Event file not found"""

    def __init__(self, file_id: str):
        super().__init__("Event_File", file_id)


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(PortalError):
    """
    Input validation failed.

    `failures` holds one entry per failed rule so every reason reaches the caller.
    """

    http_status = 400

    def __init__(self, message: str, failures: Optional[List[Dict[str, Any]]] = None,
                 field: Optional[str] = None):
        details: Dict[str, Any] = {}
        if field:
            details["field"] = field
        if failures:
            details["failures"] = failures
        super().__init__(message, code="VALIDATION_ERROR", details=details)
        self.failures = failures or []

    @classmethod
    def from_results(cls, results) -> "ValidationError":
        """Build from failed rule results"""
        failures = [r.to_dict() for r in results]
        message = "; ".join(r.message for r in results)
        return cls(message, failures=failures)


class InvalidFileError(ValidationError):
    """Uploaded file rejected (type or size)"""

    def __init__(self, message: str, file_name: Optional[str] = None):
        super().__init__(message, field="file")
        self.code = "INVALID_FILE"
        if file_name:
            self.details["file_name"] = file_name


# ============================================
# Workflow State Errors (409-type)
# ============================================

class StatePreconditionError(PortalError):
    """Record is not in the state the operation requires"""

    http_status = 409

    def __init__(self, message: str, current_state: Optional[str] = None,
                 expected_states: Optional[List[str]] = None):
        details: Dict[str, Any] = {}
        if current_state is not None:
            details["current_state"] = current_state
        if expected_states:
            details["expected_states"] = expected_states
        super().__init__(message, code="INVALID_STATE", details=details)


# ============================================
# Collaborator Errors
# ============================================

class StorageError(PortalError):
    """Storage operation failed"""

    http_status = 502

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message, code="STORAGE_ERROR")
        if key:
            self.details["key"] = key


# ============================================
# Helper function for API responses
# ============================================

def error_response(error: PortalError) -> Dict[str, Any]:
    """Convert exception to API error response format"""
    return {
        "success": False,
        "error": error.to_dict()
    }
