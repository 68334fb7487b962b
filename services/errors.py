"""
Exception classes raised by the post, feed and account services
"""
from typing import Optional, Dict, Any


class SocialFeedError(Exception):
    """Base exception class for service errors"""
    status_code = 500

    def __init__(self, message: str, code: str = "UNKNOWN_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to the error body returned by the API"""
        return {
            "code": self.code,
            "message": str(self),
            "details": self.details
        }


class ValidationError(SocialFeedError):
    """Raised when input is missing or malformed"""
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        if field:
            details.setdefault("field", field)
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class NotFoundError(SocialFeedError):
    """Raised when a referenced post or account does not exist"""
    status_code = 404

    def __init__(self, resource_type: str, resource_id: str, details: Optional[Dict[str, Any]] = None):
        message = f"{resource_type} not found"
        details = dict(details or {})
        details.setdefault("id", resource_id)
        super().__init__(message, code="NOT_FOUND", details=details)
        self.resource_type = resource_type
        self.resource_id = resource_id


class AuthError(SocialFeedError):
    """Raised when the caller's credential is missing or invalid"""
    status_code = 401

    def __init__(self, message: str = "Not authenticated", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="AUTH_ERROR", details=details)


class UnexpectedError(SocialFeedError):
    """Raised when storage or another collaborator fails"""
    status_code = 500

    def __init__(self, message: str = "Internal server error", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="UNEXPECTED_ERROR", details=details)
