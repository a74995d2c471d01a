"""
Custom exception hierarchy for structured error handling.

WHY: Custom exceptions provide:
1. One taxonomy shared by the analytics engine and the HTTP boundary
2. HTTP status code mapping for FastAPI
3. Structured error responses with contextual data
4. No answer contents or credentials in error payloads

Note that an empty response set is NOT an error: the export engine returns
a sentinel document for it (see ExportDocument.is_empty).
"""

from typing import Any, Dict, Optional


class AppException(Exception):
    """
    Base exception class for all application exceptions.

    WHY: Centralizing exception handling in a base class keeps error
    responses and HTTP status codes consistent across the API.

    All custom exceptions should inherit from this class.
    """

    status_code: int = 500
    default_message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        **context: Any,
    ):
        """
        Initialize exception with message and context.

        Args:
            message: Human-readable error message
            status_code: HTTP status code (overrides class default)
            **context: Additional context for debugging (filtered in to_dict)
        """
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize exception to dictionary for JSON response.

        Returns:
            Dictionary with error details (sensitive fields filtered out)
        """
        sensitive_fields = {"password", "token", "secret", "key", "api_key"}
        filtered_context = {
            k: v for k, v in self.context.items() if k.lower() not in sensitive_fields
        }

        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "status_code": self.status_code,
            "details": filtered_context if filtered_context else None,
        }


# ============================================================================
# Authentication
# ============================================================================


class AuthenticationError(AppException):
    """
    Raised when the bearer token is missing or cannot be verified.

    HTTP Status: 401 Unauthorized
    """

    status_code = 401
    default_message = "Authentication failed"


class TokenExpiredError(AuthenticationError):
    """Raised when the JWT has expired."""

    default_message = "Token has expired"


class TokenInvalidError(AuthenticationError):
    """Raised when the JWT is malformed, badly signed, or has no subject."""

    default_message = "Token is invalid"


# ============================================================================
# Input Validation
# ============================================================================


class ValidationError(AppException):
    """
    Raised when caller-supplied input is rejected.

    HTTP Status: 400 Bad Request
    """

    status_code = 400
    default_message = "Validation failed"


class InvalidInputError(ValidationError):
    """
    Raised when a survey or response collection is structurally invalid.

    WHAT: Fatal for the whole analytics/export operation.

    WHY: Individual malformed answers are absorbed into the statistics,
    but a collection that is not a collection at all cannot be processed.
    """

    default_message = "Invalid survey or response collection"


class UnsupportedExportFormatError(ValidationError):
    """Raised for an export format other than 'csv' or 'json'."""

    default_message = "Invalid format. Supported formats: csv, json"


# ============================================================================
# Not Found
# ============================================================================


class ResourceNotFoundError(AppException):
    """
    Raised when a requested resource does not exist.

    HTTP Status: 404 Not Found
    """

    status_code = 404
    default_message = "Resource not found"


class SurveyNotFoundError(ResourceNotFoundError):
    """
    Raised when a survey is absent or not visible to the acting user.

    WHY: Returning 404 for other users' surveys avoids leaking which
    survey ids exist.
    """

    default_message = "Survey not found"


class ResponsesNotFoundError(ResourceNotFoundError):
    """Raised at the HTTP boundary when a survey has no responses to export."""

    default_message = "No responses found for this survey"
