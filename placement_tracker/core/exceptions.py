"""
Application error taxonomy.

Every error carries the HTTP status it maps to; the handlers registered
in main.py render them as {"error": <message>}.
"""

from enum import Enum
from typing import Optional


class AppError(Exception):
    """Base error. Uncategorized failures surface as 500."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthenticationError(AppError):
    """Missing or invalid bearer token."""

    status_code = 401
    default_message = "Unauthorized"


class AuthorizationError(AppError):
    """Valid token, insufficient permission."""

    status_code = 403
    default_message = "Insufficient permissions"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Not found"


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request"


class PayloadTooLargeError(AppError):
    status_code = 413
    default_message = "File too large"


class ExtractionFailure(str, Enum):
    NO_FILE = "NO_FILE"
    MODEL_ERROR = "MODEL_ERROR"
    NO_JSON_FOUND = "NO_JSON_FOUND"
    PARSE_ERROR = "PARSE_ERROR"


class ExtractionError(AppError):
    """
    Document extraction failed.

    raw_response holds the model text (or the offending JSON substring)
    so an operator can correct the form by hand.
    """

    default_message = "Failed to process document"

    def __init__(
        self,
        reason: ExtractionFailure,
        message: Optional[str] = None,
        raw_response: Optional[str] = None,
    ):
        super().__init__(message)
        self.reason = reason
        self.raw_response = raw_response
        self.status_code = 400 if reason == ExtractionFailure.NO_FILE else 500
