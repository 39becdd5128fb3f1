"""
Application exception taxonomy.

Every exception carries the HTTP status it maps to at the request
boundary. Handlers in app.py turn them into the JSON error envelope.
"""
from typing import List, Optional


class BoardExamError(Exception):
    """Base exception for all board examination API errors."""

    status_code = 500
    code = "UnexpectedFailure"
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, fields: Optional[List[str]] = None):
        self.message = message or self.default_message
        self.fields = fields or []
        super().__init__(self.message)


class ValidationError(BoardExamError):
    """Raised when request input is missing or malformed."""

    status_code = 400
    code = "ValidationError"
    default_message = "Validation failed"


class InvalidDate(ValidationError):
    """Raised when an exam date is not a real YYYY-MM-DD calendar date."""

    code = "InvalidDate"
    default_message = "Exam date must be a valid date in YYYY-MM-DD format"


class UnknownExaminer(ValidationError):
    """Raised when an examiner reference does not resolve."""

    code = "UnknownExaminer"
    default_message = "Examiner not found"


class UnknownSchool(ValidationError):
    """Raised when a school reference does not resolve."""

    code = "UnknownSchool"
    default_message = "School not found"


class UnknownSubject(ValidationError):
    """Raised when a subject reference does not resolve."""

    code = "UnknownSubject"
    default_message = "Subject not found"


class DuplicateKey(BoardExamError):
    """Raised on a unique-constraint violation."""

    status_code = 400
    code = "DuplicateKey"
    default_message = "Record already exists"


class DuplicateIdentity(DuplicateKey):
    """Raised when a username or email is already registered."""

    code = "DuplicateIdentity"
    default_message = "Username or email already exists"


class Unauthorized(BoardExamError):
    """Raised when a request carries no valid credential."""

    status_code = 401
    code = "Unauthorized"
    default_message = "Invalid or expired token"


class MissingCredential(Unauthorized):
    """Raised when no bearer token is supplied."""

    code = "MissingCredential"
    default_message = "Access token required"


class TokenInvalid(Unauthorized):
    """Raised when a token is malformed or its signature does not check out."""

    code = "TokenInvalid"
    default_message = "Invalid token"


class TokenExpired(Unauthorized):
    """Raised when a token is correctly signed but past its expiry."""

    code = "TokenExpired"
    default_message = "Token expired"


class AccessDenied(BoardExamError):
    """Raised when an authenticated identity lacks the required role."""

    status_code = 403
    code = "AccessDenied"
    default_message = "Access denied"


class NotFound(BoardExamError):
    """Raised when a referenced record does not exist."""

    status_code = 404
    code = "NotFound"
    default_message = "Not found"


class UnexpectedFailure(BoardExamError):
    """Raised on storage or infrastructure failure."""

    pass
