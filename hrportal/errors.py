"""
HR Portal - Authentication Error Taxonomy

Errors raised by the password, token and configuration layers, plus the
HTTP-facing errors that the authentication and authorization dependencies
raise and the gateway renders as structured JSON.

Every error carries a machine-readable code; verification failures also
carry a TokenErrorKind so callers never have to parse message strings.
"""

from enum import Enum
from typing import Any, Dict, Optional, Sequence


class AuthError(Exception):
    """Base class for all authentication core errors."""

    default_code = "AUTH_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}


class ConfigurationError(AuthError):
    """Raised at construction time for invalid configuration (programmer error)."""

    default_code = "CONFIGURATION_ERROR"


class ValidationError(AuthError):
    """Raised for client-correctable input problems (password or hash shape)."""

    default_code = "VALIDATION_ERROR"


class TokenGenerationError(AuthError):
    """Raised when a token cannot be minted; always a caller bug."""

    default_code = "TOKEN_GENERATION_FAILED"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)
        self.field = field


class TokenErrorKind(str, Enum):
    """Why a token failed verification."""

    MISSING = "MISSING"
    MALFORMED = "MALFORMED"
    EXPIRED = "EXPIRED"
    NOT_YET_VALID = "NOT_YET_VALID"
    INVALID = "INVALID"  # bad signature or disallowed algorithm
    INVALID_CLAIMS = "INVALID_CLAIMS"  # issuer / audience mismatch
    INVALID_PAYLOAD = "INVALID_PAYLOAD"  # missing or mistyped subject claim
    WRONG_TYPE = "WRONG_TYPE"


class TokenVerificationError(AuthError):
    """Raised when a token fails verification. Never retried automatically."""

    default_code = "TOKEN_VERIFICATION_FAILED"

    def __init__(
        self,
        message: str,
        kind: TokenErrorKind,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, kind.value, details)
        self.kind = kind
        self.field = field


class AuthenticationError(AuthError):
    """
    HTTP-facing authentication failure.

    Rendered as {success, code, message, timestamp, path}; the message is
    always safe to show to the client.
    """

    default_code = "UNAUTHENTICATED"

    def __init__(self, code: str, message: str, status_code: int = 401):
        super().__init__(message, code)
        self.status_code = status_code


class AuthorizationDenied(AuthError):
    """
    HTTP-facing authorization outcome (401 without a principal, 403 otherwise).

    Not exceptional in the business sense: a denial is an expected result
    that carries the caller's role and the roles that would have been accepted.
    """

    default_code = "FORBIDDEN"

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 403,
        user_role: Optional[str] = None,
        required_roles: Optional[Sequence[str]] = None,
    ):
        super().__init__(message, code)
        self.status_code = status_code
        self.user_role = user_role
        self.required_roles = list(required_roles) if required_roles is not None else None
