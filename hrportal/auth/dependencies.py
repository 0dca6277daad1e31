"""
HR Portal - Authentication Dependencies

FastAPI dependencies that turn an `Authorization: Bearer <token>` header
into a verified Principal attached to the request.

Usage:
    @app.get("/me")
    async def me(context: RequestContext = Depends(authenticate)):
        return context.principal

    @app.get("/reports", dependencies=[Depends(authenticate), Depends(authorize_management())])
    async def reports():
        ...

Security:
- Mandatory mode rejects every request without a valid access token (401)
- Client messages are generic; verification detail stays in server logs
- Every attempt is logged with correlation ID, method, path and outcome
"""

import logging
import uuid
from typing import Dict, Optional, Tuple

from fastapi import Request

from hrportal.auth.models import Principal, RequestContext
from hrportal.auth.tokens import TokenService
from hrportal.errors import (
    AuthError,
    AuthenticationError,
    ConfigurationError,
    TokenErrorKind,
    TokenVerificationError,
)


logger = logging.getLogger(__name__)


AUTHORIZATION_HEADER = "Authorization"
BEARER_SCHEME = "bearer"

# Token failure kind -> (response code, client-safe message)
TOKEN_ERROR_RESPONSES: Dict[TokenErrorKind, Tuple[str, str]] = {
    TokenErrorKind.MISSING: ("MISSING_TOKEN", "Authentication token is required"),
    TokenErrorKind.MALFORMED: ("MALFORMED_TOKEN", "Authentication token is malformed"),
    TokenErrorKind.EXPIRED: ("TOKEN_EXPIRED", "Authentication token has expired"),
    TokenErrorKind.NOT_YET_VALID: ("TOKEN_NOT_YET_VALID", "Authentication token is not yet valid"),
    TokenErrorKind.INVALID: ("INVALID_TOKEN", "Invalid authentication token"),
    TokenErrorKind.INVALID_CLAIMS: ("INVALID_TOKEN", "Invalid authentication token"),
    TokenErrorKind.INVALID_PAYLOAD: ("INVALID_TOKEN_PAYLOAD", "Authentication token payload is invalid"),
    TokenErrorKind.WRONG_TYPE: ("INVALID_TOKEN_TYPE", "Invalid token type"),
}


def extract_bearer_token(header: Optional[str]) -> str:
    """
    Extract the token from an Authorization header value.

    Args:
        header: Raw header value (None when the header is absent)

    Returns:
        The token string

    Raises:
        AuthenticationError: MISSING_AUTH_HEADER, INVALID_AUTH_HEADER_FORMAT,
            INVALID_AUTH_SCHEME or MISSING_TOKEN
    """
    if header is None or not header.strip():
        raise AuthenticationError("MISSING_AUTH_HEADER", "Authorization header is required")

    parts = header.split()
    if len(parts) == 1 and parts[0].lower() == BEARER_SCHEME:
        raise AuthenticationError("MISSING_TOKEN", "Authentication token is required")
    if len(parts) != 2:
        raise AuthenticationError(
            "INVALID_AUTH_HEADER_FORMAT",
            "Authorization header must be in the format: Bearer <token>",
        )

    scheme, token = parts
    if scheme.lower() != BEARER_SCHEME:
        raise AuthenticationError(
            "INVALID_AUTH_SCHEME", "Authorization scheme must be Bearer"
        )

    return token


def get_token_service(request: Request) -> TokenService:
    """Return the TokenService installed on the application by create_app()."""
    service = getattr(request.app.state, "token_service", None)
    if service is None:
        raise ConfigurationError("TokenService is not configured on app.state")
    return service


def get_correlation_id(request: Request) -> str:
    """Return the request's correlation ID, assigning one if the middleware did not."""
    correlation_id = getattr(request.state, "correlation_id", None)
    if not correlation_id:
        correlation_id = str(uuid.uuid4())
        request.state.correlation_id = correlation_id
    return correlation_id


def _build_context(request: Request, correlation_id: str, principal: Optional[Principal]) -> RequestContext:
    context = RequestContext(
        correlation_id=correlation_id,
        method=request.method,
        path=request.url.path,
        principal=principal,
    )
    request.state.auth_context = context
    return context


def _log_attempt(request: Request, correlation_id: str, outcome: str, user_id: Optional[str] = None) -> None:
    logger.info(
        "Authentication %s: correlation_id=%s method=%s path=%s user_id=%s",
        outcome,
        correlation_id,
        request.method,
        request.url.path,
        user_id,
    )


def _verify(request: Request, correlation_id: str) -> Principal:
    token = extract_bearer_token(request.headers.get(AUTHORIZATION_HEADER))
    try:
        return get_token_service(request).verify_access(token, correlation_id=correlation_id)
    except TokenVerificationError as exc:
        code, message = TOKEN_ERROR_RESPONSES[exc.kind]
        raise AuthenticationError(code, message) from exc


async def authenticate(request: Request) -> RequestContext:
    """
    Require a valid access token.

    Returns:
        RequestContext carrying the verified Principal (also stored on
        request.state.auth_context for the authorization dependency)

    Raises:
        AuthenticationError 401: Missing, malformed or invalid credentials
        AuthenticationError 500: Unexpected failure (details logged, never returned)
    """
    correlation_id = get_correlation_id(request)

    try:
        principal = _verify(request, correlation_id)
    except AuthenticationError as exc:
        _log_attempt(request, correlation_id, f"failed ({exc.code})")
        raise
    except Exception:
        logger.exception(
            "Unexpected authentication error: correlation_id=%s method=%s path=%s",
            correlation_id,
            request.method,
            request.url.path,
        )
        raise AuthenticationError(
            "AUTHENTICATION_ERROR",
            "An error occurred during authentication",
            status_code=500,
        )

    _log_attempt(request, correlation_id, "succeeded", principal.user_id)
    return _build_context(request, correlation_id, principal)


async def authenticate_optional(request: Request) -> RequestContext:
    """
    Attach a Principal when a valid access token is present.

    Any failure leaves the principal unset and the request continues; for
    endpoints that behave differently for anonymous and signed-in users.
    """
    correlation_id = get_correlation_id(request)
    principal: Optional[Principal] = None

    if request.headers.get(AUTHORIZATION_HEADER) is None:
        _log_attempt(request, correlation_id, "skipped (no credentials)")
        return _build_context(request, correlation_id, None)

    try:
        principal = _verify(request, correlation_id)
    except AuthError as exc:
        _log_attempt(request, correlation_id, f"ignored ({exc.code})")
    except Exception:
        logger.exception(
            "Unexpected error during optional authentication: correlation_id=%s",
            correlation_id,
        )
    else:
        _log_attempt(request, correlation_id, "succeeded", principal.user_id)

    return _build_context(request, correlation_id, principal)


def get_request_context(request: Request) -> RequestContext:
    """
    Return the context stored by authenticate/authenticate_optional.

    When neither ran, an unauthenticated context is returned so that the
    authorization dependency answers 401 rather than failing.
    """
    context = getattr(request.state, "auth_context", None)
    if context is not None:
        return context
    return RequestContext(
        correlation_id=get_correlation_id(request),
        method=request.method,
        path=request.url.path,
    )
