"""
HR Portal - JWT Token Management

Creates and validates two kinds of JWT:
- Access tokens (sub, email, role; minutes) signed with the access secret
- Refresh tokens (sub, email; days) signed with the refresh secret

Every token carries a type discriminator, a unique token ID (jti),
iat/exp, issuer and audience.

Security:
- Access and refresh tokens use distinct keys; one leaking does not
  compromise the other
- A token of the wrong type is rejected even when its signature is valid
- Subject claims are re-validated after the signature check
- No revocation: a token stays valid until exp (see DESIGN.md)
"""

import logging
import secrets
import time
from datetime import timedelta
from numbers import Real
from typing import Any, Callable, Dict, Optional, Union

from jose import jwt
from jose.exceptions import JOSEError, JWTClaimsError, JWTError

from hrportal.auth.models import Principal, RefreshPrincipal, Role, TokenPair, parse_role
from hrportal.config import TokenConfig
from hrportal.errors import TokenErrorKind, TokenGenerationError, TokenVerificationError


logger = logging.getLogger(__name__)


ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

# iat/exp/nbf are checked against the injected clock rather than by python-jose,
# sub is re-validated with a field-specific error
_DECODE_OPTIONS = {
    "verify_signature": True,
    "verify_aud": True,
    "verify_iss": True,
    "verify_iat": False,
    "verify_exp": False,
    "verify_nbf": False,
    "verify_sub": False,
    "verify_jti": False,
}


def _is_timestamp(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _is_present(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


class TokenService:
    """
    Issues and verifies access and refresh tokens.

    Args:
        config: Secrets, lifetimes, issuer and audience
        clock: Returns the current time in epoch seconds (injectable for tests)
    """

    def __init__(self, config: TokenConfig, clock: Callable[[], float] = time.time):
        self._config = config
        self._clock = clock

    @property
    def config(self) -> TokenConfig:
        return self._config

    # ------------------------------------------------------------------
    # Issuance
    # ------------------------------------------------------------------

    def issue_access(
        self,
        user_id: str,
        email: str,
        role: Union[Role, str],
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        """
        Create a signed access token.

        Args:
            user_id: User's unique identifier
            email: User's email address
            role: User's role
            expires_delta: Optional custom lifetime (defaults to the configured access TTL)

        Returns:
            Encoded JWT string

        Raises:
            TokenGenerationError: If a subject claim is missing or the role is unknown
        """
        self._require(user_id, "user_id", "User ID")
        self._require(email, "email", "Email")
        self._require(role, "role", "Role")
        try:
            role = parse_role(role)
        except ValueError:
            raise TokenGenerationError(
                f"Invalid role for token generation: {role!r}",
                code="INVALID_ROLE",
                field="role",
            )

        now = self._now()
        lifetime = expires_delta if expires_delta is not None else self._config.access_ttl
        claims = {
            "sub": str(user_id),
            "email": email,
            "role": role.value,
            "type": ACCESS_TOKEN_TYPE,
            "jti": secrets.token_hex(16),
            "iat": now,
            "exp": now + int(lifetime.total_seconds()),
            "iss": self._config.issuer,
            "aud": self._config.audience,
        }

        token = self._sign(claims, self._config.access_secret, "Access token")
        logger.debug("Issued access token jti=%s for user %s", claims["jti"], claims["sub"])
        return token

    def issue_refresh(
        self,
        user_id: str,
        email: str,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        """
        Create a signed refresh token with a fresh jti.

        Raises:
            TokenGenerationError: If user_id or email is missing
        """
        self._require(user_id, "user_id", "User ID")
        self._require(email, "email", "Email")

        now = self._now()
        lifetime = expires_delta if expires_delta is not None else self._config.refresh_ttl
        claims = {
            "sub": str(user_id),
            "email": email,
            "type": REFRESH_TOKEN_TYPE,
            "jti": secrets.token_hex(16),
            "iat": now,
            "exp": now + int(lifetime.total_seconds()),
            "iss": self._config.issuer,
            "aud": self._config.audience,
        }

        token = self._sign(claims, self._config.refresh_secret, "Refresh token")
        logger.debug("Issued refresh token jti=%s for user %s", claims["jti"], claims["sub"])
        return token

    def issue_pair(self, user_id: str, email: str, role: Union[Role, str]) -> TokenPair:
        """Create an access/refresh token pair, as returned at login."""
        return TokenPair(
            access_token=self.issue_access(user_id, email, role),
            refresh_token=self.issue_refresh(user_id, email),
            expires_in=int(self._config.access_ttl.total_seconds()),
            refresh_expires_in=int(self._config.refresh_ttl.total_seconds()),
        )

    def rotate(self, refresh_token: str, role: Union[Role, str]) -> TokenPair:
        """
        Exchange a valid refresh token for a new token pair.

        The role is supplied by the caller because roles live in the
        persistence layer, not in the refresh token.

        Raises:
            TokenVerificationError: If the refresh token is not valid
        """
        principal = self.verify_refresh(refresh_token)
        pair = self.issue_pair(principal.user_id, principal.email, role)
        logger.info(
            "Rotated refresh token jti=%s for user %s", principal.token_id, principal.user_id
        )
        return pair

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def verify_access(self, token: str, correlation_id: Optional[str] = None) -> Principal:
        """
        Verify an access token and return the principal it identifies.

        Args:
            token: Encoded JWT string
            correlation_id: Request correlation ID, used only for logging

        Returns:
            Principal built from the verified claims

        Raises:
            TokenVerificationError: With kind MISSING, MALFORMED, WRONG_TYPE,
                INVALID, INVALID_CLAIMS, EXPIRED, NOT_YET_VALID or INVALID_PAYLOAD
        """
        try:
            payload = self._verify(
                token, ACCESS_TOKEN_TYPE, self._config.access_secret, "Access token"
            )
            user_id, email = self._subject(payload, "access token")
            try:
                role = parse_role(payload.get("role"))
            except ValueError:
                raise TokenVerificationError(
                    "Invalid access token payload: missing or invalid role",
                    TokenErrorKind.INVALID_PAYLOAD,
                    field="role",
                )
        except TokenVerificationError as exc:
            self._log_failure("access", exc, correlation_id)
            raise

        jti = payload.get("jti")
        return Principal(
            user_id=user_id,
            email=email,
            role=role,
            issued_at=int(payload["iat"]),
            expires_at=int(payload["exp"]),
            token_id=jti if isinstance(jti, str) else None,
        )

    def verify_refresh(self, token: str, correlation_id: Optional[str] = None) -> RefreshPrincipal:
        """
        Verify a refresh token.

        Raises:
            TokenVerificationError: As for verify_access; a missing jti is
                reported as INVALID_PAYLOAD
        """
        try:
            payload = self._verify(
                token, REFRESH_TOKEN_TYPE, self._config.refresh_secret, "Refresh token"
            )
            user_id, email = self._subject(payload, "refresh token")
            jti = payload.get("jti")
            if not _is_present(jti):
                raise TokenVerificationError(
                    "Invalid refresh token payload: missing or invalid jti",
                    TokenErrorKind.INVALID_PAYLOAD,
                    field="jti",
                )
        except TokenVerificationError as exc:
            self._log_failure("refresh", exc, correlation_id)
            raise

        return RefreshPrincipal(
            user_id=user_id,
            email=email,
            token_id=jti,
            issued_at=int(payload["iat"]),
            expires_at=int(payload["exp"]),
        )

    def decode(self, token: str) -> Optional[Dict[str, Any]]:
        """
        Return a token's claims WITHOUT verifying signature or expiry.

        For logging and introspection only; never use on a security path.
        Returns None for anything that cannot be parsed.
        """
        if not isinstance(token, str) or not token.strip():
            return None
        try:
            return jwt.get_unverified_claims(token.strip())
        except JOSEError as exc:
            logger.debug("Token decode failed: %s", exc)
            return None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _now(self) -> int:
        return int(self._clock())

    @staticmethod
    def _require(value: Any, field: str, label: str) -> None:
        if value is None or not str(value).strip():
            raise TokenGenerationError(
                f"{label} is required for token generation",
                code="MISSING_CLAIM",
                field=field,
            )

    def _sign(self, claims: Dict[str, Any], secret: str, label: str) -> str:
        try:
            return jwt.encode(claims, secret, algorithm=self._config.algorithm)
        except (JOSEError, TypeError, ValueError) as exc:
            raise TokenGenerationError(
                f"{label} generation failed: {exc}", code="SIGNING_FAILED"
            ) from exc

    def _verify(self, token: str, expected_type: str, secret: str, label: str) -> Dict[str, Any]:
        if not isinstance(token, str) or not token.strip():
            raise TokenVerificationError(
                f"{label} is required for verification", TokenErrorKind.MISSING
            )
        token = token.strip()
        lowered = label.lower()

        try:
            unverified = jwt.get_unverified_claims(token)
        except JOSEError:
            raise TokenVerificationError(
                f"Invalid {lowered}: token is malformed", TokenErrorKind.MALFORMED
            )

        # Type is read before the signature check: the other token type is
        # signed with the other key and would otherwise surface as INVALID
        if unverified.get("type") != expected_type:
            raise TokenVerificationError(
                f"Invalid token type: expected {expected_type} token",
                TokenErrorKind.WRONG_TYPE,
                field="type",
            )

        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self._config.algorithm],
                audience=self._config.audience,
                issuer=self._config.issuer,
                options=_DECODE_OPTIONS,
            )
        except JWTClaimsError as exc:
            raise TokenVerificationError(f"Invalid {lowered}: {exc}", TokenErrorKind.INVALID_CLAIMS)
        except JWTError:
            raise TokenVerificationError(
                f"Invalid {lowered}: signature verification failed", TokenErrorKind.INVALID
            )

        if "aud" not in payload:
            raise TokenVerificationError(
                f"Invalid {lowered}: missing audience", TokenErrorKind.INVALID_CLAIMS, field="aud"
            )

        self._check_lifetime(payload, label)
        return payload

    def _check_lifetime(self, payload: Dict[str, Any], label: str) -> None:
        now = self._now()
        leeway = self._config.leeway_seconds
        lowered = label.lower()

        for claim in ("iat", "exp"):
            if not _is_timestamp(payload.get(claim)):
                raise TokenVerificationError(
                    f"Invalid {lowered} payload: missing or invalid {claim}",
                    TokenErrorKind.INVALID_PAYLOAD,
                    field=claim,
                )

        if now >= payload["exp"] + leeway:
            raise TokenVerificationError(f"{label} has expired", TokenErrorKind.EXPIRED)

        nbf = payload.get("nbf")
        if nbf is not None:
            if not _is_timestamp(nbf):
                raise TokenVerificationError(
                    f"Invalid {lowered} payload: invalid nbf",
                    TokenErrorKind.INVALID_PAYLOAD,
                    field="nbf",
                )
            if nbf > now + leeway:
                raise TokenVerificationError(
                    f"{label} is not yet valid", TokenErrorKind.NOT_YET_VALID
                )

    @staticmethod
    def _subject(payload: Dict[str, Any], label: str):
        user_id = payload.get("sub")
        if not _is_present(user_id):
            raise TokenVerificationError(
                f"Invalid {label} payload: missing or invalid userId (sub)",
                TokenErrorKind.INVALID_PAYLOAD,
                field="sub",
            )
        email = payload.get("email")
        if not _is_present(email):
            raise TokenVerificationError(
                f"Invalid {label} payload: missing or invalid email",
                TokenErrorKind.INVALID_PAYLOAD,
                field="email",
            )
        return user_id, email

    @staticmethod
    def _log_failure(
        token_type: str, exc: TokenVerificationError, correlation_id: Optional[str]
    ) -> None:
        logger.warning(
            "%s token verification failed: kind=%s field=%s correlation_id=%s",
            token_type.capitalize(),
            exc.kind.value,
            exc.field,
            correlation_id,
        )
