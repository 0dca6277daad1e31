"""
HR Portal - Password Hashing Utilities

Password hashing using bcrypt, with a strength validator driven by the
configured PasswordPolicy.

Security:
- Never log or expose plaintext passwords
- bcrypt includes salt automatically
- Malformed stored hashes are rejected before bcrypt is invoked
- Supports hash upgrades on login (needs_rehash)
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List

import bcrypt
from starlette.concurrency import run_in_threadpool

from hrportal.config import PasswordPolicy
from hrportal.errors import ValidationError


logger = logging.getLogger(__name__)


# bcrypt silently ignores (or rejects, depending on version) input past 72 bytes
BCRYPT_MAX_PASSWORD_BYTES = 72

# $2a$, $2b$ or $2y$, work factor 04-31, 22-char salt + 31-char digest
_BCRYPT_HASH_RE = re.compile(r"^\$2[aby]\$(0[4-9]|[12]\d|3[01])\$[./A-Za-z0-9]{53}$")

SPECIAL_CHARACTERS = "!@#$%^&*()_+-=[]{};':\"\\|,.<>/?`~"

COMMON_PASSWORDS = (
    "password", "password123", "12345678", "qwerty", "abc123",
    "monkey", "1234567890", "letmein", "trustno1", "dragon",
    "baseball", "iloveyou", "master", "sunshine", "ashley",
    "bailey", "passw0rd", "shadow", "123123", "654321",
)

# Score weights (0-100 scale)
LENGTH_BASE_SCORE = 20
LENGTH_BONUS_STEP = 4
LENGTH_BONUS_SCORE = 10
CHARACTER_CLASS_SCORE = 15


@dataclass(frozen=True)
class StrengthResult:
    """
    Result of a password strength check.

    Attributes:
        is_valid: True iff errors is empty
        errors: One human-readable message per unmet requirement
        score: Advisory 0-100 indicator; never affects is_valid
        feedback: User-facing suggestions (validate_with_feedback only)
    """
    is_valid: bool
    errors: List[str]
    score: int
    feedback: List[str] = field(default_factory=list)


def is_valid_bcrypt_hash(hash_string: str) -> bool:
    """
    Check if a string is a valid bcrypt hash format.

    Args:
        hash_string: String to validate

    Returns:
        True if valid bcrypt format
    """
    if not isinstance(hash_string, str) or not hash_string:
        return False
    return _BCRYPT_HASH_RE.match(hash_string) is not None


def _password_bytes(password: str) -> bytes:
    password_bytes = password.encode("utf-8")
    if len(password_bytes) > BCRYPT_MAX_PASSWORD_BYTES:
        raise ValidationError(
            f"Password must not exceed {BCRYPT_MAX_PASSWORD_BYTES} bytes",
            code="PASSWORD_TOO_LONG",
        )
    return password_bytes


class PasswordService:
    """Hashes, verifies and scores passwords according to a PasswordPolicy."""

    def __init__(self, policy: PasswordPolicy):
        self._policy = policy

    @property
    def policy(self) -> PasswordPolicy:
        return self._policy

    def hash(self, password: str) -> str:
        """
        Hash a password using bcrypt.

        Args:
            password: Plaintext password

        Returns:
            bcrypt hash string (embeds version, work factor and salt)

        Raises:
            ValidationError: If the password is not a non-empty string

        Example:
            >>> hashed = service.hash("SecureP@ss123")
            >>> hashed.startswith("$2b$")
            True
        """
        if not isinstance(password, str):
            raise ValidationError("Password must be a string", code="INVALID_PASSWORD")
        if not password:
            raise ValidationError("Password cannot be empty", code="EMPTY_PASSWORD")

        salt = bcrypt.gensalt(rounds=self._policy.salt_rounds)
        hashed = bcrypt.hashpw(_password_bytes(password), salt)
        logger.debug("Password hashed with work factor %d", self._policy.salt_rounds)
        return hashed.decode("utf-8")

    def compare(self, password: str, hashed_password: str) -> bool:
        """
        Verify a password against a bcrypt hash.

        Uses bcrypt's constant-time comparison. The hash format is checked
        first so that clearly invalid stored values never reach bcrypt.

        Args:
            password: Plaintext password to verify
            hashed_password: bcrypt hash to check against

        Returns:
            True if password matches, False otherwise

        Raises:
            ValidationError: If the password is empty or the hash is malformed
        """
        if not isinstance(password, str) or not password:
            raise ValidationError("Password cannot be empty", code="EMPTY_PASSWORD")
        if not is_valid_bcrypt_hash(hashed_password):
            logger.warning("Password comparison rejected: malformed bcrypt hash")
            raise ValidationError("Invalid bcrypt hash format", code="INVALID_HASH_FORMAT")

        try:
            return bcrypt.checkpw(_password_bytes(password), hashed_password.encode("utf-8"))
        except ValueError as exc:
            logger.warning("Password comparison rejected: bcrypt refused the stored hash")
            raise ValidationError(
                "Invalid bcrypt hash format", code="INVALID_HASH_FORMAT"
            ) from exc

    async def ahash(self, password: str) -> str:
        """Hash a password without blocking the event loop."""
        return await run_in_threadpool(self.hash, password)

    async def acompare(self, password: str, hashed_password: str) -> bool:
        """Compare a password without blocking the event loop."""
        return await run_in_threadpool(self.compare, password, hashed_password)

    def needs_rehash(self, hashed_password: str) -> bool:
        """
        Check if a password hash needs to be upgraded.

        Useful after changing BCRYPT_SALT_ROUNDS: hashes created with a
        different work factor should be regenerated at the next login.

        Args:
            hashed_password: Existing bcrypt hash

        Returns:
            True if hash should be regenerated
        """
        match = _BCRYPT_HASH_RE.match(hashed_password or "")
        if match is None:
            # Not a valid bcrypt hash, definitely needs rehash
            return True
        return int(match.group(1)) != self._policy.salt_rounds

    def validate_strength(self, password: str) -> StrengthResult:
        """
        Validate a password against the configured policy.

        Returns:
            StrengthResult with one error per unmet requirement and an
            advisory score derived from length and character variety
        """
        if not isinstance(password, str):
            return StrengthResult(is_valid=False, errors=["Password must be a string"], score=0)

        policy = self._policy
        errors: List[str] = []

        if len(password) < policy.min_length:
            errors.append(f"Password must be at least {policy.min_length} characters long")

        has_uppercase = any(c.isupper() for c in password)
        has_lowercase = any(c.islower() for c in password)
        has_digit = any(c.isdigit() for c in password)
        has_special = any(c in SPECIAL_CHARACTERS for c in password)

        if policy.require_uppercase and not has_uppercase:
            errors.append("Password must contain at least one uppercase letter")
        if policy.require_lowercase and not has_lowercase:
            errors.append("Password must contain at least one lowercase letter")
        if policy.require_digit and not has_digit:
            errors.append("Password must contain at least one number")
        if policy.require_special and not has_special:
            errors.append("Password must contain at least one special character")

        if policy.reject_common:
            lowered = password.lower()
            if any(common in lowered for common in COMMON_PASSWORDS):
                errors.append("Password contains common weak patterns")

        classes = sum((has_uppercase, has_lowercase, has_digit, has_special))
        score = self._length_score(len(password)) + classes * CHARACTER_CLASS_SCORE

        return StrengthResult(is_valid=not errors, errors=errors, score=min(100, score))

    def validate_with_feedback(self, password: str) -> StrengthResult:
        """Validate a password and add user-facing feedback lines."""
        result = self.validate_strength(password)
        feedback: List[str] = []

        if result.is_valid:
            if result.score >= 80:
                feedback.append("Excellent password strength!")
            elif result.score >= 60:
                feedback.append("Good password strength")
            else:
                feedback.append("Acceptable password strength")
        else:
            feedback.append("Password does not meet security requirements:")
            feedback.extend(result.errors)

        if result.score < 60:
            feedback.append("Consider making your password longer and more complex")

        return StrengthResult(
            is_valid=result.is_valid,
            errors=result.errors,
            score=result.score,
            feedback=feedback,
        )

    def _length_score(self, length: int) -> int:
        minimum = self._policy.min_length
        if length < minimum:
            return 0
        score = LENGTH_BASE_SCORE
        if length >= minimum + LENGTH_BONUS_STEP:
            score += LENGTH_BONUS_SCORE
        if length >= minimum + 2 * LENGTH_BONUS_STEP:
            score += LENGTH_BONUS_SCORE
        return score
