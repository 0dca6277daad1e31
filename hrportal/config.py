"""
HR Portal - Configuration Management

Centralized configuration using Pydantic Settings.
All secrets are loaded from environment variables and converted once,
at startup, into an immutable AuthConfig that is passed explicitly to the
password and token services.

Security: No production secrets are hardcoded. Use .env for local development.
"""

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from functools import lru_cache
from typing import Any, Dict, List

from pydantic_settings import BaseSettings

from hrportal.errors import ConfigurationError


logger = logging.getLogger(__name__)


# Secrets used only when none are configured outside production
DEV_ACCESS_SECRET = "development-jwt-secret-min-32-chars-long-for-security"
DEV_REFRESH_SECRET = "development-refresh-secret-min-32-chars-long-for-security"

MIN_PRODUCTION_SECRET_LENGTH = 32

# bcrypt accepts work factors 4..31; anything below 10 is only fit for tests
MIN_SALT_ROUNDS = 4
MAX_SALT_ROUNDS = 31
RECOMMENDED_MIN_SALT_ROUNDS = 10


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        APP_ENV: development, staging, production or test
        JWT_ACCESS_SECRET: Signing key for access tokens
        JWT_REFRESH_SECRET: Signing key for refresh tokens (must differ)
        ACCESS_TOKEN_EXPIRE_MINUTES: Access token lifetime
        REFRESH_TOKEN_EXPIRE_DAYS: Refresh token lifetime
        BCRYPT_SALT_ROUNDS: bcrypt work factor
        ALLOWED_ORIGINS: CORS allowed origins for the dashboard frontend
    """

    APP_ENV: str = "development"

    # Tokens
    JWT_ACCESS_SECRET: str = ""  # Must be set via environment in production
    JWT_REFRESH_SECRET: str = ""  # Must be set via environment in production
    JWT_ALGORITHM: str = "HS256"
    JWT_ISSUER: str = "hr-app"
    JWT_AUDIENCE: str = "hr-app-users"
    JWT_LEEWAY_SECONDS: int = 0
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15  # Short-lived tokens
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # Passwords
    BCRYPT_SALT_ROUNDS: int = 12
    PASSWORD_MIN_LENGTH: int = 8
    PASSWORD_REQUIRE_UPPERCASE: bool = True
    PASSWORD_REQUIRE_LOWERCASE: bool = True
    PASSWORD_REQUIRE_DIGIT: bool = True
    PASSWORD_REQUIRE_SPECIAL: bool = False
    PASSWORD_REJECT_COMMON: bool = True

    # CORS
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000"]

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Tests can reset via: get_settings.cache_clear()
    """
    return Settings()


@dataclass(frozen=True)
class TokenConfig:
    """Signing material and lifetimes for access and refresh tokens."""

    access_secret: str
    refresh_secret: str
    access_ttl: timedelta = timedelta(minutes=15)
    refresh_ttl: timedelta = timedelta(days=7)
    issuer: str = "hr-app"
    audience: str = "hr-app-users"
    algorithm: str = "HS256"
    leeway_seconds: int = 0

    def __post_init__(self):
        if not self.access_secret or not self.refresh_secret:
            raise ConfigurationError("Access and refresh token secrets are required")
        if self.access_secret == self.refresh_secret:
            raise ConfigurationError(
                "Access token secret and refresh token secret must be different"
            )
        if self.access_ttl <= timedelta(0):
            raise ConfigurationError("Access token TTL must be positive")
        if self.refresh_ttl <= self.access_ttl:
            raise ConfigurationError(
                "Refresh token TTL must be longer than access token TTL"
            )
        if not self.issuer or not self.audience:
            raise ConfigurationError("Token issuer and audience are required")
        if not self.algorithm.startswith("HS"):
            raise ConfigurationError(
                f"Unsupported JWT algorithm {self.algorithm!r}: only HMAC (HS*) is supported"
            )
        if self.leeway_seconds < 0:
            raise ConfigurationError("Token leeway cannot be negative")


@dataclass(frozen=True)
class PasswordPolicy:
    """Work factor and strength requirements for passwords."""

    salt_rounds: int = 12
    min_length: int = 8
    require_uppercase: bool = True
    require_lowercase: bool = True
    require_digit: bool = True
    require_special: bool = False
    reject_common: bool = True

    def __post_init__(self):
        if not MIN_SALT_ROUNDS <= self.salt_rounds <= MAX_SALT_ROUNDS:
            raise ConfigurationError(
                f"bcrypt salt rounds must be between {MIN_SALT_ROUNDS} and "
                f"{MAX_SALT_ROUNDS}, got {self.salt_rounds}"
            )
        if self.min_length < 1:
            raise ConfigurationError("Minimum password length must be at least 1")


@dataclass(frozen=True)
class AuthConfig:
    """
    Complete, read-only authentication configuration.

    Built once at process start (usually via from_settings) and handed to
    the services that need it.
    """

    tokens: TokenConfig
    password: PasswordPolicy = field(default_factory=PasswordPolicy)
    environment: str = "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_settings(cls, settings: Settings) -> "AuthConfig":
        """
        Build an AuthConfig from environment settings.

        Raises:
            ConfigurationError: If the settings are unusable for the
                current environment
        """
        environment = settings.APP_ENV
        access_secret = settings.JWT_ACCESS_SECRET
        refresh_secret = settings.JWT_REFRESH_SECRET

        if environment == "production":
            if len(access_secret) < MIN_PRODUCTION_SECRET_LENGTH:
                raise ConfigurationError(
                    "JWT_ACCESS_SECRET must be at least "
                    f"{MIN_PRODUCTION_SECRET_LENGTH} characters in production"
                )
            if len(refresh_secret) < MIN_PRODUCTION_SECRET_LENGTH:
                raise ConfigurationError(
                    "JWT_REFRESH_SECRET must be at least "
                    f"{MIN_PRODUCTION_SECRET_LENGTH} characters in production"
                )
        else:
            if not access_secret:
                logger.warning("JWT_ACCESS_SECRET not set, using development secret")
                access_secret = DEV_ACCESS_SECRET
            if not refresh_secret:
                logger.warning("JWT_REFRESH_SECRET not set, using development secret")
                refresh_secret = DEV_REFRESH_SECRET

        if settings.BCRYPT_SALT_ROUNDS < RECOMMENDED_MIN_SALT_ROUNDS:
            logger.warning(
                "BCRYPT_SALT_ROUNDS=%d is below the recommended minimum of %d",
                settings.BCRYPT_SALT_ROUNDS,
                RECOMMENDED_MIN_SALT_ROUNDS,
            )

        config = cls(
            tokens=TokenConfig(
                access_secret=access_secret,
                refresh_secret=refresh_secret,
                access_ttl=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
                refresh_ttl=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
                issuer=settings.JWT_ISSUER,
                audience=settings.JWT_AUDIENCE,
                algorithm=settings.JWT_ALGORITHM,
                leeway_seconds=settings.JWT_LEEWAY_SECONDS,
            ),
            password=PasswordPolicy(
                salt_rounds=settings.BCRYPT_SALT_ROUNDS,
                min_length=settings.PASSWORD_MIN_LENGTH,
                require_uppercase=settings.PASSWORD_REQUIRE_UPPERCASE,
                require_lowercase=settings.PASSWORD_REQUIRE_LOWERCASE,
                require_digit=settings.PASSWORD_REQUIRE_DIGIT,
                require_special=settings.PASSWORD_REQUIRE_SPECIAL,
                reject_common=settings.PASSWORD_REJECT_COMMON,
            ),
            environment=environment,
        )

        logger.info("Authentication configuration loaded: %s", config.masked())
        return config

    def masked(self) -> Dict[str, Any]:
        """Return a view of the configuration that is safe to log."""
        return {
            "environment": self.environment,
            "tokens": {
                "access_secret": "***",
                "refresh_secret": "***",
                "access_ttl_seconds": int(self.tokens.access_ttl.total_seconds()),
                "refresh_ttl_seconds": int(self.tokens.refresh_ttl.total_seconds()),
                "issuer": self.tokens.issuer,
                "audience": self.tokens.audience,
                "algorithm": self.tokens.algorithm,
                "leeway_seconds": self.tokens.leeway_seconds,
            },
            "password": {
                "salt_rounds": self.password.salt_rounds,
                "min_length": self.password.min_length,
                "require_uppercase": self.password.require_uppercase,
                "require_lowercase": self.password.require_lowercase,
                "require_digit": self.password.require_digit,
                "require_special": self.password.require_special,
                "reject_common": self.password.reject_common,
            },
        }
