"""
HR Portal - FastAPI Application Factory

Wires the authentication core into a FastAPI application:
- CORS and correlation middleware
- Structured JSON error handlers
- Password and token services on app.state
- Health check

Route modules (employees, leave, appraisals, ...) are mounted by the
application that owns them and protect themselves with
Depends(authenticate) and Depends(Authorize(...)).
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hrportal import __version__
from hrportal.auth.password import PasswordService
from hrportal.auth.tokens import TokenService
from hrportal.config import AuthConfig, Settings, get_settings
from hrportal.gateway.errors import register_exception_handlers
from hrportal.gateway.middleware import REQUEST_ID_HEADER, CorrelationMiddleware


logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str) -> None:
    """Configure root logging once; later calls leave existing handlers alone."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
        - Report the (masked) authentication configuration

    Shutdown:
        - Nothing to release; the services hold no connections
    """
    logger.info(
        "HR Portal auth core starting (environment=%s)", app.state.auth_config.environment
    )
    yield
    logger.info("HR Portal auth core stopped")


def create_app(config: Optional[AuthConfig] = None, settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Explicit authentication configuration; built from settings when omitted
        settings: Environment settings; defaults to get_settings()

    Raises:
        ConfigurationError: If the configuration is unusable
    """
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)
    config = config or AuthConfig.from_settings(settings)

    app = FastAPI(
        title="HR Portal",
        description="Authentication and authorization core for the HR portal",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.auth_config = config
    app.state.password_service = PasswordService(config.password)
    app.state.token_service = TokenService(config.tokens)

    # CORS - restricted to the dashboard frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "PUT", "PATCH"],
        allow_headers=["Authorization", "Content-Type", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER],
    )

    # Correlation IDs must exist before any authentication dependency runs
    app.add_middleware(CorrelationMiddleware)

    register_exception_handlers(app)

    @app.get("/health")
    async def health_check():
        """Health check endpoint for local dev tooling."""
        return {
            "status": "healthy",
            "version": __version__,
            "environment": config.environment,
        }

    return app
