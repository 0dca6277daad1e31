"""
HR Portal - Test Configuration

Pytest fixtures for authentication and authorization testing.
Provides a fixed configuration, services, a controllable clock and a test
application with protected routes.
"""

from typing import Callable, Dict, Generator, Optional

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from hrportal.app import create_app
from hrportal.auth.dependencies import authenticate, authenticate_optional
from hrportal.auth.models import Principal, RequestContext, Role
from hrportal.auth.password import PasswordService
from hrportal.auth.tokens import TokenService
from hrportal.config import AuthConfig, PasswordPolicy, Settings, TokenConfig
from hrportal.gateway.rbac import (
    Authorize,
    authorize_hr_admin,
    authorize_management,
    require_owner_or_elevated,
)


TEST_ACCESS_SECRET = "test-access-secret-with-at-least-32-chars"
TEST_REFRESH_SECRET = "test-refresh-secret-with-at-least-32-chars"

# Low work factor keeps bcrypt fast in tests
TEST_SALT_ROUNDS = 4

# Strong by the default policy and free of common weak patterns
STRONG_PASSWORD = "HorseBattery7"


class FakeClock:
    """Deterministic replacement for time.time."""

    def __init__(self, now: int = 1_700_000_000):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


@pytest.fixture
def token_config() -> TokenConfig:
    return TokenConfig(access_secret=TEST_ACCESS_SECRET, refresh_secret=TEST_REFRESH_SECRET)


@pytest.fixture
def auth_config(token_config) -> AuthConfig:
    return AuthConfig(
        tokens=token_config,
        password=PasswordPolicy(salt_rounds=TEST_SALT_ROUNDS),
        environment="test",
    )


@pytest.fixture
def password_service(auth_config) -> PasswordService:
    return PasswordService(auth_config.password)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def token_service(token_config, clock) -> TokenService:
    return TokenService(token_config, clock=clock)


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, APP_ENV="test", LOG_LEVEL="WARNING")


@pytest.fixture
def app(auth_config, settings) -> FastAPI:
    """Application with a handful of routes covering every protection style."""
    app = create_app(auth_config, settings=settings)

    @app.get("/me")
    async def me(context: RequestContext = Depends(authenticate)):
        return context.principal.model_dump(mode="json")

    @app.get("/admin", dependencies=[Depends(authenticate), Depends(authorize_hr_admin())])
    async def admin_only():
        return {"ok": True}

    @app.get("/employees", dependencies=[Depends(authenticate)])
    async def list_employees(principal: Principal = Depends(Authorize([Role.MANAGER, Role.HR_ADMIN]))):
        return {"ok": True, "role": principal.role.value}

    @app.get("/reports", dependencies=[Depends(authenticate), Depends(authorize_management())])
    async def reports():
        return {"ok": True}

    @app.get("/team", dependencies=[Depends(authenticate), Depends(Authorize(Role.MANAGER, hierarchy=True))])
    async def team():
        return {"ok": True}

    @app.get("/unguarded", dependencies=[Depends(authorize_hr_admin())])
    async def unguarded():
        return {"ok": True}

    @app.get("/announcements")
    async def announcements(context: RequestContext = Depends(authenticate_optional)):
        return {
            "authenticated": context.is_authenticated,
            "user_id": context.principal.user_id if context.principal else None,
        }

    @app.get("/profiles/{owner_id}")
    async def profile(owner_id: str, context: RequestContext = Depends(authenticate)):
        principal = require_owner_or_elevated(context, owner_id)
        return {"owner_id": owner_id, "viewer": principal.user_id}

    return app


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c


@pytest.fixture
def issue_token(app) -> Callable[..., str]:
    """Issue an access token with the application's own TokenService."""
    def _issue(role: Role = Role.EMPLOYEE, user_id: str = "u1", email: Optional[str] = None) -> str:
        service: TokenService = app.state.token_service
        return service.issue_access(user_id, email or f"{user_id}@example.com", role)
    return _issue


@pytest.fixture
def auth_headers() -> Callable[[str], Dict[str, str]]:
    """Create authorization headers for authenticated requests."""
    def _headers(access_token: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {access_token}"}
    return _headers
