"""
HR Portal - Authentication Models

Roles, the role hierarchy, and the identity values produced by token
verification.

Security:
- Principal and RefreshPrincipal are only built by TokenService after a
  successful verification; they are frozen for the life of a request
- Nothing here is persisted; the persistence layer owns users and hashes
"""

from enum import Enum
from typing import Dict, Optional, Union

from pydantic import BaseModel, Field


class Role(str, Enum):
    """
    User roles for access control.

    HR_ADMIN > MANAGER > EMPLOYEE (see ROLE_HIERARCHY).
    """
    HR_ADMIN = "HR_ADMIN"
    MANAGER = "MANAGER"
    EMPLOYEE = "EMPLOYEE"


# Higher number = more authority
ROLE_HIERARCHY: Dict[Role, int] = {
    Role.HR_ADMIN: 3,
    Role.MANAGER: 2,
    Role.EMPLOYEE: 1,
}

_missing_levels = set(Role) - set(ROLE_HIERARCHY)
if _missing_levels:
    raise RuntimeError(
        "ROLE_HIERARCHY has no level for: "
        + ", ".join(sorted(role.value for role in _missing_levels))
    )


def parse_role(value: Union[Role, str]) -> Role:
    """
    Convert a role name to a Role (case-insensitive).

    Raises:
        ValueError: If the value is not a recognised role
    """
    if isinstance(value, Role):
        return value
    if isinstance(value, str):
        value = value.strip().upper()
    return Role(value)


def role_level(role: Union[Role, str]) -> int:
    """Return the hierarchy level for a role."""
    return ROLE_HIERARCHY[parse_role(role)]


class Principal(BaseModel):
    """
    Verified identity attached to a request after authentication.

    Available in route handlers via Depends(authenticate).
    """
    user_id: str
    email: str
    role: Role
    issued_at: int = Field(..., description="Epoch seconds")
    expires_at: int = Field(..., description="Epoch seconds")
    token_id: Optional[str] = Field(None, description="Access token jti for log correlation")

    class Config:
        frozen = True


class RefreshPrincipal(BaseModel):
    """Verified identity carried by a refresh token."""
    user_id: str
    email: str
    token_id: str = Field(..., description="Refresh token jti")
    issued_at: int
    expires_at: int

    class Config:
        frozen = True


class TokenPair(BaseModel):
    """Access/refresh token pair returned at login and on refresh."""
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int = Field(..., description="Seconds until the access token expires")
    refresh_expires_in: int = Field(..., description="Seconds until the refresh token expires")


class RequestContext(BaseModel):
    """
    Per-request authentication context.

    Created by the authentication dependencies and read by the
    authorization dependency; principal is None when the request is
    anonymous.
    """
    correlation_id: str
    method: str
    path: str
    principal: Optional[Principal] = None

    class Config:
        frozen = True

    @property
    def is_authenticated(self) -> bool:
        return self.principal is not None
