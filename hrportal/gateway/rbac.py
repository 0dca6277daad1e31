"""
HR Portal - Role-Based Access Control (RBAC)

Route-level authorization on top of the authenticated Principal.

Two strategies:
- Exact set: the caller's role must be one of the listed roles
- Hierarchy: the caller's role must rank at or above a single minimum
  role in ROLE_HIERARCHY (HR_ADMIN > MANAGER > EMPLOYEE)

Security:
- Deny-by-default: a request without a principal is answered with 401
- Misconfiguration (unknown or empty roles) fails at construction, not per request
- All authorization decisions are logged
"""

import logging
from typing import Iterable, List, Optional, Tuple, Union

from fastapi import Depends

from hrportal.auth.dependencies import get_request_context
from hrportal.auth.models import ROLE_HIERARCHY, Principal, RequestContext, Role, parse_role
from hrportal.errors import AuthorizationDenied, ConfigurationError


logger = logging.getLogger(__name__)


RoleLike = Union[Role, str]


def _parse_roles(roles: Union[RoleLike, Iterable[RoleLike]]) -> Tuple[Role, ...]:
    if isinstance(roles, (Role, str)):
        roles = [roles]
    try:
        candidates = list(roles)
    except TypeError:
        raise ConfigurationError(f"Roles must be a role or an iterable of roles, got {roles!r}")

    if not candidates:
        raise ConfigurationError("Authorization requires at least one role")

    parsed: List[Role] = []
    for candidate in candidates:
        try:
            role = parse_role(candidate)
        except ValueError:
            valid = ", ".join(role.value for role in Role)
            raise ConfigurationError(f"Invalid role {candidate!r}. Must be one of: {valid}")
        if role not in parsed:
            parsed.append(role)
    return tuple(parsed)


class Authorize:
    """
    FastAPI dependency enforcing a role requirement.

    Usage:
        @app.get("/employees", dependencies=[Depends(authenticate), Depends(Authorize([Role.HR_ADMIN, Role.MANAGER]))])

        @app.get("/team")
        async def team(principal: Principal = Depends(Authorize(Role.MANAGER, hierarchy=True))):
            ...

    Args:
        roles: A role, a role name, or an iterable of either
        hierarchy: Treat the single given role as a minimum level

    Raises:
        ConfigurationError: On empty or unknown roles, or hierarchy mode
            with more than one role
    """

    def __init__(self, roles: Union[RoleLike, Iterable[RoleLike]], *, hierarchy: bool = False):
        self._roles = _parse_roles(roles)
        if hierarchy and len(self._roles) != 1:
            raise ConfigurationError("Hierarchy authorization takes exactly one minimum role")
        self._hierarchy = hierarchy

    @property
    def hierarchy(self) -> bool:
        return self._hierarchy

    @property
    def required_roles(self) -> List[str]:
        """Roles that satisfy this requirement, as reported to clients."""
        if not self._hierarchy:
            return [role.value for role in self._roles]
        return [role.value for role in sorted(Role, key=ROLE_HIERARCHY.get, reverse=True) if self.allows(role)]

    def allows(self, role: RoleLike) -> bool:
        try:
            role = parse_role(role)
        except ValueError:
            return False
        if self._hierarchy:
            return ROLE_HIERARCHY[role] >= ROLE_HIERARCHY[self._roles[0]]
        return role in self._roles

    def check(self, context: RequestContext) -> Principal:
        """
        Decide a request.

        Returns:
            The authorized Principal

        Raises:
            AuthorizationDenied 401: No principal on the request
            AuthorizationDenied 403: Principal's role is not accepted
        """
        principal = context.principal
        if principal is None:
            logger.warning(
                "Authorization failed (UNAUTHENTICATED): correlation_id=%s method=%s path=%s",
                context.correlation_id,
                context.method,
                context.path,
            )
            raise AuthorizationDenied(
                "UNAUTHENTICATED",
                "Authentication required",
                status_code=401,
                required_roles=self.required_roles,
            )

        if not self.allows(principal.role):
            logger.warning(
                "Authorization failed (FORBIDDEN): correlation_id=%s method=%s path=%s "
                "user_id=%s role=%s required=%s",
                context.correlation_id,
                context.method,
                context.path,
                principal.user_id,
                principal.role.value,
                self.required_roles,
            )
            raise AuthorizationDenied(
                "FORBIDDEN",
                "Insufficient permissions",
                user_role=principal.role.value,
                required_roles=self.required_roles,
            )

        logger.info(
            "Authorization succeeded: correlation_id=%s path=%s user_id=%s role=%s",
            context.correlation_id,
            context.path,
            principal.user_id,
            principal.role.value,
        )
        return principal

    def __call__(self, context: RequestContext = Depends(get_request_context)) -> Principal:
        return self.check(context)

    def __repr__(self) -> str:
        mode = "hierarchy" if self._hierarchy else "exact"
        return f"Authorize({[role.value for role in self._roles]}, {mode})"


def authorize_hr_admin() -> Authorize:
    """HR administrators only."""
    return Authorize([Role.HR_ADMIN])


def authorize_management() -> Authorize:
    """HR administrators and managers."""
    return Authorize([Role.HR_ADMIN, Role.MANAGER])


def authorize_any() -> Authorize:
    """Any authenticated user."""
    return Authorize([Role.HR_ADMIN, Role.MANAGER, Role.EMPLOYEE])


def is_owner_or_elevated(
    principal: Optional[Principal],
    owner_id: str,
    elevated: Union[RoleLike, Iterable[RoleLike]] = Role.HR_ADMIN,
) -> bool:
    """
    Check whether a principal owns a resource or holds an elevated role.

    e.g. an employee viewing their own profile, or an HR admin viewing anyone's.
    """
    if principal is None:
        return False
    if owner_id is not None and principal.user_id == str(owner_id):
        return True
    return principal.role in _parse_roles(elevated)


def require_owner_or_elevated(
    context: RequestContext,
    owner_id: str,
    elevated: Union[RoleLike, Iterable[RoleLike]] = Role.HR_ADMIN,
) -> Principal:
    """
    Enforce the owner-or-elevated rule inside a route handler.

    Raises:
        AuthorizationDenied: 401 without a principal, 403 when the caller
            neither owns the resource nor holds an elevated role
    """
    principal = context.principal
    if principal is None:
        raise AuthorizationDenied("UNAUTHENTICATED", "Authentication required", status_code=401)

    if not is_owner_or_elevated(principal, owner_id, elevated):
        logger.warning(
            "Ownership check failed: correlation_id=%s path=%s user_id=%s owner_id=%s",
            context.correlation_id,
            context.path,
            principal.user_id,
            owner_id,
        )
        raise AuthorizationDenied(
            "FORBIDDEN",
            "Insufficient permissions",
            user_role=principal.role.value,
            required_roles=[role.value for role in _parse_roles(elevated)],
        )
    return principal
