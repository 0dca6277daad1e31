"""
HR Portal - Authentication Package

Stateless authentication with:
- bcrypt password hashing and strength validation
- Signed access/refresh JWT pairs with distinct keys
- FastAPI dependencies that attach a verified Principal to each request
"""

from hrportal.auth.models import Principal, RefreshPrincipal, RequestContext, Role, TokenPair
from hrportal.auth.password import PasswordService, StrengthResult
from hrportal.auth.tokens import TokenService
from hrportal.auth.dependencies import authenticate, authenticate_optional, get_request_context

__all__ = [
    "Principal",
    "RefreshPrincipal",
    "RequestContext",
    "Role",
    "TokenPair",
    "PasswordService",
    "StrengthResult",
    "TokenService",
    "authenticate",
    "authenticate_optional",
    "get_request_context",
]
