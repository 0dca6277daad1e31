"""
HR Portal - Structured Error Responses

Renders authentication and authorization failures as

    {"success": false, "code": ..., "message": ..., "timestamp": ..., "path": ...}

Authorization failures add "userRole" and "requiredRoles" when known.
401 responses carry `WWW-Authenticate: Bearer`.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from hrportal.errors import AuthenticationError, AuthorizationDenied


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def error_body(request: Request, code: str, message: str) -> Dict[str, Any]:
    return {
        "success": False,
        "code": code,
        "message": message,
        "timestamp": _utc_timestamp(),
        "path": request.url.path,
    }


def _headers(status_code: int) -> Dict[str, str]:
    if status_code == 401:
        return {"WWW-Authenticate": "Bearer"}
    return {}


async def authentication_error_handler(request: Request, exc: AuthenticationError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(request, exc.code, exc.message),
        headers=_headers(exc.status_code),
    )


async def authorization_denied_handler(request: Request, exc: AuthorizationDenied) -> JSONResponse:
    body = error_body(request, exc.code, exc.message)
    if exc.user_role is not None:
        body["userRole"] = exc.user_role
    if exc.required_roles is not None:
        body["requiredRoles"] = exc.required_roles
    return JSONResponse(
        status_code=exc.status_code,
        content=body,
        headers=_headers(exc.status_code),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the JSON error handlers on an application."""
    app.add_exception_handler(AuthenticationError, authentication_error_handler)
    app.add_exception_handler(AuthorizationDenied, authorization_denied_handler)
