"""
HR Portal - Correlation Middleware

Request/response middleware for:
- Correlation ID propagation (X-Request-ID) for tracing
- Request logging with timing
- Security headers
"""

import logging
import re
import time
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


logger = logging.getLogger(__name__)


REQUEST_ID_HEADER = "X-Request-ID"

# Inbound IDs are echoed into headers and logs, so keep them to a safe alphabet
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Cache-Control": "no-store",
}


class CorrelationMiddleware(BaseHTTPMiddleware):
    """
    Assigns every request a correlation ID before authentication runs.

    Responsibilities:
    1. Reuse a well-formed inbound X-Request-ID, otherwise generate one
    2. Expose it as request.state.correlation_id
    3. Echo it on the response alongside security headers
    4. Log method, path, status and duration
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        inbound = request.headers.get(REQUEST_ID_HEADER)
        if inbound and _REQUEST_ID_RE.match(inbound):
            correlation_id = inbound
        else:
            correlation_id = str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        response.headers[REQUEST_ID_HEADER] = correlation_id
        for name, value in SECURITY_HEADERS.items():
            response.headers[name] = value

        logger.info(
            "%s %s -> %d (%.1fms) correlation_id=%s",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            correlation_id,
        )
        return response
