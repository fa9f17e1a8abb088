"""Request logging middleware for the store-profile API.

One line per HTTP request: method, path, status code, latency and a short
request ID. The ID is put on request.state so the profile router can echo
it in the ApiResponse envelope; clients quote it when reporting a failed
UpdateProfile or TransitionStatus. 5xx answers log at WARNING so pool
exhaustion and store outages stand out.

Log format:
    INFO [PATCH] /api/v1/profiles/123 → 409 (7ms) req_a1b2c3d4e5f6
    WARNING [GET] /api/v1/profiles/123 → 503 (2004ms) req_0f9e8d7c6b5a
"""

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("sp.request")


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request.state.request_id = f"req_{uuid.uuid4().hex[:12]}"

        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000

        log = logger.warning if response.status_code >= 500 else logger.info
        log(
            "[%s] %s → %d (%.0fms) %s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request.state.request_id,
        )
        return response
