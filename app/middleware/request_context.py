"""Request id propagation and access logging."""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

access_logger = logging.getLogger("app.access")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    - Accepts an inbound X-Request-ID or generates a UUIDv4.
    - Stores it in request.state.request_id and echoes it on the response.
    - Writes one access log line per request.
    """

    header_name = "X-Request-ID"

    def __init__(self, app, *, exclude_paths: set[str] | None = None):
        super().__init__(app)
        self._exclude = exclude_paths or set()

    async def dispatch(self, request: Request, call_next):
        inbound = request.headers.get("x-request-id")
        request_id = (inbound.strip() if inbound else "") or str(uuid.uuid4())
        request.state.request_id = request_id

        start = time.perf_counter()
        path = request.url.path
        client_ip = request.client.host if request.client else None
        try:
            response = await call_next(request)
        except Exception:
            access_logger.exception(
                "%s %s failed after %.1fms [%s]",
                request.method, path, (time.perf_counter() - start) * 1000, request_id,
            )
            raise

        response.headers[self.header_name] = request_id
        if path not in self._exclude:
            access_logger.info(
                "%s %s %s %.1fms ip=%s user=%s [%s]",
                request.method,
                path,
                response.status_code,
                (time.perf_counter() - start) * 1000,
                client_ip,
                getattr(request.state, "user_id", None),
                request_id,
            )
        return response
