from __future__ import annotations

import logging
import time
import uuid
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from followgraph.structured_logging import log_event


class RequestLogMiddleware(BaseHTTPMiddleware):
    """One structured log line per HTTP request, tagged with x-request-id."""

    def __init__(self, app, *, enabled: bool = True) -> None:
        super().__init__(app)
        self._enabled = enabled
        self._logger = logging.getLogger("followgraph.http")

    async def dispatch(self, request: Request, call_next):
        if not self._enabled:
            return await call_next(request)

        started = time.monotonic()
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        request.state.request_id = request_id

        status = 500
        err: Optional[str] = None
        response: Optional[Response] = None

        try:
            response = await call_next(request)
            status = int(getattr(response, "status_code", 200) or 200)
            return response
        except Exception as e:
            err = str(e)
            raise
        finally:
            log_event(
                self._logger,
                "http_request",
                request_id=request_id,
                method=request.method,
                path=str(request.url.path or ""),
                status=status,
                duration_ms=int((time.monotonic() - started) * 1000),
                client=str(request.client.host) if request.client else "",
                error=err,
            )
            if response is not None:
                response.headers.setdefault("x-request-id", request_id)
