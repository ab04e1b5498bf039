from __future__ import annotations

import time
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..logging import get_logger

log = get_logger("scb_gateway.api")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


class CorsHeadersMiddleware(BaseHTTPMiddleware):
    """Attach permissive cross-origin headers to every response.

    ``OPTIONS`` preflights are answered here with an empty 200 and never
    reach a route, so they cannot trigger an upstream call.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=CORS_HEADERS)
        response: Response = await call_next(request)
        for name, value in CORS_HEADERS.items():
            response.headers[name] = value
        return response


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Structured access logging. Request bodies are never logged."""

    async def dispatch(self, request: Request, call_next: Callable):
        start = time.monotonic()
        response: Optional[Response] = None
        try:
            response = await call_next(request)
            return response
        finally:
            log.info(
                "api_request",
                method=request.method,
                path=request.url.path,
                status_code=getattr(response, "status_code", None),
                duration_ms=int((time.monotonic() - start) * 1000),
            )
