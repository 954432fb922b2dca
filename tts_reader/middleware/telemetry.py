"""Request instrumentation feeding the Prometheus registry."""

from __future__ import annotations

import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from tts_reader.telemetry import observe_request

# Scrapes and probes would drown out API traffic in the histograms.
_UNINSTRUMENTED_PATHS = frozenset({"/metrics", "/health"})


class TelemetryMiddleware(BaseHTTPMiddleware):
    """Time each request and record it against its route template."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        if request.url.path in _UNINSTRUMENTED_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            observe_request(
                request.method,
                self._route_template(request),
                status_code,
                time.perf_counter() - started,
            )

        response.headers["X-Response-Time-Ms"] = f"{(time.perf_counter() - started) * 1000:.1f}"
        return response

    @staticmethod
    def _route_template(request: Request) -> str:
        """Prefer the matched route pattern so path parameters do not explode labels."""

        route = request.scope.get("route")
        path = getattr(route, "path", None)
        return path or request.url.path
