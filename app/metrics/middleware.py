import time
from typing import Awaitable, Callable

from fastapi import Request, Response
from opentelemetry.trace import SpanKind

from app.core.telemetry import get_tracer
from app.metrics.registry import IGNORED_PATHS, RequestMetrics


def resolve_route(request: Request) -> str:
    """Matched route template (e.g. /users/{id}) to bound label cardinality; raw path as fallback."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


async def record_request_metrics(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """
    Observes latency and outcome of every request outside IGNORED_PATHS.
    Recording happens on response start: the duration covers the handler up to the
    status line and headers, not the streaming of the body. The response itself is
    passed through untouched.
    """
    if request.url.path in IGNORED_PATHS:
        return await call_next(request)

    metrics: RequestMetrics = request.app.state.metrics
    start = time.perf_counter()
    status_code = 500

    with get_tracer().start_as_current_span(f"{request.method} {request.url.path}", kind=SpanKind.SERVER) as span:
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            route = resolve_route(request)
            span.update_name(f"{request.method} {route}")
            span.set_attribute("http.request.method", request.method)
            span.set_attribute("http.route", route)
            span.set_attribute("http.response.status_code", status_code)
            if route not in IGNORED_PATHS:
                metrics.observe(request.method, route, status_code, time.perf_counter() - start)
