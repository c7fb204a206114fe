import time
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from movie_night.core.trace import new_trace_id, set_trace_id

alog = logging.getLogger("access")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Fresh trace id per gateway request plus one JSON access record."""

    async def dispatch(self, request: Request, call_next):
        trace_id = request.headers.get("X-Trace-Id")
        if trace_id:
            set_trace_id(trace_id)
        else:
            trace_id = new_trace_id()
        start = time.perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            response.headers["X-Trace-Id"] = trace_id
            return response
        finally:
            dur_ms = int((time.perf_counter() - start) * 1000)
            alog.info(
                "access",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status": status,
                    "latency_ms": dur_ms,
                    "client_ip": request.client.host
                    if request.client else None,
                },
            )
