"""
Request tracing middleware
"""
import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from ecobid.core.logging_config import generate_trace_id, set_trace_id

logger = logging.getLogger(__name__)

TRACE_HEADER = "X-Trace-ID"


class TracingMiddleware(BaseHTTPMiddleware):
    """Tags every request with a trace ID that flows into the JSON logs"""

    async def dispatch(self, request: Request, call_next):
        trace_id = request.headers.get(TRACE_HEADER) or generate_trace_id()
        set_trace_id(trace_id)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code}",
            extra={
                "user_id": request.headers.get("X-User-Id"),
                "status": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )

        response.headers[TRACE_HEADER] = trace_id
        return response
