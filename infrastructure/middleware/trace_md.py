import time
import uuid
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from infrastructure.logging.logger import get_logger, reset_trace_id, set_trace_id

logger = get_logger("http")


class TraceMiddleware(BaseHTTPMiddleware):
    """Assigns a trace id per request (X-Trace-ID) and logs request timing."""

    async def dispatch(self, request: Request, call_next):
        trace_id = request.headers.get("X-Trace-ID") or uuid.uuid4().hex
        request.state.trace_id = trace_id
        token = set_trace_id(trace_id)
        started = time.perf_counter()
        try:
            logger.info(f"{request.method} {request.url.path} started")
            response = await call_next(request)
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.2f}ms)")
            response.headers["X-Trace-ID"] = trace_id
            return response
        except Exception as exc:
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.error(f"{request.method} {request.url.path} failed: {exc} ({elapsed_ms:.2f}ms)")
            raise
        finally:
            reset_trace_id(token)
