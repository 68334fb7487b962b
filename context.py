import logging
import time
import uuid
from contextvars import ContextVar

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("socialfeed.requests")

request_id_context: ContextVar[str] = ContextVar("request_id", default="-")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tag each request with an ID and log how it finished"""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        token = request_id_context.set(request_id)
        start = time.perf_counter()
        try:
            response = await call_next(request)
            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.info("[%s] %s %s -> %s (%.1f ms)",
                        request_id, request.method, request.url.path, response.status_code, elapsed_ms)
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            request_id_context.reset(token)


def current_request_id() -> str:
    return request_id_context.get()
