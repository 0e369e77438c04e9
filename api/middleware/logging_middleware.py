"""
FastAPI middleware for request logging with API call dividers and timing.

Every request gets a short request id (taken from an incoming X-Request-ID
header when the client sends one), echoed back in the response headers.
"""

import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from core.logging_config import get_logger, get_llm_logger

logger = get_logger(__name__)
llm_logger = get_llm_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs the start and end of every API call"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())[:8]
        request.state.request_id = request_id
        endpoint = request.url.path

        llm_logger.log_api_call_start(endpoint=endpoint, method=request.method, request_id=request_id)
        start_time = time.time()

        try:
            response = await call_next(request)
        except Exception as e:
            llm_logger.log_api_call_end(
                endpoint=endpoint,
                method=request.method,
                request_id=request_id,
                duration_ms=(time.time() - start_time) * 1000,
                status=f"error: {e}"
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        if response.status_code >= 400:
            status = f"error ({response.status_code})"
        else:
            status = f"success ({response.status_code})"

        llm_logger.log_api_call_end(
            endpoint=endpoint,
            method=request.method,
            request_id=request_id,
            duration_ms=duration_ms,
            status=status
        )

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"
        return response


def add_logging_middleware(app):
    """Add logging middleware to FastAPI app"""
    app.add_middleware(LoggingMiddleware)
    logger.info("🔧 Logging middleware added to FastAPI app")
