"""
Request context middleware.

Assigns every request a correlation id, exposes it to handlers through
``request.state.request_id`` and returns it in the ``X-Request-ID``
header together with the processing time.
"""

import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from eventgate.config.logging import StructuredLogger
from eventgate.utils.helpers import get_client_ip

request_logger = StructuredLogger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware that tags requests with an id and timing information."""

    def __init__(self, app, debug_logging: bool = False):
        super().__init__(app)
        self.debug_logging = debug_logging

    async def dispatch(self, request: Request, call_next):
        """
        Process HTTP request with a fresh request id.

        Args:
            request: The incoming HTTP request
            call_next: The next middleware/handler in the chain

        Returns:
            Response: The HTTP response with correlation headers
        """
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = time.time()

        client_ip = get_client_ip(request)
        if self.debug_logging:
            request_logger.debug(
                f"{request.method} {request.url.path} from {client_ip}",
                request_id=request_id
            )

        response = await call_next(request)

        process_time = time.time() - start_time
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(round(process_time, 6))

        if self.debug_logging:
            request_logger.log_request(
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                response_time=round(process_time * 1000, 2),
                client_ip=client_ip,
                user_agent=request.headers.get("User-Agent"),
                request_id=request_id
            )

        return response
