"""
Request context middleware.
Assigns a request id, rejects oversized bodies and logs every request with its duration.
"""

from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
import logging
import time
import uuid

from rentals.services.error_handler import ErrorHandlerService
from rentals.utils.exceptions import BadRequestError

logger = logging.getLogger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Stamps ``X-Request-ID`` and ``X-Process-Time`` on every response.

    The request id is stored on ``request.state`` so error responses carry
    the same id as the response header.
    """

    def __init__(
        self,
        app: ASGIApp,
        max_request_size: int = 10 * 1024 * 1024,
        enable_request_logging: bool = True
    ):
        super().__init__(app)
        self.max_request_size = max_request_size
        self.enable_request_logging = enable_request_logging

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())[:8]
        request.state.request_id = request_id
        start_time = time.perf_counter()

        try:
            self._validate_request_size(request)
        except BadRequestError as exc:
            response = ErrorHandlerService.handle_api_exception(exc, request)
        else:
            response = await call_next(request)

        processing_time = time.perf_counter() - start_time
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{processing_time:.4f}"

        if self.enable_request_logging:
            log = logger.warning if response.status_code >= 500 else logger.info
            log(
                f"{request.method} {request.url.path} -> {response.status_code} ({processing_time:.3f}s) [{request_id}]",
                extra={
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "processing_time": processing_time,
                }
            )
        return response

    def _validate_request_size(self, request: Request) -> None:
        content_length = request.headers.get("content-length")
        if not content_length:
            return
        try:
            size = int(content_length)
        except ValueError:
            raise BadRequestError("Invalid content-length header")
        if size > self.max_request_size:
            raise BadRequestError(
                f"Request size {size} bytes exceeds maximum allowed size {self.max_request_size} bytes"
            )
