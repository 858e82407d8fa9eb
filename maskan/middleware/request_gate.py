"""
Request gate middleware: request IDs, body size limit and request logging.
"""

from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
import logging
import time
import uuid

from maskan.services.error_handler import ErrorHandlerService
from maskan.utils.exceptions import BadRequestError

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestGateMiddleware(BaseHTTPMiddleware):
    """
    Tags every request with an ID, refuses oversize bodies before they are
    read and logs method, path, status and processing time.

    The body limit is checked against Content-Length only; per-file limits
    are enforced by the upload pipeline while reading parts.
    """

    def __init__(
        self,
        app: ASGIApp,
        max_request_size: int = 110 * 1024 * 1024,
        enable_request_logging: bool = True
    ):
        super().__init__(app)
        self.max_request_size = max_request_size
        self.enable_request_logging = enable_request_logging

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        request.state.request_id = request_id
        start_time = time.perf_counter()

        try:
            self._check_request_size(request)
        except BadRequestError as exc:
            response = ErrorHandlerService.handle_api_exception(exc, request)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id

        if self.enable_request_logging:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code} "
                f"in {elapsed_ms:.1f}ms [{request_id}]"
            )
        return response

    def _check_request_size(self, request: Request) -> None:
        """
        Raises:
            BadRequestError: If Content-Length is malformed or over the limit
        """
        content_length = request.headers.get("content-length")
        if not content_length:
            return
        try:
            size = int(content_length)
        except ValueError:
            raise BadRequestError("Invalid content-length header")
        if size > self.max_request_size:
            max_mb = self.max_request_size / (1024 * 1024)
            raise BadRequestError(
                f"Request body of {size} bytes exceeds the {max_mb:.0f}MB limit",
                error_code="REQUEST_TOO_LARGE"
            )
