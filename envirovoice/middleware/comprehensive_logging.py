"""
Request logging middleware for the relay's HTTP surface.

Pure ASGI so websocket traffic passes straight through; the websocket
handler logs its own connection lifecycle.
"""

import time

from starlette.requests import Request
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class ComprehensiveLoggingMiddleware:
    """Logs start, completion and unhandled failures of every HTTP request."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)
        start_time = time.time()
        self._log_request_start(request)

        status_code = 500
        response_started = False

        async def send_with_logging(message: Message) -> None:
            nonlocal status_code, response_started

            if message["type"] == "http.response.start":
                status_code = message.get("status", 500)
                response_started = True

            await send(message)

        try:
            await self.app(scope, receive, send_with_logging)
            if response_started:
                self._log_request_completed(request, status_code, time.time() - start_time)
        except Exception as e:
            self._log_request_error(request, e, time.time() - start_time)
            raise

    def _log_request_start(self, request: Request) -> None:
        logger.debug(
            "HTTP request started",
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else "unknown",
            content_type=request.headers.get("content-type", "Not provided"),
        )

    def _log_request_completed(self, request: Request, status_code: int, process_time: float) -> None:
        # Game data arrives several times a second; keep successful posts out of info.
        log = logger.info if status_code >= 400 else logger.debug
        log(
            "HTTP request completed",
            method=request.method,
            path=request.url.path,
            status_code=status_code,
            process_time=process_time,
            client_ip=request.client.host if request.client else "unknown",
        )

    def _log_request_error(self, request: Request, error: Exception, process_time: float) -> None:
        logger.error(
            "Unhandled exception in request",
            path=request.url.path,
            method=request.method,
            error=str(error),
            process_time=process_time,
            client_ip=request.client.host if request.client else "unknown",
            exc_info=True,
        )
