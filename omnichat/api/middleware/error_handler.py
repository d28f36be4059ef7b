"""
Global error handling middleware.

Catches exceptions that escaped the routes and exception handlers, logs
them and returns a JSON 500. Internal details are only included in DEV.
"""

import time
import traceback
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from omnichat.core.config.settings import settings
from omnichat.core.logging.logger import get_logger


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            return self._handle_unexpected_exception(request, exc)

    def _handle_unexpected_exception(self, request: Request, exc: Exception) -> JSONResponse:
        logger = get_logger(__name__)
        logger.error(
            f"Unhandled exception in {request.method} {request.url.path}: {exc}",
            exc_info=True,
        )

        content: dict[str, Any]
        if request.url.path.startswith("/webhooks/"):
            content = {"error": "Webhook processing failed"}
        else:
            content = {"error": "Internal server error", "timestamp": time.time()}

        if settings.is_development:
            content["debug"] = {
                "exception_type": type(exc).__name__,
                "exception_message": str(exc),
                "traceback": traceback.format_exc().split("\n"),
            }

        return JSONResponse(status_code=500, content=content)
