"""Request and response logging with sensitive values removed."""

import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from omnichat.core.config.settings import settings
from omnichat.core.logging.logger import get_logger

SENSITIVE_HEADERS = frozenset(
    {"authorization", "cookie", "set-cookie", "x-api-key", "x-hub-signature-256"}
)
SENSITIVE_QUERY_PARAMS = frozenset({"hub.verify_token", "access_token"})
SKIP_PATHS = ("/health", "/docs", "/redoc", "/openapi.json", "/favicon.ico")


def redact_query(params: dict[str, str]) -> dict[str, str]:
    return {k: ("***" if k in SENSITIVE_QUERY_PARAMS else v) for k, v in params.items()}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        start_time = time.time()
        logger = get_logger(__name__)
        skip = request.url.path.startswith(SKIP_PATHS)

        if not skip:
            logger.debug(
                f"Incoming {request.method} {request.url.path} "
                f"query={redact_query(dict(request.query_params))}"
            )

        response = await call_next(request)
        process_time = time.time() - start_time

        if settings.is_development:
            response.headers["X-Process-Time"] = str(round(process_time * 1000, 2))

        if not skip:
            message = (
                f"{request.method} {request.url.path} → {response.status_code} "
                f"({process_time * 1000:.1f}ms)"
            )
            if response.status_code >= 500:
                logger.error(message)
            elif response.status_code >= 400:
                logger.warning(message)
            else:
                logger.info(message)

        return response
