"""
FastAPI application factory.

The lifespan sets up logging, starts the service container and exposes it
as ``app.state.services`` for the route dependencies.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from omnichat.api.middleware.error_handler import ErrorHandlerMiddleware
from omnichat.api.middleware.request_logging import RequestLoggingMiddleware
from omnichat.api.routes.campaigns import router as campaigns_router
from omnichat.api.routes.conversations import router as conversations_router
from omnichat.api.routes.health import router as health_router
from omnichat.api.routes.webhooks import router as webhooks_router
from omnichat.core.config.settings import Settings, settings
from omnichat.core.container import ServiceContainer
from omnichat.core.exceptions import OmnichatError
from omnichat.core.logging.logger import get_app_logger, setup_app_logging
from omnichat.models.enums import ErrorCode

ERROR_STATUS: dict[ErrorCode, int] = {
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.INVALID_STATE: 409,
    ErrorCode.SIGNATURE_VALIDATION_FAILED: 401,
    ErrorCode.VERIFICATION_FAILED: 403,
    ErrorCode.CREDENTIALS_MISSING: 424,
    ErrorCode.TEMPLATE_SYNC_FAILED: 422,
}


async def omnichat_error_handler(request: Request, exc: OmnichatError) -> JSONResponse:
    return JSONResponse(
        status_code=ERROR_STATUS.get(exc.error_code, 500),
        content={"error": exc.message, "code": exc.error_code.value},
    )


def create_app(
    container: ServiceContainer | None = None,
    app_settings: Settings | None = None,
    *,
    configure_logging: bool = True,
) -> FastAPI:
    config = app_settings or settings
    services = container or ServiceContainer(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if configure_logging:
            setup_app_logging()
        logger = get_app_logger()
        logger.info(f"🚀 Starting Omnichat v{config.version} ({config.environment})")

        await services.start()
        app.state.services = services
        try:
            yield
        finally:
            logger.info("🛑 Shutting down Omnichat")
            await services.close()

    app = FastAPI(
        title="Omnichat",
        version=config.version,
        lifespan=lifespan,
        docs_url="/docs" if config.is_development else None,
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_exception_handler(OmnichatError, omnichat_error_handler)

    app.include_router(health_router)
    app.include_router(webhooks_router)
    app.include_router(campaigns_router)
    app.include_router(conversations_router)
    return app
