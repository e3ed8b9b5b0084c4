"""FastAPI application entrypoint."""

from fastapi import FastAPI

from webpify.api import router as api_router
from webpify.core.config import Settings, get_settings
from webpify.core.logging import configure_logging, get_logger
from webpify.services.triggers import conversion_enabled

logger = get_logger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the API; conversion routes are mounted only when the scheduler gate passes."""

    settings = settings or get_settings()
    configure_logging(settings=settings)

    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.conversion_enabled = conversion_enabled(settings)

    if app.state.conversion_enabled:
        app.include_router(api_router.api_router, prefix=settings.api_v1_prefix)
    else:
        logger.error(
            "conversion_disabled",
            reason="set WEBPIFY_EXTERNAL_SCHEDULER=true once tasks are driven by a real scheduler",
            environment=settings.environment,
        )

    @app.get("/healthz", tags=["health"])
    def health_check() -> dict:
        """Simple health probe endpoint."""

        logger.debug("health_check_invoked")
        return {
            "status": "ok",
            "environment": settings.environment,
            "conversion_enabled": app.state.conversion_enabled,
        }

    return app


app = create_app()
