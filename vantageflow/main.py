import logging

from fastapi import FastAPI

from vantageflow.api.routes.health import router as health_router
from vantageflow.api.routes.heatmap import router as heatmap_router
from vantageflow.api.routes.projects import router as projects_router
from vantageflow.core.middleware import HeatmapRateLimitMiddleware
from vantageflow.core.observability import configure_logging
from vantageflow.core.observability import init_sentry
from vantageflow.settings import Settings


logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Build the VantageFlow API with observability and rate limiting."""

    settings = Settings()
    configure_logging(settings)
    init_sentry(settings)

    app = FastAPI(title="VantageFlow")
    app.add_middleware(
        HeatmapRateLimitMiddleware,
        requests_per_window=settings.rate_limit_per_minute,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.include_router(health_router)
    app.include_router(heatmap_router)
    app.include_router(projects_router)

    logger.info("VantageFlow API created (environment=%s)", settings.environment)
    return app


app = create_app()
