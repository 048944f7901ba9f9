"""FastAPI application factory."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Response, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from koma.api.routes import system, token
from koma.core import timezone  # noqa: F401
from koma.core.config import Settings, configure_logging
from koma.core.database import dispose_db_session, setup_db_session
from koma.core.timezone import utc_now
from koma.services.indexer.service import IndexerService
from koma.services.subgraph.client import SubgraphClient
from koma.uow import create_uow_factory

logger = structlog.get_logger()

SERVICE_NAME = "koma-indexer"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager.

    Handles startup and shutdown tasks:
    - Startup: configure logging, create the session and UoW factories, then
      run one catch-up poll and start the indexer loops before serving
    - Shutdown: stop the indexer loops, close the subgraph client and dispose
      the connection pool
    """
    settings = Settings()  # type: ignore[call-arg]
    configure_logging(settings)

    session_factory = setup_db_session(settings.database_url, settings.db_pool_size)
    uow_factory = create_uow_factory(session_factory)

    app.state.session_factory = session_factory
    app.state.uow_factory = uow_factory
    app.state.indexer = None

    if settings.indexer_enabled:
        client = SubgraphClient(settings.subgraph_url, timeout=settings.subgraph_timeout_seconds)
        indexer = IndexerService(client, uow_factory, settings)
        await indexer.start()
        app.state.indexer = indexer
    else:
        logger.warning("startup.indexer_disabled")

    logger.info("application.startup", db_url=settings.database_url.split("@")[-1])

    yield

    logger.info("application.shutdown")
    if app.state.indexer is not None:
        await app.state.indexer.stop()
    await dispose_db_session(session_factory)


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    settings = Settings()  # type: ignore[call-arg]

    app = FastAPI(
        title="KOMA Token Indexer API",
        description="Mirrors KOMA token events and serves dashboard analytics",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(token.router)  # prefix="/api/token" in definition
    app.include_router(system.router)  # prefix="/api/system" in definition

    @app.get("/health")
    async def health_check(response: Response):
        """Health check endpoint with database connectivity test.

        Returns:
            200: {"status": "healthy", ...} if database connection succeeds
            503: {"status": "unhealthy", "error": {...}} if database connection fails
        """
        try:
            async with app.state.session_factory() as session:
                result = await session.execute(text("SELECT 1"))
                result.scalar()

            logger.debug("health_check.success")
            return {
                "status": "healthy",
                "timestamp": utc_now().isoformat(),
                "service": SERVICE_NAME,
            }

        except Exception as e:
            logger.error(
                "health_check.failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
            return {
                "status": "unhealthy",
                "timestamp": utc_now().isoformat(),
                "service": SERVICE_NAME,
                "error": {
                    "type": type(e).__name__,
                    "message": str(e),
                },
            }

    return app


# Create app instance for uvicorn
app = create_app()
