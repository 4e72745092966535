"""FastAPI application entrypoint and configuration.

This module provides the main FastAPI application factory that sets up
logging, CORS middleware, the live position API, the viewer's static
assets and a health check endpoint for monitoring. The position repository
and coordinate transformer are created once here and shared by every
request through ``app.state``.

Example:
    The application can be run with uvicorn:
        $ uvicorn position_server.main:app --reload

    Or through the installed console script, which reads HOST/PORT:
        $ live-position-server
"""

import contextlib
import logging
from collections.abc import AsyncIterator

import fastapi
import uvicorn
from fastapi.middleware import cors

from position_server.api import positions, static
from position_server.core import config
from position_server.db import database
from position_server.services import transform

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    """Configure root logging for the process."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


@contextlib.asynccontextmanager
async def lifespan(app: fastapi.FastAPI) -> AsyncIterator[None]:
    """Run the one-off database self-check before serving requests."""
    if app.state.settings.startup_check:
        database.check_connection(app.state.position_repository)
    yield
    logger.info("Shutting down live position server")


def create_app(
    settings: config.Settings | None = None,
    repository: database.PositionRepositoryProtocol | None = None,
) -> fastapi.FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to use; defaults to the cached environment settings.
        repository: Position repository; defaults to the PostgreSQL
            repository built from ``settings``.

    Returns:
        Configured FastAPI application instance ready for ASGI server.

    Example:
        Serve a fixed set of records without a database:
            >>> repo = database.InMemoryPositionRepository(records)
            >>> app = create_app(repository=repo)
    """
    settings = settings or config.get_settings()
    configure_logging(settings.log_level)

    app = fastapi.FastAPI(
        title="Live Position Server",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.position_repository = (
        repository or database.get_position_repository(settings)
    )
    app.state.coordinate_transformer = (
        transform.CoordinateTransformer.from_settings(settings)
    )

    app.add_middleware(
        cors.CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.allow_origins,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health() -> dict[str, str]:  # type: ignore[misc]
        """Health check endpoint for monitoring and load balancers.

        Returns:
            Dictionary with status "ok" if the service is running.
        """
        return {"status": "ok"}

    app.include_router(positions.router)
    app.include_router(static.router)
    if not static.mount_static(app, settings):
        logger.warning("Static directory not found: %s", settings.static_dir)

    return app


def run() -> None:
    """Start uvicorn on the configured host and port."""
    settings = config.get_settings()
    server_app = create_app(settings)
    logger.info("Server running at http://%s:%d", settings.host, settings.port)
    uvicorn.run(server_app, host=settings.host, port=settings.port)


app = create_app()


if __name__ == "__main__":
    run()
