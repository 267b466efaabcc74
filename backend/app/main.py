"""FastAPI application entrypoint and configuration.

This module provides the main FastAPI application factory that configures
logging, sets up CORS middleware, wires the map layer repository, installs
the error translators, mounts the map layer router under the configured
API prefix, and exposes a health check endpoint for monitoring.

Example:
    The application can be run with uvicorn:
        $ uvicorn app.main:app --reload

    Or built around an explicit repository, e.g. in tests:
        >>> from app.db import database
        >>> from app.main import create_app
        >>> app = create_app(database.InMemoryMapLayerRepository())
"""

from __future__ import annotations

import contextlib
import logging
from typing import TYPE_CHECKING

import fastapi
from fastapi.middleware import cors

from app.api import errors, map_layers
from app.core import config
from app.core import logging as app_logging
from app.db import database

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


def create_app(
    repository: database.MapLayerRepositoryProtocol | None = None,
) -> fastapi.FastAPI:
    """Create and configure the FastAPI application.

    When no repository is given, a PostGIS repository is built from
    settings on startup and its connection pool is closed on shutdown.
    A repository passed in is used as-is and left open.

    Args:
        repository: Optional pre-built repository to serve requests from.

    Returns:
        Configured FastAPI application instance ready for ASGI server.
    """
    settings = config.get_settings()
    app_logging.configure_logging(settings.log_level)

    @contextlib.asynccontextmanager
    async def lifespan(app: fastapi.FastAPI) -> AsyncIterator[None]:
        if repository is not None:
            yield
            return

        repo = database.get_map_layer_repository(settings)
        app.state.map_layer_repository = repo
        logger.info("Map layer repository ready")
        try:
            yield
        finally:
            close = getattr(repo, "close", None)
            if close is not None:
                close()
            logger.info("Map layer repository closed")

    app = fastapi.FastAPI(title="Map Layers", version="0.1.0", lifespan=lifespan)
    if repository is not None:
        app.state.map_layer_repository = repository

    app.include_router(map_layers.router, prefix=settings.api_prefix)
    errors.register_exception_handlers(app)

    app.add_middleware(
        cors.CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health() -> dict[str, str]:  # type: ignore[misc]
        """Health check endpoint for monitoring and load balancers.

        Returns:
            Dictionary with status "ok" if the service is running.
        """
        return {"status": "ok"}

    return app


app = create_app()
