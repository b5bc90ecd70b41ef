"""FastAPI application entrypoint for Courtside."""

import logging

from fastapi import FastAPI

from .api.v1.router import api_router
from .core.config import get_settings
from .core.database import init_db
from .core.logging_config import configure_logging

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Instantiate and configure the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Courtside API", version="0.1.0")
    app.include_router(api_router, prefix="/api/v1")

    if settings.create_tables_on_startup:

        @app.on_event("startup")
        def create_tables() -> None:
            init_db()
            logger.info("session ledger tables ensured")

    return app


app = create_app()
