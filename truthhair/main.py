"""Process entry point: wire settings, database and cart storage into the API."""
from __future__ import annotations

import uvicorn
from fastapi import FastAPI

from truthhair.api.api_server import create_api_app
from truthhair.core.config import Settings, load_settings
from truthhair.core.logging_config import setup_logging
from truthhair_db import Database, safe_database_host

logger = setup_logging()


def build_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or load_settings()

    db = None
    if settings.database_url:
        db = Database(settings.database_url)
        db.init_db()
        logger.info("Database ready at ...@%s", safe_database_host(settings.database_url))
    else:
        logger.warning("DATABASE_URL is not set; starting without checkout persistence")

    return create_api_app(settings=settings, db=db)


def main() -> None:
    settings = load_settings()
    app = build_app(settings)
    logger.info("Starting storefront API on port %s", settings.port)
    uvicorn.run(app, host="0.0.0.0", port=settings.port, log_level="info")


if __name__ == "__main__":
    main()
