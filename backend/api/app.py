"""FastAPI application factory.

Lifespan
--------
On startup the app builds every shared, process-local object and stores it
on ``app.state``:

    db            single SQLite connection (schema initialised)
    cache         ResultCache for scrape / process results
    sessions      ResultCache holding login sessions
    rate_limiter  RateLimiter shared by all endpoints
    policy        UrlPolicy (allow / block lists)
    scraper       ScrapeService wired to ``cache`` and ``policy``

On shutdown the DB connection is closed.  Tests may replace any of these
after the TestClient has started.

Routers
-------
    /scrape              acquisition + normalization, selector extraction
    /process, /convert   LLM post-processing, format conversion
    /history             saved scrape tasks
    /auth                register / login / logout / me
    /cache, /audit       cache stats & clear, audit log
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.cache import ResultCache
from backend.config import settings
from backend.db import get_connection, init_db
from backend.log import configure_logging
from backend.scraper.service import ScrapeService
from backend.security import RateLimiter, UrlPolicy

from backend.api.routers import admin as admin_router
from backend.api.routers import auth as auth_router
from backend.api.routers import history as history_router
from backend.api.routers import process as process_router
from backend.api.routers import scrape as scrape_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Construct shared state on startup and close the DB on shutdown."""
    configure_logging()
    conn = get_connection()
    init_db(conn)

    cache = ResultCache(capacity=settings.cache_capacity, default_ttl=settings.cache_ttl)
    policy = UrlPolicy.from_settings()

    app.state.db = conn
    app.state.cache = cache
    app.state.sessions = ResultCache(
        capacity=settings.session_capacity, default_ttl=settings.session_ttl
    )
    app.state.rate_limiter = RateLimiter()
    app.state.policy = policy
    app.state.scraper = ScrapeService(cache, policy, ttl=settings.cache_ttl)
    logger.info("WebHarvest API ready (db=%s)", settings.db_path)
    try:
        yield
    finally:
        conn.close()


def create_app() -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    app = FastAPI(
        title="WebHarvest API",
        description=(
            "Scrape static or JavaScript-rendered pages into a normalized "
            "record, restructure results with an LLM, convert them to "
            "tabular formats and keep a per-user history."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    # Allow browser frontends on any origin (tighten for production).
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(scrape_router.router, prefix="/scrape", tags=["scrape"])
    app.include_router(process_router.router, tags=["process"])
    app.include_router(history_router.router, prefix="/history", tags=["history"])
    app.include_router(auth_router.router, prefix="/auth", tags=["auth"])
    app.include_router(admin_router.router, tags=["admin"])

    return app


# Module-level instance used by uvicorn:
#   uvicorn backend.api.app:app --reload
app = create_app()
