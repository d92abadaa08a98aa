"""
Application factory. Sets up the FastAPI application, the store handle, the
cache and every router.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from motor.motor_asyncio import AsyncIOMotorDatabase

from .config import Settings, settings as default_settings
from .errors import register_exception_handlers
from .routes import auth, dashboard, exam_questions, stage_categories
from .utils.cache import Cache, init_cache
from .utils.database import close_db_connection, connect_to_db, ensure_indexes, get_default_database

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[AsyncIOMotorDatabase] = None,
    cache: Optional[Cache] = None,
) -> FastAPI:
    """
    Build the application. A ``database`` handle passed in is used as is;
    otherwise the lifespan connects with ``MONGODB_URI`` and closes on exit.
    """
    settings = settings or default_settings
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = None
        if app.state.db is None:
            client = await connect_to_db(settings)
            app.state.db = get_default_database(client, settings)
            await ensure_indexes(app.state.db)
        if app.state.cache is None:
            app.state.cache = init_cache(settings.REDIS_URL, settings.CACHE_EXPIRE)
        logger.info("LMS API started")
        try:
            yield
        finally:
            await app.state.cache.close()
            if client is not None:
                await close_db_connection(client)

    app = FastAPI(
        title="LMS Catalog API",
        description="Exam-question catalog and stage-category management",
        version="1.0.0",
        lifespan=lifespan,
    )
    if cache is None and database is not None:
        # injected store: caching stays off unless a cache is injected too
        cache = Cache(None, settings.CACHE_EXPIRE)
    app.state.settings = settings
    app.state.db = database
    app.state.cache = cache

    # Set up CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Include all API routers
    app.include_router(auth.router, prefix=settings.API_PREFIX)
    app.include_router(exam_questions.router, prefix=settings.API_PREFIX)
    app.include_router(stage_categories.router, prefix=settings.API_PREFIX)
    app.include_router(dashboard.router)

    @app.get("/health", include_in_schema=False)
    async def health_check():
        """
        Health check endpoint for monitoring
        """
        return {"status": "healthy"}

    return app
