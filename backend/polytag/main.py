"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from polytag.config import Settings, settings as default_settings
from polytag.database import create_engine, create_session_factory
from polytag.errors import register_error_handlers
from polytag.models import Base
from polytag.services.file_storage import FileDriver
from polytag.services.search_index import SearchIndex

logger = logging.getLogger(__name__)


async def startup(app: FastAPI, settings: Settings) -> None:
    """Build the process-scoped services and keep them on ``app.state``."""
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    engine = create_engine(settings)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    file_driver = FileDriver.from_settings(settings)
    await file_driver.create_dirs()

    search_index = SearchIndex.from_settings(settings)
    await search_index.open()
    if not search_index.enabled:
        logger.warning("SEARCH_URL is not set; free-text file search is disabled")

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.file_driver = file_driver
    app.state.search_index = search_index
    logger.info(f"Started in {settings.ENVIRONMENT} mode, storing files under {file_driver.files_path}")


async def shutdown(app: FastAPI) -> None:
    await app.state.search_index.close()
    await app.state.engine.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Create tables and storage directories on startup."""
        await startup(app, settings)
        yield
        await shutdown(app)

    app = FastAPI(
        title="Polytag API",
        version="1.0.0",
        description="Tagged file storage with resumable uploads.",
        lifespan=lifespan,
    )

    # CORS
    origins = [o.strip() for o in settings.CORS_ORIGINS.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app, production=settings.is_production)

    @app.get("/api/health")
    async def health_check(request: Request):
        """Verify API and database connectivity."""
        try:
            async with request.app.state.session_factory() as db:
                await db.execute(text("SELECT 1"))
            return {"status": "ok", "database": "connected"}
        except SQLAlchemyError as e:
            logger.warning(f"Health check failed: {e}")
            return {"status": "error", "database": str(e)}

    # Register routers
    from polytag.routes.stagings import router as stagings_router
    from polytag.routes.files import router as files_router
    from polytag.routes.tag_templates import router as tag_templates_router
    from polytag.routes.collections import router as collections_router
    app.include_router(stagings_router)
    app.include_router(files_router)
    app.include_router(tag_templates_router)
    app.include_router(collections_router)

    return app


app = create_app()
