"""FastAPI application for the admissions workflow."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
import structlog

from admissions_backend.api import admin_router, applications_router, session_router
from admissions_backend.core.config import settings
from admissions_backend.core.database import close_db, db_manager, init_db
from admissions_backend.core.error_handling import register_exception_handlers
from admissions_backend.core.logging import configure_logging

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    init_db()
    logger.info("Admissions API started", environment=settings.environment)
    yield
    close_db()
    logger.info("Admissions API stopped")


def create_app() -> FastAPI:
    """Build the FastAPI application with routers and error handlers."""
    app = FastAPI(
        title="Admissions Backend API",
        description="Application lifecycle, review and decision release",
        version="0.1.0",
        lifespan=lifespan,
    )

    register_exception_handlers(app)

    app.include_router(session_router)
    app.include_router(applications_router)
    app.include_router(admin_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        database_ok = db_manager.health_check()
        return {
            "status": "healthy" if database_ok else "degraded",
            "service": "admissions-backend",
            "database": database_ok,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "admissions_backend.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True
    )
