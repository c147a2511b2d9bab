import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from workhub.core.config import settings
from workhub.core.errors import (
    WorkHubError, python_exception_handler, validation_exception_handler, workhub_exception_handler
)
from workhub.core.logging import setup_logging
from workhub.core.security import CredentialService
from workhub.db.base import Database
from workhub.db.redis_client import ProjectStatsCache, create_redis
from workhub.services.notifications import Notifier

# Import routers
from workhub.api.v1 import auth, member_requests, members, passwords, projects, tasks, teams

logger = logging.getLogger(__name__)


def create_app(database_url: Optional[str] = None, redis_url: Optional[str] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database = Database(database_url or settings.DATABASE_URL, echo=settings.DEBUG).open()
        redis_client = create_redis(settings.REDIS_URL if redis_url is None else redis_url)

        app.state.database = database
        app.state.stats_cache = ProjectStatsCache(redis_client)
        app.state.credentials = CredentialService()
        app.state.notifier = Notifier()
        logger.info("%s started", settings.APP_NAME)
        try:
            yield
        finally:
            if redis_client is not None:
                redis_client.close()
            database.close()
            logger.info("%s stopped", settings.APP_NAME)

    app = FastAPI(
        title=settings.APP_NAME,
        debug=settings.DEBUG,
        description="Project and task management API with role-based access control",
        version="1.0.0",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(WorkHubError, workhub_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, python_exception_handler)

    # Include routers
    for module in (auth, members, projects, tasks, teams, passwords, member_requests):
        app.include_router(module.router, prefix="/api/v1")
    app.include_router(members.admin_router, prefix="/api/v1")

    @app.get("/")
    def root():
        """Root endpoint"""
        return {
            "message": settings.APP_NAME,
            "version": "1.0.0",
            "docs": "/docs",
            "redoc": "/redoc"
        }

    @app.get("/health")
    def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "service": "workhub-api"}

    return app


setup_logging()
app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("workhub.main:app", host="0.0.0.0", port=8000, reload=True)
