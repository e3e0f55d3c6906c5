import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import get_settings
from app.core.logging import configure_logging
from app import models  # noqa: F401
from app.db.base import Base
from app.db.session import engine
from app.routers import backups, connection, jobs, runner, selection
from app.workers.tasks import get_runner

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(logging.DEBUG if settings.debug else logging.INFO)
    app = FastAPI(title=settings.app_name, debug=settings.debug)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(jobs.router)
    app.include_router(runner.router)
    app.include_router(backups.router)
    app.include_router(connection.router)
    app.include_router(selection.router)

    @app.on_event("startup")
    def startup() -> None:
        if settings.auto_create_tables:
            Base.metadata.create_all(bind=engine)
        if settings.resume_on_startup:
            # Jobs left QUEUED, STARTING or RUNNING by a previous process continue here.
            started = get_runner().resume()
            logger.info("backup_runner_resume", extra={"started": started})

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    return app


app = create_app()
