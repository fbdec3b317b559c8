# app/main.py
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import Settings, get_settings
from app.core.database import Database
from app.core.errors import AppError, app_error_handler
from app.core.logging import setup_logging
from app.settings.routes import router as settings_router
from app.template.routes import router as template_router
from app.testplan.routes import router as testplan_router
from app.ticket.routes import router as ticket_router

# model modules must be imported before create_all
from app.settings import models as _settings_models  # noqa: F401
from app.template import models as _template_models  # noqa: F401
from app.testplan import models as _testplan_models  # noqa: F401
from app.ticket import models as _ticket_models  # noqa: F401

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.LOG_LEVEL)
        Path(settings.TEMPLATES_DIR).mkdir(parents=True, exist_ok=True)
        db = Database(settings.DATABASE_URL)
        db.create_all()
        app.state.db = db
        logger.info("Database ready at %s", settings.DATABASE_URL.split("://")[0])
        yield
        db.dispose()
        logger.info("Database closed")

    app = FastAPI(
        title=settings.APP_NAME,
        description=settings.APP_DESC,
        version=settings.APP_VERSION,
        lifespan=lifespan,
    )
    app.dependency_overrides[get_settings] = lambda: settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(AppError, app_error_handler)

    # Routers
    app.include_router(ticket_router, prefix=settings.API_PREFIX)
    app.include_router(template_router, prefix=settings.API_PREFIX)
    app.include_router(settings_router, prefix=settings.API_PREFIX)
    app.include_router(testplan_router, prefix=settings.API_PREFIX)

    @app.get("/health", tags=["Health"])
    def health():
        return {"status": "ok"}

    return app


app = create_app()
