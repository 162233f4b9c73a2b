import logging
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config.config import Settings, load_settings
from app.routers import files as files_router
from app.routers import health
from app.routers import index as index_router
from app.services.templates import ListingTemplates

logger = structlog.get_logger(__name__)


def configure_logging(level: str) -> None:
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.add_log_level,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelNamesMapping()[level.upper()]),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    logger.info(
        "dirindex_started",
        roots=[root.prefix for root in settings.service.roots],
        limit=settings.service.limit,
        template_index=settings.service.template_index,
        json_api=settings.service.json_api,
    )
    yield
    logger.info("shutdown")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application around an explicit, immutable Settings value.

    Templates are loaded here, so a missing or broken template aborts startup
    with TemplateLoadError.
    """
    if settings is None:
        settings = load_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="dirindex",
        description="Directory index generator",
        version=settings.app_version,
        lifespan=lifespan,
        # The HTML index owns every other path
        openapi_url="/api/openapi.json" if settings.service.json_api else None,
        docs_url="/api/docs" if settings.service.json_api else None,
        redoc_url=None,
    )
    app.state.settings = settings
    app.state.templates = None

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(health.router)
    if settings.service.json_api:
        app.include_router(files_router.router)
    if settings.service.template_index:
        # index_file is guaranteed by Settings validation
        app.state.templates = ListingTemplates(settings.template.index_file, settings.template.error_file)
        app.include_router(index_router.router)
    return app
