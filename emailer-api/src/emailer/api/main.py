"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from emailer.infrastructure import Services, build_services, get_settings
from emailer.infrastructure.log_config import setup_logging


def create_app(services: Services | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    When ``services`` is given it is used as-is (tests); otherwise the stores
    and provider are built from settings during startup.
    """
    settings = services.settings if services is not None else get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler for startup/shutdown."""
        logger.info(f"Starting {settings.app_name} v{settings.app_version}")
        logger.info(f"Environment: {settings.environment}")
        app.state.services = services or build_services(settings)
        yield
        logger.info("Shutdown complete")

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Persist, send and expire outbound email",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from emailer.api.routes import router

    app.include_router(router)

    return app


def get_app() -> FastAPI:
    """ASGI factory: ``uvicorn --factory emailer.api.main:get_app``."""
    setup_logging(get_settings().log_level)
    return create_app()
