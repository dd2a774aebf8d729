"""Comic Video backend - FastAPI application."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from comic_video.api.v1.health import router as health_root_router
from comic_video.api.v1.router import v1_router
from comic_video.config import Settings
from comic_video.services import Services, build_services, start_workers, stop_workers

logger = logging.getLogger(__name__)


def create_app(services: Optional[Services] = None, settings: Optional[Settings] = None) -> FastAPI:
    """Build the application.

    Services are constructed from ``settings`` (or the environment) unless
    given. The worker pools start and stop with the application lifespan.
    """
    if services is None:
        settings = settings or Settings()
        services = build_services(settings)
    settings = services.settings

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown logic."""
        logger.info("Starting Comic Video backend on port %d", settings.port)
        logger.info("Status backend: %s", settings.status_backend)
        logger.info("Scratch dir: %s", services.scratch.base_dir)

        removed = services.scratch.cleanup_expired()
        if removed:
            logger.info("Removed %d stale scratch dir(s)", removed)

        start_workers(services)

        yield

        logger.info("Shutting down Comic Video backend")
        stop_workers(services)
        services.scratch.cleanup_expired()

    app = FastAPI(
        title="Comic Video Service",
        description="Timeline rendering and story-to-video generation",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.services = services

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        """Malformed or incomplete request bodies are a 400, not a 422."""
        return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://localhost:3000", "*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_root_router, tags=["health"])  # GET /health at root
    app.include_router(v1_router)  # All /api/v1/* endpoints
    return app


if __name__ == "__main__":
    import uvicorn

    _settings = Settings()
    uvicorn.run(create_app(settings=_settings), host="0.0.0.0", port=_settings.port)
