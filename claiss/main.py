"""
FastAPI application entry point.

This module creates and configures the FastAPI application through an
application factory (create_app), so tests can build fresh instances
with their own settings and dependency overrides.

For local development:
    uvicorn claiss.main:app --reload

For production:
    gunicorn claiss.main:app -w 4 -k uvicorn.workers.UvicornWorker
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.dependencies import verify_api_key
from .api.routes import compilation, health, merge, videos
from .config.settings import Settings, get_settings
from .core.errors import AuthenticationError
from .infrastructure.storage.selector import StorageSelector

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.INFO,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Logs the configuration passed to create_app on startup. The storage
    adapter is resolved lazily on first use, not here, so a misconfigured
    provider does not stop the service from booting.
    """
    settings: Settings = app.state.settings

    logger.info(
        "Claiss API starting",
        extra={
            "version": settings.api_version,
            "storage_provider": settings.storage_provider.value,
            "storage_mock_mode": settings.storage_mock_mode,
            "remote_compilation": settings.use_remote_compilation,
        }
    )

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )

    yield

    logger.info("Claiss API shutting down")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Application factory.

    Creates the FastAPI application and the process-wide storage
    selector it shares across requests.
    """
    settings = settings or get_settings()

    logging.getLogger().setLevel(settings.log_level.upper())

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Manim compilation and video storage service.

        ## Authentication

        Endpoints under `/api` require `Authorization: Bearer <API_SECRET_KEY>`
        when a secret key is configured.

        ## Workflow

        1. **Compile scenes**: `POST /api/manim-compile`
           - Renders on the remote compute service, falling back to local Manim
           - Stores the video, falling back to a local file

        2. **Merge**: `POST /api/video-merge`
           - Concatenates compiled scenes in order

        3. **Watch**: `GET /api/videos?id=...`
           - Redirects to the stored video or streams the local file
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.storage_selector = StorageSelector(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    api_dependencies = [Depends(verify_api_key)]

    app.include_router(
        compilation.router,
        prefix="/api/manim-compile",
        tags=["Compilation"],
        dependencies=api_dependencies,
    )

    app.include_router(
        merge.router,
        prefix="/api/video-merge",
        tags=["Merge"],
        dependencies=api_dependencies,
    )

    app.include_router(
        videos.router,
        prefix="/api/videos",
        tags=["Videos"],
        dependencies=api_dependencies,
    )

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "message": "Claiss API",
            "version": settings.api_version,
            "docs": "/docs",
            "health": "/health",
        }

    @app.exception_handler(AuthenticationError)
    async def authentication_error_handler(request, exc):
        return JSONResponse(
            status_code=401,
            content={
                "success": False,
                "error": "Unauthorized",
                "message": str(exc),
            },
            headers={"WWW-Authenticate": "Bearer"},
        )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        """
        Catch-all exception handler.

        Logs the full error server-side and returns a generic message.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )

        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": "Internal server error",
            }
        )

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": settings.api_version,
        }
    )

    return app


# This is what uvicorn/gunicorn will import
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "claiss.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )
