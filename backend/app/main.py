"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.router import api_router
from app.core.config import settings
from app.core.logging import get_logger, setup_logging
from app.services.catalog import CatalogError
from app.services.pipeline import VodPipeline

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the ingestion pipeline on startup and drain its jobs on shutdown."""
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.version,
        host=settings.host,
        port=settings.port,
    )

    # Tests install their own pipeline before startup
    pipeline = getattr(app.state, "pipeline", None)
    if pipeline is None:
        pipeline = VodPipeline.from_settings()
        app.state.pipeline = pipeline
    await pipeline.start()

    yield

    logger.info("shutting_down_application")
    await pipeline.close()


async def catalog_error_handler(request: Request, exc: CatalogError) -> JSONResponse:
    """Report catalog failures that a route did not translate itself."""
    logger.error("catalog_error", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=500, content={"detail": "Catalog storage error"})


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        description="Imports public domain movies from the Internet Archive into the VOD catalog",
        version=settings.version,
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(CatalogError, catalog_error_handler)
    app.include_router(api_router)

    return app


app = create_app()


def main() -> None:
    """Run the application with uvicorn."""
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
