"""
Personal Insights Engine - Main Application

FastAPI server for personal-records analytics.
"""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import get_settings
from api.routes import analytics, datasets, entries, query, upload
from api.schemas.responses import HealthResponse
from core.dataset_store import StorageUnavailableError, dataset_store
from core.logging_config import get_logger
from llm.ollama_client import ollama_client

logger = get_logger("app")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()

    # Startup
    os.makedirs(settings.log_dir, exist_ok=True)
    logger.info(f"{settings.app_name} v{settings.app_version} starting...")
    logger.info(
        f"Ollama model: {settings.ollama.model} "
        f"({'enabled' if settings.ollama.enabled else 'disabled'})"
    )

    yield

    # Shutdown
    await ollama_client.close()
    logger.info("Shutting down...")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Personal records insights engine: text extraction, domain classification, metric aggregation and correlation analysis",
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

    # Include routers
    app.include_router(upload.router, prefix="/api/v1", tags=["Upload"])
    app.include_router(datasets.router, prefix="/api/v1", tags=["Datasets"])
    app.include_router(entries.router, prefix="/api/v1", tags=["Entries"])
    app.include_router(analytics.router, prefix="/api/v1", tags=["Analytics"])
    app.include_router(query.router, prefix="/api/v1", tags=["Query"])

    @app.get("/health", tags=["Health"], response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        """Health check endpoint."""
        try:
            dataset_count = len(dataset_store.listings())
            status = "healthy"
        except StorageUnavailableError:
            dataset_count = 0
            status = "degraded"

        return HealthResponse(
            status=status,
            version=settings.app_version,
            ollama_available=await ollama_client.is_available(),
            datasets=dataset_count,
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
