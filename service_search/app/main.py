"""Search service main application."""

import time
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import structlog

from .api.routes import router as api_router
from .hybrid.search_manager import SearchManager
from .runtime.metrics import get_metrics_collector
from search_libs.common.config import SearchConfig
from search_libs.common.logging import configure_logging
from search_libs.document_store.base import DocumentStoreError, InvalidDocumentIdError
from search_libs.embeddings.base import EmbeddingProviderError

logger = structlog.get_logger("search_service")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    config: SearchConfig = app.state.config
    configure_logging("search-service", config.hs_log_level, config.hs_log_format)

    logger.info("Starting search service")

    if getattr(app.state, "search_manager", None) is None:
        app.state.search_manager = SearchManager(config, metrics_collector=app.state.metrics_collector)

    logger.info("Search service started successfully")

    yield

    logger.info("Shutting down search service")
    await app.state.search_manager.cleanup()
    logger.info("Search service shutdown complete")


async def document_store_error_handler(request: Request, exc: DocumentStoreError):
    logger.error("Datastore failure", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=500, content={"error": str(exc)})


async def invalid_document_id_handler(request: Request, exc: InvalidDocumentIdError):
    return JSONResponse(status_code=422, content={"error": str(exc)})


async def embedding_provider_error_handler(request: Request, exc: EmbeddingProviderError):
    logger.error("Embedding provider failure", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=502, content={"error": str(exc)})


async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={"error": "Invalid request", "detail": jsonable_encoder(exc.errors())}
    )


def create_app(
    config: Optional[SearchConfig] = None,
    search_manager: Optional[SearchManager] = None
) -> FastAPI:
    """Build the FastAPI application.

    ``search_manager`` is created during startup from ``config`` unless one is
    supplied (tests pass a manager over an in-memory store).
    """
    app = FastAPI(
        title="Search Service",
        description="Keyword and hybrid semantic search over articles",
        version="0.1.0",
        lifespan=lifespan
    )
    app.state.config = config or SearchConfig()
    app.state.search_manager = search_manager
    app.state.metrics_collector = (
        search_manager.metrics_collector if search_manager else get_metrics_collector("search-service")
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(DocumentStoreError, document_store_error_handler)
    app.add_exception_handler(InvalidDocumentIdError, invalid_document_id_handler)
    app.add_exception_handler(EmbeddingProviderError, embedding_provider_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(api_router, prefix="/api/v1")

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        """Collect metrics and add the processing time header."""
        start_time = time.time()
        response = await call_next(request)
        duration = time.time() - start_time

        response.headers["X-Process-Time"] = str(duration)
        app.state.metrics_collector.record_http_request(
            method=request.method,
            endpoint=request.url.path,
            status=response.status_code,
            duration=duration
        )
        return response

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        manager = app.state.search_manager
        healthy = await manager.health_check() if manager else False

        if healthy:
            return {"status": "healthy", "service": "search-service"}
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "service": "search-service"}
        )

    @app.get("/metrics")
    async def metrics():
        """Prometheus metrics endpoint."""
        return Response(content=app.state.metrics_collector.get_metrics(), media_type="text/plain")

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "service": "search-service",
            "version": "0.1.0",
            "status": "running",
            "endpoints": {
                "health": "/health",
                "metrics": "/metrics",
                "fulltext": "/api/v1/search/fulltext",
                "semantic": "/api/v1/search/semantic",
                "documents": "/api/v1/documents"
            }
        }

    return app


app = create_app()


def main() -> None:
    config = SearchConfig()
    uvicorn.run(
        "service_search.app.main:app",
        host="0.0.0.0",
        port=config.hs_search_port,
        log_level=config.hs_log_level.lower()
    )


if __name__ == "__main__":
    main()
