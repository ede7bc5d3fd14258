"""FastAPI application factory"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from finsight.api.middleware import RequestIDMiddleware, MetricsMiddleware
from finsight.api.v1 import query, suggestions
from finsight.infrastructure.database.session import init_db
from finsight.infrastructure.observability.logging import setup_logging
from finsight.config import settings

# Setup structured logging
setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # The HTTP backend owns its own storage
    if settings.record_store_backend == "sql":
        init_db()
    yield


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="FinSight Reasoning Engine",
        description="Rule-based answers to natural-language questions about personal finances",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check():
        return {
            "status": "ok",
            "service": settings.service_name,
            "record_store": settings.record_store_backend,
        }

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(query.router, prefix="/v1", tags=["query"])
    app.include_router(suggestions.router, prefix="/v1", tags=["suggestions"])

    return app


app = create_app()
