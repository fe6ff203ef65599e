"""
Jigsaw Server - Verified-Fragment Reconstruction Pipeline
Standalone microservice for evidence verification and case reconstruction

Architecture:
- Fragment Verifier: reality, truth and necessity checks per raw input
- Reconstruction Engine: components, edges, greedy placement, gaps, conclusions
- Orchestrator: merged human-review queue and court readiness assessment
- Telemetry: per-case-type run metrics (Redis, in-memory fallback)
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from jigsaw_server.config.settings import settings, get_cors_config

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Shutdown
    from jigsaw_server.api.routes import pipeline
    await pipeline.close_orchestrator()


def create_app() -> FastAPI:
    """Create and configure Jigsaw Server application."""

    app = FastAPI(
        title=settings.APP_NAME,
        description="Evidence verification and jigsaw reconstruction",
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS
    cors_config = get_cors_config()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_config["allow_origins"],
        allow_credentials=cors_config["allow_credentials"],
        allow_methods=cors_config["allow_methods"],
        allow_headers=cors_config["allow_headers"],
    )

    # Import routes (deferred to avoid circular imports)
    from jigsaw_server.api.routes import pipeline, stats

    # Register routes
    app.include_router(pipeline.router)
    app.include_router(stats.router)

    @app.get("/")
    async def root():
        """Root endpoint - service information"""
        return {
            "service": "Jigsaw Server",
            "version": settings.APP_VERSION,
            "description": "Verified-fragment reconstruction pipeline",
            "status": "operational",
            "endpoints": {
                "verify": "/api/pipeline/verify",
                "assemble": "/api/pipeline/assemble",
                "process": "/api/pipeline/process",
                "stats": "/api/stats/pipeline",
                "health": "/health",
                "docs": "/docs"
            }
        }

    @app.get("/health")
    async def health():
        """Health check endpoint"""
        return {
            "status": "ok",
            "service": "jigsaw-server",
            "version": settings.APP_VERSION
        }

    logger.info(f"Jigsaw Server initialized on port {settings.PORT}")
    return app

# Create app instance
app = create_app()
