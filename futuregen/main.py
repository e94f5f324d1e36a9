"""Main FastAPI application entry point."""

import os
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .api import health, generate
from .providers import GeminiClient
from .core import FeatureExtractor, Orchestrator
from .utils.config import load_config
from .utils.logger import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown.

    Builds the Gemini client and core components on startup,
    closes the client on shutdown.
    """
    logger.info("Application starting up...")

    config = load_config()

    gemini = GeminiClient(
        api_key=config.gemini_api_key,
        timeout=config.timeout_seconds,
    )
    await gemini.initialize()

    if not config.has_credential:
        logger.warning("GEMINI_API_KEY is not set; generation requests will fail")

    extractor = FeatureExtractor(
        gemini,
        model=config.analysis_model,
        max_attempts=config.retry.max_attempts,
        initial_delay=config.retry.initial_delay_seconds,
        max_dimension=config.image.max_dimension,
        jpeg_quality=config.image.jpeg_quality,
    )
    orchestrator = Orchestrator(gemini, extractor=extractor, config=config)

    app.state.config = config
    app.state.gemini = gemini
    app.state.extractor = extractor
    app.state.orchestrator = orchestrator

    logger.info("Application startup complete")

    try:
        yield
    finally:
        logger.info("Application shutting down...")
        await gemini.close()
        logger.info("Application shutdown complete")


app = FastAPI(
    title="FutureGen",
    description="Reference-guided portrait transformation over Gemini image models",
    version=__version__,
    lifespan=lifespan,
)

# Add CORS middleware (adjust origins for production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(generate.router, tags=["generation"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "futuregen",
        "version": __version__,
        "status": "running",
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8000))

    uvicorn.run(
        "futuregen.main:app",
        host="0.0.0.0",
        port=port,
        reload=True,
        log_level="info",
    )
