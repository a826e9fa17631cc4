"""
FastAPI Backend for WorldLore Geo.

Serves historical boundary snapshots and natural feature layers as GeoJSON
FeatureCollections with weak ETags.
"""

import logging

from dotenv import load_dotenv

load_dotenv()

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from lore_api.cache import get_redis_client
from lore_api.routes import history, natural
from lore_pipeline import __version__
from lore_pipeline.config import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Starting WorldLore Geo API...")
    get_redis_client()  # Initialize Redis connection
    yield
    logger.info("Shutting down...")


app = FastAPI(
    title="WorldLore Geo API",
    description="Historical boundaries and natural features by year and level of detail",
    version=__version__,
    lifespan=lifespan,
)

# CORS - allow frontend to connect (configured via API_CORS_ORIGINS env var)
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.api.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["Content-Type", "If-None-Match"],
    expose_headers=["ETag", "X-WorldLore-Source"],
)

# Layer bodies are large GeoJSON; compress responses > 500 bytes
app.add_middleware(GZipMiddleware, minimum_size=500)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render HTTP errors as {"error": message}."""
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


# Include routers
app.include_router(history.router, prefix="/api/history", tags=["history"])
app.include_router(natural.router, prefix="/api/natural", tags=["natural"])


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "version": __version__, "service": "WorldLore Geo API"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.api.host, port=settings.api.port)
