"""FastAPI app entry point for the gear/case compatibility service."""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from casematch.api.routes import router
from casematch.config import get_settings
from casematch.core.logging import log_request, log_response, setup_logging
from casematch.services.ranking_cache import ranking_cache

settings = get_settings()
logger = setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    if not settings.catalog_configured:
        logger.warning("Catalog database not configured; catalog routes will return 503")
    yield
    ranking_cache.clear()


app = FastAPI(
    title="Gear Case Matcher API",
    description="Ranks protective cases for audio gear by compatibility",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    log_request(request.method, request.url.path)

    response = await call_next(request)

    duration_ms = (time.time() - start) * 1000
    log_response(request.method, request.url.path, response.status_code, duration_ms)
    return response


# Routes
app.include_router(router, prefix="/api")


@app.get("/health")
async def health():
    return {
        "status": "ok",
        "service": "casematch",
        "catalog_configured": settings.catalog_configured,
    }
