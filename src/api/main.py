"""FastAPI application entry point."""
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from api.routers import bookmarks, health
from core.config import get_settings
from db.redis import create_redis_client
from db.session import create_engine_from_settings, create_session_factory, init_models
from repositories import build_repository
from services.bookmark_service import BookmarkService
from services.exceptions import (
    EnrichmentFailedError,
    InvalidArgumentError,
    NotFoundError,
    StorageError,
)
from services.url_scraper import WebContentFetcher

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifespan - startup and shutdown."""
    app_settings = get_settings()

    engine = None
    session_factory = None
    redis_client = None

    # Startup: open only the handle the selected backend needs
    if app_settings.storage_backend == "sql":
        engine = create_engine_from_settings(app_settings)
        await init_models(engine)
        session_factory = create_session_factory(engine)
    elif app_settings.storage_backend == "redis":
        redis_client = create_redis_client(app_settings)

    repository = build_repository(
        app_settings, session_factory=session_factory, redis_client=redis_client,
    )
    fetcher = WebContentFetcher(
        timeout=app_settings.fetch_timeout,
        summary_max_length=app_settings.summary_max_length,
    )
    app.state.engine = engine
    app.state.redis = redis_client
    app.state.bookmark_service = BookmarkService(repository, fetcher)
    logger.info("Bookmark service started with %s storage", app_settings.storage_backend)

    yield

    # Shutdown: release connections
    app.state.bookmark_service = None
    app.state.engine = None
    app.state.redis = None
    if redis_client is not None:
        await redis_client.aclose()
    if engine is not None:
        await engine.dispose()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process request and add security headers to response."""
        response = await call_next(request)
        response.headers["Strict-Transport-Security"] = (
            "max-age=31536000; includeSubDomains"
        )
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        return response


app_settings = get_settings()

logging.basicConfig(
    level=app_settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Athena API",
    description="Bookmark lifecycle service: save, enrich, archive, and list URLs.",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(InvalidArgumentError)
async def invalid_argument_handler(_request: Request, exc: InvalidArgumentError) -> JSONResponse:
    """Bad caller input."""
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(NotFoundError)
async def not_found_handler(_request: Request, exc: NotFoundError) -> JSONResponse:
    """Missing bookmark."""
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(EnrichmentFailedError)
async def enrichment_failed_handler(
    _request: Request, exc: EnrichmentFailedError,
) -> JSONResponse:
    """A metadata fetch failed; nothing was saved."""
    return JSONResponse(status_code=502, content={"detail": str(exc)})


@app.exception_handler(StorageError)
async def storage_error_handler(_request: Request, exc: StorageError) -> JSONResponse:
    """Backend failure."""
    logger.error("Storage error: %s", exc)
    return JSONResponse(status_code=500, content={"detail": str(exc)})


# Security headers middleware (runs after CORS, adds headers to responses)
app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(bookmarks.router)
