"""FastAPI application for the renal decision aid backend."""
from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from .core.config import settings
from .dependencies import get_session_store
from .routers import sessions as sessions_router
from .schemas.sessions import HealthResponse
from .services.session_store import SessionStore

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the single session store for the lifetime of the process."""

    store = SessionStore(
        ttl=settings.session_ttl,
        cleanup_interval=settings.session_cleanup_interval,
        initial_step=settings.session_initial_step,
    )
    async with store:
        app.state.session_store = store
        logger.info(
            "Application started env=%s session_ttl=%ss cleanup_interval=%ss",
            settings.app_env,
            settings.session_ttl_seconds,
            settings.session_cleanup_interval_seconds,
        )
        try:
            yield
        finally:
            logger.info("Application shutting down active_sessions=%d", store.active_count())
            store.clear()


app = FastAPI(title="Renal Decision Aid API", version="0.1.0", lifespan=lifespan)

if settings.cors_allow_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Session-Id", "X-Request-Id"],
    )


@app.middleware("http")
async def log_requests(request: Request, call_next) -> Response:
    """Tag each request with an id and log its outcome."""

    request_id = request.headers.get("x-request-id") or uuid4().hex
    request.state.request_id = request_id
    started = time.perf_counter()

    try:
        response = await call_next(request)
    except Exception:
        logger.error(
            "Request failed request_id=%s method=%s path=%s duration_ms=%.1f",
            request_id,
            request.method,
            request.url.path,
            (time.perf_counter() - started) * 1000,
        )
        raise

    duration_ms = (time.perf_counter() - started) * 1000
    level = logging.INFO
    if response.status_code >= 500:
        level = logging.ERROR
    elif response.status_code >= 400:
        level = logging.WARNING
    logger.log(
        level,
        "Request completed request_id=%s method=%s path=%s status=%d duration_ms=%.1f",
        request_id,
        request.method,
        request.url.path,
        response.status_code,
        duration_ms,
    )
    response.headers["X-Request-Id"] = request_id
    return response


@app.exception_handler(Exception)
async def unhandled_exception(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected failures and answer with a generic 500."""

    request_id = getattr(request.state, "request_id", None)
    logger.exception(
        "Unhandled error request_id=%s method=%s path=%s",
        request_id,
        request.method,
        request.url.path,
    )
    detail = "Internal Server Error" if settings.is_production else f"{type(exc).__name__}: {exc}"
    headers = {"X-Request-Id": request_id} if request_id else None
    return JSONResponse(status_code=500, content={"detail": detail}, headers=headers)


@app.get("/api/health", response_model=HealthResponse, tags=["meta"])
async def health(store: SessionStore = Depends(get_session_store)) -> HealthResponse:
    """Liveness probe with the number of held sessions."""

    return HealthResponse(status="ok", active_sessions=store.active_count())


@app.head("/api/health", tags=["meta"])
async def health_head() -> Response:
    """Allow HEAD for uptime monitors that only need the status code."""

    return Response(status_code=200)


app.include_router(sessions_router.router, prefix="/api/session", tags=["session"])
