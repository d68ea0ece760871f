"""FastAPI application setup for Bookworm."""

from __future__ import annotations

import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from bookworm.api import dependencies as deps
from bookworm.api.errors import setup_exception_handlers
from bookworm.api.routes_admin import router as admin_router
from bookworm.api.routes_analyze import router as analyze_router
from bookworm.api.routes_books import router as books_router
from bookworm.core.logging import configure_logging, get_logger
from bookworm.core.metrics import REQUEST_COUNT

configure_logging()
logger = get_logger(__name__)

app = FastAPI(
    title="Bookworm",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://127.0.0.1:3000",
        "http://localhost:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_exception_handlers(app)

app.include_router(books_router, prefix="/books", tags=["books"])
app.include_router(analyze_router, prefix="", tags=["analysis"])
app.include_router(admin_router, prefix="", tags=["admin"])


@app.middleware("http")
async def count_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    route = request.scope.get("route")
    endpoint = getattr(route, "path", request.url.path)
    REQUEST_COUNT.labels(endpoint=endpoint, method=request.method, status=str(response.status_code)).inc()
    logger.debug("%s %s -> %d in %.1fms", request.method, endpoint, response.status_code, (time.perf_counter() - started) * 1000)
    return response


@app.on_event("startup")
async def startup() -> None:
    """Warm up core singletons on startup."""
    deps.get_app_settings()
    deps.get_database()
    deps.get_enrichment_pipeline()
    deps.get_ingest_service()


@app.on_event("shutdown")
async def shutdown() -> None:
    await deps.shutdown()


@app.get("/health", tags=["admin"])
def health() -> dict[str, bool]:
    """Simple liveness check."""
    return {"ok": True}
