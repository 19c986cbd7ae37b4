"""FastAPI application wiring for the association service."""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from psycopg_pool import ConnectionPool

from .api.routes import register_error_handlers, router as v1_router
from .config import get_settings
from .directory import PostgresTenantDirectory
from .logging_config import configure_logging, correlation_id_var
from .repository import AssociationRepository

settings = get_settings()
configure_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the Postgres pool and build the repository for the app lifecycle."""
    pool = ConnectionPool(
        settings.database_url,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
        timeout=settings.db_pool_timeout_seconds,
        open=False,
    )
    pool.open()
    directory = PostgresTenantDirectory(
        pool,
        super_tenant_id=settings.super_tenant_id,
        super_tenant_domain=settings.super_tenant_domain,
    )
    app.state.pool = pool
    app.state.association_repository = AssociationRepository(pool, directory)
    try:
        yield
    finally:
        pool.close()


app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)
register_error_handlers(app)


@app.middleware("http")
async def correlation_id(request: Request, call_next):
    """Tag log records and the response with the request's correlation id."""
    cid = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    token = correlation_id_var.set(cid)
    try:
        response = await call_next(request)
    finally:
        correlation_id_var.reset(token)
    response.headers["X-Request-ID"] = cid
    return response


@app.get("/healthz", tags=["health"])
def healthz() -> dict[str, str]:
    """Return a minimal readiness indicator used by orchestration systems."""
    return {"status": "ok"}


@app.get("/metrics")
def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


app.include_router(v1_router)
