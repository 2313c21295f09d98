"""ExemptLot API — FastAPI application for exempt-development checks.

Run:
    uvicorn exemptlot.api.main:app --reload
    # or
    exemptlot-api
"""

import asyncio
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from starlette.middleware.base import BaseHTTPMiddleware

from exemptlot.api.deps import Services
from exemptlot.api.routes import router
from exemptlot.config import settings
from exemptlot.core.types import UnknownPolicy
from exemptlot.ingestion.sites import DatasetError, load_dataset
from exemptlot.observability import init_tracking, setup_logging
from exemptlot.observability.logging import correlation_scope
from exemptlot.storage.db import dispose_db, get_session, get_session_factory, init_db
from exemptlot.storage.history import InMemoryHistoryRepository, SqlHistoryRepository
from exemptlot.storage.sites import InMemorySiteStore, SiteCatalog, SqlSiteStore

logger = logging.getLogger(__name__)


async def build_services() -> Services:
    """Load the dataset and wire storage. Falls back to in-memory storage if the DB is down."""
    try:
        dataset_sites = load_dataset(settings.default_dataset)
    except DatasetError as e:
        logger.error("Site dataset failed to load: %s — starting with an empty catalog", e)
        dataset_sites = []

    try:
        await asyncio.wait_for(init_db(), timeout=15)
        factory = get_session_factory()
        history, store = SqlHistoryRepository(factory), SqlSiteStore(factory)
    except asyncio.TimeoutError:
        logger.error("Database initialization timed out after 15s — history will not persist")
        history, store = InMemoryHistoryRepository(), InMemorySiteStore()
    except Exception as e:
        logger.error("Database initialization failed: %s — history will not persist", e)
        history, store = InMemoryHistoryRepository(), InMemorySiteStore()

    catalog = SiteCatalog(dataset_sites, store)
    await catalog.load()
    return Services(
        catalog=catalog,
        history=history,
        unknown_policy=UnknownPolicy(settings.unknown_overlay_policy),
        max_sessions=settings.max_assessment_sessions,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Wire services on startup, release the DB pool on shutdown."""
    setup_logging(json_format=settings.log_json, level=settings.log_level)

    try:
        init_tracking(settings.mlflow_tracking_uri, settings.mlflow_experiment_name)
        logger.info("MLflow tracing enabled: %s", settings.mlflow_tracking_uri)
    except Exception as e:
        logger.warning("MLflow tracking unavailable: %s", e)

    app.state.services = await build_services()
    logger.info("ExemptLot API ready")
    yield
    logger.info("Shutting down")
    await dispose_db()


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """Set correlation ID from X-Request-ID header or generate a new one."""

    async def dispatch(self, request: Request, call_next):
        with correlation_scope(request.headers.get("x-request-id")) as cid:
            response = await call_next(request)
            response.headers["x-request-id"] = cid
            return response


app = FastAPI(
    title="ExemptLot",
    description="Checks whether a shed, patio, pergola or carport is likely exempt "
    "development under SEPP (Exempt Development) 2008.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(CorrelationIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


@app.get("/health")
async def health(request: Request):
    """Health check — database connectivity and catalog size."""
    checks: dict = {}

    session = None
    try:
        session = await get_session()
        await session.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {e}"
    finally:
        if session is not None:
            await session.close()

    services = getattr(request.app.state, "services", None)
    checks["sites"] = len(services.catalog.list_sites()) if services else 0

    status = "healthy" if checks["database"] == "ok" and checks["sites"] else "degraded"
    return {"status": status, "checks": checks}


def run() -> None:
    """Entry point for the exemptlot-api script."""
    uvicorn.run("exemptlot.api.main:app", host="0.0.0.0", port=8000)
