"""FastAPI application instance."""
from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from src.api.dependencies import get_blacklist_store
from src.api.routes import blacklist, sns
from src.core.config import settings
from src.db import models
from src.db.session import engine
from src.utils.logger import configure_logging, logger


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - startup hook
    configure_logging()
    # Ensure tables exist for local development. Alembic should manage in production.
    models.Base.metadata.create_all(bind=engine)
    get_blacklist_store()
    logger.info("%s started", settings.app_name)
    yield
    engine.dispose()


app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    lifespan=lifespan,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    response = await call_next(request)
    client = request.client.host if request.client else "-"
    logger.info(
        "%s %s %s %s %s",
        client,
        request.method,
        request.url.path,
        response.status_code,
        request.headers.get("user-agent", "-"),
    )
    return response


app.include_router(sns.router)
app.include_router(blacklist.router)


@app.get(f"/{settings.api_version}/health_check", tags=["system"])
async def health_check() -> dict[str, str]:
    """Simple uptime check."""

    return {"status": "success", "message": f"{settings.app_name} is running"}
