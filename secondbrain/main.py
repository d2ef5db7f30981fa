"""FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from secondbrain.config import get_settings
from secondbrain.database import engine, init_schema

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifespan: startup and shutdown events."""
    # Startup: enable pgvector and create missing tables
    await init_schema(engine)
    logger.info("Database schema ready")
    yield
    # Shutdown: dispose the async engine connection pool
    await engine.dispose()


app = FastAPI(
    title="Second Brain",
    description="Personal notes, documents and links with hybrid semantic search",
    version="0.1.0",
    lifespan=lifespan,
)

# --- CORS Middleware ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Router includes ---
from secondbrain.api.content import router as content_router  # noqa: E402
from secondbrain.api.documents import router as documents_router  # noqa: E402
from secondbrain.api.links import router as links_router  # noqa: E402
from secondbrain.api.notes import router as notes_router  # noqa: E402
from secondbrain.api.search import router as search_router  # noqa: E402

app.include_router(search_router, prefix="/api")
app.include_router(content_router, prefix="/api")
app.include_router(notes_router, prefix="/api")
app.include_router(links_router, prefix="/api")
app.include_router(documents_router, prefix="/api")


@app.get("/api/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint.

    Returns a simple status response to verify the API is running.
    """
    return {"status": "ok"}
